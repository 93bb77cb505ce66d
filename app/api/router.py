"""
Scotch — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import likes, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(likes.router, prefix="/likes", tags=["Likes"])
