"""
Scotch — Likes API

Endpoints for expressing and retracting interest.  A like that completes a
reciprocal pair creates the match as a side effect.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_current_user_id, get_relationship_service, get_user_directory
from app.schemas.match import LikeRequest, LikeResponse, UnlikeResponse
from app.services.relationship_service import RelationshipService
from app.services.user_directory import UserDirectory

logger = structlog.get_logger("scotch.api.likes")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Like a user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=LikeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Like a user",
)
async def create_like(
    payload: LikeRequest,
    current_user_id: int = Depends(get_current_user_id),
    relationships: RelationshipService = Depends(get_relationship_service),
    directory: UserDirectory = Depends(get_user_directory),
) -> LikeResponse:
    """Like ``liked_user`` on behalf of the current user.

    Responds 409 if the like already exists and 422 for a self-like.  The
    ``matched`` flag tells whether this like completed a mutual pair.
    """
    await directory.find_by_id(payload.liked_user)

    result = await relationships.like(current_user_id, payload.liked_user)

    return LikeResponse(
        id=result.like.id,
        user_id=result.like.user_id,
        liked_user=result.like.liked_user,
        matched=result.matched,
    )


# ──────────────────────────────────────────────────────────────────────────────
# DELETE / — Retract a like
# ──────────────────────────────────────────────────────────────────────────────

@router.delete(
    "",
    response_model=UnlikeResponse,
    summary="Retract a like",
)
async def delete_like(
    payload: LikeRequest,
    current_user_id: int = Depends(get_current_user_id),
    relationships: RelationshipService = Depends(get_relationship_service),
) -> UnlikeResponse:
    """Remove the current user's like of ``liked_user``; any match between
    the two is removed with it.  Responds 404 if there is no such like."""
    await relationships.unlike(current_user_id, payload.liked_user)
    return UnlikeResponse(liked_user=payload.liked_user)
