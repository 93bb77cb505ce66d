"""
Scotch — Users API

Registration, lookup and deletion of accounts, plus the three relationship
listings for the current user (liked, liked-by, matches).
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_current_user_id, get_relationship_service, get_user_directory
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse, UserSummary
from app.services.relationship_service import RelationshipService
from app.services.user_directory import UserDirectory

logger = structlog.get_logger("scotch.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Register a user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def create_user(
    payload: UserCreate,
    directory: UserDirectory = Depends(get_user_directory),
) -> User:
    return await directory.create(payload)


# ──────────────────────────────────────────────────────────────────────────────
# Relationship listings for the current user
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/liked",
    response_model=list[UserSummary],
    summary="Users the current user has liked",
)
async def liked_users(
    current_user_id: int = Depends(get_current_user_id),
    relationships: RelationshipService = Depends(get_relationship_service),
    directory: UserDirectory = Depends(get_user_directory),
) -> list[User]:
    user_ids = await relationships.list_liked(current_user_id)
    logger.info("list_liked", user_id=current_user_id, count=len(user_ids))
    return await directory.find_many(user_ids)


@router.get(
    "/liked_by",
    response_model=list[UserSummary],
    summary="Users who have liked the current user",
)
async def liked_by_users(
    current_user_id: int = Depends(get_current_user_id),
    relationships: RelationshipService = Depends(get_relationship_service),
    directory: UserDirectory = Depends(get_user_directory),
) -> list[User]:
    user_ids = await relationships.list_liked_by(current_user_id)
    logger.info("list_liked_by", user_id=current_user_id, count=len(user_ids))
    return await directory.find_many(user_ids)


@router.get(
    "/matches",
    response_model=list[UserSummary],
    summary="Users the current user is matched with",
)
async def matched_users(
    current_user_id: int = Depends(get_current_user_id),
    relationships: RelationshipService = Depends(get_relationship_service),
    directory: UserDirectory = Depends(get_user_directory),
) -> list[User]:
    user_ids = await relationships.list_matches(current_user_id)
    logger.info("list_matches", user_id=current_user_id, count=len(user_ids))
    return await directory.find_many(user_ids)


# ──────────────────────────────────────────────────────────────────────────────
# /current — The authenticated account
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/current",
    response_model=UserResponse,
    summary="Get the current user",
)
async def get_current_user(
    current_user_id: int = Depends(get_current_user_id),
    directory: UserDirectory = Depends(get_user_directory),
) -> User:
    return await directory.find_by_id(current_user_id)


@router.delete(
    "/current",
    summary="Delete the current user and every like and match involving them",
)
async def delete_current_user(
    current_user_id: int = Depends(get_current_user_id),
    directory: UserDirectory = Depends(get_user_directory),
) -> dict:
    await directory.delete(current_user_id)
    return {"status": "deleted", "user_id": current_user_id}


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — Get user by ID
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID",
)
async def get_user(
    user_id: int,
    _: int = Depends(get_current_user_id),
    directory: UserDirectory = Depends(get_user_directory),
) -> User:
    return await directory.find_by_id(user_id)
