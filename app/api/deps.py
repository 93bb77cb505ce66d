"""
Scotch — API dependencies

Per-request wiring of the relationship core and resolution of the
authenticated user.  The resolved id is handed to the services as a plain
argument; nothing is stashed on the request.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.errors import NotFound, Unauthenticated
from app.services.relationship_service import RelationshipService
from app.services.relationship_store import RelationshipStore
from app.services.user_directory import UserDirectory

logger = structlog.get_logger("scotch.api.deps")


def get_relationship_service(
    db: AsyncSession = Depends(get_db),
) -> RelationshipService:
    return RelationshipService(RelationshipStore(db))


def get_user_directory(
    db: AsyncSession = Depends(get_db),
    relationships: RelationshipService = Depends(get_relationship_service),
) -> UserDirectory:
    return UserDirectory(db, on_user_deleted=relationships.delete_user)


class CurrentUserProvider:
    """Resolve the authenticated user id for a request.

    The session gateway in front of the API validates the session cookie and
    forwards the user id in ``header_name``.  The id must still belong to an
    existing account.
    """

    def __init__(self, header_name: str | None = None) -> None:
        self.header_name = header_name or get_settings().CURRENT_USER_HEADER

    async def resolve(self, request: Request, directory: UserDirectory) -> int:
        raw = request.headers.get(self.header_name)
        if raw is None:
            logger.info("authentication_failed", reason="header_missing")
            raise Unauthenticated()

        try:
            user_id = int(raw)
        except ValueError:
            logger.info("authentication_failed", reason="header_malformed")
            raise Unauthenticated() from None

        try:
            await directory.find_by_id(user_id)
        except NotFound:
            logger.info("authentication_failed", reason="unknown_user", user_id=user_id)
            raise Unauthenticated() from None

        return user_id

    async def __call__(
        self,
        request: Request,
        directory: UserDirectory = Depends(get_user_directory),
    ) -> int:
        return await self.resolve(request, directory)


get_current_user_id = CurrentUserProvider()
