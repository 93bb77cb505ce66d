"""
Scotch — User Directory

Resolves user ids to directory records for listings and authentication,
and owns account registration and deletion.  Deleting an account first runs
the ``on_user_deleted`` trigger so the relationship graph is cleaned up
before the row disappears.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LoginTaken, NotFound
from app.models.user import User
from app.schemas.user import UserCreate

logger = structlog.get_logger("scotch.user_directory")

UserDeletedHook = Callable[[int], Awaitable[None]]


class UserDirectory:
    def __init__(
        self,
        session: AsyncSession,
        on_user_deleted: UserDeletedHook | None = None,
    ) -> None:
        self._session = session
        self._on_user_deleted = on_user_deleted

    async def find_by_id(self, user_id: int) -> User:
        user = await self._session.get(User, user_id)
        if user is None:
            raise NotFound(f"no user with id {user_id}")
        return user

    async def find_many(self, user_ids: Iterable[int]) -> list[User]:
        """Resolve ``user_ids`` in the order given.

        Ids that no longer resolve (an account deleted mid-request) are
        skipped.
        """
        ids = list(user_ids)
        if not ids:
            return []

        result = await self._session.execute(select(User).where(User.id.in_(ids)))
        by_id = {u.id: u for u in result.scalars().all()}

        users: list[User] = []
        for uid in ids:
            user = by_id.get(uid)
            if user is None:
                logger.warning("directory_user_missing", user_id=uid)
                continue
            users.append(user)
        return users

    async def create(self, payload: UserCreate) -> User:
        log = logger.bind(login=payload.login)

        existing = await self._session.execute(
            select(User.id).where(User.login == payload.login)
        )
        if existing.scalar_one_or_none() is not None:
            log.warning("create_user_duplicate_login")
            raise LoginTaken(payload.login)

        user = User(**payload.model_dump())
        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            log.warning("create_user_duplicate_login", reason="unique_violation")
            raise LoginTaken(payload.login) from exc

        await self._session.commit()
        log.info("create_user_complete", user_id=user.id)
        return user

    async def delete(self, user_id: int) -> None:
        """Delete an account, cascading through ``on_user_deleted`` first."""
        user = await self.find_by_id(user_id)

        if self._on_user_deleted is not None:
            await self._on_user_deleted(user_id)

        await self._session.delete(user)
        await self._session.commit()
        logger.info("delete_user_complete", user_id=user_id)
