"""
Scotch — Relationship Store

Durable storage for directed likes and undirected matches.  Each query is a
dedicated, typed lookup; there is no caching layer, and pair uniqueness is
left to the database constraints declared on the models:

* ``uq_like_pair``  — one like per ordered ``(user_id, liked_user)``
* ``uq_match_pair`` — one match per canonical ``(user_1, user_2)``

A unique violation on insert rolls the session back and surfaces as
``DuplicateEdge``; a foreign-key violation (unknown user) as ``NotFound``.
Connectivity failures surface as ``StoreUnavailable``.
Transaction boundaries (``commit`` / ``rollback``) are driven by the caller.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.errors import DuplicateEdge, NotFound, SelfReference, StoreUnavailable
from app.models.like import Like
from app.models.match import Match
from app.services.match_detector import canonical_pair

logger = structlog.get_logger("scotch.relationship_store")


@dataclass(frozen=True)
class MatchView:
    """A match as seen by one of its participants."""

    id: int
    user_id: int
    other_user_id: int
    created_at: datetime | None


def _translate_db_errors(func):
    """Turn driver-level failures into ``StoreUnavailable``.

    Integrity violations are left alone: the methods that can trigger them
    translate them into domain errors themselves.
    """

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except IntegrityError:
            raise
        except (DBAPIError, OSError) as exc:
            logger.error(
                "store_operation_failed",
                operation=func.__name__,
                error=str(exc),
            )
            raise StoreUnavailable() from exc

    return wrapper


# SQLSTATE codes reported by Postgres drivers
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def integrity_violation_kind(exc: IntegrityError) -> str:
    """Classify an integrity error as ``"unique"``, ``"foreign_key"`` or
    ``"other"``.

    Postgres drivers expose the SQLSTATE on the wrapped exception; SQLite
    only reports the failed constraint in its message.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == _UNIQUE_VIOLATION:
        return "unique"
    if sqlstate == _FOREIGN_KEY_VIOLATION:
        return "foreign_key"
    if sqlstate is not None:
        return "other"

    message = str(orig).upper()
    if "UNIQUE" in message:
        return "unique"
    if "FOREIGN KEY" in message:
        return "foreign_key"
    return "other"


class RelationshipStore:
    """Typed persistence operations for likes and matches."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── Transactions ─────────────────────────────────────────────────────

    @_translate_db_errors
    async def commit(self) -> None:
        await self._session.commit()

    @_translate_db_errors
    async def rollback(self) -> None:
        await self._session.rollback()

    # ── Likes ────────────────────────────────────────────────────────────

    @_translate_db_errors
    async def put_like(self, from_user: int, to_user: int) -> Like:
        """Insert the directed like ``from_user -> to_user``.

        Raises
        ------
        SelfReference
            ``from_user`` and ``to_user`` are the same user.
        DuplicateEdge
            The ordered pair already has a like (including a racing insert
            rejected by ``uq_like_pair``).
        NotFound
            Either user does not exist (foreign-key violation).
        """
        if from_user == to_user:
            raise SelfReference(from_user)

        like = Like(user_id=from_user, liked_user=to_user)
        self._session.add(like)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            kind = integrity_violation_kind(exc)
            logger.info(
                "like_insert_rejected",
                from_user=from_user,
                to_user=to_user,
                reason=kind,
            )
            if kind == "unique":
                raise DuplicateEdge("like", from_user, to_user) from exc
            if kind == "foreign_key":
                raise NotFound(f"user {from_user} or {to_user} does not exist") from exc
            raise

        return like

    @_translate_db_errors
    async def find_like(
        self, from_user: int, to_user: int, for_update: bool = False
    ) -> Like | None:
        """Look up the directed like ``from_user -> to_user``.

        With ``for_update`` the row is locked until the end of the
        transaction, and a concurrent uncommitted delete of it is waited out.
        """
        stmt = select(Like).where(
            Like.user_id == from_user,
            Like.liked_user == to_user,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @_translate_db_errors
    async def likes_from(self, user_id: int) -> list[Like]:
        """Likes the user has given, oldest first."""
        stmt = select(Like).where(Like.user_id == user_id).order_by(Like.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @_translate_db_errors
    async def likes_to(self, user_id: int) -> list[Like]:
        """Likes the user has received, oldest first."""
        stmt = select(Like).where(Like.liked_user == user_id).order_by(Like.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @_translate_db_errors
    async def delete_like(self, from_user: int, to_user: int) -> None:
        stmt = delete(Like).where(
            Like.user_id == from_user,
            Like.liked_user == to_user,
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFound(f"no like from {from_user} to {to_user}")

    @_translate_db_errors
    async def delete_likes_involving(self, user_id: int) -> int:
        """Delete every like the user gave or received."""
        stmt = delete(Like).where(
            or_(Like.user_id == user_id, Like.liked_user == user_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    @_translate_db_errors
    async def reciprocal_pairs(self) -> list[tuple[int, int]]:
        """Canonical pairs for which likes exist in both directions."""
        forward = aliased(Like)
        reverse = aliased(Like)
        stmt = (
            select(forward.user_id, forward.liked_user)
            .join(
                reverse,
                and_(
                    reverse.user_id == forward.liked_user,
                    reverse.liked_user == forward.user_id,
                ),
            )
            .where(forward.user_id < forward.liked_user)
            .order_by(forward.user_id, forward.liked_user)
        )
        result = await self._session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    # ── Matches ──────────────────────────────────────────────────────────

    @_translate_db_errors
    async def put_match(self, user_a: int, user_b: int) -> Match:
        """Insert the match for the unordered pair ``{user_a, user_b}``.

        Raises
        ------
        SelfReference
            Both ids are the same user.
        DuplicateEdge
            The pair is already matched (``uq_match_pair`` violation).
        NotFound
            Either user does not exist (foreign-key violation).
        """
        if user_a == user_b:
            raise SelfReference(user_a)

        user_1, user_2 = canonical_pair(user_a, user_b)
        match = Match(user_1=user_1, user_2=user_2)
        self._session.add(match)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            kind = integrity_violation_kind(exc)
            logger.info(
                "match_insert_rejected",
                user_1=user_1,
                user_2=user_2,
                reason=kind,
            )
            if kind == "unique":
                raise DuplicateEdge("match", user_1, user_2) from exc
            if kind == "foreign_key":
                raise NotFound(f"user {user_1} or {user_2} does not exist") from exc
            raise

        return match

    @_translate_db_errors
    async def find_match(self, user_a: int, user_b: int) -> Match | None:
        user_1, user_2 = canonical_pair(user_a, user_b)
        stmt = select(Match).where(Match.user_1 == user_1, Match.user_2 == user_2)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @_translate_db_errors
    async def delete_match(self, user_a: int, user_b: int) -> bool:
        """Delete the match for the pair, if any.  Absence is not an error."""
        user_1, user_2 = canonical_pair(user_a, user_b)
        stmt = delete(Match).where(Match.user_1 == user_1, Match.user_2 == user_2)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    @_translate_db_errors
    async def matches_for(self, user_id: int) -> list[MatchView]:
        """Matches the user takes part in, normalised so that
        ``other_user_id`` is always the partner."""
        stmt = (
            select(Match)
            .where(or_(Match.user_1 == user_id, Match.user_2 == user_id))
            .order_by(Match.id)
        )
        result = await self._session.execute(stmt)
        return [
            MatchView(
                id=m.id,
                user_id=user_id,
                other_user_id=m.other(user_id),
                created_at=m.created_at,
            )
            for m in result.scalars().all()
        ]

    @_translate_db_errors
    async def delete_matches_involving(self, user_id: int) -> int:
        stmt = delete(Match).where(
            or_(Match.user_1 == user_id, Match.user_2 == user_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    @_translate_db_errors
    async def match_pairs(self) -> list[tuple[int, int]]:
        stmt = select(Match.user_1, Match.user_2).order_by(Match.user_1, Match.user_2)
        result = await self._session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
