"""
Scotch — Relationship Service

Orchestrates the relationship store and the match detector for every like,
unlike and account deletion.

Consistency contract:
  * A like is committed before its reciprocity check, so of two users liking
    each other at the same instant at least the later check observes the
    other like.  Both may then try to insert the match; ``uq_match_pair``
    lets exactly one through and the loser treats the rejection as
    "already matched".
  * The reciprocity check locks the reverse like (``SELECT ... FOR UPDATE``),
    so a like racing an unlike of the same pair waits for the unlike to
    commit instead of matching against a like that is being deleted.
  * A failed match write never rolls back the like that triggered it.  The
    pair is left one-sided until the next unlike/relike or a ``repair()``.
  * Unlike removes the like and the pair's match in one transaction.
  * Account deletion removes matches before likes so no match ever outlives
    a supporting like.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from app.errors import DuplicateEdge, NotFound, RelationshipError, SelfReference
from app.models.like import Like
from app.models.match import Match
from app.services.match_detector import (
    PairState,
    evaluate_on_like_created,
    evaluate_on_like_removed,
    pair_state,
)
from app.services.relationship_store import RelationshipStore

logger = structlog.get_logger("scotch.relationship_service")


@dataclass(frozen=True)
class LikeResult:
    like: Like
    matched: bool
    match: Match | None = None


@dataclass(frozen=True)
class ConsistencyReport:
    """Pairs whose match row disagrees with their likes."""

    missing_matches: list[tuple[int, int]]
    orphan_matches: list[tuple[int, int]]

    @property
    def is_consistent(self) -> bool:
        return not self.missing_matches and not self.orphan_matches


@dataclass(frozen=True)
class RepairResult:
    report: ConsistencyReport
    matches_created: int
    matches_deleted: int


class RelationshipService:
    """Like / unlike / match lifecycle over a single request's session."""

    def __init__(self, store: RelationshipStore) -> None:
        self.store = store

    # ── Mutations ────────────────────────────────────────────────────────

    async def like(self, requester_id: int, target_id: int) -> LikeResult:
        """Record ``requester_id``'s interest in ``target_id``.

        Returns the created like and whether it completed a match.

        Raises
        ------
        SelfReference
            The requester targets themself.
        DuplicateEdge
            The requester already likes the target.
        NotFound
            Either user does not exist, or the requester's like was retracted
            while its match was being written.
        StoreUnavailable
            The database failed.  If this happens while writing the match
            the like itself stays committed.
        """
        log = logger.bind(requester_id=requester_id, target_id=target_id)

        if requester_id == target_id:
            log.warning("like_rejected", reason="self_reference")
            raise SelfReference(requester_id)

        if await self.store.find_like(requester_id, target_id) is not None:
            log.warning("like_rejected", reason="duplicate_like")
            raise DuplicateEdge("like", requester_id, target_id)

        like = await self.store.put_like(requester_id, target_id)
        await self.store.commit()

        # Locks the reverse like so a concurrent unlike of it is waited out
        # rather than read as still present.
        reverse = await self.store.find_like(
            target_id, requester_id, for_update=True
        )
        decision = evaluate_on_like_created(
            requester_id, target_id, reverse_edge_exists=reverse is not None
        )

        if not decision.create_match:
            await self.store.commit()
            log.info(
                "like_created",
                like_id=like.id,
                matched=False,
                state=PairState.ONE_SIDED.value,
            )
            return LikeResult(like=like, matched=False)

        try:
            match = await self.store.put_match(requester_id, target_id)
            await self.store.commit()
        except DuplicateEdge:
            # The reverse like's request won the insert race.  The rollback
            # expired the committed like, so reload it with the match.
            like = await self.store.find_like(requester_id, target_id)
            match = await self.store.find_match(requester_id, target_id)
            log.info("match_already_created", match_id=match.id if match else None)
            if like is None:
                log.warning("like_removed_during_match", reason="concurrent_unlike")
                raise NotFound(f"no like from {requester_id} to {target_id}")

        matched = match is not None
        log.info(
            "like_created",
            like_id=like.id,
            matched=matched,
            match_id=match.id if match else None,
            state=pair_state(True, matched).value,
        )
        return LikeResult(like=like, matched=matched, match=match)

    async def unlike(self, requester_id: int, target_id: int) -> None:
        """Retract ``requester_id``'s like of ``target_id`` and break the
        pair's match, whichever side of the stored match the requester is on.

        Raises
        ------
        NotFound
            No such like exists.
        """
        log = logger.bind(requester_id=requester_id, target_id=target_id)

        try:
            await self.store.delete_like(requester_id, target_id)
            decision = evaluate_on_like_removed(requester_id, target_id)
            match_removed = False
            if decision.remove_match:
                match_removed = await self.store.delete_match(requester_id, target_id)
            await self.store.commit()
        except RelationshipError as exc:
            await self.store.rollback()
            log.warning("unlike_failed", error=exc.code)
            raise

        reverse = await self.store.find_like(target_id, requester_id)
        log.info(
            "like_removed",
            match_removed=match_removed,
            state=pair_state(False, reverse is not None).value,
        )

    async def delete_user(self, user_id: int) -> None:
        """Cascade an account deletion through the relationship graph.

        Matches go first, then likes in both directions.
        """
        log = logger.bind(user_id=user_id)

        try:
            matches_removed = await self.store.delete_matches_involving(user_id)
            likes_removed = await self.store.delete_likes_involving(user_id)
            await self.store.commit()
        except RelationshipError:
            await self.store.rollback()
            log.error("relationship_cascade_failed")
            raise

        log.info(
            "relationship_cascade_complete",
            matches_removed=matches_removed,
            likes_removed=likes_removed,
        )

    # ── Listings ─────────────────────────────────────────────────────────

    async def list_liked(self, user_id: int) -> list[int]:
        """Users ``user_id`` has liked."""
        return [like.liked_user for like in await self.store.likes_from(user_id)]

    async def list_liked_by(self, user_id: int) -> list[int]:
        """Users who have liked ``user_id``."""
        return [like.user_id for like in await self.store.likes_to(user_id)]

    async def list_matches(self, user_id: int) -> list[int]:
        return [m.other_user_id for m in await self.store.matches_for(user_id)]

    # ── Consistency audit ────────────────────────────────────────────────

    async def audit(self) -> ConsistencyReport:
        """Compare reciprocal like pairs with stored matches."""
        reciprocal = set(await self.store.reciprocal_pairs())
        matched = set(await self.store.match_pairs())

        report = ConsistencyReport(
            missing_matches=sorted(reciprocal - matched),
            orphan_matches=sorted(matched - reciprocal),
        )
        logger.info(
            "consistency_audit",
            missing=len(report.missing_matches),
            orphans=len(report.orphan_matches),
        )
        return report

    async def repair(self) -> RepairResult:
        """Create missing matches and drop orphaned ones.

        Returns the audit that drove the repair and how many rows actually
        changed; a pair fixed concurrently by a request is not counted.
        """
        report = await self.audit()

        deleted = 0
        for user_1, user_2 in report.orphan_matches:
            if await self.store.delete_match(user_1, user_2):
                deleted += 1
        await self.store.commit()

        created = 0
        for user_1, user_2 in report.missing_matches:
            try:
                await self.store.put_match(user_1, user_2)
                await self.store.commit()
            except DuplicateEdge:
                logger.info("repair_match_already_created", user_1=user_1, user_2=user_2)
                continue
            created += 1

        logger.info(
            "consistency_repair_complete",
            created=created,
            deleted=deleted,
        )
        return RepairResult(report=report, matches_created=created, matches_deleted=deleted)
