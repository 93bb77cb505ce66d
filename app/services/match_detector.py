"""
Scotch — Match Detector

Pure decision logic for the like/match lifecycle.  Nothing here touches the
database; the relationship service feeds in what it observed and acts on the
returned decision.

Pair lifecycle (per unordered pair {A, B})::

    NO_RELATION --like--> ONE_SIDED --reverse like--> MATCHED
    MATCHED --either unlike--> ONE_SIDED (the surviving direction)
    ONE_SIDED --unlike--> NO_RELATION

A match exists exactly when both directed likes exist.  The like that
completes the pair (the second one to arrive) is the one that creates the
match; the first never does by itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PairState(str, Enum):
    NO_RELATION = "no_relation"
    ONE_SIDED = "one_sided"
    MATCHED = "matched"


@dataclass(frozen=True)
class LikeDecision:
    create_match: bool


@dataclass(frozen=True)
class UnlikeDecision:
    remove_match: bool


def canonical_pair(user_a: int, user_b: int) -> tuple[int, int]:
    """Order an unordered pair so the lower id comes first."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def evaluate_on_like_created(
    from_user: int,
    to_user: int,
    reverse_edge_exists: bool,
) -> LikeDecision:
    """Decide whether the like ``from_user -> to_user`` completes a match.

    ``reverse_edge_exists`` must describe the ``to_user -> from_user`` like as
    it stood when this like was inserted.
    """
    return LikeDecision(create_match=bool(reverse_edge_exists))


def evaluate_on_like_removed(from_user: int, to_user: int) -> UnlikeDecision:
    # Either direction disappearing breaks reciprocity, whatever the history.
    return UnlikeDecision(remove_match=True)


def pair_state(a_likes_b: bool, b_likes_a: bool) -> PairState:
    if a_likes_b and b_likes_a:
        return PairState.MATCHED
    if a_likes_b or b_likes_a:
        return PairState.ONE_SIDED
    return PairState.NO_RELATION
