"""
Scotch — Error hierarchy

Every failure the relationship core can report is a ``RelationshipError``
carrying a stable ``code`` and the HTTP status the API layer maps it to.
The global exception handlers render each one as ``{"error": message}``.
"""

from __future__ import annotations


class RelationshipError(Exception):
    """Base exception for all relationship-core failures."""

    code: str = "relationship_error"
    http_status: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": self.message}


class SelfReference(RelationshipError):
    """A like (or match) names the same user on both ends."""

    code = "self_reference"
    http_status = 422

    def __init__(self, user_id: int) -> None:
        super().__init__("user_id cannot equal liked_user")
        self.user_id = user_id


class DuplicateEdge(RelationshipError):
    """A like for the ordered pair, or a match for the unordered pair,
    already exists."""

    code = "duplicate_edge"
    http_status = 409

    def __init__(self, kind: str, user_a: int, user_b: int) -> None:
        super().__init__(f"{kind} between {user_a} and {user_b} already exists")
        self.kind = kind
        self.user_a = user_a
        self.user_b = user_b


class NotFound(RelationshipError):
    code = "not_found"
    http_status = 404


class Unauthenticated(RelationshipError):
    code = "unauthenticated"
    http_status = 401

    def __init__(self, message: str = "you are not authenticated") -> None:
        super().__init__(message)


class StoreUnavailable(RelationshipError):
    """The backing database could not be reached or failed mid-operation."""

    code = "store_unavailable"
    http_status = 503

    def __init__(self, message: str = "relationship store is unavailable") -> None:
        super().__init__(message)


class LoginTaken(RelationshipError):
    code = "login_taken"
    http_status = 409

    def __init__(self, login: str) -> None:
        super().__init__(f"login {login!r} is already taken")
        self.login = login
