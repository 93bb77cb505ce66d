"""
Scotch — Match model.

A match is undirected.  Rows are stored in canonical order
(``user_1 < user_2``) so the unique constraint covers the unordered pair.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_1", "user_2", name="uq_match_pair"),
        CheckConstraint("user_1 < user_2", name="ck_match_canonical_order"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_1: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_2: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def other(self, user_id: int) -> int:
        """Return the participant that is not ``user_id``."""
        return self.user_2 if self.user_1 == user_id else self.user_1

    def __repr__(self) -> str:
        return f"<Match {self.user_1} <-> {self.user_2}>"
