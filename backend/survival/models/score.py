"""Score record model - the append-only ledger of a player's transitions."""

from datetime import datetime

from sqlalchemy import String, Integer, Float, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from survival.db.database import Base


class ScoreRecord(Base):
    """One traversal of one choice by one player.

    Only ``complete`` ever changes after insert: it flips to True once the
    player has chosen onward from this record's destination.
    """
    __tablename__ = "score_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    story_id: Mapped[int] = mapped_column(ForeignKey("stories.id", ondelete="CASCADE"))
    email: Mapped[str] = mapped_column(String(320), index=True)

    # Destination of the transition
    decision_id: Mapped[str] = mapped_column(String(100))
    decision_ref: Mapped[int] = mapped_column(Integer)  # decisions.id, not enforced
    decision_number: Mapped[int] = mapped_column(Integer, default=0)
    # Source of the transition; not unique per player at the storage layer
    previous_decision: Mapped[str] = mapped_column(String(100), index=True)

    morale_before: Mapped[float] = mapped_column(Float)
    condition_before: Mapped[float] = mapped_column(Float)
    resources_before: Mapped[int] = mapped_column(Integer)
    morale_after: Mapped[float] = mapped_column(Float)
    condition_after: Mapped[float] = mapped_column(Float)
    resources_after: Mapped[int] = mapped_column(Integer)

    complete: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
