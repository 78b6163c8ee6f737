"""PickleballGame ORM — lobby and match state for the 2-4 device pickleball game.

Invariants:
    - status transitions: lobby -> countdown -> playing -> completed, or any -> cancelled
    - players is an ordered JSON list; index determines the court slot
    - lobby_expires_at is checked lazily on access (no timers)

Design Decisions:
    - players stored as JSON on the game row: at most 4 entries, always read whole
      (ADR: no join table for a bounded, short-lived list)
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from ganamos.db.base import Base, utcnow


class PickleballGame(Base):
    __tablename__ = "pickleball_games"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    host_device_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    host_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="lobby",
    )
    players: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    score_left: Mapped[int | None] = mapped_column(Integer, nullable=True)
    score_right: Mapped[int | None] = mapped_column(Integer, nullable=True)
    winner_side: Mapped[str | None] = mapped_column(String(5), nullable=True)
    lobby_expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
