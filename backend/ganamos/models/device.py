"""Device ORM — a physical pet companion paired to a user by pairing code.

Invariants:
    - pairing_code is unique and stored upper-case
    - status is one of: paired, disconnected
    - coins mirrors the firmware's local coin counter (never negative)
    - last_rejection_id/rejection_message are set by the fix-review flow

Design Decisions:
    - last_seen_at doubles as the "last sync" watermark for earnings
    - last_jobs_seen_at watermarks new-job notifications independently
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from ganamos.db.base import Base, utcnow


class Device(Base):
    """Pet device — belongs to exactly one profile."""
    __tablename__ = "devices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    pairing_code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True,
    )
    pet_name: Mapped[str] = mapped_column(String(100), nullable=False)
    pet_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="paired",
    )
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mac_address: Mapped[str | None] = mapped_column(String(17), nullable=True)
    last_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_jobs_seen_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_rejection_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    rejection_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
