"""PendingSpend ORM — idempotency keys for device coin spends.

Invariants:
    - (spend_id, device_id) is unique: a replayed spend can never deduct twice
    - Rows are written in the same transaction as the pet_coins deduction
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from ganamos.db.base import Base, utcnow


class PendingSpend(Base):
    __tablename__ = "pending_spends"
    __table_args__ = (
        UniqueConstraint("spend_id", "device_id", name="uq_pending_spend"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    spend_id: Mapped[str] = mapped_column(String(100), nullable=False)
    device_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    device_timestamp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
