"""Profile ORM — a Ganamos user with sats balance and pet coins.

Invariants:
    - id matches the identity provider's user id
    - balance is in sats; pet_coins is the separate pet-economy currency
    - pet_coins never goes negative (spend paths clamp at zero)
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from ganamos.db.base import Base, utcnow


class Profile(Base):
    """User profile — owns devices, posts, and transactions."""
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    username: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )
    avatar_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pet_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
