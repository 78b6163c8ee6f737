"""BitcoinPrice ORM — periodically recorded BTC spot prices per fiat currency."""

import uuid
from datetime import datetime

from sqlalchemy import String, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from ganamos.db.base import Base, utcnow


class BitcoinPrice(Base):
    __tablename__ = "bitcoin_prices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    price: Mapped[float] = mapped_column(
        Numeric(18, 2, asdecimal=False), nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD",
    )
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True,
    )
