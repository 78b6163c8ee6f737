"""Domain Types — enums and constants shared across the codebase.

Invariants:
    - All valid states encoded as Enums — no raw string matching in services
    - Enum values equal the strings stored in the database

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
    - as_utc() lives here because SQLite hands back naive datetimes in tests
      while Postgres returns aware ones
"""

from datetime import datetime, timezone
from enum import Enum


# ─── Devices ─────────────────────────────────────────────────────

class PetType(str, Enum):
    """Pet species a device can display."""
    CAT = "cat"
    DOG = "dog"
    RABBIT = "rabbit"
    SQUIRREL = "squirrel"
    TURTLE = "turtle"
    OWL = "owl"


VALID_PET_TYPES = frozenset(p.value for p in PetType)


class DeviceStatus(str, Enum):
    PAIRED = "paired"
    DISCONNECTED = "disconnected"


# ─── Groups & ledger ─────────────────────────────────────────────

class MembershipStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTERNAL = "internal"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ─── Pickleball ──────────────────────────────────────────────────

class GameStatus(str, Enum):
    """Pickleball game lifecycle — maps to DB `status` column."""
    LOBBY = "lobby"
    COUNTDOWN = "countdown"
    PLAYING = "playing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_GAME_STATUSES = (
    GameStatus.LOBBY.value, GameStatus.COUNTDOWN.value, GameStatus.PLAYING.value,
)
JOINABLE_GAME_STATUSES = (GameStatus.LOBBY.value, GameStatus.COUNTDOWN.value)


class CourtSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class CourtPosition(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a DB datetime to an aware UTC datetime."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso(value: datetime | None) -> str | None:
    """ISO-8601 UTC string with a trailing Z, or None."""
    value = as_utc(value)
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
