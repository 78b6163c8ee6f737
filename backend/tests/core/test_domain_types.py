"""Domain Types — enum values and datetime normalization helpers."""

from datetime import datetime, timedelta, timezone

from ganamos.core.domain_types import (
    ACTIVE_GAME_STATUSES,
    JOINABLE_GAME_STATUSES,
    VALID_PET_TYPES,
    GameStatus,
    PetType,
    as_utc,
    iso,
)


def test_pet_types():
    assert VALID_PET_TYPES == {
        "cat", "dog", "rabbit", "squirrel", "turtle", "owl",
    }
    assert PetType("owl") is PetType.OWL


def test_game_status_groups():
    assert GameStatus.COMPLETED.value not in ACTIVE_GAME_STATUSES
    assert GameStatus.PLAYING.value in ACTIVE_GAME_STATUSES
    assert GameStatus.PLAYING.value not in JOINABLE_GAME_STATUSES


def test_as_utc_attaches_utc_to_naive():
    naive = datetime(2026, 1, 1, 8, 30)
    assert as_utc(naive).tzinfo is timezone.utc
    assert as_utc(None) is None


def test_as_utc_converts_other_offsets():
    plus_two = datetime(2026, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two).hour == 8


def test_iso_uses_z_suffix():
    assert iso(datetime(2026, 1, 1, 8, 30, tzinfo=timezone.utc)) == "2026-01-01T08:30:00Z"
    assert iso(None) is None
