"""Game Scores — flappy-bird score recording and leaderboards.

Invariants:
    - Scores are finite, non-negative, floored to int before storage
    - Board order: score desc, then created_at asc (earlier run wins ties)
    - yourRank = 1 + number of rows scoring above the device's personal best
    - yourEntry is present only when the device has a score but is off the board
"""

import logging
import math

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.domain_types import iso
from ganamos.core.errors import InvalidRequestError, ResourceNotFoundError
from ganamos.models import Device, GameScore
from ganamos.services.lookups import get_device

logger = logging.getLogger(__name__)

DEVICE_BOARD_SIZE = 5
PUBLIC_BOARD_SIZE = 20


def parse_score(value) -> int:
    """Coerce a posted score the way firmware sends it (number or numeric string)."""
    number = math.nan
    if isinstance(value, bool):
        number = float(value)
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = float(text) if text else 0.0
        except ValueError:
            number = math.nan
    if not math.isfinite(number) or number < 0:
        raise InvalidRequestError("Score must be a non-negative number")
    return math.floor(number)


async def _personal_best(db: AsyncSession, device_id) -> int | None:
    return await db.scalar(
        select(func.max(GameScore.score)).where(GameScore.device_id == device_id),
    )


async def _rows_above(db: AsyncSession, score: int) -> int:
    return await db.scalar(
        select(func.count()).select_from(GameScore).where(GameScore.score > score),
    ) or 0


async def build_board(
    db: AsyncSession,
    device_id=None,
    fallback_pet_name: str | None = None,
) -> dict:
    """Top-5 board plus the caller's personal best and rank."""
    result = await db.execute(
        select(GameScore.id, GameScore.score, GameScore.device_id, Device.pet_name)
        .join(Device, Device.id == GameScore.device_id)
        .order_by(GameScore.score.desc(), GameScore.created_at.asc())
        .limit(DEVICE_BOARD_SIZE),
    )
    rows = result.all()
    leaderboard = [
        {
            "rank": index + 1,
            "petName": pet_name if pet_name is not None else "Pet",
            "score": score,
            "isYou": device_id is not None and row_device_id == device_id,
            "entryId": entry_id,
        }
        for index, (entry_id, score, row_device_id, pet_name) in enumerate(rows)
    ]

    personal_best = your_rank = your_entry = None
    if device_id is not None:
        personal_best = await _personal_best(db, device_id)
        if personal_best is not None:
            your_rank = await _rows_above(db, personal_best) + 1
            if not any(entry["isYou"] for entry in leaderboard):
                your_entry = {
                    "rank": your_rank,
                    "petName": (
                        fallback_pet_name if fallback_pet_name is not None else "You"
                    ),
                    "score": personal_best,
                }

    return {
        "leaderboard": leaderboard,
        "personalBest": personal_best,
        "yourRank": your_rank,
        "yourEntry": your_entry,
    }


def public_board(board: dict) -> list[dict]:
    return [
        {k: entry[k] for k in ("rank", "petName", "score", "isYou")}
        for entry in board["leaderboard"]
    ]


async def record_score(db: AsyncSession, device_id: str, raw_score) -> dict:
    score = parse_score(raw_score)
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found or not paired")

    previous_best = await _personal_best(db, device.id)
    is_personal_best = previous_best is None or score > previous_best

    entry = GameScore(device_id=device.id, user_id=device.user_id, score=score)
    db.add(entry)
    await db.commit()
    logger.info(f"Recorded score {score}", extra={"device_id": device.id})

    board = await build_board(db, device.id, device.pet_name)
    is_new_high_score = any(e["entryId"] == entry.id for e in board["leaderboard"])
    current_rank = await _rows_above(db, score) + 1

    return {
        "isPersonalBest": is_personal_best,
        "isNewHighScore": is_new_high_score,
        "personalBest": (
            board["personalBest"] if board["personalBest"] is not None else score
        ),
        "yourRank": board["yourRank"],
        "currentScoreRank": current_rank,
        "leaderboard": public_board(board),
        "yourEntry": board["yourEntry"],
    }


async def device_board(db: AsyncSession, device_id: str | None) -> dict:
    device = None
    if device_id:
        device = await get_device(db, device_id, paired_only=True)
    board = await build_board(
        db,
        device.id if device else None,
        device.pet_name if device else None,
    )
    return {
        "personalBest": board["personalBest"],
        "yourRank": board["yourRank"],
        "leaderboard": public_board(board),
        "yourEntry": board["yourEntry"],
    }


async def global_leaderboard(db: AsyncSession) -> dict:
    result = await db.execute(
        select(GameScore.score, GameScore.created_at, Device.pet_name)
        .outerjoin(Device, Device.id == GameScore.device_id)
        .order_by(GameScore.score.desc(), GameScore.created_at.asc())
        .limit(PUBLIC_BOARD_SIZE),
    )
    leaderboard = [
        {
            "rank": index + 1,
            "petName": pet_name or "Anonymous Pet",
            "score": score,
            "createdAt": iso(created_at),
        }
        for index, (score, created_at, pet_name) in enumerate(result.all())
    ]
    total = await db.scalar(select(func.count()).select_from(GameScore))
    return {"leaderboard": leaderboard, "totalEntries": total or 0}
