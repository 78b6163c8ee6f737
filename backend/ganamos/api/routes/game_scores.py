"""Game Scores — flappy-bird score posting, device boards, and the public leaderboard."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit
from ganamos.infrastructure.database import get_db
from ganamos.schemas.device import GameScoreRequest
from ganamos.services.coin_ledger import require_device_id
from ganamos.services.game_scores import device_board, global_leaderboard, record_score

router = APIRouter(prefix="/api/device", tags=["game-scores"])
leaderboard_router = APIRouter(prefix="/api", tags=["game-scores"])


@router.post("/game-score")
async def post_score(
    body: GameScoreRequest,
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    device_id = require_device_id(device_id)
    enforce_rate_limit(device_id, "GAME_SCORE")
    result = await record_score(db, device_id, body.score)
    return {"success": True, **result}


@router.get("/game-score")
async def get_scores(
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    board = await device_board(db, device_id)
    return {"success": True, **board}


@leaderboard_router.get("/leaderboard")
async def leaderboard(db: AsyncSession = Depends(get_db)):
    board = await global_leaderboard(db)
    return {"success": True, **board}
