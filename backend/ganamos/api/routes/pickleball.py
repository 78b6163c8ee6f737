"""Pickleball Lobby — multi-device pickleball games coordinated over ESP-NOW.

Invariants:
    - Body validation happens before rate limiting; every limiter key is
      namespaced by route ("pickleball-create-{deviceId}", ...)
    - Only the host device may change status or report the result
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit
from ganamos.core.errors import InvalidRequestError
from ganamos.infrastructure.database import get_db
from ganamos.schemas.game import (
    PickleballCompleteRequest,
    PickleballCreateRequest,
    PickleballJoinRequest,
    PickleballStateRequest,
)
from ganamos.services.pickleball import (
    apply_host_action, complete_game, create_game, game_state, join_game,
)

router = APIRouter(prefix="/api/game/pickleball", tags=["pickleball"])

WINNER_SIDES = ("left", "right")


@router.post("/create")
async def create(body: PickleballCreateRequest, db: AsyncSession = Depends(get_db)):
    if not body.device_id:
        raise InvalidRequestError("Device ID required")
    if not body.mac_address:
        raise InvalidRequestError("MAC address required for ESP-NOW")
    enforce_rate_limit(f"pickleball-create-{body.device_id}", "PICKLEBALL_CREATE")
    result = await create_game(db, body.device_id, body.mac_address)
    return {"success": True, **result}


@router.post("/join")
async def join(body: PickleballJoinRequest, db: AsyncSession = Depends(get_db)):
    if not (body.device_id and body.game_id and body.mac_address):
        raise InvalidRequestError("deviceId, gameId, and macAddress required")
    enforce_rate_limit(f"pickleball-join-{body.device_id}", "PICKLEBALL_JOIN")
    result = await join_game(db, body.device_id, body.game_id, body.mac_address)
    return {"success": True, **result}


@router.get("/state")
async def get_state(
    game_id: str | None = Query(None, alias="gameId"),
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    if not game_id:
        raise InvalidRequestError("gameId required")
    if device_id:
        enforce_rate_limit(f"pickleball-state-{device_id}", "PICKLEBALL_STATE")
    result = await game_state(db, game_id)
    return {"success": True, **result}


@router.post("/state")
async def update_state(body: PickleballStateRequest, db: AsyncSession = Depends(get_db)):
    if not (body.game_id and body.device_id and body.action):
        raise InvalidRequestError("gameId, deviceId, and action required")
    status = await apply_host_action(db, body.game_id, body.device_id, body.action)
    return {"success": True, "status": status}


@router.post("/complete")
async def complete(body: PickleballCompleteRequest, db: AsyncSession = Depends(get_db)):
    if not (body.game_id and body.device_id):
        raise InvalidRequestError("gameId and deviceId required")
    if body.winner_side not in WINNER_SIDES:
        raise InvalidRequestError("winnerSide must be 'left' or 'right'")
    enforce_rate_limit(f"pickleball-complete-{body.device_id}", "PICKLEBALL_COMPLETE")
    result = await complete_game(
        db, body.game_id, body.device_id,
        score_left=body.score_left,
        score_right=body.score_right,
        winner_side=body.winner_side,
    )
    return {"success": True, **result}
