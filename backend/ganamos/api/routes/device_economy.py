"""Device Economy — coin spending reported by pet devices.

Invariants:
    - deviceId is checked before the rate limiter; the body after it
    - /economy/sync is idempotent per (spendId, deviceId)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit
from ganamos.infrastructure.database import get_db
from ganamos.schemas.device import EconomySyncRequest, SpendCoinsRequest
from ganamos.services.coin_ledger import require_device_id, spend_coins, sync_spend

router = APIRouter(prefix="/api/device", tags=["device-economy"])


@router.post("/spend-coins")
async def spend(
    body: SpendCoinsRequest,
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    device_id = require_device_id(device_id)
    enforce_rate_limit(device_id, "DEVICE_SPEND")
    result = await spend_coins(db, device_id, body.amount, body.action)
    return {"success": True, **result}


@router.post("/economy/sync")
async def sync(
    body: EconomySyncRequest,
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    device_id = require_device_id(device_id)
    enforce_rate_limit(device_id, "DEVICE_SYNC")
    result = await sync_spend(
        db, device_id,
        spend_id=body.spend_id,
        timestamp=body.timestamp,
        amount=body.amount,
        action=body.action,
    )
    return {"success": True, **result}
