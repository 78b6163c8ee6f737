"""Device Config — the poll endpoint every pet device hits on its interval.

Invariants:
    - Responses are never cached (no-store plus Pragma/Expires headers)
    - Rate limited per device id (or pairing code when no id is sent)
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit
from ganamos.config import Settings, get_settings
from ganamos.core.errors import InvalidRequestError
from ganamos.infrastructure.database import get_db
from ganamos.services.device_config import build_device_config

router = APIRouter(prefix="/api/device", tags=["device"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/config")
async def device_config(
    device_id: str | None = Query(None, alias="deviceId"),
    pairing_code: str | None = Query(None, alias="pairingCode"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    identifier = device_id or pairing_code
    if not identifier:
        raise InvalidRequestError("Device ID or pairing code required")
    enforce_rate_limit(identifier, "DEVICE_CONFIG")
    config = await build_device_config(
        db, settings, device_id=device_id, pairing_code=pairing_code,
    )
    return JSONResponse(
        content={"success": True, "config": config}, headers=NO_CACHE_HEADERS,
    )
