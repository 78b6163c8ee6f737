"""Device Pairing — connect a pet device to an account and edit its settings.

Invariants:
    - Both routes require a web session (401 otherwise)
    - Acting for another account requires a connected_accounts link
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import get_current_user_id
from ganamos.infrastructure.database import get_db
from ganamos.schemas.device import DeviceRegisterRequest, DeviceUpdateRequest
from ganamos.services.device_registry import (
    register_device, serialize_device, update_device,
)

router = APIRouter(prefix="/api/device", tags=["device"])


@router.post("/register")
async def register(
    body: DeviceRegisterRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    device, message = await register_device(
        db, user_id,
        device_code=body.device_code,
        pet_name=body.pet_name,
        pet_type=body.pet_type,
        target_user_id=body.target_user_id,
    )
    return {"success": True, "message": message, "deviceId": str(device.id)}


@router.post("/update")
async def update(
    body: DeviceUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    device = await update_device(
        db, user_id,
        device_id=body.device_id,
        pet_name=body.pet_name,
        pet_type=body.pet_type,
        active_user_id=body.active_user_id,
    )
    return {
        "success": True,
        "device": serialize_device(device),
        "message": "Pet settings updated successfully",
    }
