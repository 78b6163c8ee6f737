"""Device Registry — pairing pet devices to accounts and editing pet settings.

Invariants:
    - A pairing code belongs to at most one user (409 otherwise)
    - A user keeps a single device row; pairing a new code re-points it
    - Acting for another user requires a connected_accounts link (403 otherwise)
    - pet_type always in VALID_PET_TYPES

Design Decisions:
    - Re-pairing reuses the existing row so coins and game history stay attached
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.domain_types import VALID_PET_TYPES, DeviceStatus
from ganamos.core.errors import (
    ConflictError, InvalidRequestError, PermissionDeniedError, ResourceNotFoundError,
)
from ganamos.models import Device
from ganamos.services.lookups import is_connected_account, parse_uuid

logger = logging.getLogger(__name__)


def validate_pet_type(pet_type: str | None) -> str:
    if pet_type not in VALID_PET_TYPES:
        raise InvalidRequestError("Invalid pet type")
    return pet_type


async def resolve_acting_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    target_user_id: str | None,
    denied_message: str,
) -> uuid.UUID:
    """Return the user the caller acts for, enforcing the connected-account link."""
    if not target_user_id or parse_uuid(target_user_id) == user_id:
        return user_id
    if not await is_connected_account(db, user_id, target_user_id):
        raise PermissionDeniedError(denied_message)
    return parse_uuid(target_user_id)


async def register_device(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    device_code: str | None,
    pet_name: str | None,
    pet_type: str | None,
    target_user_id: str | None = None,
) -> tuple[Device, str]:
    """Pair a device code with the acting user. Returns (device, message)."""
    if not device_code or not pet_name or not pet_type:
        raise InvalidRequestError("Missing required fields")
    owner_id = await resolve_acting_user(
        db, user_id, target_user_id,
        "You are not authorized to connect a device for this account.",
    )
    validate_pet_type(pet_type)
    code = device_code.upper()

    result = await db.execute(select(Device).where(Device.pairing_code == code))
    existing = result.scalar_one_or_none()

    if existing is not None and existing.user_id != owner_id:
        raise ConflictError(
            f"This device ({existing.pet_name}) is already connected to another "
            "user. Each pet can only be connected to one account.",
        )

    if existing is not None:
        existing.pet_name = pet_name
        existing.pet_type = pet_type
        existing.status = DeviceStatus.PAIRED.value
        await db.commit()
        logger.info("Device reconnected", extra={"device_id": existing.id})
        return existing, f"{pet_name} has been reconnected!"

    result = await db.execute(
        select(Device).where(Device.user_id == owner_id).limit(1),
    )
    device = result.scalar_one_or_none()
    if device is not None:
        device.pairing_code = code
        device.pet_name = pet_name
        device.pet_type = pet_type
        device.status = DeviceStatus.PAIRED.value
    else:
        device = Device(
            user_id=owner_id,
            pairing_code=code,
            pet_name=pet_name,
            pet_type=pet_type,
            status=DeviceStatus.PAIRED.value,
        )
        db.add(device)
    await db.commit()
    await db.refresh(device)
    logger.info(
        "Device paired", extra={"device_id": device.id, "user_id": owner_id},
    )
    return device, f"{pet_name} has been connected successfully!"


async def update_device(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    device_id: str | None,
    pet_name: str | None,
    pet_type: str | None,
    active_user_id: str | None = None,
) -> Device:
    if not device_id or not pet_name or not pet_type:
        raise InvalidRequestError("Missing required fields")
    validate_pet_type(pet_type)
    owner_id = await resolve_acting_user(
        db, user_id, active_user_id,
        "Unauthorized to modify this account's devices",
    )

    device_uuid = parse_uuid(device_id)
    device = None
    if device_uuid is not None:
        result = await db.execute(
            select(Device).where(
                Device.id == device_uuid, Device.user_id == owner_id,
            ),
        )
        device = result.scalar_one_or_none()
    if device is None:
        raise ResourceNotFoundError(
            "Device not found or you don't have permission",
        )
    device.pet_name = pet_name
    device.pet_type = pet_type
    await db.commit()
    await db.refresh(device)
    return device


def serialize_device(device: Device) -> dict:
    return {
        "id": str(device.id),
        "userId": str(device.user_id),
        "pairingCode": device.pairing_code,
        "petName": device.pet_name,
        "petType": device.pet_type,
        "status": device.status,
        "coins": device.coins,
    }
