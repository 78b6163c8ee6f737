"""Coin Ledger — pet-coin spending and idempotent economy sync for devices.

Invariants:
    - pet_coins never goes below zero
    - A (spend_id, device_id) pair deducts at most once, even under concurrent replays
    - The idempotency key and the deduction commit in the same transaction
    - device.coins is decremented only when the spend was newly applied

Design Decisions:
    - Idempotency rests on the pending_spends unique constraint, not on a prior
      SELECT alone: a racing duplicate fails the INSERT (inside a savepoint) and
      is reported as a replay
    - Deduction is a single UPDATE with a clamped expression so concurrent
      spends cannot read-modify-write over each other
"""

import logging
import time
from dataclasses import dataclass

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.errors import (
    InsufficientFundsError, InvalidRequestError, ResourceNotFoundError,
)
from ganamos.infrastructure.database import insert_unless_exists
from ganamos.models import Device, PendingSpend, Profile
from ganamos.services.lookups import get_device, get_profile

logger = logging.getLogger(__name__)

MAX_SYNC_SPEND = 10_000


@dataclass(frozen=True)
class SpendResult:
    already_processed: bool
    new_balance: int


def _clamped_subtract(column, amount: int):
    return case((column - amount < 0, 0), else_=column - amount)


async def _paired_device_or_404(db: AsyncSession, device_id: str) -> Device:
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found or not paired")
    return device


def _whole_coins(amount) -> int | None:
    """Positive integral amount as int, else None (0.5 must not become 0)."""
    if amount is None or isinstance(amount, bool):
        return None
    if amount <= 0 or amount != int(amount):
        return None
    return int(amount)


async def spend_coins(
    db: AsyncSession, device_id: str, amount: float | None, action: str | None,
) -> dict:
    """Direct spend from the device (feeding, games). Rejects overdrafts."""
    amount = _whole_coins(amount)
    if amount is None:
        raise InvalidRequestError("Valid amount required")
    device = await _paired_device_or_404(db, device_id)
    profile = await get_profile(db, device.user_id)
    if profile is None:
        raise ResourceNotFoundError("User profile not found")

    current = profile.pet_coins or 0
    if current < amount:
        raise InsufficientFundsError(
            "Insufficient coins", currentCoins=current, required=amount,
        )

    await db.execute(
        update(Profile)
        .where(Profile.id == profile.id)
        .values(pet_coins=_clamped_subtract(Profile.pet_coins, amount)),
    )
    device.coins = max(0, (device.coins or 0) - amount)
    await db.commit()
    await db.refresh(profile)
    logger.info(
        f"Device spent {amount} coins on {action}",
        extra={"device_id": device.id, "user_id": profile.id},
    )
    return {
        "coinsSpent": amount,
        "newCoinBalance": profile.pet_coins,
        "action": action,
    }


async def spend_recorded(db: AsyncSession, spend_id: str, device_id) -> bool:
    result = await db.execute(
        select(PendingSpend.id).where(
            PendingSpend.spend_id == spend_id,
            PendingSpend.device_id == device_id,
        ),
    )
    return result.first() is not None


async def apply_spend(
    db: AsyncSession,
    *,
    spend_id: str,
    device: Device,
    amount: int,
    action: str,
    device_timestamp: int | None = None,
) -> SpendResult:
    """Atomically record a spend key and deduct pet coins (clamped at zero)."""
    device_id, user_id = device.id, device.user_id
    already_processed = await spend_recorded(db, spend_id, device_id)

    if not already_processed:
        # A concurrent replay can still win the insert after the SELECT
        already_processed = not await insert_unless_exists(db, PendingSpend(
            spend_id=spend_id,
            device_id=device_id,
            user_id=user_id,
            amount=amount,
            action=action,
            device_timestamp=device_timestamp,
        ))

    if not already_processed:
        await db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(pet_coins=_clamped_subtract(Profile.pet_coins, amount)),
        )
        device.coins = max(0, (device.coins or 0) - amount)
    await db.commit()

    balance = await db.scalar(
        select(Profile.pet_coins).where(Profile.id == user_id),
    )
    return SpendResult(
        already_processed=already_processed, new_balance=balance or 0,
    )


async def sync_spend(
    db: AsyncSession,
    device_id: str,
    *,
    spend_id: str | None,
    timestamp: int | None,
    amount: float | None,
    action: str | None,
) -> dict:
    """Reconcile an offline spend reported by device firmware.

    A zero amount counts as missing; a missing timestamp defaults to now (ms).
    """
    if not spend_id or not amount or not action:
        raise InvalidRequestError("Missing required fields")
    device = await _paired_device_or_404(db, device_id)
    if amount < 0 or amount > MAX_SYNC_SPEND or amount != int(amount):
        raise InvalidRequestError("Invalid spend amount")
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    device_uuid = device.id
    result = await apply_spend(
        db,
        spend_id=spend_id,
        device=device,
        amount=int(amount),
        action=action,
        device_timestamp=timestamp,
    )
    if result.already_processed:
        logger.info(
            f"Spend {spend_id} already processed",
            extra={"device_id": device_uuid, "spend_id": spend_id},
        )
    payload = {"newCoinBalance": result.new_balance, "spendId": spend_id}
    if result.already_processed:
        payload["alreadyProcessed"] = True
    return payload


def require_device_id(device_id: str | None) -> str:
    if not device_id:
        raise InvalidRequestError("Device ID required")
    return device_id

