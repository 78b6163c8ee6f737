"""Wallet — sats transfers between users and connected child accounts.

Invariants:
    - Both routes require a web session
    - Transfers pass a per-minute and an hourly window keyed by the caller
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit, get_current_user_id
from ganamos.config import Settings, get_settings
from ganamos.infrastructure.database import get_db
from ganamos.schemas.wallet import ChildAccountRequest, TransferRequest
from ganamos.services.wallet import create_child_account, transfer_sats

router = APIRouter(prefix="/api", tags=["wallet"])


@router.post("/wallet/transfer")
async def transfer(
    body: TransferRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    enforce_rate_limit(
        f"transfer:{user_id}", "WALLET_TRANSFER",
        "Too many transfer attempts. Please wait before trying again.",
    )
    enforce_rate_limit(
        f"transfer-hourly:{user_id}", "WALLET_TRANSFER_HOURLY",
        "Hourly transfer limit reached. Please try again later.",
    )
    result = await transfer_sats(
        db, settings, user_id,
        to_username=body.to_username,
        amount=body.amount,
        from_user_id=body.from_user_id,
        memo=body.memo,
    )
    return {"success": True, **result}


@router.post("/child-account")
async def child_account(
    body: ChildAccountRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    profile = await create_child_account(
        db, settings, user_id, body.username, body.avatar_url,
    )
    return {
        "success": True,
        "message": "Child account created successfully",
        "profile": profile,
    }
