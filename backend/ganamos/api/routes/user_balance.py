"""User Balance — the signed-in user's sats and pet-coin balances."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import get_current_user_id
from ganamos.core.errors import ResourceNotFoundError
from ganamos.infrastructure.database import get_db
from ganamos.services.lookups import get_profile

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/balance")
async def user_balance(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_profile(db, user_id)
    if profile is None:
        raise ResourceNotFoundError("User profile not found")
    return {
        "success": True,
        "balance": profile.balance,
        "petCoins": profile.pet_coins,
        "name": profile.name,
    }
