"""Alexa Voice API — jobs and balance for the linked account's selected group.

Invariants:
    - Every route authenticates with the Alexa access token (get_alexa_identity)
    - Job lists, posting, and completion are scoped to the selected group
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import get_alexa_identity
from ganamos.config import Settings, get_settings
from ganamos.core.errors import InvalidRequestError, ResourceNotFoundError
from ganamos.infrastructure.database import get_db
from ganamos.schemas.alexa import CompleteJobRequest, CreateJobRequest
from ganamos.services.alexa_auth import TokenIdentity, get_linked_account
from ganamos.services.lookups import get_profile
from ganamos.services.post_actions import (
    complete_voice_job, create_voice_job, list_group_jobs,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/alexa", tags=["alexa"])

DEFAULT_GROUP_NAME = "Your Group"


async def selected_group(db: AsyncSession, user_id: uuid.UUID) -> tuple:
    """(selected_group_id, group_name) for the user's linked account."""
    account = await get_linked_account(db, user_id)
    if account is None:
        return None, None
    return account["selected_group_id"], account["group_name"]


@router.get("/jobs")
async def list_jobs(
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    group_id, name = await selected_group(db, identity.user_id)
    if group_id is None:
        logger.warning("Alexa jobs requested with no group selected",
                       extra={"user_id": identity.user_id})
        raise InvalidRequestError(
            "No group selected. Please update your Alexa settings.",
        )
    jobs = await list_group_jobs(db, group_id, identity.user_id)
    return {
        "success": True,
        "jobs": jobs,
        "totalCount": len(jobs),
        "groupName": name or DEFAULT_GROUP_NAME,
    }


@router.post("/jobs")
async def create_job(
    body: CreateJobRequest,
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    group_id, _ = await selected_group(db, identity.user_id)
    result = await create_voice_job(
        db, identity.user_id, group_id, body.description, body.reward,
    )
    return {"success": True, **result}


@router.post("/jobs/{job_id}/complete")
async def complete_job(
    job_id: str,
    body: CompleteJobRequest,
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    group_id, _ = await selected_group(db, identity.user_id)
    outcome = await complete_voice_job(
        db, settings, identity.user_id, group_id, job_id, body.fixer_name,
    )
    response = {
        "success": True,
        "message": outcome.message,
        "job": outcome.job,
        "fixer": outcome.fixer,
    }
    if outcome.requires_verification:
        response["requiresVerification"] = True
    return response


@router.get("/balance")
async def balance(
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_profile(db, identity.user_id)
    if profile is None:
        raise ResourceNotFoundError("User profile not found")
    return {"success": True, "balance": profile.balance, "name": profile.name}
