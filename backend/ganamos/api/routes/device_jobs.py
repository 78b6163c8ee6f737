"""Device Jobs — open-job list and completion reports from pet devices."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import enforce_rate_limit
from ganamos.config import Settings, get_settings
from ganamos.core.errors import InvalidRequestError
from ganamos.infrastructure.database import get_db
from ganamos.schemas.device import JobCompleteRequest
from ganamos.services.coin_ledger import require_device_id
from ganamos.services.device_jobs import list_device_jobs, request_job_verification

router = APIRouter(prefix="/api/device", tags=["device-jobs"])


@router.get("/jobs")
async def device_jobs(
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    device_id = require_device_id(device_id)
    enforce_rate_limit(device_id, "DEVICE_CONFIG")
    jobs = await list_device_jobs(db, device_id)
    return {"success": True, "jobs": jobs, "totalCount": len(jobs)}


@router.post("/job-complete")
async def job_complete(
    body: JobCompleteRequest,
    device_id: str | None = Query(None, alias="deviceId"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    device_id = require_device_id(device_id)
    if not body.job_id:
        raise InvalidRequestError("Job ID required")
    enforce_rate_limit(device_id, "DEVICE_CONFIG")
    await request_job_verification(db, settings, device_id, body.job_id)
    return {"success": True, "message": "Verification request sent to poster"}
