"""Alexa Voice API — group selection and the selected group's members."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import get_alexa_identity
from ganamos.api.routes.alexa_jobs import DEFAULT_GROUP_NAME, selected_group
from ganamos.core.errors import InvalidRequestError
from ganamos.infrastructure.database import get_db
from ganamos.schemas.alexa import SelectGroupRequest
from ganamos.services.alexa_auth import TokenIdentity, update_selected_group
from ganamos.services.groups import group_name, list_group_members, list_user_groups

router = APIRouter(prefix="/api/alexa", tags=["alexa"])


@router.get("/groups")
async def list_groups(
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    groups = await list_user_groups(db, identity.user_id)
    group_id, _ = await selected_group(db, identity.user_id)
    return {
        "success": True,
        "groups": groups,
        "selectedGroupId": str(group_id) if group_id else None,
    }


@router.put("/groups")
async def select_group(
    body: SelectGroupRequest,
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    if not body.group_id:
        raise InvalidRequestError("Group ID is required")
    if not await update_selected_group(db, identity.user_id, body.group_id):
        raise InvalidRequestError(
            "Failed to update group. Make sure you are a member of this group.",
        )
    name = await group_name(db, body.group_id)
    return {
        "success": True,
        "message": f'Group changed to "{name or "Unknown"}"',
        "selectedGroupId": body.group_id,
    }


@router.get("/group-members")
async def group_members(
    identity: TokenIdentity = Depends(get_alexa_identity),
    db: AsyncSession = Depends(get_db),
):
    group_id, name = await selected_group(db, identity.user_id)
    if group_id is None:
        raise InvalidRequestError("No group selected")
    members = await list_group_members(db, group_id, identity.user_id)
    return {
        "success": True,
        "members": members,
        "totalCount": len(members),
        "groupName": name or DEFAULT_GROUP_NAME,
    }
