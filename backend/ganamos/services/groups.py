"""Groups — membership listings used by the voice API and fixer lookup."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.domain_types import MembershipStatus
from ganamos.models import Group, GroupMember, Profile
from ganamos.services.lookups import parse_uuid


async def approved_member_profiles(db: AsyncSession, group_id) -> list[Profile]:
    result = await db.execute(
        select(Profile)
        .join(GroupMember, GroupMember.user_id == Profile.id)
        .where(
            GroupMember.group_id == group_id,
            GroupMember.status == MembershipStatus.APPROVED.value,
        ),
    )
    return list(result.scalars().all())


async def list_user_groups(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    result = await db.execute(
        select(Group, GroupMember.role)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(
            GroupMember.user_id == user_id,
            GroupMember.status == MembershipStatus.APPROVED.value,
        ),
    )
    return [
        {
            "id": str(group.id),
            "name": group.name,
            "description": group.description,
            "groupCode": group.group_code,
            "role": role,
        }
        for group, role in result.all()
    ]


async def list_group_members(
    db: AsyncSession, group_id, current_user_id: uuid.UUID,
) -> list[dict]:
    """Approved members, current user first, then by name."""
    result = await db.execute(
        select(Profile, GroupMember.role)
        .join(GroupMember, GroupMember.user_id == Profile.id)
        .where(
            GroupMember.group_id == group_id,
            GroupMember.status == MembershipStatus.APPROVED.value,
        ),
    )
    members = [
        {
            "id": str(profile.id),
            "name": profile.name,
            "username": profile.username,
            "avatarUrl": profile.avatar_url,
            "role": role,
            "isCurrentUser": profile.id == current_user_id,
        }
        for profile, role in result.all()
    ]
    members.sort(key=lambda m: (not m["isCurrentUser"], (m["name"] or "").lower()))
    return members


async def group_name(db: AsyncSession, group_id) -> str | None:
    group_id = parse_uuid(group_id)
    if group_id is None:
        return None
    return await db.scalar(select(Group.name).where(Group.id == group_id))
