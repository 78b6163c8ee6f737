"""Lookups — small shared queries used by many routes and services.

Invariants:
    - Malformed ids resolve to None (callers turn that into their own 404 message)
    - "Open" posts exclude fixed, claimed, and soft-deleted rows
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.core.domain_types import DeviceStatus, MembershipStatus
from ganamos.models import ConnectedAccount, Device, GroupMember, Post, Profile


def parse_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def get_profile(db: AsyncSession, user_id) -> Profile | None:
    user_id = parse_uuid(user_id)
    if user_id is None:
        return None
    return await db.get(Profile, user_id)


async def get_device(
    db: AsyncSession, device_id, paired_only: bool = False,
) -> Device | None:
    device_id = parse_uuid(device_id)
    if device_id is None:
        return None
    query = select(Device).where(Device.id == device_id)
    if paired_only:
        query = query.where(Device.status == DeviceStatus.PAIRED.value)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_membership(
    db: AsyncSession, group_id, user_id, approved_only: bool = True,
) -> GroupMember | None:
    group_id, user_id = parse_uuid(group_id), parse_uuid(user_id)
    if group_id is None or user_id is None:
        return None
    query = select(GroupMember).where(
        GroupMember.group_id == group_id, GroupMember.user_id == user_id,
    )
    if approved_only:
        query = query.where(
            GroupMember.status == MembershipStatus.APPROVED.value,
        )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def approved_group_ids(db: AsyncSession, user_id) -> list[uuid.UUID]:
    result = await db.execute(
        select(GroupMember.group_id).where(
            GroupMember.user_id == user_id,
            GroupMember.status == MembershipStatus.APPROVED.value,
        ),
    )
    return list(result.scalars().all())


async def is_connected_account(
    db: AsyncSession, primary_user_id, connected_user_id,
) -> bool:
    connected_user_id = parse_uuid(connected_user_id)
    if connected_user_id is None:
        return False
    result = await db.execute(
        select(ConnectedAccount.id).where(
            ConnectedAccount.primary_user_id == primary_user_id,
            ConnectedAccount.connected_user_id == connected_user_id,
        ),
    )
    return result.first() is not None


def open_posts_query():
    """Base SELECT for posts that are still available to be fixed."""
    return select(Post).where(
        Post.fixed.is_(False),
        Post.claimed.is_(False),
        Post.deleted_at.is_(None),
    )
