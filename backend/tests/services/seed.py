"""Seed helpers — insert committed rows for service and route tests."""

from datetime import timedelta

from ganamos.core.domain_types import MemberRole, MembershipStatus
from ganamos.db.base import utcnow
from ganamos.models import Device, GroupMember, Post, Profile

ALEXA_CLIENT_ID = "test-client"


async def add_profile(db, name, email=None, balance=0, pet_coins=0, username=None):
    profile = Profile(
        name=name, email=email, username=username,
        balance=balance, pet_coins=pet_coins,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def add_member(
    db, group, profile, role=MemberRole.MEMBER, status=MembershipStatus.APPROVED,
):
    member = GroupMember(
        group_id=group.id, user_id=profile.id,
        role=role.value, status=status.value,
    )
    db.add(member)
    await db.commit()
    return member


async def add_device(db, profile, code="ABC123", pet_name="Biscuit", pet_type="cat"):
    device = Device(
        user_id=profile.id, pairing_code=code,
        pet_name=pet_name, pet_type=pet_type, status="paired",
        created_at=utcnow() - timedelta(days=1),
    )
    db.add(device)
    await db.commit()
    await db.refresh(device)
    return device


async def add_post(db, owner, group=None, title="Fix the bench", reward=100, **fields):
    post = Post(
        user_id=owner.id,
        group_id=group.id if group else None,
        title=title,
        description=fields.pop("description", f"{title} please"),
        reward=reward,
        created_by=owner.name,
        **fields,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return post
