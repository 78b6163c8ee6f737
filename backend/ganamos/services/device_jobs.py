"""Device Jobs — open-job listing and "I fixed it" requests from pet devices.

Invariants:
    - Listed jobs are open posts from approved groups plus posts assigned to the
      user, de-duplicated, newest first, capped at MAX_DEVICE_JOBS
    - A completion request never changes the post; it only queues verification
      notifications for the owner and the group's other admins (never the fixer)
    - Internal-domain addresses never receive notifications
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings
from ganamos.core.domain_types import MemberRole, MembershipStatus, as_utc, iso
from ganamos.core.errors import (
    InvalidRequestError, PermissionDeniedError, ResourceNotFoundError,
)
from ganamos.db.base import utcnow
from ganamos.models import Group, GroupMember, Post, Profile
from ganamos.services import notifications
from ganamos.services.lookups import (
    approved_group_ids, get_device, get_membership, get_profile,
    open_posts_query, parse_uuid,
)

logger = logging.getLogger(__name__)

MAX_DEVICE_JOBS = 10
ASSIGNED_LABEL = "Assigned to you"


async def list_device_jobs(db: AsyncSession, device_id: str) -> list[dict]:
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found")
    user_id = device.user_id

    rows: list[tuple[Post, str | None]] = []
    group_ids = await approved_group_ids(db, user_id)
    if group_ids:
        result = await db.execute(
            open_posts_query()
            .add_columns(Group.name)
            .outerjoin(Group, Group.id == Post.group_id)
            .where(Post.group_id.in_(group_ids))
            .order_by(Post.created_at.desc())
            .limit(MAX_DEVICE_JOBS),
        )
        rows.extend(result.all())

    result = await db.execute(
        open_posts_query()
        .add_columns(Group.name)
        .outerjoin(Group, Group.id == Post.group_id)
        .where(Post.assigned_to == user_id)
        .order_by(Post.created_at.desc())
        .limit(MAX_DEVICE_JOBS),
    )
    seen = {post.id for post, _ in rows}
    rows.extend(r for r in result.all() if r[0].id not in seen)

    rows.sort(key=lambda r: as_utc(r[0].created_at), reverse=True)
    jobs = [
        {
            "id": str(post.id),
            "title": post.title,
            "reward": post.reward,
            "location": post.location or "",
            "createdAt": iso(post.created_at),
            "groupName": ASSIGNED_LABEL if post.assigned_to else (group_name or ""),
        }
        for post, group_name in rows[:MAX_DEVICE_JOBS]
    ]

    device.last_jobs_seen_at = utcnow()
    await db.commit()
    return jobs


def _verification_payload(
    post: Post, fixer: Profile, recipient_name: str | None, settings: Settings,
) -> dict:
    return {
        "ownerName": recipient_name or "User",
        "issueTitle": post.title or "Your issue",
        "fixerName": fixer.name or fixer.username or "Someone",
        "fixerUsername": fixer.username or "",
        "fixerUserId": str(fixer.id),
        "rewardAmount": post.reward,
        "postId": str(post.id),
        "verifyUrl": notifications.verification_link(
            settings.app_url, post.id, fixer.username,
        ),
    }


async def request_job_verification(
    db: AsyncSession, settings: Settings, device_id: str, job_id: str,
) -> None:
    """Record that a device owner says they fixed a job; notify approvers."""
    device = await get_device(db, device_id, paired_only=True)
    if device is None:
        raise ResourceNotFoundError("Device not found")
    fixer = await get_profile(db, device.user_id)
    if fixer is None:
        raise ResourceNotFoundError("User profile not found")

    post_uuid = parse_uuid(job_id)
    post = await db.get(Post, post_uuid) if post_uuid else None
    if post is None:
        raise ResourceNotFoundError("Job not found")
    if post.fixed:
        raise InvalidRequestError("Job already completed")
    if post.claimed:
        raise InvalidRequestError("Job already claimed")
    if post.deleted_at:
        raise InvalidRequestError("Job has been deleted")

    if post.group_id and not await get_membership(db, post.group_id, fixer.id):
        raise PermissionDeniedError("You are not a member of this group")

    post_id, device_uuid = post.id, device.id
    owner = await get_profile(db, post.user_id)
    if owner is None:
        raise ResourceNotFoundError("Post owner not found")

    recipients: list[tuple[str, str | None]] = []
    if owner.email and not notifications.is_internal_email(
        owner.email, settings.internal_email_domain,
    ):
        recipients.append((owner.email, owner.name))
    if post.group_id:
        recipients.extend(
            await _group_admin_recipients(db, post, fixer.id, settings),
        )

    for email, name in recipients:
        notifications.enqueue(
            db, email, notifications.JOB_VERIFICATION,
            _verification_payload(post, fixer, name, settings),
        )
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Failed to queue verification notifications: {e}",
            extra={"post_id": post_id},
        )
    logger.info(
        "Device job completion reported",
        extra={"device_id": device_uuid, "post_id": post_id},
    )


async def _group_admin_recipients(
    db: AsyncSession, post: Post, fixer_id, settings: Settings,
) -> list[tuple[str, str | None]]:
    result = await db.execute(
        select(Profile.email, Profile.name)
        .join(GroupMember, GroupMember.user_id == Profile.id)
        .where(
            GroupMember.group_id == post.group_id,
            GroupMember.role == MemberRole.ADMIN.value,
            GroupMember.status == MembershipStatus.APPROVED.value,
            GroupMember.user_id != post.user_id,
            GroupMember.user_id != fixer_id,
        ),
    )
    return [
        (email, name) for email, name in result.all()
        if email and not notifications.is_internal_email(
            email, settings.internal_email_domain,
        )
    ]

