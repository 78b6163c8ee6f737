"""Post Actions — creating, closing, and claiming jobs on behalf of voice users.

Invariants:
    - Posting a job debits the poster's balance by the reward and records a
      negative internal transaction in the same commit
    - Closing credits the fixer's balance and pet_coins by the reward and
      records a "Fix reward earned: <title>" transaction
    - Only the post owner or an approved group admin may close a post
    - Claiming is a single conditional UPDATE: at most one claimer wins
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings
from ganamos.core.device_messages import FIX_REWARD_PREFIX
from ganamos.core.domain_types import (
    MemberRole, TransactionStatus, TransactionType, iso,
)
from ganamos.core.errors import (
    InsufficientFundsError, InvalidRequestError, PermissionDeniedError,
    ResourceNotFoundError,
)
from ganamos.core.fixer_matching import find_fixer
from ganamos.db.base import utcnow
from ganamos.models import Activity, Post, Profile, Transaction
from ganamos.services import notifications
from ganamos.services.groups import approved_member_profiles
from ganamos.services.lookups import (
    get_membership, get_profile, open_posts_query, parse_uuid,
)

logger = logging.getLogger(__name__)

VOICE_JOB_IMAGE = "/images/alexa-job-default.jpg"
VOICE_TITLE_LIMIT = 50


@dataclass(frozen=True)
class CloseOutcome:
    requires_verification: bool
    message: str
    job: dict
    fixer: dict


def parse_reward(value) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidRequestError("Reward must be a positive number")
    return value


async def create_voice_job(
    db: AsyncSession, user_id: uuid.UUID, group_id, description, reward,
) -> dict:
    if not description or not isinstance(description, str):
        raise InvalidRequestError("Description is required")
    reward = parse_reward(reward)
    if group_id is None:
        raise InvalidRequestError(
            "No group selected. Please update your Alexa settings.",
        )
    profile = await get_profile(db, user_id)
    if profile is None:
        raise ResourceNotFoundError("User profile not found")
    if profile.balance < reward:
        raise InsufficientFundsError(
            f"Insufficient balance. You have {profile.balance} sats but the "
            f"job requires {reward} sats.",
            balance=profile.balance, required=reward,
        )

    title = description[:VOICE_TITLE_LIMIT]
    amount = int(reward)
    post = Post(
        user_id=user_id,
        group_id=group_id,
        created_by=profile.name,
        title=title,
        description=description,
        image_url=VOICE_JOB_IMAGE,
        reward=amount,
    )
    db.add(post)
    await db.flush()

    profile.balance -= amount
    db.add(Transaction(
        user_id=user_id,
        type=TransactionType.INTERNAL.value,
        amount=-amount,
        status=TransactionStatus.COMPLETED.value,
        memo=f"Posted job via Alexa: {title}",
    ))
    db.add(Activity(
        user_id=user_id,
        type="post_created",
        related_id=post.id,
        related_table="posts",
        details={"message": f"Posted a new job via Alexa: {title}"},
    ))
    await db.commit()
    logger.info(
        f"Voice job posted for {amount} sats",
        extra={"user_id": user_id, "post_id": post.id},
    )
    return {
        "job": {
            "id": str(post.id),
            "title": title,
            "description": description,
            "reward": reward,
            "createdAt": iso(post.created_at),
        },
        "newBalance": profile.balance,
    }


async def can_close(db: AsyncSession, post: Post, user_id) -> bool:
    if post.user_id == user_id:
        return True
    if post.group_id is None:
        return False
    membership = await get_membership(db, post.group_id, user_id)
    return membership is not None and membership.role == MemberRole.ADMIN.value


async def close_issue(db: AsyncSession, post: Post, fixer: Profile) -> None:
    """Mark the post fixed and pay the fixer (balance and pet coins)."""
    post.fixed = True
    post.fixed_at = utcnow()
    post.fixed_by = fixer.id
    post.under_review = False

    reward = post.reward or 0
    title = post.title or "Issue fixed"
    if reward > 0:
        fixer.balance = (fixer.balance or 0) + reward
        fixer.pet_coins = (fixer.pet_coins or 0) + reward
        tx = Transaction(
            user_id=fixer.id,
            type=TransactionType.INTERNAL.value,
            amount=reward,
            status=TransactionStatus.COMPLETED.value,
            memo=f"{FIX_REWARD_PREFIX} {title}",
        )
        db.add(tx)
        await db.flush()
        db.add(Activity(
            user_id=fixer.id,
            type="fix",
            related_id=post.id,
            related_table="posts",
            details={
                "title": title, "reward": reward, "transaction_id": str(tx.id),
            },
        ))
    await db.commit()
    logger.info(
        f"Issue closed, {reward} sats to fixer",
        extra={"post_id": post.id, "user_id": fixer.id},
    )


async def claim_for_review(
    db: AsyncSession, post_id, fixer: Profile, note: str,
) -> bool:
    """Atomically flag an open post as under review by `fixer`."""
    result = await db.execute(
        update(Post)
        .where(
            Post.id == post_id,
            Post.fixed.is_(False),
            Post.claimed.is_(False),
            Post.under_review.is_(False),
            Post.deleted_at.is_(None),
        )
        .values(under_review=True, fixed_by=fixer.id, fix_note=note),
    )
    await db.commit()
    return result.rowcount == 1


async def complete_voice_job(
    db: AsyncSession,
    settings: Settings,
    user_id: uuid.UUID,
    group_id,
    job_id: str,
    fixer_name,
) -> CloseOutcome:
    if not fixer_name or not isinstance(fixer_name, str):
        raise InvalidRequestError("Fixer name is required")
    if group_id is None:
        raise InvalidRequestError("No group selected")

    post = await find_post(db, job_id)
    if post is None:
        raise ResourceNotFoundError("Job not found")
    if post.group_id != group_id:
        raise PermissionDeniedError("Job not in your selected group")
    if post.fixed or post.claimed or post.under_review or post.deleted_at:
        raise InvalidRequestError("Job has already been claimed or is under review")

    members = await approved_member_profiles(db, group_id)
    fixer = find_fixer(members, fixer_name)
    if fixer is None:
        raise ResourceNotFoundError(
            f'Could not find a group member named "{fixer_name}". '
            "Please check the name and try again.",
            suggestion="Make sure the person is a member of your group.",
        )

    title, reward, post_id = post.title, post.reward, post.id
    matched_name, matched_username = fixer.name, fixer.username
    if await can_close(db, post, user_id):
        await close_issue(db, post, fixer)
        return CloseOutcome(
            requires_verification=False,
            message=(
                f'Great! The job "{title}" has been marked complete and '
                f"{matched_name} has been awarded {reward} sats."
            ),
            job={"id": str(post_id), "title": title, "reward": reward},
            fixer={"name": matched_name, "username": matched_username},
        )

    owner_name, owner_id = post.created_by, post.user_id
    claimed = await claim_for_review(
        db, post_id, fixer, f"Submitted via Alexa by {matched_name}",
    )
    if not claimed:
        raise InvalidRequestError("Job has already been claimed or is under review")

    owner = await get_profile(db, owner_id)
    if owner is not None and owner.email:
        notifications.enqueue(
            db, owner.email, notifications.JOB_VERIFICATION,
            {
                "ownerName": owner.name or "there",
                "issueTitle": title,
                "fixerName": matched_name,
                "rewardAmount": reward,
                "postId": str(post_id),
                "source": "alexa",
                "verifyUrl": notifications.verification_link(
                    settings.app_url, post_id, matched_username,
                ),
            },
        )
        # The claim is already committed; only the notification row is lost
        try:
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(
                f"Failed to queue verification notification: {e}",
                extra={"post_id": post_id},
            )

    return CloseOutcome(
        requires_verification=True,
        message=(
            f'The job "{title}" was posted by {owner_name}. An email has been '
            f"sent to them to verify that {matched_name} completed the job. Once "
            f"verified, {matched_name} will receive {reward} sats."
        ),
        job={
            "id": str(post_id), "title": title, "reward": reward,
            "ownerName": owner_name,
        },
        fixer={"name": matched_name},
    )


async def find_post(db: AsyncSession, post_id) -> Post | None:
    post_uuid = parse_uuid(post_id)
    if post_uuid is None:
        return None
    result = await db.execute(select(Post).where(Post.id == post_uuid))
    return result.scalar_one_or_none()


async def list_group_jobs(
    db: AsyncSession, group_id, user_id: uuid.UUID, limit: int = 20,
) -> list[dict]:
    """Open posts in a group, newest first, as read out by the voice skill."""
    result = await db.execute(
        open_posts_query()
        .add_columns(Profile.name)
        .outerjoin(Profile, Profile.id == Post.user_id)
        .where(Post.group_id == group_id)
        .order_by(Post.created_at.desc())
        .limit(limit),
    )
    return [
        {
            "id": str(post.id),
            "title": post.title,
            "description": post.description,
            "reward": post.reward,
            "location": post.location or "",
            "createdAt": iso(post.created_at),
            "createdBy": post.created_by or owner_name or "Unknown",
            "isOwnJob": post.user_id == user_id,
        }
        for post, owner_name in result.all()
    ]
