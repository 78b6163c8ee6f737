"""Device Config — the payload a pet device polls every POLL_INTERVAL_SECONDS.

Invariants:
    - Earnings are completed deposit/internal transactions with positive amount,
      created after both device.created_at and the previous last_seen_at
    - Earnings are added to device.coins exactly once (last_seen_at advances in
      the same commit)
    - A job notification fires once per job: last_jobs_seen_at advances to the
      notified post's created_at
    - Rejection keys appear only while last_rejection_id is set

Design Decisions:
    - One commit at the end: a failed poll leaves coins and seen-markers untouched
"""

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings
from ganamos.core.device_messages import (
    PET_ECONOMY, POLL_INTERVAL_SECONDS, LastMessage,
    parse_memo, rejection_post_title, truncate_for_device,
)
from ganamos.core.domain_types import (
    DeviceStatus, TransactionStatus, TransactionType, as_utc,
)
from ganamos.core.errors import InvalidRequestError, ResourceNotFoundError
from ganamos.db.base import utcnow
from ganamos.models import BitcoinPrice, Device, Post, Transaction
from ganamos.services.lookups import (
    approved_group_ids, get_profile, open_posts_query, parse_uuid,
)

logger = logging.getLogger(__name__)

EARNING_TYPES = (TransactionType.DEPOSIT.value, TransactionType.INTERNAL.value)


async def find_paired_device(
    db: AsyncSession, device_id: str | None, pairing_code: str | None,
) -> Device | None:
    query = select(Device).where(Device.status == DeviceStatus.PAIRED.value)
    if device_id:
        device_uuid = parse_uuid(device_id)
        if device_uuid is None:
            return None
        query = query.where(Device.id == device_uuid)
    else:
        query = query.where(Device.pairing_code == pairing_code)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def coins_earned_since(db: AsyncSession, device: Device) -> int:
    since = max(
        as_utc(device.created_at), as_utc(device.last_seen_at or device.created_at),
    )
    total = await db.scalar(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == device.user_id,
            Transaction.status == TransactionStatus.COMPLETED.value,
            Transaction.type.in_(EARNING_TYPES),
            Transaction.amount > 0,
            Transaction.created_at > since,
        ),
    )
    return int(total or 0)


async def last_incoming_message(db: AsyncSession, user_id) -> LastMessage:
    memo = await db.scalar(
        select(Transaction.memo)
        .where(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.INTERNAL.value,
            Transaction.amount > 0,
        )
        .order_by(Transaction.created_at.desc())
        .limit(1),
    )
    return parse_memo(memo)


async def latest_btc_price(db: AsyncSession, currency: str = "USD") -> float | None:
    price = await db.scalar(
        select(BitcoinPrice.price)
        .where(BitcoinPrice.currency == currency)
        .order_by(BitcoinPrice.created_at.desc())
        .limit(1),
    )
    return float(price) if price is not None else None


async def newest_open_job(db: AsyncSession, user_id) -> Post | None:
    """Newest open post in the user's groups or assigned to the user."""
    candidates = []
    group_ids = await approved_group_ids(db, user_id)
    if group_ids:
        result = await db.execute(
            open_posts_query()
            .where(Post.group_id.in_(group_ids))
            .order_by(Post.created_at.desc())
            .limit(1),
        )
        candidates.append(result.scalar_one_or_none())
    result = await db.execute(
        open_posts_query()
        .where(Post.assigned_to == user_id)
        .order_by(Post.created_at.desc())
        .limit(1),
    )
    candidates.append(result.scalar_one_or_none())

    newest = None
    for post in candidates:
        if post is None:
            continue
        if newest is None or as_utc(post.created_at) > as_utc(newest.created_at):
            newest = post
    return newest


def _is_unseen(post: Post, last_seen: datetime | None) -> bool:
    return last_seen is None or as_utc(post.created_at) > as_utc(last_seen)


async def build_device_config(
    db: AsyncSession,
    settings: Settings,
    *,
    device_id: str | None,
    pairing_code: str | None,
) -> dict:
    if not device_id and not pairing_code:
        raise InvalidRequestError("Device ID or pairing code required")

    device = await find_paired_device(db, device_id, pairing_code)
    if device is None:
        raise ResourceNotFoundError("Device not found or not paired")
    profile = await get_profile(db, device.user_id)
    if profile is None:
        raise ResourceNotFoundError("User profile not found")

    earned = await coins_earned_since(db, device)
    if earned > 0:
        device.coins = (device.coins or 0) + earned
        logger.info(
            f"Credited {earned} coins since last sync",
            extra={"device_id": device.id},
        )
    device.last_seen_at = utcnow()

    message = await last_incoming_message(db, device.user_id)
    btc_price = await latest_btc_price(db)

    has_new_job, new_job_title, new_job_reward = False, None, None
    job = await newest_open_job(db, device.user_id)
    if job is not None and _is_unseen(job, device.last_jobs_seen_at):
        has_new_job = True
        new_job_title = truncate_for_device(job.title)
        new_job_reward = job.reward
        device.last_jobs_seen_at = job.created_at

    config = {
        "deviceId": str(device.id),
        "petName": device.pet_name,
        "petType": device.pet_type,
        "userId": str(device.user_id),
        "userName": profile.name or "User",
        "balance": profile.balance or 0,
        "coins": device.coins or 0,
        "coinsEarnedSinceLastSync": earned,
        "btcPrice": btc_price,
        "pollInterval": POLL_INTERVAL_SECONDS,
        "serverUrl": settings.app_url,
        "lastMessage": message.message,
        "lastMessageType": message.message_type,
        "lastPostTitle": message.post_title,
        "lastSenderName": message.sender_name,
        **PET_ECONOMY,
        "hasNewJob": has_new_job,
        "newJobTitle": new_job_title,
        "newJobReward": new_job_reward,
    }
    if device.last_rejection_id:
        config["lastRejectionId"] = str(device.last_rejection_id)
        config["rejectionMessage"] = device.rejection_message or "Try again!"
        config["rejectionPostTitle"] = (
            rejection_post_title(device.rejection_message) or "Issue"
        )

    await db.commit()
    return config
