"""Wallet — internal sats transfers and connected child accounts.

Invariants:
    - A transfer debits the sender and credits the receiver in one commit,
      with a signed internal transaction and an activity row for each side
    - The debit is a conditional UPDATE (balance >= amount): concurrent
      transfers can never overdraw the sender
    - A caller may only move sats out of their own account or an account
      connected to them (connected_accounts.primary_user_id == caller)
    - Child accounts start at a zero balance and are connected to their creator

Design Decisions:
    - Transfer notifications are queued after the money commit so a failed
      queue insert never undoes a completed transfer
    - Child usernames are slugged from the display name; collisions get a
      short random suffix
"""

import logging
import re
import secrets
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings
from ganamos.core.domain_types import TransactionStatus, TransactionType
from ganamos.core.errors import (
    InsufficientFundsError, InvalidRequestError, PermissionDeniedError,
    ResourceNotFoundError,
)
from ganamos.models import Activity, ConnectedAccount, Profile, Transaction
from ganamos.services import notifications
from ganamos.services.lookups import get_profile, is_connected_account

logger = logging.getLogger(__name__)

USERNAME_BASE_LIMIT = 16
USERNAME_ATTEMPTS = 10


def parse_sats(value) -> int | None:
    """Positive whole number of sats from a JSON number or digit string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
        value = int(value)
    if not isinstance(value, (int, float)) or value != int(value):
        return None
    return int(value) if value > 0 else None


async def get_profile_by_username(db: AsyncSession, username: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.username == username))
    return result.scalar_one_or_none()


async def transfer_sats(
    db: AsyncSession,
    settings: Settings,
    caller_id: uuid.UUID,
    *,
    to_username,
    amount,
    from_user_id=None,
    memo: str | None = None,
) -> dict:
    if not to_username or not isinstance(to_username, str):
        raise InvalidRequestError("Invalid recipient username")
    sats = parse_sats(amount)
    if sats is None:
        raise InvalidRequestError("Invalid amount")

    sender_id = caller_id
    if from_user_id and str(from_user_id) != str(caller_id):
        if not await is_connected_account(db, caller_id, from_user_id):
            raise PermissionDeniedError(
                "You can only transfer from your own account or connected accounts",
            )
        sender_id = uuid.UUID(str(from_user_id))

    receiver = await get_profile_by_username(db, to_username)
    if receiver is None:
        raise ResourceNotFoundError(
            f'User not found: No user with username "{to_username}"',
        )
    if receiver.id == sender_id:
        raise InvalidRequestError("Cannot transfer to yourself")
    sender = await get_profile(db, sender_id)
    if sender is None:
        raise ResourceNotFoundError("Sender profile not found")
    if (sender.balance or 0) < sats:
        raise InsufficientFundsError("Insufficient balance")

    sender_name, sender_email = sender.name, sender.email
    receiver_id, receiver_name, receiver_email = receiver.id, receiver.name, receiver.email

    debited = await db.execute(
        update(Profile)
        .where(Profile.id == sender_id, Profile.balance >= sats)
        .values(balance=Profile.balance - sats),
    )
    if debited.rowcount != 1:
        await db.rollback()
        raise InsufficientFundsError("Insufficient balance")
    await db.execute(
        update(Profile)
        .where(Profile.id == receiver_id)
        .values(balance=Profile.balance + sats),
    )

    sent_memo = memo or f"Transfer to {receiver_name}"
    received_memo = memo or f"Transfer from {sender_name}"
    sender_tx = Transaction(
        user_id=sender_id,
        type=TransactionType.INTERNAL.value,
        amount=-sats,
        status=TransactionStatus.COMPLETED.value,
        memo=sent_memo,
    )
    receiver_tx = Transaction(
        user_id=receiver_id,
        type=TransactionType.INTERNAL.value,
        amount=sats,
        status=TransactionStatus.COMPLETED.value,
        memo=received_memo,
    )
    db.add_all([sender_tx, receiver_tx])
    await db.flush()
    sender_tx_id, receiver_tx_id = sender_tx.id, receiver_tx.id
    db.add_all([
        Activity(
            user_id=sender_id,
            type=TransactionType.INTERNAL.value,
            related_id=sender_tx_id,
            related_table="transactions",
            details={
                "amount": -sats, "memo": sent_memo,
                "to_user_id": str(receiver_id), "to_name": receiver_name,
            },
        ),
        Activity(
            user_id=receiver_id,
            type=TransactionType.INTERNAL.value,
            related_id=receiver_tx_id,
            related_table="transactions",
            details={
                "amount": sats, "memo": received_memo,
                "from_user_id": str(sender_id), "from_name": sender_name,
            },
        ),
    ])
    await db.commit()
    logger.info(
        f"Transferred {sats} sats to {to_username}",
        extra={"user_id": sender_id},
    )

    await _queue_transfer_notices(
        db, settings, sats,
        sender=(sender_email, sender_name),
        receiver=(receiver_email, receiver_name),
    )
    return {
        "sender_tx_id": str(sender_tx_id),
        "receiver_tx_id": str(receiver_tx_id),
        "receiver_name": receiver_name,
        "receiver_id": str(receiver_id),
    }


async def _queue_transfer_notices(
    db: AsyncSession, settings: Settings, sats: int, *, sender, receiver,
) -> None:
    (sender_email, sender_name), (receiver_email, receiver_name) = sender, receiver
    notices = [
        (sender_email, notifications.BITCOIN_SENT, {
            "userName": sender_name or "User", "amountSats": sats,
            "toName": receiver_name, "transactionType": "internal",
        }),
        (receiver_email, notifications.BITCOIN_RECEIVED, {
            "userName": receiver_name or "User", "amountSats": sats,
            "fromName": sender_name, "transactionType": "internal",
        }),
    ]
    queued = False
    for email, template, payload in notices:
        if email and not notifications.is_internal_email(
            email, settings.internal_email_domain,
        ):
            notifications.enqueue(db, email, template, payload)
            queued = True
    if not queued:
        return
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to queue transfer notifications: {e}")


def username_base(display_name: str) -> str:
    slug = re.sub(r"\s+", "-", display_name.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug[:USERNAME_BASE_LIMIT] or "child"


async def unique_username(db: AsyncSession, display_name: str) -> str:
    base = username_base(display_name)
    candidates = [base] + [
        f"{base}-{secrets.token_hex(2)}" for _ in range(USERNAME_ATTEMPTS)
    ]
    for candidate in candidates:
        if await get_profile_by_username(db, candidate) is None:
            return candidate
    return f"{base}-{uuid.uuid4().hex[:8]}"


async def create_child_account(
    db: AsyncSession,
    settings: Settings,
    primary_user_id: uuid.UUID,
    username,
    avatar_url,
) -> dict:
    """Create a zero-balance profile managed by `primary_user_id`."""
    if not isinstance(username, str) or not username.strip() or not avatar_url:
        raise InvalidRequestError("Username and avatar are required")
    if await get_profile(db, primary_user_id) is None:
        raise ResourceNotFoundError("User profile not found")

    child_id = uuid.uuid4()
    child = Profile(
        id=child_id,
        name=username,
        username=await unique_username(db, username),
        email=f"child-{child_id}@{settings.internal_email_domain}",
        avatar_url=avatar_url,
        balance=0,
        pet_coins=0,
    )
    db.add(child)
    await db.flush()
    db.add(ConnectedAccount(
        primary_user_id=primary_user_id, connected_user_id=child_id,
    ))
    await db.commit()
    logger.info(
        "Child account created",
        extra={"user_id": primary_user_id},
    )
    return {
        "id": str(child_id),
        "name": child.name,
        "username": child.username,
        "email": child.email,
        "avatarUrl": child.avatar_url,
        "balance": child.balance,
        "petCoins": child.pet_coins,
    }
