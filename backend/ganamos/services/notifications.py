"""Notifications — queue outbound messages (job verification, transfers) for a mailer worker.

Invariants:
    - Rows are inserted with status "pending"; delivery happens elsewhere
    - Queueing failures are logged by the caller and never fail a request
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.models import NotificationQueue

logger = logging.getLogger(__name__)

JOB_VERIFICATION = "job_verification"
BITCOIN_SENT = "bitcoin_sent"
BITCOIN_RECEIVED = "bitcoin_received"


def enqueue(
    db: AsyncSession, recipient_email: str, template: str, payload: dict,
) -> NotificationQueue:
    """Stage a notification row on the session (caller commits)."""
    row = NotificationQueue(
        recipient_email=recipient_email, template=template, payload=payload,
    )
    db.add(row)
    logger.info(f"Queued {template} notification")
    return row


def verification_link(app_url: str, post_id, fixer_username: str | None) -> str:
    link = f"{app_url}/post/{post_id}?verify=true"
    if fixer_username:
        link += f"&fixer={fixer_username}"
    return link


def is_internal_email(email: str | None, internal_domain: str) -> bool:
    return bool(email) and email.lower().endswith(f"@{internal_domain.lower()}")
