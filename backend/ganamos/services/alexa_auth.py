"""Alexa Auth — OAuth 2.0 account linking for the voice skill.

Invariants:
    - Access tokens live 1 hour, refresh tokens 90 days, both HS256 with claim
      `type` in {"access", "refresh"}
    - A token is only valid while it equals the value stored on the user's
      alexa_linked_accounts row (relinking or revoking invalidates old tokens)
    - Authorization codes are single-use and expire after 10 minutes
    - One linked account per user; issuing tokens upserts that row

Design Decisions:
    - Stateless JWT verification plus a row comparison: signature checks are
      local, revocation is a row delete
    - Every token carries a random jti so two pairs issued in the same second differ
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings
from ganamos.core.domain_types import as_utc
from ganamos.db.base import utcnow
from ganamos.models import AlexaAuthCode, AlexaLinkedAccount, Group
from ganamos.services.lookups import get_membership, parse_uuid

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=90)
AUTH_CODE_TTL = timedelta(minutes=10)
ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = int(ACCESS_TOKEN_TTL.total_seconds())

    def to_response(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "refresh_token": self.refresh_token,
        }


@dataclass(frozen=True)
class TokenIdentity:
    user_id: uuid.UUID
    client_id: str


@dataclass(frozen=True)
class ConsumedCode:
    user_id: uuid.UUID
    state: str | None
    selected_group_id: uuid.UUID | None


def validate_client_id(client_id: str | None, settings: Settings) -> bool:
    allowed = settings.alexa_client_id_list
    if not allowed and settings.is_development:
        return True
    return bool(client_id) and client_id in allowed


def extract_bearer_token(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):]


def _sign(
    user_id, client_id: str, token_type: str, ttl: timedelta, settings: Settings,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "client_id": client_id,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, settings.alexa_jwt_secret, algorithm=ALGORITHM)


def _verify(token: str, expected_type: str, settings: Settings) -> dict | None:
    try:
        payload = jwt.decode(
            token, settings.alexa_jwt_secret, algorithms=[ALGORITHM],
        )
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected {expected_type} token: {e}")
        return None
    if payload.get("type") != expected_type or parse_uuid(payload.get("sub")) is None:
        return None
    return payload


async def generate_authorization_code(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    client_id: str,
    redirect_uri: str,
    state: str | None = None,
    selected_group_id=None,
) -> str:
    code = f"{uuid.uuid4()}-{uuid.uuid4()}"
    db.add(AlexaAuthCode(
        code=code,
        user_id=user_id,
        client_id=client_id,
        redirect_uri=redirect_uri,
        state=state or None,
        selected_group_id=parse_uuid(selected_group_id),
        expires_at=utcnow() + AUTH_CODE_TTL,
    ))
    await db.commit()
    logger.info(
        "Issued Alexa authorization code",
        extra={"user_id": user_id, "client_id": client_id},
    )
    return code


async def consume_authorization_code(
    db: AsyncSession, code: str, client_id: str, redirect_uri: str,
) -> ConsumedCode | None:
    """Validate a code for this client/redirect pair and mark it used."""
    result = await db.execute(
        select(AlexaAuthCode).where(
            AlexaAuthCode.code == code,
            AlexaAuthCode.client_id == client_id,
            AlexaAuthCode.redirect_uri == redirect_uri,
            AlexaAuthCode.used_at.is_(None),
        ),
    )
    auth_code = result.scalar_one_or_none()
    if auth_code is None or as_utc(auth_code.expires_at) <= utcnow():
        return None
    auth_code.used_at = utcnow()
    await db.commit()
    return ConsumedCode(
        user_id=auth_code.user_id,
        state=auth_code.state,
        selected_group_id=auth_code.selected_group_id,
    )


async def generate_token_pair(
    db: AsyncSession,
    settings: Settings,
    user_id: uuid.UUID,
    client_id: str,
    selected_group_id=None,
) -> TokenPair:
    """Issue a fresh pair and store it on the user's linked-account row."""
    pair = TokenPair(
        access_token=_sign(user_id, client_id, "access", ACCESS_TOKEN_TTL, settings),
        refresh_token=_sign(
            user_id, client_id, "refresh", REFRESH_TOKEN_TTL, settings,
        ),
    )
    account = await _linked_row(db, user_id)
    if account is None:
        account = AlexaLinkedAccount(user_id=user_id)
        db.add(account)
    account.client_id = client_id
    account.access_token = pair.access_token
    account.refresh_token = pair.refresh_token
    account.token_expires_at = utcnow() + ACCESS_TOKEN_TTL
    if selected_group_id:
        account.selected_group_id = parse_uuid(selected_group_id)
    await db.commit()
    return pair


async def exchange_code(
    db: AsyncSession,
    settings: Settings,
    code: str,
    client_id: str,
    redirect_uri: str,
) -> TokenPair | None:
    consumed = await consume_authorization_code(db, code, client_id, redirect_uri)
    if consumed is None:
        return None
    return await generate_token_pair(
        db, settings, consumed.user_id, client_id, consumed.selected_group_id,
    )


async def _linked_row(db: AsyncSession, user_id) -> AlexaLinkedAccount | None:
    result = await db.execute(
        select(AlexaLinkedAccount).where(AlexaLinkedAccount.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def validate_access_token(
    db: AsyncSession, settings: Settings, token: str,
) -> TokenIdentity | None:
    payload = _verify(token, "access", settings)
    if payload is None:
        return None
    user_id = parse_uuid(payload["sub"])
    account = await _linked_row(db, user_id)
    if account is None or account.access_token != token:
        return None
    account.last_used_at = utcnow()
    await db.commit()
    return TokenIdentity(user_id=user_id, client_id=payload.get("client_id", ""))


async def refresh_tokens(
    db: AsyncSession, settings: Settings, refresh_token: str,
) -> TokenPair | None:
    payload = _verify(refresh_token, "refresh", settings)
    if payload is None:
        return None
    account = await _linked_row(db, parse_uuid(payload["sub"]))
    if account is None or account.refresh_token != refresh_token:
        return None
    return await generate_token_pair(
        db, settings, account.user_id,
        account.client_id or payload.get("client_id", ""),
    )


async def get_linked_account(db: AsyncSession, user_id) -> dict | None:
    result = await db.execute(
        select(AlexaLinkedAccount, Group.name, Group.group_code)
        .outerjoin(Group, Group.id == AlexaLinkedAccount.selected_group_id)
        .where(AlexaLinkedAccount.user_id == user_id),
    )
    row = result.first()
    if row is None:
        return None
    account, group_name, group_code = row
    return {
        "id": account.id,
        "user_id": account.user_id,
        "alexa_user_id": account.alexa_user_id,
        "selected_group_id": account.selected_group_id,
        "group_name": group_name,
        "group_code": group_code,
        "last_used_at": account.last_used_at,
    }


async def update_selected_group(db: AsyncSession, user_id, group_id) -> bool:
    """Point the linked account at a group the user is an approved member of."""
    if await get_membership(db, group_id, user_id) is None:
        return False
    account = await _linked_row(db, user_id)
    if account is None:
        return False
    account.selected_group_id = parse_uuid(group_id)
    await db.commit()
    return True


async def set_alexa_user_id(db: AsyncSession, user_id, alexa_user_id: str) -> bool:
    account = await _linked_row(db, user_id)
    if account is None:
        return False
    account.alexa_user_id = alexa_user_id
    await db.commit()
    return True


async def revoke_tokens(db: AsyncSession, user_id) -> bool:
    result = await db.execute(
        delete(AlexaLinkedAccount).where(AlexaLinkedAccount.user_id == user_id),
    )
    await db.commit()
    logger.info("Alexa account unlinked", extra={"user_id": user_id})
    return result.rowcount > 0
