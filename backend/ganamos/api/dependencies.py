"""Route Dependencies — session auth, rate limiting, and mock gating.

Invariants:
    - Web sessions are HS256 JWTs with type="session", read from the
      `ganamos_session` cookie or an Authorization: Bearer header
    - enforce_rate_limit raises RateLimitExceededError (429) instead of returning a refusal
    - Alexa voice routes authenticate with the linked-account access token only
    - require_mocks raises MockModeDisabledError (403) unless USE_MOCKS is on

Design Decisions:
    - Session tokens are verified locally (PyJWT) instead of calling the identity
      provider on every request (ADR: single shared secret between issuer and API)
    - Helpers are plain functions + Depends() wrappers so services/tests can call them directly
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.config import Settings, get_settings
from ganamos.core.errors import (
    AuthenticationError, MockModeDisabledError, RateLimitExceededError,
)
from ganamos.core.rate_limiter import RATE_LIMITS, rate_limiter
from ganamos.infrastructure.database import get_db
from ganamos.services.alexa_auth import (
    TokenIdentity, extract_bearer_token, validate_access_token,
)

logger = logging.getLogger(__name__)

SESSION_COOKIE = "ganamos_session"
SESSION_TTL = timedelta(days=7)


def create_session_token(
    user_id: uuid.UUID | str, settings: Settings | None = None,
) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": "session",
        "iat": now,
        "exp": now + SESSION_TTL,
    }
    return jwt.encode(payload, settings.session_secret, algorithm="HS256")


def _read_session_token(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer "):].strip() or None
    return None


def decode_session_user(
    token: str | None, settings: Settings,
) -> uuid.UUID | None:
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=["HS256"])
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected session token: {e}")
        return None
    if payload.get("type") != "session":
        return None
    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        return None


async def get_optional_user_id(
    request: Request, settings: Settings = Depends(get_settings),
) -> uuid.UUID | None:
    return decode_session_user(_read_session_token(request), settings)


async def get_current_user_id(
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
) -> uuid.UUID:
    if user_id is None:
        raise AuthenticationError("Unauthorized")
    return user_id


def enforce_rate_limit(
    identifier: str, preset: str, message: str | None = None,
) -> None:
    result = rate_limiter.check(identifier, RATE_LIMITS[preset])
    if not result.allowed:
        logger.warning(
            f"Rate limit hit for {preset}",
            extra={"rate_limit_key": identifier, "preset": preset},
        )
        if message:
            raise RateLimitExceededError(result.retry_after(), message)
        raise RateLimitExceededError(result.retry_after())


async def require_mocks(settings: Settings = Depends(get_settings)) -> None:
    if not settings.use_mocks:
        raise MockModeDisabledError()


async def get_alexa_identity(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TokenIdentity:
    """Bearer access token issued by the Alexa linking flow."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        raise AuthenticationError("Missing authorization token")
    identity = await validate_access_token(db, settings, token)
    if identity is None:
        raise AuthenticationError("Invalid or expired token")
    return identity
