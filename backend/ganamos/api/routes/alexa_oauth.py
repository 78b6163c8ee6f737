"""Alexa Account Linking — OAuth 2.0 authorization-code flow for the voice skill.

Invariants:
    - /authorize without a web session redirects to the login page and parks the
      OAuth params in the `alexa_oauth_params` cookie for 10 minutes
    - /token errors use the RFC 6749 shape {error, error_description}
    - Client credentials are read from the form body first, then HTTP Basic
    - A configured client secret must match exactly; without one only the
      client id is checked

Design Decisions:
    - Redirect targets are built with httpx.URL so existing query params on the
      redirect_uri survive
"""

import json
import logging
import uuid
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ganamos.api.dependencies import get_optional_user_id
from ganamos.config import Settings, get_settings
from ganamos.core.errors import (
    AuthenticationError, InvalidRequestError, OAuthError, PermissionDeniedError,
)
from ganamos.infrastructure.database import get_db
from ganamos.schemas.alexa import CompleteLinkingRequest
from ganamos.services.alexa_auth import (
    exchange_code,
    generate_authorization_code,
    get_linked_account,
    refresh_tokens,
    update_selected_group,
    validate_client_id,
)
from ganamos.services.lookups import get_membership

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/alexa", tags=["alexa-oauth"])

OAUTH_PARAMS_COOKIE = "alexa_oauth_params"
OAUTH_PARAMS_MAX_AGE = 600
LOGIN_PATH = "/auth/alexa-login"

basic_auth = HTTPBasic(auto_error=False)


def _redirect_with(redirect_uri: str, params: dict[str, str | None]) -> str:
    clean = {k: v for k, v in params.items() if v}
    return str(httpx.URL(redirect_uri).copy_merge_params(clean))


@router.get("/authorize")
async def authorize(
    client_id: str | None = Query(None),
    redirect_uri: str | None = Query(None),
    response_type: str | None = Query(None),
    state: str | None = Query(None),
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not (client_id and redirect_uri and response_type):
        raise OAuthError("invalid_request", "Missing required OAuth parameters")
    if response_type != "code":
        raise OAuthError(
            "unsupported_response_type",
            'Invalid response_type. Only "code" is supported.',
        )
    if not validate_client_id(client_id, settings):
        raise OAuthError("invalid_client", "Invalid client_id")

    if user_id is None:
        params = {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "state": state or "",
        }
        logger.info("Alexa authorize without session, redirecting to login")
        response = RedirectResponse(f"{LOGIN_PATH}?{urlencode(params)}")
        response.set_cookie(
            OAUTH_PARAMS_COOKIE,
            json.dumps(params),
            max_age=OAUTH_PARAMS_MAX_AGE,
            path="/",
            httponly=True,
            secure=settings.environment == "production",
            samesite="lax",
        )
        return response

    try:
        code = await generate_authorization_code(
            db,
            user_id=user_id,
            client_id=client_id,
            redirect_uri=redirect_uri,
            state=state,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to generate authorization code: {e}", exc_info=True)
        return RedirectResponse(_redirect_with(redirect_uri, {
            "error": "server_error",
            "error_description": "Failed to generate authorization code",
            "state": state,
        }))
    return RedirectResponse(
        _redirect_with(redirect_uri, {"code": code, "state": state}),
    )


@router.post("/token")
async def token(
    grant_type: str | None = Form(None),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    refresh_token: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    credentials: HTTPBasicCredentials | None = Depends(basic_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    client_id = client_id or (credentials.username if credentials else "")
    client_secret = client_secret or (credentials.password if credentials else "")

    if not grant_type or not client_id:
        raise OAuthError("invalid_request", "Missing required parameters")
    if not validate_client_id(client_id, settings):
        logger.warning("Alexa token request with unknown client_id")
        raise OAuthError("invalid_client", "Invalid client credentials", 401)
    if settings.alexa_client_secret and client_secret != settings.alexa_client_secret:
        logger.warning("Alexa token request with wrong client_secret")
        raise OAuthError("invalid_client", "Invalid client credentials", 401)

    if grant_type == "authorization_code":
        if not code or not redirect_uri:
            raise OAuthError("invalid_request", "Missing code or redirect_uri")
        pair = await exchange_code(db, settings, code, client_id, redirect_uri)
        if pair is None:
            raise OAuthError(
                "invalid_grant", "Invalid or expired authorization code",
            )
        logger.info("Alexa tokens issued for authorization code")
        return pair.to_response()

    if grant_type == "refresh_token":
        if not refresh_token:
            raise OAuthError("invalid_request", "Missing refresh_token")
        pair = await refresh_tokens(db, settings, refresh_token)
        if pair is None:
            raise OAuthError("invalid_grant", "Invalid or expired refresh token")
        return pair.to_response()

    raise OAuthError(
        "unsupported_grant_type", f'Grant type "{grant_type}" is not supported',
    )


@router.post("/complete-linking")
async def complete_linking(
    body: CompleteLinkingRequest,
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not (body.group_id and body.client_id and body.redirect_uri):
        raise InvalidRequestError("Missing required parameters")
    if not validate_client_id(body.client_id, settings):
        raise InvalidRequestError("Invalid client ID")
    if user_id is None:
        raise AuthenticationError("Not authenticated")
    if await get_membership(db, body.group_id, user_id) is None:
        raise PermissionDeniedError("You are not a member of this group")

    if await get_linked_account(db, user_id) is not None:
        await update_selected_group(db, user_id, body.group_id)

    code = await generate_authorization_code(
        db,
        user_id=user_id,
        client_id=body.client_id,
        redirect_uri=body.redirect_uri,
        state=body.state,
        selected_group_id=body.group_id,
    )
    return {
        "success": True,
        "redirectUrl": _redirect_with(
            body.redirect_uri, {"code": code, "state": body.state},
        ),
    }
