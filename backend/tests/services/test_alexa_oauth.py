"""Alexa account linking — authorize redirects, token grants, complete-linking."""

from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

from sqlalchemy import select

from ganamos.db.base import utcnow
from ganamos.models import AlexaAuthCode, AlexaLinkedAccount, Group
from ganamos.services.alexa_auth import generate_authorization_code
from tests.services.seed import ALEXA_CLIENT_ID

REDIRECT_URI = "https://pitangui.amazon.com/api/skill/link/M2AAAAAAAAAA?src=ask"


def authorize_params(**overrides):
    params = {
        "client_id": ALEXA_CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "state": "xyz",
    }
    params.update(overrides)
    return {k: v for k, v in params.items() if v is not None}


def query_of(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


async def token_request(client, **form):
    form.setdefault("client_id", ALEXA_CLIENT_ID)
    resp = await client.post("/api/alexa/token", data=form)
    return resp, resp.json()


async def get_code(client, auth_headers):
    resp = await client.get(
        "/api/alexa/authorize", params=authorize_params(), headers=auth_headers,
    )
    return query_of(resp.headers["location"])["code"]


# ─── /authorize ──────────────────────────────────────────────────

async def test_authorize_validates_params(client):
    resp = await client.get("/api/alexa/authorize", params=authorize_params(client_id=None))
    assert resp.status_code == 400
    assert resp.json() == {
        "error": "invalid_request",
        "error_description": "Missing required OAuth parameters",
    }

    resp = await client.get("/api/alexa/authorize", params=authorize_params(response_type="token"))
    assert resp.json()["error"] == "unsupported_response_type"

    resp = await client.get("/api/alexa/authorize", params=authorize_params(client_id="evil"))
    assert resp.json() == {"error": "invalid_client", "error_description": "Invalid client_id"}


async def test_authorize_without_session_redirects_to_login(client):
    resp = await client.get("/api/alexa/authorize", params=authorize_params())
    assert resp.status_code == 307
    location = resp.headers["location"]
    assert location.startswith("/auth/alexa-login?")
    assert query_of(location) == {
        "client_id": ALEXA_CLIENT_ID, "redirect_uri": REDIRECT_URI, "state": "xyz",
    }

    cookie = resp.headers["set-cookie"].lower()
    assert cookie.startswith("alexa_oauth_params=")
    assert "max-age=600" in cookie
    assert "httponly" in cookie
    assert "samesite=lax" in cookie
    assert "secure" not in cookie


async def test_authorize_with_session_issues_code(client, test_db, profile, auth_headers):
    resp = await client.get(
        "/api/alexa/authorize", params=authorize_params(), headers=auth_headers,
    )
    assert resp.status_code == 307
    location = resp.headers["location"]
    assert location.startswith("https://pitangui.amazon.com/api/skill/link/")
    params = query_of(location)
    assert params["src"] == "ask"
    assert params["state"] == "xyz"

    row = (await test_db.execute(
        select(AlexaAuthCode).where(AlexaAuthCode.code == params["code"]),
    )).scalar_one()
    assert row.user_id == profile.id
    assert row.used_at is None


# ─── /token ──────────────────────────────────────────────────────

async def test_code_exchange_is_single_use(client, auth_headers):
    code = await get_code(client, auth_headers)
    resp, body = await token_request(
        client, grant_type="authorization_code", code=code, redirect_uri=REDIRECT_URI,
    )
    assert resp.status_code == 200
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 3600
    assert body["access_token"] and body["refresh_token"]

    resp, body = await token_request(
        client, grant_type="authorization_code", code=code, redirect_uri=REDIRECT_URI,
    )
    assert resp.status_code == 400
    assert body == {
        "error": "invalid_grant",
        "error_description": "Invalid or expired authorization code",
    }


async def test_code_bound_to_redirect_uri(client, auth_headers):
    code = await get_code(client, auth_headers)
    _, body = await token_request(
        client, grant_type="authorization_code", code=code,
        redirect_uri="https://attacker.example/cb",
    )
    assert body["error"] == "invalid_grant"


async def test_expired_code_rejected(client, test_db, profile):
    code = await generate_authorization_code(
        test_db, user_id=profile.id, client_id=ALEXA_CLIENT_ID, redirect_uri=REDIRECT_URI,
    )
    row = (await test_db.execute(
        select(AlexaAuthCode).where(AlexaAuthCode.code == code),
    )).scalar_one()
    row.expires_at = utcnow() - timedelta(seconds=1)
    await test_db.commit()

    _, body = await token_request(
        client, grant_type="authorization_code", code=code, redirect_uri=REDIRECT_URI,
    )
    assert body["error"] == "invalid_grant"


async def test_token_request_validation(client):
    resp, body = await token_request(client, code="x")
    assert body == {"error": "invalid_request", "error_description": "Missing required parameters"}

    resp, body = await token_request(client, grant_type="authorization_code")
    assert body["error_description"] == "Missing code or redirect_uri"

    resp, body = await token_request(client, grant_type="refresh_token")
    assert body["error_description"] == "Missing refresh_token"

    resp, body = await token_request(client, grant_type="password")
    assert resp.status_code == 400
    assert body == {
        "error": "unsupported_grant_type",
        "error_description": 'Grant type "password" is not supported',
    }

    resp, body = await token_request(client, grant_type="password", client_id="evil")
    assert resp.status_code == 401
    assert body["error"] == "invalid_client"


async def test_client_secret_via_basic_auth(client, settings, auth_headers):
    settings.alexa_client_secret = "s3cret"
    code = await get_code(client, auth_headers)
    form = {"grant_type": "authorization_code", "code": code, "redirect_uri": REDIRECT_URI}

    resp = await client.post("/api/alexa/token", data=form, auth=(ALEXA_CLIENT_ID, "wrong"))
    assert resp.status_code == 401
    assert resp.json()["error_description"] == "Invalid client credentials"

    resp = await client.post("/api/alexa/token", data=form, auth=(ALEXA_CLIENT_ID, "s3cret"))
    assert resp.status_code == 200


async def test_refresh_rotates_tokens(client, test_db, profile, auth_headers):
    code = await get_code(client, auth_headers)
    _, first = await token_request(
        client, grant_type="authorization_code", code=code, redirect_uri=REDIRECT_URI,
    )
    resp, second = await token_request(
        client, grant_type="refresh_token", refresh_token=first["refresh_token"],
    )
    assert resp.status_code == 200
    assert second["access_token"] != first["access_token"]

    _, replay = await token_request(
        client, grant_type="refresh_token", refresh_token=first["refresh_token"],
    )
    assert replay == {
        "error": "invalid_grant", "error_description": "Invalid or expired refresh token",
    }

    resp = await client.get(
        "/api/alexa/balance",
        headers={"Authorization": f"Bearer {first['access_token']}"},
    )
    assert resp.status_code == 401
    resp = await client.get(
        "/api/alexa/balance",
        headers={"Authorization": f"Bearer {second['access_token']}"},
    )
    assert resp.json() == {"success": True, "balance": 5000, "name": "Ana Owner"}


async def test_access_token_is_not_a_refresh_token(client, auth_headers):
    code = await get_code(client, auth_headers)
    _, pair = await token_request(
        client, grant_type="authorization_code", code=code, redirect_uri=REDIRECT_URI,
    )
    _, body = await token_request(
        client, grant_type="refresh_token", refresh_token=pair["access_token"],
    )
    assert body["error"] == "invalid_grant"


# ─── /complete-linking ───────────────────────────────────────────

async def test_complete_linking_validation(client, group, auth_headers):
    resp = await client.post("/api/alexa/complete-linking", json={}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required parameters"

    body = {"groupId": str(group.id), "clientId": "evil", "redirectUri": REDIRECT_URI}
    resp = await client.post("/api/alexa/complete-linking", json=body, headers=auth_headers)
    assert resp.json()["error"] == "Invalid client ID"

    body["clientId"] = ALEXA_CLIENT_ID
    resp = await client.post("/api/alexa/complete-linking", json=body)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Not authenticated"


async def test_complete_linking_requires_membership(client, test_db, auth_headers):
    elsewhere = Group(name="Elsewhere")
    test_db.add(elsewhere)
    await test_db.commit()
    resp = await client.post("/api/alexa/complete-linking", json={
        "groupId": str(elsewhere.id), "clientId": ALEXA_CLIENT_ID,
        "redirectUri": REDIRECT_URI,
    }, headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "You are not a member of this group"


async def test_complete_linking_selects_group(client, test_db, profile, group, auth_headers):
    resp = await client.post("/api/alexa/complete-linking", json={
        "groupId": str(group.id), "clientId": ALEXA_CLIENT_ID,
        "redirectUri": REDIRECT_URI, "state": "st8",
    }, headers=auth_headers)
    assert resp.status_code == 200
    params = query_of(resp.json()["redirectUrl"])
    assert params["state"] == "st8"

    _, pair = await token_request(
        client, grant_type="authorization_code", code=params["code"],
        redirect_uri=REDIRECT_URI,
    )
    account = (await test_db.execute(
        select(AlexaLinkedAccount).where(AlexaLinkedAccount.user_id == profile.id),
    )).scalar_one()
    assert account.selected_group_id == group.id
    assert account.access_token == pair["access_token"]

    resp = await client.get(
        "/api/alexa/jobs", headers={"Authorization": f"Bearer {pair['access_token']}"},
    )
    assert resp.json()["groupName"] == "Maple Street"

