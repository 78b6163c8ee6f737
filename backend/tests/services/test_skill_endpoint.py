"""Skill endpoint — envelopes in, speech out, voice API reached over HTTP."""

import pytest
from httpx import ASGITransport

from ganamos.api.routes.alexa_skill import get_client_factory
from ganamos.main import app
from ganamos.skill.client import GanamosClient
from ganamos.skill.handlers import LINK_ACCOUNT_SPEECH, TROUBLE_SPEECH
from tests.services.seed import add_post


@pytest.fixture
def in_app_clients(client):
    """Route the skill's API client back into the app under test."""
    def factory(access_token):
        return GanamosClient(
            "http://test/api/alexa", access_token,
            transport=ASGITransport(app=app),
        )
    app.dependency_overrides[get_client_factory] = lambda: factory
    return factory


def intent_envelope(intent, token=None):
    user = {"userId": "amzn1.ask.account.X"}
    if token:
        user["accessToken"] = token
    return {
        "version": "1.0",
        "session": {"attributes": {}},
        "context": {"System": {"user": user}},
        "request": {"type": "IntentRequest", "intent": {"name": intent, "slots": {}}},
    }


def token_of(headers):
    return headers["Authorization"].removeprefix("Bearer ")


async def test_unlinked_user_gets_link_card(client, in_app_clients):
    resp = await client.post("/api/alexa/skill", json=intent_envelope("CheckBalanceIntent"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["version"] == "1.0"
    assert body["response"]["card"] == {"type": "LinkAccount"}
    assert LINK_ACCOUNT_SPEECH in body["response"]["outputSpeech"]["ssml"]


async def test_check_balance_through_voice_api(client, in_app_clients, alexa_headers):
    resp = await client.post(
        "/api/alexa/skill",
        json=intent_envelope("CheckBalanceIntent", token_of(alexa_headers)),
    )
    assert resp.status_code == 200
    ssml = resp.json()["response"]["outputSpeech"]["ssml"]
    assert ssml.startswith("<speak>You have 5,000 sats.")


async def test_list_jobs_through_voice_api(client, test_db, in_app_clients, profile, group, alexa_headers):
    await add_post(test_db, profile, group, title="Sweep porch", reward=50)
    resp = await client.post(
        "/api/alexa/skill",
        json=intent_envelope("ListJobsIntent", token_of(alexa_headers)),
    )
    body = resp.json()
    assert "There is 1 open job in Maple Street." in body["response"]["outputSpeech"]["ssml"]
    assert "Sweep porch for 50 sats" in body["response"]["outputSpeech"]["ssml"]
    assert body["sessionAttributes"]["jobs"][0]["title"] == "Sweep porch"


async def test_rejected_token_is_spoken_as_trouble(client, in_app_clients, profile):
    resp = await client.post(
        "/api/alexa/skill",
        json=intent_envelope("CheckBalanceIntent", "stale-token"),
    )
    assert resp.status_code == 200
    assert TROUBLE_SPEECH in resp.json()["response"]["outputSpeech"]["ssml"]
