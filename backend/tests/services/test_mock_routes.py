"""Mock upstream routes — LND, GROQ, Sphinx, QR Server, and Maps look-alikes."""

import pytest

from ganamos.mocks.groq import mock_groq_store
from ganamos.mocks.qr import mock_qr_store


async def test_mock_routes_gated_by_setting(client, settings):
    settings.use_mocks = False
    for method, path in [
        ("POST", "/api/mock/lightning/v1/invoices"),
        ("GET", "/api/mock/maps/geocode"),
        ("GET", "/api/mock/qr-server/create-qr-code"),
    ]:
        resp = await client.request(method, path)
        assert resp.status_code == 403
        assert resp.json() == {
            "success": False, "error": "Mock mode is not enabled. Set USE_MOCKS=true",
        }


# ─── Lightning ───────────────────────────────────────────────────

async def test_invoice_pay_and_settle_flow(client):
    resp = await client.post(
        "/api/mock/lightning/v1/invoices", json={"value": 1000, "memo": "coffee"},
    )
    invoice = resp.json()
    assert invoice["payment_request"].startswith("lnbc10u1mock")
    assert invoice["add_index"] == "1"

    before = int((await client.get(
        "/api/mock/lightning/v1/balance/channels",
    )).json()["balance"])

    resp = await client.post(
        "/api/mock/lightning/v1/channels/transactions",
        json={"payment_request": invoice["payment_request"]},
    )
    assert resp.json()["payment_error"] == ""

    after = (await client.get("/api/mock/lightning/v1/balance/channels")).json()
    assert int(after["balance"]) == before + 1000
    assert after["local_balance"]["msat"] == str((before + 1000) * 1000)

    listing = (await client.get("/api/mock/settle-invoice")).json()
    assert listing["count"] == 1
    assert listing["invoices"][0]["settled"] is True
    assert listing["invoices"][0]["rHash"].endswith("...")


async def test_manual_settle(client):
    invoice = (await client.post(
        "/api/mock/lightning/v1/invoices", json={"value": 50},
    )).json()
    resp = await client.post("/api/mock/settle-invoice", json={"rHash": invoice["r_hash"]})
    body = resp.json()
    assert body["success"] is True
    assert body["invoice"]["settled"] is True
    assert body["invoice"]["value"] == 50

    resp = await client.post("/api/mock/settle-invoice", json={})
    assert resp.json()["error"] == "Missing rHash parameter"

    resp = await client.post("/api/mock/settle-invoice", json={"rHash": "ff" * 32})
    assert resp.status_code == 404
    assert resp.json()["rHash"] == "ff" * 32


@pytest.mark.parametrize("payment_request,error", [
    (None, "Missing payment_request"),
    ("bitcoin:abc", "Invalid BOLT11 invoice format"),
])
async def test_payment_errors_use_lnd_shape(client, payment_request, error):
    resp = await client.post(
        "/api/mock/lightning/v1/channels/transactions",
        json={"payment_request": payment_request},
    )
    assert resp.status_code == 400
    assert resp.json() == {"payment_error": error}


async def test_blockchain_balance(client):
    body = (await client.get("/api/mock/lightning/v1/balance/blockchain")).json()
    assert body["total_balance"] == body["confirmed_balance"]
    assert body["unconfirmed_balance"] == "0"


# ─── GROQ ────────────────────────────────────────────────────────

async def test_groq_completion_shape(client):
    resp = await client.post("/api/mock/groq/chat/completions", json={
        "model": "any",
        "messages": [{"role": "user", "content": [
            {"type": "text", "text": "ISSUE TITLE: Broken bench\nISSUE DESCRIPTION: Repaint it"},
            {"type": "image_url", "image_url": {"url": "https://img/before.jpg"}},
            {"type": "image_url", "image_url": {"url": "https://img/after.jpg"}},
        ]}],
    })
    body = resp.json()
    assert body["object"] == "chat.completion"
    assert body["id"].startswith("chatcmpl-mock-")
    content = body["choices"][0]["message"]["content"]
    assert content.startswith("CONFIDENCE: ")
    assert "\nREASONING: " in content

    record = mock_groq_store.all()[0]
    assert record.title == "Broken bench"
    assert record.description == "Repaint it"


async def test_groq_requires_user_message(client):
    resp = await client.post(
        "/api/mock/groq/chat/completions",
        json={"messages": [{"role": "system", "content": "hi"}]},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "No user message found"


# ─── Sphinx ──────────────────────────────────────────────────────

async def test_sphinx_broadcast(client):
    resp = await client.post("/api/mock/sphinx/action", json={
        "chat_pubkey": "02abcdef99", "bot_id": "bot", "bot_secret": "s",
        "content": "New job posted",
    })
    body = resp.json()
    assert body["success"] is True
    assert body["message_id"] == "sphinx-msg-1"
    assert body["chat_id"] == "sphinx-chat-02abcdef"


async def test_sphinx_validation(client):
    resp = await client.post("/api/mock/sphinx/action", json={"content": "x"})
    assert resp.json()["error"] == (
        "Missing required fields: chat_pubkey, bot_id, bot_secret, content"
    )
    resp = await client.post("/api/mock/sphinx/action", json={
        "chat_pubkey": "p", "bot_id": "b", "bot_secret": "s", "content": "c",
        "action": "shout",
    })
    assert resp.json()["error"] == 'Invalid action. Must be "broadcast" or "message"'

    resp = await client.get("/api/mock/sphinx/action")
    assert resp.status_code == 405


# ─── QR Server ───────────────────────────────────────────────────

async def test_qr_generate_stats_reset(client):
    resp = await client.get(
        "/api/mock/qr-server/create-qr-code", params={"data": "lnbc1", "size": "150x150"},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("image/svg+xml")
    assert "MOCK" in resp.text
    await client.get("/api/mock/qr-server/create-qr-code", params={"data": "lnbc1", "size": "150x150"})

    stats = (await client.post("/api/mock/qr-server/create-qr-code")).json()
    assert stats["stats"] == {"totalGenerated": 1, "cached": 1}
    assert stats["qrCodes"][0]["size"] == "150x150"

    resp = await client.delete("/api/mock/qr-server/create-qr-code")
    assert resp.json()["success"] is True
    assert mock_qr_store.stats() == {"totalGenerated": 0, "cached": 0}


async def test_qr_validation(client):
    resp = await client.get("/api/mock/qr-server/create-qr-code")
    assert resp.json()["error"] == "Missing required parameter: data"
    resp = await client.get(
        "/api/mock/qr-server/create-qr-code", params={"data": "x", "size": "big"},
    )
    assert resp.status_code == 400


# ─── Maps ────────────────────────────────────────────────────────

async def test_mock_distance_matrix_and_geocode(client):
    resp = await client.get("/api/mock/maps/distancematrix", params={
        "origins": "0,0", "destinations": "0.1,0", "mode": "driving",
    })
    assert resp.json()["rows"][0]["elements"][0]["duration"]["text"] == "13 min"

    resp = await client.get("/api/mock/maps/distancematrix", params={"origins": "0,0"})
    assert resp.status_code == 400
    assert resp.json() == {"status": "INVALID_REQUEST", "rows": []}

    resp = await client.get("/api/mock/maps/geocode", params={"latlng": "x,y"})
    assert resp.json() == {"status": "INVALID_REQUEST", "results": []}

    resp = await client.get("/api/mock/maps/geocode", params={"latlng": "0.01,0"})
    assert resp.json()["status"] == "OK"
