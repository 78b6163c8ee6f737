"""Wallet — internal transfers, connected accounts, and child-account creation."""

import pytest
from sqlalchemy import select

from ganamos.core.rate_limiter import RATE_LIMITS, rate_limiter
from ganamos.models import Activity, ConnectedAccount, NotificationQueue, Profile, Transaction
from ganamos.services.wallet import parse_sats, username_base
from tests.services.seed import add_profile


@pytest.fixture
async def bea(test_db):
    return await add_profile(
        test_db, "Bea Fixer", email="bea@example.com", balance=200, username="bea",
    )


async def test_transfer_requires_session(client):
    resp = await client.post("/api/wallet/transfer", json={"toUsername": "bea", "amount": 5})
    assert resp.status_code == 401


async def test_transfer_moves_sats(client, test_db, profile, bea, auth_headers):
    resp = await client.post(
        "/api/wallet/transfer", json={"toUsername": "bea", "amount": 1200},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["receiver_name"] == "Bea Fixer"
    assert body["receiver_id"] == str(bea.id)

    await test_db.refresh(profile)
    await test_db.refresh(bea)
    assert profile.balance == 3800
    assert bea.balance == 1400

    txs = (await test_db.execute(
        select(Transaction).order_by(Transaction.amount),
    )).scalars().all()
    assert [(tx.user_id, tx.amount, tx.memo) for tx in txs] == [
        (profile.id, -1200, "Transfer to Bea Fixer"),
        (bea.id, 1200, "Transfer from Ana Owner"),
    ]
    assert {str(tx.id) for tx in txs} == {body["sender_tx_id"], body["receiver_tx_id"]}

    activities = (await test_db.execute(select(Activity))).scalars().all()
    assert {(a.user_id, a.type, a.details["amount"]) for a in activities} == {
        (profile.id, "internal", -1200), (bea.id, "internal", 1200),
    }

    queued = (await test_db.execute(select(NotificationQueue))).scalars().all()
    assert {(row.recipient_email, row.template) for row in queued} == {
        ("ana@example.com", "bitcoin_sent"), ("bea@example.com", "bitcoin_received"),
    }


async def test_transfer_keeps_custom_memo(client, test_db, bea, auth_headers):
    resp = await client.post(
        "/api/wallet/transfer",
        json={"toUsername": "bea", "amount": "25", "memo": "Thanks for the gate"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    memos = (await test_db.execute(select(Transaction.memo))).scalars().all()
    assert memos == ["Thanks for the gate", "Thanks for the gate"]


@pytest.mark.parametrize("payload,status,error", [
    ({"amount": 5}, 400, "Invalid recipient username"),
    ({"toUsername": 7, "amount": 5}, 400, "Invalid recipient username"),
    ({"toUsername": "bea", "amount": 0}, 400, "Invalid amount"),
    ({"toUsername": "bea", "amount": "lots"}, 400, "Invalid amount"),
    ({"toUsername": "bea", "amount": 2.5}, 400, "Invalid amount"),
    ({"toUsername": "ghost", "amount": 5}, 404,
     'User not found: No user with username "ghost"'),
    ({"toUsername": "ana", "amount": 5}, 400, "Cannot transfer to yourself"),
    ({"toUsername": "bea", "amount": 5001}, 400, "Insufficient balance"),
])
async def test_transfer_validation(client, test_db, bea, auth_headers, payload, status, error):
    resp = await client.post("/api/wallet/transfer", json=payload, headers=auth_headers)
    assert resp.status_code == status
    assert resp.json() == {"success": False, "error": error}
    txs = (await test_db.execute(select(Transaction))).scalars().all()
    assert txs == []


async def test_transfer_from_connected_account(client, test_db, profile, bea, auth_headers):
    kid = await add_profile(test_db, "Kid", balance=60, username="kid")
    test_db.add(ConnectedAccount(primary_user_id=profile.id, connected_user_id=kid.id))
    await test_db.commit()

    resp = await client.post(
        "/api/wallet/transfer",
        json={"fromUserId": str(kid.id), "toUsername": "bea", "amount": 60},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    await test_db.refresh(kid)
    await test_db.refresh(profile)
    assert kid.balance == 0
    assert profile.balance == 5000


async def test_transfer_from_unconnected_account_is_forbidden(client, test_db, bea, auth_headers):
    resp = await client.post(
        "/api/wallet/transfer",
        json={"fromUserId": str(bea.id), "toUsername": "ana", "amount": 10},
        headers=auth_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == (
        "You can only transfer from your own account or connected accounts"
    )
    await test_db.refresh(bea)
    assert bea.balance == 200


async def test_transfer_rate_limited_per_minute(client, profile, auth_headers):
    for _ in range(10):
        resp = await client.post("/api/wallet/transfer", json={}, headers=auth_headers)
        assert resp.status_code == 400
    resp = await client.post("/api/wallet/transfer", json={}, headers=auth_headers)
    assert resp.status_code == 429
    body = resp.json()
    assert body["error"] == "Too many transfer attempts. Please wait before trying again."
    assert body["retryAfter"] > 0


async def test_transfer_hourly_limit(client, profile, auth_headers):
    for _ in range(30):
        rate_limiter.check(f"transfer-hourly:{profile.id}", RATE_LIMITS["WALLET_TRANSFER_HOURLY"])
    resp = await client.post("/api/wallet/transfer", json={}, headers=auth_headers)
    assert resp.status_code == 429
    assert resp.json()["error"] == "Hourly transfer limit reached. Please try again later."


# ─── Child accounts ──────────────────────────────────────────────

async def test_create_child_account(client, test_db, profile, auth_headers):
    resp = await client.post(
        "/api/child-account",
        json={"username": "Little Ana!", "avatarUrl": "/avatars/fox.png"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Child account created successfully"
    child = body["profile"]
    assert child["name"] == "Little Ana!"
    assert child["username"] == "little-ana"
    assert child["email"].endswith("@ganamos.app")
    assert child["balance"] == 0

    link = (await test_db.execute(select(ConnectedAccount))).scalar_one()
    assert link.primary_user_id == profile.id
    assert str(link.connected_user_id) == child["id"]


async def test_child_username_collision_gets_suffix(client, test_db, profile, auth_headers):
    await add_profile(test_db, "Existing", username="bea")
    resp = await client.post(
        "/api/child-account", json={"username": "Bea", "avatarUrl": "/a.png"},
        headers=auth_headers,
    )
    username = resp.json()["profile"]["username"]
    assert username.startswith("bea-") and len(username) == len("bea-") + 4
    usernames = (await test_db.execute(select(Profile.username))).scalars().all()
    assert usernames.count(username) == 1


async def test_child_account_requires_username_and_avatar(client, auth_headers):
    resp = await client.post(
        "/api/child-account", json={"username": "Kid"}, headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Username and avatar are required"


async def test_child_account_requires_session(client):
    resp = await client.post(
        "/api/child-account", json={"username": "Kid", "avatarUrl": "/a.png"},
    )
    assert resp.status_code == 401


def test_parse_sats():
    assert parse_sats(5) == 5
    assert parse_sats(" 12 ") == 12
    assert parse_sats(3.0) == 3
    assert parse_sats(True) is None
    assert parse_sats(-4) is None
    assert parse_sats(None) is None


def test_username_base():
    assert username_base("Mary Jane Watson-Parker") == "mary-jane-watson"
    assert username_base("???") == "child"
