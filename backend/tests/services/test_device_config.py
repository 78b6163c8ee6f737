"""Device config polling — earnings sync, banners, new-job alerts, rejections."""

import uuid

from ganamos.core.device_messages import POLL_INTERVAL_SECONDS
from ganamos.models import BitcoinPrice, Transaction
from tests.services.seed import add_post


async def poll(client, **params):
    resp = await client.get("/api/device/config", params=params)
    return resp, resp.json()


async def test_requires_identifier(client):
    resp, body = await poll(client)
    assert resp.status_code == 400
    assert body["error"] == "Device ID or pairing code required"


async def test_unknown_device(client):
    resp, body = await poll(client, deviceId=str(uuid.uuid4()))
    assert resp.status_code == 404
    assert body["error"] == "Device not found or not paired"


async def test_config_payload_and_no_cache_headers(client, profile, device, settings):
    resp, body = await poll(client, deviceId=str(device.id))
    assert resp.status_code == 200
    assert resp.headers["cache-control"].startswith("no-store")
    assert resp.headers["pragma"] == "no-cache"
    assert resp.headers["expires"] == "0"

    config = body["config"]
    assert config["deviceId"] == str(device.id)
    assert config["petName"] == "Biscuit"
    assert config["userName"] == "Ana Owner"
    assert config["balance"] == 5000
    assert config["coins"] == 0
    assert config["pollInterval"] == POLL_INTERVAL_SECONDS
    assert config["serverUrl"] == settings.app_url
    assert config["petFeedCost"] == 100
    assert config["btcPrice"] is None
    assert config["hasNewJob"] is False
    assert "lastRejectionId" not in config


async def test_lookup_by_pairing_code(client, device):
    _, body = await poll(client, pairingCode="ABC123")
    assert body["config"]["deviceId"] == str(device.id)


async def test_earnings_credited_once(client, test_db, profile, device):
    test_db.add(Transaction(
        user_id=profile.id, type="deposit", amount=500, status="completed",
    ))
    test_db.add(Transaction(
        user_id=profile.id, type="withdrawal", amount=-200, status="completed",
    ))
    test_db.add(Transaction(
        user_id=profile.id, type="deposit", amount=900, status="pending",
    ))
    await test_db.commit()

    _, first = await poll(client, deviceId=str(device.id))
    assert first["config"]["coinsEarnedSinceLastSync"] == 500
    assert first["config"]["coins"] == 500

    _, second = await poll(client, deviceId=str(device.id))
    assert second["config"]["coinsEarnedSinceLastSync"] == 0
    assert second["config"]["coins"] == 500


async def test_fix_reward_banner(client, test_db, profile, device):
    test_db.add(Transaction(
        user_id=profile.id, type="internal", amount=250, status="completed",
        memo="Fix reward earned: Broken swing",
    ))
    await test_db.commit()
    _, body = await poll(client, deviceId=str(device.id))
    config = body["config"]
    assert config["lastMessageType"] == "fix"
    assert config["lastPostTitle"] == "Broken swing"
    assert config["lastMessage"] == "Fix reward earned: Broken swing"


async def test_latest_btc_price(client, test_db, device):
    test_db.add(BitcoinPrice(price=64000.5, currency="USD", source="test"))
    await test_db.commit()
    _, body = await poll(client, deviceId=str(device.id))
    assert body["config"]["btcPrice"] == 64000.5


async def test_new_job_notified_once(client, test_db, profile, group, device):
    await add_post(
        test_db, profile, group, title="Repaint the community mailbox", reward=700,
    )
    _, first = await poll(client, deviceId=str(device.id))
    assert first["config"]["hasNewJob"] is True
    assert first["config"]["newJobTitle"].endswith("..")
    assert len(first["config"]["newJobTitle"]) <= 25
    assert first["config"]["newJobReward"] == 700

    _, second = await poll(client, deviceId=str(device.id))
    assert second["config"]["hasNewJob"] is False
    assert second["config"]["newJobTitle"] is None


async def test_rejection_keys(client, test_db, device):
    device.last_rejection_id = uuid.uuid4()
    device.rejection_message = '"Bench" was rejected'
    await test_db.commit()
    _, body = await poll(client, deviceId=str(device.id))
    config = body["config"]
    assert config["lastRejectionId"] == str(device.last_rejection_id)
    assert config["rejectionMessage"] == '"Bench" was rejected'
    assert config["rejectionPostTitle"] == "Bench"


async def test_config_rate_limited(client, device):
    for _ in range(10):
        resp, _ = await poll(client, deviceId=str(device.id))
        assert resp.status_code == 200
    resp, body = await poll(client, deviceId=str(device.id))
    assert resp.status_code == 429
    assert body["error"] == "Rate limit exceeded. Please try again later."
