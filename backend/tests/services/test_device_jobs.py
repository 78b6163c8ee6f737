"""Device jobs — open-job listing and verification requests."""

import uuid

from sqlalchemy import select

from ganamos.core.domain_types import MemberRole
from ganamos.db.base import utcnow
from ganamos.models import Group, NotificationQueue, Post
from ganamos.services import notifications
from tests.services.seed import add_member, add_post, add_profile


async def test_jobs_require_device_id(client):
    resp = await client.get("/api/device/jobs")
    assert resp.status_code == 400


async def test_unknown_device(client):
    resp = await client.get(f"/api/device/jobs?deviceId={uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Device not found"


async def test_lists_group_and_assigned_jobs(client, test_db, profile, group, device):
    neighbor = await add_profile(test_db, "Neighbor")
    await add_member(test_db, group, neighbor)
    await add_post(test_db, neighbor, group, title="Sweep porch", reward=50)
    await add_post(test_db, neighbor, None, title="Walk dog", reward=80,
                   assigned_to=profile.id)
    await add_post(test_db, neighbor, group, title="Done already", fixed=True)
    await add_post(test_db, neighbor, group, title="Gone", deleted_at=utcnow())

    resp = await client.get(f"/api/device/jobs?deviceId={device.id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalCount"] == 2
    by_title = {job["title"]: job for job in body["jobs"]}
    assert set(by_title) == {"Sweep porch", "Walk dog"}
    assert by_title["Sweep porch"]["groupName"] == "Maple Street"
    assert by_title["Walk dog"]["groupName"] == "Assigned to you"
    assert body["jobs"][0]["title"] == "Walk dog"


async def test_job_complete_requires_job_id(client, device):
    resp = await client.post(f"/api/device/job-complete?deviceId={device.id}", json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Job ID required"


async def test_job_complete_unknown_job(client, device):
    resp = await client.post(
        f"/api/device/job-complete?deviceId={device.id}",
        json={"jobId": str(uuid.uuid4())},
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Job not found"


async def test_job_complete_queues_verification(client, test_db, profile, group, device):
    poster = await add_profile(test_db, "Poster", email="poster@example.com")
    await add_member(test_db, group, poster)
    co_admin = await add_profile(test_db, "Carol", email="carol@example.com")
    await add_member(test_db, group, co_admin, role=MemberRole.ADMIN)
    staff = await add_profile(test_db, "Staff", email="ops@ganamos.app")
    await add_member(test_db, group, staff, role=MemberRole.ADMIN)
    post = await add_post(test_db, poster, group, title="Fix gate", reward=300)

    resp = await client.post(
        f"/api/device/job-complete?deviceId={device.id}",
        json={"jobId": str(post.id)},
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True, "message": "Verification request sent to poster",
    }

    rows = (await test_db.execute(select(NotificationQueue))).scalars().all()
    assert {row.recipient_email for row in rows} == {
        "poster@example.com", "carol@example.com",
    }
    payload = rows[0].payload
    assert payload["issueTitle"] == "Fix gate"
    assert payload["fixerName"] == "Ana Owner"
    assert payload["verifyUrl"] == (
        f"https://ganamos.test/post/{post.id}?verify=true&fixer=ana"
    )

    await test_db.refresh(post)
    assert post.fixed is False and post.under_review is False


async def test_job_complete_survives_notification_failure(client, test_db, profile, group, device, monkeypatch):
    def enqueue_without_recipient(db, recipient_email, template, payload):
        row = NotificationQueue(recipient_email=None, template=template, payload=payload)
        db.add(row)
        return row

    monkeypatch.setattr(notifications, "enqueue", enqueue_without_recipient)
    poster = await add_profile(test_db, "Poster", email="poster@example.com")
    await add_member(test_db, group, poster)
    post = await add_post(test_db, poster, group, title="Oil hinge", reward=20)

    resp = await client.post(
        f"/api/device/job-complete?deviceId={device.id}",
        json={"jobId": str(post.id)},
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    rows = (await test_db.execute(select(NotificationQueue))).scalars().all()
    assert rows == []


async def test_job_complete_rejects_closed_jobs(client, test_db, profile, group, device):
    post = await add_post(test_db, profile, group, fixed=True)
    resp = await client.post(
        f"/api/device/job-complete?deviceId={device.id}",
        json={"jobId": str(post.id)},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Job already completed"


async def test_job_complete_requires_membership(client, test_db, device):
    stranger = await add_profile(test_db, "Stranger")
    other_group = Group(name="Elsewhere")
    test_db.add(other_group)
    await test_db.commit()
    post = await add_post(test_db, stranger, other_group)
    resp = await client.post(
        f"/api/device/job-complete?deviceId={device.id}",
        json={"jobId": str(post.id)},
    )
    assert resp.status_code == 403

    still_open = await test_db.get(Post, post.id)
    assert still_open.fixed is False
