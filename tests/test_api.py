from __future__ import annotations

import pytest

from src.gym_access.gym_access.container import AccessSettings, build_services
from src.gym_access.gym_access.core.exceptions import StoreError
from src.gym_access.gym_access.main import create_app


@pytest.fixture
def container(memberships_repo, attendance_repo, occupancy_repo, admissions_repo):
    return build_services(
        settings=AccessSettings(token_secret="api-test-secret"),
        memberships_repo=memberships_repo,
        attendance_repo=attendance_repo,
        occupancy_repo=occupancy_repo,
        admissions_repo=admissions_repo,
        autostart_rotation=False,
    )


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, member_id, *roles, name=None):
    with client.session_transaction() as sess:
        sess["member_id"] = member_id
        sess["roles"] = [r for r in roles] or ["member"]
        if name:
            sess["name"] = name


def renew(client, member_id="m1", **payload):
    body = {"plan_kind": "monthly", "payment_method": "cash"}
    body.update(payload)
    return client.post(f"/api/membership/{member_id}/renew", json=body)


def test_routes_require_a_session(client):
    assert client.get("/api/occupancy").status_code == 401
    assert client.post("/api/access/code").status_code == 401


def test_member_cannot_renew_or_scan(client):
    login(client, "m1")

    assert renew(client).status_code == 403
    assert client.post("/api/access/scan", json={"code": "x"}).status_code == 403


def test_staff_renewal_uses_suggested_price(client):
    login(client, "staff-1", "staff", name="Front Desk")

    resp = renew(client)

    assert resp.status_code == 201
    renewal = resp.get_json()["renewal"]
    assert renewal["amount"] == "550.00"
    assert renewal["currency"] == "MXN"
    assert renewal["staff_name"] == "Front Desk"

    status = client.get("/api/membership/m1").get_json()
    assert status["entitled"] is True
    assert status["membership"]["continuous_tenure_units"] == 1


def test_bad_renewal_payload(client):
    login(client, "staff-1", "staff")

    resp = renew(client, payment_method="barter")

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


@pytest.mark.parametrize("amount", ["1e30", "100000000"])
def test_oversized_amount_is_rejected_not_retried(client, container, amount):
    login(client, "staff-1", "staff")

    resp = renew(client, amount=amount)

    assert resp.status_code == 400
    assert "retryable" not in resp.get_json()
    assert container.memberships_repo.renewals == []


def test_renewal_store_outage_is_retryable(client, container):
    container.memberships_repo.fail_next_save = True
    login(client, "staff-1", "staff")

    resp = renew(client)

    assert resp.status_code == 503
    assert resp.get_json()["retryable"] is True


def test_member_sees_only_own_membership(client):
    login(client, "m1")

    assert client.get("/api/membership/m1").status_code == 200
    assert client.get("/api/membership/m2").status_code == 403
    assert client.get("/api/admin/renewals").status_code == 403


def test_code_session_and_scan_flow(client, container):
    login(client, "staff-1", "staff")
    assert renew(client, "m1").status_code == 201

    login(client, "m1")
    opened = client.post("/api/access/code")
    assert opened.status_code == 201
    token = opened.get_json()["token"]
    assert token
    assert client.get("/api/access/code").get_json()["token"] == token

    image = client.get("/api/access/code/image")
    assert image.status_code == 200
    assert image.mimetype == "image/png"

    login(client, "staff-1", "staff")
    resp = client.post("/api/access/scan", json={"code": token, "kind": "entry"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["status"] == "ACCEPTED"
    assert body["occupancy"]["count"] == 1
    assert container.occupancy_counter.current("main").count == 1

    login(client, "m1")
    assert client.delete("/api/access/code").get_json()["success"] is True
    assert client.get("/api/access/code").status_code == 404


def test_scan_outcomes_map_to_http_status(client, container):
    login(client, "staff-1", "staff")

    invalid = client.post("/api/access/scan", json={"code": "garbage"})
    inactive = client.post("/api/access/scan", json={"code": container.signer.issue_encoded("nobody")})
    missing = client.post("/api/access/scan", json={})

    assert invalid.status_code == 400
    assert invalid.get_json()["status"] == "INVALID_CODE"
    assert inactive.status_code == 403
    assert inactive.get_json()["status"] == "MEMBERSHIP_INACTIVE"
    assert missing.status_code == 400


def test_scan_store_outage_is_retryable(client, container, monkeypatch):
    login(client, "staff-1", "staff")
    renew(client, "m1")

    def boom(_event):
        raise StoreError("attendance store unavailable")

    monkeypatch.setattr(container.attendance_repo, "append", boom)
    resp = client.post("/api/access/scan", json={"code": container.signer.issue_encoded("m1")})

    assert resp.status_code == 503
    assert resp.get_json()["retryable"] is True


def test_manual_entry_and_attendance_views(client):
    login(client, "staff-1", "staff")
    renew(client, "m1")

    entry = client.post("/api/access/manual", json={"member_id": "m1", "kind": "entry"})
    exit_ = client.post("/api/access/manual", json={"member_id": "m1", "kind": "exit"})
    assert entry.status_code == 200
    assert exit_.get_json()["occupancy"]["count"] == 0

    login(client, "m1")
    history = client.get("/api/attendance/m1/history").get_json()
    calendar = client.get("/api/attendance/m1/calendar").get_json()
    stats = client.get("/api/attendance/m1/stats").get_json()

    assert [e["kind"] for e in history] == ["entry", "exit"]
    assert len(calendar) == 1
    assert stats["total_visit_days"] == 1
    assert client.get("/api/attendance/m2/stats").status_code == 403


def test_attendance_range_validation(client):
    login(client, "m1")

    assert client.get("/api/attendance/m1/history?start=2026-13-01").status_code == 400
    assert client.get("/api/attendance/m1/history?start=2026-02-10&end=2026-02-01").status_code == 400
    assert client.get("/api/attendance/m1/history?start=2024-01-01&end=2026-01-01").status_code == 400


def test_admin_feeds(client):
    login(client, "staff-1", "staff")
    renew(client, "m1")
    client.post("/api/access/manual", json={"member_id": "m1"})

    login(client, "boss", "admin")
    renewals = client.get("/api/admin/renewals").get_json()
    activity = client.get("/api/admin/activity?limit=5").get_json()

    assert [r["member_id"] for r in renewals] == ["m1"]
    assert [a["member_id"] for a in activity] == ["m1"]


def test_plans_and_occupancy(client):
    login(client, "m1")

    plans = client.get("/api/membership/plans").get_json()
    occupancy = client.get("/api/occupancy").get_json()

    assert [p["plan_kind"] for p in plans][:3] == ["weekly", "biweekly", "monthly"]
    assert occupancy["location_id"] == "main"
    assert occupancy["count"] == 0
    assert occupancy["level"] == "low"


def test_occupancy_stream_store_outage_is_retryable(client, container, monkeypatch):
    login(client, "m1")

    def boom(_location_id):
        raise StoreError("occupancy store unavailable")

    monkeypatch.setattr(container.occupancy_repo, "get", boom)
    resp = client.get("/api/occupancy/main/stream")

    assert resp.status_code == 503
    assert resp.get_json()["retryable"] is True
    assert resp.mimetype == "application/json"
