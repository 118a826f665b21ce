"""API tests: notification routes and server config, against a throwaway SQLite file."""
from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from spares.api.deps import get_clock
from spares.core.constants import NOTIFICATION_IN_PROGRESS, NOTIFICATION_STOPPED, STATUS_FILLED
from spares.db.session import get_db
from spares.main import app
from spares.models import SpareRequest
from spares.services.clock import as_utc
from spares.services.notification_queue import build_notification_queue

from conftest import T0


@pytest.fixture()
def client(session_factory, clock):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def request_in_progress(db, clock, set_now, make_member, make_request):
    set_now(T0)
    rita = make_member("Rita")
    ann = make_member("Ann")
    ben = make_member("Ben")
    spare_request = make_request(rita)
    build_notification_queue(db, spare_request, [ann.id, ben.id], clock=clock)
    return spare_request, (rita, ann, ben)


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    # NOTIFICATION_PROCESSOR_ENABLED=false in tests
    assert body["notification_processor"] == "stopped"


class TestNotificationStatus:
    def test_progress(self, client, request_in_progress):
        spare_request, _ = request_in_progress
        res = client.get(f"/spares/{spare_request.id}/notification-status")
        assert res.status_code == 200
        body = res.json()
        assert body["notification_status"] == NOTIFICATION_IN_PROGRESS
        assert body["total_members"] == 2
        assert body["notified_members"] == 0

    def test_unknown_request(self, client):
        assert client.get("/spares/999/notification-status").status_code == 404


class TestPauseUnpause:
    def test_pause_then_unpause(self, client, db, set_now, request_in_progress):
        spare_request, _ = request_in_progress
        assert client.post(f"/spares/{spare_request.id}/pause-notifications").json() == {"success": True}
        db.expire_all()
        assert db.get(SpareRequest, spare_request.id).notification_paused is True

        set_now(T0 + timedelta(minutes=5))
        assert client.post(f"/spares/{spare_request.id}/unpause-notifications").status_code == 200
        db.expire_all()
        row = db.get(SpareRequest, spare_request.id)
        assert row.notification_paused is False
        assert as_utc(row.next_notification_at) == T0 + timedelta(minutes=5)

    def test_pause_not_started_is_400(self, client, set_now, make_member, make_request):
        set_now(T0)
        spare_request = make_request(make_member("Rita"))
        res = client.post(f"/spares/{spare_request.id}/pause-notifications")
        assert res.status_code == 400
        assert "not in progress" in res.json()["detail"]


class TestRestart:
    def test_restart_after_stop(self, client, db, request_in_progress):
        spare_request, (_, ann, ben) = request_in_progress
        row = db.get(SpareRequest, spare_request.id)
        row.notification_status = NOTIFICATION_STOPPED
        db.commit()

        res = client.post(f"/spares/{spare_request.id}/restart-notifications", json={"member_ids": [ben.id, ann.id]})
        assert res.status_code == 200
        body = res.json()
        assert body["notifications_queued"] == 2
        assert body["notification_generation"] == 1
        assert body["notification_status"] == NOTIFICATION_IN_PROGRESS

    def test_restart_in_progress_is_400(self, client, request_in_progress):
        spare_request, (_, ann, _) = request_in_progress
        res = client.post(f"/spares/{spare_request.id}/restart-notifications", json={"member_ids": [ann.id]})
        assert res.status_code == 400


class TestFillCancel:
    def test_fill(self, client, db, request_in_progress):
        spare_request, (_, ann, _) = request_in_progress
        res = client.post(f"/spares/{spare_request.id}/fill", json={"member_id": ann.id})
        assert res.status_code == 200
        assert res.json()["status"] == STATUS_FILLED
        db.expire_all()
        assert db.get(SpareRequest, spare_request.id).notification_status == NOTIFICATION_STOPPED

    def test_cancel_after_fill_is_400(self, client, request_in_progress):
        spare_request, (rita, ann, _) = request_in_progress
        client.post(f"/spares/{spare_request.id}/fill", json={"member_id": ann.id})
        res = client.post(f"/spares/{spare_request.id}/cancel", json={"member_id": rita.id})
        assert res.status_code == 400

    def test_invalid_member_id_is_422(self, client, request_in_progress):
        spare_request, _ = request_in_progress
        assert client.post(f"/spares/{spare_request.id}/cancel", json={"member_id": 0}).status_code == 422


class TestConfig:
    def test_defaults_without_row(self, client):
        body = client.get("/config").json()
        assert body["notification_delay_seconds"] == 180
        assert body["test_current_time"] is None

    def test_patch_delay_keeps_override(self, client, set_now):
        set_now(T0)
        body = client.patch("/config", json={"notification_delay_seconds": 30}).json()
        assert body["notification_delay_seconds"] == 30
        assert body["test_current_time"].startswith("2026-01-10T12:00:00")

    def test_patch_override_refreshes_clock(self, client, clock):
        client.patch("/config", json={"test_current_time": "2026-01-10T12:00:00Z"})
        assert clock.now_authoritative() == T0
        client.patch("/config", json={"test_current_time": None})
        assert clock.now_authoritative() != T0

    def test_delay_below_one_is_422(self, client):
        assert client.patch("/config", json={"notification_delay_seconds": 0}).status_code == 422
