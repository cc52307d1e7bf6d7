"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from api.main import _services, app
from quotaledger.clock import FixedClock
from quotaledger.metrics import LedgerMetrics
from quotaledger.services import build_services


GUEST_HEADERS = {"X-User-Id": "guest_1"}
MEMBER_HEADERS = {"X-User-Id": "member_1", "X-Auth-Provider": "google.com"}


class TestAPI:
    """Test suite for the FastAPI app."""

    def setup_method(self):
        """Set up test fixtures."""
        self.services = build_services(
            metrics=LedgerMetrics(enable_logging=False), clock=FixedClock()
        )
        app.dependency_overrides[_services] = lambda: self.services
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_health(self):
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_requires_user(self):
        response = self.client.post("/quota/consume", json={})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthenticated"

    def test_consume_until_exceeded(self):
        for _ in range(3):
            response = self.client.post("/quota/consume", json={}, headers=GUEST_HEADERS)
            assert response.status_code == 200

        response = self.client.post("/quota/consume", json={}, headers=GUEST_HEADERS)
        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "quota_exceeded"
        assert error["details"] == {
            "limit": 3,
            "current_count": 3,
            "remaining": 0,
            "requested": 1,
        }

    def test_consume_with_request_id(self):
        body = {"requested": 1, "request_id": "req-1"}
        first = self.client.post("/quota/consume", json=body, headers=GUEST_HEADERS).json()
        again = self.client.post("/quota/consume", json=body, headers=GUEST_HEADERS).json()
        assert first["consumed"] is True
        assert again["replayed"] is True

        usage = self.client.get("/quota/usage", headers=GUEST_HEADERS).json()
        assert usage["count"] == 1

    def test_check(self):
        response = self.client.post("/quota/check", json={"requested": 2}, headers=MEMBER_HEADERS)
        assert response.status_code == 200
        assert response.json()["limit"] == 10
        assert response.json()["consumed"] is False

    def test_usage_bad_date(self):
        response = self.client.get("/quota/usage?date=yesterday", headers=GUEST_HEADERS)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_argument"

    def test_ensure_profile(self):
        response = self.client.post("/profile/ensure", headers=MEMBER_HEADERS)
        assert response.status_code == 200
        assert response.json()["tier"] == "registered"

    def test_complete_task(self):
        response = self.client.post(
            "/tasks/complete", json={"task_id": "instagram"}, headers=MEMBER_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["daily_limit"] == 15

        response = self.client.post(
            "/tasks/complete", json={"task_id": "instagram"}, headers=MEMBER_HEADERS
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "task_already_completed"

    def test_share_limit(self):
        for _ in range(5):
            self.client.post("/tasks/complete", json={"task_id": "share"}, headers=MEMBER_HEADERS)
        response = self.client.post(
            "/tasks/complete", json={"task_id": "share"}, headers=MEMBER_HEADERS
        )
        assert response.status_code == 429
        assert response.json()["error"]["code"] == "share_limit_reached"

    def test_unknown_task(self):
        response = self.client.post(
            "/tasks/complete", json={"task_id": "tiktok"}, headers=MEMBER_HEADERS
        )
        assert response.status_code == 400


class TestAPIKeys:
    """Test API and admin key enforcement."""

    def setup_method(self):
        """Set up test fixtures."""
        self.services = build_services(metrics=LedgerMetrics(enable_logging=False))
        app.dependency_overrides[_services] = lambda: self.services
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_admin_disabled_without_key(self, monkeypatch):
        monkeypatch.delenv("QUOTALEDGER_API_KEY", raising=False)
        response = self.client.post("/admin/users/member_1/upgrade", json={"tier": "pro"})
        assert response.status_code == 403

    def test_api_key_required_when_set(self, monkeypatch):
        monkeypatch.setenv("QUOTALEDGER_API_KEY", "secret")
        response = self.client.post("/quota/check", json={}, headers=GUEST_HEADERS)
        assert response.status_code == 401

        headers = {**GUEST_HEADERS, "X-API-Key": "secret"}
        response = self.client.post("/quota/check", json={}, headers=headers)
        assert response.status_code == 200

    @pytest.mark.parametrize("key,status", [("wrong", 401), ("secret", 200)])
    def test_admin_upgrade(self, monkeypatch, key, status):
        monkeypatch.setenv("QUOTALEDGER_API_KEY", "secret")
        response = self.client.post(
            "/admin/users/member_1/upgrade",
            json={"tier": "pro"},
            headers={"X-API-Key": key},
        )
        assert response.status_code == status
        if status == 200:
            assert response.json()["daily_limit"] == 200

    def test_admin_downgrade_rejected(self, monkeypatch):
        monkeypatch.setenv("QUOTALEDGER_API_KEY", "secret")
        headers = {"X-API-Key": "secret"}
        self.client.post("/admin/users/member_1/upgrade", json={"tier": "pro"}, headers=headers)
        response = self.client.post(
            "/admin/users/member_1/upgrade", json={"tier": "registered"}, headers=headers
        )
        assert response.status_code == 400
