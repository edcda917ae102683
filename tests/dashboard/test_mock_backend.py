"""Tests for the mock crawl backend."""

import pytest
from fastapi.testclient import TestClient

from crawlboard.dashboard.mock_backend import (
    MockBackendState,
    create_mock_backend,
    default_sites,
)


@pytest.fixture
def state():
    return MockBackendState()


@pytest.fixture
def mock(state):
    return TestClient(create_mock_backend(state))


class TestDefaultSites:
    """Tests for the seed data."""

    def test_nine_sites_in_sequence(self):
        sites = default_sites()

        assert len(sites) == 9
        assert [s.sequence for s in sites] == list(range(1, 10))
        assert all(s.completed + s.pending == s.total for s in sites)


class TestReadEndpoints:
    """GET endpoints."""

    def test_dashboard(self, mock):
        rows = mock.get("/dashboard").json()

        assert len(rows) == 9
        assert set(rows[0]) >= {
            "siteCode", "siteName", "completedCount", "notCompletedCount",
            "totalCount", "sequence", "lastUpdatedAt",
        }

    def test_dashboard_records_search(self, mock, state):
        mock.get("/dashboard", params={"startDate": "2024-01-01"})

        assert state.requests[-1] == ("dashboard", {"startDate": "2024-01-01"})

    def test_accounts_skip_missing_logins(self, mock, state):
        state.sites[0].login_id = None

        rows = mock.get("/accounts").json()

        assert len(rows) == 8
        assert rows[0] == {"siteCode": "site_b", "loginId": "site_b_admin"}

    def test_site_statuses(self, mock):
        rows = mock.get("/schedule/sites/status").json()
        assert rows[0]["enabled"] is True
        assert "createdAt" in rows[0]

    def test_failing_endpoint(self, mock, state):
        state.failing.add("accounts")
        assert mock.get("/accounts").status_code == 500


class TestControlEndpoints:
    """PUT endpoints."""

    def test_schedule_status(self, mock, state):
        response = mock.put("/schedule/status", json={"status": False})

        assert response.json() == {"status": False}
        assert state.schedule_enabled is False
        assert mock.get("/schedule/status").json() == {"status": False}

    def test_schedule_status_rejects_non_bool(self, mock):
        assert mock.put("/schedule/status", json={"status": "off"}).status_code == 400

    def test_site_status(self, mock, state):
        response = mock.put("/schedule/sites/site_c/status", json={"enabled": False})

        assert response.status_code == 200
        body = response.json()
        assert body["siteCode"] == "site_c"
        assert body["enabled"] is False
        assert "sequence" not in body
        assert state.find("site_c").enabled is False

    def test_site_status_unknown(self, mock):
        assert mock.put("/schedule/sites/zzz/status", json={"enabled": True}).status_code == 404

    def test_site_status_rejects_non_bool(self, mock):
        assert mock.put("/schedule/sites/site_a/status", json={"enabled": 1}).status_code == 400


# Mark tests
pytestmark = pytest.mark.dashboard
