"""Tests for the backend HTTP client."""

import json

import httpx
import pytest

from crawlboard.dashboard.client import BackendClient, BackendError, DashboardError
from crawlboard.dashboard.models import ScheduleStatus


class TestReadEndpoints:
    """GET endpoints parse camelCase payloads into models."""

    @pytest.mark.asyncio
    async def test_get_dashboard(self, client):
        metrics = await client.get_dashboard()

        assert [m.site_code for m in metrics] == ["s1", "s2"]
        assert metrics[0].total_count == 10
        assert metrics[0].not_completed_count == 3
        assert metrics[0].completed_count == 7

    @pytest.mark.asyncio
    async def test_get_accounts(self, client):
        accounts = await client.get_accounts()

        assert {a.site_code: a.login_id for a in accounts} == {"s1": "alice", "s2": "bob"}

    @pytest.mark.asyncio
    async def test_get_site_statuses(self, client):
        statuses = await client.get_site_statuses()

        assert statuses[0].site_name == "Site One"
        assert statuses[0].enabled is True
        assert statuses[1].sequence == 2

    @pytest.mark.asyncio
    async def test_get_schedule_status(self, client):
        assert await client.get_schedule_status() == ScheduleStatus(status=True)

    @pytest.mark.asyncio
    async def test_missing_optional_fields_default(self, backend, client):
        backend.set("GET", "/dashboard", [{"siteCode": "bare"}])

        (metric,) = await client.get_dashboard()

        assert metric.site_name == ""
        assert metric.total_count == 0
        assert metric.last_updated_at is None
        assert metric.login_id is None


class TestControlEndpoints:
    """PUT endpoints send the documented bodies."""

    @pytest.mark.asyncio
    async def test_set_schedule_status(self, backend, client):
        backend.set("PUT", "/schedule/status", {"status": False})

        result = await client.set_schedule_status(False)

        (call,) = backend.calls_to("PUT", "/schedule/status")
        assert json.loads(call.content) == {"status": False}
        assert result.status is False

    @pytest.mark.asyncio
    async def test_set_site_status(self, backend, client):
        backend.set("PUT", "/schedule/sites/s1/status", {
            "siteCode": "s1", "siteName": "Site One", "enabled": False,
        })

        result = await client.set_site_status("s1", False)

        (call,) = backend.calls_to("PUT", "/schedule/sites/s1/status")
        assert json.loads(call.content) == {"enabled": False}
        assert result.enabled is False

    @pytest.mark.asyncio
    async def test_site_code_is_escaped(self, backend, client):
        backend.set("PUT", "/schedule/sites/a/b/status", {"siteCode": "a/b", "enabled": True})

        await client.set_site_status("a/b", True)

        (call,) = backend.calls
        assert call.url.raw_path == b"/schedule/sites/a%2Fb/status"


class TestFailures:
    """Every failure surfaces as BackendError."""

    @pytest.mark.asyncio
    async def test_http_status_error(self, backend, client):
        backend.fail("GET", "/accounts", status=502)

        with pytest.raises(BackendError) as exc_info:
            await client.get_accounts()

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_error(self, backend, client):
        backend.disconnect("GET", "/dashboard")

        with pytest.raises(BackendError) as exc_info:
            await client.get_dashboard()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, event_log):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        client = BackendClient("http://backend.test", transport=transport, event_log=event_log)

        with pytest.raises(BackendError, match="invalid JSON"):
            await client.get_schedule_status()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, backend, client):
        backend.set("GET", "/schedule/status", {"status": "maybe"})

        with pytest.raises(BackendError, match="unexpected payload"):
            await client.get_schedule_status()

    def test_backend_error_is_dashboard_error(self):
        assert issubclass(BackendError, DashboardError)


class TestActivityLogging:
    """Calls are timed and recorded in the event log."""

    @pytest.mark.asyncio
    async def test_success_is_logged(self, client, event_log):
        await client.get_accounts()

        events, total = event_log.get_events()
        assert total == 1
        assert events[0].event_type == "fetch"
        assert events[0].source == "accounts"
        assert events[0].status == "success"
        assert events[0].duration_ms is not None

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, backend, client, event_log):
        backend.fail("PUT", "/schedule/status")

        with pytest.raises(BackendError):
            await client.set_schedule_status(True)

        events, _ = event_log.get_events(event_type="control")
        assert events[0].status == "error"
        assert events[0].source == "schedule"
        assert "500" in events[0].message

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, backend, event_log):
        async with BackendClient(
            "http://backend.test/", transport=backend.transport(), event_log=event_log
        ) as client:
            assert client.base_url == "http://backend.test"
            await client.get_schedule_status()

        assert client._http.is_closed


# Mark tests
pytestmark = pytest.mark.client
