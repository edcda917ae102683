"""Shared fixtures: a scriptable fake backend behind ``httpx.MockTransport``."""

from typing import Any

import httpx
import pytest

from crawlboard.dashboard.client import BackendClient
from crawlboard.dashboard.events import EventLog


class FakeBackend:
    """Answers backend requests from a ``(method, path) -> response`` table.

    A response is a JSON-able body (200), a ``(status, body)`` tuple, or an
    exception instance to raise as a transport error.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[httpx.Request] = []

    def set(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def fail(self, method: str, path: str, status: int = 500) -> None:
        self.routes[(method, path)] = (status, {"error": "unavailable"})

    def disconnect(self, method: str, path: str) -> None:
        self.routes[(method, path)] = httpx.ConnectError("connection refused")

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(response, Exception):
            raise response
        if isinstance(response, tuple):
            status, body = response
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=response)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def metric(code: str, total: int, pending: int, sequence: int = 1, **extra: Any) -> dict:
    return {
        "siteCode": code,
        "siteName": extra.pop("siteName", f"Metric {code}"),
        "completedCount": total - pending,
        "notCompletedCount": pending,
        "totalCount": total,
        "sequence": sequence,
        "lastUpdatedAt": "2024-01-01T00:00:00Z",
        **extra,
    }


def site_status(code: str, name: str, sequence: int = 1, enabled: bool = True) -> dict:
    return {
        "siteCode": code,
        "siteName": name,
        "enabled": enabled,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
        "sequence": sequence,
    }


@pytest.fixture
def make_metric():
    """Factory for metrics rows."""
    return metric


@pytest.fixture
def make_site_status():
    """Factory for site-enablement rows."""
    return site_status


@pytest.fixture
def event_log():
    """A private activity log."""
    return EventLog(max_events=100)


@pytest.fixture
def backend():
    """Fake backend with two sites, all sources healthy, scheduler on."""
    fake = FakeBackend()
    fake.set("GET", "/dashboard", [metric("s1", 10, 3, 1), metric("s2", 20, 5, 2)])
    fake.set("GET", "/accounts", [
        {"siteCode": "s1", "loginId": "alice"},
        {"siteCode": "s2", "loginId": "bob"},
    ])
    fake.set("GET", "/schedule/sites/status", [
        site_status("s1", "Site One", 1),
        site_status("s2", "Site Two", 2),
    ])
    fake.set("GET", "/schedule/status", {"status": True})
    return fake


@pytest.fixture
def client(backend, event_log):
    """Backend client wired to the fake backend."""
    return BackendClient(
        "http://backend.test", transport=backend.transport(), event_log=event_log
    )
