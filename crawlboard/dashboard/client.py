"""Async HTTP client for the crawl backend.

Example:
    >>> async with BackendClient("http://localhost:8080/api") as client:
    ...     metrics = await client.get_dashboard()
    ...     status = await client.get_schedule_status()
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError
from typing_extensions import Self

from .events import EventLog
from .logging import timed_source
from .models import (
    AccountInfo,
    DashboardMetric,
    ScheduleStatus,
    SearchParams,
    SiteStatus,
)

T = TypeVar("T")


class DashboardError(Exception):
    """Base class for dashboard errors."""
    pass


class BackendError(DashboardError):
    """A backend call failed: transport error, non-2xx status or bad payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the backend endpoints.

    Every method raises ``BackendError`` on failure; callers decide whether
    that is fatal.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Backend API root, e.g. ``http://localhost:8080/api``
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests, ASGI apps)
            event_log: Activity log for call outcomes; global log if None
        """
        self.base_url = base_url.rstrip("/")
        self.event_log = event_log
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e!r}") from e
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _parse(adapter: TypeAdapter[T], payload: Any, path: str) -> T:
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            raise BackendError(
                f"{path} returned an unexpected payload: {e.error_count()} errors"
            ) from e

    # Read endpoints

    @timed_source("fetch", "dashboard")
    async def get_dashboard(
        self, search_params: SearchParams | None = None
    ) -> list[DashboardMetric]:
        """Per-site request counters, optionally limited to a date range."""
        query = search_params.to_query() if search_params else {}
        payload = await self._request("GET", "/dashboard", params=query or None)
        return self._parse(_METRICS, payload, "/dashboard")

    @timed_source("fetch", "accounts")
    async def get_accounts(self) -> list[AccountInfo]:
        """Login ids per site."""
        payload = await self._request("GET", "/accounts")
        return self._parse(_ACCOUNTS, payload, "/accounts")

    @timed_source("fetch", "siteStatuses")
    async def get_site_statuses(self) -> list[SiteStatus]:
        """Per-site crawler enablement."""
        payload = await self._request("GET", "/schedule/sites/status")
        return self._parse(_SITE_STATUSES, payload, "/schedule/sites/status")

    @timed_source("fetch", "schedule")
    async def get_schedule_status(self) -> ScheduleStatus:
        """Backend scheduler on/off."""
        payload = await self._request("GET", "/schedule/status")
        return self._parse(_SCHEDULE, payload, "/schedule/status")

    # Control endpoints

    @timed_source("control", "schedule")
    async def set_schedule_status(self, enabled: bool) -> ScheduleStatus:
        """Switch the backend scheduler and return the state it reports."""
        payload = await self._request("PUT", "/schedule/status", json={"status": enabled})
        return self._parse(_SCHEDULE, payload, "/schedule/status")

    @timed_source("control", "site")
    async def set_site_status(self, site_code: str, enabled: bool) -> SiteStatus:
        """Enable or disable crawling for one site."""
        path = f"/schedule/sites/{quote(site_code, safe='')}/status"
        payload = await self._request("PUT", path, json={"enabled": enabled})
        return self._parse(_SITE_STATUS, payload, path)


_METRICS = TypeAdapter(list[DashboardMetric])
_ACCOUNTS = TypeAdapter(list[AccountInfo])
_SITE_STATUSES = TypeAdapter(list[SiteStatus])
_SITE_STATUS = TypeAdapter(SiteStatus)
_SCHEDULE = TypeAdapter(ScheduleStatus)
