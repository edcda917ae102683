"""Dashboard service: wires the client, state store, scheduler and toggles."""

from __future__ import annotations

import logging
import time
from functools import partial
from typing import Any

import httpx

from . import DEFAULT_REFRESH_INTERVAL_MS
from .aggregator import fetch_summary
from .client import BackendClient, BackendError
from .config import DashboardSettings, get_settings
from .events import EventLog, get_event_log
from .logging import log_error, log_refresh
from .models import DashboardSummary, DashboardView, SearchParams, ToggleTarget
from .presentation import build_view
from .scheduler import RefreshScheduler, validate_interval
from .state import (
    DashboardState,
    DashboardStore,
    apply_summary,
    fail_refresh,
    initial_state,
    load_schedule,
    set_interval,
    set_search,
    start_loading,
)
from .toggles import ToggleController

logger = logging.getLogger(__name__)

REFRESH_FAILED = "Failed to load dashboard data."
SCHEDULE_STATUS_FAILED = "Failed to read the crawl schedule status."


class DashboardService:
    """Owns the dashboard state and everything that changes it.

    Example:
        >>> service = DashboardService.from_settings()
        >>> await service.start()
        >>> view = service.view()
        >>> await service.toggle_site("site_a")
        >>> await service.close()
    """

    def __init__(
        self,
        client: BackendClient,
        interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
        event_log: EventLog | None = None,
    ) -> None:
        self.client = client
        self.event_log = event_log or client.event_log or get_event_log()
        if client.event_log is None:
            client.event_log = self.event_log
        self.store = DashboardStore(initial_state(validate_interval(interval_ms)))
        self.scheduler = RefreshScheduler(self._tick, interval_ms=interval_ms, enabled=False)
        self.toggles = ToggleController(
            client,
            self.store,
            on_site_committed=partial(self.refresh, fresh=True),
            on_schedule_change=self.scheduler.set_enabled,
        )
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: DashboardSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DashboardService:
        """Build a service from environment settings."""
        settings = settings or get_settings()
        event_log = get_event_log(settings.event_log_size)
        client = BackendClient(
            settings.api_url,
            timeout=settings.api_timeout,
            transport=transport,
            event_log=event_log,
        )
        return cls(client, interval_ms=settings.refresh_interval_ms, event_log=event_log)

    @property
    def state(self) -> DashboardState:
        return self.store.state

    @property
    def summary(self) -> DashboardSummary | None:
        return self.store.state.latest

    def view(self) -> DashboardView:
        return build_view(self.store.state, armed=self.scheduler.armed)

    async def start(self) -> None:
        """Read the backend scheduler switch and arm polling to match it.

        An unreadable switch is treated as enabled.
        """
        try:
            status = await self.client.get_schedule_status()
        except BackendError as e:
            logger.warning("Could not read schedule status, assuming enabled: %s", e)
            self.store.update(load_schedule, True, SCHEDULE_STATUS_FAILED)
        else:
            self.store.update(load_schedule, status.status)
        self.scheduler.set_enabled(self.store.state.schedule.enabled)

    async def refresh(self, fresh: bool = False) -> DashboardState:
        """Refresh now, joining a refresh that is already running.

        With ``fresh`` a running refresh is awaited first and a new one is
        started, so the result reflects writes made after it began.
        """
        if fresh and self.scheduler.in_flight:
            await self.scheduler.trigger()
        await self.scheduler.trigger()
        return self.store.state

    async def search(self, params: SearchParams) -> DashboardState:
        """Apply a date range to the metrics source and refresh."""
        self.store.update(set_search, params)
        # A running refresh still uses the old range
        return await self.refresh(fresh=True)

    def set_interval(self, interval_ms: int) -> None:
        """Change the refresh period (re-arms the timer when polling)."""
        self.scheduler.set_interval(interval_ms)
        self.store.update(set_interval, interval_ms)

    async def toggle_schedule(self) -> ToggleTarget:
        return await self.toggles.toggle_schedule()

    async def toggle_site(self, site_code: str) -> ToggleTarget:
        return await self.toggles.toggle_site(site_code)

    async def close(self) -> None:
        """Stop polling and release the HTTP client."""
        self._closed = True
        await self.scheduler.close()
        await self.client.aclose()

    async def _tick(self) -> Any:
        if self._closed:
            return None
        self.store.update(start_loading)
        start = time.perf_counter()
        summary = await fetch_summary(self.client, self.store.state.search)
        duration = (time.perf_counter() - start) * 1000

        if self._closed:
            return None

        if summary.errors.all_failed:
            self.store.update(fail_refresh, REFRESH_FAILED)
            log_error("refresh", REFRESH_FAILED, duration, self.event_log)
            return summary

        previous = self.store.state.summary
        state = self.store.update(apply_summary, summary)
        changed = "updated" if state.summary is not previous else "unchanged"
        log_refresh(
            "success", f"{summary.total_sites} sites, {changed}", duration, self.event_log
        )
        return summary
