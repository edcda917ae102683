"""Optimistic toggles for the backend scheduler and per-site crawling.

Each target moves through ``IDLE -> PENDING(previous) -> COMMITTED`` or
``ROLLED_BACK(previous)``. The flipped value is visible as soon as the
toggle starts; the server's answer wins on success and the previous value
comes back on failure.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .client import BackendClient, BackendError, DashboardError
from .models import ToggleState, ToggleTarget
from .state import DashboardStore, with_schedule_toggle, with_site_toggle

logger = logging.getLogger(__name__)

SCHEDULE_TOGGLE_ERROR = "Failed to change the crawl schedule status."
SITE_TOGGLE_ERROR = "Failed to change crawling for site {site_code}."


class ToggleInProgressError(DashboardError):
    """A toggle on the same target has not finished yet."""
    pass


class UnknownSiteError(DashboardError):
    """The site code is not part of the current summary."""
    pass


def begin_toggle(target: ToggleTarget, current: bool | None = None) -> ToggleTarget:
    """Flip the value optimistically and remember the old one.

    Args:
        target: Current toggle state
        current: Authoritative value to flip; defaults to ``target.value``

    Raises:
        ToggleInProgressError: If the target is already pending
    """
    if target.in_flight:
        raise ToggleInProgressError("A toggle for this target is already in progress")
    previous = target.value if current is None else current
    return ToggleTarget(value=not previous, phase=ToggleState.PENDING, previous=previous)


def commit_toggle(target: ToggleTarget, server_value: bool) -> ToggleTarget:
    """Settle on the value the server reported."""
    return ToggleTarget(value=server_value, phase=ToggleState.COMMITTED)


def roll_back_toggle(target: ToggleTarget, message: str) -> ToggleTarget:
    """Restore the pre-toggle value and record a user-facing error."""
    previous = target.previous if target.previous is not None else not target.value
    return ToggleTarget(value=previous, phase=ToggleState.ROLLED_BACK, error=message)


class ToggleController:
    """Drives the scheduler switch and per-site switches against the backend."""

    def __init__(
        self,
        client: BackendClient,
        store: DashboardStore,
        on_site_committed: Callable[[], Awaitable[Any]] | None = None,
        on_schedule_change: Callable[[bool], None] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Backend client for the control endpoints
            store: Shared dashboard state
            on_site_committed: Awaited after a successful site toggle, to
                pull the authoritative summary
            on_schedule_change: Called with the scheduler flag whenever its
                effective value changes
        """
        self.client = client
        self.store = store
        self._on_site_committed = on_site_committed
        self._on_schedule_change = on_schedule_change

    async def toggle_schedule(self) -> ToggleTarget:
        """Flip the backend scheduler switch."""
        pending = begin_toggle(self.store.state.schedule_toggle)
        self._publish_schedule(pending)

        try:
            result = await self.client.set_schedule_status(pending.value)
        except BackendError as e:
            logger.warning("Schedule toggle failed, rolling back: %s", e)
            target = roll_back_toggle(pending, SCHEDULE_TOGGLE_ERROR)
        else:
            if result.status != pending.value:
                logger.info("Server kept scheduler at %s", result.status)
            target = commit_toggle(pending, result.status)

        self._publish_schedule(target)
        return target

    async def toggle_site(self, site_code: str) -> ToggleTarget:
        """Flip crawling for one site.

        Raises:
            UnknownSiteError: If the site is not in the shown summary
            ToggleInProgressError: If this site's toggle is still pending
        """
        state = self.store.state
        site = state.latest.find_site(site_code) if state.latest else None
        if site is None:
            raise UnknownSiteError(f"Unknown site: {site_code}")

        current = state.site_toggles.get(site_code, ToggleTarget(value=site.enabled))
        pending = begin_toggle(current, site.enabled)
        self.store.update(with_site_toggle, site_code, pending)

        try:
            result = await self.client.set_site_status(site_code, pending.value)
        except BackendError as e:
            logger.warning("Site %s toggle failed, rolling back: %s", site_code, e)
            target = roll_back_toggle(pending, SITE_TOGGLE_ERROR.format(site_code=site_code))
            self.store.update(with_site_toggle, site_code, target)
            return target

        target = commit_toggle(pending, result.enabled)
        self.store.update(with_site_toggle, site_code, target)
        if self._on_site_committed is not None:
            await self._on_site_committed()
        return target

    def _publish_schedule(self, target: ToggleTarget) -> None:
        before = self.store.state.schedule.enabled
        self.store.update(with_schedule_toggle, target)
        if target.value != before and self._on_schedule_change is not None:
            self._on_schedule_change(target.value)
