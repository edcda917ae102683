"""Dashboard state and the pure transitions that produce new states.

``DashboardState`` is never mutated. Each transition takes a state and
returns a new one; ``DashboardStore`` holds the current value for the
service, the scheduler and the toggle controller, which all run on one
event loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .models import (
    DashboardSummary,
    ScheduleState,
    SearchParams,
    SourceErrors,
    ToggleTarget,
)


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard knows at one point in time.

    Attributes:
        summary: Last materially different summary, None until the first
            successful load. Kept as the same object while counts are unchanged
        latest: Summary of the most recent successful refresh; what the page shows
        update_count: Bumped whenever a materially different summary is adopted
        loading: A refresh is in progress
        error: Message of the last failed refresh, cleared by the next success
        search: Date range applied to the metrics source
        schedule: Mirror of the backend scheduler switch and the refresh period
        schedule_error: Message set when the scheduler switch could not be read
        schedule_toggle: Optimistic toggle state of the scheduler switch
        site_toggles: Optimistic toggle state per site code
        last_refreshed_at: When the last refresh finished
    """
    summary: DashboardSummary | None = None
    latest: DashboardSummary | None = None
    update_count: int = 0
    loading: bool = False
    error: str | None = None
    search: SearchParams = field(default_factory=SearchParams)
    schedule: ScheduleState = field(default_factory=ScheduleState)
    schedule_error: str | None = None
    schedule_toggle: ToggleTarget = field(default_factory=ToggleTarget)
    site_toggles: Mapping[str, ToggleTarget] = field(
        default_factory=lambda: MappingProxyType({})
    )
    last_refreshed_at: datetime | None = None

    @property
    def errors(self) -> SourceErrors:
        """Per-source failure flags of the most recent refresh."""
        return self.latest.errors if self.latest is not None else SourceErrors()


def initial_state(interval_ms: int, enabled: bool = True) -> DashboardState:
    """State before anything has been fetched."""
    return DashboardState(
        schedule=ScheduleState(enabled=enabled, interval_ms=interval_ms),
        schedule_toggle=ToggleTarget(value=enabled),
    )


def summary_changed(previous: DashboardSummary, current: DashboardSummary) -> bool:
    """Compare totals and per-site count triples by position."""
    if (
        previous.total_requests != current.total_requests
        or previous.pending_requests != current.pending_requests
        or previous.completed_requests != current.completed_requests
    ):
        return True

    if len(previous.site_statuses) != len(current.site_statuses):
        return True

    for old, new in zip(previous.site_statuses, current.site_statuses):
        if (
            old.total_requests != new.total_requests
            or old.pending_requests != new.pending_requests
            or old.completed_requests != new.completed_requests
        ):
            return True
    return False


def start_loading(state: DashboardState) -> DashboardState:
    return replace(state, loading=True)


def apply_summary(
    state: DashboardState,
    summary: DashboardSummary,
    refreshed_at: datetime | None = None,
) -> DashboardState:
    """Adopt a freshly fetched summary.

    ``latest`` always becomes the new summary, so source error flags, login
    ids and enablement flags are never stale. ``summary`` is replaced and
    ``update_count`` bumped only when ``summary_changed``; otherwise the
    previous object is kept as is. The first summary is adopted without
    bumping the counter.
    """
    refreshed_at = refreshed_at or datetime.now(timezone.utc)
    common: dict[str, Any] = {
        "loading": False,
        "error": None,
        "last_refreshed_at": refreshed_at,
        "latest": summary,
    }

    if state.summary is None:
        return replace(state, summary=summary, **common)

    if summary_changed(state.summary, summary):
        return replace(
            state, summary=summary, update_count=state.update_count + 1, **common
        )

    return replace(state, **common)


def fail_refresh(
    state: DashboardState, message: str, refreshed_at: datetime | None = None
) -> DashboardState:
    """Record a refresh that produced no usable data; the last summary stays."""
    return replace(
        state,
        loading=False,
        error=message,
        last_refreshed_at=refreshed_at or datetime.now(timezone.utc),
    )


def set_search(state: DashboardState, search: SearchParams) -> DashboardState:
    return replace(state, search=search)


def set_interval(state: DashboardState, interval_ms: int) -> DashboardState:
    return replace(
        state, schedule=state.schedule.model_copy(update={"interval_ms": interval_ms})
    )


def load_schedule(
    state: DashboardState, enabled: bool, error: str | None = None
) -> DashboardState:
    """Adopt the scheduler switch read from the backend."""
    return replace(
        state,
        schedule=state.schedule.model_copy(update={"enabled": enabled}),
        schedule_toggle=ToggleTarget(value=enabled),
        schedule_error=error,
    )


def with_schedule_toggle(state: DashboardState, target: ToggleTarget) -> DashboardState:
    """Store the scheduler toggle and mirror its value into ``schedule``."""
    return replace(
        state,
        schedule_toggle=target,
        schedule=state.schedule.model_copy(update={"enabled": target.value}),
        schedule_error=None,
    )


def patch_site_enabled(
    summary: DashboardSummary, site_code: str, enabled: bool
) -> DashboardSummary:
    """Copy of ``summary`` with one site's ``enabled`` flag replaced."""
    sites = tuple(
        site.model_copy(update={"enabled": enabled}) if site.site_code == site_code else site
        for site in summary.site_statuses
    )
    return summary.model_copy(update={"site_statuses": sites})


def with_site_toggle(
    state: DashboardState, site_code: str, target: ToggleTarget
) -> DashboardState:
    """Store a site toggle and patch the site's flag in the shown summary."""
    toggles = dict(state.site_toggles)
    toggles[site_code] = target
    latest = state.latest
    if latest is not None:
        latest = patch_site_enabled(latest, site_code, target.value)
    return replace(state, site_toggles=MappingProxyType(toggles), latest=latest)


class DashboardStore:
    """Holder of the current ``DashboardState``."""

    def __init__(self, state: DashboardState) -> None:
        self._state = state

    @property
    def state(self) -> DashboardState:
        return self._state

    def update(
        self, transition: Callable[..., DashboardState], *args: Any, **kwargs: Any
    ) -> DashboardState:
        """Apply a transition to the current state and store the result."""
        self._state = transition(self._state, *args, **kwargs)
        return self._state
