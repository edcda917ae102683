"""Data models for the crawl monitoring dashboard.

Wire models mirror the backend's JSON payloads. View models are what the
dashboard builds from them and what the HTTP API returns. Both use
camelCase on the wire and snake_case attributes in Python.
"""

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Placeholders for SiteRecord.login_id
LOGIN_ID_MISSING = "No info"
LOGIN_ID_UNAVAILABLE = "Account info unavailable"


class CamelModel(BaseModel):
    """Base model with camelCase aliases that also accepts field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    """Immutable camelCase model."""

    model_config = ConfigDict(frozen=True)


# Backend payloads


class DashboardMetric(CamelModel):
    """One row of ``GET /dashboard``."""

    site_code: str
    site_name: str = ""
    completed_count: int = 0
    not_completed_count: int = 0
    total_count: int = 0
    sequence: int = 0
    last_updated_at: str | None = Field(
        default=None,
        validation_alias=AliasChoices("lastUpdatedAt", "crawlDate", "last_updated_at"),
        serialization_alias="lastUpdatedAt",
    )
    login_id: str | None = None


class AccountInfo(CamelModel):
    """One row of ``GET /accounts``."""

    site_code: str
    login_id: str | None = None


class SiteStatus(CamelModel):
    """Per-site crawler enablement, from ``/schedule/sites/status``."""

    site_code: str
    site_name: str = ""
    enabled: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    sequence: int = 0


class ScheduleStatus(CamelModel):
    """Backend scheduler switch."""

    status: bool


# Dashboard view data


class SearchParams(FrozenCamelModel):
    """Optional date range applied to the metrics request."""

    start_date: date | None = None
    end_date: date | None = None

    def to_query(self) -> dict[str, str]:
        """Query parameters for the metrics request; unset dates are omitted."""
        query: dict[str, str] = {}
        if self.start_date is not None:
            query["startDate"] = self.start_date.isoformat()
        if self.end_date is not None:
            query["endDate"] = self.end_date.isoformat()
        return query


class SiteRecord(FrozenCamelModel):
    """One monitored site after joining all three sources."""

    site_code: str
    site_name: str
    total_requests: int = 0
    pending_requests: int = 0
    completed_requests: int = 0
    last_updated_at: str | None = None
    login_id: str = LOGIN_ID_MISSING
    sequence: int = 0
    enabled: bool = True


class SourceErrors(FrozenCamelModel):
    """Per-source failure flags of one aggregation run."""

    dashboard: bool = False
    accounts: bool = False
    site_statuses: bool = False

    @property
    def all_failed(self) -> bool:
        return self.dashboard and self.accounts and self.site_statuses


class DashboardSummary(FrozenCamelModel):
    """Aggregated dashboard data. Rebuilt wholesale on every fetch."""

    total_sites: int = 0
    total_requests: int = 0
    pending_requests: int = 0
    completed_requests: int = 0
    site_statuses: tuple[SiteRecord, ...] = ()
    errors: SourceErrors = Field(default_factory=SourceErrors)

    def find_site(self, site_code: str) -> SiteRecord | None:
        for site in self.site_statuses:
            if site.site_code == site_code:
                return site
        return None


class ScheduleState(FrozenCamelModel):
    """Local mirror of the backend scheduler switch plus the refresh period."""

    enabled: bool = True
    interval_ms: int = 30000


class ToggleState(Enum):
    """Phases of an optimistic toggle."""
    IDLE = "idle"
    PENDING = "pending"            # Request in flight, value is the optimistic guess
    COMMITTED = "committed"        # Server answered, value is authoritative
    ROLLED_BACK = "rolled_back"    # Request failed, value restored


class ToggleTarget(FrozenCamelModel):
    """A boolean flag driven through the optimistic toggle protocol."""

    value: bool = True
    phase: ToggleState = ToggleState.IDLE
    previous: bool | None = None
    error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.phase == ToggleState.PENDING


class DashboardEvent(CamelModel):
    """Activity log entry."""

    id: int | None = None
    timestamp: datetime
    event_type: Literal["fetch", "refresh", "control", "error"]
    source: str
    status: str
    message: str | None = None
    duration_ms: float | None = None


# API responses


class Card(CamelModel):
    """Summary card."""

    key: Literal["pending", "completed", "total"]
    title: str
    value: int
    display_value: str
    color: str


class ChartDataset(CamelModel):
    label: str
    data: list[int]
    background_color: str


class ChartData(CamelModel):
    """Bar chart input; rendering is left to the client."""

    key: str
    title: str
    labels: list[str]
    full_labels: list[str]
    datasets: list[ChartDataset]
    width_px: int


class TableRow(CamelModel):
    number: int
    site_code: str
    site_name: str
    pending_requests: int
    total_requests: int
    progress: str
    last_updated: str
    login_id: str
    enabled: bool
    toggle_phase: ToggleState = ToggleState.IDLE
    toggle_error: str | None = None


class Banner(CamelModel):
    """Partial-failure notice shown above the dashboard."""

    level: Literal["error", "warning"]
    source: Literal["dashboard", "accounts", "siteStatuses", "refresh", "schedule"]
    title: str
    message: str


class ScheduleView(CamelModel):
    enabled: bool
    interval_ms: int
    interval_options: list[int]
    armed: bool
    toggle_phase: ToggleState
    toggle_error: str | None = None


class DashboardView(CamelModel):
    """Everything the dashboard page renders."""

    status: Literal["loading", "error", "empty", "ready"]
    loading: bool
    error: str | None = None
    update_count: int
    last_refreshed_at: datetime | None = None
    search: SearchParams
    cards: list[Card]
    chart: ChartData | None = None
    table: list[TableRow]
    banners: list[Banner]
    schedule: ScheduleView


class IntervalRequest(CamelModel):
    interval_ms: int


class EventLogResponse(CamelModel):
    """Activity log response."""

    events: list[DashboardEvent]
    total: int
    page: int
    limit: int


class EventStatsResponse(CamelModel):
    """Activity log counters."""

    total: int
    by_type: dict[str, int]
    failures: dict[str, int]


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    backend: str
    scheduler: str
    timestamp: datetime
