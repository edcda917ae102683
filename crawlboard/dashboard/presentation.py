"""View model builders: cards, chart data, table rows and banners."""

from datetime import datetime

from . import REFRESH_INTERVALS_MS, get_dashboard_config
from .models import (
    Banner,
    Card,
    ChartData,
    ChartDataset,
    DashboardSummary,
    DashboardView,
    ScheduleView,
    TableRow,
    ToggleState,
)
from .state import DashboardState

CHART_TITLE = "Requests per site"
MISSING_TIMESTAMP = "-"


def format_number(value: int) -> str:
    return f"{value:,}"


def truncate_label(label: str, max_length: int = 15) -> str:
    """Shorten long site names for chart axis labels."""
    if len(label) > max_length:
        return label[: max_length - 3] + "..."
    return label


def format_timestamp(value: str | None) -> str:
    """Render an ISO timestamp as ``YYYY-MM-DD HH:MM:SS``.

    Unparseable values are returned unchanged, missing ones as ``-``.
    """
    if not value:
        return MISSING_TIMESTAMP
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def build_cards(summary: DashboardSummary | None) -> list[Card]:
    palette = get_dashboard_config()["palette"]
    pending = summary.pending_requests if summary else 0
    completed = summary.completed_requests if summary else 0
    total = summary.total_requests if summary else 0
    return [
        Card(key="pending", title="Pending", value=pending,
             display_value=format_number(pending), color=palette["pending"]),
        Card(key="completed", title="Completed", value=completed,
             display_value=format_number(completed), color=palette["completed"]),
        Card(key="total", title="Total", value=total,
             display_value=format_number(total), color=palette["total"]),
    ]


def build_chart(summary: DashboardSummary, update_count: int = 0) -> ChartData:
    """Bar chart of completed vs. total requests per site.

    ``key`` changes with ``update_count`` so clients know to redraw.
    """
    chart = get_dashboard_config()["chart"]
    sites = summary.site_statuses
    names = [site.site_name for site in sites]
    return ChartData(
        key=f"chart-{update_count}",
        title=CHART_TITLE,
        labels=[truncate_label(name, chart["labelMaxLength"]) for name in names],
        full_labels=names,
        datasets=[
            ChartDataset(
                label="Completed requests",
                data=[site.completed_requests for site in sites],
                background_color=chart["completed"],
            ),
            ChartDataset(
                label="Total requests",
                data=[site.total_requests for site in sites],
                background_color=chart["total"],
            ),
        ],
        width_px=max(100, len(sites) * chart["pxPerSite"]),
    )


def build_table(state: DashboardState) -> list[TableRow]:
    if state.latest is None:
        return []
    rows = []
    for number, site in enumerate(state.latest.site_statuses, start=1):
        toggle = state.site_toggles.get(site.site_code)
        rows.append(
            TableRow(
                number=number,
                site_code=site.site_code,
                site_name=site.site_name,
                pending_requests=site.pending_requests,
                total_requests=site.total_requests,
                progress=f"{site.pending_requests}/{site.total_requests}",
                last_updated=format_timestamp(site.last_updated_at),
                login_id=site.login_id,
                enabled=site.enabled,
                toggle_phase=toggle.phase if toggle else ToggleState.IDLE,
                toggle_error=toggle.error if toggle else None,
            )
        )
    return rows


def build_banners(state: DashboardState) -> list[Banner]:
    """Partial-failure notices. Refresh errors only show once data exists."""
    banners = []
    errors = state.errors
    if state.latest is not None:
        if errors.dashboard:
            banners.append(Banner(
                level="error",
                source="dashboard",
                title="Dashboard data error",
                message="Request counts could not be loaded. Some figures may be inaccurate.",
            ))
        if errors.accounts:
            banners.append(Banner(
                level="warning",
                source="accounts",
                title="Account info error",
                message="Account info could not be loaded. Login ids may be inaccurate.",
            ))
        if errors.site_statuses:
            banners.append(Banner(
                level="warning",
                source="siteStatuses",
                title="Site status error",
                message="Site status could not be loaded. The site list may be incomplete.",
            ))
        if state.error:
            banners.append(Banner(
                level="warning",
                source="refresh",
                title="Refresh error",
                message=state.error,
            ))
    if state.schedule_error:
        banners.append(Banner(
            level="warning",
            source="schedule",
            title="Schedule status error",
            message=state.schedule_error,
        ))
    return banners


def build_schedule_view(state: DashboardState, armed: bool) -> ScheduleView:
    return ScheduleView(
        enabled=state.schedule.enabled,
        interval_ms=state.schedule.interval_ms,
        interval_options=list(REFRESH_INTERVALS_MS),
        armed=armed,
        toggle_phase=state.schedule_toggle.phase,
        toggle_error=state.schedule_toggle.error,
    )


def page_status(state: DashboardState) -> str:
    if state.latest is None:
        return "error" if state.error else "loading"
    if not state.latest.site_statuses:
        return "empty"
    return "ready"


def build_view(state: DashboardState, armed: bool = False) -> DashboardView:
    """Assemble the whole page from the current state."""
    summary = state.latest
    return DashboardView(
        status=page_status(state),
        loading=state.loading,
        error=state.error,
        update_count=state.update_count,
        last_refreshed_at=state.last_refreshed_at,
        search=state.search,
        cards=build_cards(summary),
        chart=build_chart(summary, state.update_count) if summary else None,
        table=build_table(state),
        banners=build_banners(state),
        schedule=build_schedule_view(state, armed),
    )
