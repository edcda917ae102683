"""Fan-out fetch and join of the three dashboard data sources.

The site-enablement list is the join base: a site without metrics shows up
with zero counts, a site with metrics but no enablement record is dropped.
Each source fails independently; a failed source contributes an empty list
and raises its flag in ``DashboardSummary.errors``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Sequence, TypeVar

from .client import BackendClient, BackendError
from .models import (
    LOGIN_ID_MISSING,
    LOGIN_ID_UNAVAILABLE,
    AccountInfo,
    DashboardMetric,
    DashboardSummary,
    SearchParams,
    SiteRecord,
    SiteStatus,
    SourceErrors,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_summary(
    metrics: Sequence[DashboardMetric],
    accounts: Sequence[AccountInfo],
    statuses: Sequence[SiteStatus],
    errors: SourceErrors | None = None,
) -> DashboardSummary:
    """Join the three sources by site code and total the counters.

    Args:
        metrics: Rows from the metrics source (empty if it failed)
        accounts: Rows from the accounts source (empty if it failed)
        statuses: Rows from the site-enablement source; defines the result set
        errors: Which sources failed

    Returns:
        A fresh summary with sites ordered by ``sequence`` (stable)
    """
    errors = errors or SourceErrors()
    metrics_by_code = {m.site_code: m for m in metrics}
    login_by_code = {a.site_code: a.login_id for a in accounts if a.login_id}
    enabled_by_code = {s.site_code: s.enabled for s in statuses}

    records = []
    for status in statuses:
        code = status.site_code
        metric = metrics_by_code.get(code)

        login_id = login_by_code.get(code) or (metric.login_id if metric else None)
        if not login_id:
            login_id = LOGIN_ID_UNAVAILABLE if errors.accounts else LOGIN_ID_MISSING

        enabled = True if errors.site_statuses else enabled_by_code.get(code, True)

        records.append(
            SiteRecord(
                site_code=code,
                site_name=status.site_name or (metric.site_name if metric else "") or code,
                total_requests=metric.total_count if metric else 0,
                pending_requests=metric.not_completed_count if metric else 0,
                completed_requests=metric.completed_count if metric else 0,
                last_updated_at=metric.last_updated_at if metric else None,
                login_id=login_id,
                sequence=status.sequence,
                enabled=enabled,
            )
        )

    records.sort(key=lambda r: r.sequence)

    return DashboardSummary(
        total_sites=len(records),
        total_requests=sum(r.total_requests for r in records),
        pending_requests=sum(r.pending_requests for r in records),
        completed_requests=sum(r.completed_requests for r in records),
        site_statuses=tuple(records),
        errors=errors,
    )


async def _isolated(source: str, call: Awaitable[list[T]]) -> tuple[list[T], bool]:
    """Await one source; on failure return an empty list and a raised flag."""
    try:
        return await call, False
    except BackendError as e:
        logger.warning("Source %s unavailable: %s", source, e)
        return [], True


async def fetch_summary(
    client: BackendClient, search_params: SearchParams | None = None
) -> DashboardSummary:
    """Fetch metrics, accounts and site enablement, then join them.

    Never raises for backend failures; see ``DashboardSummary.errors``.
    """
    (metrics, metrics_failed), (accounts, accounts_failed), (statuses, statuses_failed) = (
        await asyncio.gather(
            _isolated("dashboard", client.get_dashboard(search_params)),
            _isolated("accounts", client.get_accounts()),
            _isolated("siteStatuses", client.get_site_statuses()),
        )
    )
    errors = SourceErrors(
        dashboard=metrics_failed,
        accounts=accounts_failed,
        site_statuses=statuses_failed,
    )
    return build_summary(metrics, accounts, statuses, errors)
