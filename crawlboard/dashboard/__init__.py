"""Crawl monitoring dashboard.

Polls the crawl backend for per-site request counters, account and
enablement metadata, merges them into one view model, and exposes scheduler
and per-site crawler controls.
"""

from typing import Any

# Selectable refresh periods, in milliseconds (10s, 20s, 30s, 1m, 10m)
REFRESH_INTERVALS_MS: tuple[int, ...] = (10_000, 20_000, 30_000, 60_000, 600_000)
DEFAULT_REFRESH_INTERVAL_MS = 30_000

__all__ = ["REFRESH_INTERVALS_MS", "DEFAULT_REFRESH_INTERVAL_MS", "get_dashboard_config"]


def get_dashboard_config() -> dict[str, Any]:
    """Get dashboard configuration."""
    return {
        "palette": {
            "pending": "#ca8a04",    # yellow-600
            "completed": "#16a34a",  # green-600
            "total": "#4f46e5",      # indigo-600
        },
        "chart": {
            "completed": "#4ade80",  # green-400
            "total": "#60a5fa",      # blue-400
            "labelMaxLength": 15,
            "pxPerSite": 100,
        },
        "refreshInterval": DEFAULT_REFRESH_INTERVAL_MS,  # ms
        "refreshIntervals": list(REFRESH_INTERVALS_MS),
    }
