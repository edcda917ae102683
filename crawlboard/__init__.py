__version__ = "0.4"

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from crawlboard.dashboard.aggregator import build_summary, fetch_summary
    from crawlboard.dashboard.api import create_app
    from crawlboard.dashboard.client import BackendClient, BackendError
    from crawlboard.dashboard.models import DashboardSummary, SiteRecord
    from crawlboard.dashboard.scheduler import RefreshScheduler
    from crawlboard.dashboard.service import DashboardService
    from crawlboard.dashboard.toggles import ToggleController


# Lazy import mapping
_LAZY_IMPORTS = {
    "BackendClient": ("crawlboard.dashboard.client", "BackendClient"),
    "BackendError": ("crawlboard.dashboard.client", "BackendError"),
    "DashboardSummary": ("crawlboard.dashboard.models", "DashboardSummary"),
    "SiteRecord": ("crawlboard.dashboard.models", "SiteRecord"),
    "build_summary": ("crawlboard.dashboard.aggregator", "build_summary"),
    "fetch_summary": ("crawlboard.dashboard.aggregator", "fetch_summary"),
    "RefreshScheduler": ("crawlboard.dashboard.scheduler", "RefreshScheduler"),
    "ToggleController": ("crawlboard.dashboard.toggles", "ToggleController"),
    "DashboardService": ("crawlboard.dashboard.service", "DashboardService"),
    "create_app": ("crawlboard.dashboard.api", "create_app"),
}
__all__ = list(_LAZY_IMPORTS)


def __getattr__(name: str) -> Any:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = __import__(module_path, fromlist=[attr_name])
        return getattr(module, attr_name)
    else:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    """Support for dir() and autocomplete."""
    return sorted(__all__ + ["dashboard", "__version__"])
