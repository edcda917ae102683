"""Mock crawl backend for local development and integration tests.

Serves the same endpoints as the real backend from in-memory data. Run it
with ``uvicorn crawlboard.dashboard.mock_backend:app --port 8081`` and set
``CRAWLBOARD_API_URL=http://localhost:8081``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class MockSite:
    """One help-desk site as the backend sees it."""

    site_code: str
    site_name: str
    total: int
    pending: int
    login_id: str | None
    sequence: int
    enabled: bool = True
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    last_updated_at: str = field(default_factory=_now)

    @property
    def completed(self) -> int:
        return self.total - self.pending


def default_sites() -> list[MockSite]:
    """The nine sites the mock backend starts with."""
    rows = [
        ("site_a", "Busan Education Office Admin Support Center", 145, 23),
        ("site_b", "Gyeongsang National University Help Center", 89, 12),
        ("site_c", "Busan Education Office HQ Help Center", 56, 8),
        ("site_d", "Changwon National University Help Center", 200, 50),
        ("site_e", "Neulbom School Service Help Center", 300, 100),
        ("site_f", "Seoul National University of Education Help Center", 400, 150),
        ("site_g", "Gyeongnam Education Office Help Center", 500, 200),
        ("site_h", "Busan School Help Center", 350, 130),
        ("site_i", "Korea Maritime University Help Center", 210, 40),
    ]
    return [
        MockSite(
            site_code=code,
            site_name=name,
            total=total,
            pending=pending,
            login_id=f"{code}_admin",
            sequence=index,
        )
        for index, (code, name, total, pending) in enumerate(rows, start=1)
    ]


@dataclass
class MockBackendState:
    """Mutable backend data.

    Attributes:
        sites: Sites in source order
        schedule_enabled: Backend scheduler switch
        failing: Endpoint names that answer 500 (``dashboard``, ``accounts``,
            ``siteStatuses``, ``schedule``, ``siteControl``)
        requests: Every request as ``(name, params)``, for assertions
    """
    sites: list[MockSite] = field(default_factory=default_sites)
    schedule_enabled: bool = True
    failing: set[str] = field(default_factory=set)
    requests: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def find(self, site_code: str) -> MockSite | None:
        return next((s for s in self.sites if s.site_code == site_code), None)


def create_mock_backend(state: MockBackendState | None = None) -> FastAPI:
    """Create the mock backend application."""
    app = FastAPI(title="Mock Crawl Backend", version="1.0.0")
    data = state or MockBackendState()
    app.state.data = data

    def record(name: str, params: dict[str, Any] | None = None) -> None:
        data.requests.append((name, params or {}))
        if name in data.failing:
            raise HTTPException(status_code=500, detail=f"{name} unavailable")

    @app.get("/dashboard")
    async def dashboard(
        start_date: str | None = Query(default=None, alias="startDate"),
        end_date: str | None = Query(default=None, alias="endDate"),
    ):
        params = {k: v for k, v in (("startDate", start_date), ("endDate", end_date)) if v}
        record("dashboard", params)
        return [
            {
                "siteCode": s.site_code,
                "siteName": s.site_name,
                "completedCount": s.completed,
                "notCompletedCount": s.pending,
                "totalCount": s.total,
                "sequence": s.sequence,
                "lastUpdatedAt": s.last_updated_at,
                "loginId": s.login_id,
            }
            for s in data.sites
        ]

    @app.get("/accounts")
    async def accounts():
        record("accounts")
        return [
            {"siteCode": s.site_code, "loginId": s.login_id}
            for s in data.sites
            if s.login_id
        ]

    @app.get("/schedule/sites/status")
    async def site_statuses():
        record("siteStatuses")
        return [_site_status(s) for s in data.sites]

    @app.get("/schedule/status")
    async def schedule_status():
        record("schedule")
        return {"status": data.schedule_enabled}

    @app.put("/schedule/status")
    async def set_schedule_status(body: dict[str, Any] = Body(...)):
        record("schedule", body)
        status = body.get("status")
        if not isinstance(status, bool):
            raise HTTPException(status_code=400, detail="Invalid status value")
        data.schedule_enabled = status
        return {"status": data.schedule_enabled}

    @app.put("/schedule/sites/{site_code}/status")
    async def set_site_status(site_code: str, body: dict[str, Any] = Body(...)):
        record("siteControl", {"siteCode": site_code, **body})
        enabled = body.get("enabled")
        if not isinstance(enabled, bool):
            raise HTTPException(status_code=400, detail="Invalid enabled value")
        site = data.find(site_code)
        if site is None:
            raise HTTPException(status_code=404, detail=f"Unknown site: {site_code}")
        site.enabled = enabled
        site.updated_at = _now()
        status = _site_status(site)
        del status["sequence"]
        return status

    return app


def _site_status(site: MockSite) -> dict[str, Any]:
    return {
        "siteCode": site.site_code,
        "siteName": site.site_name,
        "enabled": site.enabled,
        "createdAt": site.created_at,
        "updatedAt": site.updated_at,
        "sequence": site.sequence,
    }


# Default app instance
app = create_mock_backend()
