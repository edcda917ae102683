"""FastAPI application for the crawl monitoring dashboard."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, AsyncIterator, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .client import BackendError
from .config import get_settings
from .logging import configure_logging
from .models import (
    DashboardSummary,
    DashboardView,
    EventLogResponse,
    EventStatsResponse,
    HealthResponse,
    IntervalRequest,
    ScheduleView,
    SearchParams,
    TableRow,
)
from .presentation import build_schedule_view, build_table
from .service import DashboardService
from .toggles import ToggleInProgressError, UnknownSiteError


def create_app(service_instance: DashboardService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service_instance: Dashboard service to expose; built from settings if None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service_instance is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            app.state.service = DashboardService.from_settings(settings)
        else:
            app.state.service = service_instance
        await app.state.service.start()
        try:
            yield
        finally:
            await app.state.service.close()

    app = FastAPI(
        title="Crawlboard API",
        description="Crawl request monitoring dashboard",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_service(request: Request) -> DashboardService:
        """Get the running dashboard service."""
        return request.app.state.service

    Service = Annotated[DashboardService, Depends(get_service)]

    @app.get("/api/dashboard", response_model=DashboardView)
    async def get_dashboard(service: Service):
        """Full dashboard view: cards, chart, table and banners."""
        return service.view()

    @app.get("/api/summary", response_model=DashboardSummary)
    async def get_summary(service: Service):
        """Latest aggregated summary."""
        if service.summary is None:
            raise HTTPException(status_code=404, detail="No dashboard data loaded yet")
        return service.summary

    @app.post("/api/refresh", response_model=DashboardView)
    async def refresh(service: Service):
        """Refresh now and return the updated view."""
        await service.refresh()
        return service.view()

    @app.post("/api/search", response_model=DashboardView)
    async def search(params: SearchParams, service: Service):
        """Limit request counts to a date range and refresh."""
        if params.start_date and params.end_date and params.start_date > params.end_date:
            raise HTTPException(status_code=422, detail="startDate must not be after endDate")
        await service.search(params)
        return service.view()

    @app.get("/api/schedule", response_model=ScheduleView)
    async def get_schedule(service: Service):
        """Scheduler switch, refresh period and toggle progress."""
        return build_schedule_view(service.state, service.scheduler.armed)

    @app.put("/api/schedule/interval", response_model=ScheduleView)
    async def put_interval(body: IntervalRequest, service: Service):
        """Change the refresh period."""
        try:
            service.set_interval(body.interval_ms)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return build_schedule_view(service.state, service.scheduler.armed)

    @app.post("/api/schedule/toggle", response_model=ScheduleView)
    async def toggle_schedule(service: Service):
        """Flip the backend scheduler switch."""
        try:
            await service.toggle_schedule()
        except ToggleInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return build_schedule_view(service.state, service.scheduler.armed)

    @app.post("/api/sites/{site_code}/toggle", response_model=TableRow)
    async def toggle_site(site_code: str, service: Service):
        """Flip crawling for one site and return its table row."""
        try:
            await service.toggle_site(site_code)
        except UnknownSiteError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ToggleInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        row = next(
            (r for r in build_table(service.state) if r.site_code == site_code), None
        )
        if row is None:
            raise HTTPException(status_code=404, detail=f"Unknown site: {site_code}")
        return row

    @app.get("/api/events", response_model=EventLogResponse)
    async def get_events(
        service: Service,
        limit: Annotated[int, Query(ge=1, le=1000)] = 100,
        offset: Annotated[int, Query(ge=0)] = 0,
        event_type: Annotated[
            Literal["fetch", "refresh", "control", "error"] | None, Query()
        ] = None,
    ):
        """Get paginated activity log."""
        event_log = service.event_log
        events, total = event_log.get_events(limit=limit, offset=offset, event_type=event_type)
        page = (offset // limit) + 1

        return EventLogResponse(
            events=events,
            total=total,
            page=page,
            limit=limit,
        )

    @app.delete("/api/events", status_code=204)
    async def clear_events(service: Service):
        """Clear the activity log."""
        service.event_log.clear_events()

    @app.get("/api/stats", response_model=EventStatsResponse)
    async def get_stats(service: Service):
        """Activity log counts by event type and failures by source."""
        return EventStatsResponse(**service.event_log.get_stats())

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(service: Service):
        """Service health check."""
        try:
            await service.client.get_schedule_status()
            backend_status = "healthy"
        except BackendError:
            backend_status = "unreachable"

        return HealthResponse(
            status="healthy" if backend_status == "healthy" else "degraded",
            backend=backend_status,
            scheduler=service.scheduler.state.value,
            timestamp=datetime.now(timezone.utc),
        )

    return app


# Default app instance
app = create_app()
