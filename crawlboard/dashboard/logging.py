"""Logging utilities for dashboard events."""

import json
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Literal, TypeVar

from .events import EventLog, get_event_log

logger = logging.getLogger("crawlboard.dashboard")

T = TypeVar("T")

EventType = Literal["fetch", "refresh", "control", "error"]


def configure_logging(level: str = "INFO") -> None:
    """Set the package log level, adding a stream handler if none is present."""
    package_logger = logging.getLogger("crawlboard")
    package_logger.setLevel(level)
    if not package_logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        package_logger.addHandler(handler)


def log_event(
    event_type: EventType,
    source: str,
    status: str,
    message: str | None = None,
    duration_ms: float | None = None,
    event_log: EventLog | None = None,
) -> None:
    """Record an event in the activity log and emit it as a JSON log line."""
    payload: dict[str, Any] = {"event": event_type, "source": source, "status": status}
    if message is not None:
        payload["message"] = message
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 1)
    level = logging.WARNING if status == "error" else logging.INFO
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))

    try:
        (event_log or get_event_log()).log_event(
            event_type=event_type,
            source=source,
            status=status,
            message=message,
            duration_ms=duration_ms,
        )
    except Exception as e:
        # Don't fail the dashboard if the activity log breaks
        logger.warning("Error recording event: %s", e)


def log_fetch(
    source: str,
    status: str,
    duration_ms: float | None = None,
    message: str | None = None,
    event_log: EventLog | None = None,
) -> None:
    """Log a backend read."""
    log_event("fetch", source, status, message, duration_ms, event_log)


def log_control(
    source: str,
    status: str,
    duration_ms: float | None = None,
    message: str | None = None,
    event_log: EventLog | None = None,
) -> None:
    """Log a control-endpoint write."""
    log_event("control", source, status, message, duration_ms, event_log)


def log_refresh(
    status: str,
    message: str | None = None,
    duration_ms: float | None = None,
    event_log: EventLog | None = None,
) -> None:
    """Log a completed refresh cycle."""
    log_event("refresh", "scheduler", status, message, duration_ms, event_log)


def log_error(
    source: str,
    message: str,
    duration_ms: float | None = None,
    event_log: EventLog | None = None,
) -> None:
    """Log an error that is not tied to a single backend call."""
    log_event("error", source, "error", message, duration_ms, event_log)


def timed_source(
    event_type: Literal["fetch", "control"], source: str
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator that times an async backend call and logs its outcome.

    The decorated method's instance may carry an ``event_log`` attribute; it
    is used instead of the global log when present.
    """
    log = log_fetch if event_type == "fetch" else log_control

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            event_log = getattr(args[0], "event_log", None) if args else None
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = (time.perf_counter() - start) * 1000
                log(source, "error", duration, str(e), event_log)
                raise
            duration = (time.perf_counter() - start) * 1000
            log(source, "success", duration, None, event_log)
            return result

        return wrapper

    return decorator
