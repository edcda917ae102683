"""In-memory activity log for dashboard fetches, refreshes and control calls."""

from collections import deque
from datetime import datetime, timezone
from itertools import count, islice
from typing import Any

from .models import DashboardEvent


class EventLog:
    """Bounded, newest-first store of dashboard events."""

    def __init__(self, max_events: int = 1000) -> None:
        """Initialize the log."""
        self.max_events = max_events
        self._events: deque[DashboardEvent] = deque(maxlen=max_events)
        self._ids = count(1)

    def log_event(
        self,
        event_type: str,
        source: str,
        status: str,
        message: str | None = None,
        duration_ms: float | None = None,
    ) -> int:
        """Record an event and return its id."""
        event = DashboardEvent(
            id=next(self._ids),
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            source=source,
            status=status,
            message=message,
            duration_ms=duration_ms,
        )
        self._events.appendleft(event)
        return event.id

    def get_stats(self) -> dict[str, Any]:
        """Count retained events by type and failures by source."""
        by_type: dict[str, int] = {}
        failures: dict[str, int] = {}
        for event in self._events:
            by_type[event.event_type] = by_type.get(event.event_type, 0) + 1
            if event.status == "error":
                failures[event.source] = failures.get(event.source, 0) + 1
        return {"total": len(self._events), "by_type": by_type, "failures": failures}

    def get_events(
        self, limit: int = 100, offset: int = 0, event_type: str | None = None
    ) -> tuple[list[DashboardEvent], int]:
        """Get a page of events, most recent first."""
        if event_type:
            matching = [e for e in self._events if e.event_type == event_type]
        else:
            matching = list(self._events)
        page = list(islice(matching, offset, offset + limit))
        return page, len(matching)

    def clear_events(self) -> None:
        """Clear all events."""
        self._events.clear()

    def resize(self, max_events: int) -> None:
        """Change the capacity, dropping the oldest events if it shrinks."""
        self.max_events = max_events
        self._events = deque(islice(self._events, max_events), maxlen=max_events)


# Global event log instance
_log: EventLog | None = None


def get_event_log(max_events: int | None = None) -> EventLog:
    """Get the global event log, resizing it if ``max_events`` differs."""
    global _log
    if _log is None:
        _log = EventLog(max_events or 1000)
    elif max_events and max_events != _log.max_events:
        _log.resize(max_events)
    return _log
