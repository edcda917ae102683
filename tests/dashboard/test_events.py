"""Tests for the activity log and event logging helpers."""

import json
import logging

import pytest

from crawlboard.dashboard.events import EventLog, get_event_log
from crawlboard.dashboard.logging import (
    configure_logging,
    log_control,
    log_error,
    log_event,
    log_fetch,
    log_refresh,
    timed_source,
)


class TestEventLog:
    """Tests for EventLog storage."""

    def test_empty(self, event_log):
        events, total = event_log.get_events()

        assert events == []
        assert total == 0
        assert event_log.get_stats() == {"total": 0, "by_type": {}, "failures": {}}

    def test_log_event_returns_increasing_ids(self, event_log):
        first = event_log.log_event("fetch", "dashboard", "success", duration_ms=150.5)
        second = event_log.log_event("error", "accounts", "error", "Connection timeout")

        assert first > 0
        assert second > first

    def test_most_recent_first(self, event_log):
        event_log.log_event("fetch", "dashboard", "success")
        event_log.log_event("refresh", "scheduler", "success")
        event_log.log_event("error", "accounts", "error", "Test error")

        events, total = event_log.get_events()

        assert total == 3
        assert [e.event_type for e in events] == ["error", "refresh", "fetch"]

    def test_pagination(self, event_log):
        for i in range(15):
            event_log.log_event("fetch", f"source{i}", "success")

        page1, total = event_log.get_events(limit=10, offset=0)
        page2, _ = event_log.get_events(limit=10, offset=10)

        assert total == 15
        assert len(page1) == 10
        assert len(page2) == 5
        assert page2[-1].source == "source0"

    def test_filter_by_type(self, event_log):
        event_log.log_event("fetch", "dashboard", "success")
        event_log.log_event("error", "accounts", "error")
        event_log.log_event("error", "siteStatuses", "error")

        events, total = event_log.get_events(event_type="error")

        assert total == 2
        assert all(e.event_type == "error" for e in events)

    def test_stats(self, event_log):
        event_log.log_event("fetch", "dashboard", "success")
        event_log.log_event("fetch", "accounts", "error")
        event_log.log_event("control", "site", "error")

        stats = event_log.get_stats()

        assert stats["total"] == 3
        assert stats["by_type"] == {"fetch": 2, "control": 1}
        assert stats["failures"] == {"accounts": 1, "site": 1}

    def test_bounded(self):
        log = EventLog(max_events=3)
        for i in range(5):
            log.log_event("fetch", f"source{i}", "success")

        events, total = log.get_events()

        assert total == 3
        assert [e.source for e in events] == ["source4", "source3", "source2"]

    def test_clear(self, event_log):
        event_log.log_event("fetch", "dashboard", "success")
        event_log.clear_events()
        assert event_log.get_events() == ([], 0)

    def test_global_log_is_shared(self):
        assert get_event_log() is get_event_log()

    def test_resize_keeps_newest(self):
        log = EventLog(max_events=5)
        for i in range(5):
            log.log_event("fetch", f"source{i}", "success")

        log.resize(2)

        events, total = log.get_events()
        assert log.max_events == 2
        assert total == 2
        assert [e.source for e in events] == ["source4", "source3"]

    def test_global_log_honors_requested_size(self):
        """A size requested after first use resizes the shared log in place."""
        log = get_event_log()
        original = log.max_events
        try:
            assert get_event_log(original + 7) is log
            assert log.max_events == original + 7
            assert get_event_log() is log
            assert log.max_events == original + 7
        finally:
            log.resize(original)


class TestLogEvent:
    """Tests for the logging helpers."""

    def test_writes_json_line(self, event_log, caplog):
        with caplog.at_level(logging.INFO, logger="crawlboard.dashboard"):
            log_event("fetch", "dashboard", "success", duration_ms=12.345, event_log=event_log)

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        payload = json.loads(record.getMessage())
        assert payload == {
            "duration_ms": 12.3,
            "event": "fetch",
            "source": "dashboard",
            "status": "success",
        }

    def test_error_logged_as_warning(self, event_log, caplog):
        with caplog.at_level(logging.INFO, logger="crawlboard.dashboard"):
            log_error("refresh", "boom", event_log=event_log)

        assert caplog.records[-1].levelno == logging.WARNING
        (event,), _ = event_log.get_events()
        assert event.event_type == "error"
        assert event.message == "boom"

    def test_wrappers_set_type_and_source(self, event_log):
        log_fetch("accounts", "success", 5.0, event_log=event_log)
        log_control("site", "error", message="500", event_log=event_log)
        log_refresh("success", "9 sites, updated", event_log=event_log)

        events, _ = event_log.get_events()
        assert [(e.event_type, e.source) for e in events] == [
            ("refresh", "scheduler"),
            ("control", "site"),
            ("fetch", "accounts"),
        ]

    def test_broken_log_does_not_raise(self, caplog):
        class BrokenLog:
            def log_event(self, **kwargs):
                raise RuntimeError("disk full")

        with caplog.at_level(logging.WARNING, logger="crawlboard.dashboard"):
            log_event("fetch", "dashboard", "success", event_log=BrokenLog())

        assert "Error recording event" in caplog.text

    def test_configure_logging_sets_level(self):
        configure_logging("DEBUG")
        try:
            assert logging.getLogger("crawlboard").level == logging.DEBUG
        finally:
            logging.getLogger("crawlboard").setLevel(logging.NOTSET)


class TestTimedSource:
    """Tests for the timing decorator."""

    @pytest.mark.asyncio
    async def test_success(self, event_log):
        class Source:
            def __init__(self, log):
                self.event_log = log

            @timed_source("fetch", "accounts")
            async def load(self):
                return [1, 2]

        assert await Source(event_log).load() == [1, 2]

        (event,), _ = event_log.get_events()
        assert event.status == "success"
        assert event.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_failure_reraises(self, event_log):
        class Source:
            def __init__(self, log):
                self.event_log = log

            @timed_source("control", "schedule")
            async def flip(self):
                raise ValueError("refused")

        with pytest.raises(ValueError, match="refused"):
            await Source(event_log).flip()

        (event,), _ = event_log.get_events()
        assert event.status == "error"
        assert event.message == "refused"


# Mark tests
pytestmark = pytest.mark.dashboard
