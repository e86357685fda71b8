"""Unit tests for the environment event tailer."""

from __future__ import annotations

import logging
from collections.abc import Callable

import pytest

from ebdeploy.deploy.clients.memory import FakeServiceError, InMemoryEnvironmentManager
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.events import EventTailer, advance_high_water_mark, select_new_events
from ebdeploy.models.platform import EnvironmentEvent, EventSeverity

APP = "my-app"
ENV = "my-app-prod"

EventFactory = Callable[..., EnvironmentEvent]


@pytest.mark.unit
class TestSelectNewEvents:
    """Tests for high-water mark filtering."""

    def test_without_mark_all_events_are_new(self, event_factory: EventFactory) -> None:
        """Every event is new on the first fetch, returned oldest first."""
        t1, t2, t3 = event_factory(1), event_factory(2), event_factory(3)
        assert select_new_events([t3, t2, t1], None) == [t1, t2, t3]

    def test_mark_keeps_only_strictly_newer(self, event_factory: EventFactory) -> None:
        t1, t2, t3 = event_factory(1), event_factory(2), event_factory(3)
        assert select_new_events([t3, t2, t1], t2.timestamp) == [t3]

    def test_event_without_timestamp(self, event_factory: EventFactory) -> None:
        """Timestamp-less events are new without a mark and dropped with one."""
        undated = EnvironmentEvent(message="undated")
        t1 = event_factory(1)

        assert select_new_events([undated, t1], None) == [t1, undated]
        assert select_new_events([undated], t1.timestamp) == []

    def test_advance_mark_keeps_prior_when_no_timestamps(
        self, event_factory: EventFactory
    ) -> None:
        mark = event_factory(5).timestamp
        assert advance_high_water_mark([EnvironmentEvent()], mark) == mark
        assert advance_high_water_mark([event_factory(9)], mark) == (
            event_factory(9).timestamp
        )


@pytest.mark.unit
class TestEventTailer:
    """Tests for EventTailer.fetch."""

    def test_dedupes_against_mark(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
    ) -> None:
        """Events [T1<T2<T3] with mark T2 yield only T3 and mark T3."""
        t1, t2, t3 = event_factory(1), event_factory(2), event_factory(3)
        environments.script_events(APP, ENV, [[t3, t2, t1]])

        result = EventTailer(context).fetch(APP, ENV, t2.timestamp)

        assert result.events == [t3]
        assert result.high_water_mark == t3.timestamp
        assert not result.has_error

    def test_requests_one_page_of_ten(
        self, context: DeploymentContext, environments: InMemoryEnvironmentManager
    ) -> None:
        EventTailer(context).fetch(APP, ENV)

        call = environments.calls_to("describe_events")[0]
        assert call.kwargs["max_records"] == 10

    def test_reports_chronologically_first_error(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
    ) -> None:
        """The earliest ERROR/FATAL event's message is reported."""
        environments.script_events(
            APP,
            ENV,
            [
                [
                    event_factory(3, EventSeverity.ERROR, "later error"),
                    event_factory(2, EventSeverity.FATAL, "first failure"),
                    event_factory(1, EventSeverity.INFO, "launching"),
                ]
            ],
        )

        result = EventTailer(context).fetch(APP, ENV)

        assert result.has_error
        assert result.error_message == "first failure"

    def test_warn_is_not_a_failure(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
    ) -> None:
        environments.script_events(
            APP, ENV, [[event_factory(1, EventSeverity.WARN, "degraded")]]
        )

        result = EventTailer(context).fetch(APP, ENV)

        assert not result.has_error
        assert result.error_message is None

    def test_fetch_failure_keeps_mark(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
    ) -> None:
        """A failed query is not an error and leaves the mark unchanged."""
        mark = event_factory(7).timestamp
        environments.fail_next("describe_events", FakeServiceError("throttled"))

        result = EventTailer(context).fetch(APP, ENV, mark)

        assert result.events == []
        assert not result.has_error
        assert result.high_water_mark == mark

    def test_logs_events_oldest_first(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.INFO, logger="ebdeploy")
        environments.script_events(
            APP,
            ENV,
            [
                [
                    event_factory(2, EventSeverity.ERROR, "second"),
                    event_factory(1, EventSeverity.INFO, "first"),
                ]
            ],
        )

        EventTailer(context).fetch(APP, ENV)

        messages = [r.getMessage() for r in caplog.records]
        header = messages.index("Recent events:")
        assert "INFO: first" in messages[header + 1]
        assert "ERROR: second" in messages[header + 2]
        error_records = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(error_records) == 1

    def test_no_new_events_logs_nothing(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.INFO, logger="ebdeploy")

        EventTailer(context).fetch(APP, ENV)

        assert "Recent events:" not in caplog.text
