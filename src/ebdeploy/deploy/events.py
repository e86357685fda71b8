"""Environment event tailing.

The platform exposes an event log per environment. The tailer fetches the
most recent page, keeps only events newer than the caller's high-water mark,
logs them oldest first and reports whether any of them is an ERROR or FATAL
event. Fetch failures never fail the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ebdeploy.config.defaults import EVENT_PAGE_SIZE
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.platform import EnvironmentEvent, EventSeverity

logger = get_logger(__name__)


@dataclass
class EventTailResult:
    """Result of one event fetch.

    Attributes:
        events: Newly observed events, oldest first
        has_error: True if any new event is ERROR or FATAL
        error_message: Message of the earliest new ERROR/FATAL event
        high_water_mark: Timestamp of the newest event seen so far
    """

    events: list[EnvironmentEvent] = field(default_factory=list)
    has_error: bool = False
    error_message: str | None = None
    high_water_mark: datetime | None = None


def select_new_events(
    events: list[EnvironmentEvent], high_water_mark: datetime | None
) -> list[EnvironmentEvent]:
    """Return events strictly newer than the mark, in chronological order.

    ``events`` is the platform feed, newest first. Without a mark every
    event is new; with a mark, events lacking a timestamp are dropped.
    """
    if high_water_mark is None:
        new_events = list(events)
    else:
        new_events = [
            event
            for event in events
            if event.timestamp is not None and event.timestamp > high_water_mark
        ]
    new_events.reverse()
    return new_events


def advance_high_water_mark(
    events: list[EnvironmentEvent], high_water_mark: datetime | None
) -> datetime | None:
    """Return the newest timestamp among ``events``, or the prior mark."""
    timestamps = [event.timestamp for event in events if event.timestamp is not None]
    if not timestamps:
        return high_water_mark
    newest = max(timestamps)
    if high_water_mark is not None and high_water_mark > newest:
        return high_water_mark
    return newest


def log_event(event: EnvironmentEvent) -> None:
    """Log one event at a level matching its severity."""
    line = f"  {event.format()}"
    if event.severity.is_failure:
        logger.error(line)
    elif event.severity == EventSeverity.WARN:
        logger.warning(line)
    else:
        logger.info(line)


class EventTailer:
    """Fetch and deduplicate an environment's recent events."""

    def __init__(
        self, context: DeploymentContext, page_size: int = EVENT_PAGE_SIZE
    ) -> None:
        self._context = context
        self._page_size = page_size

    def fetch(
        self,
        application_name: str,
        environment_name: str,
        high_water_mark: datetime | None = None,
    ) -> EventTailResult:
        """Fetch events newer than ``high_water_mark`` and classify them.

        Args:
            application_name: Application owning the environment
            environment_name: Environment whose events are read
            high_water_mark: Timestamp of the newest event already processed,
                or None on the first call

        Returns:
            EventTailResult with the new events and the advanced mark. On
            fetch failure, no events and the unchanged mark.
        """
        try:
            events = self._context.environments.describe_events(
                application_name, environment_name, self._page_size
            )
        except Exception as exc:
            logger.debug(f"Failed to fetch events: {exc}")
            return EventTailResult(high_water_mark=high_water_mark)

        new_events = select_new_events(events, high_water_mark)
        if not new_events:
            return EventTailResult(high_water_mark=high_water_mark)

        logger.info("Recent events:")
        for event in new_events:
            log_event(event)

        failures = [event for event in new_events if event.severity.is_failure]
        return EventTailResult(
            events=new_events,
            has_error=bool(failures),
            error_message=(
                (failures[0].message or "Unknown error occurred") if failures else None
            ),
            high_water_mark=advance_high_water_mark(new_events, high_water_mark),
        )
