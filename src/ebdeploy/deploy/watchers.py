"""Polling loops that follow an environment after a create or update.

``DeploymentWatcher`` waits for the environment status to reach Ready;
``HealthWatcher`` then waits for its health to become Green or Yellow. Both
consult the event tailer so that an ERROR or FATAL event ends the wait
immediately instead of running out the timeout, and both carry the event
high-water mark forward so no event is reported twice.
"""

from __future__ import annotations

from datetime import datetime

from ebdeploy.config.defaults import (
    CREATE_POLL_INTERVAL,
    HEALTH_POLL_INTERVAL,
    UPDATE_POLL_INTERVAL,
)
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.events import EventTailer
from ebdeploy.lib.errors import (
    DeploymentError,
    DeploymentFailedEventError,
    DeploymentTimeoutError,
    HealthCheckFailedError,
    HealthCheckTimeoutError,
)
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.platform import DeploymentActionType, EnvironmentSnapshot

logger = get_logger(__name__)


def poll_interval_for(action: DeploymentActionType | None) -> int:
    """Return the status poll interval for a create or update."""
    if action == DeploymentActionType.CREATE:
        return CREATE_POLL_INTERVAL
    return UPDATE_POLL_INTERVAL


class _Watcher:
    """Shared plumbing for the two polling loops."""

    operation = "watch"

    def __init__(
        self, context: DeploymentContext, tailer: EventTailer | None = None
    ) -> None:
        self._context = context
        self._tailer = tailer or EventTailer(context)

    def _describe(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot | None:
        try:
            return self._context.environments.describe_environment(
                application_name, environment_name
            )
        except Exception as exc:
            raise DeploymentError(
                operation=self.operation,
                message=f"Failed to describe environment {environment_name}: {exc}",
            ) from exc

    def _check_events(
        self,
        application_name: str,
        environment_name: str,
        high_water_mark: datetime | None,
    ) -> datetime | None:
        """Fetch new events; raise if one of them is ERROR or FATAL."""
        result = self._tailer.fetch(
            application_name, environment_name, high_water_mark
        )
        if result.has_error:
            raise DeploymentFailedEventError(
                result.error_message or "Unknown error occurred"
            )
        return result.high_water_mark


class DeploymentWatcher(_Watcher):
    """Wait for an environment's status to become Ready."""

    operation = "wait-for-deployment"

    def wait(
        self,
        application_name: str,
        environment_name: str,
        timeout: int,
        action: DeploymentActionType | None = None,
        high_water_mark: datetime | None = None,
    ) -> datetime | None:
        """Poll until the status is Ready.

        Args:
            application_name: Application owning the environment
            environment_name: Environment to watch
            timeout: Overall budget in seconds
            action: Whether the environment is being created or updated;
                selects the poll interval
            high_water_mark: Event mark to start from

        Returns:
            The event high-water mark reached, for the health watcher.

        Raises:
            DeploymentFailedEventError: If an ERROR or FATAL event appears.
            DeploymentTimeoutError: If Ready is not reached within ``timeout``.
        """
        logger.info("Waiting for deployment to complete...")
        interval = poll_interval_for(action)
        started = self._context.clock()
        previous_status: str | None = None
        mark = high_water_mark

        while self._context.clock() - started < timeout:
            snapshot = self._describe(application_name, environment_name)

            if snapshot is not None:
                if snapshot.status != previous_status:
                    logger.info(f"Current status: {snapshot.status}")
                    previous_status = snapshot.status

                if snapshot.is_ready:
                    logger.info("Deployment complete")
                    return mark

                mark = self._check_events(application_name, environment_name, mark)

            self._context.sleep(interval)

        self._tailer.fetch(application_name, environment_name, mark)
        raise DeploymentTimeoutError(timeout)


class HealthWatcher(_Watcher):
    """Wait for an environment's health to become Green or Yellow."""

    operation = "wait-for-health"

    def wait(
        self,
        application_name: str,
        environment_name: str,
        timeout: int,
        high_water_mark: datetime | None = None,
    ) -> datetime | None:
        """Poll until health is acceptable.

        Red health only fails the wait once the status is Ready; a Red
        reading while the environment is still transitioning is tolerated.

        Raises:
            DeploymentFailedEventError: If an ERROR or FATAL event appears
                while health is Grey or unset.
            HealthCheckFailedError: If health is Red with status Ready.
            HealthCheckTimeoutError: If health does not recover in time.
        """
        logger.info("Waiting for environment health to recover...")
        started = self._context.clock()
        previous: tuple[str | None, str | None] | None = None
        mark = high_water_mark

        while self._context.clock() - started < timeout:
            snapshot = self._describe(application_name, environment_name)

            if snapshot is not None:
                if snapshot.health_is_grey:
                    mark = self._check_events(application_name, environment_name, mark)

                if snapshot.health_is_acceptable:
                    logger.info(
                        f"Environment is healthy! (status: {snapshot.status}, "
                        f"health: {snapshot.health})"
                    )
                    return mark

                if snapshot.health_is_red and snapshot.is_ready:
                    self._tailer.fetch(application_name, environment_name, mark)
                    raise HealthCheckFailedError(environment_name)

                current = (snapshot.status, snapshot.health)
                if current != previous:
                    logger.info(
                        f"Current status: {snapshot.status}, health: {snapshot.health}"
                    )
                    previous = current

            self._context.sleep(HEALTH_POLL_INTERVAL)

        self._tailer.fetch(application_name, environment_name, mark)
        raise HealthCheckTimeoutError(timeout)
