"""Pytest configuration and shared fixtures for ebdeploy tests."""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from ebdeploy.deploy.clients import ServiceClients
from ebdeploy.deploy.clients.memory import (
    InMemoryEnvironmentManager,
    InMemoryIdentityService,
    InMemoryObjectStore,
    InMemoryRoleStore,
)
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.lib.retry import RetryPolicy
from ebdeploy.models.deployment import DeploymentConfig
from ebdeploy.models.platform import EnvironmentEvent, EventSeverity

APP = "my-app"
ENV = "my-app-prod"
INSTANCE_PROFILE = "aws-elasticbeanstalk-ec2-role"
SERVICE_ROLE = "aws-elasticbeanstalk-service-role"
SOLUTION_STACK = "64bit Amazon Linux 2023 v4.3.0 running Python 3.11"

IAM_OPTION_SETTINGS = [
    {
        "Namespace": "aws:autoscaling:launchconfiguration",
        "OptionName": "IamInstanceProfile",
        "Value": INSTANCE_PROFILE,
    },
    {
        "Namespace": "aws:elasticbeanstalk:environment",
        "OptionName": "ServiceRole",
        "Value": SERVICE_ROLE,
    },
]

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_event(
    offset_seconds: int,
    severity: EventSeverity = EventSeverity.INFO,
    message: str = "event",
) -> EnvironmentEvent:
    """Build an event ``offset_seconds`` after BASE_TIME."""
    return EnvironmentEvent(
        timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
        severity=severity,
        message=message,
    )


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Provide isolated environment variables for testing.

    Saves current environment and restores after test.
    """
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def event_factory() -> Callable[..., EnvironmentEvent]:
    """Return a builder for events at fixed offsets from a base time."""
    return make_event


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock and sleep pair that never blocks."""
    return FakeClock()


@pytest.fixture
def environments() -> InMemoryEnvironmentManager:
    return InMemoryEnvironmentManager()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def identity() -> InMemoryIdentityService:
    return InMemoryIdentityService(account_id="123456789012")


@pytest.fixture
def role_store() -> InMemoryRoleStore:
    """Role store that knows the default instance profile and service role."""
    return InMemoryRoleStore(
        instance_profiles=[INSTANCE_PROFILE], roles=[SERVICE_ROLE]
    )


@pytest.fixture
def clients(
    environments: InMemoryEnvironmentManager,
    object_store: InMemoryObjectStore,
    identity: InMemoryIdentityService,
    role_store: InMemoryRoleStore,
) -> ServiceClients:
    return ServiceClients(
        environments=environments,
        object_store=object_store,
        identity=identity,
        roles=role_store,
    )


@pytest.fixture
def context(clients: ServiceClients, fake_clock: FakeClock) -> DeploymentContext:
    """Deployment context wired to the in-memory fakes and the fake clock."""
    return DeploymentContext(
        clients=clients,
        region="us-west-2",
        retry_policy=RetryPolicy(max_attempts=3, base_delay=5),
        sleep=fake_clock.sleep,
        clock=fake_clock,
    )


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., DeploymentConfig]:
    """Factory for valid deployment configurations.

    Keyword arguments override the defaults.
    """

    def _make(**overrides: Any) -> DeploymentConfig:
        values: dict[str, Any] = {
            "region": "us-west-2",
            "application_name": APP,
            "environment_name": ENV,
            "version_label": "v1",
            "solution_stack_name": SOLUTION_STACK,
            "option_settings": IAM_OPTION_SETTINGS,
            "source_dir": tmp_path,
        }
        values.update(overrides)
        return DeploymentConfig(**values)

    return _make
