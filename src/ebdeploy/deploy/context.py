"""Per-invocation deployment context.

A ``DeploymentContext`` is built once per run and handed to every component,
carrying the service clients, the region, the retry policy and the time
primitives used for polling.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ebdeploy.deploy.clients import (
    EnvironmentManager,
    IdentityService,
    ObjectStore,
    RoleStore,
    ServiceClients,
    create_clients,
)
from ebdeploy.lib.retry import RetryPolicy, retry_with_policy
from ebdeploy.models.deployment import DeploymentConfig

T = TypeVar("T")


@dataclass
class DeploymentContext:
    """Dependencies shared by the reconciler and watchers of one invocation.

    Attributes:
        clients: Service clients scoped to ``region``
        region: AWS region of the deployment
        retry_policy: Backoff settings for mutating calls
        sleep: Blocking sleep used by polling loops and backoff
        clock: Monotonic clock used to measure timeouts
    """

    clients: ServiceClients
    region: str
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def for_config(cls, config: DeploymentConfig) -> DeploymentContext:
        """Build a context with boto3 clients for a validated configuration."""
        return cls(
            clients=create_clients(config.region),
            region=config.region,
            retry_policy=RetryPolicy.from_max_retries(
                config.max_retries, config.retry_delay
            ),
        )

    @property
    def environments(self) -> EnvironmentManager:
        return self.clients.environments

    @property
    def object_store(self) -> ObjectStore:
        return self.clients.object_store

    @property
    def identity(self) -> IdentityService:
        return self.clients.identity

    @property
    def roles(self) -> RoleStore:
        return self.clients.roles

    def retry(self, operation: Callable[[], T], label: str) -> T:
        """Run a remote call through the backoff executor."""
        return retry_with_policy(
            operation, self.retry_policy, label, sleep=self.sleep
        )
