"""Service clients used by the deployment engine."""

from __future__ import annotations

from dataclasses import dataclass

from ebdeploy.deploy.clients.base import (
    EnvironmentManager,
    IdentityService,
    ObjectStore,
    RoleStore,
)
from ebdeploy.lib.errors import CloudSDKNotInstalledError


@dataclass(frozen=True)
class ServiceClients:
    """The four service clients one invocation works with."""

    environments: EnvironmentManager
    object_store: ObjectStore
    identity: IdentityService
    roles: RoleStore


def create_clients(region: str) -> ServiceClients:
    """Create boto3-backed clients sharing one session scoped to ``region``."""
    try:
        from ebdeploy.deploy.clients.aws import (
            BeanstalkEnvironmentManager,
            IAMRoleStore,
            S3ObjectStore,
            STSIdentityService,
            create_session,
        )
    except ImportError as exc:
        raise CloudSDKNotInstalledError(provider="aws", sdk_name="boto3") from exc

    session = create_session(region)
    return ServiceClients(
        environments=BeanstalkEnvironmentManager(session),
        object_store=S3ObjectStore(session),
        identity=STSIdentityService(session),
        roles=IAMRoleStore(session),
    )


__all__ = [
    "EnvironmentManager",
    "IdentityService",
    "ObjectStore",
    "RoleStore",
    "ServiceClients",
    "create_clients",
]
