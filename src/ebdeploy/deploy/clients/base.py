"""Abstract interfaces for the remote services a deployment talks to.

Each interface has one production adapter backed by boto3
(``ebdeploy.deploy.clients.aws``) and one in-memory fake
(``ebdeploy.deploy.clients.memory``). Implementations let SDK errors
propagate; deciding which failures are advisory is up to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from ebdeploy.models.deployment import OptionSetting
from ebdeploy.models.platform import (
    ApplicationVersionRef,
    EnvironmentEvent,
    EnvironmentSnapshot,
)


class EnvironmentManager(ABC):
    """Application and environment operations of the hosting platform."""

    @abstractmethod
    def describe_application_versions(
        self, application_name: str, version_label: str
    ) -> list[ApplicationVersionRef]:
        """Return the versions matching an exact label (empty when absent).

        Args:
            application_name: Application owning the version.
            version_label: Exact label to look up.

        Returns:
            Matching versions with their source bundle location, if any.
        """

    @abstractmethod
    def create_application_version(
        self,
        *,
        application_name: str,
        version_label: str,
        bucket: str,
        key: str,
        description: str,
        auto_create_application: bool,
    ) -> None:
        """Register a new application version pointing at an uploaded bundle.

        Args:
            application_name: Application owning the version.
            version_label: Label for the new version.
            bucket: Bucket holding the source bundle.
            key: Object key of the source bundle.
            description: Free-form version description.
            auto_create_application: Create the application when it is absent.
        """

    @abstractmethod
    def describe_environment(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot | None:
        """Return the environment record, or None when the platform has none.

        A live record is preferred over a lingering Terminated one; a
        Terminated record is returned only when no live one exists and callers
        decide how to treat it.
        """

    @abstractmethod
    def create_environment(
        self,
        *,
        application_name: str,
        environment_name: str,
        version_label: str,
        option_settings: Sequence[OptionSetting],
        solution_stack_name: str | None = None,
        platform_arn: str | None = None,
        cname_prefix: str | None = None,
    ) -> None:
        """Start creating an environment running the given version."""

    @abstractmethod
    def update_environment(
        self,
        *,
        application_name: str,
        environment_name: str,
        version_label: str,
        option_settings: Sequence[OptionSetting],
        solution_stack_name: str | None = None,
        platform_arn: str | None = None,
    ) -> None:
        """Start deploying a version (and settings) to an existing environment."""

    @abstractmethod
    def describe_events(
        self, application_name: str, environment_name: str, max_records: int
    ) -> list[EnvironmentEvent]:
        """Return up to ``max_records`` recent events, newest first."""


class ObjectStore(ABC):
    """Blob storage used to hold source bundles."""

    @abstractmethod
    def head_bucket(self, bucket: str) -> None:
        """Probe a bucket, raising if it does not exist or is not accessible."""

    @abstractmethod
    def create_bucket(self, bucket: str, region: str | None = None) -> None:
        """Create a bucket.

        Args:
            bucket: Bucket name.
            region: Location constraint; None for the default region.
        """

    @abstractmethod
    def upload_file(self, path: Path, bucket: str, key: str) -> None:
        """Upload a local file to ``bucket``/``key``."""


class IdentityService(ABC):
    """Caller identity lookups."""

    @abstractmethod
    def get_account_id(self) -> str:
        """Return the account id of the current credentials."""


class RoleStore(ABC):
    """IAM lookups used to verify role references before creating resources."""

    @abstractmethod
    def get_instance_profile(self, name: str) -> None:
        """Raise if the instance profile does not exist."""

    @abstractmethod
    def get_role(self, name: str) -> None:
        """Raise if the role does not exist."""
