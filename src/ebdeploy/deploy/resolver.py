"""Idempotent existence checks against the hosting platform.

Existence checks are advisory: a failed query is logged and reported as
"does not exist" rather than aborting the deployment.
"""

from __future__ import annotations

from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.lib.errors import (
    DeploymentError,
    EnvironmentNotFoundError,
    IncompleteSourceBundleError,
    VersionNotFoundError,
)
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.platform import EnvironmentSnapshot, SourceLocation

logger = get_logger(__name__)


class ExistenceResolver:
    """Answer "does it exist?" for versions, environments, buckets and roles."""

    def __init__(self, context: DeploymentContext) -> None:
        self._context = context

    def application_version_exists(
        self, application_name: str, version_label: str
    ) -> bool:
        """Return True if a version with exactly this label exists."""
        try:
            versions = self._context.environments.describe_application_versions(
                application_name, version_label
            )
        except Exception as exc:
            logger.debug(
                f"Error checking application version {version_label} existence: {exc}"
            )
            return False
        return len(versions) > 0

    def get_version_source_location(
        self, application_name: str, version_label: str
    ) -> SourceLocation:
        """Return the bucket/key of an existing version's source bundle.

        Raises:
            VersionNotFoundError: If the version does not exist.
            IncompleteSourceBundleError: If bucket or key is missing.
            DeploymentError: If the platform query fails.
        """
        try:
            versions = self._context.environments.describe_application_versions(
                application_name, version_label
            )
        except Exception as exc:
            raise DeploymentError(
                operation="resolve-version",
                message=(
                    "Failed to get S3 location for application version "
                    f"{version_label}: {exc}"
                ),
            ) from exc

        if not versions:
            raise VersionNotFoundError(application_name, version_label)

        version = versions[0]
        if not version.bucket or not version.key:
            raise IncompleteSourceBundleError(
                version_label, bucket=version.bucket, key=version.key
            )
        return SourceLocation(bucket=version.bucket, key=version.key)

    def environment_exists(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot:
        """Return a snapshot whose ``exists`` is False for absent or Terminated.

        A terminated environment can be re-created under the same name, so it
        is reported as absent while keeping its status and health.
        """
        try:
            snapshot = self._context.environments.describe_environment(
                application_name, environment_name
            )
        except Exception as exc:
            logger.warning(f"Error checking environment {environment_name}: {exc}")
            return EnvironmentSnapshot(exists=False, name=environment_name)

        if snapshot is None:
            logger.info(f"No environments found with name {environment_name}")
            return EnvironmentSnapshot(exists=False, name=environment_name)

        logger.info(
            f"Environment {environment_name} found - "
            f"Status: {snapshot.status}, Health: {snapshot.health}"
        )
        return snapshot.model_copy(update={"exists": not snapshot.is_terminated})

    def bucket_exists(self, bucket: str) -> bool:
        """Probe a bucket; any failure counts as non-existence."""
        try:
            self._context.object_store.head_bucket(bucket)
        except Exception as exc:
            logger.debug(f"Bucket probe for {bucket} failed: {exc}")
            return False
        return True

    def instance_profile_exists(self, name: str) -> bool:
        """Return True if the IAM instance profile exists."""
        try:
            self._context.roles.get_instance_profile(name)
        except Exception as exc:
            logger.debug(f"Instance profile lookup for {name} failed: {exc}")
            return False
        return True

    def service_role_exists(self, name: str) -> bool:
        """Return True if the IAM role exists."""
        try:
            self._context.roles.get_role(name)
        except Exception as exc:
            logger.debug(f"Role lookup for {name} failed: {exc}")
            return False
        return True

    def get_environment_info(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot:
        """Return the environment after deployment.

        Raises:
            EnvironmentNotFoundError: If the environment is not found.
        """
        snapshot = self._context.environments.describe_environment(
            application_name, environment_name
        )
        if snapshot is None:
            raise EnvironmentNotFoundError(
                environment_name,
                message=f"Environment {environment_name} not found after deployment",
            )
        return snapshot
