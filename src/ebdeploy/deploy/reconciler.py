"""Create-or-update reconciliation of application versions and environments.

The version phase makes sure a version with the requested label exists,
reusing an existing one when allowed and otherwise packaging, uploading and
registering a new one. The environment phase updates an existing
environment or creates a missing one. Every mutating call goes through the
context's backoff executor.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ebdeploy.config.defaults import DEFAULT_S3_REGION, GITHUB_SHA_ENV
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.naming import BucketNamer, bundle_key, get_bucket_namer
from ebdeploy.deploy.packaging import produce_bundle
from ebdeploy.deploy.resolver import ExistenceResolver
from ebdeploy.lib.errors import (
    BucketMissingError,
    ConfigError,
    EnvironmentNotFoundError,
    RoleNotFoundError,
)
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.deployment import DeploymentConfig, IamRoles, OptionSetting
from ebdeploy.models.platform import DeploymentActionType, SourceLocation

logger = get_logger(__name__)

Packager = Callable[..., Path]


@dataclass
class VersionResolution:
    """Outcome of the version phase.

    Attributes:
        source: Location of the version's source bundle
        reused: True when an existing version was reused as-is
        package_path: Local package that was uploaded, if any
    """

    source: SourceLocation
    reused: bool
    package_path: Path | None = None


@dataclass
class ReconcileResult:
    """Outcome of both reconciliation phases."""

    version: VersionResolution
    action: DeploymentActionType


def build_create_option_settings(
    roles: IamRoles, custom_settings: list[OptionSetting]
) -> list[OptionSetting]:
    """Return role settings followed by the caller's settings, not deduplicated."""
    return [*roles.as_option_settings(), *custom_settings]


class Reconciler:
    """Drive the platform from its current state to the requested deployment."""

    def __init__(
        self,
        context: DeploymentContext,
        resolver: ExistenceResolver | None = None,
        packager: Packager = produce_bundle,
        bucket_namer: BucketNamer | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            context: Per-invocation deployment context
            resolver: Existence resolver (built from the context by default)
            packager: Callable producing the deployment package
            bucket_namer: Bucket naming policy overriding the configured one
        """
        self._context = context
        self._resolver = resolver or ExistenceResolver(context)
        self._packager = packager
        self._bucket_namer = bucket_namer

    def reconcile(self, config: DeploymentConfig) -> ReconcileResult:
        """Run the version phase, then the environment phase."""
        version = self.prepare_version(config)
        action = self.reconcile_environment(config)
        return ReconcileResult(version=version, action=action)

    # Version phase

    def prepare_version(self, config: DeploymentConfig) -> VersionResolution:
        """Reuse or create the application version for ``config.version_label``."""
        app = config.application_name
        label = config.version_label

        if config.reuse_existing_version and self._resolver.application_version_exists(
            app, label
        ):
            logger.info(f"Application version {label} already exists, reusing it")
            source = self._resolver.get_version_source_location(app, label)
            logger.info(f"Using existing source bundle: {source.uri}")
            return VersionResolution(source=source, reused=True)

        package_path = self._packager(
            config.package_path,
            label,
            config.exclude_patterns,
            source_dir=config.source_dir,
        )

        bucket = self.resolve_bucket_name(config)
        self.ensure_bucket(bucket, create_if_missing=config.create_bucket_if_missing)

        source = SourceLocation(
            bucket=bucket, key=bundle_key(app, label, package_path.suffix)
        )
        self.upload_package(package_path, source)
        self.create_application_version(config, source)
        return VersionResolution(source=source, reused=False, package_path=package_path)

    def resolve_bucket_name(self, config: DeploymentConfig) -> str:
        """Return the bucket override or apply the naming policy."""
        if config.bucket_name:
            return config.bucket_name

        namer = self._bucket_namer or get_bucket_namer(config.bucket_naming)
        return namer(config.region, self.resolve_account_id(), config.application_name)

    def resolve_account_id(self) -> str:
        """Return the caller's account ID."""
        return self._context.retry(
            self._context.identity.get_account_id, "Get AWS account ID"
        )

    def ensure_bucket(self, bucket: str, create_if_missing: bool) -> None:
        """Make sure ``bucket`` exists, creating it when allowed.

        Raises:
            BucketMissingError: If the bucket is missing and may not be created.
        """
        logger.info(f"Checking if S3 bucket exists: {bucket}")
        if self._resolver.bucket_exists(bucket):
            logger.info("S3 bucket exists")
            return

        if not create_if_missing:
            raise BucketMissingError(bucket)

        logger.info(f"S3 bucket doesn't exist, creating: {bucket}")
        region = self._context.region
        # Buckets in the default region must not carry a LocationConstraint
        location = None if region == DEFAULT_S3_REGION else region
        self._context.retry(
            lambda: self._context.object_store.create_bucket(bucket, region=location),
            "Create S3 bucket",
        )
        logger.info("S3 bucket created")

    def upload_package(self, package_path: Path, source: SourceLocation) -> None:
        """Upload the package to ``source``."""
        size_mb = package_path.stat().st_size / 1024 / 1024
        logger.info(f"Uploading to S3: {source.uri}")
        logger.info(f"  File size: {size_mb:.2f} MB")
        self._context.retry(
            lambda: self._context.object_store.upload_file(
                package_path, source.bucket, source.key
            ),
            "Upload to S3",
        )
        logger.info("Upload complete")

    def create_application_version(
        self, config: DeploymentConfig, source: SourceLocation
    ) -> None:
        """Register the uploaded bundle as a new application version."""
        label = config.version_label
        revision = os.environ.get(GITHUB_SHA_ENV) or "manual"
        logger.info(f"Creating application version: {label}")
        self._context.retry(
            lambda: self._context.environments.create_application_version(
                application_name=config.application_name,
                version_label=label,
                bucket=source.bucket,
                key=source.key,
                description=f"Deployed by ebdeploy - {revision}",
                auto_create_application=config.create_application_if_missing,
            ),
            "Create application version",
        )
        logger.info(f"Application version {label} created")

    # Environment phase

    def reconcile_environment(self, config: DeploymentConfig) -> DeploymentActionType:
        """Update the environment if it exists, otherwise create it if allowed.

        Raises:
            EnvironmentNotFoundError: If absent and creation is disabled.
            RoleNotFoundError: If a required IAM reference does not exist.
        """
        snapshot = self._resolver.environment_exists(
            config.application_name, config.environment_name
        )
        if snapshot.exists:
            self.update_environment(config)
            return DeploymentActionType.UPDATE

        if not config.create_environment_if_missing:
            raise EnvironmentNotFoundError(config.environment_name)

        self.create_environment(config)
        return DeploymentActionType.CREATE

    def update_environment(self, config: DeploymentConfig) -> None:
        """Deploy the version and caller settings to an existing environment."""
        env = config.environment_name
        logger.info(f"Updating environment: {env}")
        self._context.retry(
            lambda: self._context.environments.update_environment(
                application_name=config.application_name,
                environment_name=env,
                version_label=config.version_label,
                option_settings=config.option_settings,
                solution_stack_name=config.solution_stack_name,
                platform_arn=config.platform_arn,
            ),
            "Update environment",
        )
        logger.info(f"Environment update initiated for {env}")

    def create_environment(self, config: DeploymentConfig) -> None:
        """Verify IAM references, then create the environment."""
        env = config.environment_name
        roles = config.iam_roles
        if roles is None:
            raise ConfigError(
                field="option_settings",
                message=(
                    "IamInstanceProfile and ServiceRole settings are required "
                    "to create an environment"
                ),
            )

        logger.info(f"Creating new environment: {env}")
        self.verify_iam_roles(roles)

        option_settings = build_create_option_settings(roles, config.option_settings)
        self._context.retry(
            lambda: self._context.environments.create_environment(
                application_name=config.application_name,
                environment_name=env,
                version_label=config.version_label,
                option_settings=option_settings,
                solution_stack_name=config.solution_stack_name,
                platform_arn=config.platform_arn,
                cname_prefix=env,
            ),
            "Create environment",
        )
        logger.info(f"Environment creation initiated for {env}")

    def verify_iam_roles(self, roles: IamRoles) -> None:
        """Fail fast if the instance profile or service role is missing."""
        logger.info("Verifying IAM roles exist...")
        if not self._resolver.instance_profile_exists(roles.instance_profile):
            raise RoleNotFoundError("Instance profile", roles.instance_profile)
        logger.info(f"Instance profile exists: {roles.instance_profile}")

        if not self._resolver.service_role_exists(roles.service_role):
            raise RoleNotFoundError("Service role", roles.service_role)
        logger.info(f"Service role exists: {roles.service_role}")
