"""Unit tests for the existence resolver."""

from __future__ import annotations

import pytest

from ebdeploy.deploy.clients.memory import (
    FakeServiceError,
    InMemoryEnvironmentManager,
    InMemoryObjectStore,
)
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.resolver import ExistenceResolver
from ebdeploy.lib.errors import (
    DeploymentError,
    EnvironmentNotFoundError,
    IncompleteSourceBundleError,
    VersionNotFoundError,
)

APP = "my-app"
ENV = "my-app-prod"


@pytest.fixture
def resolver(context: DeploymentContext) -> ExistenceResolver:
    return ExistenceResolver(context)


@pytest.mark.unit
class TestApplicationVersions:
    """Tests for version existence and source location lookup."""

    def test_version_exists(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="my-app/v1.zip")
        assert resolver.application_version_exists(APP, "v1")
        assert not resolver.application_version_exists(APP, "v2")

    def test_query_failure_means_absent(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="key")
        environments.fail_next(
            "describe_application_versions", FakeServiceError("AccessDenied")
        )
        assert not resolver.application_version_exists(APP, "v1")

    def test_source_location(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="my-app/v1.zip")

        location = resolver.get_version_source_location(APP, "v1")

        assert location.bucket == "bucket"
        assert location.key == "my-app/v1.zip"

    def test_source_location_for_missing_version(self, resolver: ExistenceResolver) -> None:
        with pytest.raises(VersionNotFoundError, match="v9 not found"):
            resolver.get_version_source_location(APP, "v9")

    def test_source_location_incomplete(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key=None)
        with pytest.raises(IncompleteSourceBundleError, match="key: missing"):
            resolver.get_version_source_location(APP, "v1")

    def test_source_location_query_failure(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.fail_next(
            "describe_application_versions", FakeServiceError("throttled")
        )
        with pytest.raises(DeploymentError, match="throttled"):
            resolver.get_version_source_location(APP, "v1")


@pytest.mark.unit
class TestEnvironmentExists:
    """Tests for environment existence."""

    def test_absent_environment(self, resolver: ExistenceResolver) -> None:
        snapshot = resolver.environment_exists(APP, ENV)
        assert not snapshot.exists
        assert snapshot.name == ENV

    def test_ready_environment_exists(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.script_environment(
            APP, ENV, [{"status": "Ready", "health": "Green"}]
        )

        snapshot = resolver.environment_exists(APP, ENV)

        assert snapshot.exists
        assert snapshot.health == "Green"

    def test_terminated_environment_does_not_exist(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.script_environment(
            APP, ENV, [{"status": "Terminated", "health": "Grey"}]
        )

        snapshot = resolver.environment_exists(APP, ENV)

        assert not snapshot.exists
        assert snapshot.status == "Terminated"

    def test_query_failure_means_absent(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.script_environment(APP, ENV, [{"status": "Ready"}])
        environments.fail_next("describe_environment", FakeServiceError("throttled"))

        assert not resolver.environment_exists(APP, ENV).exists

    def test_environment_info_after_deployment(
        self, resolver: ExistenceResolver, environments: InMemoryEnvironmentManager
    ) -> None:
        environments.script_environment(
            APP, ENV, [{"status": "Ready", "url": "my-app-prod.elasticbeanstalk.com"}]
        )
        assert resolver.get_environment_info(APP, ENV).url == (
            "my-app-prod.elasticbeanstalk.com"
        )

    def test_environment_info_missing(self, resolver: ExistenceResolver) -> None:
        with pytest.raises(EnvironmentNotFoundError, match="not found after deployment"):
            resolver.get_environment_info(APP, ENV)


@pytest.mark.unit
class TestBucketAndRoles:
    """Tests for bucket and IAM probes."""

    def test_bucket_exists(
        self, resolver: ExistenceResolver, object_store: InMemoryObjectStore
    ) -> None:
        object_store.buckets.add("present")
        assert resolver.bucket_exists("present")
        assert not resolver.bucket_exists("absent")

    def test_roles(self, resolver: ExistenceResolver) -> None:
        assert resolver.instance_profile_exists("aws-elasticbeanstalk-ec2-role")
        assert not resolver.instance_profile_exists("missing")
        assert resolver.service_role_exists("aws-elasticbeanstalk-service-role")
        assert not resolver.service_role_exists("missing")
