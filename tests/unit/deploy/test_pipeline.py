"""Unit tests for the end-to-end deployment pipeline."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ebdeploy.deploy.clients.memory import InMemoryEnvironmentManager, InMemoryObjectStore
from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.pipeline import run_deployment
from ebdeploy.deploy.reconciler import Reconciler
from ebdeploy.lib.errors import DeploymentFailedEventError
from ebdeploy.models.deployment import DeploymentConfig
from ebdeploy.models.platform import DeploymentActionType, EnvironmentEvent, EventSeverity

MakeConfig = Callable[..., DeploymentConfig]
EventFactory = Callable[..., EnvironmentEvent]

APP = "my-app"
ENV = "my-app-prod"
FINAL_STATE = {
    "status": "Ready",
    "health": "Green",
    "url": "my-app-prod.us-west-2.elasticbeanstalk.com",
    "environment_id": "e-abc123",
}


@pytest.fixture
def reconciler(context: DeploymentContext, tmp_path: Path) -> Reconciler:
    """Reconciler whose packager returns a pre-built archive."""
    package = tmp_path / "bundle.zip"
    package.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return Reconciler(context, packager=MagicMock(return_value=package))


@pytest.mark.unit
class TestRunDeployment:
    """Tests for run_deployment."""

    def test_update_existing_environment(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        object_store: InMemoryObjectStore,
        make_config: MakeConfig,
    ) -> None:
        """An existing version and environment are reused and updated."""
        environments.add_version(APP, "v1", bucket="bucket", key="my-app/v1.zip")
        environments.script_environment(
            APP,
            ENV,
            [
                {"status": "Ready", "health": "Green"},
                {"status": "Updating", "health": "Grey"},
                FINAL_STATE,
            ],
        )

        outputs = run_deployment(make_config(), context)

        assert outputs.deployment_action_type == DeploymentActionType.UPDATE
        assert outputs.environment_url == FINAL_STATE["url"]
        assert outputs.environment_id == "e-abc123"
        assert outputs.environment_status == "Ready"
        assert outputs.environment_health == "Green"
        assert outputs.version_label == "v1"
        assert object_store.calls_to("upload_file") == []

    def test_create_new_environment(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        reconciler: Reconciler,
        make_config: MakeConfig,
    ) -> None:
        environments.script_environment(
            APP,
            ENV,
            [
                {"status": "Terminated"},
                {"status": "Launching"},
                {"status": "Ready", "health": "Grey"},
                FINAL_STATE,
            ],
        )

        outputs = run_deployment(make_config(), context, reconciler=reconciler)

        assert outputs.deployment_action_type == DeploymentActionType.CREATE
        assert outputs.environment_health == "Green"
        assert environments.calls_to("create_environment")

    def test_skips_watchers_when_not_waiting(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        make_config: MakeConfig,
        fake_clock,
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="key")
        environments.script_environment(
            APP, ENV, [{"status": "Ready"}, {"status": "Updating", "health": "Grey"}]
        )

        outputs = run_deployment(make_config(wait_for_deployment=False), context)

        assert outputs.environment_status == "Updating"
        assert fake_clock.sleeps == []
        assert environments.calls_to("describe_events") == []

    def test_skips_health_watcher(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        make_config: MakeConfig,
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="key")
        environments.script_environment(
            APP, ENV, [{"status": "Ready"}, {"status": "Ready", "health": "Red"}]
        )

        outputs = run_deployment(make_config(wait_for_health=False), context)

        assert outputs.environment_health == "Red"

    def test_fatal_event_aborts(
        self,
        context: DeploymentContext,
        environments: InMemoryEnvironmentManager,
        event_factory: EventFactory,
        make_config: MakeConfig,
    ) -> None:
        environments.add_version(APP, "v1", bucket="bucket", key="key")
        environments.script_environment(
            APP, ENV, [{"status": "Ready"}, {"status": "Updating"}]
        )
        environments.script_events(
            APP, ENV, [[event_factory(1, EventSeverity.FATAL, "Deployment failed")]]
        )

        with pytest.raises(DeploymentFailedEventError, match="Deployment failed"):
            run_deployment(make_config(), context)
