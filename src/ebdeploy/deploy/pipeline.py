"""End-to-end deployment pipeline.

package -> upload -> create version -> create/update environment ->
wait for deployment -> wait for health -> collect outputs.
"""

from __future__ import annotations

from ebdeploy.deploy.context import DeploymentContext
from ebdeploy.deploy.events import EventTailer
from ebdeploy.deploy.reconciler import Reconciler
from ebdeploy.deploy.resolver import ExistenceResolver
from ebdeploy.deploy.watchers import DeploymentWatcher, HealthWatcher
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.deployment import DeploymentConfig
from ebdeploy.models.platform import DeploymentOutputs

logger = get_logger(__name__)


def run_deployment(
    config: DeploymentConfig,
    context: DeploymentContext | None = None,
    reconciler: Reconciler | None = None,
) -> DeploymentOutputs:
    """Deploy ``config.version_label`` to the configured environment.

    Args:
        config: Validated deployment configuration
        context: Deployment context (boto3-backed by default)
        reconciler: Reconciler override, mainly for tests

    Returns:
        DeploymentOutputs describing the environment after deployment.

    Raises:
        DeploymentError: If any phase fails.
        ConfigError: If the environment must be created without IAM roles.
    """
    context = context or DeploymentContext.for_config(config)
    resolver = ExistenceResolver(context)
    reconciler = reconciler or Reconciler(context, resolver=resolver)

    app = config.application_name
    env = config.environment_name
    logger.info(f"Deploying {config.version_label} to {app}/{env} in {context.region}")

    result = reconciler.reconcile(config)

    if config.wait_for_deployment:
        tailer = EventTailer(context)
        mark = DeploymentWatcher(context, tailer).wait(
            app, env, config.deployment_timeout, action=result.action
        )
        if config.wait_for_health:
            HealthWatcher(context, tailer).wait(
                app, env, config.deployment_timeout, high_water_mark=mark
            )
    else:
        logger.info("Not waiting for deployment to complete")

    snapshot = resolver.get_environment_info(app, env)
    outputs = DeploymentOutputs(
        environment_url=snapshot.url or "",
        environment_id=snapshot.environment_id or "",
        environment_status=snapshot.status or "",
        environment_health=snapshot.health or "",
        deployment_action_type=result.action,
        version_label=config.version_label,
    )
    logger.info(f"Deployment finished ({result.action.value})")
    return outputs
