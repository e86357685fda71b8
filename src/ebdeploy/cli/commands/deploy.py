"""CLI command for deploying to Elastic Beanstalk.

Implements the 'ebdeploy deploy' command: load and validate the deployment
configuration, reconcile the application version and environment, wait for
the rollout and publish the resulting outputs.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
from click.core import ParameterSource

from ebdeploy.config.loader import ConfigLoader
from ebdeploy.deploy.outputs import write_outputs
from ebdeploy.deploy.pipeline import run_deployment
from ebdeploy.lib.errors import ConfigError, DeploymentError
from ebdeploy.lib.logging_config import get_logger, setup_logging
from ebdeploy.models.deployment import BucketNamingScheme, DeploymentConfig
from ebdeploy.models.platform import DeploymentOutputs

logger = get_logger(__name__)

# CLI parameters that are not DeploymentConfig fields
_NON_CONFIG_PARAMS = frozenset({"config_file", "dry_run", "verbose", "quiet"})


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in deployment commands.

    Catches and handles ConfigError, DeploymentError, and unexpected exceptions
    with appropriate logging, user feedback, and exit codes.

    Exit codes:
        2: Configuration error
        3: Deployment/execution error
    """
    try:
        yield
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def _split_patterns(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated --exclude values."""
    patterns: list[str] = []
    for value in values:
        patterns.extend(p.strip() for p in value.split(",") if p.strip())
    return patterns


def collect_overrides(ctx: click.Context) -> dict[str, Any]:
    """Return the options given on the command line or through envvars.

    Options left at their defaults are omitted so that values from the
    configuration file are not overwritten.
    """
    overrides: dict[str, Any] = {}
    for name, value in ctx.params.items():
        if name in _NON_CONFIG_PARAMS:
            continue
        source = ctx.get_parameter_source(name)
        if source in (None, ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP):
            continue
        if name == "exclude_patterns":
            value = _split_patterns(value)
        overrides[name] = value
    return overrides


@click.command()
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with deployment settings (CLI options take precedence)",
)
@click.option(
    "--region",
    envvar=["AWS_REGION", "AWS_DEFAULT_REGION"],
    default=None,
    help="AWS region of the environment (e.g., us-east-1)",
)
@click.option("--application-name", default=None, help="Application name")
@click.option("--environment-name", default=None, help="Environment name")
@click.option(
    "--solution-stack-name",
    default=None,
    help="Solution stack name (mutually exclusive with --platform-arn)",
)
@click.option(
    "--platform-arn",
    default=None,
    help="Platform ARN (mutually exclusive with --solution-stack-name)",
)
@click.option(
    "--version-label",
    default=None,
    help="Version label (defaults to $GITHUB_SHA or the current git commit)",
)
@click.option(
    "--option-settings",
    default=None,
    help="Option settings as a JSON array of {Namespace, OptionName, Value}",
)
@click.option(
    "--create-application-if-missing/--no-create-application-if-missing",
    default=True,
    help="Create the application if it does not exist",
)
@click.option(
    "--create-environment-if-missing/--no-create-environment-if-missing",
    default=True,
    help="Create the environment if it does not exist",
)
@click.option(
    "--wait-for-deployment/--no-wait-for-deployment",
    default=True,
    help="Wait for the environment to become Ready",
)
@click.option(
    "--wait-for-health/--no-wait-for-health",
    default=True,
    help="Wait for environment health to become Green or Yellow",
)
@click.option(
    "--reuse-existing-version/--no-reuse-existing-version",
    default=True,
    help="Reuse an existing application version with the same label",
)
@click.option(
    "--create-bucket-if-missing/--no-create-bucket-if-missing",
    default=True,
    help="Create the S3 bucket if it does not exist",
)
@click.option(
    "--deployment-timeout",
    type=click.IntRange(60, 3600),
    default=None,
    help="Timeout in seconds for each wait (60-3600, default 900)",
)
@click.option(
    "--max-retries",
    type=click.IntRange(0, 10),
    default=None,
    help=(
        "Attempts per remote call (0-10, default 3); "
        "0 means a single attempt without retry"
    ),
)
@click.option(
    "--retry-delay",
    type=click.IntRange(1, 60),
    default=None,
    help="Base retry delay in seconds (1-60, default 5)",
)
@click.option("--bucket-name", default=None, help="S3 bucket for source bundles")
@click.option(
    "--bucket-naming",
    type=click.Choice([scheme.value for scheme in BucketNamingScheme]),
    default=None,
    help="Bucket naming policy when --bucket-name is not given",
)
@click.option(
    "--package-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Pre-built deployment package to upload",
)
@click.option(
    "--source-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to package when no --package-path is given",
)
@click.option(
    "--exclude",
    "exclude_patterns",
    multiple=True,
    help="Glob excluded from the package (repeatable or comma-separated)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Validate configuration and show the plan without deploying",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print the environment URL and errors",
)
@click.pass_context
def deploy(
    ctx: click.Context,
    config_file: str | None,
    dry_run: bool,
    verbose: bool,
    quiet: bool,
    **_options: Any,
) -> None:
    """Deploy an application version to an Elastic Beanstalk environment.

    Creates or reuses the application version, creates or updates the
    environment, then waits for the deployment and the environment health.

    Example:

        ebdeploy deploy --application-name my-app --environment-name my-app-prod
            --solution-stack-name "64bit Amazon Linux 2023 v4.3.0 running Python 3.11"

        ebdeploy deploy --config deploy.yaml --version-label v1.2.0
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        loader = ConfigLoader()
        config = loader.load(config_file, collect_overrides(ctx))

        if not quiet:
            _display_plan(config)

        if dry_run:
            click.secho("[DRY RUN] No changes were made", fg="yellow")
            sys.exit(0)

        outputs = run_deployment(config)
        write_outputs(outputs)
        _display_outputs(outputs, quiet)


def _display_plan(config: DeploymentConfig) -> None:
    """Print the deployment target and version."""
    platform = config.solution_stack_name or config.platform_arn
    click.echo()
    click.secho("Deployment Configuration:", bold=True)
    click.echo(f"  Application: {config.application_name}")
    click.echo(f"  Environment: {config.environment_name}")
    click.echo(f"  Region:      {config.region}")
    click.echo(f"  Version:     {config.version_label}")
    click.echo(f"  Platform:    {platform}")
    if config.package_path:
        click.echo(f"  Package:     {config.package_path}")
    else:
        click.echo(f"  Source:      {Path(config.source_dir)}")
    click.echo()


def _display_outputs(outputs: DeploymentOutputs, quiet: bool) -> None:
    """Print the deployment outputs."""
    if quiet:
        click.echo(outputs.environment_url)
        return

    click.echo()
    click.secho("Deployment Successful!", fg="green", bold=True)
    for key, value in outputs.as_output_pairs().items():
        click.echo(f"  {key}={value}")
    click.echo()
