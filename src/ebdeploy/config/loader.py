"""Configuration loader for ebdeploy.

This module provides the ConfigLoader class, which merges an optional YAML
file and command-line options into a validated DeploymentConfig.

Configuration precedence (highest to lowest):
1. Command-line options (and their environment variables)
2. The YAML configuration file
3. Model defaults
"""

import json
import logging
import subprocess  # nosec B404
import time
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from ebdeploy.config.defaults import GITHUB_SHA_ENV, LOW_TIMEOUT_WARNING_THRESHOLD
from ebdeploy.config.env_loader import get_env_var, substitute_env_vars
from ebdeploy.config.validator import first_error_field, flatten_pydantic_errors
from ebdeploy.lib.errors import ConfigError
from ebdeploy.models.deployment import DeploymentConfig

logger = logging.getLogger(__name__)


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Accept hyphenated keys (``application-name``) as well as snake_case."""
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def _read_yaml_with_env_substitution(path: Path) -> dict[str, Any] | None:
    """Read a YAML file with environment variable substitution.

    Raises:
        OSError: If file cannot be read
        yaml.YAMLError: If YAML parsing fails
        ConfigError: If env var substitution fails
    """
    raw_text = path.read_text(encoding="utf-8")
    substituted = substitute_env_vars(raw_text)
    content = yaml.safe_load(substituted)
    return content if content else None


def parse_option_settings(raw: str) -> list[Any]:
    """Parse a JSON array of option settings.

    Raises:
        ConfigError: If the text is not valid JSON or not an array
    """
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(
            "option_settings", f"Invalid JSON in option-settings input: {e}"
        ) from e
    if not isinstance(value, list):
        raise ConfigError("option_settings", "option-settings must be a JSON array")
    return value


def get_git_sha() -> str | None:
    """Return the current git commit SHA, or None outside a repository."""
    try:
        result = subprocess.run(  # noqa: S603  # nosec B603 B607
            ["git", "rev-parse", "HEAD"],  # noqa: S607
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_version_label(explicit: str | None) -> str:
    """Return the version label to deploy.

    Uses the explicit label, then ``$GITHUB_SHA``, then the checked-out git
    commit, then a millisecond timestamp label (``v1700000000000``).
    """
    if explicit:
        return explicit

    sha = get_env_var(GITHUB_SHA_ENV)
    if sha:
        return sha

    sha = get_git_sha()
    if sha:
        logger.debug(f"Using git commit {sha} as version label")
        return sha

    return f"v{int(time.time() * 1000)}"


def warn_on_conflicts(config: DeploymentConfig) -> None:
    """Log warnings for option combinations that are valid but risky."""
    if config.package_path and config.exclude_patterns:
        logger.warning(
            "Both package_path and exclude_patterns are specified. "
            "exclude_patterns will be ignored since package_path takes precedence."
        )

    if config.create_application_if_missing and not config.create_environment_if_missing:
        logger.warning(
            "create_application_if_missing is enabled but "
            "create_environment_if_missing is disabled. The application will be "
            "created, but the environment will NOT be created if it does not exist."
        )

    if (
        config.reuse_existing_version
        and config.deployment_timeout < LOW_TIMEOUT_WARNING_THRESHOLD
    ):
        logger.warning(
            "reuse_existing_version is enabled with a low deployment_timeout "
            f"({config.deployment_timeout}s). If a new version needs to be "
            "created, deployment may time out."
        )

    if config.max_retries == 0:
        logger.warning(
            "max_retries is set to 0. API calls will not be retried on failure, "
            "which may cause transient errors to fail the deployment."
        )

    if not config.create_bucket_if_missing:
        logger.warning(
            "create_bucket_if_missing is disabled. If the S3 bucket does not "
            "exist, deployment will fail."
        )


class ConfigLoader:
    """Loads and validates deployment configuration.

    This class handles:
    - Parsing an optional YAML file with environment variable substitution
    - Merging command-line overrides over file values
    - Resolving the default version label
    - Converting validation errors into human-readable messages
    """

    def parse_yaml(self, file_path: str | Path) -> dict[str, Any]:
        """Parse a YAML configuration file into a dictionary.

        Args:
            file_path: Path to the YAML file to parse

        Returns:
            Dictionary with normalized keys (empty if the file is empty)

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(file_path)
        try:
            content = _read_yaml_with_env_substitution(path)
        except OSError as e:
            raise ConfigError(
                "config_file",
                f"Configuration file not found at {file_path}. "
                f"Please ensure the file exists at this path.",
            ) from e
        except yaml.YAMLError as e:
            raise ConfigError(
                "yaml_parse",
                f"Failed to parse YAML file {file_path}: {str(e)}",
            ) from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigError(
                "yaml_parse",
                f"Configuration file {file_path} must contain a mapping",
            )
        return _normalize_keys(content)

    def merge_configs(
        self, file_config: dict[str, Any], overrides: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Overlay command-line values on file values, skipping unset options.

        Args:
            file_config: Values read from the YAML file
            overrides: Values from the command line (None means "not given")

        Returns:
            Merged configuration dictionary
        """
        merged = dict(file_config)
        for key, value in (overrides or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)) and not value:
                continue
            merged[key] = value
        return merged

    def load(
        self,
        config_path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> DeploymentConfig:
        """Load, merge and validate the deployment configuration.

        Args:
            config_path: Optional YAML configuration file
            overrides: Command-line values keyed by DeploymentConfig field

        Returns:
            Validated DeploymentConfig

        Raises:
            ConfigError: If loading or validation fails
        """
        file_config = self.parse_yaml(config_path) if config_path else {}
        merged = self.merge_configs(file_config, _normalize_keys(overrides or {}))

        option_settings = merged.get("option_settings")
        if isinstance(option_settings, str):
            merged["option_settings"] = (
                parse_option_settings(option_settings) if option_settings.strip() else []
            )

        merged["version_label"] = resolve_version_label(merged.get("version_label"))

        try:
            config = DeploymentConfig(**merged)
        except PydanticValidationError as e:
            error_messages = flatten_pydantic_errors(e)
            error_text = "\n".join(error_messages)
            source = f" in {config_path}" if config_path else ""
            raise ConfigError(
                first_error_field(e),
                f"Invalid deployment configuration{source}:\n{error_text}",
            ) from e

        warn_on_conflicts(config)
        logger.debug(
            f"Loaded configuration for {config.application_name}/"
            f"{config.environment_name} (version {config.version_label})"
        )
        return config
