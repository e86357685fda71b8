"""Configuration loading, validation and defaults for ebdeploy.

Main components:
- ConfigLoader (``ebdeploy.config.loader``): merge YAML and CLI options into
  a validated DeploymentConfig
- Environment variable substitution (``${VAR}`` and ``${VAR:-default}``)
- Validation utilities and default values

The loader is not imported here because the models depend on
``ebdeploy.config.defaults``.
"""

from ebdeploy.config.env_loader import get_env_var, substitute_env_vars

__all__ = ["get_env_var", "substitute_env_vars"]
