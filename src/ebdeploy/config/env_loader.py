"""Environment variable helpers for configuration files.

Supports ``${VAR}`` and ``${VAR:-default}`` references inside YAML text.
"""

import os
import re

from ebdeploy.lib.errors import ConfigError

# ${NAME} or ${NAME:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty values as unset."""
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


def substitute_env_vars(text: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` references in text.

    Args:
        text: Raw text, typically the contents of a YAML file

    Returns:
        Text with every reference replaced by its value

    Raises:
        ConfigError: If a referenced variable is unset and has no default
    """

    def replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = get_env_var(name, default)
        if value is None:
            raise ConfigError(
                name,
                f"Environment variable '{name}' is not set and has no default",
            )
        return value

    return ENV_VAR_PATTERN.sub(replace, text)
