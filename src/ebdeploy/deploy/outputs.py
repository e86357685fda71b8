"""Pipeline output helpers.

Outputs are appended as ``key=value`` lines to the file named by
``$GITHUB_OUTPUT`` so later workflow steps can read them.
"""

from __future__ import annotations

import os
from pathlib import Path

from ebdeploy.config.defaults import GITHUB_OUTPUT_ENV
from ebdeploy.lib.errors import DeploymentError
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.platform import DeploymentOutputs

logger = get_logger(__name__)


def get_output_path() -> Path | None:
    """Return the workflow output file, or None outside a workflow."""
    value = os.environ.get(GITHUB_OUTPUT_ENV, "").strip()
    return Path(value) if value else None


def format_outputs(outputs: DeploymentOutputs) -> str:
    """Render outputs as newline-terminated ``key=value`` lines."""
    return "".join(
        f"{key}={value}\n" for key, value in outputs.as_output_pairs().items()
    )


def write_outputs(outputs: DeploymentOutputs, output_path: Path | None = None) -> bool:
    """Append outputs to the workflow output file.

    Args:
        outputs: Values produced by the deployment
        output_path: Target file (defaults to ``$GITHUB_OUTPUT``)

    Returns:
        True if the outputs were written, False when no target is configured.

    Raises:
        DeploymentError: If the output file cannot be written.
    """
    path = output_path or get_output_path()
    if path is None:
        logger.debug(f"{GITHUB_OUTPUT_ENV} is not set, skipping output file")
        return False

    try:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(format_outputs(outputs))
    except OSError as exc:
        raise DeploymentError(
            operation="outputs",
            message=f"Failed to write outputs to {path}: {exc}",
        ) from exc

    logger.debug(f"Wrote deployment outputs to {path}")
    return True
