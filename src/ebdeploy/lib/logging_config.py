"""Logging configuration for ebdeploy.

Every module obtains its logger through ``get_logger(__name__)``; the CLI
calls ``setup_logging`` once per invocation. When running inside a GitHub
Actions job, warnings and errors are emitted as workflow annotations so they
surface in the run summary.
"""

from __future__ import annotations

import logging
import os
import sys

ROOT_LOGGER_NAME = "ebdeploy"

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that are too chatty at INFO/DEBUG
NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def escape_command_data(message: str) -> str:
    """Escape a workflow command payload so it stays on one line."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class GitHubActionsFormatter(logging.Formatter):
    """Render log records as GitHub Actions workflow commands."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            command = "error"
        elif record.levelno >= logging.WARNING:
            command = "warning"
        elif record.levelno <= logging.DEBUG:
            command = "debug"
        else:
            return message
        return f"::{command}::{escape_command_data(message)}"


def running_in_github_actions() -> bool:
    """Return True when executing inside a GitHub Actions runner."""
    return os.environ.get("GITHUB_ACTIONS", "").lower() == "true"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the ebdeploy logger hierarchy.

    Args:
        verbose: Enable DEBUG level output
        quiet: Only emit errors (takes precedence over verbose)
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    if running_in_github_actions():
        handler.setFormatter(GitHubActionsFormatter("%(message)s"))
    else:
        handler.setFormatter(
            logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        )

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)
