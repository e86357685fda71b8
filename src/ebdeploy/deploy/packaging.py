"""Deployment package creation.

Produces the single archive uploaded as a version's source bundle. A
pre-built package is used verbatim; otherwise the source directory is
zipped, skipping files that match the exclude globs.
"""

from __future__ import annotations

import fnmatch
import zipfile
from collections.abc import Iterator, Sequence
from pathlib import Path

from ebdeploy.config.defaults import PACKAGE_NAME_TEMPLATE
from ebdeploy.lib.errors import DeploymentError
from ebdeploy.lib.logging_config import get_logger

logger = get_logger(__name__)


def is_excluded(relative_path: str, patterns: Sequence[str]) -> bool:
    """Return True if a posix relative path matches any exclude glob.

    A pattern matches the whole path (``node_modules/**``), the file name
    (``*.pyc``) or any leading directory (``.git``).
    """
    name = relative_path.rsplit("/", 1)[-1]
    parts = relative_path.split("/")
    for pattern in patterns:
        pattern = pattern.strip().rstrip("/")
        if not pattern:
            continue
        if fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(name, pattern):
            return True
        for depth in range(1, len(parts)):
            if fnmatch.fnmatch("/".join(parts[:depth]), pattern):
                return True
    return False


def iter_package_files(
    source_dir: Path, exclude_patterns: Sequence[str], skip: Path | None = None
) -> Iterator[Path]:
    """Yield files under ``source_dir`` (dotfiles included) in sorted order."""
    skip_resolved = skip.resolve() if skip else None
    for path in sorted(source_dir.rglob("*")):
        if not path.is_file():
            continue
        if skip_resolved is not None and path.resolve() == skip_resolved:
            continue
        relative = path.relative_to(source_dir).as_posix()
        if is_excluded(relative, exclude_patterns):
            continue
        yield path


def produce_bundle(
    existing_path: Path | str | None,
    version_label: str,
    exclude_patterns: Sequence[str] = (),
    source_dir: Path | str = ".",
    output_dir: Path | str | None = None,
) -> Path:
    """Return the path of the archive to upload.

    Args:
        existing_path: Pre-built package; used verbatim when the file exists.
        version_label: Version label, used in the archive name.
        exclude_patterns: Globs excluded from the archive (ignored when an
            existing package is used).
        source_dir: Directory to archive.
        output_dir: Where to write the archive (defaults to the current
            working directory).

    Returns:
        Path to the deployment package.

    Raises:
        DeploymentError: If the source directory is missing or the archive
            cannot be written.
    """
    if existing_path and Path(existing_path).is_file():
        logger.info(f"Using existing deployment package: {existing_path}")
        return Path(existing_path)

    if existing_path:
        logger.warning(
            f"Deployment package {existing_path} not found, building a new one"
        )

    source = Path(source_dir)
    if not source.is_dir():
        raise DeploymentError(
            operation="package",
            message=f"Source directory not found: {source}",
        )

    zip_path = Path(output_dir or ".") / PACKAGE_NAME_TEMPLATE.format(
        version_label=version_label
    )
    logger.info(f"Creating deployment package: {zip_path.name}")

    try:
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        count = 0
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in iter_package_files(source, exclude_patterns, skip=zip_path):
                archive.write(path, arcname=path.relative_to(source).as_posix())
                count += 1
    except OSError as exc:
        raise DeploymentError(
            operation="package",
            message=f"Failed to write deployment package {zip_path}: {exc}",
        ) from exc

    logger.debug(f"Packaged {count} files into {zip_path}")
    return zip_path
