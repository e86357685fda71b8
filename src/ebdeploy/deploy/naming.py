"""Naming policies for the bucket that holds source bundles."""

from __future__ import annotations

from collections.abc import Callable

from ebdeploy.models.deployment import BucketNamingScheme

BucketNamer = Callable[[str, str, str], str]


def platform_bucket_name(region: str, account_id: str, application_name: str) -> str:
    """Return ``elasticbeanstalk-{region}-{account_id}``."""
    return f"elasticbeanstalk-{region}-{account_id}"


def application_bucket_name(
    region: str, account_id: str, application_name: str
) -> str:
    """Return ``{application_name}-{account_id}`` lowercased."""
    return f"{application_name}-{account_id}".lower()


BUCKET_NAMERS: dict[BucketNamingScheme, BucketNamer] = {
    BucketNamingScheme.PLATFORM: platform_bucket_name,
    BucketNamingScheme.APPLICATION: application_bucket_name,
}


def get_bucket_namer(scheme: BucketNamingScheme) -> BucketNamer:
    """Return the naming function registered for ``scheme``."""
    return BUCKET_NAMERS[scheme]


def bundle_key(application_name: str, version_label: str, extension: str) -> str:
    """Return the object key ``{application_name}/{version_label}{extension}``."""
    return f"{application_name}/{version_label}{extension}"
