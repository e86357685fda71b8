"""boto3 adapters for the deployment service interfaces."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import boto3

from ebdeploy.deploy.clients.base import (
    EnvironmentManager,
    IdentityService,
    ObjectStore,
    RoleStore,
)
from ebdeploy.lib.logging_config import get_logger
from ebdeploy.models.deployment import OptionSetting
from ebdeploy.models.platform import (
    TERMINATED_STATUS,
    ApplicationVersionRef,
    EnvironmentEvent,
    EnvironmentSnapshot,
    EventSeverity,
)

if TYPE_CHECKING:
    from boto3.session import Session

logger = get_logger(__name__)


def _select_environment(environments: list[dict[str, Any]]) -> dict[str, Any]:
    """Return the first live record, or the first record if all are Terminated.

    Records of a recently terminated environment linger next to the record of
    its replacement.
    """
    for env in environments:
        if env.get("Status") != TERMINATED_STATUS:
            return env
    return environments[0]


def _platform_selector(
    solution_stack_name: str | None, platform_arn: str | None
) -> dict[str, str]:
    # Only one of SolutionStackName or PlatformArn may be sent
    if solution_stack_name:
        return {"SolutionStackName": solution_stack_name}
    if platform_arn:
        return {"PlatformArn": platform_arn}
    return {}


class BeanstalkEnvironmentManager(EnvironmentManager):
    """Elastic Beanstalk implementation of ``EnvironmentManager``."""

    def __init__(self, session: Session) -> None:
        self._client = session.client("elasticbeanstalk")

    def describe_application_versions(
        self, application_name: str, version_label: str
    ) -> list[ApplicationVersionRef]:
        response = self._client.describe_application_versions(
            ApplicationName=application_name,
            VersionLabels=[version_label],
        )
        versions: list[ApplicationVersionRef] = []
        for item in response.get("ApplicationVersions", []):
            bundle = item.get("SourceBundle") or {}
            versions.append(
                ApplicationVersionRef(
                    version_label=item.get("VersionLabel", version_label),
                    bucket=bundle.get("S3Bucket"),
                    key=bundle.get("S3Key"),
                )
            )
        return versions

    def create_application_version(
        self,
        *,
        application_name: str,
        version_label: str,
        bucket: str,
        key: str,
        description: str,
        auto_create_application: bool,
    ) -> None:
        self._client.create_application_version(
            ApplicationName=application_name,
            VersionLabel=version_label,
            SourceBundle={"S3Bucket": bucket, "S3Key": key},
            Description=description,
            AutoCreateApplication=auto_create_application,
        )

    def describe_environment(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot | None:
        response = self._client.describe_environments(
            ApplicationName=application_name,
            EnvironmentNames=[environment_name],
        )
        environments = response.get("Environments", [])
        if not environments:
            return None

        env = _select_environment(environments)
        return EnvironmentSnapshot(
            exists=True,
            name=env.get("EnvironmentName", environment_name),
            status=env.get("Status"),
            health=env.get("Health"),
            environment_id=env.get("EnvironmentId"),
            url=env.get("CNAME"),
        )

    def create_environment(
        self,
        *,
        application_name: str,
        environment_name: str,
        version_label: str,
        option_settings: Sequence[OptionSetting],
        solution_stack_name: str | None = None,
        platform_arn: str | None = None,
        cname_prefix: str | None = None,
    ) -> None:
        params: dict[str, Any] = {
            "ApplicationName": application_name,
            "EnvironmentName": environment_name,
            "VersionLabel": version_label,
            "OptionSettings": [setting.to_api() for setting in option_settings],
            **_platform_selector(solution_stack_name, platform_arn),
        }
        if cname_prefix:
            params["CNAMEPrefix"] = cname_prefix
        self._client.create_environment(**params)

    def update_environment(
        self,
        *,
        application_name: str,
        environment_name: str,
        version_label: str,
        option_settings: Sequence[OptionSetting],
        solution_stack_name: str | None = None,
        platform_arn: str | None = None,
    ) -> None:
        params: dict[str, Any] = {
            "ApplicationName": application_name,
            "EnvironmentName": environment_name,
            "VersionLabel": version_label,
            **_platform_selector(solution_stack_name, platform_arn),
        }
        if option_settings:
            params["OptionSettings"] = [s.to_api() for s in option_settings]
        self._client.update_environment(**params)

    def describe_events(
        self, application_name: str, environment_name: str, max_records: int
    ) -> list[EnvironmentEvent]:
        response = self._client.describe_events(
            ApplicationName=application_name,
            EnvironmentName=environment_name,
            MaxRecords=max_records,
        )
        return [
            EnvironmentEvent(
                timestamp=item.get("EventDate"),
                severity=EventSeverity.parse(item.get("Severity")),
                message=item.get("Message") or "No message",
            )
            for item in response.get("Events", [])
        ]


class S3ObjectStore(ObjectStore):
    """Amazon S3 implementation of ``ObjectStore``."""

    def __init__(self, session: Session) -> None:
        self._client = session.client("s3")

    def head_bucket(self, bucket: str) -> None:
        self._client.head_bucket(Bucket=bucket)

    def create_bucket(self, bucket: str, region: str | None = None) -> None:
        if region:
            self._client.create_bucket(
                Bucket=bucket,
                CreateBucketConfiguration={"LocationConstraint": region},
            )
        else:
            self._client.create_bucket(Bucket=bucket)

    def upload_file(self, path: Path, bucket: str, key: str) -> None:
        with path.open("rb") as body:
            self._client.put_object(Bucket=bucket, Key=key, Body=body)


class STSIdentityService(IdentityService):
    """AWS STS implementation of ``IdentityService``."""

    def __init__(self, session: Session) -> None:
        self._client = session.client("sts")

    def get_account_id(self) -> str:
        response = self._client.get_caller_identity()
        return str(response["Account"])


class IAMRoleStore(RoleStore):
    """AWS IAM implementation of ``RoleStore``."""

    def __init__(self, session: Session) -> None:
        self._client = session.client("iam")

    def get_instance_profile(self, name: str) -> None:
        self._client.get_instance_profile(InstanceProfileName=name)

    def get_role(self, name: str) -> None:
        self._client.get_role(RoleName=name)


def create_session(region: str) -> Session:
    """Create the boto3 session shared by every client of one invocation."""
    logger.debug(f"Creating AWS session for region {region}")
    return boto3.Session(region_name=region)
