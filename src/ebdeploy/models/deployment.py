"""Pydantic models for deployment configuration.

This module defines the configuration schema for one ebdeploy invocation:
the target application and environment, the platform selector, option
settings, and the switches that gate creation, reuse and waiting.
"""

import re
from enum import Enum
from pathlib import Path

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ebdeploy.config.defaults import (
    DEFAULT_DEPLOYMENT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
)

# Option setting coordinates of the two IAM roles an environment needs
INSTANCE_PROFILE_NAMESPACE = "aws:autoscaling:launchconfiguration"
INSTANCE_PROFILE_OPTION = "IamInstanceProfile"
SERVICE_ROLE_NAMESPACE = "aws:elasticbeanstalk:environment"
SERVICE_ROLE_OPTION = "ServiceRole"

# Regex patterns for validation
REGION_PATTERN = re.compile(r"^[a-z]{2}-[a-z]+-\d$")
PLATFORM_ARN_PATTERN = re.compile(r"^arn:aws:elasticbeanstalk:[a-z0-9-]+::platform/.+$")
ENVIRONMENT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")


class BucketNamingScheme(str, Enum):
    """Naming policy for the upload bucket when no override is given."""

    PLATFORM = "platform"
    APPLICATION = "application"


class OptionSetting(BaseModel):
    """A namespaced configuration option applied to an environment.

    Accepts both snake_case keys and the platform's own ``Namespace`` /
    ``OptionName`` / ``Value`` keys.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    namespace: str = Field(..., alias="Namespace", description="Option namespace")
    option_name: str = Field(..., alias="OptionName", description="Option name")
    value: str = Field(..., alias="Value", description="Option value")

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: object) -> object:
        """Allow numbers and booleans in YAML; the platform expects strings."""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def to_api(self) -> dict[str, str]:
        """Return the setting in the platform API's key format."""
        return {
            "Namespace": self.namespace,
            "OptionName": self.option_name,
            "Value": self.value,
        }


class IamRoles(BaseModel):
    """IAM references required when creating an environment."""

    model_config = ConfigDict(frozen=True)

    instance_profile: str = Field(..., description="EC2 instance profile name")
    service_role: str = Field(..., description="Environment service role name")

    def as_option_settings(self) -> list[OptionSetting]:
        """Return the two role settings, instance profile first."""
        return [
            OptionSetting(
                namespace=INSTANCE_PROFILE_NAMESPACE,
                option_name=INSTANCE_PROFILE_OPTION,
                value=self.instance_profile,
            ),
            OptionSetting(
                namespace=SERVICE_ROLE_NAMESPACE,
                option_name=SERVICE_ROLE_OPTION,
                value=self.service_role,
            ),
        ]


def find_iam_roles(settings: list[OptionSetting]) -> tuple[str, str]:
    """Return the (instance profile, service role) values found in settings.

    Missing values are returned as empty strings. When a setting appears more
    than once the last occurrence wins.
    """
    instance_profile = ""
    service_role = ""
    for setting in settings:
        if (
            setting.namespace == INSTANCE_PROFILE_NAMESPACE
            and setting.option_name == INSTANCE_PROFILE_OPTION
        ):
            instance_profile = setting.value
        if (
            setting.namespace == SERVICE_ROLE_NAMESPACE
            and setting.option_name == SERVICE_ROLE_OPTION
        ):
            service_role = setting.value
    return instance_profile, service_role


class DeploymentConfig(BaseModel):
    """Main deployment configuration model.

    Attributes:
        region: AWS region of the target environment
        application_name: Elastic Beanstalk application name
        environment_name: Elastic Beanstalk environment name
        version_label: Application version label (resolved by the loader)
        solution_stack_name: Solution stack selector (XOR platform_arn)
        platform_arn: Platform ARN selector (XOR solution_stack_name)
        option_settings: Ordered option settings for create/update
        create_application_if_missing: Auto-create the application
        create_environment_if_missing: Create the environment when absent
        wait_for_deployment: Wait for the environment to become Ready
        wait_for_health: Wait for the environment health to recover
        deployment_timeout: Timeout in seconds for each wait
        max_retries: Attempts for each mutating remote call; 0 means a single
            attempt without retry
        retry_delay: Base backoff delay in seconds
        reuse_existing_version: Reuse an existing version with the same label
        create_bucket_if_missing: Create the upload bucket when absent
        bucket_name: Upload bucket override
        bucket_naming: Naming policy used when bucket_name is unset
        package_path: Pre-built deployment package
        exclude_patterns: Globs excluded when building the package
        source_dir: Directory packaged when no package_path is given
    """

    model_config = ConfigDict(extra="forbid")

    region: str = Field(..., description="AWS region (e.g., us-east-1)")
    application_name: str = Field(
        ..., min_length=1, max_length=100, description="Application name"
    )
    environment_name: str = Field(
        ..., min_length=4, max_length=40, description="Environment name"
    )
    version_label: str = Field(
        ..., min_length=1, max_length=100, description="Application version label"
    )
    solution_stack_name: str | None = Field(
        default=None, description="Solution stack name"
    )
    platform_arn: str | None = Field(default=None, description="Platform ARN")
    option_settings: list[OptionSetting] = Field(
        default_factory=list, description="Environment option settings"
    )
    create_application_if_missing: bool = Field(
        default=True, description="Create the application if it does not exist"
    )
    create_environment_if_missing: bool = Field(
        default=True, description="Create the environment if it does not exist"
    )
    wait_for_deployment: bool = Field(
        default=True, description="Wait for the deployment to complete"
    )
    wait_for_health: bool = Field(
        default=True, description="Wait for environment health to recover"
    )
    deployment_timeout: int = Field(
        default=DEFAULT_DEPLOYMENT_TIMEOUT,
        ge=60,
        le=3600,
        description="Deployment timeout in seconds",
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES, ge=0, le=10, description="Max retries"
    )
    retry_delay: int = Field(
        default=DEFAULT_RETRY_DELAY, ge=1, le=60, description="Retry delay in seconds"
    )
    reuse_existing_version: bool = Field(
        default=True, description="Reuse an existing application version"
    )
    create_bucket_if_missing: bool = Field(
        default=True, description="Create the S3 bucket if it does not exist"
    )
    bucket_name: str | None = Field(default=None, description="S3 bucket override")
    bucket_naming: BucketNamingScheme = Field(
        default=BucketNamingScheme.PLATFORM,
        description="Bucket naming policy when no override is given",
    )
    package_path: Path | None = Field(
        default=None, description="Pre-built deployment package"
    )
    exclude_patterns: list[str] = Field(
        default_factory=list, description="Glob patterns excluded from packaging"
    )
    source_dir: Path = Field(
        default=Path("."), description="Directory to package"
    )

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format."""
        if not REGION_PATTERN.match(v):
            raise ValueError(
                f"Invalid AWS region format: {v}. Expected format like 'us-east-1'"
            )
        return v

    @field_validator("environment_name")
    @classmethod
    def validate_environment_name(cls, v: str) -> str:
        """Validate environment name characters."""
        if not ENVIRONMENT_NAME_PATTERN.match(v):
            raise ValueError(
                "Environment name can only contain alphanumeric characters "
                f"and hyphens, got: {v}"
            )
        return v

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def split_exclude_patterns(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("solution_stack_name", "platform_arn", "bucket_name", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """Treat empty strings as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_platform_selector(self) -> "DeploymentConfig":
        """Validate that exactly one platform selector is provided."""
        if not self.solution_stack_name and not self.platform_arn:
            raise ValueError(
                "Either solution_stack_name or platform_arn must be provided"
            )
        if self.solution_stack_name and self.platform_arn:
            raise ValueError(
                "Cannot specify both solution_stack_name and platform_arn. "
                "Use only one."
            )
        if self.platform_arn:
            if not PLATFORM_ARN_PATTERN.match(self.platform_arn):
                raise ValueError(
                    f"Invalid platform ARN format: {self.platform_arn}. Expected "
                    "format like 'arn:aws:elasticbeanstalk:us-east-1::platform/"
                    "Python 3.11 running on 64bit Amazon Linux 2023/4.3.0'"
                )
            platform_region = self.platform_arn.split(":")[3]
            if platform_region != self.region:
                raise ValueError(
                    f"Platform ARN region ({platform_region}) does not match "
                    f"region ({self.region})"
                )
        return self

    @model_validator(mode="after")
    def validate_iam_roles(self) -> "DeploymentConfig":
        """Require both IAM role settings when environment creation is enabled."""
        if not self.create_environment_if_missing:
            return self
        instance_profile, service_role = find_iam_roles(self.option_settings)
        if not instance_profile:
            raise ValueError(
                "option_settings must include an IamInstanceProfile setting "
                f"(Namespace '{INSTANCE_PROFILE_NAMESPACE}', OptionName "
                f"'{INSTANCE_PROFILE_OPTION}') when create_environment_if_missing "
                "is enabled"
            )
        if not service_role:
            raise ValueError(
                "option_settings must include a ServiceRole setting "
                f"(Namespace '{SERVICE_ROLE_NAMESPACE}', OptionName "
                f"'{SERVICE_ROLE_OPTION}') when create_environment_if_missing "
                "is enabled"
            )
        return self

    @property
    def iam_roles(self) -> IamRoles | None:
        """Return the IAM roles found in option settings, if both are set."""
        instance_profile, service_role = find_iam_roles(self.option_settings)
        if not instance_profile or not service_role:
            return None
        return IamRoles(instance_profile=instance_profile, service_role=service_role)

