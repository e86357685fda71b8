"""Pydantic models for state read back from the hosting platform.

These models are rebuilt from a fresh platform query on every poll and are
never mutated locally.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

READY_STATUS = "Ready"
TERMINATED_STATUS = "Terminated"


class EnvironmentHealth(str, Enum):
    """Health colours reported for an environment."""

    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"
    GREY = "Grey"


class EventSeverity(str, Enum):
    """Severity levels attached to environment events."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"

    @property
    def is_failure(self) -> bool:
        """ERROR and FATAL events mean the deployment cannot succeed."""
        return self in (EventSeverity.ERROR, EventSeverity.FATAL)

    @classmethod
    def parse(cls, value: str | None) -> "EventSeverity":
        """Parse a raw severity, treating missing or unknown values as INFO."""
        if not value:
            return cls.INFO
        try:
            return cls(value.upper())
        except ValueError:
            return cls.INFO


class DeploymentActionType(str, Enum):
    """Whether the environment was created or updated by this run."""

    CREATE = "create"
    UPDATE = "update"


class SourceLocation(BaseModel):
    """Object-store location of a source bundle."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., description="Bucket holding the bundle")
    key: str = Field(..., description="Object key of the bundle")

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class ApplicationVersionRef(BaseModel):
    """A labeled application version and its (possibly incomplete) bundle."""

    model_config = ConfigDict(frozen=True)

    version_label: str = Field(..., description="Version label")
    bucket: str | None = Field(default=None, description="Source bundle bucket")
    key: str | None = Field(default=None, description="Source bundle key")


class EnvironmentSnapshot(BaseModel):
    """Point-in-time view of an environment.

    Attributes:
        exists: False when the environment is absent or Terminated
        name: Environment name
        status: Raw platform status (e.g. "Launching", "Updating", "Ready")
        health: Raw health colour, None when unset
        environment_id: Platform identifier of the environment
        url: CNAME assigned to the environment
    """

    model_config = ConfigDict(frozen=True)

    exists: bool = Field(..., description="Whether the environment is usable")
    name: str | None = Field(default=None, description="Environment name")
    status: str | None = Field(default=None, description="Environment status")
    health: str | None = Field(default=None, description="Environment health")
    environment_id: str | None = Field(default=None, description="Environment ID")
    url: str | None = Field(default=None, description="Environment CNAME")

    @property
    def is_ready(self) -> bool:
        return self.status == READY_STATUS

    @property
    def is_terminated(self) -> bool:
        return self.status == TERMINATED_STATUS

    @property
    def health_is_grey(self) -> bool:
        """Unset health is treated the same as Grey."""
        return self.health in (None, "", EnvironmentHealth.GREY.value)

    @property
    def health_is_acceptable(self) -> bool:
        return self.health in (
            EnvironmentHealth.GREEN.value,
            EnvironmentHealth.YELLOW.value,
        )

    @property
    def health_is_red(self) -> bool:
        return self.health == EnvironmentHealth.RED.value


class EnvironmentEvent(BaseModel):
    """A single entry of the environment's event log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = Field(default=None, description="Event time")
    severity: EventSeverity = Field(
        default=EventSeverity.INFO, description="Event severity"
    )
    message: str = Field(default="No message", description="Event message")

    def format(self) -> str:
        """Render the event as a single log line."""
        when = self.timestamp.isoformat() if self.timestamp else "Unknown time"
        return f"[{when}] {self.severity.value}: {self.message}"


class DeploymentOutputs(BaseModel):
    """Values exposed to the invoking pipeline after a deployment."""

    model_config = ConfigDict(extra="forbid")

    environment_url: str = Field(default="", description="Environment CNAME")
    environment_id: str = Field(default="", description="Environment ID")
    environment_status: str = Field(default="", description="Final status")
    environment_health: str = Field(default="", description="Final health")
    deployment_action_type: DeploymentActionType = Field(
        ..., description="Whether the environment was created or updated"
    )
    version_label: str = Field(..., description="Deployed version label")

    def as_output_pairs(self) -> dict[str, str]:
        """Return outputs keyed by their hyphenated pipeline names."""
        return {
            "environment-url": self.environment_url,
            "environment-id": self.environment_id,
            "environment-status": self.environment_status,
            "environment-health": self.environment_health,
            "deployment-action-type": self.deployment_action_type.value,
            "version-label": self.version_label,
        }
