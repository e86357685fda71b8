"""Custom exception hierarchy for ebdeploy configuration and deployments."""


class EbDeployError(Exception):
    """Base exception for all ebdeploy errors.

    All ebdeploy-specific exceptions inherit from this class, enabling
    centralized exception handling at the CLI boundary.
    """

    pass


class ConfigError(EbDeployError):
    """Exception raised for configuration errors.

    Raised before any remote call is made, when configuration loading,
    parsing or validation fails.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class CloudSDKNotInstalledError(EbDeployError):
    """Exception raised when a cloud provider SDK cannot be imported."""

    def __init__(self, provider: str, sdk_name: str) -> None:
        """Create an error naming the missing SDK package."""
        self.provider = provider
        self.sdk_name = sdk_name
        self.message = (
            f"The {provider} SDK is not installed. Install it with: "
            f"pip install {sdk_name}"
        )
        super().__init__(self.message)


class DeploymentError(EbDeployError):
    """Exception raised when a deployment operation fails.

    Attributes:
        operation: Short name of the operation that failed (e.g. "upload")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize DeploymentError with operation and message.

        Args:
            operation: Name of the failed operation
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(message)


class RetryExhaustedError(DeploymentError):
    """Raised when a remote call keeps failing after every backoff attempt.

    Attributes:
        attempts: Number of attempts that were made
        last_error: The exception raised by the final attempt, if any
    """

    def __init__(
        self, operation: str, attempts: int, last_error: BaseException | None
    ) -> None:
        """Create an exhaustion error embedding the count and last failure."""
        self.attempts = attempts
        self.last_error = last_error
        detail = str(last_error) if last_error is not None else "no attempts made"
        super().__init__(
            operation=operation,
            message=f"{operation} failed after {attempts} attempts: {detail}",
        )


class ResourceNotFoundError(DeploymentError):
    """Base class for platform resources that are missing and cannot be created."""

    pass


class VersionNotFoundError(ResourceNotFoundError):
    """Raised when an application version label does not exist."""

    def __init__(self, application_name: str, version_label: str) -> None:
        """Create an error for a missing application version."""
        self.application_name = application_name
        self.version_label = version_label
        super().__init__(
            operation="resolve-version",
            message=(
                f"Application version {version_label} not found "
                f"for application {application_name}"
            ),
        )


class EnvironmentNotFoundError(ResourceNotFoundError):
    """Raised when the target environment is absent and may not be created."""

    def __init__(self, environment_name: str, message: str | None = None) -> None:
        """Create an error for a missing environment."""
        self.environment_name = environment_name
        super().__init__(
            operation="environment",
            message=message
            or (
                f"Environment {environment_name} does not exist and "
                "create-environment-if-missing is disabled"
            ),
        )


class RoleNotFoundError(ResourceNotFoundError):
    """Raised when a required IAM role or instance profile is missing."""

    def __init__(self, role_kind: str, role_name: str) -> None:
        """Create an error naming the missing role."""
        self.role_kind = role_kind
        self.role_name = role_name
        super().__init__(
            operation="verify-iam-roles",
            message=f"{role_kind} '{role_name}' does not exist",
        )


class BucketMissingError(ResourceNotFoundError):
    """Raised when the upload bucket is missing and bucket creation is disabled."""

    def __init__(self, bucket: str) -> None:
        """Create an error naming the missing bucket."""
        self.bucket = bucket
        super().__init__(
            operation="upload",
            message=(
                f"S3 bucket {bucket} does not exist and "
                "create-bucket-if-missing is disabled"
            ),
        )


class IncompleteSourceBundleError(DeploymentError):
    """Raised when an existing version lacks a bucket or key for its bundle."""

    def __init__(
        self, version_label: str, bucket: str | None, key: str | None
    ) -> None:
        """Create an error describing which bundle fields are missing."""
        self.version_label = version_label
        bucket_status = f"bucket: {bucket}" if bucket else "bucket: missing"
        key_status = f"key: {key}" if key else "key: missing"
        super().__init__(
            operation="resolve-version",
            message=(
                f"Application version {version_label} has incomplete S3 source "
                f"bundle information ({bucket_status}, {key_status})"
            ),
        )


class DeploymentFailedEventError(DeploymentError):
    """Raised when the platform reports an ERROR or FATAL event mid-deployment.

    Attributes:
        event_message: Message of the event that triggered the failure
    """

    def __init__(self, event_message: str) -> None:
        """Create an error carrying the platform event message."""
        self.event_message = event_message
        super().__init__(
            operation="deployment",
            message=(
                "Environment deployment failed - fatal or error event detected: "
                f"{event_message}"
            ),
        )


class HealthCheckFailedError(DeploymentError):
    """Raised when environment health is Red after the status settled."""

    def __init__(self, environment_name: str) -> None:
        """Create a health failure for an environment."""
        self.environment_name = environment_name
        super().__init__(
            operation="health-check",
            message=f"Environment {environment_name} deployment failed - health is Red",
        )


class DeploymentTimeoutError(DeploymentError):
    """Raised when the environment never reached Ready within the timeout."""

    def __init__(self, timeout: int) -> None:
        """Create a timeout error for the deployment wait."""
        self.timeout = timeout
        super().__init__(
            operation="wait-for-deployment",
            message=f"Deployment timed out after {timeout}s",
        )


class HealthCheckTimeoutError(DeploymentError):
    """Raised when health never became acceptable within the timeout."""

    def __init__(self, timeout: int) -> None:
        """Create a timeout error for the health wait."""
        self.timeout = timeout
        super().__init__(
            operation="wait-for-health",
            message=f"Environment health check timed out after {timeout}s",
        )
