"""In-memory implementations of the deployment service interfaces.

The fakes keep their state in plain Python structures, record every call and
can be scripted to fail, so the reconciler and watchers can be exercised
without network access.

Example:
    >>> envs = InMemoryEnvironmentManager()
    >>> envs.script_environment(
    ...     "app", "app-prod", [{"status": "Updating"}, {"status": "Ready"}]
    ... )
    >>> envs.describe_environment("app", "app-prod").status
    'Updating'
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ebdeploy.deploy.clients.base import (
    EnvironmentManager,
    IdentityService,
    ObjectStore,
    RoleStore,
)
from ebdeploy.models.deployment import OptionSetting
from ebdeploy.models.platform import (
    ApplicationVersionRef,
    EnvironmentEvent,
    EnvironmentSnapshot,
)


class FakeServiceError(Exception):
    """Error raised by the fakes, standing in for an SDK client error."""


@dataclass
class RecordedCall:
    """A single call made against a fake service."""

    method: str
    kwargs: dict[str, Any] = field(default_factory=dict)


class _RecordingFake:
    """Call recording and scripted failures shared by all fakes."""

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._failures: dict[str, list[Exception]] = defaultdict(list)

    def fail_next(self, method: str, *errors: Exception) -> None:
        """Make the next calls to ``method`` raise the given errors in order."""
        self._failures[method].extend(errors)

    def calls_to(self, method: str) -> list[RecordedCall]:
        """Return the recorded calls to ``method``."""
        return [call for call in self.calls if call.method == method]

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append(RecordedCall(method=method, kwargs=kwargs))
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)


class InMemoryEnvironmentManager(_RecordingFake, EnvironmentManager):
    """Environment manager whose environments follow scripted state sequences.

    ``script_environment`` registers a sequence of snapshots; each describe
    call returns the next one and the last one repeats. ``script_events``
    does the same for event batches.
    """

    def __init__(self) -> None:
        super().__init__()
        self.versions: dict[tuple[str, str], ApplicationVersionRef] = {}
        self.applications: set[str] = set()
        self._environment_scripts: dict[tuple[str, str], list[EnvironmentSnapshot]] = {}
        self._event_scripts: dict[tuple[str, str], list[list[EnvironmentEvent]]] = {}

    def add_version(
        self,
        application_name: str,
        version_label: str,
        bucket: str | None = None,
        key: str | None = None,
    ) -> None:
        """Register an existing application version."""
        self.applications.add(application_name)
        self.versions[(application_name, version_label)] = ApplicationVersionRef(
            version_label=version_label, bucket=bucket, key=key
        )

    def script_environment(
        self,
        application_name: str,
        environment_name: str,
        states: Sequence[dict[str, Any] | EnvironmentSnapshot],
    ) -> None:
        """Set the snapshots returned by successive describe calls."""
        snapshots = [
            state
            if isinstance(state, EnvironmentSnapshot)
            else EnvironmentSnapshot(exists=True, name=environment_name, **state)
            for state in states
        ]
        self._environment_scripts[(application_name, environment_name)] = snapshots

    def script_events(
        self,
        application_name: str,
        environment_name: str,
        batches: Sequence[Sequence[EnvironmentEvent]],
    ) -> None:
        """Set the event batches (newest first) returned by successive fetches."""
        self._event_scripts[(application_name, environment_name)] = [
            list(batch) for batch in batches
        ]

    def describe_application_versions(
        self, application_name: str, version_label: str
    ) -> list[ApplicationVersionRef]:
        self._record(
            "describe_application_versions",
            application_name=application_name,
            version_label=version_label,
        )
        version = self.versions.get((application_name, version_label))
        return [version] if version else []

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
        self._record(
            "create_application_version",
            application_name=application_name,
            version_label=version_label,
            bucket=bucket,
            key=key,
            description=description,
            auto_create_application=auto_create_application,
        )
        if application_name not in self.applications and not auto_create_application:
            raise FakeServiceError(f"No Application named '{application_name}' found.")
        if (application_name, version_label) in self.versions:
            raise FakeServiceError(
                f"Application Version {version_label} already exists."
            )
        self.add_version(application_name, version_label, bucket=bucket, key=key)

    def describe_environment(
        self, application_name: str, environment_name: str
    ) -> EnvironmentSnapshot | None:
        self._record(
            "describe_environment",
            application_name=application_name,
            environment_name=environment_name,
        )
        script = self._environment_scripts.get((application_name, environment_name))
        if not script:
            return None
        if len(script) > 1:
            return script.pop(0)
        return script[0]

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
        self._record(
            "create_environment",
            application_name=application_name,
            environment_name=environment_name,
            version_label=version_label,
            option_settings=list(option_settings),
            solution_stack_name=solution_stack_name,
            platform_arn=platform_arn,
            cname_prefix=cname_prefix,
        )
        if (application_name, environment_name) not in self._environment_scripts:
            self.script_environment(
                application_name,
                environment_name,
                [{"status": "Launching", "environment_id": f"e-{environment_name}"}],
            )

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
        self._record(
            "update_environment",
            application_name=application_name,
            environment_name=environment_name,
            version_label=version_label,
            option_settings=list(option_settings),
            solution_stack_name=solution_stack_name,
            platform_arn=platform_arn,
        )

    def describe_events(
        self, application_name: str, environment_name: str, max_records: int
    ) -> list[EnvironmentEvent]:
        self._record(
            "describe_events",
            application_name=application_name,
            environment_name=environment_name,
            max_records=max_records,
        )
        script = self._event_scripts.get((application_name, environment_name))
        if not script:
            return []
        batch = script.pop(0) if len(script) > 1 else script[0]
        return batch[:max_records]


class InMemoryObjectStore(_RecordingFake, ObjectStore):
    """Object store keeping buckets and uploaded object paths in memory."""

    def __init__(self, buckets: Sequence[str] = ()) -> None:
        super().__init__()
        self.buckets: set[str] = set(buckets)
        self.bucket_regions: dict[str, str | None] = {}
        self.objects: dict[tuple[str, str], bytes] = {}

    def head_bucket(self, bucket: str) -> None:
        self._record("head_bucket", bucket=bucket)
        if bucket not in self.buckets:
            raise FakeServiceError(f"Not Found: {bucket}")

    def create_bucket(self, bucket: str, region: str | None = None) -> None:
        self._record("create_bucket", bucket=bucket, region=region)
        self.buckets.add(bucket)
        self.bucket_regions[bucket] = region

    def upload_file(self, path: Path, bucket: str, key: str) -> None:
        self._record("upload_file", path=path, bucket=bucket, key=key)
        if bucket not in self.buckets:
            raise FakeServiceError(f"NoSuchBucket: {bucket}")
        self.objects[(bucket, key)] = Path(path).read_bytes()


class InMemoryIdentityService(_RecordingFake, IdentityService):
    """Identity service returning a fixed account id."""

    def __init__(self, account_id: str = "123456789012") -> None:
        super().__init__()
        self.account_id = account_id

    def get_account_id(self) -> str:
        self._record("get_account_id")
        return self.account_id


class InMemoryRoleStore(_RecordingFake, RoleStore):
    """Role store holding a set of known instance profiles and roles."""

    def __init__(
        self,
        instance_profiles: Sequence[str] = (),
        roles: Sequence[str] = (),
    ) -> None:
        super().__init__()
        self.instance_profiles: set[str] = set(instance_profiles)
        self.roles: set[str] = set(roles)

    def get_instance_profile(self, name: str) -> None:
        self._record("get_instance_profile", name=name)
        if name not in self.instance_profiles:
            raise FakeServiceError(f"Instance profile {name} cannot be found.")

    def get_role(self, name: str) -> None:
        self._record("get_role", name=name)
        if name not in self.roles:
            raise FakeServiceError(f"The role with name {name} cannot be found.")
