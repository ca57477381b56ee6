"""Container and operation data models."""

from typing import Any

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from ..core.exceptions import MetadataDecodeError
from ..utils import is_snapshot


class EntityReference(BaseModel):
    """A container or snapshot on a named remote."""

    remote: str
    name: str

    @property
    def is_snapshot(self) -> bool:
        return is_snapshot(self.name)

    def __str__(self) -> str:
        return f"{self.remote}:{self.name}"


class ContainerInfo(BaseModel):
    """Container or snapshot metadata as reported by an endpoint."""

    name: str = ""
    architecture: str = ""
    config: dict[str, str] = Field(default_factory=dict)
    devices: dict[str, dict[str, str]] = Field(default_factory=dict)
    profiles: list[str] = Field(default_factory=list)
    ephemeral: bool = False
    stateful: bool = False

    @field_validator("config", "devices", "profiles", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # Endpoints serialize empty maps and lists as null
        if value is None:
            return [] if info.field_name == "profiles" else {}
        return value


class ReplicableState(BaseModel):
    """State forwarded to the destination when creating the copy."""

    architecture: str = ""
    devices: dict[str, dict[str, str]] = Field(default_factory=dict)
    config: dict[str, str] = Field(default_factory=dict)
    profiles: list[str] = Field(default_factory=list)
    base_image: str = ""  # recorded before volatile keys are stripped


class Operation(BaseModel):
    """An asynchronous endpoint operation.

    ``path`` is the operation URL path (``/1.0/operations/<id>``) used both
    for waiting and for building the migration source URL.
    """

    path: str
    id: str = ""
    status: str = ""
    status_code: int = 0
    resources: dict[str, list[str]] | None = None
    metadata: dict[str, Any] | None = None
    err: str = ""


class _SecretsMetadata(BaseModel):
    secrets: dict[str, str]


class MigrationSession(BaseModel):
    """Migration session negotiated with the source endpoint.

    The secrets are only valid for ``operation``; they are never sent
    without that operation's URL.
    """

    operation: Operation
    secrets: dict[str, str]
    source_remote: str
    dest_remote: str

    @classmethod
    def from_operation(cls, operation: Operation, source_remote: str, dest_remote: str) -> "MigrationSession":
        """Build a session from the source's migration operation.

        Raises:
            MetadataDecodeError: If the operation metadata is not a string map
        """
        try:
            decoded = _SecretsMetadata(secrets=operation.metadata or {})
        except ValidationError as e:
            raise MetadataDecodeError(
                f"Invalid migration secrets in operation {operation.path}: {e}"
            ) from e
        return cls(
            operation=operation,
            secrets=decoded.secrets,
            source_remote=source_remote,
            dest_remote=dest_remote,
        )

    def operation_url(self, address: str) -> str:
        """Fully-qualified source operation URL reachable at ``address``."""
        return f"https://{address}{self.operation.path}"


class CopyOptions(BaseModel):
    """Per-invocation copy inputs, threaded explicitly through the call chain."""

    profiles: list[str] = Field(default_factory=list)
    config: dict[str, str] = Field(default_factory=dict)
    ephemeral: bool | None = None  # None resolves from the source for migrations
    container_only: bool = False
    stateful: bool = False
    keep_volatile: bool = False


class CopyResult(BaseModel):
    """Outcome of a successful copy or migration."""

    remote: str
    name: str | None = None  # created name, only when the server picked it
    migrated: bool = False
    address: str | None = None
