"""Data models for lxd-copy."""

from .container import (  # noqa: F401
    ContainerInfo,
    CopyOptions,
    CopyResult,
    EntityReference,
    MigrationSession,
    Operation,
    ReplicableState,
)

__all__ = [
    "ContainerInfo",
    "CopyOptions",
    "CopyResult",
    "EntityReference",
    "MigrationSession",
    "Operation",
    "ReplicableState",
]
