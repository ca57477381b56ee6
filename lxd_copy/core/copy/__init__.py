"""Modular copy system with focused components."""

from .copier import ContainerCopier  # noqa: F401
from .local_copy import LocalCopyExecutor  # noqa: F401
from .orchestrator import MigrationOrchestrator  # noqa: F401
from .profiles import ProfileCompatibilityChecker  # noqa: F401
from .result import created_container_name  # noqa: F401
from .state_resolver import StateResolver  # noqa: F401

__all__ = [
    "ContainerCopier",
    "LocalCopyExecutor",
    "MigrationOrchestrator",
    "ProfileCompatibilityChecker",
    "StateResolver",
    "created_container_name",
]
