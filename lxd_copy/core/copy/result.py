"""Extract the created container name from a completed operation."""

from ...constants import CONTAINERS_RESOURCE
from ...models.container import Operation
from ...utils import last_path_segment
from ..exceptions import MissingResourceError


def created_container_name(operation: Operation) -> str:
    """Name of the first container listed in the operation's resources.

    Raises:
        MissingResourceError: If no container resource was reported
    """
    containers = (operation.resources or {}).get(CONTAINERS_RESOURCE)
    if not containers:
        raise MissingResourceError()
    return last_path_segment(containers[0])
