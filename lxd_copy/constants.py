"""Constants for lxd-copy.

Centralizes reserved config keys, API paths and other magic strings used
across the codebase.
"""

# Reserved config namespace for transient, server-managed keys
VOLATILE_PREFIX = "volatile"
BASE_IMAGE_KEY = "volatile.base_image"

# Operation resource collection holding created containers
CONTAINERS_RESOURCE = "containers"

# Snapshot names are qualified as <container>/<snapshot>
SNAPSHOT_DELIMITER = "/"

# Remote configuration
LOCAL_REMOTE = "local"
LOCAL_REMOTE_ADDR = "unix:///var/lib/lxd/unix.socket"
DEFAULT_CONFIG_DIR = "~/.config/lxd-copy"

# REST API
API_VERSION = "1.0"
API_ROOT = f"/{API_VERSION}"

# Operation terminal states
OPERATION_SUCCESS = "Success"
OPERATION_FAILURE = "Failure"
OPERATION_CANCELLED = "Cancelled"

# Result line printed when the server picked the destination name
CONTAINER_NAME_MESSAGE = "Container name is: {name}"
