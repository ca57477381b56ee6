"""Abstract base class for container-management endpoint clients."""

from abc import ABC, abstractmethod

import structlog

from ...models.container import ContainerInfo, Operation, ReplicableState

logger = structlog.get_logger()


class EndpointClient(ABC):
    """Client for a single container-management endpoint (remote)."""

    def __init__(self, remote: str):
        self.remote = remote
        self.logger = logger.bind(component=self.__class__.__name__.lower(), remote=remote)

    async def __aenter__(self) -> "EndpointClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release any connection resources."""

    @abstractmethod
    async def get_container(self, name: str) -> ContainerInfo:
        """Get container metadata.

        Raises:
            NotFoundError: If the container does not exist
            UpstreamError: On any other API failure
        """

    @abstractmethod
    async def get_snapshot(self, name: str) -> ContainerInfo:
        """Get snapshot metadata for a ``container/snapshot`` name.

        Raises:
            NotFoundError: If the snapshot does not exist
            UpstreamError: On any other API failure
        """

    @abstractmethod
    async def list_profiles(self) -> list[str]:
        """Names of all profiles defined on this endpoint."""

    @abstractmethod
    async def local_copy(
        self,
        source: str,
        dest: str,
        config: dict[str, str],
        profiles: list[str],
        ephemeral: bool,
        container_only: bool,
    ) -> Operation:
        """Start a same-endpoint copy of ``source`` to ``dest``.

        An empty ``dest`` lets the endpoint pick the new name.
        """

    @abstractmethod
    async def migration_source(self, name: str, stateful: bool, container_only: bool) -> Operation:
        """Start the source side of a migration.

        The returned operation's metadata holds one secret per channel.
        """

    @abstractmethod
    async def addresses(self) -> list[str]:
        """Network addresses (``host:port``) this endpoint listens on."""

    @abstractmethod
    async def certificate(self) -> str:
        """PEM certificate identifying this endpoint."""

    @abstractmethod
    async def migrate_from(
        self,
        name: str,
        operation_url: str,
        certificate: str,
        secrets: dict[str, str],
        state: ReplicableState,
        ephemeral: bool,
        container_only: bool,
    ) -> Operation:
        """Ask this endpoint to pull a container from a migration source.

        Raises:
            HandshakeError: If the request is rejected or cannot be delivered
        """

    @abstractmethod
    async def wait_for_success(self, operation: Operation) -> None:
        """Block until the operation reaches a terminal state.

        Raises:
            OperationError: If the operation failed or was cancelled
        """

    @abstractmethod
    async def get_operation(self, operation: Operation) -> Operation:
        """Current status of an operation."""
