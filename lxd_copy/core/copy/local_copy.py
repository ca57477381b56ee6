"""Same-endpoint container copy."""

import structlog

from ...models.container import CopyOptions, ReplicableState
from ..client.base import EndpointClient
from ..exceptions import SameNameError
from .result import created_container_name

logger = structlog.get_logger()


class LocalCopyExecutor:
    """Copies a container within one endpoint with a single copy request."""

    def __init__(self):
        self.logger = logger.bind(component="local_copy")

    async def execute(
        self,
        client: EndpointClient,
        source_name: str,
        dest_name: str,
        state: ReplicableState,
        options: CopyOptions,
        report_name: bool,
    ) -> str | None:
        """Copy ``source_name`` to ``dest_name`` and wait for completion.

        Args:
            client: Client for the shared endpoint
            source_name: Source container or snapshot
            dest_name: Destination name, empty to let the endpoint choose
            state: Resolved source state
            options: Per-invocation copy options
            report_name: Whether to extract the created name

        Returns:
            Created container name when ``report_name`` is set, else None

        Raises:
            SameNameError: If the names are identical
            UpstreamError: If the copy request or operation fails
            MissingResourceError: If the created name cannot be determined
        """
        if source_name == dest_name:
            raise SameNameError("can't copy to the same container name")

        operation = await client.local_copy(
            source_name,
            dest_name,
            state.config,
            state.profiles,
            bool(options.ephemeral),
            options.container_only,
        )
        self.logger.info(
            "Local copy started", remote=client.remote, source=source_name, operation=operation.path
        )

        await client.wait_for_success(operation)

        if not report_name:
            return None

        name = created_container_name(operation)
        self.logger.info("Local copy completed", remote=client.remote, name=name)
        return name
