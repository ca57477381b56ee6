"""Top-level container copy: local copy or cross-endpoint migration."""

from collections.abc import Callable

import structlog

from ...models.container import CopyOptions, CopyResult, EntityReference
from ..client.base import EndpointClient
from ..config_loader import LxdCopyConfig
from ..exceptions import ArgumentError, SameNameError
from .local_copy import LocalCopyExecutor
from .orchestrator import MigrationOrchestrator
from .profiles import ProfileCompatibilityChecker
from .state_resolver import StateResolver

logger = structlog.get_logger()

ClientFactory = Callable[[LxdCopyConfig, str], EndpointClient]


class ContainerCopier:
    """Copies containers and snapshots within or between endpoints using focused components."""

    def __init__(self, config: LxdCopyConfig, client_factory: ClientFactory | None = None):
        if client_factory is None:
            from ..client.rest import connect

            client_factory = connect

        self.config = config
        self.client_factory = client_factory
        self.logger = logger.bind(component="container_copier")

        self.state_resolver = StateResolver()
        self.profile_checker = ProfileCompatibilityChecker()
        self.local_copy = LocalCopyExecutor()
        self.orchestrator = MigrationOrchestrator()

    def resolve_references(
        self, source_locator: str, dest_locator: str | None
    ) -> tuple[EntityReference, EntityReference]:
        """Parse source and destination locators.

        Without a destination locator the copy stays on the source remote
        and the endpoint picks the new name. A destination locator with an
        empty name (``"remote:"``) reuses the source name.

        Raises:
            ArgumentError: If the source name is empty
            ConfigurationError: If a remote is not configured
        """
        source_remote, source_name = self.config.parse_remote_and_name(source_locator)
        if not source_name:
            raise ArgumentError("you must specify a source container name")

        if dest_locator is None:
            return (
                EntityReference(remote=source_remote, name=source_name),
                EntityReference(remote=source_remote, name=""),
            )

        dest_remote, dest_name = self.config.parse_remote_and_name(dest_locator)
        if not dest_name:
            dest_name = source_name

        return (
            EntityReference(remote=source_remote, name=source_name),
            EntityReference(remote=dest_remote, name=dest_name),
        )

    async def copy(
        self,
        source_locator: str,
        dest_locator: str | None = None,
        options: CopyOptions | None = None,
    ) -> CopyResult:
        """Copy a container or snapshot.

        Args:
            source_locator: ``[<remote>:]<container>[/<snapshot>]``
            dest_locator: ``[<remote>:]<name>``; None lets the endpoint name the copy
            options: Per-invocation copy options

        Returns:
            CopyResult; ``name`` is only set when the endpoint chose it
        """
        options = options or CopyOptions()
        source_ref, dest_ref = self.resolve_references(source_locator, dest_locator)
        report_name = dest_locator is None
        same_remote = source_ref.remote == dest_ref.remote

        if same_remote and source_ref.name == dest_ref.name:
            raise SameNameError("can't copy to the same container name")

        self.logger.info(
            "Starting copy",
            source=str(source_ref),
            dest=str(dest_ref),
            migration=not same_remote,
            container_only=options.container_only,
        )

        async with self.client_factory(self.config, source_ref.remote) as source:
            state = await self.state_resolver.resolve(source, source_ref.name, options)

            if same_remote:
                name = await self.local_copy.execute(
                    source, source_ref.name, dest_ref.name, state, options, report_name
                )
                return CopyResult(remote=source_ref.remote, name=name)

            async with self.client_factory(self.config, dest_ref.remote) as dest:
                await self.profile_checker.check(state.profiles, dest)
                return await self.orchestrator.migrate(
                    source, dest, source_ref.name, dest_ref.name, state, options, report_name
                )
