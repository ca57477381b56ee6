"""Cross-endpoint migration orchestrator.

Negotiates a migration session with the source, then offers it to the
destination once per candidate source address until one attempt completes
on both sides. Failures are attributed to the side that produced them:

- a rejected handshake or failed destination operation moves on to the
  next address
- a failed source operation ends the migration immediately
- when every address fails, the source operation is inspected once more so
  a source-side fault is not reported as a destination one
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

import structlog

from ...models.container import (
    CopyOptions,
    CopyResult,
    MigrationSession,
    Operation,
    ReplicableState,
)
from ...utils import split_snapshot
from ..client.base import EndpointClient
from ..exceptions import (
    DestinationMigrationError,
    DestinationOperationError,
    HandshakeError,
    LxdCopyError,
    SourceMigrationError,
)
from .result import created_container_name

logger = structlog.get_logger()


class Side(Enum):
    """Which end of a migration an outcome belongs to."""

    SOURCE = "source"
    DESTINATION = "destination"


@dataclass
class OperationOutcome:
    """Terminal result of waiting on one side's operation."""

    side: Side
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AttemptStatus(Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptResult:
    """Result of offering the session to the destination at one address."""

    status: AttemptStatus
    address: str
    operation: Operation | None = None
    error: Exception | None = None


class MigrationOrchestrator:
    """Drives a migration between two different endpoints."""

    def __init__(self):
        self.logger = logger.bind(component="migration_orchestrator")

    async def migrate(
        self,
        source: EndpointClient,
        dest: EndpointClient,
        source_name: str,
        dest_name: str,
        state: ReplicableState,
        options: CopyOptions,
        report_name: bool,
    ) -> CopyResult:
        """Migrate ``source_name`` from ``source`` to ``dest``.

        Profile compatibility must already have been checked.

        Args:
            source: Client for the source endpoint
            dest: Client for the destination endpoint
            source_name: Source container or snapshot
            dest_name: Destination name, empty to let the destination choose
            state: Resolved source state
            options: Per-invocation copy options
            report_name: Whether to extract the created name

        Returns:
            CopyResult naming the address that succeeded

        Raises:
            SourceMigrationError: If the source side failed
            DestinationMigrationError: If every address failed on the destination side
            MissingResourceError: If the created name cannot be determined
            UpstreamError: If session negotiation or address discovery fails
        """
        ephemeral = await self._resolve_ephemeral(source, source_name, options)

        session = await self._negotiate_session(source, dest, source_name, options)
        certificate = await source.certificate()
        addresses = await source.addresses()

        self.logger.info(
            "Migration session negotiated",
            source=f"{source.remote}:{source_name}",
            dest=f"{dest.remote}:{dest_name}",
            operation=session.operation.path,
            channels=sorted(session.secrets),
            addresses=addresses,
        )

        last_error: Exception | None = None
        for address in addresses:
            result = await self._attempt(
                source, dest, session, address, dest_name, certificate, state, ephemeral, options
            )

            if result.status is AttemptStatus.RETRYABLE:
                last_error = result.error
                continue

            if result.status is AttemptStatus.FATAL:
                raise SourceMigrationError(
                    f"Migration failed on source host: {result.error}"
                ) from result.error

            name = created_container_name(result.operation) if report_name else None
            self.logger.info("Migration completed", address=address, name=name)
            return CopyResult(remote=dest.remote, name=name, migrated=True, address=address)

        raise await self._exhausted_error(source, session, last_error)

    async def _resolve_ephemeral(
        self, source: EndpointClient, source_name: str, options: CopyOptions
    ) -> bool:
        """Caller's ephemeral flag, or the source container's own when unset."""
        if options.ephemeral is not None:
            return options.ephemeral

        container, _ = split_snapshot(source_name)
        info = await source.get_container(container)
        self.logger.debug("Resolved ephemeral flag from source", ephemeral=info.ephemeral)
        return info.ephemeral

    async def _negotiate_session(
        self,
        source: EndpointClient,
        dest: EndpointClient,
        source_name: str,
        options: CopyOptions,
    ) -> MigrationSession:
        operation = await source.migration_source(
            source_name, options.stateful, options.container_only
        )
        return MigrationSession.from_operation(operation, source.remote, dest.remote)

    async def _attempt(
        self,
        source: EndpointClient,
        dest: EndpointClient,
        session: MigrationSession,
        address: str,
        dest_name: str,
        certificate: str,
        state: ReplicableState,
        ephemeral: bool,
        options: CopyOptions,
    ) -> AttemptResult:
        """Offer the session at one address and wait for both sides."""
        try:
            dest_operation = await dest.migrate_from(
                dest_name,
                session.operation_url(address),
                certificate,
                session.secrets,
                state,
                ephemeral,
                options.container_only,
            )
        except LxdCopyError as e:
            error = e if isinstance(e, HandshakeError) else HandshakeError(str(e))
            self.logger.warning("Migration handshake rejected", address=address, error=str(e))
            return AttemptResult(AttemptStatus.RETRYABLE, address, error=error)

        self.logger.info(
            "Migration handshake accepted", address=address, operation=dest_operation.path
        )

        dest_outcome, source_outcome = await self._await_both_sides(
            source, session.operation, dest, dest_operation
        )

        if not dest_outcome.ok:
            self.logger.warning(
                "Destination operation failed", address=address, error=str(dest_outcome.error)
            )
            error = DestinationOperationError(str(dest_outcome.error))
            error.__cause__ = dest_outcome.error
            return AttemptResult(AttemptStatus.RETRYABLE, address, error=error)

        if not source_outcome.ok:
            self.logger.error(
                "Source operation failed", address=address, error=str(source_outcome.error)
            )
            return AttemptResult(AttemptStatus.FATAL, address, error=source_outcome.error)

        return AttemptResult(AttemptStatus.SUCCESS, address, operation=dest_operation)

    async def _await_both_sides(
        self,
        source: EndpointClient,
        source_operation: Operation,
        dest: EndpointClient,
        dest_operation: Operation,
    ) -> tuple[OperationOutcome, OperationOutcome]:
        """Wait for both operations to finish; returns (destination, source)."""
        results: asyncio.Queue[OperationOutcome] = asyncio.Queue(maxsize=2)

        async def wait(client: EndpointClient, operation: Operation, side: Side) -> None:
            outcome = OperationOutcome(side)
            try:
                await client.wait_for_success(operation)
            except LxdCopyError as e:
                outcome.error = e
            finally:
                # Anything else re-raises from gather once both sides are drained
                results.put_nowait(outcome)

        tasks = [
            asyncio.create_task(wait(dest, dest_operation, Side.DESTINATION)),
            asyncio.create_task(wait(source, source_operation, Side.SOURCE)),
        ]

        outcomes: dict[Side, OperationOutcome] = {}
        for _ in range(len(tasks)):
            outcome = await results.get()
            outcomes[outcome.side] = outcome
        await asyncio.gather(*tasks)

        return outcomes[Side.DESTINATION], outcomes[Side.SOURCE]

    async def _exhausted_error(
        self,
        source: EndpointClient,
        session: MigrationSession,
        last_error: Exception | None,
    ) -> LxdCopyError:
        """Error to report once every address has been tried."""
        try:
            status = await source.get_operation(session.operation)
        except LxdCopyError as e:
            self.logger.warning("Could not query source operation", error=str(e))
        else:
            if status.err:
                self.logger.error("Migration failed on source host", error=status.err)
                return SourceMigrationError(f"Migration failed on source host: {status.err}")

        reason = str(last_error) if last_error is not None else "no candidate addresses"
        self.logger.error("Migration failed on target host", error=reason)
        error = DestinationMigrationError(f"Migration failed on target host: {reason}")
        error.__cause__ = last_error
        return error
