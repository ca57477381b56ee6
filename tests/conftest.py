"""Shared pytest fixtures for lxd-copy tests."""

import asyncio
from typing import Any

import pytest
import structlog

from lxd_copy.core.client.base import EndpointClient
from lxd_copy.core.config_loader import LxdCopyConfig, RemoteConfig
from lxd_copy.core.copy import ContainerCopier
from lxd_copy.core.exceptions import NotFoundError
from lxd_copy.models.container import ContainerInfo, Operation, ReplicableState

SOURCE_OPERATION_PREFIX = "/1.0/operations/"


@pytest.fixture(autouse=True)
def stdlib_structlog():
    """Route structlog through stdlib logging so stdout only holds command output."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


class FakeEndpointClient(EndpointClient):
    """Scripted in-memory endpoint.

    Failures are scripted per address (handshake or destination wait) and
    for the source migration operation. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        remote: str,
        containers: dict[str, ContainerInfo] | None = None,
        snapshots: dict[str, ContainerInfo] | None = None,
        profiles: list[str] | None = None,
        addresses: list[str] | None = None,
        secrets: dict[str, Any] | None = None,
    ):
        super().__init__(remote)
        self.containers = containers or {}
        self.snapshots = snapshots or {}
        self.profiles = profiles if profiles is not None else ["default"]
        self.address_list = addresses or []
        self.secrets = secrets if secrets is not None else {"control": "c-secret", "fs": "f-secret"}

        self.handshake_failures: dict[str, Exception] = {}
        self.migration_failures: dict[str, Exception] = {}
        self.source_failure: Exception | None = None
        self.local_copy_failure: Exception | None = None
        self.operation_err = ""
        self.wait_delays: dict[str, float] = {}
        self.omit_resources = False

        self.calls: list[str] = []
        self.handshakes: list[dict[str, Any]] = []
        self.waited: list[str] = []
        self.closed = False
        self._counter = 0
        self._failing_operations: dict[str, Exception] = {}

    def _new_operation(self, **kwargs) -> Operation:
        self._counter += 1
        return Operation(path=f"{SOURCE_OPERATION_PREFIX}{self.remote}-{self._counter}", **kwargs)

    def _created(self, name: str) -> dict[str, list[str]] | None:
        if self.omit_resources:
            return None
        return {"containers": [f"/1.0/containers/{name}"]}

    async def close(self) -> None:
        self.closed = True

    async def get_container(self, name: str) -> ContainerInfo:
        self.calls.append("get_container")
        if name not in self.containers:
            raise NotFoundError(f"not found: {name}")
        return self.containers[name].model_copy(deep=True)

    async def get_snapshot(self, name: str) -> ContainerInfo:
        self.calls.append("get_snapshot")
        if name not in self.snapshots:
            raise NotFoundError(f"not found: {name}")
        return self.snapshots[name].model_copy(deep=True)

    async def list_profiles(self) -> list[str]:
        self.calls.append("list_profiles")
        return list(self.profiles)

    async def local_copy(self, source, dest, config, profiles, ephemeral, container_only) -> Operation:
        self.calls.append("local_copy")
        name = dest or f"{source.split('/')[0]}-copy"
        self.containers[name] = ContainerInfo(
            name=name, config=dict(config), profiles=list(profiles), ephemeral=ephemeral
        )
        operation = self._new_operation(resources=self._created(name))
        if self.local_copy_failure is not None:
            self._failing_operations[operation.path] = self.local_copy_failure
        return operation

    async def migration_source(self, name: str, stateful: bool, container_only: bool) -> Operation:
        self.calls.append("migration_source")
        operation = self._new_operation(metadata=dict(self.secrets))
        if self.source_failure is not None:
            self._failing_operations[operation.path] = self.source_failure
        return operation

    async def addresses(self) -> list[str]:
        self.calls.append("addresses")
        return list(self.address_list)

    async def certificate(self) -> str:
        self.calls.append("certificate")
        return f"{self.remote}-cert"

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
        self.calls.append("migrate_from")
        address = operation_url.removeprefix("https://").split("/", 1)[0]
        self.handshakes.append(
            {
                "address": address,
                "name": name,
                "operation_url": operation_url,
                "certificate": certificate,
                "secrets": dict(secrets),
                "state": state.model_copy(deep=True),
                "ephemeral": ephemeral,
                "container_only": container_only,
            }
        )
        if address in self.handshake_failures:
            raise self.handshake_failures[address]

        created = name or "migrated"
        operation = self._new_operation(resources=self._created(created))
        if address in self.migration_failures:
            self._failing_operations[operation.path] = self.migration_failures[address]
        else:
            self.containers[created] = ContainerInfo(
                name=created,
                architecture=state.architecture,
                config=dict(state.config),
                devices=state.devices,
                profiles=list(state.profiles),
                ephemeral=ephemeral,
            )
        return operation

    async def wait_for_success(self, operation: Operation) -> None:
        self.calls.append("wait_for_success")
        delay = self.wait_delays.get(operation.path)
        if delay:
            await asyncio.sleep(delay)
        self.waited.append(operation.path)
        if operation.path in self._failing_operations:
            raise self._failing_operations[operation.path]

    async def get_operation(self, operation: Operation) -> Operation:
        self.calls.append("get_operation")
        status = "Failure" if self.operation_err else "Running"
        return Operation(path=operation.path, status=status, err=self.operation_err)


@pytest.fixture
def web_container() -> ContainerInfo:
    """Source container with volatile keys, a base image and two profiles."""
    return ContainerInfo(
        name="web",
        architecture="x86_64",
        config={
            "limits.cpu": "2",
            "volatile.base_image": "abc123",
            "volatile.eth0.hwaddr": "00:16:3e:00:00:01",
            "volatile.last_state.power": "RUNNING",
        },
        devices={"root": {"path": "/", "type": "disk"}},
        profiles=["default", "web"],
        ephemeral=True,
    )


@pytest.fixture
def source_client(web_container: ContainerInfo) -> FakeEndpointClient:
    """Source endpoint holding the ``web`` container and one snapshot."""
    snapshot = web_container.model_copy(deep=True)
    snapshot.name = "web/snap0"
    snapshot.config["limits.cpu"] = "1"
    return FakeEndpointClient(
        "local",
        containers={"web": web_container},
        snapshots={"web/snap0": snapshot},
        profiles=["default", "web"],
        addresses=["10.0.0.1:8443", "192.168.1.1:8443"],
    )


@pytest.fixture
def dest_client() -> FakeEndpointClient:
    """Destination endpoint with matching profiles."""
    return FakeEndpointClient("remote2", profiles=["default", "web", "extra"])


@pytest.fixture
def config() -> LxdCopyConfig:
    """Configuration with a local and a remote endpoint."""
    return LxdCopyConfig(
        remotes={
            "local": RemoteConfig(addr="unix:///var/lib/lxd/unix.socket"),
            "remote2": RemoteConfig(addr="https://10.0.0.2:8443"),
        },
        default_remote="local",
    )


@pytest.fixture
def client_factory(source_client: FakeEndpointClient, dest_client: FakeEndpointClient):
    """Client factory serving the fake endpoints and counting connections."""
    clients = {"local": source_client, "remote2": dest_client}
    opened: list[str] = []

    def factory(config: LxdCopyConfig, remote: str) -> FakeEndpointClient:
        opened.append(remote)
        return clients[remote]

    factory.opened = opened  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def copier(config: LxdCopyConfig, client_factory) -> ContainerCopier:
    """ContainerCopier wired to the fake endpoints."""
    return ContainerCopier(config, client_factory)


@pytest.fixture
def make_endpoint():
    """Factory for additional fake endpoints."""
    return FakeEndpointClient
