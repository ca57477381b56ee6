"""LXD REST API client built on aiohttp."""

import ssl
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlparse

import aiohttp
import structlog
from pydantic import ValidationError

from ...constants import (
    API_ROOT,
    OPERATION_CANCELLED,
    OPERATION_FAILURE,
    OPERATION_SUCCESS,
)
from ...models.container import ContainerInfo, Operation, ReplicableState
from ...utils import is_snapshot, last_path_segment, split_snapshot
from ..config_loader import LxdCopyConfig, RemoteConfig
from ..exceptions import (
    HandshakeError,
    LxdCopyError,
    MetadataDecodeError,
    NotFoundError,
    OperationError,
    UpstreamError,
)
from ..settings import HTTP_TIMEOUT, WAIT_TIMEOUT
from .base import EndpointClient

logger = structlog.get_logger()


class RestEndpointClient(EndpointClient):
    """Endpoint client speaking the LXD ``/1.0`` REST API.

    ``unix://`` remotes are reached through the local socket, ``https://``
    remotes over TLS authenticated with the client certificate.
    """

    def __init__(
        self,
        remote: str,
        remote_config: RemoteConfig,
        client_cert: str | None = None,
        client_key: str | None = None,
        server_cert: str | None = None,
        http_timeout: int = HTTP_TIMEOUT,
        wait_timeout: int = WAIT_TIMEOUT,
    ):
        super().__init__(remote)
        self.remote_config = remote_config
        self.client_cert = client_cert
        self.client_key = client_key
        self.server_cert = server_cert
        self.http_timeout = http_timeout
        self.wait_timeout = wait_timeout

        parsed = urlparse(remote_config.addr)
        self._unix_socket: str | None = None
        if parsed.scheme == "unix":
            self._unix_socket = parsed.path
            self._base_url = "http://lxd"
        else:
            self._base_url = remote_config.addr.rstrip("/")

        self._session: aiohttp.ClientSession | None = None
        self._server_info: dict[str, Any] | None = None

    def _build_ssl_context(self) -> ssl.SSLContext:
        """TLS context presenting the client certificate."""
        if self.server_cert and Path(self.server_cert).exists():
            # Endpoints use self-signed certificates; trust the pinned one
            context = ssl.create_default_context(cafile=self.server_cert)
            context.check_hostname = False
        else:
            context = ssl.create_default_context()
        if (
            self.client_cert
            and self.client_key
            and Path(self.client_cert).exists()
            and Path(self.client_key).exists()
        ):
            context.load_cert_chain(self.client_cert, self.client_key)
        return context

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            if self._unix_socket is not None:
                connector: aiohttp.BaseConnector = aiohttp.UnixConnector(path=self._unix_socket)
            else:
                connector = aiohttp.TCPConnector(ssl=self._build_ssl_context(), limit=10)
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self.http_timeout),
                connector=connector,
            )
        return self._session

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Make an API request and return the response envelope.

        Raises:
            NotFoundError: For a 404 error response
            UpstreamError: For any other error response or connection failure
        """
        url = f"{self._base_url}{path}"
        try:
            async with self._get_session().request(method, url, json=json, params=params) as response:
                try:
                    envelope = await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamError(
                        f"{method} {path}: invalid response (HTTP {response.status})"
                    ) from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"{method} {path} failed: {e}") from e

        if not isinstance(envelope, dict):
            raise UpstreamError(f"{method} {path}: unexpected response body")

        if envelope.get("type") == "error":
            error_code = envelope.get("error_code") or response.status
            message = envelope.get("error") or f"HTTP {error_code}"
            if error_code == 404:
                raise NotFoundError(message)
            raise UpstreamError(message)

        return envelope

    def _operation_from(self, envelope: dict[str, Any]) -> Operation:
        """Build an Operation from an async response envelope."""
        path = envelope.get("operation")
        if not path:
            raise UpstreamError("Expected an asynchronous operation response")
        return self._parse_operation(path, envelope.get("metadata") or {})

    @staticmethod
    def _parse_operation(path: str, metadata: dict[str, Any]) -> Operation:
        try:
            return Operation(
                path=path,
                id=metadata.get("id", ""),
                status=metadata.get("status", ""),
                status_code=metadata.get("status_code", 0),
                resources=metadata.get("resources"),
                metadata=metadata.get("metadata"),
                err=metadata.get("err") or "",
            )
        except ValueError as e:
            raise MetadataDecodeError(f"Invalid operation metadata for {path}: {e}") from e

    async def _get_server_info(self) -> dict[str, Any]:
        if self._server_info is None:
            envelope = await self._request("GET", API_ROOT)
            self._server_info = envelope.get("metadata") or {}
        return self._server_info

    @staticmethod
    def _parse_container(path: str, metadata: dict[str, Any]) -> ContainerInfo:
        try:
            return ContainerInfo.model_validate(metadata)
        except ValidationError as e:
            raise MetadataDecodeError(f"Invalid container metadata for {path}: {e}") from e

    async def get_container(self, name: str) -> ContainerInfo:
        path = f"{API_ROOT}/containers/{quote(name)}"
        envelope = await self._request("GET", path)
        return self._parse_container(path, envelope.get("metadata") or {})

    async def get_snapshot(self, name: str) -> ContainerInfo:
        container, snapshot = split_snapshot(name)
        path = f"{API_ROOT}/containers/{quote(container)}/snapshots/{quote(snapshot)}"
        envelope = await self._request("GET", path)
        return self._parse_container(path, envelope.get("metadata") or {})

    async def list_profiles(self) -> list[str]:
        envelope = await self._request("GET", f"{API_ROOT}/profiles")
        return [last_path_segment(url) for url in envelope.get("metadata") or []]

    async def local_copy(
        self,
        source: str,
        dest: str,
        config: dict[str, str],
        profiles: list[str],
        ephemeral: bool,
        container_only: bool,
    ) -> Operation:
        body = {
            "name": dest,
            "config": config,
            "profiles": profiles,
            "ephemeral": ephemeral,
            "source": {"type": "copy", "source": source, "container_only": container_only},
        }
        envelope = await self._request("POST", f"{API_ROOT}/containers", json=body)
        return self._operation_from(envelope)

    async def migration_source(self, name: str, stateful: bool, container_only: bool) -> Operation:
        if is_snapshot(name):
            container, snapshot = split_snapshot(name)
            path = f"{API_ROOT}/containers/{quote(container)}/snapshots/{quote(snapshot)}"
            body: dict[str, Any] = {"migration": True}
        else:
            path = f"{API_ROOT}/containers/{quote(name)}"
            body = {"migration": True, "live": stateful, "container_only": container_only}
        envelope = await self._request("POST", path, json=body)
        return self._operation_from(envelope)

    async def addresses(self) -> list[str]:
        info = await self._get_server_info()
        return list((info.get("environment") or {}).get("addresses") or [])

    async def certificate(self) -> str:
        info = await self._get_server_info()
        return (info.get("environment") or {}).get("certificate") or ""

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
        body = {
            "name": name,
            "architecture": state.architecture,
            "config": state.config,
            "devices": state.devices,
            "profiles": state.profiles,
            "ephemeral": ephemeral,
            "source": {
                "type": "migration",
                "mode": "pull",
                "operation": operation_url,
                "certificate": certificate,
                "secrets": secrets,
                "base-image": state.base_image,
                "container_only": container_only,
            },
        }
        try:
            envelope = await self._request("POST", f"{API_ROOT}/containers", json=body)
            return self._operation_from(envelope)
        except LxdCopyError as e:
            raise HandshakeError(str(e)) from e

    async def wait_for_success(self, operation: Operation) -> None:
        while True:
            envelope = await self._request(
                "GET", f"{operation.path}/wait", params={"timeout": str(self.wait_timeout)}
            )
            current = self._parse_operation(operation.path, envelope.get("metadata") or {})
            if current.status == OPERATION_SUCCESS:
                return
            if current.status in (OPERATION_FAILURE, OPERATION_CANCELLED) or current.err:
                raise OperationError(current.err or f"Operation {current.status.lower()}")
            self.logger.debug("Operation still running", operation=operation.path, status=current.status)

    async def get_operation(self, operation: Operation) -> Operation:
        envelope = await self._request("GET", operation.path)
        return self._parse_operation(operation.path, envelope.get("metadata") or {})


def connect(config: LxdCopyConfig, remote: str) -> RestEndpointClient:
    """Build a REST client for a configured remote."""
    remote_config = config.get_remote(remote)
    config_dir = Path(config.config_file).expanduser().parent
    return RestEndpointClient(
        remote,
        remote_config,
        client_cert=str(Path(config.client_cert).expanduser()),
        client_key=str(Path(config.client_key).expanduser()),
        server_cert=str(config_dir / "servercerts" / f"{remote}.crt"),
    )
