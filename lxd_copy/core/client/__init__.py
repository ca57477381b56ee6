"""Endpoint clients for container-management remotes."""

from .base import EndpointClient  # noqa: F401
from .rest import RestEndpointClient, connect  # noqa: F401

__all__ = ["EndpointClient", "RestEndpointClient", "connect"]
