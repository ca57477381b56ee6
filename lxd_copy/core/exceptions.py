"""Core exceptions for container copy and migration operations."""


class LxdCopyError(Exception):
    """Base exception for lxd-copy operations."""


class ConfigurationError(LxdCopyError):
    """Configuration validation or loading failed."""


class ArgumentError(LxdCopyError):
    """Invalid invocation arguments (e.g. missing source name)."""


class SameNameError(LxdCopyError):
    """Same-endpoint copy with identical source and destination names."""


class NotFoundError(LxdCopyError):
    """Source container or snapshot does not exist."""


class ProfileMismatchError(LxdCopyError):
    """Destination is missing one or more profiles used by the source."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "not all the profiles from the source exist on the target"
            f" (missing: {', '.join(missing)})"
        )


class UpstreamError(LxdCopyError):
    """Endpoint API or transport failure, propagated verbatim."""


class OperationError(UpstreamError):
    """An asynchronous operation reached a failed terminal state."""


class MetadataDecodeError(UpstreamError):
    """Operation metadata did not match the expected shape."""


class HandshakeError(LxdCopyError):
    """Destination rejected the migration handshake for one address."""


class DestinationOperationError(LxdCopyError):
    """Destination operation failed after an accepted handshake."""


class SourceMigrationError(LxdCopyError):
    """Source side of a migration failed; not recoverable by address retry."""


class DestinationMigrationError(LxdCopyError):
    """Every candidate address failed on the destination side."""


class MissingResourceError(LxdCopyError):
    """Completed operation reported no created container."""

    def __init__(self, message: str = "didn't get any affected image, container or snapshot from server"):
        super().__init__(message)
