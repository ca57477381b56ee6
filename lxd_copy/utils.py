"""Utility functions for lxd-copy."""

from .constants import SNAPSHOT_DELIMITER, VOLATILE_PREFIX


def is_snapshot(name: str) -> bool:
    """Whether ``name`` denotes a snapshot (``container/snapshot``)."""
    return SNAPSHOT_DELIMITER in name


def split_snapshot(name: str) -> tuple[str, str]:
    """Split a qualified snapshot name into container and snapshot parts.

    Example:
        >>> split_snapshot("web/snap0")
        ('web', 'snap0')
    """
    container, _, snapshot = name.partition(SNAPSHOT_DELIMITER)
    return container, snapshot


def strip_volatile(config: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``config`` without volatile keys."""
    return {key: value for key, value in config.items() if not key.startswith(VOLATILE_PREFIX)}


def parse_config_overrides(pairs: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a dict.

    Later occurrences of a key overwrite earlier ones.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key
    """
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid config entry '{pair}', expected key=value")
        overrides[key] = value
    return overrides


def last_path_segment(path: str) -> str:
    """Last segment of a resource path (``/1.0/containers/web`` -> ``web``)."""
    return path.rstrip("/").rsplit("/", 1)[-1]
