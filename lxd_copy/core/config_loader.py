"""Remote configuration management for lxd-copy."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..constants import DEFAULT_CONFIG_DIR, LOCAL_REMOTE, LOCAL_REMOTE_ADDR
from .exceptions import ConfigurationError

logger = structlog.get_logger()


class RemoteConfig(BaseModel):
    """Configuration for a container-management endpoint."""

    addr: str
    public: bool = False
    description: str = ""


def _default_remotes() -> dict[str, RemoteConfig]:
    return {LOCAL_REMOTE: RemoteConfig(addr=LOCAL_REMOTE_ADDR)}


class LxdCopyConfig(BaseSettings):
    """Main configuration: known remotes and the client identity."""

    remotes: dict[str, RemoteConfig] = Field(default_factory=_default_remotes)
    default_remote: str = Field(default=LOCAL_REMOTE, alias="LXD_COPY_DEFAULT_REMOTE")
    client_cert: str = Field(default=f"{DEFAULT_CONFIG_DIR}/client.crt", alias="LXD_COPY_CLIENT_CERT")
    client_key: str = Field(default=f"{DEFAULT_CONFIG_DIR}/client.key", alias="LXD_COPY_CLIENT_KEY")
    config_file: str = Field(default=f"{DEFAULT_CONFIG_DIR}/config.yml", alias="LXD_COPY_CONFIG")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def get_remote(self, name: str) -> RemoteConfig:
        """Look up a remote by name.

        Raises:
            ConfigurationError: If the remote is not configured
        """
        try:
            return self.remotes[name]
        except KeyError:
            raise ConfigurationError(f"Remote '{name}' not configured") from None

    def parse_remote_and_name(self, locator: str) -> tuple[str, str]:
        """Split ``[<remote>:]<name>`` into a configured remote and a name.

        A locator without a remote prefix, or with an empty one, refers to
        the default remote. The name may be empty (``"remote:"``).
        """
        if ":" in locator:
            remote, name = locator.split(":", 1)
            if not remote:
                remote = self.default_remote
        else:
            remote, name = self.default_remote, locator

        if remote not in self.remotes:
            raise ConfigurationError(f"Remote '{remote}' not configured")
        return remote, name


async def load_config_async(config_path: str | None = None) -> LxdCopyConfig:
    """Load configuration from multiple sources (async interface).

    Order (later wins): .env, user config, project config, environment.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    load_dotenv()

    config = LxdCopyConfig()

    user_config_path = Path(DEFAULT_CONFIG_DIR).expanduser() / "config.yml"
    await _load_config_file(config, user_config_path)

    project_config_path = Path(config_path or os.getenv("LXD_COPY_CONFIG", config.config_file)).expanduser()
    if project_config_path != user_config_path:
        await _load_config_file(config, project_config_path)

    config.config_file = str(project_config_path)

    _apply_env_overrides(config)

    if config.default_remote not in config.remotes:
        raise ConfigurationError(f"Default remote '{config.default_remote}' not configured")

    return config


async def _load_config_file(config: LxdCopyConfig, config_path: Path) -> None:
    """Load and apply configuration from a YAML file."""
    if not config_path.exists():
        return

    yaml_config = await _load_yaml_config(config_path)
    _apply_remote_config(config, yaml_config)
    _apply_client_config(config, yaml_config)


def _apply_remote_config(config: LxdCopyConfig, yaml_config: dict[str, Any]) -> None:
    """Apply remotes and default remote from YAML data."""
    if "remotes" in yaml_config and yaml_config["remotes"]:
        for name, remote_data in yaml_config["remotes"].items():
            config.remotes[name] = RemoteConfig(**remote_data)
    if yaml_config.get("default-remote"):
        config.default_remote = yaml_config["default-remote"]


def _apply_client_config(config: LxdCopyConfig, yaml_config: dict[str, Any]) -> None:
    """Apply client certificate paths from YAML data."""
    client = yaml_config.get("client") or {}
    if client.get("cert"):
        config.client_cert = client["cert"]
    if client.get("key"):
        config.client_key = client["key"]


def _apply_env_overrides(config: LxdCopyConfig) -> None:
    """Apply environment variable overrides."""
    if remote := os.getenv("LXD_COPY_DEFAULT_REMOTE"):
        config.default_remote = remote
    if cert := os.getenv("LXD_COPY_CLIENT_CERT"):
        config.client_cert = cert
    if key := os.getenv("LXD_COPY_CLIENT_KEY"):
        config.client_key = key


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)

        content = _expand_yaml_config(content)

        loaded = yaml.safe_load(content)
        if not isinstance(loaded, dict):
            return {}
        return loaded
    except Exception as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""
    allowed_env_vars = {
        "HOME",
        "USER",
        "XDG_CONFIG_HOME",
        "LXD_DIR",
        "LXD_COPY_CONFIG",
        "LXD_COPY_CLIENT_CERT",
        "LXD_COPY_CLIENT_KEY",
    }

    def replace_var(match):
        var_name = match.group(1)
        if var_name in allowed_env_vars:
            return os.getenv(var_name, match.group(0))  # Keep original if not found
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
        )
        return match.group(0)

    return re.sub(r"\$\{([^}]+)\}", replace_var, content)
