"""Tests for remote configuration management."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from lxd_copy.core.config_loader import (
    LxdCopyConfig,
    RemoteConfig,
    _expand_yaml_config,
    load_config_async,
)
from lxd_copy.core.exceptions import ConfigurationError

ENV_VARS = ["LXD_COPY_DEFAULT_REMOTE", "LXD_COPY_CLIENT_CERT", "LXD_COPY_CLIENT_KEY", "LXD_COPY_CONFIG"]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate from user config, .env and environment overrides."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    with patch("lxd_copy.core.config_loader.load_dotenv"):
        yield


def write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False) as f:
        f.write(content)
        return f.name


def test_default_config():
    """Default configuration always knows the local remote."""
    config = LxdCopyConfig()

    assert "local" in config.remotes
    assert config.remotes["local"].addr == "unix:///var/lib/lxd/unix.socket"


@pytest.mark.asyncio
async def test_load_yaml_config(clean_env):
    config_path = write_config(
        """
default-remote: prod
remotes:
  prod:
    addr: https://10.0.0.5:8443
    description: "Production"
  staging:
    addr: https://10.0.0.6:8443
client:
  cert: /etc/lxd-copy/client.crt
  key: /etc/lxd-copy/client.key
"""
    )
    try:
        config = await load_config_async(config_path)

        assert config.default_remote == "prod"
        assert config.remotes["prod"] == RemoteConfig(
            addr="https://10.0.0.5:8443", description="Production"
        )
        assert "staging" in config.remotes
        assert "local" in config.remotes
        assert config.client_cert == "/etc/lxd-copy/client.crt"
        assert config.client_key == "/etc/lxd-copy/client.key"
        assert config.config_file == config_path
    finally:
        Path(config_path).unlink()


@pytest.mark.asyncio
async def test_env_overrides_default_remote(clean_env, monkeypatch):
    config_path = write_config("remotes:\n  prod:\n    addr: https://10.0.0.5:8443\n")
    monkeypatch.setenv("LXD_COPY_DEFAULT_REMOTE", "prod")
    try:
        config = await load_config_async(config_path)

        assert config.default_remote == "prod"
    finally:
        Path(config_path).unlink()


@pytest.mark.asyncio
async def test_unknown_default_remote(clean_env):
    config_path = write_config("default-remote: missing\n")
    try:
        with pytest.raises(ConfigurationError, match="missing"):
            await load_config_async(config_path)
    finally:
        Path(config_path).unlink()


@pytest.mark.asyncio
async def test_invalid_config_file(clean_env):
    config_path = write_config("remotes: [unclosed\n")
    try:
        with pytest.raises(ConfigurationError, match="Failed to load config"):
            await load_config_async(config_path)
    finally:
        Path(config_path).unlink()


@pytest.mark.asyncio
async def test_missing_config_file(clean_env, tmp_path):
    config = await load_config_async(str(tmp_path / "absent.yml"))

    assert list(config.remotes) == ["local"]


def test_expand_allowed_variables(monkeypatch):
    monkeypatch.setenv("HOME", "/home/tester")
    monkeypatch.setenv("SECRET_TOKEN", "hunter2")

    content = _expand_yaml_config("cert: ${HOME}/c.crt\nkey: ${SECRET_TOKEN}\n")

    assert "cert: /home/tester/c.crt" in content
    assert "${SECRET_TOKEN}" in content


class TestParseRemoteAndName:
    """Locator parsing against configured remotes."""

    @pytest.fixture
    def config(self):
        return LxdCopyConfig(
            remotes={
                "local": RemoteConfig(addr="unix:///var/lib/lxd/unix.socket"),
                "prod": RemoteConfig(addr="https://10.0.0.5:8443"),
            },
            default_remote="local",
        )

    @pytest.mark.parametrize(
        "locator,expected",
        [
            ("web", ("local", "web")),
            ("prod:web", ("prod", "web")),
            ("prod:web/snap0", ("prod", "web/snap0")),
            ("prod:", ("prod", "")),
            (":web", ("local", "web")),
            ("", ("local", "")),
        ],
    )
    def test_parse(self, config, locator, expected):
        assert config.parse_remote_and_name(locator) == expected

    def test_unknown_remote(self, config):
        with pytest.raises(ConfigurationError, match="Remote 'nowhere' not configured"):
            config.parse_remote_and_name("nowhere:web")

    def test_get_remote(self, config):
        assert config.get_remote("prod").addr == "https://10.0.0.5:8443"
        with pytest.raises(ConfigurationError):
            config.get_remote("nowhere")
