"""Tests for YAML client profiles."""

from __future__ import annotations

import ssl
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from misskey_client import (
    AsyncMisskeyHttpClient,
    ClientConfig,
    ConfigLoadError,
    MiAuthBuilder,
    MisskeyClientError,
    MisskeyHttpClient,
    Permission,
    connect,
    connect_async,
    load_config,
)
from misskey_client.config import parse_config

from .conftest import create_client


def write_profile(directory: Path, content: str) -> Path:
    path = directory / "profile.yaml"
    path.write_text(content)
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_minimal(self, tmp_path):
        config = load_config(write_profile(tmp_path, "host: misskey.example\n"))

        assert config.host == "misskey.example"
        assert config.port == 443
        assert config.scheme == "https"
        assert config.token is None
        assert config.chunk_size == 1
        assert config.timeout is None
        assert config.miauth.permissions == ()

    def test_full(self, tmp_path):
        path = write_profile(
            tmp_path,
            """
host: misskey.example
port: 3000
scheme: http
token: abc
chunk_size: 64
timeout: 2.5
miauth:
  name: my-bot
  icon: https://bot.example/icon.png
  callback: https://bot.example/cb
  uri: https://bot.example
  permissions:
    - read:account
    - write:notes
""",
        )

        config = load_config(str(path))

        assert config.port == 3000
        assert config.scheme == "http"
        assert config.token == "abc"
        assert config.chunk_size == 64
        assert config.timeout == 2.5
        assert config.miauth.name == "my-bot"
        assert config.miauth.permissions == (
            Permission.READ_ACCOUNT,
            Permission.WRITE_NOTES,
        )

    def test_http_default_port(self, tmp_path):
        config = load_config(
            write_profile(tmp_path, "host: misskey.example\nscheme: http\n")
        )
        assert config.port == 80

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="File not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="Invalid YAML"):
            load_config(write_profile(tmp_path, "host: [unclosed\n"))

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(write_profile(tmp_path, "- a\n- b\n"))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="host"):
            load_config(write_profile(tmp_path, ""))


class TestParseConfig:
    """Tests for field validation in parse_config()."""

    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ({}, "host"),
            ({"host": ""}, "host"),
            ({"host": "h", "scheme": "ftp"}, "scheme"),
            ({"host": "h", "port": "https"}, "numeric"),
            ({"host": "h", "timeout": "soon"}, "numeric"),
            ({"host": "h", "chunk_size": 0}, "chunk_size"),
            ({"host": "h", "miauth": ["x"]}, "miauth"),
            (
                {"host": "h", "miauth": {"permissions": ["read:everything"]}},
                "permission",
            ),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigLoadError, match=message):
            parse_config(data)

    def test_config_error_is_client_error(self):
        assert issubclass(ConfigLoadError, MisskeyClientError)


class TestAuthority:
    """Tests for ClientConfig.authority."""

    @pytest.mark.parametrize(
        ("config", "authority"),
        [
            (ClientConfig(host="misskey.example"), "misskey.example"),
            (ClientConfig(host="misskey.example", port=3000), "misskey.example:3000"),
            (
                ClientConfig(host="misskey.example", port=80, scheme="http"),
                "misskey.example",
            ),
            (
                ClientConfig(host="misskey.example", port=443, scheme="http"),
                "misskey.example:443",
            ),
            (ClientConfig(host="::1", port=3000), "[::1]:3000"),
        ],
    )
    def test_authority(self, config, authority):
        assert config.authority == authority


class TestMiAuthFromConfig:
    def test_apply(self, tmp_path):
        config = load_config(
            write_profile(
                tmp_path,
                "host: misskey.example\n"
                "miauth:\n"
                "  name: bot\n"
                "  permissions: [write:notes]\n",
            )
        )
        client, _ = create_client()

        builder = MiAuthBuilder(client).apply(config.miauth)

        assert builder.query() == "permission=write:notes&name=bot"


class TestConnect:
    """Tests for connect() and connect_async()."""

    def test_connect_https(self):
        config = ClientConfig(host="misskey.example", token="tok", timeout=5)
        transport = MagicMock()

        with patch(
            "misskey_client.config.open_connection", return_value=transport
        ) as open_connection:
            client = connect(config)

        assert isinstance(client, MisskeyHttpClient)
        assert client.access_token == "tok"
        assert client.transport is transport
        args, kwargs = open_connection.call_args
        assert args == ("misskey.example", 443)
        assert isinstance(kwargs["ssl"], ssl.SSLContext)
        assert kwargs["timeout"] == 5
        assert kwargs["chunk_size"] == 1

    def test_connect_plain_http(self):
        config = ClientConfig(host="localhost", port=3000, scheme="http")

        with patch("misskey_client.config.open_connection") as open_connection:
            client = connect(config)

        assert open_connection.call_args.kwargs["ssl"] is None
        assert not client.is_logged_in
        assert str(client.authority) == "localhost:3000"

    async def test_connect_async(self):
        config = ClientConfig(host="misskey.example", token="tok")
        context = ssl.create_default_context()

        with patch(
            "misskey_client.config.open_async_connection", new=AsyncMock()
        ) as open_connection:
            client = await connect_async(config, ssl=context)

        assert isinstance(client, AsyncMisskeyHttpClient)
        assert client.access_token == "tok"
        open_connection.assert_awaited_once_with(
            "misskey.example", 443, ssl=context, timeout=None
        )
