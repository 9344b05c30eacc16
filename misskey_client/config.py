"""Client profiles loaded from YAML.

A profile names the server to talk to and, optionally, the token to log in
with and the app data used for MiAuth:

    host: misskey.example
    port: 443
    scheme: https
    token: ...
    timeout: 10
    miauth:
      name: my-bot
      callback: https://bot.example/callback
      permissions: [read:account, write:notes]
"""

from __future__ import annotations

import logging
import ssl as ssl_module
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .client import AsyncMisskeyHttpClient, MisskeyHttpClient
from .errors import MisskeyClientError
from .models import Permission
from .transport import open_async_connection, open_connection

_LOGGER = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


class ConfigLoadError(MisskeyClientError):
    """Error loading a client profile."""


@dataclass(frozen=True)
class MiAuthConfig:
    """App data shown to the user on the MiAuth approval page."""

    name: str | None = None
    icon: str | None = None
    callback: str | None = None
    uri: str | None = None
    permissions: tuple[Permission, ...] = ()


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one Misskey server.

    Attributes:
        host: Server host name or address.
        port: TCP port; defaults to the scheme's port.
        scheme: ``http`` or ``https``.
        token: Access token to log in with, if any.
        chunk_size: Read size used while looking for the end of a response
            head on blocking connections.
        timeout: Connect and socket timeout in seconds.
        miauth: App data for MiAuth sessions.
    """

    host: str
    port: int = 443
    scheme: str = "https"
    token: str | None = None
    chunk_size: int = 1
    timeout: float | None = None
    miauth: MiAuthConfig = MiAuthConfig()

    @property
    def authority(self) -> str:
        """``host[:port]``, without the port when it is the scheme default."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if DEFAULT_PORTS.get(self.scheme) == self.port:
            return host
        return f"{host}:{self.port}"

    @property
    def uses_tls(self) -> bool:
        return self.scheme == "https"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping at the top of {path}")
    return data


def _parse_miauth(data: dict[str, Any]) -> MiAuthConfig:
    try:
        permissions = tuple(Permission(p) for p in data.get("permissions", []))
    except ValueError as err:
        raise ConfigLoadError(f"Unknown MiAuth permission: {err}") from err
    return MiAuthConfig(
        name=data.get("name"),
        icon=data.get("icon"),
        callback=data.get("callback"),
        uri=data.get("uri"),
        permissions=permissions,
    )


def parse_config(data: dict[str, Any]) -> ClientConfig:
    """Build a :class:`ClientConfig` from already loaded data.

    Raises:
        ConfigLoadError: If a field is missing or has the wrong type.
    """
    host = data.get("host")
    if not isinstance(host, str) or not host:
        raise ConfigLoadError("'host' is required")

    scheme = data.get("scheme", "https")
    if scheme not in DEFAULT_PORTS:
        raise ConfigLoadError(f"Unsupported scheme: {scheme!r}")

    try:
        port = int(data.get("port", DEFAULT_PORTS[scheme]))
        chunk_size = int(data.get("chunk_size", 1))
        timeout = data.get("timeout")
        timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as err:
        raise ConfigLoadError(f"Invalid numeric setting: {err}") from err
    if chunk_size < 1:
        raise ConfigLoadError("'chunk_size' must be at least 1")

    miauth = data.get("miauth") or {}
    if not isinstance(miauth, dict):
        raise ConfigLoadError("'miauth' must be a mapping")

    return ClientConfig(
        host=host,
        port=port,
        scheme=scheme,
        token=data.get("token"),
        chunk_size=chunk_size,
        timeout=timeout,
        miauth=_parse_miauth(miauth),
    )


def load_config(path: Path | str) -> ClientConfig:
    """Load a client profile from a YAML file.

    Raises:
        ConfigLoadError: If the file is missing, is not valid YAML, or holds
            invalid settings.
    """
    path = Path(path)
    config = parse_config(_load_yaml(path))
    _LOGGER.debug("Loaded client profile for %s from %s", config.authority, path)
    return config


def connect(config: ClientConfig) -> MisskeyHttpClient:
    """Open a blocking connection and return a client for it.

    The client is logged in when the profile carries a token.
    """
    transport = open_connection(
        config.host,
        config.port,
        ssl=ssl_module.create_default_context() if config.uses_tls else None,
        timeout=config.timeout,
        chunk_size=config.chunk_size,
    )
    return MisskeyHttpClient(
        transport, config.authority, access_token=config.token
    )


async def connect_async(
    config: ClientConfig, *, ssl: ssl_module.SSLContext | None = None
) -> AsyncMisskeyHttpClient:
    """Open an asyncio connection and return a client for it.

    ``ssl`` overrides the default context used for ``https`` profiles.
    """
    if ssl is None and config.uses_tls:
        ssl = ssl_module.create_default_context()
    transport = await open_async_connection(
        config.host, config.port, ssl=ssl, timeout=config.timeout
    )
    return AsyncMisskeyHttpClient(
        transport, config.authority, access_token=config.token
    )
