"""Pytest configuration and fixtures for misskey_client tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from misskey_client import (
    AsyncMisskeyHttpClient,
    AsyncStreamTransport,
    MisskeyHttpClient,
    StreamTransport,
)

HOST = "misskey.example"


class FakeStream:
    """In-memory duplex stream standing in for a socket file.

    ``max_read`` caps how many bytes a single ``read`` returns, to exercise
    short reads.
    """

    def __init__(self, incoming: bytes = b"", *, max_read: int | None = None) -> None:
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.max_read = max_read
        self.closed = False
        self.read_sizes: list[int] = []

    def read(self, size: int) -> bytes:
        self.read_sizes.append(size)
        if self.max_read is not None:
            size = min(size, self.max_read)
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def write(self, data: bytes) -> int:
        self.written += data
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def http_response(
    status: int = 200,
    reason: str = "OK",
    body: bytes | str = b"",
    headers: dict[str, str] | None = None,
    version: str = "HTTP/1.1",
) -> bytes:
    """Build raw response bytes with a matching Content-Length.

    Args:
        status: HTTP status code
        reason: Reason phrase
        body: Response body
        headers: Extra headers, written after Content-Length
        version: HTTP version token

    Returns:
        The encoded response
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    lines = [f"{version} {status} {reason}", f"Content-Length: {len(body)}"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


def create_client(
    *responses: bytes,
    access_token: str | None = None,
    chunk_size: int = 1,
    max_read: int | None = None,
) -> tuple[MisskeyHttpClient, FakeStream]:
    """Create a blocking client whose server replies with ``responses``."""
    stream = FakeStream(b"".join(responses), max_read=max_read)
    transport = StreamTransport(stream, chunk_size=chunk_size)
    client = MisskeyHttpClient(transport, HOST, access_token=access_token)
    return client, stream


def create_async_transport(data: bytes) -> tuple[AsyncStreamTransport, MagicMock]:
    """Create an asyncio transport reading ``data`` then EOF.

    Must be called with a running event loop.
    """
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    writer = MagicMock(spec=asyncio.StreamWriter)
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    return AsyncStreamTransport(reader, writer), writer


def create_async_client(
    *responses: bytes, access_token: str | None = None
) -> tuple[AsyncMisskeyHttpClient, MagicMock]:
    """Create an asyncio client whose server replies with ``responses``."""
    transport, writer = create_async_transport(b"".join(responses))
    client = AsyncMisskeyHttpClient(transport, HOST, access_token=access_token)
    return client, writer


def written_bytes(writer: MagicMock) -> bytes:
    """Everything written to a mock ``StreamWriter``."""
    return b"".join(call.args[0] for call in writer.write.call_args_list)


@pytest.fixture
def fake_stream() -> FakeStream:
    return FakeStream()
