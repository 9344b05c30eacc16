"""Byte-stream transports for the Misskey HTTP client.

A transport owns one already-connected duplex stream. It writes whole
requests and reads responses back in two steps: the head, up to the blank
line, and then exactly ``Content-Length`` body bytes. Bytes read past the
head boundary are kept for the body read.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl as ssl_module
from typing import Protocol

from .errors import (
    MisskeyConnectionError,
    MisskeyProtocolError,
    MisskeyTimeout,
)
from .http import HEADER_TERMINATOR

_LOGGER = logging.getLogger(__name__)

# Same as the default asyncio.StreamReader limit.
MAX_HEAD_SIZE = 2**16


class SyncStream(Protocol):
    """Blocking stream: ``read`` returns at most ``size`` bytes, ``b""`` on EOF."""

    def read(self, size: int, /) -> bytes | None: ...

    def write(self, data: bytes, /) -> int | None: ...


class StreamTransport:
    """Blocking transport over a file-like stream.

    ``chunk_size`` bounds each read while looking for the end of the head.
    The default of one byte never reads past the boundary. A head that grows
    past ``max_head_size`` bytes without ending is rejected, like the asyncio
    transport does at its reader limit.
    """

    def __init__(
        self,
        stream: SyncStream,
        *,
        chunk_size: int = 1,
        max_head_size: int = MAX_HEAD_SIZE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if max_head_size < 1:
            raise ValueError("max_head_size must be at least 1")
        self._stream = stream
        self._chunk_size = chunk_size
        self._max_head_size = max_head_size
        self._buffer = bytearray()

    @property
    def stream(self) -> SyncStream:
        return self._stream

    def write_all(self, data: bytes) -> None:
        """Write every byte of ``data`` and flush."""
        view = memoryview(data)
        try:
            while view:
                written = self._stream.write(view)
                if written is None:
                    # Buffered writers take everything or raise.
                    break
                if written == 0:
                    raise MisskeyConnectionError("Connection stopped accepting data")
                view = view[written:]
            flush = getattr(self._stream, "flush", None)
            if flush is not None:
                flush()
        except TimeoutError as err:
            raise MisskeyTimeout("Write to server timed out") from err
        except OSError as err:
            raise MisskeyConnectionError("Write to server failed") from err

    def read_until_boundary(self, boundary: bytes = HEADER_TERMINATOR) -> bytes:
        """Read until ``boundary`` and return everything up to and including it.

        Raises:
            MisskeyProtocolError: If ``max_head_size`` bytes arrive without
                the boundary.
            MisskeyConnectionError: If the stream ends first.
        """
        start = 0
        while True:
            index = self._buffer.find(boundary, start)
            if index >= 0:
                end = index + len(boundary)
                head = bytes(self._buffer[:end])
                del self._buffer[:end]
                return head
            if len(self._buffer) >= self._max_head_size:
                raise MisskeyProtocolError("Response head is too large")
            start = max(0, len(self._buffer) - len(boundary) + 1)
            self._fill(self._chunk_size)

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes, retrying short reads."""
        if size <= 0:
            return b""
        while len(self._buffer) < size:
            self._fill(size - len(self._buffer))
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def close(self) -> None:
        close = getattr(self._stream, "close", None)
        if close is not None:
            close()

    def _fill(self, size: int) -> None:
        try:
            chunk = self._stream.read(size)
        except TimeoutError as err:
            raise MisskeyTimeout("Read from server timed out") from err
        except OSError as err:
            raise MisskeyConnectionError("Read from server failed") from err
        if not chunk:
            raise MisskeyConnectionError("Connection closed by server")
        self._buffer += chunk


class AsyncStreamTransport:
    """Asyncio transport over a ``StreamReader``/``StreamWriter`` pair."""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._reader = reader
        self._writer = writer

    async def write_all(self, data: bytes) -> None:
        """Write ``data`` and wait until it has been flushed."""
        try:
            self._writer.write(data)
            await self._writer.drain()
        except TimeoutError as err:
            raise MisskeyTimeout("Write to server timed out") from err
        except OSError as err:
            raise MisskeyConnectionError("Write to server failed") from err

    async def read_until_boundary(self, boundary: bytes = HEADER_TERMINATOR) -> bytes:
        """Read until ``boundary`` and return everything up to and including it."""
        try:
            return await self._reader.readuntil(boundary)
        except asyncio.IncompleteReadError as err:
            raise MisskeyConnectionError("Connection closed by server") from err
        except asyncio.LimitOverrunError as err:
            raise MisskeyProtocolError("Response head is too large") from err
        except TimeoutError as err:
            raise MisskeyTimeout("Read from server timed out") from err
        except OSError as err:
            raise MisskeyConnectionError("Read from server failed") from err

    async def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        if size <= 0:
            return b""
        try:
            return await self._reader.readexactly(size)
        except asyncio.IncompleteReadError as err:
            raise MisskeyConnectionError(
                f"Connection closed after {len(err.partial)} of {size} body bytes"
            ) from err
        except TimeoutError as err:
            raise MisskeyTimeout("Read from server timed out") from err
        except OSError as err:
            raise MisskeyConnectionError("Read from server failed") from err

    async def close(self) -> None:
        self._writer.close()
        await self._writer.wait_closed()


def open_connection(
    host: str,
    port: int,
    *,
    ssl: ssl_module.SSLContext | None = None,
    timeout: float | None = None,
    chunk_size: int = 1,
) -> StreamTransport:
    """Open a TCP connection and wrap it in a blocking transport.

    With an ``ssl`` context the socket is wrapped for TLS, verifying ``host``.
    ``timeout`` becomes the socket deadline for every later read and write.
    """
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        if ssl is not None:
            sock = ssl.wrap_socket(sock, server_hostname=host)
    except TimeoutError as err:
        raise MisskeyTimeout("Connection to server timed out") from err
    except OSError as err:
        raise MisskeyConnectionError(f"Failed to connect to {host}:{port}") from err

    stream = sock.makefile("rwb", buffering=0)
    # The file object keeps the socket open until it is closed itself.
    sock.close()
    _LOGGER.debug("Connected to %s:%s", host, port)
    return StreamTransport(stream, chunk_size=chunk_size)


async def open_async_connection(
    host: str,
    port: int,
    *,
    ssl: ssl_module.SSLContext | None = None,
    timeout: float | None = None,
) -> AsyncStreamTransport:
    """Open an asyncio connection and wrap it in a transport.

    An ``ssl`` context, when given, is handed to asyncio as is.
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, ssl=ssl),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise MisskeyTimeout("Connection to server timed out") from err
    except OSError as err:
        raise MisskeyConnectionError(f"Failed to connect to {host}:{port}") from err

    _LOGGER.debug("Connected to %s:%s", host, port)
    return AsyncStreamTransport(reader, writer)
