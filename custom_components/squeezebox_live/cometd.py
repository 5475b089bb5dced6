"""CometD streaming transport for the Squeezebox hub.

The hub speaks CometD over its web port. Instead of long-polling HTTP, a
single raw TCP socket is kept open: outgoing messages are written as
hand-built ``POST /cometd`` requests and the hub streams chunked responses
back on the same socket.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from .const import (
    CHANNEL_CONNECT,
    CHANNEL_HANDSHAKE,
    CHANNEL_SUBSCRIBE,
    COMETD_CONNECTION_TYPE,
    COMETD_CONNECTION_TYPES,
    COMETD_PATH,
    COMETD_VERSION,
    DEFAULT_SOCKET_TIMEOUT,
    PLAYER_STATUS_COMMAND,
    READ_BUFFER_SIZE,
    SUBSCRIBE_INTERVAL,
    SUBSCRIBE_PRIORITY,
    CometdMessage,
)
from .exceptions import SqueezeboxProtocolError, SqueezeboxTransportError

_LOGGER = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"[\r\n]+")


def build_frame(messages: Sequence[CometdMessage]) -> bytes:
    """Wrap CometD messages in a synthetic HTTP POST request.

    Args:
        messages: Messages to send as one JSON array.

    Returns:
        The bytes to write to the socket.
    """
    body = json.dumps(list(messages)).encode()
    header = (
        f"POST {COMETD_PATH} HTTP/1.1\n"
        f"Content-Length: {len(body)}\n"
        "Content-Type: application/json\n\n"
    ).encode()
    return header + body + b"\n"


def parse_frame(raw: str) -> list[CometdMessage] | None:
    """Extract the CometD messages from a chunk read off the socket.

    A chunk is accepted when it starts with an HTTP ``200 OK`` status line or
    consists of exactly two lines (chunk size + payload). The payload is the
    last non-empty line.

    Args:
        raw: Decoded chunk.

    Returns:
        The messages, or None if the chunk has neither accepted shape.

    Raises:
        SqueezeboxProtocolError: If the payload line is not valid JSON.
    """
    lines = [line for line in _LINE_SPLIT.split(raw) if line]
    if not lines:
        return None

    is_http_ok = lines[0].startswith("HTTP") and lines[0].endswith("200 OK")
    if not (is_http_ok or len(lines) == 2):
        return None

    document = lines[-1]
    try:
        decoded = json.loads(document)
    except ValueError as err:
        raise SqueezeboxProtocolError(
            f"Malformed JSON on streaming connection: {err}", payload=document
        ) from err

    if isinstance(decoded, dict):
        return [decoded]  # type: ignore[list-item]
    if not isinstance(decoded, list):
        raise SqueezeboxProtocolError(
            "Streaming payload is neither an array nor an object", payload=document
        )
    return [message for message in decoded if isinstance(message, dict)]


def build_handshake_message() -> CometdMessage:
    """Return the /meta/handshake request."""
    return {
        "channel": CHANNEL_HANDSHAKE,
        "supportedConnectionTypes": list(COMETD_CONNECTION_TYPES),
        "version": COMETD_VERSION,
    }


def build_connect_message(client_id: str) -> CometdMessage:
    """Return the /meta/connect request for a negotiated client id."""
    return {
        "channel": CHANNEL_CONNECT,
        "clientId": client_id,
        "connectionType": COMETD_CONNECTION_TYPE,
    }


def build_subscribe_message(
    client_id: str,
    response_channel: str,
    player_id: str,
    correlation_id: int,
) -> CometdMessage:
    """Return a /slim/subscribe request for a player's status stream.

    Args:
        client_id: Negotiated CometD client id.
        response_channel: Channel the hub pushes status updates to.
        player_id: The player to subscribe to.
        correlation_id: Id echoed by the ack and by every push.
    """
    command = f"{PLAYER_STATUS_COMMAND} subscribe:{SUBSCRIBE_INTERVAL}"
    return {
        "channel": CHANNEL_SUBSCRIBE,
        "clientId": client_id,
        "id": correlation_id,
        "data": {
            "response": response_channel,
            "request": [player_id, command.split()],
            "priority": SUBSCRIBE_PRIORITY,
        },
    }


class SqueezeboxCometdTransport:
    """Persistent streaming socket to the hub.

    Owns the TCP connection, frames outgoing messages and de-frames incoming
    chunks. It does not retry; failures surface as SqueezeboxTransportError
    and the session coordinator decides what to do.

    Attributes:
        host: Hub host.
        port: Hub port.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = DEFAULT_SOCKET_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            host: Hub hostname.
            port: Hub port.
            connect_timeout: Seconds to wait for the socket to open.
        """
        self.host = host
        self.port = port
        self._connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._message_callback: Callable[[list[CometdMessage]], None] | None = None
        self._connection_callback: Callable[[bool], None] | None = None
        self._closing = False

    @property
    def connected(self) -> bool:
        """Return True if the socket is open."""
        return self._writer is not None and not self._writer.is_closing()

    def set_message_callback(
        self,
        callback: Callable[[list[CometdMessage]], None],
    ) -> None:
        """Set callback for de-framed message lists."""
        self._message_callback = callback

    def set_connection_callback(
        self,
        callback: Callable[[bool], None],
    ) -> None:
        """Set callback for connection state changes (True=connected)."""
        self._connection_callback = callback

    async def async_connect(self) -> None:
        """Open the socket and announce the connection.

        Raises:
            SqueezeboxTransportError: If the socket cannot be opened.
        """
        self._closing = False
        _LOGGER.debug("Opening streaming socket to %s:%s", self.host, self.port)
        try:
            async with asyncio.timeout(self._connect_timeout):
                self._reader, self._writer = await asyncio.open_connection(
                    self.host, self.port
                )
        except (OSError, TimeoutError) as err:
            self._reader = self._writer = None
            raise SqueezeboxTransportError(
                f"Cannot open streaming socket to {self.host}:{self.port}: {err!r}",
                host=self.host,
                port=self.port,
            ) from err

        _LOGGER.debug("Streaming socket connected")
        if self._connection_callback:
            self._connection_callback(True)

    def send(self, messages: Sequence[CometdMessage]) -> None:
        """Frame and write messages to the socket.

        Raises:
            SqueezeboxTransportError: If the socket is not open.
        """
        if not self.connected:
            raise SqueezeboxTransportError(
                "Streaming socket is not connected", host=self.host, port=self.port
            )
        _LOGGER.debug("CometD send: %s", messages)
        self._writer.write(build_frame(messages))  # type: ignore[union-attr]

    def _process_chunk(self, chunk: bytes) -> None:
        """De-frame one chunk and hand its messages to the callback."""
        text = chunk.decode("utf-8", errors="replace")
        try:
            messages = parse_frame(text)
        except SqueezeboxProtocolError as err:
            _LOGGER.warning("%s: %s", err, err.payload[:100])
            return

        if messages is None:
            _LOGGER.debug("Ignoring unrecognised frame: %s", text[:100])
            return

        if self._message_callback and messages:
            self._message_callback(messages)

    async def async_run_receive_loop(self) -> None:
        """Read from the socket until it closes.

        Raises:
            SqueezeboxTransportError: On socket errors or when the hub closes
                the connection, unless ``async_close`` was called.
        """
        if self._reader is None:
            return

        try:
            while True:
                chunk = await self._reader.read(READ_BUFFER_SIZE)
                if not chunk:
                    break
                self._process_chunk(chunk)
        except OSError as err:
            if self._closing:
                return
            raise SqueezeboxTransportError(
                f"Streaming socket error: {err!r}", host=self.host, port=self.port
            ) from err

        if not self._closing:
            raise SqueezeboxTransportError(
                "Streaming socket closed by hub", host=self.host, port=self.port
            )

    async def async_close(self) -> None:
        """Close the socket. Safe to call when already closed."""
        self._closing = True
        writer = self._writer
        self._reader = self._writer = None
        if writer is None:
            return

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        _LOGGER.debug("Streaming socket closed")

        if self._connection_callback:
            self._connection_callback(False)


def describe_message(message: CometdMessage) -> dict[str, Any]:
    """Return a short summary of a message for debug logging."""
    return {
        "channel": message.get("channel"),
        "successful": message.get("successful"),
        "id": message.get("id"),
    }


__all__ = [
    "SqueezeboxCometdTransport",
    "build_connect_message",
    "build_frame",
    "build_handshake_message",
    "build_subscribe_message",
    "describe_message",
    "parse_frame",
]
