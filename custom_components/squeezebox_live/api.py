"""Squeezebox hub JSON-RPC client."""

from __future__ import annotations

import itertools
import json
import logging
from enum import StrEnum
from typing import Any, Self, cast

import aiohttp

from .const import (
    DEFAULT_TIMEOUT,
    PLAYER_STATUS_COMMAND,
    PLAYERS_COMMAND,
    RPC_ENDPOINT,
    RPC_METHOD,
    RPC_NO_PLAYER,
    SqueezeboxPlayersResult,
    SqueezeboxRpcRequest,
    SqueezeboxStatusResult,
)
from .exceptions import (
    SqueezeboxNetworkError,
    SqueezeboxProtocolError,
    SqueezeboxTimeoutError,
)
from .models import DiscoveredPlayer, parse_discovered_player

_LOGGER = logging.getLogger(__name__)


class PlayerCommand(StrEnum):
    """Commands accepted from entities and services."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"
    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    MUTE = "mute"
    UNMUTE = "unmute"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    VOLUME_SET = "volume_set"
    SEEK = "seek"


# Hub command strings for commands that take no value
_COMMAND_STRINGS: dict[PlayerCommand, str] = {
    PlayerCommand.PLAY: "play",
    PlayerCommand.PAUSE: "pause 1",
    PlayerCommand.STOP: "stop",
    PlayerCommand.NEXT: "playlist jump +1",
    PlayerCommand.PREVIOUS: "playlist jump -1",
    PlayerCommand.TURN_ON: "power 1",
    PlayerCommand.TURN_OFF: "power 0",
    PlayerCommand.MUTE: "mixer muting 1",
    PlayerCommand.UNMUTE: "mixer muting 0",
    PlayerCommand.VOLUME_UP: "button volume_up",
    PlayerCommand.VOLUME_DOWN: "button volume_down",
}


def build_player_command(command: PlayerCommand | str, value: float | None = None) -> str:
    """Translate a player command into the hub's command string.

    Args:
        command: The command to send.
        value: Volume (0-100) for VOLUME_SET, position in seconds for SEEK.

    Returns:
        Space separated hub command.

    Raises:
        ValueError: If the command is unknown or a required value is missing.
    """
    command = PlayerCommand(command)
    if command is PlayerCommand.VOLUME_SET:
        if value is None:
            raise ValueError("volume_set requires a value")
        return f"mixer volume {int(value)}"
    if command is PlayerCommand.SEEK:
        if value is None:
            raise ValueError("seek requires a position")
        return f"time {value:g}"
    return _COMMAND_STRINGS[command]


def build_rpc_payload(request_id: int, player_id: str, command: str) -> SqueezeboxRpcRequest:
    """Build a slim.request body.

    Args:
        request_id: JSON-RPC request id.
        player_id: Target player id, or "-" for hub-level queries.
        command: Space separated command; split into tokens.

    Returns:
        The request body.
    """
    return {
        "method": RPC_METHOD,
        "id": request_id,
        "params": [player_id, command.split()],
    }


class SqueezeboxClient:
    """Async client for the hub's JSON-RPC endpoint.

    Every call is a single POST to ``/jsonrpc.js``. The client keeps no state
    beyond the endpoint and a request id counter, and never retries: retry
    policy belongs to the session coordinator.

    Example:
        ```python
        async with SqueezeboxClient(host="lms.local", port=9000) as client:
            players = await client.async_get_players()
        ```
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: int = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Hub hostname or IP address.
            port: Hub port, shared by JSON-RPC and the streaming socket.
            timeout: Request timeout in seconds.
            session: Optional aiohttp session to reuse. If not provided,
                     a new session will be created.
        """
        self._host = host
        self._port = port
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager."""
        await self.close()

    @property
    def host(self) -> str:
        """Return the hub hostname."""
        return self._host

    @property
    def port(self) -> int:
        """Return the hub port."""
        return self._port

    @property
    def base_url(self) -> str:
        """Return the base URL of the hub's web server."""
        return f"http://{self._host}:{self._port}"

    @property
    def rpc_url(self) -> str:
        """Return the JSON-RPC endpoint URL."""
        return f"{self.base_url}{RPC_ENDPOINT}"

    def cover_art_url(self, cover_id: str) -> str:
        """Return the artwork URL for a track's cover id."""
        return f"{self.base_url}/music/{cover_id}/cover.jpg"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _request(self, player_id: str, command: str) -> dict[str, Any]:
        """Issue one slim.request call.

        Args:
            player_id: Target player id or "-".
            command: Space separated hub command.

        Returns:
            The ``result`` member of the response (empty when absent).

        Raises:
            SqueezeboxNetworkError: The request failed at the HTTP level.
            SqueezeboxTimeoutError: The request timed out.
            SqueezeboxProtocolError: The response is not valid JSON-RPC.
        """
        payload = build_rpc_payload(next(self._request_ids), player_id, command)
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        _LOGGER.debug("Hub request for %s: %s", player_id, command)

        session = await self._get_session()

        try:
            async with session.post(
                self.rpc_url,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            ) as response:
                if response.status >= 400:
                    raise SqueezeboxNetworkError(
                        f"Hub returned {response.status} {response.reason} for {command!r}",
                        host=self._host,
                        port=self._port,
                    )
                text = await response.text()

        except TimeoutError as err:
            _LOGGER.error("Hub request timed out: %s %s", player_id, command)
            raise SqueezeboxTimeoutError(
                f"Request timed out after {self._timeout.total}s",
                host=self._host,
                port=self._port,
            ) from err

        except aiohttp.ClientError as err:
            _LOGGER.error("Hub request failed for %s %s: %s", player_id, command, err)
            raise SqueezeboxNetworkError(
                f"Failed to reach {self._host}:{self._port}: {err}",
                host=self._host,
                port=self._port,
            ) from err

        try:
            body = json.loads(text)
        except ValueError as err:
            raise SqueezeboxProtocolError(
                f"Hub returned invalid JSON for {command!r}: {err}", payload=text
            ) from err

        if not isinstance(body, dict):
            raise SqueezeboxProtocolError(
                f"Hub returned a non-object response for {command!r}", payload=text
            )
        if body.get("error"):
            raise SqueezeboxProtocolError(
                f"Hub rejected {command!r}: {body['error']}", payload=text
            )

        result = body.get("result") or {}
        if not isinstance(result, dict):
            raise SqueezeboxProtocolError(
                f"Hub returned a malformed result for {command!r}", payload=text
            )
        return result

    async def async_get_players(self) -> list[DiscoveredPlayer]:
        """Enumerate the players known to the hub.

        Returns:
            Players reported by the hub, in hub order.

        Raises:
            SqueezeboxNetworkError: The request failed.
            SqueezeboxProtocolError: The response could not be parsed.
        """
        result = cast(
            SqueezeboxPlayersResult, await self._request(RPC_NO_PLAYER, PLAYERS_COMMAND)
        )

        players_loop = result.get("players_loop", [])
        if not isinstance(players_loop, list):
            raise SqueezeboxProtocolError(
                "players_loop is not a list", payload=repr(players_loop)
            )

        players: list[DiscoveredPlayer] = []
        for entry in players_loop:
            try:
                players.append(parse_discovered_player(entry))
            except (KeyError, TypeError) as err:
                _LOGGER.warning("Skipping malformed player entry: %s (%s)", entry, err)

        _LOGGER.debug("Hub reported %s player(s)", result.get("count", len(players)))
        return players

    async def async_get_player_status(self, player_id: str) -> SqueezeboxStatusResult:
        """Query the current status of a player.

        Args:
            player_id: The player to query.

        Returns:
            Status result, same shape as a streaming status push.
        """
        return cast(
            SqueezeboxStatusResult, await self._request(player_id, PLAYER_STATUS_COMMAND)
        )

    async def async_send_command(self, player_id: str, command: str) -> None:
        """Send a command to a player.

        The response is only inspected for errors.

        Args:
            player_id: The target player.
            command: Space separated hub command.
        """
        await self._request(player_id, command)
        _LOGGER.debug("Sent %r to %s", command, player_id)

    async def close(self) -> None:
        """Close the client session if we own it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None


__all__ = [
    "PlayerCommand",
    "SqueezeboxClient",
    "build_player_command",
    "build_rpc_payload",
]
