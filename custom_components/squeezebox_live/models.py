"""Data models for the Squeezebox Live integration."""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from .const import BASE_PLAYER_FEATURES, POWER_PLAYER_FEATURES

if TYPE_CHECKING:
    from .const import SqueezeboxPlayerInfo


class SessionState(StrEnum):
    """Internal protocol state of the streaming session.

    Advances strictly in declaration order up to CONNECTED. ERROR is entered
    from any in-flight state on a transport failure.
    """

    IDLE = "idle"
    PLAYER_INFO = "player_info"
    HANDSHAKE = "handshake"
    CONNECT = "connect"
    SUBSCRIBE = "subscribe"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionState(StrEnum):
    """Connection state visible outside the session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class PlayerState(StrEnum):
    """Normalized player state derived from power and mode."""

    OFF = "off"
    ON = "on"
    PLAYING = "playing"
    IDLE = "idle"


@dataclass(frozen=True, slots=True)
class DiscoveredPlayer:
    """A player reported by the hub during discovery.

    Attributes:
        player_id: Hub-assigned player identifier (MAC address).
        name: Display name configured on the hub.
        model: Player model name.
        can_power_off: Whether the player supports power on/off.
    """

    player_id: str
    name: str
    model: str = ""
    can_power_off: bool = False

    @property
    def features(self) -> tuple[str, ...]:
        """Return the capability list for this player."""
        if self.can_power_off:
            return BASE_PLAYER_FEATURES + POWER_PLAYER_FEATURES
        return BASE_PLAYER_FEATURES


@dataclass(slots=True)
class SqueezeboxPlayer:
    """Live state of one managed player.

    Only the session coordinator and the status applier mutate instances.

    Attributes:
        player_id: Hub-assigned player identifier.
        connected: The hub reported the player during the last discovery.
        subscribed: The hub acknowledged the status subscription.
        playing: The last status reported mode "play".
        position: Playback position in seconds, advanced locally between pushes.
    """

    player_id: str
    connected: bool = False
    subscribed: bool = False
    playing: bool = False
    position: float = 0.0
    position_updated_at: datetime | None = None
    state: PlayerState = PlayerState.OFF
    artist: str | None = None
    title: str | None = None
    album: str | None = None
    image_url: str | None = None
    muted: bool = False
    volume: int | None = None
    duration: int | None = None


class PlayerRegistry:
    """In-memory directory of managed players keyed by player id.

    Players are registered from configuration and never removed; discovery
    and subscription only flip their flags.
    """

    def __init__(self, player_ids: Iterable[str] = ()) -> None:
        """Initialize the registry.

        Args:
            player_ids: Identifiers of the players named in the configuration.
        """
        self._players: dict[str, SqueezeboxPlayer] = {
            player_id: SqueezeboxPlayer(player_id) for player_id in player_ids
        }

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __iter__(self) -> Iterator[SqueezeboxPlayer]:
        return iter(self._players.values())

    def __len__(self) -> int:
        return len(self._players)

    @property
    def players(self) -> dict[str, SqueezeboxPlayer]:
        """Return a snapshot mapping of player id to player."""
        return dict(self._players)

    def get(self, player_id: str) -> SqueezeboxPlayer | None:
        """Return the player with the given id, if it is managed."""
        return self._players.get(player_id)

    def mark_connected(self, player_id: str) -> bool:
        """Mark a managed player as reported by the hub.

        Returns:
            True if the player is managed, False if it is unknown.
        """
        player = self._players.get(player_id)
        if player is None:
            return False
        player.connected = True
        return True

    def mark_subscribed(self, player_id: str) -> bool:
        """Mark a connected player as subscribed.

        Returns:
            True if the flag was set; unknown or unconnected players are left alone.
        """
        player = self._players.get(player_id)
        if player is None or not player.connected:
            return False
        player.subscribed = True
        return True

    def reset(self) -> None:
        """Clear connection flags before a new connection attempt."""
        for player in self._players.values():
            player.connected = False
            player.subscribed = False

    def connected(self) -> list[SqueezeboxPlayer]:
        """Return all players the hub reported."""
        return [player for player in self._players.values() if player.connected]

    def pending_subscription(self) -> list[SqueezeboxPlayer]:
        """Return connected players still waiting for a subscription."""
        return [
            player
            for player in self._players.values()
            if player.connected and not player.subscribed
        ]

    def playing(self) -> list[SqueezeboxPlayer]:
        """Return players currently marked as playing."""
        return [player for player in self._players.values() if player.playing]

    @property
    def all_subscribed(self) -> bool:
        """Return True when every connected player is subscribed."""
        return all(player.subscribed for player in self._players.values() if player.connected)


@dataclass
class SubscriptionTracker:
    """Correlates subscribe request ids with the players that issued them.

    An id is pending until its ack arrives, then active for the status pushes
    that carry it. Ids are sequential, so they never collide within a session.
    Entries for acks that never arrive stay until ``clear`` on reconnect.
    """

    pending: dict[str, str] = field(default_factory=dict)
    active: dict[str, str] = field(default_factory=dict)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def add(self, player_id: str) -> int:
        """Register a new subscribe request and return its correlation id."""
        correlation_id = next(self._ids)
        self.pending[str(correlation_id)] = player_id
        return correlation_id

    def acknowledge(self, correlation_id: object) -> str | None:
        """Consume a pending id for an ack.

        Returns:
            The player id, or None when the id is unknown or already consumed.
        """
        key = str(correlation_id)
        player_id = self.pending.pop(key, None)
        if player_id is not None:
            self.active[key] = player_id
        return player_id

    def lookup(self, correlation_id: object) -> str | None:
        """Return the player for a status push carrying ``correlation_id``."""
        key = str(correlation_id)
        return self.active.get(key) or self.pending.get(key)

    def clear(self) -> None:
        """Forget all correlations and restart the id sequence."""
        self.pending.clear()
        self.active.clear()
        self._ids = itertools.count(1)


def parse_flag(value: object) -> bool:
    """Interpret the hub's 0/1, "0"/"1" and boolean flags."""
    if isinstance(value, str):
        return value.strip() not in ("", "0", "false", "False")
    return bool(value)


def parse_discovered_player(data: SqueezeboxPlayerInfo) -> DiscoveredPlayer:
    """Parse one players_loop entry.

    Args:
        data: Raw player entry from the players query.

    Returns:
        Parsed DiscoveredPlayer.

    Raises:
        KeyError: If the entry has no player id.
    """
    player_id = str(data["playerid"])
    return DiscoveredPlayer(
        player_id=player_id,
        name=str(data.get("name") or player_id),
        model=str(data.get("model", "")),
        can_power_off=parse_flag(data.get("canpoweroff", False)),
    )


__all__ = [
    "ConnectionState",
    "DiscoveredPlayer",
    "PlayerRegistry",
    "PlayerState",
    "SessionState",
    "SqueezeboxPlayer",
    "SubscriptionTracker",
    "parse_discovered_player",
    "parse_flag",
]
