"""Constants for the Squeezebox Live integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, NotRequired, TypedDict

from homeassistant.const import Platform

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .coordinator import SqueezeboxSessionCoordinator

# Integration domain
DOMAIN: Final = "squeezebox_live"

PLATFORMS: Final[list[Platform]] = [Platform.MEDIA_PLAYER]


class SqueezeboxRuntimeData:
    """Runtime data for a Squeezebox Live config entry."""

    def __init__(self, coordinator: SqueezeboxSessionCoordinator) -> None:
        """Initialize runtime data.

        Args:
            coordinator: The session coordinator owning the hub connection.
        """
        self.coordinator = coordinator


# Type alias for config entry with runtime data
type SqueezeboxConfigEntry = ConfigEntry[SqueezeboxRuntimeData]

# Configuration keys (use HA constants for host/port)
CONF_PLAYERS: Final = "players"

# Default values
DEFAULT_PORT: Final = 9000
DEFAULT_TIMEOUT: Final = 10  # seconds, RPC requests
DEFAULT_SOCKET_TIMEOUT: Final = 10  # seconds, opening the streaming socket

# Session timing
CONNECTION_TIMEOUT: Final = 3.0  # seconds until a connect attempt counts as failed
MAX_CONNECTION_TRIES: Final = 3
PROGRESS_INTERVAL: Final = 0.5  # seconds between local position ticks
SUBSCRIBE_INTERVAL: Final = 60  # seconds, hub-side status subscription interval
READ_BUFFER_SIZE: Final = 65536

# JSON-RPC
RPC_ENDPOINT: Final = "/jsonrpc.js"
RPC_METHOD: Final = "slim.request"
RPC_NO_PLAYER: Final = "-"
PLAYERS_COMMAND: Final = "players 0 99"
PLAYER_STATUS_COMMAND: Final = "status - 1 tags:aBcdgjKlNotuxyY power"

# CometD
COMETD_PATH: Final = "/cometd"
COMETD_VERSION: Final = "1.0"
COMETD_CONNECTION_TYPES: Final[list[str]] = ["long-polling", "streaming"]
COMETD_CONNECTION_TYPE: Final = "streaming"
CHANNEL_HANDSHAKE: Final = "/meta/handshake"
CHANNEL_CONNECT: Final = "/meta/connect"
CHANNEL_SUBSCRIBE: Final = "/slim/subscribe"
SUBSCRIPTION_CHANNEL_TEMPLATE: Final = "/slim/{client_id}/status"
SUBSCRIBE_PRIORITY: Final = 1

# Entity type accepted for commands
ENTITY_TYPE_MEDIA_PLAYER: Final = "media_player"

# Normalized attributes forwarded to the entity sink
ATTR_STATE: Final = "state"
ATTR_ARTIST: Final = "artist"
ATTR_TITLE: Final = "title"
ATTR_ALBUM: Final = "album"
ATTR_IMAGE_URL: Final = "image_url"
ATTR_MUTED: Final = "muted"
ATTR_VOLUME: Final = "volume"
ATTR_DURATION: Final = "duration"
ATTR_POSITION: Final = "position"

# Services
SERVICE_RECONNECT: Final = "reconnect"
SERVICE_ENTER_STANDBY: Final = "enter_standby"
SERVICE_LEAVE_STANDBY: Final = "leave_standby"

# Player features offered to every player, power control only when supported
BASE_PLAYER_FEATURES: Final[tuple[str, ...]] = (
    "MEDIA_ALBUM",
    "MEDIA_ARTIST",
    "MEDIA_DURATION",
    "MEDIA_POSITION",
    "MEDIA_IMAGE",
    "MEDIA_TITLE",
    "MUTE",
    "MUTE_SET",
    "NEXT",
    "PAUSE",
    "PLAY",
    "PREVIOUS",
    "SEEK",
    "STOP",
    "VOLUME",
    "VOLUME_SET",
    "VOLUME_UP",
    "VOLUME_DOWN",
)
POWER_PLAYER_FEATURES: Final[tuple[str, ...]] = ("TURN_OFF", "TURN_ON")


# =============================================================================
# TypedDicts for hub payloads
# =============================================================================


class SqueezeboxRpcRequest(TypedDict):
    """JSON-RPC request body for /jsonrpc.js."""

    method: str
    id: int
    params: list[object]


class SqueezeboxPlayerInfo(TypedDict, total=False):
    """One entry of players_loop in the players query result."""

    playerid: str
    name: str
    model: str
    canpoweroff: int | bool
    connected: int | bool
    isplayer: int | bool


class SqueezeboxPlayersResult(TypedDict, total=False):
    """Result of the players query."""

    count: int
    players_loop: list[SqueezeboxPlayerInfo]


class SqueezeboxPlaylistItem(TypedDict, total=False):
    """One entry of playlist_loop in a status result."""

    id: int
    title: str
    artist: str
    album: str
    coverart: str | int
    coverid: str
    duration: float


class SqueezeboxStatusResult(TypedDict, total=False):
    """Status result, identical for RPC polls and streaming pushes."""

    power: int | bool
    mode: str
    time: float
    duration: float
    mixer_volume: int | str
    playlist_curr_index: int | str
    playlist_cur_index: int | str
    playlist_loop: list[SqueezeboxPlaylistItem]


class CometdMessage(TypedDict, total=False):
    """A single CometD message object."""

    channel: str
    clientId: str
    successful: bool
    id: int | str
    data: object
    error: str
    supportedConnectionTypes: list[str]
    version: str
    connectionType: str


class SqueezeboxConfigFlowUserInput(TypedDict):
    """User input for the connection step of the config flow."""

    host: str
    port: int
    players: NotRequired[list[str]]


def normalize_host(host: str) -> str:
    """Normalize a host entered by the user.

    Strips whitespace, a scheme prefix and a trailing slash.

    Args:
        host: Raw host input.

    Returns:
        Bare hostname or IP address.
    """
    host = host.strip()
    for prefix in ("http://", "https://"):
        if host.lower().startswith(prefix):
            host = host[len(prefix) :]
    return host.rstrip("/")
