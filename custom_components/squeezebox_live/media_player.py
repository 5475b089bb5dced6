"""Media player platform for Squeezebox Live integration."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from homeassistant.components.media_player import (
    MediaPlayerEntity,
    MediaPlayerEntityFeature,
    MediaPlayerState,
    MediaType,
)
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .api import PlayerCommand
from .const import BASE_PLAYER_FEATURES, ENTITY_TYPE_MEDIA_PLAYER
from .entity import SqueezeboxEntity
from .models import PlayerState

if TYPE_CHECKING:
    from .const import SqueezeboxConfigEntry
    from .coordinator import SqueezeboxSessionCoordinator

_LOGGER = logging.getLogger(__name__)

# Map player states to HA media player states
_STATE_MAP: dict[PlayerState, MediaPlayerState] = {
    PlayerState.OFF: MediaPlayerState.OFF,
    PlayerState.ON: MediaPlayerState.ON,
    PlayerState.PLAYING: MediaPlayerState.PLAYING,
    PlayerState.IDLE: MediaPlayerState.IDLE,
}

# Map player capabilities to HA features; media metadata capabilities have no flag
_FEATURE_MAP: dict[str, MediaPlayerEntityFeature] = {
    "MUTE": MediaPlayerEntityFeature.VOLUME_MUTE,
    "MUTE_SET": MediaPlayerEntityFeature.VOLUME_MUTE,
    "NEXT": MediaPlayerEntityFeature.NEXT_TRACK,
    "PAUSE": MediaPlayerEntityFeature.PAUSE,
    "PLAY": MediaPlayerEntityFeature.PLAY,
    "PREVIOUS": MediaPlayerEntityFeature.PREVIOUS_TRACK,
    "SEEK": MediaPlayerEntityFeature.SEEK,
    "STOP": MediaPlayerEntityFeature.STOP,
    "VOLUME_SET": MediaPlayerEntityFeature.VOLUME_SET,
    "VOLUME_UP": MediaPlayerEntityFeature.VOLUME_STEP,
    "VOLUME_DOWN": MediaPlayerEntityFeature.VOLUME_STEP,
    "TURN_ON": MediaPlayerEntityFeature.TURN_ON,
    "TURN_OFF": MediaPlayerEntityFeature.TURN_OFF,
}


def features_to_flags(features: tuple[str, ...]) -> MediaPlayerEntityFeature:
    """Convert a capability list to a feature bitmask."""
    flags = MediaPlayerEntityFeature(0)
    for feature in features:
        flags |= _FEATURE_MAP.get(feature, MediaPlayerEntityFeature(0))
    return flags


async def async_setup_entry(
    hass: HomeAssistant,
    entry: SqueezeboxConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Squeezebox media players from a config entry.

    One entity is created per managed player, whether or not the hub
    currently reports it.

    Args:
        hass: Home Assistant instance.
        entry: Config entry being set up.
        async_add_entities: Callback to add entities.
    """
    coordinator = entry.runtime_data.coordinator
    _LOGGER.debug("Setting up Squeezebox media players: %d", len(coordinator.registry))
    async_add_entities(
        SqueezeboxMediaPlayer(coordinator, player.player_id) for player in coordinator.registry
    )


class SqueezeboxMediaPlayer(SqueezeboxEntity, MediaPlayerEntity):
    """Representation of one Squeezebox player."""

    _attr_name = None  # Use device name
    _attr_media_content_type = MediaType.MUSIC

    def __init__(
        self,
        coordinator: SqueezeboxSessionCoordinator,
        player_id: str,
    ) -> None:
        """Initialize the media player.

        Args:
            coordinator: The session coordinator.
            player_id: The player this entity represents.
        """
        super().__init__(coordinator, player_id)

    @property
    def state(self) -> MediaPlayerState | None:
        """Return the state of the player."""
        player = self.player
        if player is None:
            return None
        return _STATE_MAP[player.state]

    @property
    def supported_features(self) -> MediaPlayerEntityFeature:
        """Return the supported features.

        Power control is only offered for players the hub reports as able
        to power off.
        """
        discovered = self.coordinator.available_players.get(self._player_id)
        if discovered is None:
            return features_to_flags(BASE_PLAYER_FEATURES)
        return features_to_flags(discovered.features)

    @property
    def media_title(self) -> str | None:
        """Return the title of current playing media."""
        player = self.player
        return player.title if player else None

    @property
    def media_artist(self) -> str | None:
        """Return the artist of current playing media."""
        player = self.player
        return player.artist if player else None

    @property
    def media_album_name(self) -> str | None:
        """Return the album of current playing media."""
        player = self.player
        return player.album if player else None

    @property
    def media_image_url(self) -> str | None:
        """Return the cover art URL of current playing media."""
        player = self.player
        return player.image_url if player else None

    @property
    def media_duration(self) -> int | None:
        """Return the duration of current playing media in seconds."""
        player = self.player
        return player.duration if player else None

    @property
    def media_position(self) -> int | None:
        """Return the current position in whole seconds.

        The registry keeps the fractional estimate; Home Assistant expects an int.
        """
        player = self.player
        if player is None or player.position_updated_at is None:
            return None
        return int(player.position)

    @property
    def media_position_updated_at(self) -> datetime | None:
        """Return when position was last updated."""
        player = self.player
        return player.position_updated_at if player else None

    @property
    def volume_level(self) -> float | None:
        """Return the volume level (0.0 to 1.0)."""
        player = self.player
        if player is None or player.volume is None:
            return None
        return player.volume / 100

    @property
    def is_volume_muted(self) -> bool | None:
        """Return True if volume is muted."""
        player = self.player
        return player.muted if player else None

    async def _async_command(self, command: PlayerCommand, value: float | None = None) -> None:
        await self.coordinator.async_send_command(
            ENTITY_TYPE_MEDIA_PLAYER, self._player_id, command, value
        )

    async def async_media_play(self) -> None:
        """Send play command."""
        await self._async_command(PlayerCommand.PLAY)

    async def async_media_pause(self) -> None:
        """Send pause command."""
        await self._async_command(PlayerCommand.PAUSE)

    async def async_media_stop(self) -> None:
        """Send stop command."""
        await self._async_command(PlayerCommand.STOP)

    async def async_media_next_track(self) -> None:
        """Send next track command."""
        await self._async_command(PlayerCommand.NEXT)

    async def async_media_previous_track(self) -> None:
        """Send previous track command."""
        await self._async_command(PlayerCommand.PREVIOUS)

    async def async_media_seek(self, position: float) -> None:
        """Seek to a position in seconds."""
        await self._async_command(PlayerCommand.SEEK, position)

    async def async_turn_on(self) -> None:
        """Power the player on."""
        await self._async_command(PlayerCommand.TURN_ON)

    async def async_turn_off(self) -> None:
        """Power the player off."""
        await self._async_command(PlayerCommand.TURN_OFF)

    async def async_mute_volume(self, mute: bool) -> None:
        """Mute or unmute the player."""
        await self._async_command(PlayerCommand.MUTE if mute else PlayerCommand.UNMUTE)

    async def async_volume_up(self) -> None:
        """Step the volume up."""
        await self._async_command(PlayerCommand.VOLUME_UP)

    async def async_volume_down(self) -> None:
        """Step the volume down."""
        await self._async_command(PlayerCommand.VOLUME_DOWN)

    async def async_set_volume_level(self, volume: float) -> None:
        """Set volume level (0.0 to 1.0)."""
        # The hub takes 0-100
        await self._async_command(PlayerCommand.VOLUME_SET, round(volume * 100))


__all__ = ["SqueezeboxMediaPlayer", "features_to_flags"]
