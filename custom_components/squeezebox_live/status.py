"""Apply hub status payloads to the player registry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from homeassistant.util import dt as dt_util

from .const import (
    ATTR_ALBUM,
    ATTR_ARTIST,
    ATTR_DURATION,
    ATTR_IMAGE_URL,
    ATTR_MUTED,
    ATTR_POSITION,
    ATTR_STATE,
    ATTR_TITLE,
    ATTR_VOLUME,
)
from .exceptions import SqueezeboxProtocolError
from .models import PlayerRegistry, PlayerState, SqueezeboxPlayer, parse_flag

if TYPE_CHECKING:
    from .progress import ProgressClock

_LOGGER = logging.getLogger(__name__)

# Receives (player_id, changed attributes)
type EntitySink = Callable[[str, Mapping[str, Any]], None]


def _to_int(value: object, default: int = 0) -> int:
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _to_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def current_track(payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return the playlist entry for the current track.

    The entry whose ``playlist index`` matches the current index wins; without
    one, the current index is used as a position into ``playlist_loop``.

    Returns:
        The entry, or None when the index is missing or out of range.
    """
    playlist = payload.get("playlist_loop")
    if not isinstance(playlist, list) or not playlist:
        return None

    raw_index = payload.get("playlist_curr_index", payload.get("playlist_cur_index"))
    if raw_index is None:
        return None
    index = _to_int(raw_index, default=-1)

    for item in playlist:
        if isinstance(item, Mapping) and "playlist index" in item:
            if _to_int(item["playlist index"], default=-2) == index:
                return item

    if 0 <= index < len(playlist) and isinstance(playlist[index], Mapping):
        return playlist[index]  # type: ignore[no-any-return]
    return None


class StatusApplier:
    """Translate raw status payloads into normalized player attributes.

    Writes the result into the registry and forwards the changed attributes
    to the entity sink.
    """

    def __init__(
        self,
        registry: PlayerRegistry,
        cover_art_url: Callable[[str], str],
        progress_clock: ProgressClock,
        sink: EntitySink,
    ) -> None:
        """Initialize the applier.

        Args:
            registry: The player registry to update.
            cover_art_url: Builds an artwork URL from a cover id.
            progress_clock: Clock started when a player starts playing.
            sink: Receives (player_id, changes) after every update.
        """
        self._registry = registry
        self._cover_art_url = cover_art_url
        self._progress_clock = progress_clock
        self._sink = sink

    def apply(self, player_id: str, payload: object) -> dict[str, Any]:
        """Apply one status payload to a player.

        Args:
            player_id: The player the payload belongs to.
            payload: Status result from an RPC poll or a streaming push.

        Returns:
            The attributes that were forwarded to the sink (empty for
            unmanaged players).

        Raises:
            SqueezeboxProtocolError: If the payload is not an object.
        """
        if not isinstance(payload, Mapping):
            raise SqueezeboxProtocolError(
                f"Status for {player_id} is not an object", payload=repr(payload)
            )

        player = self._registry.get(player_id)
        if player is None:
            _LOGGER.debug("Ignoring status for unmanaged player %s", player_id)
            return {}

        changes: dict[str, Any] = {ATTR_STATE: self._apply_state(player, payload)}

        track = current_track(payload)
        if track is not None:
            changes[ATTR_ARTIST] = player.artist = str(track.get("artist", ""))
            changes[ATTR_TITLE] = player.title = str(track.get("title", ""))
            changes[ATTR_ALBUM] = player.album = str(track.get("album", ""))
            if parse_flag(track.get("coverart", False)) and track.get("coverid"):
                player.image_url = self._cover_art_url(str(track["coverid"]))
            else:
                player.image_url = None
            changes[ATTR_IMAGE_URL] = player.image_url or ""
        else:
            _LOGGER.debug("No current track for %s", player_id)

        # The hub reports a muted player as a negative volume
        volume = _to_int(payload.get("mixer_volume", 0))
        if volume < 0:
            changes[ATTR_MUTED] = player.muted = True
        else:
            changes[ATTR_MUTED] = player.muted = False
            changes[ATTR_VOLUME] = player.volume = volume

        changes[ATTR_DURATION] = player.duration = _to_int(payload.get("duration", 0))
        changes[ATTR_POSITION] = player.position = _to_float(payload.get("time", 0.0))
        player.position_updated_at = dt_util.utcnow()

        self._sink(player_id, changes)
        return changes

    def _apply_state(self, player: SqueezeboxPlayer, payload: Mapping[str, Any]) -> PlayerState:
        """Derive off/on/playing/idle and update the playing flag."""
        if not parse_flag(payload.get("power", False)):
            player.playing = False
            player.state = PlayerState.OFF
            return player.state

        mode = payload.get("mode")
        if mode == "play":
            player.playing = True
            player.state = PlayerState.PLAYING
            self._progress_clock.start()
        elif mode in ("pause", "stop"):
            player.playing = False
            player.state = PlayerState.IDLE
        else:
            player.state = PlayerState.ON
        return player.state


__all__ = ["EntitySink", "StatusApplier", "current_track"]
