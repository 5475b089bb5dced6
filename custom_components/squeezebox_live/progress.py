"""Local playback position clock.

Between status pushes the hub says nothing about position, so the position
of every playing player is extrapolated locally. The next push overwrites
the estimate; no attempt is made to synchronise clocks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.util import dt as dt_util

from .const import ATTR_POSITION, PROGRESS_INTERVAL

if TYPE_CHECKING:
    from .models import PlayerRegistry
    from .status import EntitySink

_LOGGER = logging.getLogger(__name__)


class ProgressClock:
    """Shared periodic ticker advancing the position of playing players.

    Runs only while at least one player plays and standby is off.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        registry: PlayerRegistry,
        sink: EntitySink,
        interval: float = PROGRESS_INTERVAL,
    ) -> None:
        """Initialize the clock.

        Args:
            hass: Home Assistant instance.
            registry: Registry holding the positions.
            sink: Receives position updates.
            interval: Tick interval in seconds.
        """
        self._hass = hass
        self._registry = registry
        self._sink = sink
        self._interval = interval
        self._unsub: CALLBACK_TYPE | None = None
        self._in_standby = False

    @property
    def running(self) -> bool:
        """Return True while the ticker is scheduled."""
        return self._unsub is not None

    @property
    def in_standby(self) -> bool:
        """Return True while standby suspends the clock."""
        return self._in_standby

    @callback
    def start(self) -> None:
        """Start ticking unless already running or in standby."""
        if self._in_standby or self._unsub is not None:
            return
        _LOGGER.debug("Starting progress clock")
        self._unsub = async_track_time_interval(
            self._hass,
            self._async_tick,
            timedelta(seconds=self._interval),
            name="squeezebox_live progress clock",
        )

    @callback
    def stop(self) -> None:
        """Stop ticking."""
        if self._unsub is None:
            return
        _LOGGER.debug("Stopping progress clock")
        self._unsub()
        self._unsub = None

    @callback
    def enter_standby(self) -> None:
        """Suspend the clock regardless of playing players."""
        self._in_standby = True
        self.stop()

    @callback
    def leave_standby(self) -> None:
        """Allow the clock to run again.

        The clock restarts on the next status reporting a playing player.
        """
        self._in_standby = False

    @callback
    def tick(self) -> None:
        """Advance every playing player by one interval."""
        playing = self._registry.playing()
        if not playing:
            self.stop()
            return

        now = dt_util.utcnow()
        for player in playing:
            player.position += self._interval
            player.position_updated_at = now
            self._sink(player.player_id, {ATTR_POSITION: player.position})

    @callback
    def _async_tick(self, _now: datetime) -> None:
        self.tick()


__all__ = ["ProgressClock"]
