"""Base entity for Squeezebox Live integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .models import ConnectionState

if TYPE_CHECKING:
    from .coordinator import SqueezeboxSessionCoordinator
    from .models import SqueezeboxPlayer


class SqueezeboxEntity(CoordinatorEntity["SqueezeboxSessionCoordinator"]):  # type: ignore[misc]
    """Base class for Squeezebox entities.

    Each entity represents one managed player; its device hangs off the
    hub device registered for the config entry.

    Attributes:
        _player_id: The hub's player identifier (MAC address).
    """

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: SqueezeboxSessionCoordinator,
        player_id: str,
    ) -> None:
        """Initialize the entity.

        Args:
            coordinator: The session coordinator.
            player_id: The player this entity represents.
        """
        super().__init__(coordinator)
        self._player_id = player_id
        self._attr_unique_id = player_id

    @property
    def player(self) -> SqueezeboxPlayer | None:
        """Return the live player state."""
        return self.coordinator.get_player(self._player_id)

    @property
    def available(self) -> bool:
        """Return True if the session is connected and the hub reports the player."""
        player = self.player
        return (
            self.coordinator.connection_state is ConnectionState.CONNECTED
            and player is not None
            and player.connected
        )

    @property
    def device_info(self) -> DeviceInfo:
        """Return device information."""
        discovered = self.coordinator.available_players.get(self._player_id)
        return DeviceInfo(
            identifiers={(DOMAIN, self._player_id)},
            name=self.coordinator.player_name(self._player_id),
            manufacturer="Logitech",
            model=discovered.model if discovered and discovered.model else None,
            via_device=(DOMAIN, self.coordinator.hub_id),
        )


__all__ = ["SqueezeboxEntity"]
