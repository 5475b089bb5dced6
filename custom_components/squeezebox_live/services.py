"""Services for the Squeezebox Live integration."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import voluptuous as vol
from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .const import (
    DOMAIN,
    SERVICE_ENTER_STANDBY,
    SERVICE_LEAVE_STANDBY,
    SERVICE_RECONNECT,
)

if TYPE_CHECKING:
    from .coordinator import SqueezeboxSessionCoordinator

_LOGGER = logging.getLogger(__name__)

ATTR_CONFIG_ENTRY_ID = "config_entry_id"

# Every service targets one hub, or all loaded hubs when none is given
SESSION_SERVICE_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string,
    }
)

_SERVICES = (SERVICE_RECONNECT, SERVICE_ENTER_STANDBY, SERVICE_LEAVE_STANDBY)


def _get_coordinators(
    hass: HomeAssistant,
    call: ServiceCall,
) -> list[SqueezeboxSessionCoordinator]:
    """Get the coordinators a service call targets.

    Args:
        hass: Home Assistant instance.
        call: Service call data.

    Returns:
        Coordinators of the targeted, loaded config entries.

    Raises:
        ServiceValidationError: If the named entry is unknown or not loaded.
    """
    entry_id: str | None = call.data.get(ATTR_CONFIG_ENTRY_ID)
    if entry_id is not None:
        entry = hass.config_entries.async_get_entry(entry_id)
        if entry is None or entry.domain != DOMAIN:
            raise ServiceValidationError(f"Config entry {entry_id} not found")
        if entry.state is not ConfigEntryState.LOADED:
            raise ServiceValidationError(f"Config entry {entry_id} is not loaded")
        return [entry.runtime_data.coordinator]

    return [
        entry.runtime_data.coordinator
        for entry in hass.config_entries.async_loaded_entries(DOMAIN)
    ]


async def async_setup_services(hass: HomeAssistant) -> None:
    """Set up Squeezebox Live services.

    Args:
        hass: Home Assistant instance.
    """
    if hass.services.has_service(DOMAIN, SERVICE_RECONNECT):
        # Services already registered
        return

    async def async_reconnect(call: ServiceCall) -> None:
        """Restart the session with a fresh attempt counter."""
        coordinators = _get_coordinators(hass, call)
        await asyncio.gather(*(coordinator.async_reconnect() for coordinator in coordinators))

    async def async_enter_standby(call: ServiceCall) -> None:
        """Suspend local position tracking."""
        for coordinator in _get_coordinators(hass, call):
            coordinator.enter_standby()

    async def async_leave_standby(call: ServiceCall) -> None:
        """Resume position tracking and refresh playing players."""
        coordinators = _get_coordinators(hass, call)
        await asyncio.gather(
            *(coordinator.async_leave_standby() for coordinator in coordinators)
        )

    hass.services.async_register(
        DOMAIN, SERVICE_RECONNECT, async_reconnect, schema=SESSION_SERVICE_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_ENTER_STANDBY, async_enter_standby, schema=SESSION_SERVICE_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_LEAVE_STANDBY, async_leave_standby, schema=SESSION_SERVICE_SCHEMA
    )
    _LOGGER.debug("Squeezebox Live services registered")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unload Squeezebox Live services.

    Args:
        hass: Home Assistant instance.
    """
    if not hass.services.has_service(DOMAIN, SERVICE_RECONNECT):
        return

    for service in _SERVICES:
        hass.services.async_remove(DOMAIN, service)

    _LOGGER.debug("Squeezebox Live services unregistered")


__all__ = ["async_setup_services", "async_unload_services"]
