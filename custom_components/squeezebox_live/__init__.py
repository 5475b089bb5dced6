"""The Squeezebox Live integration.

Keeps one streaming session per hub and pushes player state to media
player entities as the hub reports it.

YAML Configuration Example:
    squeezebox_live:
      host: lms.local
      port: 9000
      players:
        - "00:04:20:12:34:56"
        - "00:04:20:ab:cd:ef"
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

import voluptuous as vol
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.typing import ConfigType

from .api import SqueezeboxClient
from .const import (
    CONF_PLAYERS,
    DEFAULT_PORT,
    DOMAIN,
    PLATFORMS,
    SqueezeboxConfigEntry,
    SqueezeboxRuntimeData,
)
from .coordinator import SqueezeboxSessionCoordinator
from .services import async_setup_services, async_unload_services

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

# YAML Configuration Schema
CONFIG_SCHEMA: Final = vol.Schema(
    {
        DOMAIN: vol.Schema(
            {
                vol.Required(CONF_HOST): cv.string,
                vol.Optional(CONF_PORT, default=DEFAULT_PORT): cv.port,
                vol.Optional(CONF_PLAYERS, default=[]): vol.All(cv.ensure_list, [cv.string]),
            }
        )
    },
    extra=vol.ALLOW_EXTRA,
)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up Squeezebox Live from YAML configuration.

    YAML is imported into a config entry through the config flow.

    Args:
        hass: Home Assistant instance.
        config: Full configuration dictionary.

    Returns:
        True to indicate setup was successful.
    """
    if DOMAIN not in config:
        return True

    conf = config[DOMAIN]
    _LOGGER.info(
        "Importing Squeezebox configuration from YAML for host: %s",
        conf.get(CONF_HOST),
    )

    hass.async_create_task(
        hass.config_entries.flow.async_init(
            DOMAIN,
            context={"source": "import"},
            data=conf,
        )
    )

    return True


async def async_setup_entry(hass: HomeAssistant, entry: SqueezeboxConfigEntry) -> bool:
    """Set up Squeezebox Live from a config entry.

    The hub is not contacted here: the session connects in the background
    and retries on its own, so an unreachable hub does not block setup.

    Args:
        hass: Home Assistant instance.
        entry: Config entry to set up.

    Returns:
        True if setup was successful.
    """
    client = SqueezeboxClient(
        host=str(entry.data[CONF_HOST]),
        port=int(entry.data[CONF_PORT]),
        session=async_get_clientsession(hass),
    )

    player_ids = entry.options.get(CONF_PLAYERS, entry.data.get(CONF_PLAYERS, []))
    coordinator = SqueezeboxSessionCoordinator(
        hass=hass,
        client=client,
        config_entry=entry,
        player_ids=player_ids,
    )

    entry.runtime_data = SqueezeboxRuntimeData(coordinator=coordinator)

    # Register the hub device before platforms reference it via via_device
    device_registry = dr.async_get(hass)
    device_registry.async_get_or_create(
        config_entry_id=entry.entry_id,
        identifiers={(DOMAIN, coordinator.hub_id)},
        manufacturer="Logitech",
        model="Squeezebox Server",
        name=entry.title,
        configuration_url=client.base_url,
    )

    await async_setup_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_options_updated))
    entry.async_create_background_task(
        hass, coordinator.async_connect(), f"{DOMAIN} connect {client.host}"
    )

    _LOGGER.info(
        "Set up Squeezebox server %s:%s with %d player(s)",
        client.host,
        client.port,
        len(coordinator.registry),
    )

    return True


async def async_unload_entry(hass: HomeAssistant, entry: SqueezeboxConfigEntry) -> bool:
    """Unload a config entry.

    Args:
        hass: Home Assistant instance.
        entry: Config entry to unload.

    Returns:
        True if unload was successful.
    """
    unload_ok: bool = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        await entry.runtime_data.coordinator.async_disconnect()

        # Unload services if this is the last config entry
        loaded_entries = [
            e for e in hass.config_entries.async_entries(DOMAIN) if e.entry_id != entry.entry_id
        ]
        if not loaded_entries:
            await async_unload_services(hass)
        _LOGGER.info("Unloaded Squeezebox Live integration for entry %s", entry.entry_id)

    return unload_ok


async def async_options_updated(hass: HomeAssistant, entry: SqueezeboxConfigEntry) -> None:
    """Handle options update.

    Args:
        hass: Home Assistant instance.
        entry: Config entry with updated options.
    """
    _LOGGER.debug("Squeezebox options updated, reloading integration")
    await hass.config_entries.async_reload(entry.entry_id)
