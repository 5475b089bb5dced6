"""Diagnostics support for Squeezebox Live integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.diagnostics import async_redact_data

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .const import SqueezeboxConfigEntry

# Keys to redact from diagnostics output
TO_REDACT = {"client_id", "subscription_channel"}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant,
    entry: SqueezeboxConfigEntry,
) -> dict[str, Any]:
    """Return diagnostics for a config entry.

    Args:
        hass: Home Assistant instance.
        entry: Config entry to get diagnostics for.

    Returns:
        Dictionary containing diagnostic information.
    """
    coordinator = entry.runtime_data.coordinator

    players = [
        {
            "player_id": player.player_id,
            "name": coordinator.player_name(player.player_id),
            "connected": player.connected,
            "subscribed": player.subscribed,
            "state": str(player.state),
            "playing": player.playing,
            "position": player.position,
        }
        for player in coordinator.registry
    ]

    session = {
        "session_state": str(coordinator.session_state),
        "connection_state": str(coordinator.connection_state),
        "client_id": coordinator.client_id,
        "subscription_channel": coordinator.subscription_channel,
        "connection_tries": coordinator.connection_tries,
        "pending_subscriptions": len(coordinator.subscriptions.pending),
        "active_subscriptions": len(coordinator.subscriptions.active),
        "progress_clock_running": coordinator.progress_clock.running,
        "standby": coordinator.progress_clock.in_standby,
        "last_error": str(coordinator.last_error) if coordinator.last_error else None,
    }

    return {
        "config_entry": {
            "entry_id": entry.entry_id,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
        "session": async_redact_data(session, TO_REDACT),
        "players": players,
        "available_players": sorted(coordinator.available_players),
    }
