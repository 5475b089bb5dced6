"""Fixtures for Squeezebox Live integration tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.squeezebox_live.const import CONF_PLAYERS, DOMAIN
from custom_components.squeezebox_live.models import DiscoveredPlayer

# Auto-use fixture to enable custom component loading for all tests
pytest_plugins = "pytest_homeassistant_custom_component"

KITCHEN_ID = "00:04:20:00:00:01"
LOUNGE_ID = "00:04:20:00:00:02"
GARAGE_ID = "00:04:20:00:00:03"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(
    enable_custom_integrations: None,
) -> Generator[None]:
    """Enable custom integrations in Home Assistant."""
    yield


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Create a mock config entry managing two players."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="Squeezebox (lms.local)",
        data={
            CONF_HOST: "lms.local",
            CONF_PORT: 9000,
        },
        options={CONF_PLAYERS: [KITCHEN_ID, LOUNGE_ID]},
        unique_id="lms.local:9000",
        version=1,
    )


@pytest.fixture
def discovered_players() -> list[DiscoveredPlayer]:
    """Return players as reported by the hub."""
    return [
        DiscoveredPlayer(KITCHEN_ID, "Kitchen", "Squeezebox Radio", can_power_off=True),
        DiscoveredPlayer(LOUNGE_ID, "Lounge", "Squeezebox Touch", can_power_off=False),
        DiscoveredPlayer(GARAGE_ID, "Garage", "SqueezeLite", can_power_off=True),
    ]


@pytest.fixture
def playing_status() -> dict[str, Any]:
    """Return a status result for a playing player."""
    return {
        "power": 1,
        "mode": "play",
        "time": 10.0,
        "duration": 240,
        "mixer_volume": 40,
        "playlist_curr_index": "1",
        "playlist_loop": [
            {
                "playlist index": 0,
                "title": "First",
                "artist": "Band",
                "album": "Record",
                "coverart": "0",
            },
            {
                "playlist index": 1,
                "title": "Second",
                "artist": "Band",
                "album": "Record",
                "coverart": "1",
                "coverid": "abc123",
            },
        ],
    }


def make_mock_client(
    players: list[DiscoveredPlayer] | None = None,
    status: dict[str, Any] | None = None,
) -> MagicMock:
    """Create a mock SqueezeboxClient.

    Args:
        players: Players returned by discovery.
        status: Status returned for every player.
    """
    client = MagicMock()
    client.host = "lms.local"
    client.port = 9000
    client.base_url = "http://lms.local:9000"
    client.cover_art_url = MagicMock(
        side_effect=lambda cover_id: f"http://lms.local:9000/music/{cover_id}/cover.jpg"
    )
    client.async_get_players = AsyncMock(return_value=players or [])
    client.async_get_player_status = AsyncMock(return_value=status or {"power": 0})
    client.async_send_command = AsyncMock()
    client.close = AsyncMock()
    return client


def make_mock_transport() -> MagicMock:
    """Create a mock streaming transport that records sent messages.

    Opening the mock socket announces the connection like the real transport.
    """
    callbacks: dict[str, Any] = {}

    async def _connect() -> None:
        callbacks["connection"](True)

    transport = MagicMock()
    transport.connected = True
    transport.sent = []
    transport.send = MagicMock(side_effect=lambda messages: transport.sent.extend(messages))
    transport.set_connection_callback = MagicMock(
        side_effect=lambda callback: callbacks.__setitem__("connection", callback)
    )
    transport.set_message_callback = MagicMock(
        side_effect=lambda callback: callbacks.__setitem__("message", callback)
    )
    transport.async_connect = AsyncMock(side_effect=_connect)
    transport.async_close = AsyncMock()
    transport.async_run_receive_loop = AsyncMock()
    return transport


@pytest.fixture
def mock_client(
    discovered_players: list[DiscoveredPlayer],
    playing_status: dict[str, Any],
) -> MagicMock:
    """Mock client reporting all three players as playing."""
    return make_mock_client(discovered_players, playing_status)


@pytest.fixture
def mock_transport() -> MagicMock:
    """Mock streaming transport."""
    return make_mock_transport()


@pytest.fixture
def mock_config_flow_client(
    discovered_players: list[DiscoveredPlayer],
) -> Generator[MagicMock]:
    """Mock SqueezeboxClient in the config flow."""
    with patch(
        "custom_components.squeezebox_live.config_flow.SqueezeboxClient", autospec=True
    ) as mock_client_class:
        client = mock_client_class.return_value
        client.async_get_players = AsyncMock(return_value=discovered_players)
        client.close = AsyncMock()
        yield client


HANDSHAKE_ACK: dict[str, Any] = {
    "channel": "/meta/handshake",
    "successful": True,
    "clientId": '"abc123"',
}
CONNECT_ACK: dict[str, Any] = {"channel": "/meta/connect", "successful": True}


def subscribe_ack(correlation_id: int) -> dict[str, Any]:
    """Return the hub's ack for a subscribe request."""
    return {"channel": "/slim/subscribe", "successful": True, "id": correlation_id}


def complete_handshake(coordinator: Any, subscriptions: int = 2) -> None:
    """Feed the hub's handshake, connect and subscribe acks to a coordinator."""
    coordinator.dispatch(HANDSHAKE_ACK)
    coordinator.dispatch(CONNECT_ACK)
    for correlation_id in range(1, subscriptions + 1):
        coordinator.dispatch(subscribe_ack(correlation_id))


@pytest.fixture
def mock_setup_entry() -> Generator[AsyncMock]:
    """Prevent config entries created by flows from being set up."""
    with patch(
        "custom_components.squeezebox_live.async_setup_entry", return_value=True
    ) as setup_entry:
        yield setup_entry


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    mock_client: MagicMock,
    mock_transport: MagicMock,
) -> AsyncGenerator[MockConfigEntry]:
    """Set up the integration with a connected session."""
    mock_config_entry.add_to_hass(hass)

    with (
        patch(
            "custom_components.squeezebox_live.SqueezeboxClient",
            return_value=mock_client,
        ),
        patch(
            "custom_components.squeezebox_live.coordinator.SqueezeboxCometdTransport",
            return_value=mock_transport,
        ),
    ):
        assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
        await hass.async_block_till_done(wait_background_tasks=True)

        complete_handshake(mock_config_entry.runtime_data.coordinator)
        await hass.async_block_till_done()

        yield mock_config_entry

        await hass.config_entries.async_unload(mock_config_entry.entry_id)
        await hass.async_block_till_done()
