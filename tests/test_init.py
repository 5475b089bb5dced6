"""Tests for Squeezebox Live integration setup."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from homeassistant.config_entries import ConfigEntryState
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.core import HomeAssistant
from homeassistant.helpers import device_registry as dr
from homeassistant.setup import async_setup_component
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.squeezebox_live.const import (
    CONF_PLAYERS,
    DOMAIN,
    SERVICE_RECONNECT,
)
from custom_components.squeezebox_live.models import ConnectionState, SessionState

from .conftest import KITCHEN_ID, LOUNGE_ID


class TestSetupEntry:
    """Test config entry setup and unload."""

    @pytest.mark.asyncio
    async def test_setup_connects(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_client: MagicMock,
    ) -> None:
        """Test setup creates the coordinator and connects in the background."""
        assert init_integration.state is ConfigEntryState.LOADED

        coordinator = init_integration.runtime_data.coordinator
        assert coordinator.session_state is SessionState.CONNECTED
        assert coordinator.connection_state is ConnectionState.CONNECTED
        assert set(coordinator.data) == {KITCHEN_ID, LOUNGE_ID}
        mock_client.async_get_players.assert_awaited()

    @pytest.mark.asyncio
    async def test_hub_device_registered(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test the hub device is registered for the entry."""
        device = dr.async_get(hass).async_get_device(identifiers={(DOMAIN, "lms.local:9000")})
        assert device is not None
        assert device.name == "Squeezebox (lms.local)"

    @pytest.mark.asyncio
    async def test_services_registered(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test services are available while an entry is loaded."""
        assert hass.services.has_service(DOMAIN, SERVICE_RECONNECT)

    @pytest.mark.asyncio
    async def test_unload(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_transport: MagicMock,
    ) -> None:
        """Test unloading disconnects the session and removes services."""
        coordinator = init_integration.runtime_data.coordinator

        assert await hass.config_entries.async_unload(init_integration.entry_id)
        await hass.async_block_till_done()

        assert init_integration.state is ConfigEntryState.NOT_LOADED
        assert coordinator.connection_state is ConnectionState.DISCONNECTED
        assert coordinator.user_disconnect
        mock_transport.async_close.assert_awaited()
        assert not hass.services.has_service(DOMAIN, SERVICE_RECONNECT)


class TestYamlImport:
    """Test YAML configuration."""

    @pytest.mark.asyncio
    async def test_yaml_import(
        self,
        hass: HomeAssistant,
        mock_setup_entry: AsyncMock,
    ) -> None:
        """Test YAML configuration is imported into a config entry."""
        assert await async_setup_component(
            hass,
            DOMAIN,
            {DOMAIN: {CONF_HOST: "lms.local", CONF_PLAYERS: [KITCHEN_ID]}},
        )
        await hass.async_block_till_done()

        entries = hass.config_entries.async_entries(DOMAIN)
        assert len(entries) == 1
        assert entries[0].data == {CONF_HOST: "lms.local", CONF_PORT: 9000}
        assert entries[0].options == {CONF_PLAYERS: [KITCHEN_ID]}

    @pytest.mark.asyncio
    async def test_no_yaml(self, hass: HomeAssistant) -> None:
        """Test setup without YAML creates nothing."""
        assert await async_setup_component(hass, DOMAIN, {})
        assert hass.config_entries.async_entries(DOMAIN) == []
