"""Tests for Squeezebox Live services."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ServiceValidationError
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.squeezebox_live.const import (
    DOMAIN,
    SERVICE_ENTER_STANDBY,
    SERVICE_LEAVE_STANDBY,
    SERVICE_RECONNECT,
)

from .conftest import KITCHEN_ID


class TestSessionServices:
    """Test the session services."""

    @pytest.mark.asyncio
    async def test_reconnect(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test reconnect restarts the targeted session."""
        coordinator = init_integration.runtime_data.coordinator

        with patch.object(coordinator, "async_reconnect", AsyncMock()) as reconnect:
            await hass.services.async_call(
                DOMAIN,
                SERVICE_RECONNECT,
                {"config_entry_id": init_integration.entry_id},
                blocking=True,
            )

        reconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_standby_round_trip(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_client: MagicMock,
    ) -> None:
        """Test standby stops the clock and leaving it refreshes playing players."""
        coordinator = init_integration.runtime_data.coordinator
        assert coordinator.progress_clock.running

        await hass.services.async_call(DOMAIN, SERVICE_ENTER_STANDBY, {}, blocking=True)
        assert coordinator.progress_clock.in_standby
        assert not coordinator.progress_clock.running

        mock_client.async_get_player_status.reset_mock()
        await hass.services.async_call(DOMAIN, SERVICE_LEAVE_STANDBY, {}, blocking=True)

        assert not coordinator.progress_clock.in_standby
        assert coordinator.progress_clock.running
        polled = {call.args[0] for call in mock_client.async_get_player_status.call_args_list}
        assert KITCHEN_ID in polled

    @pytest.mark.asyncio
    async def test_unknown_entry(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test targeting an unknown entry is rejected."""
        with pytest.raises(ServiceValidationError):
            await hass.services.async_call(
                DOMAIN,
                SERVICE_RECONNECT,
                {"config_entry_id": "missing"},
                blocking=True,
            )
