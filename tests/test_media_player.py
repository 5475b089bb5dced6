"""Tests for Squeezebox media player entities."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from homeassistant.components.media_player import (
    ATTR_MEDIA_ALBUM_NAME,
    ATTR_MEDIA_ARTIST,
    ATTR_MEDIA_DURATION,
    ATTR_MEDIA_POSITION,
    ATTR_MEDIA_SEEK_POSITION,
    ATTR_MEDIA_TITLE,
    ATTR_MEDIA_VOLUME_LEVEL,
    ATTR_MEDIA_VOLUME_MUTED,
    DOMAIN as MEDIA_PLAYER_DOMAIN,
    MediaPlayerEntityFeature,
)
from homeassistant.const import (
    ATTR_ENTITY_ID,
    ATTR_ENTITY_PICTURE,
    ATTR_SUPPORTED_FEATURES,
    SERVICE_MEDIA_NEXT_TRACK,
    SERVICE_MEDIA_PAUSE,
    SERVICE_MEDIA_PLAY,
    SERVICE_MEDIA_PREVIOUS_TRACK,
    SERVICE_MEDIA_SEEK,
    SERVICE_MEDIA_STOP,
    SERVICE_TURN_OFF,
    SERVICE_TURN_ON,
    SERVICE_VOLUME_DOWN,
    SERVICE_VOLUME_MUTE,
    SERVICE_VOLUME_SET,
    SERVICE_VOLUME_UP,
    STATE_PLAYING,
    STATE_UNAVAILABLE,
)
from homeassistant.core import HomeAssistant
from homeassistant.helpers import entity_registry as er
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.squeezebox_live.const import BASE_PLAYER_FEATURES, DOMAIN
from custom_components.squeezebox_live.media_player import features_to_flags

from .conftest import KITCHEN_ID, LOUNGE_ID


def _entity_id(hass: HomeAssistant, player_id: str) -> str:
    entity_id = er.async_get(hass).async_get_entity_id(MEDIA_PLAYER_DOMAIN, DOMAIN, player_id)
    assert entity_id is not None
    return entity_id


class TestFeatureFlags:
    """Test capability conversion."""

    def test_base_features(self) -> None:
        """Test metadata capabilities carry no flag and power is absent."""
        flags = features_to_flags(BASE_PLAYER_FEATURES)
        assert flags & MediaPlayerEntityFeature.PLAY
        assert flags & MediaPlayerEntityFeature.VOLUME_STEP
        assert not flags & MediaPlayerEntityFeature.TURN_ON

    def test_power_features(self) -> None:
        """Test power capabilities."""
        flags = features_to_flags(("TURN_ON", "TURN_OFF"))
        assert flags == MediaPlayerEntityFeature.TURN_ON | MediaPlayerEntityFeature.TURN_OFF


class TestMediaPlayerState:
    """Test entity state."""

    @pytest.mark.asyncio
    async def test_playing_player(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test a playing player exposes its track and volume."""
        state = hass.states.get(_entity_id(hass, KITCHEN_ID))
        assert state is not None
        assert state.state == STATE_PLAYING
        assert state.attributes[ATTR_MEDIA_TITLE] == "Second"
        assert state.attributes[ATTR_MEDIA_ARTIST] == "Band"
        assert state.attributes[ATTR_MEDIA_ALBUM_NAME] == "Record"
        assert state.attributes[ATTR_MEDIA_DURATION] == 240
        assert state.attributes[ATTR_MEDIA_POSITION] == 10
        assert state.attributes[ATTR_MEDIA_VOLUME_LEVEL] == 0.4
        assert state.attributes[ATTR_MEDIA_VOLUME_MUTED] is False
        assert ATTR_ENTITY_PICTURE in state.attributes

    @pytest.mark.asyncio
    async def test_power_feature_follows_hub(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test power control is only offered where the hub allows it."""
        kitchen = hass.states.get(_entity_id(hass, KITCHEN_ID))
        lounge = hass.states.get(_entity_id(hass, LOUNGE_ID))
        assert kitchen is not None
        assert lounge is not None
        assert kitchen.attributes[ATTR_SUPPORTED_FEATURES] & MediaPlayerEntityFeature.TURN_ON
        assert not lounge.attributes[ATTR_SUPPORTED_FEATURES] & MediaPlayerEntityFeature.TURN_ON

    @pytest.mark.asyncio
    async def test_pushed_update(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test a status push is reflected in the entity state."""
        coordinator = init_integration.runtime_data.coordinator
        coordinator.dispatch(
            {
                "channel": "/slim/abc123/status",
                "id": 1,
                "data": {"power": 0, "mixer_volume": -10},
            }
        )
        await hass.async_block_till_done()

        state = hass.states.get(_entity_id(hass, KITCHEN_ID))
        assert state is not None
        assert state.state == "off"

    @pytest.mark.asyncio
    async def test_fractional_position(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test the entity reports whole seconds while the registry keeps the fraction."""
        coordinator = init_integration.runtime_data.coordinator
        coordinator.dispatch(
            {
                "channel": "/slim/abc123/status",
                "id": 1,
                "data": {"power": 1, "mode": "play", "time": 12.5, "duration": 240},
            }
        )
        await hass.async_block_till_done()

        state = hass.states.get(_entity_id(hass, KITCHEN_ID))
        assert state is not None
        assert state.attributes[ATTR_MEDIA_POSITION] == 12
        assert coordinator.get_player(KITCHEN_ID).position == 12.5

    @pytest.mark.asyncio
    async def test_unavailable_when_disconnected(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
    ) -> None:
        """Test entities become unavailable when the session drops."""
        await init_integration.runtime_data.coordinator.async_disconnect()
        await hass.async_block_till_done()

        state = hass.states.get(_entity_id(hass, KITCHEN_ID))
        assert state is not None
        assert state.state == STATE_UNAVAILABLE


class TestMediaPlayerCommands:
    """Test entity commands reach the hub."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("service", "data", "expected"),
        [
            (SERVICE_MEDIA_PLAY, {}, "play"),
            (SERVICE_MEDIA_PAUSE, {}, "pause 1"),
            (SERVICE_MEDIA_STOP, {}, "stop"),
            (SERVICE_MEDIA_NEXT_TRACK, {}, "playlist jump +1"),
            (SERVICE_MEDIA_PREVIOUS_TRACK, {}, "playlist jump -1"),
            (SERVICE_TURN_ON, {}, "power 1"),
            (SERVICE_TURN_OFF, {}, "power 0"),
            (SERVICE_VOLUME_UP, {}, "button volume_up"),
            (SERVICE_VOLUME_DOWN, {}, "button volume_down"),
            (SERVICE_VOLUME_SET, {ATTR_MEDIA_VOLUME_LEVEL: 0.55}, "mixer volume 55"),
            (SERVICE_VOLUME_MUTE, {ATTR_MEDIA_VOLUME_MUTED: True}, "mixer muting 1"),
            (SERVICE_VOLUME_MUTE, {ATTR_MEDIA_VOLUME_MUTED: False}, "mixer muting 0"),
            (SERVICE_MEDIA_SEEK, {ATTR_MEDIA_SEEK_POSITION: 42}, "time 42"),
        ],
    )
    async def test_command(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_client: MagicMock,
        service: str,
        data: dict[str, object],
        expected: str,
    ) -> None:
        """Test each media player service sends the matching hub command."""
        await hass.services.async_call(
            MEDIA_PLAYER_DOMAIN,
            service,
            {ATTR_ENTITY_ID: _entity_id(hass, KITCHEN_ID), **data},
            blocking=True,
        )

        mock_client.async_send_command.assert_awaited_once_with(KITCHEN_ID, expected)
