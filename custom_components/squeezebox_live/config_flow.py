"""Config flow for Squeezebox Live integration."""

from __future__ import annotations

import logging

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_HOST, CONF_PORT
from homeassistant.core import callback
from homeassistant.data_entry_flow import AbortFlow
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import SqueezeboxClient
from .const import (
    CONF_PLAYERS,
    DEFAULT_PORT,
    DOMAIN,
    SqueezeboxConfigFlowUserInput,
    normalize_host,
)
from .exceptions import (
    SqueezeboxNetworkError,
    SqueezeboxProtocolError,
    SqueezeboxTimeoutError,
)
from .models import DiscoveredPlayer

_LOGGER = logging.getLogger(__name__)


def _build_user_schema(
    defaults: SqueezeboxConfigFlowUserInput | None = None,
) -> vol.Schema:
    """Build the connection schema with optional defaults.

    Args:
        defaults: Optional default values from previous input.

    Returns:
        Voluptuous schema for user step.
    """
    return vol.Schema(
        {
            vol.Required(
                CONF_HOST,
                default=defaults.get("host", "") if defaults else "",
            ): str,
            vol.Required(
                CONF_PORT,
                default=defaults.get("port", DEFAULT_PORT) if defaults else DEFAULT_PORT,
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=65535)),
        }
    )


def _build_players_schema(
    players: dict[str, str],
    selected: list[str],
) -> vol.Schema:
    """Build the player selection schema.

    Args:
        players: Player id to display label for every selectable player.
        selected: Player ids preselected in the form.
    """
    return vol.Schema(
        {
            vol.Optional(
                CONF_PLAYERS,
                default=[player_id for player_id in selected if player_id in players],
            ): cv.multi_select(players),
        }
    )


def _player_labels(players: list[DiscoveredPlayer], extra: list[str] | None = None) -> dict[str, str]:
    """Return selectable players keyed by id, labelled with name and id."""
    labels = {player.player_id: f"{player.name} ({player.player_id})" for player in players}
    for player_id in extra or []:
        labels.setdefault(player_id, player_id)
    return labels


class SqueezeboxConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Squeezebox Live."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._user_input: SqueezeboxConfigFlowUserInput | None = None
        self._players: list[DiscoveredPlayer] = []

    async def async_step_user(
        self,
        user_input: dict[str, object] | None = None,
    ) -> ConfigFlowResult:
        """Handle the connection step.

        Args:
            user_input: User-provided configuration data.

        Returns:
            Config flow result (form or next step).
        """
        errors: dict[str, str] = {}

        if user_input is not None:
            port_val = user_input.get(CONF_PORT, DEFAULT_PORT)
            typed_input: SqueezeboxConfigFlowUserInput = {
                "host": normalize_host(str(user_input.get(CONF_HOST, ""))),
                "port": int(port_val) if isinstance(port_val, int | str) else DEFAULT_PORT,
            }

            if not typed_input["host"]:
                errors[CONF_HOST] = "invalid_host"
            else:
                errors = await self._async_validate_connection(typed_input)

            if not errors:
                self._user_input = typed_input
                return await self.async_step_players()

            return self.async_show_form(
                step_id="user",
                data_schema=_build_user_schema(typed_input),
                errors=errors,
            )

        return self.async_show_form(
            step_id="user",
            data_schema=_build_user_schema(),
            errors=errors,
        )

    async def async_step_players(
        self,
        user_input: dict[str, list[str]] | None = None,
    ) -> ConfigFlowResult:
        """Handle the player selection step.

        Args:
            user_input: Selected player ids.

        Returns:
            Config flow result (form or entry creation).
        """
        if self._user_input is None:
            return self.async_abort(reason="unknown")

        if user_input is not None:
            return self._async_create_entry(
                self._user_input, list(user_input.get(CONF_PLAYERS, []))
            )

        labels = _player_labels(self._players)
        return self.async_show_form(
            step_id="players",
            data_schema=_build_players_schema(labels, list(labels)),
            description_placeholders={"count": str(len(labels))},
        )

    async def async_step_import(
        self,
        import_data: dict[str, object],
    ) -> ConfigFlowResult:
        """Handle import from YAML configuration.

        Players named in YAML are managed as given; the hub does not need to
        be reachable for the entry to be created.

        Args:
            import_data: Configuration data from YAML.

        Returns:
            Config flow result (create_entry or abort).
        """
        host = normalize_host(str(import_data.get(CONF_HOST, "")))
        port_value = import_data.get(CONF_PORT, DEFAULT_PORT)
        port = int(port_value) if isinstance(port_value, int | str) else DEFAULT_PORT

        raw_players = import_data.get(CONF_PLAYERS, [])
        players = [str(player) for player in raw_players] if isinstance(raw_players, list) else []

        await self.async_set_unique_id(f"{host}:{port}")
        self._abort_if_unique_id_configured()

        _LOGGER.info("Imported Squeezebox configuration from YAML for %s:%s", host, port)
        return self._async_create_entry({"host": host, "port": port}, players)

    async def _async_validate_connection(
        self,
        user_input: SqueezeboxConfigFlowUserInput,
    ) -> dict[str, str]:
        """Validate the hub by enumerating its players.

        Args:
            user_input: User-provided configuration data.

        Returns:
            Dictionary of errors (empty if successful).
        """
        errors: dict[str, str] = {}

        client = SqueezeboxClient(
            host=user_input["host"],
            port=user_input["port"],
            session=async_get_clientsession(self.hass),
        )

        try:
            await self.async_set_unique_id(f"{user_input['host']}:{user_input['port']}")
            self._abort_if_unique_id_configured()
            self._players = await client.async_get_players()
        except SqueezeboxTimeoutError:
            errors["base"] = "timeout"
        except SqueezeboxNetworkError:
            errors["base"] = "cannot_connect"
        except SqueezeboxProtocolError:
            errors["base"] = "invalid_response"
        except AbortFlow:
            # Re-raise AbortFlow exceptions (e.g., already_configured)
            raise
        except Exception:
            _LOGGER.exception("Unexpected error during Squeezebox config flow")
            errors["base"] = "unknown"

        return errors

    @callback
    def _async_create_entry(
        self,
        user_input: SqueezeboxConfigFlowUserInput,
        players: list[str],
    ) -> ConfigFlowResult:
        """Create the config entry; managed players live in options."""
        return self.async_create_entry(
            title=f"Squeezebox ({user_input['host']})",
            data={CONF_HOST: user_input["host"], CONF_PORT: user_input["port"]},
            options={CONF_PLAYERS: players},
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry[object],
    ) -> SqueezeboxOptionsFlowHandler:
        """Create the options flow.

        Args:
            config_entry: The config entry to configure.

        Returns:
            Options flow handler instance.
        """
        return SqueezeboxOptionsFlowHandler()


class SqueezeboxOptionsFlowHandler(OptionsFlow):
    """Handle Squeezebox Live options: the set of managed players."""

    async def async_step_init(
        self,
        user_input: dict[str, list[str]] | None = None,
    ) -> ConfigFlowResult:
        """Manage the options.

        Offers every player the hub reports, plus managed players it does
        not currently report.

        Args:
            user_input: Selected player ids.

        Returns:
            Config flow result.
        """
        if user_input is not None:
            return self.async_create_entry(
                title="", data={CONF_PLAYERS: list(user_input.get(CONF_PLAYERS, []))}
            )

        managed = list(
            self.config_entry.options.get(
                CONF_PLAYERS, self.config_entry.data.get(CONF_PLAYERS, [])
            )
        )

        client = SqueezeboxClient(
            host=str(self.config_entry.data[CONF_HOST]),
            port=int(self.config_entry.data[CONF_PORT]),
            session=async_get_clientsession(self.hass),
        )
        errors: dict[str, str] = {}
        try:
            discovered = await client.async_get_players()
        except (SqueezeboxNetworkError, SqueezeboxProtocolError) as err:
            _LOGGER.warning("Cannot list players for options: %s", err)
            discovered = []
            errors["base"] = "cannot_connect"

        return self.async_show_form(
            step_id="init",
            data_schema=_build_players_schema(_player_labels(discovered, managed), managed),
            errors=errors,
        )


__all__ = ["SqueezeboxConfigFlow", "SqueezeboxOptionsFlowHandler"]
