"""Session coordinator for the Squeezebox Live integration.

Owns the connection to one hub and drives the streaming session:

    idle -> player_info -> handshake -> connect -> subscribe -> connected

Discovery runs over JSON-RPC, the remaining steps over the CometD socket.
Incoming CometD messages are dispatched through a single table keyed by
``(session state, channel, successful)``; anything not in the table is
either a status push on the subscription channel or ignored.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from homeassistant.components import persistent_notification
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_call_later
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .api import PlayerCommand, SqueezeboxClient, build_player_command
from .cometd import (
    SqueezeboxCometdTransport,
    build_connect_message,
    build_handshake_message,
    build_subscribe_message,
    describe_message,
)
from .const import (
    CHANNEL_CONNECT,
    CHANNEL_HANDSHAKE,
    CHANNEL_SUBSCRIBE,
    CONNECTION_TIMEOUT,
    DOMAIN,
    ENTITY_TYPE_MEDIA_PLAYER,
    MAX_CONNECTION_TRIES,
    SERVICE_RECONNECT,
    SUBSCRIPTION_CHANNEL_TEMPLATE,
    CometdMessage,
    SqueezeboxConfigEntry,
)
from .exceptions import (
    SqueezeboxConnectionTimeout,
    SqueezeboxError,
    SqueezeboxProtocolError,
    SqueezeboxTransportError,
    SqueezeboxUnsupportedEntityError,
)
from .models import (
    ConnectionState,
    DiscoveredPlayer,
    PlayerRegistry,
    SessionState,
    SqueezeboxPlayer,
    SubscriptionTracker,
)
from .progress import ProgressClock
from .status import StatusApplier

_LOGGER = logging.getLogger(__name__)

type _MessageHandler = Callable[[CometdMessage], None]


class SqueezeboxSessionCoordinator(DataUpdateCoordinator[dict[str, SqueezeboxPlayer]]):
    """Coordinator owning the streaming session with one hub.

    Data is pushed, never polled: ``data`` maps player id to the live
    SqueezeboxPlayer objects of the registry and listeners are notified
    whenever a player changes or the connection state moves.

    Attributes:
        client: The JSON-RPC client.
        registry: Players named in the configuration.
        subscriptions: Correlation ids of subscribe requests.
        available_players: Every player the hub reported, managed or not.
        last_error: The most recent failure, cleared once connected.
    """

    client: SqueezeboxClient
    config_entry: SqueezeboxConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        client: SqueezeboxClient,
        config_entry: SqueezeboxConfigEntry,
        player_ids: Iterable[str],
        transport: SqueezeboxCometdTransport | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            client: JSON-RPC client for the hub.
            config_entry: Config entry this session belongs to.
            player_ids: Players to manage.
            transport: Streaming transport; one is created for the client's
                host and port when omitted.
        """
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{client.host}",
            update_interval=None,
        )
        self.client = client
        self.registry = PlayerRegistry(player_ids)
        self.subscriptions = SubscriptionTracker()
        self.available_players: dict[str, DiscoveredPlayer] = {}
        self.last_error: SqueezeboxError | None = None
        self.data = self.registry.players

        self.progress_clock = ProgressClock(hass, self.registry, self._handle_player_update)
        self.status_applier = StatusApplier(
            self.registry,
            client.cover_art_url,
            self.progress_clock,
            self._handle_player_update,
        )

        self._transport = transport or SqueezeboxCometdTransport(client.host, client.port)
        self._transport.set_connection_callback(self._handle_transport_connection)
        self._transport.set_message_callback(self._handle_transport_messages)
        self._receive_task: asyncio.Task[None] | None = None

        self._session_state = SessionState.IDLE
        self._connection_state = ConnectionState.DISCONNECTED
        self._client_id: str | None = None
        self._subscription_channel: str | None = None
        self._connection_tries = 0
        self._user_disconnect = False
        self._cancel_timeout: CALLBACK_TYPE | None = None

        self._handlers: dict[tuple[SessionState, str, bool], _MessageHandler] = {
            (SessionState.HANDSHAKE, CHANNEL_HANDSHAKE, True): self._handle_handshake,
            (SessionState.CONNECT, CHANNEL_CONNECT, True): self._handle_connect,
            (SessionState.SUBSCRIBE, CHANNEL_SUBSCRIBE, True): self._handle_subscribe_ack,
        }

    @property
    def session_state(self) -> SessionState:
        """Return the internal protocol state."""
        return self._session_state

    @property
    def connection_state(self) -> ConnectionState:
        """Return the externally visible connection state."""
        return self._connection_state

    @property
    def client_id(self) -> str | None:
        """Return the CometD client id negotiated at handshake."""
        return self._client_id

    @property
    def subscription_channel(self) -> str | None:
        """Return the channel status pushes arrive on."""
        return self._subscription_channel

    @property
    def connection_tries(self) -> int:
        """Return the number of consecutive timed out attempts."""
        return self._connection_tries

    @property
    def user_disconnect(self) -> bool:
        """Return True if the session was closed on request."""
        return self._user_disconnect

    @property
    def hub_id(self) -> str:
        """Return the device identifier of the hub."""
        return self.config_entry.unique_id or self.config_entry.entry_id

    @property
    def _notification_id(self) -> str:
        return f"{DOMAIN}_{self.config_entry.entry_id}_connection"

    def get_player(self, player_id: str) -> SqueezeboxPlayer | None:
        """Get a managed player by id."""
        return self.registry.get(player_id)

    def player_name(self, player_id: str) -> str:
        """Return the hub's display name for a player, falling back to its id."""
        discovered = self.available_players.get(player_id)
        return discovered.name if discovered else player_id

    async def _async_update_data(self) -> dict[str, SqueezeboxPlayer]:
        """Return the registry; state arrives by push."""
        return self.registry.players

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def async_connect(self) -> None:
        """Start a connection attempt.

        Arms the connection timeout, resets per-connection bookkeeping and
        runs discovery, which in turn opens the streaming socket.
        """
        self._set_connection_state(ConnectionState.CONNECTING)
        self._user_disconnect = False

        _LOGGER.debug(
            "Connecting to Squeezebox server %s:%s (attempt %d)",
            self.client.host,
            self.client.port,
            self._connection_tries + 1,
        )

        self._arm_connection_timeout()
        await self._async_close_transport()
        self.registry.reset()
        self.subscriptions.clear()
        self._client_id = None
        self._subscription_channel = None

        await self._async_discover_players()

    async def async_disconnect(self) -> None:
        """Close the session on request. Safe to call repeatedly."""
        self._user_disconnect = True
        self._cancel_connection_timeout()
        await self._async_close_transport()
        self.progress_clock.stop()
        self._set_state(SessionState.IDLE)
        self._set_connection_state(ConnectionState.DISCONNECTED)

    async def async_reconnect(self) -> None:
        """Manually restart the session with a fresh attempt counter."""
        _LOGGER.info("Reconnecting to Squeezebox server %s", self.client.host)
        self._connection_tries = 0
        await self.async_connect()

    @callback
    def enter_standby(self) -> None:
        """Suspend local position extrapolation."""
        _LOGGER.debug("Entering standby")
        self.progress_clock.enter_standby()

    async def async_leave_standby(self) -> None:
        """Resume after standby by re-querying every player last seen playing."""
        _LOGGER.debug("Leaving standby")
        self.progress_clock.leave_standby()
        await asyncio.gather(
            *(self._async_refresh_player(player.player_id) for player in self.registry.playing())
        )

    # -------------------------------------------------------------------------
    # Discovery and status polling (JSON-RPC)
    # -------------------------------------------------------------------------

    async def _async_discover_players(self) -> None:
        """Enumerate hub players, poll their status, then open the socket."""
        self._set_state(SessionState.PLAYER_INFO)

        try:
            players = await self.client.async_get_players()
        except SqueezeboxError as err:
            self.last_error = err
            if not self._user_disconnect:
                _LOGGER.error("Player discovery failed: %s", err)
            return

        if self._user_disconnect:
            return

        for player in players:
            self.available_players[player.player_id] = player
            if self.registry.mark_connected(player.player_id):
                self.hass.async_create_task(
                    self._async_refresh_player(player.player_id),
                    f"{DOMAIN} status {player.player_id}",
                )
            else:
                _LOGGER.debug(
                    "Hub reports player %s (%s) which is not managed",
                    player.name,
                    player.player_id,
                )

        missing = [player.player_id for player in self.registry if not player.connected]
        if missing:
            _LOGGER.warning("Configured players not reported by the hub: %s", ", ".join(missing))

        try:
            await self._transport.async_connect()
        except SqueezeboxTransportError as err:
            self._handle_transport_error(err)
            return

        if self._user_disconnect:
            # Disconnected while the socket was opening
            await self._transport.async_close()
            return

        self._receive_task = self.hass.async_create_background_task(
            self._async_receive_loop(),
            f"{DOMAIN} cometd receive {self.client.host}",
        )

    async def _async_refresh_player(self, player_id: str) -> None:
        """Poll one player's status and apply it."""
        try:
            status = await self.client.async_get_player_status(player_id)
        except SqueezeboxError as err:
            if not self._user_disconnect:
                _LOGGER.warning("Status query for %s failed: %s", player_id, err)
            return

        if self._user_disconnect:
            _LOGGER.debug("Dropping status for %s received after disconnect", player_id)
            return

        try:
            self.status_applier.apply(player_id, status)
        except SqueezeboxProtocolError as err:
            _LOGGER.warning("Discarding status for %s: %s", player_id, err)

    async def async_send_command(
        self,
        entity_type: str,
        player_id: str,
        command: PlayerCommand | str,
        value: float | None = None,
    ) -> None:
        """Send a command to a player.

        Network and protocol failures are logged, not raised; the call is
        fire-and-forget.

        Args:
            entity_type: Entity type the command was issued for.
            player_id: Target player.
            command: The command.
            value: Volume or seek position where the command needs one.

        Raises:
            SqueezeboxUnsupportedEntityError: For entity types other than media_player.
        """
        if entity_type != ENTITY_TYPE_MEDIA_PLAYER:
            _LOGGER.error("Command %s received for entity type %s", command, entity_type)
            raise SqueezeboxUnsupportedEntityError(entity_type)

        command_string = build_player_command(command, value)
        try:
            await self.client.async_send_command(player_id, command_string)
        except SqueezeboxError as err:
            if not self._user_disconnect:
                _LOGGER.error("Command %r to %s failed: %s", command_string, player_id, err)

    # -------------------------------------------------------------------------
    # Streaming session
    # -------------------------------------------------------------------------

    async def _async_receive_loop(self) -> None:
        """Run the transport's receive loop and route its failure."""
        try:
            await self._transport.async_run_receive_loop()
        except SqueezeboxTransportError as err:
            self._handle_transport_error(err)

    async def _async_close_transport(self) -> None:
        """Stop the receive loop and close the socket."""
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._transport.async_close()

    @callback
    def _handle_transport_connection(self, connected: bool) -> None:
        """Start the handshake once the socket is open."""
        if not connected:
            _LOGGER.debug("Streaming socket to %s closed", self.client.host)
            return
        if self._user_disconnect:
            return

        _LOGGER.debug("Streaming socket to %s open, starting handshake", self.client.host)
        self._set_state(SessionState.HANDSHAKE)
        self._send(build_handshake_message())

    @callback
    def _handle_transport_messages(self, messages: list[CometdMessage]) -> None:
        """Process a de-framed message list in arrival order."""
        for message in messages:
            self.dispatch(message)

    @callback
    def dispatch(self, message: CometdMessage) -> None:
        """Route one CometD message.

        Acks are matched on (state, channel, successful). An ack that does not
        fit the current state is ignored, as is anything after a user
        disconnect.
        """
        if self._user_disconnect:
            return

        channel = message.get("channel")
        successful = message.get("successful") is True

        handler = self._handlers.get((self._session_state, str(channel), successful))
        if handler is not None:
            handler(message)
            return

        if channel is not None and channel == self._subscription_channel:
            self._handle_status_push(message)
            return

        _LOGGER.debug(
            "Ignoring %s in state %s", describe_message(message), self._session_state
        )

    def _handle_handshake(self, message: CometdMessage) -> None:
        """Store the client id and request the streaming connection."""
        client_id = str(message.get("clientId") or "").replace('"', "")
        if not client_id:
            _LOGGER.warning("Handshake acknowledged without a client id")
            return

        self._client_id = client_id
        self._subscription_channel = SUBSCRIPTION_CHANNEL_TEMPLATE.format(client_id=client_id)
        _LOGGER.info("Squeezebox server assigned client id %s", client_id)

        self._set_state(SessionState.CONNECT)
        self._send(build_connect_message(client_id))

    def _handle_connect(self, message: CometdMessage) -> None:
        """Subscribe every connected player to its status stream."""
        self._set_state(SessionState.SUBSCRIBE)

        for player in self.registry.pending_subscription():
            correlation_id = self.subscriptions.add(player.player_id)
            self._send(
                build_subscribe_message(
                    self._client_id or "",
                    self._subscription_channel or "",
                    player.player_id,
                    correlation_id,
                )
            )
            if self._session_state is not SessionState.SUBSCRIBE:
                return

        self._check_subscriptions()

    def _handle_subscribe_ack(self, message: CometdMessage) -> None:
        """Mark the acknowledged player subscribed."""
        player_id = self.subscriptions.acknowledge(message.get("id"))
        if player_id is None:
            _LOGGER.debug("Subscribe ack with unknown id %s", message.get("id"))
            return

        if not self.registry.mark_subscribed(player_id):
            _LOGGER.debug("Subscribe ack for player %s which is not connected", player_id)
        self._check_subscriptions()

    def _handle_status_push(self, message: CometdMessage) -> None:
        """Apply a pushed status to the player its correlation id belongs to."""
        player_id = self.subscriptions.lookup(message.get("id"))
        if player_id is None:
            _LOGGER.debug("Status push with unknown id %s", message.get("id"))
            return

        try:
            self.status_applier.apply(player_id, message.get("data"))
        except SqueezeboxProtocolError as err:
            _LOGGER.warning("Discarding pushed status for %s: %s", player_id, err)

    def _check_subscriptions(self) -> None:
        """Enter the connected state once every connected player is subscribed."""
        if self._session_state is not SessionState.SUBSCRIBE or not self.registry.all_subscribed:
            return

        self._set_state(SessionState.CONNECTED)
        self._connection_tries = 0
        self.last_error = None
        self._cancel_connection_timeout()
        persistent_notification.async_dismiss(self.hass, self._notification_id)
        self._set_connection_state(ConnectionState.CONNECTED)

    def _send(self, message: CometdMessage) -> None:
        try:
            self._transport.send([message])
        except SqueezeboxTransportError as err:
            self._handle_transport_error(err)

    @callback
    def _handle_transport_error(self, err: SqueezeboxTransportError) -> None:
        """Move to the error state and make sure a retry is scheduled."""
        if self._user_disconnect:
            return

        _LOGGER.error("%s - trying to reconnect", err)
        self.last_error = err
        self._set_state(SessionState.ERROR)
        self._set_connection_state(ConnectionState.CONNECTING)
        if self._cancel_timeout is None:
            self._arm_connection_timeout()

    # -------------------------------------------------------------------------
    # Connection timeout and retry
    # -------------------------------------------------------------------------

    def _arm_connection_timeout(self) -> None:
        self._cancel_connection_timeout()
        self._cancel_timeout = async_call_later(
            self.hass, CONNECTION_TIMEOUT, self._async_handle_connection_timeout
        )

    def _cancel_connection_timeout(self) -> None:
        if self._cancel_timeout is not None:
            self._cancel_timeout()
            self._cancel_timeout = None

    async def _async_handle_connection_timeout(self, _now: datetime) -> None:
        """Retry, or give up and notify once the attempt cap is reached."""
        self._cancel_connection_timeout()

        if self._session_state is SessionState.CONNECTED:
            self._connection_tries = 0
            return

        self._connection_tries += 1
        if self._connection_tries < MAX_CONNECTION_TRIES:
            _LOGGER.warning(
                "Connection attempt %d to %s timed out in state %s, retrying",
                self._connection_tries,
                self.client.host,
                self._session_state,
            )
            await self.async_connect()
            return

        err = SqueezeboxConnectionTimeout(
            f"Cannot connect to Squeezebox server at {self.client.host}:{self.client.port}: "
            f"retried {self._connection_tries} times",
            attempts=self._connection_tries,
        )
        _LOGGER.error("%s", err)
        await self.async_disconnect()
        self.last_error = err
        self._connection_tries = 0

        persistent_notification.async_create(
            self.hass,
            f"Cannot connect to {self.config_entry.title}. "
            f"Run the `{DOMAIN}.{SERVICE_RECONNECT}` action to try again.",
            title="Squeezebox Live",
            notification_id=self._notification_id,
        )

    # -------------------------------------------------------------------------
    # State bookkeeping
    # -------------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is not self._session_state:
            _LOGGER.debug("Session state %s -> %s", self._session_state, state)
            self._session_state = state

    def _set_connection_state(self, state: ConnectionState) -> None:
        if state is self._connection_state:
            return
        _LOGGER.info("Squeezebox server %s is %s", self.client.host, state)
        self._connection_state = state
        self.async_update_listeners()

    @callback
    def _handle_player_update(self, player_id: str, changes: Mapping[str, Any]) -> None:
        """Entity sink: notify listeners that a player changed."""
        _LOGGER.debug("Player %s updated: %s", player_id, changes)
        self.async_update_listeners()


__all__ = ["SqueezeboxSessionCoordinator"]
