"""Multiplayer session client: the match lifecycle state machine.

Usage:
    client = MultiplayerClient(transport)
    client.subscribe(lambda snapshot: print(snapshot.state))
    client.start_matchmaking()

    # In your main loop
    client.poll()

    # Once ACTIVE
    client.increment_counter()

Transports may report events from any thread. They land in a queue and
are applied only by poll(), so every transition runs on the thread that
owns the client.
"""

import logging
import time
from dataclasses import dataclass, field
from queue import Queue, Empty
from typing import Callable, List, Optional

from .errors import AuthenticationError, ProtocolDecodeError, TransportError
from .protocol import StartGame, UpdateCounter, decode, msg_start_game, msg_update_counter
from .session import MatchSession, SessionSnapshot, SessionState
from .transport import (
    ConnectionState, DataReceived, MatchError, MatchFailed, MatchFound,
    MatchmakingCancelled, PeerTransport, Player, PlayerConnectionChanged,
    TransportEvent,
)
from .config import SessionConfig

logger = logging.getLogger(__name__)

PLAYER_DISCONNECTED_MESSAGE = "a player has disconnected"
MATCHMAKING_TIMEOUT_MESSAGE = "matchmaking timed out"

Listener = Callable[[SessionSnapshot], None]


@dataclass
class MultiplayerClient:
    """Drives one player's side of a multiplayer session.

    Holds the lifecycle state and the current MatchSession (None outside a
    match), reacts to transport events and emits protocol messages.
    """

    transport: PeerTransport
    config: SessionConfig = field(default_factory=SessionConfig)
    clock: Callable[[], float] = time.time

    # State
    state: SessionState = SessionState.IDLE
    error_message: str = ""
    match: Optional[MatchSession] = None

    # Internal
    _matchmaking_started: float = 0.0
    _abandoned_searches: int = 0  # timed-out searches whose outcome is still in flight
    _events: Queue = field(default_factory=Queue)
    _listeners: List[Listener] = field(default_factory=list)

    def __post_init__(self):
        self.transport.attach(self.post_event)

    # =========================================================================
    # READ-ONLY PROJECTION
    # =========================================================================

    @property
    def local_player(self) -> Player:
        return self.transport.local_player

    @property
    def players(self):
        """Connected remote players, ordered by ID."""
        return self.match.players if self.match else ()

    @property
    def counter(self) -> int:
        return self.match.counter if self.match else 0

    @property
    def is_host(self) -> bool:
        return self.match.is_host if self.match else False

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            error_message=self.error_message,
            players=self.players,
            counter=self.counter,
            is_host=self.is_host,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # COMMANDS (called from the owner thread)
    # =========================================================================

    def start_matchmaking(self):
        """Ask the transport for a match. Allowed from IDLE or ERROR."""
        if self.state not in (SessionState.IDLE, SessionState.ERROR):
            logger.warning(f"Cannot start matchmaking in state {self.state.name}")
            return

        self.match = None
        self.error_message = ""
        self._matchmaking_started = self.clock()
        self._set_state(SessionState.MATCHMAKING, notify=False)

        required = self.config.required_players
        try:
            self.transport.start_matchmaking(required, required)
        except (AuthenticationError, TransportError) as e:
            logger.error(f"Matchmaking request failed: {e}")
            self._fail(str(e))
            return
        self._notify()

    def cancel_matchmaking(self):
        """Cancel a pending search. State changes when the transport confirms."""
        if self.state != SessionState.MATCHMAKING:
            return
        self.transport.cancel_matchmaking()

    def increment_counter(self):
        """Bump the shared counter and broadcast the new value."""
        if self.state != SessionState.ACTIVE:
            logger.warning(f"Cannot increment counter in state {self.state.name}")
            return
        if self.config.host_authoritative_counter and not self.match.is_host:
            logger.warning("Only the host may increment the counter")
            return

        self.match.counter += 1
        self._send(msg_update_counter(self.match.counter))
        self._notify()

    def disconnect(self):
        """Leave the match (or stop searching) and return to IDLE."""
        self.transport.disconnect()
        self.match = None
        self.error_message = ""
        self._set_state(SessionState.IDLE)

    # =========================================================================
    # EVENT QUEUE
    # =========================================================================

    def post_event(self, event: TransportEvent):
        """Queue a transport event. Safe to call from any thread."""
        self._events.put(event)

    def poll(self) -> int:
        """Apply queued transport events and check the matchmaking timeout.

        Call this from the owner thread's loop. Returns the number of
        events processed.
        """
        processed = 0
        while True:
            try:
                event = self._events.get_nowait()
            except Empty:
                break
            self._handle_event(event)
            processed += 1

        self._check_matchmaking_timeout()
        return processed

    def _check_matchmaking_timeout(self):
        timeout = self.config.matchmaking_timeout
        if timeout is None or self.state != SessionState.MATCHMAKING:
            return

        elapsed = self.clock() - self._matchmaking_started
        if elapsed >= timeout:
            logger.warning(f"No match found after {elapsed:.1f}s, giving up")
            self._abandoned_searches += 1
            self.transport.cancel_matchmaking()
            self._fail(MATCHMAKING_TIMEOUT_MESSAGE)

    def _handle_event(self, event: TransportEvent):
        handlers = {
            MatchFound: self._handle_match_found,
            MatchFailed: self._handle_match_failed,
            MatchmakingCancelled: self._handle_matchmaking_cancelled,
            PlayerConnectionChanged: self._handle_connection_changed,
            DataReceived: self._handle_data,
            MatchError: self._handle_match_error,
        }
        handler = handlers.get(type(event))
        if handler:
            handler(event)
        else:
            logger.warning(f"Unhandled transport event: {event!r}")

    # =========================================================================
    # TRANSPORT EVENT HANDLERS
    # =========================================================================

    def _handle_match_found(self, event: MatchFound):
        if self._abandoned_searches and self.state != SessionState.MATCHMAKING:
            self._abandoned_searches -= 1
        if self.state in (SessionState.IDLE, SessionState.ERROR):
            # Search was abandoned (cancelled or timed out) before the match formed
            logger.info(f"Leaving match found in state {self.state.name}")
            self.transport.disconnect()
            return
        if self.state != SessionState.MATCHMAKING:
            logger.info(f"Ignoring match found in state {self.state.name}")
            return

        # Outcomes of earlier searches are delivered before this one
        self._abandoned_searches = 0
        self.match = MatchSession.from_players(
            self.local_player, event.players, self.config.required_players,
        )
        role = "host" if self.match.is_host else "guest"
        logger.info(f"Match found with {len(self.match.roster)} remote player(s), local player is {role}")
        self._set_state(SessionState.WAITING_FOR_PLAYERS, notify=False)
        self._check_if_ready_to_start()

    def _handle_match_failed(self, event: MatchFailed):
        if self.state != SessionState.MATCHMAKING:
            logger.info(f"Ignoring match failure in state {self.state.name}: {event.error}")
            return
        logger.error(f"Matchmaking failed: {event.error}")
        self._fail(event.error)

    def _handle_matchmaking_cancelled(self, event: MatchmakingCancelled):
        if self._abandoned_searches:
            # Confirms a search this client already gave up on
            self._abandoned_searches -= 1
            logger.debug("Ignoring cancel of a timed-out search")
            return
        if self.state != SessionState.MATCHMAKING:
            logger.debug(f"Ignoring matchmaking cancel in state {self.state.name}")
            return
        logger.info("Matchmaking cancelled")
        self.match = None
        self._set_state(SessionState.IDLE)

    def _handle_connection_changed(self, event: PlayerConnectionChanged):
        if self.match is None or self.state in (SessionState.IDLE, SessionState.ERROR):
            logger.debug(f"Ignoring connection change for {event.player} outside a match")
            return

        if event.state == ConnectionState.CONNECTED:
            if self.match.add_player(event.player):
                logger.info(f"Player connected: {event.player}")
        elif event.state == ConnectionState.DISCONNECTED:
            if self.match.remove_player(event.player):
                logger.info(f"Player disconnected: {event.player}")
        else:
            return

        self._check_if_ready_to_start()

    def _handle_data(self, event: DataReceived):
        try:
            message = decode(event.data)
        except ProtocolDecodeError as e:
            logger.warning(f"Dropping malformed payload from {event.player}: {e}")
            return

        if message is None:
            logger.debug(f"Ignoring unknown message from {event.player}")
            return

        if isinstance(message, StartGame):
            self._handle_start_game(event.player)
        elif isinstance(message, UpdateCounter):
            self._handle_update_counter(message, event.player)

    def _handle_start_game(self, sender: Player):
        if self.state == SessionState.ACTIVE:
            return
        if self.state not in (SessionState.WAITING_FOR_PLAYERS, SessionState.READY_TO_START):
            logger.info(f"Ignoring startGame from {sender} in state {self.state.name}")
            return
        logger.info(f"Game started by {sender}")
        self._set_state(SessionState.ACTIVE)

    def _handle_update_counter(self, message: UpdateCounter, sender: Player):
        if self.state != SessionState.ACTIVE:
            logger.info(f"Dropping counter update from {sender} in state {self.state.name}")
            return
        # Last write wins: updates carry no sequence number
        self.match.counter = message.value
        self._notify()

    def _handle_match_error(self, event: MatchError):
        logger.error(f"Match error: {event.error}")
        self._fail(event.error)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _check_if_ready_to_start(self):
        """Re-evaluate readiness after the roster changed."""
        match = self.match
        if self.state == SessionState.ACTIVE:
            if match.player_count < match.required_players:
                self._fail(PLAYER_DISCONNECTED_MESSAGE)
            else:
                self._notify()
            return

        if match.is_full:
            self._set_state(SessionState.READY_TO_START)
            if match.is_host:
                self._start_game()
        else:
            self._set_state(SessionState.WAITING_FOR_PLAYERS)

    def _start_game(self):
        """Host announces the game and goes ACTIVE without waiting for acks."""
        logger.info("All players connected, starting game as host")
        self._send(msg_start_game())
        self._set_state(SessionState.ACTIVE)

    def _send(self, data: bytes):
        try:
            self.transport.send_to_all(data, self.config.send_mode)
        except TransportError as e:
            logger.warning(f"Send failed: {e}")

    def _fail(self, message: str):
        self.match = None
        self.error_message = message or "Unknown error"
        self._set_state(SessionState.ERROR)

    def _set_state(self, state: SessionState, notify: bool = True):
        if state != self.state:
            logger.debug(f"State {self.state.name} -> {state.name}")
        self.state = state
        if state != SessionState.ERROR:
            self.error_message = ""
        if notify:
            self._notify()

    def _notify(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
