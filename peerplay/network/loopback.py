"""In-process transport: a matchmaking hub connecting transports in one process.

Usage:
    hub = LoopbackMatchmaker()
    alice = hub.create_transport('A1', 'Alice')
    bob = hub.create_transport('B2', 'Bob')

Each transport behaves like a game-service match: start_matchmaking()
queues the player and, once enough players are waiting, every member gets
a MatchFound event listing the others. Payloads are handed to the other
members' sinks as DataReceived events.
"""

import logging
import random
import secrets
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import AuthenticationError, NoActiveMatchError, TransportError
from .transport import (
    ConnectionState, DataReceived, MatchError, MatchFailed, MatchFound,
    MatchmakingCancelled, PeerTransport, Player, PlayerConnectionChanged,
    SendDataMode,
)

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Local player is not authenticated. Please sign in to the game service."


@dataclass
class LoopbackMatch:
    """Players currently joined together by the hub."""
    match_id: str
    members: List['LoopbackTransport'] = field(default_factory=list)

    def others(self, transport: 'LoopbackTransport') -> List['LoopbackTransport']:
        return [m for m in self.members if m is not transport]


@dataclass
class _Request:
    transport: 'LoopbackTransport'
    min_players: int
    max_players: int


class LoopbackMatchmaker:
    """Matchmaking hub for LoopbackTransport instances.

    Args:
        drop_rate: probability that an UNRELIABLE payload is dropped per recipient
        rng: random source used for drops
    """

    def __init__(self, drop_rate: float = 0.0, rng: Optional[random.Random] = None):
        if not 0.0 <= drop_rate <= 1.0:
            raise ValueError(f"drop_rate must be in [0, 1], got {drop_rate}")
        self.drop_rate = drop_rate
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._waiting: List[_Request] = []
        self.matches: Dict[str, LoopbackMatch] = {}  # match_id -> match

    def create_transport(
        self,
        player_id: str,
        display_name: str = "",
        authenticated: bool = True,
    ) -> 'LoopbackTransport':
        """Create a transport for a player attached to this hub."""
        return LoopbackTransport(self, Player(player_id, display_name), authenticated)

    # =========================================================================
    # CALLED BY TRANSPORTS
    # =========================================================================

    def enqueue(self, transport: 'LoopbackTransport', min_players: int, max_players: int):
        with self._lock:
            if any(r.transport is transport for r in self._waiting):
                raise TransportError("Matchmaking already in progress")
            self._waiting.append(_Request(transport, min_players, max_players))
            logger.debug(f"{transport.local_player} waiting for a match ({min_players}-{max_players})")
            self._try_form_match(min_players, max_players)

    def cancel(self, transport: 'LoopbackTransport'):
        with self._lock:
            request = self._remove_request(transport)
        if request is not None:
            transport.emit(MatchmakingCancelled())

    def leave(self, transport: 'LoopbackTransport'):
        with self._lock:
            self._remove_request(transport)
            match = transport.match
            if match is None:
                return
            transport.match = None
            match.members.remove(transport)
            for other in match.members:
                other.emit(PlayerConnectionChanged(transport.local_player, ConnectionState.DISCONNECTED))
            if not match.members:
                del self.matches[match.match_id]
                logger.debug(f"Match {match.match_id} removed (empty)")

    def broadcast(self, sender: 'LoopbackTransport', data: bytes, mode: SendDataMode):
        with self._lock:
            match = sender.match
            if match is None:
                raise NoActiveMatchError()
            for other in match.others(sender):
                if mode == SendDataMode.UNRELIABLE and self._rng.random() < self.drop_rate:
                    logger.debug(f"Dropped unreliable payload for {other.local_player}")
                    continue
                other.emit(DataReceived(bytes(data), sender.local_player))

    # =========================================================================
    # FAULT INJECTION
    # =========================================================================

    def fail_matchmaking(self, error: str):
        """Fail every pending matchmaking request."""
        with self._lock:
            requests, self._waiting = self._waiting, []
        for request in requests:
            request.transport.emit(MatchFailed(error))

    def fail_match(self, match_id: str, error: str):
        """Report a fatal error to every member of a match."""
        with self._lock:
            match = self.matches.get(match_id)
            members = list(match.members) if match else []
        for member in members:
            member.emit(MatchError(error))

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _remove_request(self, transport: 'LoopbackTransport') -> Optional[_Request]:
        for request in self._waiting:
            if request.transport is transport:
                self._waiting.remove(request)
                return request
        return None

    def _try_form_match(self, min_players: int, max_players: int):
        candidates = [
            r for r in self._waiting
            if r.min_players == min_players and r.max_players == max_players
        ]
        if len(candidates) < min_players:
            return

        chosen = candidates[:max_players]
        for request in chosen:
            self._waiting.remove(request)

        match_id = secrets.token_hex(3).upper()
        while match_id in self.matches:
            match_id = secrets.token_hex(3).upper()

        match = LoopbackMatch(match_id, [r.transport for r in chosen])
        self.matches[match_id] = match
        logger.info(f"Match {match_id} formed: {', '.join(str(m.local_player) for m in match.members)}")

        for member in match.members:
            member.match = match
            players = tuple(other.local_player for other in match.others(member))
            member.emit(MatchFound(players))


class LoopbackTransport(PeerTransport):
    """PeerTransport backed by a LoopbackMatchmaker."""

    def __init__(self, hub: LoopbackMatchmaker, player: Player, authenticated: bool = True):
        super().__init__()
        self.hub = hub
        self.authenticated = authenticated
        self.match: Optional[LoopbackMatch] = None
        self._player = player

    @property
    def local_player(self) -> Player:
        return self._player

    def start_matchmaking(self, min_players: int, max_players: int):
        if not self.authenticated:
            raise AuthenticationError.custom(NOT_AUTHENTICATED_MESSAGE)
        if self.match is not None:
            raise TransportError("Already in a match")
        self.hub.enqueue(self, min_players, max_players)

    def cancel_matchmaking(self):
        self.hub.cancel(self)

    def send_to_all(self, data: bytes, mode: SendDataMode = SendDataMode.RELIABLE):
        self.hub.broadcast(self, data, mode)

    def disconnect(self):
        self.hub.leave(self)
