"""Peer transport interface: players, transport events, and the transport ABC.

The session client never talks to a game service directly. A transport
finds matches, moves byte payloads between players and reports connection
changes by handing event objects to the sink registered with attach().
Sinks may be called from any thread.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional, Tuple, Union


@dataclass(frozen=True, order=True)
class Player:
    """A participant in a match, identified by a stable player ID."""
    player_id: str
    display_name: str = field(default="", compare=False)

    def __str__(self):
        return self.display_name or self.player_id


class ConnectionState(Enum):
    """Connection state reported for a remote player."""
    CONNECTED = auto()
    DISCONNECTED = auto()
    UNKNOWN = auto()


class SendDataMode(Enum):
    """Delivery guarantee requested for an outbound payload."""
    RELIABLE = auto()
    UNRELIABLE = auto()


# =============================================================================
# TRANSPORT EVENTS
# =============================================================================

@dataclass(frozen=True)
class MatchFound:
    """Matchmaking produced a match; players are the remote participants."""
    players: Tuple[Player, ...] = ()


@dataclass(frozen=True)
class MatchFailed:
    """Matchmaking failed before a match was formed."""
    error: str


@dataclass(frozen=True)
class MatchmakingCancelled:
    """The pending matchmaking request was cancelled."""


@dataclass(frozen=True)
class PlayerConnectionChanged:
    player: Player
    state: ConnectionState


@dataclass(frozen=True)
class DataReceived:
    data: bytes
    player: Player


@dataclass(frozen=True)
class MatchError:
    """The running match hit a fatal transport error."""
    error: str


TransportEvent = Union[
    MatchFound, MatchFailed, MatchmakingCancelled,
    PlayerConnectionChanged, DataReceived, MatchError,
]

EventSink = Callable[[TransportEvent], None]


class PeerTransport(ABC):
    """Matchmaking and peer messaging service used by the session client.

    Subclasses implement the abstract methods and deliver events through
    emit(). All methods return immediately; outcomes arrive later as events.
    """

    def __init__(self):
        self._sink: Optional[EventSink] = None

    def attach(self, sink: EventSink):
        """Register the callable that receives transport events."""
        self._sink = sink

    def detach(self):
        self._sink = None

    def emit(self, event: TransportEvent):
        """Hand an event to the attached sink, if any."""
        sink = self._sink
        if sink is not None:
            sink(event)

    @property
    @abstractmethod
    def local_player(self) -> Player:
        """The player running this transport."""

    @abstractmethod
    def start_matchmaking(self, min_players: int, max_players: int):
        """Begin looking for a match.

        Raises:
            AuthenticationError: local player is not signed in
            TransportError: the request could not be issued
        """

    @abstractmethod
    def cancel_matchmaking(self):
        """Cancel a pending request; reported back as MatchmakingCancelled."""

    @abstractmethod
    def send_to_all(self, data: bytes, mode: SendDataMode = SendDataMode.RELIABLE):
        """Send a payload to every remote player in the match.

        Raises:
            TransportError: no active match, or the send was rejected
        """

    @abstractmethod
    def disconnect(self):
        """Leave the current match, if any."""
