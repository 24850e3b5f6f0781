"""Pytest fixtures for session client testing."""
import pytest
from typing import List, Optional, Tuple

from peerplay.network.client import MultiplayerClient
from peerplay.network.config import SessionConfig
from peerplay.network.errors import NoActiveMatchError
from peerplay.network.loopback import LoopbackMatchmaker
from peerplay.network.protocol import decode
from peerplay.network.session import SessionState
from peerplay.network.transport import (
    ConnectionState, DataReceived, MatchFound, PeerTransport, Player,
    PlayerConnectionChanged, SendDataMode,
)


class FakeTransport(PeerTransport):
    """Transport double that records calls and never emits on its own."""

    def __init__(self, player_id: str = "B", display_name: str = ""):
        super().__init__()
        self._player = Player(player_id, display_name)
        self.matchmaking_requests: List[Tuple[int, int]] = []
        self.sent: List[Tuple[bytes, SendDataMode]] = []
        self.cancel_calls = 0
        self.disconnect_calls = 0
        self.in_match = False
        self.start_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None

    @property
    def local_player(self) -> Player:
        return self._player

    def start_matchmaking(self, min_players: int, max_players: int):
        if self.start_error is not None:
            raise self.start_error
        self.matchmaking_requests.append((min_players, max_players))

    def cancel_matchmaking(self):
        self.cancel_calls += 1

    def send_to_all(self, data: bytes, mode: SendDataMode = SendDataMode.RELIABLE):
        if self.send_error is not None:
            raise self.send_error
        if not self.in_match:
            raise NoActiveMatchError()
        self.sent.append((data, mode))

    def disconnect(self):
        self.disconnect_calls += 1
        self.in_match = False

    @property
    def sent_messages(self):
        """Decoded outbound messages, oldest first."""
        return [decode(data) for data, _ in self.sent]


class FakeClock:
    """Manually advanced clock for timeout tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    """Fake transport for local player 'B'."""
    return FakeTransport("B", "Bob")


@pytest.fixture
def client(transport, clock) -> MultiplayerClient:
    """Client for two-player matches over the fake transport."""
    return MultiplayerClient(transport, SessionConfig(required_players=2, matchmaking_timeout=30.0), clock)


@pytest.fixture
def hub() -> LoopbackMatchmaker:
    return LoopbackMatchmaker()


@pytest.fixture
def make_client(hub):
    """Factory fixture creating clients on the loopback hub.

    Usage:
        alice = make_client("A1", "Alice")
        bob = make_client("B2", "Bob", required_players=3)
    """
    def _make(
        player_id: str,
        display_name: str = "",
        required_players: int = 2,
        authenticated: bool = True,
        **config,
    ) -> MultiplayerClient:
        transport = hub.create_transport(player_id, display_name, authenticated=authenticated)
        return MultiplayerClient(transport, SessionConfig(required_players=required_players, **config))
    return _make


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def poll_all(*clients: MultiplayerClient, rounds: int = 5):
    """Poll clients in turn until no events remain (bounded)."""
    for _ in range(rounds):
        processed = sum(c.poll() for c in clients)
        if processed == 0:
            return


def enter_match(client: MultiplayerClient, *remote: Player):
    """Drive a fake-transport client from IDLE into a match with remote players."""
    client.start_matchmaking()
    client.transport.in_match = True
    client.post_event(MatchFound(tuple(remote)))
    client.poll()


def connect(client: MultiplayerClient, player: Player):
    client.post_event(PlayerConnectionChanged(player, ConnectionState.CONNECTED))
    client.poll()


def disconnect(client: MultiplayerClient, player: Player):
    client.post_event(PlayerConnectionChanged(player, ConnectionState.DISCONNECTED))
    client.poll()


def receive(client: MultiplayerClient, data: bytes, sender: Player):
    client.post_event(DataReceived(data, sender))
    client.poll()


def assert_state(client: MultiplayerClient, expected: SessionState, msg: str = ""):
    """Assert client is in a specific state."""
    assert client.state == expected, \
        f"State: expected {expected.name}, got {client.state.name} ({client.error_message}). {msg}"
