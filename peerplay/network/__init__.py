"""Network module for multiplayer sessions."""

from .errors import AuthenticationError, TransportError, NoActiveMatchError, ProtocolDecodeError
from .protocol import MessageType, Message, StartGame, UpdateCounter, encode, decode
from .transport import (
    Player, ConnectionState, SendDataMode, PeerTransport,
    MatchFound, MatchFailed, MatchmakingCancelled, PlayerConnectionChanged,
    DataReceived, MatchError,
)
from .session import SessionState, MatchSession, SessionSnapshot, compute_host
from .config import SessionConfig
from .client import MultiplayerClient
from .loopback import LoopbackMatchmaker, LoopbackTransport
