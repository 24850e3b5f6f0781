"""Match session state: lifecycle states, roster, role and replicated counter."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, Tuple

from .transport import Player


class SessionState(Enum):
    """Multiplayer session lifecycle states."""
    IDLE = auto()                 # No match, not searching
    MATCHMAKING = auto()          # Waiting for the transport to find a match
    WAITING_FOR_PLAYERS = auto()  # In a match, not everyone connected yet
    READY_TO_START = auto()       # Everyone connected, waiting for startGame
    ACTIVE = auto()               # Game running
    ERROR = auto()                # Failed; see error_message


def compute_host(remote_ids: Iterable[str], local_id: str) -> bool:
    """Check if the local player is host.

    The participant with the lowest player ID hosts. Every peer evaluates
    this over the same ID set, so all of them agree without negotiating.
    """
    return min(set(remote_ids) | {local_id}) == local_id


@dataclass
class MatchSession:
    """One match from match-found until it ends.

    A new instance is created for every match so no roster or counter
    state leaks from a previous attempt.
    """
    local_player: Player
    required_players: int = 2
    roster: Dict[str, Player] = field(default_factory=dict)  # player_id -> remote player
    counter: int = 0
    is_host: bool = field(init=False, default=False)

    def __post_init__(self):
        if self.required_players < 2:
            raise ValueError(f"required_players must be at least 2, got {self.required_players}")
        # Role is fixed for the lifetime of the match
        self.is_host = compute_host(self.roster, self.local_player.player_id)

    @classmethod
    def from_players(
        cls,
        local_player: Player,
        players: Iterable[Player],
        required_players: int = 2,
    ) -> 'MatchSession':
        """Create a session from the players reported with a found match."""
        roster = {
            p.player_id: p for p in players
            if p.player_id != local_player.player_id
        }
        return cls(local_player=local_player, required_players=required_players, roster=roster)

    @property
    def player_count(self) -> int:
        """Connected players including the local one."""
        return len(self.roster) + 1

    @property
    def is_full(self) -> bool:
        return self.player_count == self.required_players

    @property
    def players(self) -> Tuple[Player, ...]:
        """Remote players ordered by ID."""
        return tuple(sorted(self.roster.values()))

    def add_player(self, player: Player) -> bool:
        """Add a remote player. Returns False if already present."""
        if player.player_id == self.local_player.player_id or player.player_id in self.roster:
            return False
        self.roster[player.player_id] = player
        return True

    def remove_player(self, player: Player) -> bool:
        """Remove a remote player. Returns False if not present."""
        return self.roster.pop(player.player_id, None) is not None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the client published to listeners."""
    state: SessionState
    error_message: str = ""
    players: Tuple[Player, ...] = ()
    counter: int = 0
    is_host: bool = False
