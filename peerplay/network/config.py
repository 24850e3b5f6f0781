"""Session client configuration."""

from dataclasses import dataclass
from typing import Optional

from .transport import SendDataMode


@dataclass(frozen=True)
class SessionConfig:
    """Validated session client configuration.

    Attributes:
        required_players: players in a match, local player included
        matchmaking_timeout: seconds before a search fails, None waits forever
        host_authoritative_counter: refuse counter increments from guests
        send_mode: delivery mode for outbound session messages
    """
    required_players: int = 2
    matchmaking_timeout: Optional[float] = 60.0
    host_authoritative_counter: bool = True
    send_mode: SendDataMode = SendDataMode.RELIABLE

    def __post_init__(self):
        if isinstance(self.required_players, bool) or not isinstance(self.required_players, int):
            raise ValueError(f"required_players must be an integer, got {self.required_players!r}")
        if self.required_players < 2:
            raise ValueError(f"required_players must be at least 2, got {self.required_players}")
        if self.matchmaking_timeout is not None and self.matchmaking_timeout <= 0:
            raise ValueError(f"matchmaking_timeout must be positive, got {self.matchmaking_timeout}")
        if not isinstance(self.host_authoritative_counter, bool):
            raise ValueError(
                f"host_authoritative_counter must be true or false, got {self.host_authoritative_counter!r}"
            )
