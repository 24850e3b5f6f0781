"""
peerplay demo - two in-process players find a match, start the game
and replicate a shared counter over the loopback transport.
"""
import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from .network import (
    LoopbackMatchmaker, MultiplayerClient, SessionSnapshot, SessionState,
)
from .settings import config_from_settings, load_settings

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.01  # seconds between polls
MAX_POLLS = 1000


def log_changes(name: str):
    """Listener that logs each snapshot a client publishes."""
    def _log(snapshot: SessionSnapshot):
        state = snapshot.state.name
        if snapshot.state == SessionState.ERROR:
            state = f"{state} ({snapshot.error_message})"
        role = "host" if snapshot.is_host else "guest"
        logger.info(f"[{name}] {state} role={role} players={len(snapshot.players)} counter={snapshot.counter}")
    return _log


def poll_until(clients: List[MultiplayerClient], done, max_polls: int = MAX_POLLS) -> bool:
    """Poll every client until done() holds. Returns False on give-up."""
    for _ in range(max_polls):
        for client in clients:
            client.poll()
        if done():
            return True
        time.sleep(POLL_INTERVAL)
    return False


def run_demo(increments: int, settings: dict) -> int:
    """Play one loopback match. Returns a process exit code."""
    config = config_from_settings(settings)
    hub = LoopbackMatchmaker()

    clients = []
    for player_number in range(config.required_players):
        transport = hub.create_transport(f"P{player_number + 1:03d}", f"Player {player_number + 1}")
        client = MultiplayerClient(transport, config)
        client.subscribe(log_changes(str(transport.local_player)))
        clients.append(client)

    for client in clients:
        client.start_matchmaking()

    all_active = lambda: all(c.state == SessionState.ACTIVE for c in clients)
    if not poll_until(clients, lambda: all_active() or any(c.state == SessionState.ERROR for c in clients)):
        logger.error("Players never became active")
        return 1
    if not all_active():
        return 1

    host = next(c for c in clients if c.is_host)
    for _ in range(increments):
        host.increment_counter()

    if not poll_until(clients, lambda: all(c.counter == host.counter for c in clients)):
        logger.error("Counter did not converge")
        return 1
    logger.info(f"All players agree on counter = {host.counter}")

    for client in clients:
        client.disconnect()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='peerplay loopback match demo')
    parser.add_argument('--required-players', type=int, help='Players per match (default from settings)')
    parser.add_argument('--increments', type=int, default=3, help='Counter increments made by the host')
    parser.add_argument('--timeout', type=float, help='Matchmaking timeout in seconds')
    parser.add_argument('--settings', type=Path, help='Settings file to load')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    settings = load_settings(args.settings)
    if args.required_players is not None:
        settings['required_players'] = args.required_players
    if args.timeout is not None:
        settings['matchmaking_timeout'] = args.timeout

    try:
        return run_demo(args.increments, settings)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
