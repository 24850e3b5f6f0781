"""Settings management - loads and saves session preferences."""
import json
import logging
from pathlib import Path
from typing import Optional

from .network.config import SessionConfig
from .network.transport import SendDataMode

logger = logging.getLogger(__name__)

# Settings file location (in user's home directory)
SETTINGS_DIR = Path.home() / ".peerplay"
SETTINGS_FILE = SETTINGS_DIR / "settings.json"

# Default settings
DEFAULT_SETTINGS = {
    "required_players": 2,
    "matchmaking_timeout": 60.0,   # seconds, null disables
    "host_authoritative_counter": True,    # false lets guests increment too
    "send_mode": "reliable",
}


def load_settings(path: Optional[Path] = None) -> dict:
    """Load settings from file, or return defaults if file doesn't exist."""
    path = path or SETTINGS_FILE
    try:
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
            if not isinstance(saved, dict):
                raise ValueError("settings root must be an object")
            # Merge with defaults (in case new settings were added)
            settings = DEFAULT_SETTINGS.copy()
            settings.update(saved)
            logger.debug(f"Settings loaded from {path}: {settings}")
            return settings
        logger.debug(f"Settings file not found at {path}, using defaults")
    except (ValueError, OSError) as e:
        logger.warning(f"Failed to load settings from {path}: {e}")
    return DEFAULT_SETTINGS.copy()


def save_settings(settings: dict, path: Optional[Path] = None):
    """Save settings to file."""
    path = path or SETTINGS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(settings, f, indent=2)
    logger.info(f"Settings saved to {path}")


def config_from_settings(settings: dict) -> SessionConfig:
    """Build a SessionConfig from a settings dict (see DEFAULT_SETTINGS).

    Raises:
        ValueError: a setting has an invalid value
    """
    mode_name = str(settings.get("send_mode", DEFAULT_SETTINGS["send_mode"])).upper()
    try:
        send_mode = SendDataMode[mode_name]
    except KeyError:
        raise ValueError(f"Unknown send_mode: {settings.get('send_mode')!r}") from None

    timeout = settings.get("matchmaking_timeout", DEFAULT_SETTINGS["matchmaking_timeout"])
    return SessionConfig(
        required_players=settings.get("required_players", DEFAULT_SETTINGS["required_players"]),
        matchmaking_timeout=float(timeout) if timeout is not None else None,
        host_authoritative_counter=settings.get(
            "host_authoritative_counter", DEFAULT_SETTINGS["host_authoritative_counter"]
        ),
        send_mode=send_mode,
    )


def load_config(path: Optional[Path] = None) -> SessionConfig:
    """Load the settings file and validate it into a SessionConfig."""
    return config_from_settings(load_settings(path))
