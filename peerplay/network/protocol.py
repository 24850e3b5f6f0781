"""Session protocol: message types and JSON serialization.

Wire format (one payload per transport message, no framing):
    {"action": "startGame"}
    {"action": "updateCounter", "counterValue": 3}

The "action" tag identifies the message. Payloads carrying a tag this
version does not know decode to None so newer peers can add messages
without breaking older ones.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import ProtocolDecodeError


class MessageType(Enum):
    """Session message tags, valued by their wire name."""
    START_GAME = 'startGame'          # Host → Guests: all players present, game begins
    UPDATE_COUNTER = 'updateCounter'  # Any → All: new counter value


@dataclass(frozen=True)
class StartGame:
    """Host tells everyone the game is starting."""
    type = MessageType.START_GAME

    def to_payload(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_payload(cls, obj: Dict[str, Any]) -> 'StartGame':
        return cls()


@dataclass(frozen=True)
class UpdateCounter:
    """Replicates the shared counter. Receivers overwrite their value."""
    value: int
    type = MessageType.UPDATE_COUNTER

    def __post_init__(self):
        if not _is_counter_value(self.value):
            raise ValueError(f"Counter value must be a non-negative integer, got {self.value!r}")

    def to_payload(self) -> Dict[str, Any]:
        return {'counterValue': self.value}

    @classmethod
    def from_payload(cls, obj: Dict[str, Any]) -> 'UpdateCounter':
        if 'counterValue' not in obj:
            raise ProtocolDecodeError("updateCounter without counterValue")
        value = obj['counterValue']
        if not _is_counter_value(value):
            raise ProtocolDecodeError(f"Invalid counterValue: {value!r}")
        return cls(value=value)


Message = Union[StartGame, UpdateCounter]

_MESSAGE_CLASSES = {
    MessageType.START_GAME.value: StartGame,
    MessageType.UPDATE_COUNTER.value: UpdateCounter,
}


def _is_counter_value(value: Any) -> bool:
    # bool is an int subclass; JSON true must not become 1
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def encode(message: Message) -> bytes:
    """Serialize message to UTF-8 JSON bytes."""
    data = {'action': message.type.value}
    data.update(message.to_payload())
    return json.dumps(data, separators=(',', ':')).encode('utf-8')


def decode(data: bytes) -> Optional[Message]:
    """Deserialize a payload.

    Returns None for well-formed payloads with an unknown action.

    Raises:
        ProtocolDecodeError: payload is not a valid session message
    """
    try:
        obj = json.loads(bytes(data).decode('utf-8'))
    except (UnicodeDecodeError, ValueError, TypeError, RecursionError) as e:
        raise ProtocolDecodeError(f"Malformed payload: {e}") from e

    if not isinstance(obj, dict):
        raise ProtocolDecodeError(f"Expected JSON object, got {type(obj).__name__}")

    action = obj.get('action')
    if not isinstance(action, str):
        raise ProtocolDecodeError("Missing or invalid action tag")

    message_cls = _MESSAGE_CLASSES.get(action)
    if message_cls is None:
        return None
    return message_cls.from_payload(obj)


# =============================================================================
# MESSAGE BUILDERS
# =============================================================================

def msg_start_game() -> bytes:
    """Encoded startGame message."""
    return encode(StartGame())


def msg_update_counter(value: int) -> bytes:
    """Encoded updateCounter message."""
    return encode(UpdateCounter(value=value))
