"""Error types raised by transports and the session protocol."""

from enum import Enum, auto
from typing import Optional


class AuthenticationErrorKind(Enum):
    """Why the local player could not be authenticated."""
    UNKNOWN = auto()
    CUSTOM = auto()
    CANCELLED = auto()
    REQUIRES_PRESENTATION = auto()


class AuthenticationError(Exception):
    """Local player is not signed in to the game service.

    Raised by transports; the session client only reports the message.
    """

    _DESCRIPTIONS = {
        AuthenticationErrorKind.UNKNOWN: "An unknown error occurred during authentication.",
        AuthenticationErrorKind.CANCELLED: "Authentication was cancelled.",
        AuthenticationErrorKind.REQUIRES_PRESENTATION:
            "Authentication is required. Please sign in to the game service.",
    }

    def __init__(self, kind: AuthenticationErrorKind, message: Optional[str] = None):
        self.kind = kind
        if kind == AuthenticationErrorKind.CUSTOM:
            if not message:
                raise ValueError("Custom authentication error needs a message")
            description = message
        else:
            description = self._DESCRIPTIONS[kind]
        super().__init__(description)

    @classmethod
    def custom(cls, message: str) -> 'AuthenticationError':
        return cls(AuthenticationErrorKind.CUSTOM, message)

    @classmethod
    def unknown(cls) -> 'AuthenticationError':
        return cls(AuthenticationErrorKind.UNKNOWN)

    @classmethod
    def cancelled(cls) -> 'AuthenticationError':
        return cls(AuthenticationErrorKind.CANCELLED)

    @classmethod
    def requires_presentation(cls) -> 'AuthenticationError':
        return cls(AuthenticationErrorKind.REQUIRES_PRESENTATION)


class TransportError(ConnectionError):
    """Matchmaking or peer messaging failed."""


class NoActiveMatchError(TransportError):
    """Tried to send while no match is in progress."""

    def __init__(self, message: str = "No active match"):
        super().__init__(message)


class ProtocolDecodeError(ValueError):
    """Inbound payload is not a well-formed session message."""
