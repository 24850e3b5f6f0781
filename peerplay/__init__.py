"""Two-player session state machine over an abstract peer transport."""

from .version import __version__
