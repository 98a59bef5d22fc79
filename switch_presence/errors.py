"""Exception hierarchy shared by all switch_presence components."""

from __future__ import annotations


class SwitchPresenceError(Exception):
    """Base error for switch_presence failures."""


class DecodeError(SwitchPresenceError):
    """Raised when a frame from the console cannot be decoded."""


class TransportError(SwitchPresenceError):
    """Raised when the Discord IPC transport fails."""


class StartupError(SwitchPresenceError):
    """Raised when the Discord session cannot be established."""
