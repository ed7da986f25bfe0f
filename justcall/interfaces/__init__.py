"""Abstract interfaces for infrastructure abstraction."""

from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.interfaces.shortcut_backend import IShortcutBackend

__all__ = [
    "IMeetingLauncher",
    "IShortcutBackend",
]
