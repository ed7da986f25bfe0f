"""
Global shortcut backend interface.

Defines the contract for the OS-level facility that listens for system-wide
key combinations. Implementations: pynput
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from justcall.models.hotkey import Hotkey


class IShortcutBackend(ABC):
    """Abstract interface for system-wide shortcut listeners."""

    @abstractmethod
    def register(self, hotkey: Hotkey, callback: Callable[[], None]) -> None:
        """
        Start listening for hotkey.

        callback runs on the backend's listener thread each time the
        combination is pressed.

        Raises:
            HotkeyRegistrationError: If the OS refuses the shortcut
        """
        pass

    @abstractmethod
    def unregister(self, hotkey: Hotkey) -> None:
        """
        Stop listening for hotkey. Unknown hotkeys are ignored.

        Raises:
            HotkeyRegistrationError: If the OS refuses the removal
        """
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Stop the listener thread and release OS resources."""
        pass
