"""
pynput global shortcut backend.

pynput's GlobalHotKeys takes its whole mapping at construction, so every
change restarts the listener with the updated mapping.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Optional

from justcall.core.exceptions import HotkeyRegistrationError
from justcall.core.logger import setup_logger
from justcall.interfaces.shortcut_backend import IShortcutBackend
from justcall.models.hotkey import Hotkey

if TYPE_CHECKING:
    from pynput.keyboard import GlobalHotKeys

logger = setup_logger(__name__)


class PynputShortcutBackend(IShortcutBackend):
    """System-wide hotkeys via a pynput listener thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bindings: dict[str, tuple[Hotkey, Callable[[], None]]] = {}
        self._listener: Optional["GlobalHotKeys"] = None

    def register(self, hotkey: Hotkey, callback: Callable[[], None]) -> None:
        with self._lock:
            previous = self._bindings.get(hotkey.canonical)
            self._bindings[hotkey.canonical] = (hotkey, callback)
            try:
                self._restart_listener()
            except Exception as exc:
                if previous is None:
                    self._bindings.pop(hotkey.canonical, None)
                else:
                    self._bindings[hotkey.canonical] = previous
                self._resume_previous()
                raise HotkeyRegistrationError(
                    f"Failed to register hotkey '{hotkey}': {exc}"
                ) from exc

    def unregister(self, hotkey: Hotkey) -> None:
        with self._lock:
            if self._bindings.pop(hotkey.canonical, None) is None:
                return
            try:
                self._restart_listener()
            except Exception as exc:
                raise HotkeyRegistrationError(
                    f"Failed to unregister hotkey '{hotkey}': {exc}"
                ) from exc

    def shutdown(self) -> None:
        with self._lock:
            self._bindings.clear()
            self._stop_listener()

    # -- Listener management

    def _restart_listener(self) -> None:
        self._stop_listener()
        if not self._bindings:
            return
        mapping = {
            bound.to_pynput(): callback for bound, callback in self._bindings.values()
        }
        listener = self._create_listener(mapping)
        listener.daemon = True
        listener.start()
        self._listener = listener
        logger.debug(f"Listening for {len(mapping)} global hotkeys")

    def _create_listener(self, mapping: dict[str, Callable[[], None]]) -> "GlobalHotKeys":
        # Imported here: pynput binds to the display server on import
        from pynput import keyboard

        return keyboard.GlobalHotKeys(mapping)

    def _resume_previous(self) -> None:
        try:
            self._restart_listener()
        except Exception:
            logger.exception("Failed to restore previous global hotkeys")

    def _stop_listener(self) -> None:
        listener = self._listener
        self._listener = None
        if listener is not None:
            listener.stop()
