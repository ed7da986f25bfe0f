"""
Hotkey registry.

Owns the live mapping from key combinations to ShortcutActions and keeps
the OS-level shortcut backend in sync with it. When a registered
combination fires, listeners are notified with the bound action.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from justcall.core.exceptions import (
    HotkeyError,
    HotkeyRegistrationError,
    InvalidHotkeyFormatError,
)
from justcall.core.logger import setup_logger
from justcall.interfaces.shortcut_backend import IShortcutBackend
from justcall.models.hotkey import Hotkey
from justcall.models.settings import Keybinds
from justcall.models.shortcut import (
    HangupAction,
    JoinPrimaryAction,
    JoinTargetAction,
    ShortcutAction,
)

logger = setup_logger(__name__)

ActionListener = Callable[[ShortcutAction], None]


class HotkeyRegistry:
    """
    Registry of system-wide hotkeys.

    Handles:
    - Parsing and validating hotkey strings
    - Replacing an existing binding when the same combination is registered again
    - Dispatching fired combinations to listeners
    - Releasing every binding on close()

    close() must be called before the registry is dropped; using the
    registry as a context manager guarantees it.
    """

    def __init__(self, backend: IShortcutBackend):
        self._backend = backend
        # Serializes register/unregister; never taken on the dispatch path
        self._registration_lock = threading.Lock()
        # Guards _bindings and _listeners; held only for short copies
        self._bindings_lock = threading.Lock()
        self._bindings: dict[str, tuple[Hotkey, ShortcutAction]] = {}
        self._listeners: list[ActionListener] = []
        self._closed = False

    # -- Listeners

    def add_listener(self, listener: ActionListener) -> None:
        with self._bindings_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ActionListener) -> None:
        with self._bindings_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # -- Registration

    def register(self, hotkey: str, action: ShortcutAction) -> Hotkey:
        """
        Bind hotkey to action. The last registration for a combination wins.

        Returns:
            The parsed hotkey

        Raises:
            InvalidHotkeyFormatError: If hotkey does not follow the grammar
            HotkeyRegistrationError: If the OS facility refuses it or the registry is closed
        """
        parsed = Hotkey.parse(hotkey)
        with self._registration_lock:
            if self._closed:
                raise HotkeyRegistrationError("Hotkey registry is closed")

            if self._lookup(parsed.canonical) is not None:
                logger.warning(f"Hotkey conflict: {parsed} already bound, replacing its action")
                self._release(parsed)

            canonical = parsed.canonical
            try:
                self._backend.register(parsed, lambda: self._fire(canonical))
            except HotkeyError:
                raise
            except Exception as e:
                raise HotkeyRegistrationError(f"Failed to register hotkey '{parsed}': {e}") from e

            with self._bindings_lock:
                self._bindings[canonical] = (parsed, action)

        logger.info(f"Registered hotkey {parsed} -> {action.kind}")
        return parsed

    def unregister(self, hotkey: str) -> None:
        """
        Remove the binding for hotkey. Unbound combinations are ignored.

        Raises:
            InvalidHotkeyFormatError: If hotkey does not follow the grammar
            HotkeyRegistrationError: If the OS facility refuses the removal
        """
        parsed = Hotkey.parse(hotkey)
        with self._registration_lock:
            if self._lookup(parsed.canonical) is None:
                return
            self._release(parsed)
        logger.info(f"Unregistered hotkey {parsed}")

    def unregister_all(self) -> None:
        """Best-effort removal of every binding. Failures are logged, never raised."""
        with self._registration_lock:
            with self._bindings_lock:
                bound = [hotkey for hotkey, _ in self._bindings.values()]
                self._bindings.clear()
            for hotkey in bound:
                try:
                    self._backend.unregister(hotkey)
                except Exception:
                    logger.exception(f"Failed to unregister hotkey {hotkey}")
        if bound:
            logger.info(f"Unregistered {len(bound)} hotkeys")

    def is_registered(self, hotkey: str) -> bool:
        try:
            parsed = Hotkey.parse(hotkey)
        except InvalidHotkeyFormatError:
            return False
        return self._lookup(parsed.canonical) is not None

    def registered_hotkeys(self) -> dict[str, ShortcutAction]:
        """Snapshot of display string -> action."""
        with self._bindings_lock:
            return {str(hotkey): action for hotkey, action in self._bindings.values()}

    # -- Keybind setup

    def setup_default_hotkeys(self, keybinds: Keybinds) -> dict[str, HotkeyError]:
        """
        Register join_primary and hangup from keybinds.

        Each binding is attempted independently.

        Returns:
            Failures keyed by keybind name; empty when everything registered
        """
        failures: dict[str, HotkeyError] = {}
        self._try_register(failures, "join_primary", keybinds.join_primary, JoinPrimaryAction())
        self._try_register(failures, "hangup", keybinds.hangup, HangupAction())
        return failures

    def setup_target_hotkeys(self, keybinds: Keybinds) -> dict[str, HotkeyError]:
        """Register every per-target hotkey. Failures keyed by "target:<id>"."""
        failures: dict[str, HotkeyError] = {}
        for target_id, hotkey in keybinds.target_hotkeys.items():
            self._try_register(
                failures, f"target:{target_id}", hotkey, JoinTargetAction(target_id=target_id)
            )
        return failures

    def apply_keybinds(self, keybinds: Keybinds) -> dict[str, HotkeyError]:
        """Replace every binding with the ones described by keybinds."""
        self.unregister_all()
        failures = self.setup_default_hotkeys(keybinds)
        failures.update(self.setup_target_hotkeys(keybinds))
        return failures

    # -- Dispatch

    def dispatch(self, hotkey: str) -> Optional[ShortcutAction]:
        """
        Resolve a fired combination and notify listeners.

        Called from the backend's listener thread.

        Returns:
            The bound action, or None if the combination is not registered
        """
        try:
            canonical = Hotkey.parse(hotkey).canonical
        except InvalidHotkeyFormatError:
            logger.warning(f"Ignoring malformed fired hotkey {hotkey!r}")
            return None
        return self._fire(canonical)

    def _fire(self, canonical: str) -> Optional[ShortcutAction]:
        with self._bindings_lock:
            binding = self._bindings.get(canonical)
            listeners = list(self._listeners)
        if binding is None:
            logger.debug(f"Fired hotkey {canonical} is not registered")
            return None

        parsed, action = binding
        logger.info(f"Hotkey pressed: {parsed} -> {action.kind}")
        for listener in listeners:
            try:
                listener(action)
            except Exception:
                logger.exception(f"Hotkey listener failed for {parsed}")
        return action

    # -- Lifecycle

    def close(self) -> None:
        """Unregister everything and stop the backend. Safe to call twice."""
        with self._registration_lock:
            if self._closed:
                return
            self._closed = True
        logger.info("Hotkey registry closing, cleaning up hotkeys")
        self.unregister_all()
        try:
            self._backend.shutdown()
        except Exception:
            logger.exception("Failed to shut down shortcut backend")

    def __enter__(self) -> "HotkeyRegistry":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- Helpers

    def _lookup(self, canonical: str) -> Optional[tuple[Hotkey, ShortcutAction]]:
        with self._bindings_lock:
            return self._bindings.get(canonical)

    def _release(self, parsed: Hotkey) -> None:
        try:
            self._backend.unregister(parsed)
        except HotkeyError:
            raise
        except Exception as e:
            raise HotkeyRegistrationError(f"Failed to unregister hotkey '{parsed}': {e}") from e
        with self._bindings_lock:
            self._bindings.pop(parsed.canonical, None)

    def _try_register(
        self,
        failures: dict[str, HotkeyError],
        name: str,
        hotkey: str,
        action: ShortcutAction,
    ) -> None:
        if not hotkey:
            return
        try:
            self.register(hotkey, action)
        except HotkeyError as e:
            logger.error(f"Failed to set up {name} hotkey: {e.message}")
            failures[name] = e
