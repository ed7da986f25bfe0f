"""
Hotkey grammar: Modifier(+Modifier)*+Key.

Matching is case-insensitive and ignores modifier order, so "ctrl+shift+j"
and "Shift+Ctrl+J" are the same binding. The text the user typed is kept
for display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from justcall.core.exceptions import InvalidHotkeyFormatError
from justcall.core.platform import is_macos


class Modifier(str, Enum):
    CTRL = "ctrl"
    ALT = "alt"
    SHIFT = "shift"
    CMD = "cmd"


# Canonical ordering used when rendering
_MODIFIER_ORDER = (Modifier.CTRL, Modifier.ALT, Modifier.SHIFT, Modifier.CMD)

_MODIFIER_ALIASES: dict[str, Modifier] = {
    "ctrl": Modifier.CTRL,
    "control": Modifier.CTRL,
    "alt": Modifier.ALT,
    "option": Modifier.ALT,
    "opt": Modifier.ALT,
    "shift": Modifier.SHIFT,
    "cmd": Modifier.CMD,
    "command": Modifier.CMD,
    "super": Modifier.CMD,
    "meta": Modifier.CMD,
    "win": Modifier.CMD,
}

# Primary modifier: Cmd on macOS, Ctrl elsewhere
_PRIMARY_ALIASES = {"cmdorctrl", "commandorcontrol", "cmdorcontrol", "commandorctrl"}

_NAMED_KEYS: dict[str, str] = {
    "space": "space",
    "enter": "enter",
    "return": "enter",
    "tab": "tab",
    "esc": "esc",
    "escape": "esc",
    "backspace": "backspace",
    "delete": "delete",
    "del": "delete",
    "insert": "insert",
    "home": "home",
    "end": "end",
    "pageup": "page_up",
    "page_up": "page_up",
    "pgup": "page_up",
    "pagedown": "page_down",
    "page_down": "page_down",
    "pgdn": "page_down",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
}

MAX_FUNCTION_KEY = 20


def _normalize_key(token: str) -> str | None:
    lowered = token.lower()
    if len(token) == 1 and token.isascii() and token.isalnum():
        return lowered
    if lowered.startswith("f") and lowered[1:].isdigit():
        number = int(lowered[1:])
        if 1 <= number <= MAX_FUNCTION_KEY:
            return f"f{number}"
        return None
    return _NAMED_KEYS.get(lowered)


@dataclass(frozen=True)
class Hotkey:
    """A parsed key combination."""

    modifiers: frozenset[Modifier]
    key: str
    display: str = field(compare=False)

    @classmethod
    def parse(cls, text: str, *, platform: str | None = None) -> "Hotkey":
        """
        Parse a hotkey string.

        Args:
            text: e.g. "Ctrl+Shift+J", "Cmd+Opt+F5", "CmdOrCtrl+Alt+Space"
            platform: sys.platform value used to resolve CmdOrCtrl

        Returns:
            Parsed Hotkey

        Raises:
            InvalidHotkeyFormatError: If the text does not follow the grammar
        """
        raw = (text or "").strip()
        if not raw:
            raise InvalidHotkeyFormatError(text, "hotkey is empty")

        tokens = [token.strip() for token in raw.split("+")]
        if any(not token for token in tokens):
            raise InvalidHotkeyFormatError(text, "empty key token")
        if len(tokens) < 2:
            raise InvalidHotkeyFormatError(text, "at least one modifier is required")

        modifiers: set[Modifier] = set()
        for token in tokens[:-1]:
            lowered = token.lower()
            if lowered in _PRIMARY_ALIASES:
                modifier = Modifier.CMD if is_macos(platform) else Modifier.CTRL
            else:
                modifier = _MODIFIER_ALIASES.get(lowered)
            if modifier is None:
                raise InvalidHotkeyFormatError(text, f"unknown modifier '{token}'")
            if modifier in modifiers:
                raise InvalidHotkeyFormatError(text, f"duplicate modifier '{token}'")
            modifiers.add(modifier)

        key = _normalize_key(tokens[-1])
        if key is None:
            raise InvalidHotkeyFormatError(text, f"unknown key '{tokens[-1]}'")

        return cls(modifiers=frozenset(modifiers), key=key, display=raw)

    @property
    def canonical(self) -> str:
        """Order- and case-independent form used for matching."""
        parts = [m.value for m in _MODIFIER_ORDER if m in self.modifiers]
        parts.append(self.key)
        return "+".join(parts)

    def to_pynput(self) -> str:
        """Render in pynput GlobalHotKeys syntax, e.g. "<ctrl>+<shift>+j"."""
        parts = [f"<{m.value}>" for m in _MODIFIER_ORDER if m in self.modifiers]
        parts.append(self.key if len(self.key) == 1 else f"<{self.key}>")
        return "+".join(parts)

    def __str__(self) -> str:
        return self.display


def canonical_hotkey(text: str) -> str | None:
    """Canonical form of text, or None if it is not a valid hotkey."""
    try:
        return Hotkey.parse(text).canonical
    except InvalidHotkeyFormatError:
        return None
