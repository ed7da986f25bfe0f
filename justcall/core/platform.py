"""
Platform-specific defaults.

Default keybindings follow each OS's modifier convention (Cmd on macOS,
Ctrl elsewhere) and the settings file lives in the per-user config
directory of the platform.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

APP_DIR_NAME = "JustCall"
SETTINGS_FILE_NAME = "settings.json"


@dataclass(frozen=True)
class KeybindDefaults:
    join_primary: str
    hangup: str


def platform_name(platform: str | None = None) -> str:
    """Human-readable platform name for logs and CLI output."""
    platform = platform or sys.platform
    if platform == "darwin":
        return "macOS"
    if platform.startswith("win"):
        return "Windows"
    if platform.startswith("linux"):
        return "Linux"
    return "Unknown"


def is_macos(platform: str | None = None) -> bool:
    return (platform or sys.platform) == "darwin"


def get_default_keybinds(platform: str | None = None) -> KeybindDefaults:
    """Return default hotkeys that feel native on the given platform."""
    name = platform_name(platform)
    if name == "macOS":
        return KeybindDefaults("Cmd+Shift+J", "Cmd+Shift+H")
    if name in ("Windows", "Linux"):
        return KeybindDefaults("Ctrl+Shift+J", "Ctrl+Shift+H")
    return KeybindDefaults("Ctrl+Alt+J", "Ctrl+Alt+H")


def default_settings_path(platform: str | None = None) -> Path:
    """
    Resolve the per-user settings file location.

    - Windows: %APPDATA%\\JustCall\\settings.json
    - macOS: ~/Library/Application Support/JustCall/settings.json
    - Linux/other: $XDG_CONFIG_HOME/justcall/settings.json (~/.config fallback)
    """
    name = platform_name(platform)
    if name == "Windows":
        appdata = os.getenv("APPDATA")
        base = Path(appdata) if appdata else (Path.home() / "AppData" / "Roaming")
        return base / APP_DIR_NAME / SETTINGS_FILE_NAME
    if name == "macOS":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME / SETTINGS_FILE_NAME
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else (Path.home() / ".config")
    return base / APP_DIR_NAME.lower() / SETTINGS_FILE_NAME
