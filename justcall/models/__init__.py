"""Pydantic models (schemas) for the application."""

from justcall.models.enums import CallState, TargetType, Theme
from justcall.models.events import (
    CALL_STATE_CHANGED,
    LIFECYCLE_EVENTS,
    REMOTE_JOINED,
    REMOTE_LEFT,
)
from justcall.models.hotkey import Hotkey, Modifier
from justcall.models.meeting import MeetingRequest
from justcall.models.settings import (
    CURRENT_SCHEMA_VERSION,
    AppSettings,
    CallDefaults,
    Keybinds,
    Settings,
    Target,
)
from justcall.models.shortcut import (
    HangupAction,
    JoinPrimaryAction,
    JoinTargetAction,
    ShortcutAction,
    dump_shortcut_action,
    parse_shortcut_action,
)

__all__ = [
    # Enums
    "CallState",
    "TargetType",
    "Theme",
    # Settings document
    "CURRENT_SCHEMA_VERSION",
    "AppSettings",
    "CallDefaults",
    "Keybinds",
    "Settings",
    "Target",
    # Hotkeys and actions
    "Hotkey",
    "Modifier",
    "HangupAction",
    "JoinPrimaryAction",
    "JoinTargetAction",
    "ShortcutAction",
    "dump_shortcut_action",
    "parse_shortcut_action",
    # Launch
    "MeetingRequest",
    # Lifecycle events
    "CALL_STATE_CHANGED",
    "LIFECYCLE_EVENTS",
    "REMOTE_JOINED",
    "REMOTE_LEFT",
]
