"""
Settings document models.

The whole document is persisted as one JSON file. Every optional field has
an explicit default so older documents that lack newer fields still parse;
the four top-level fields and the two core keybinds are required.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from justcall.core.pairing import generate_pairing_code
from justcall.core.platform import get_default_keybinds
from justcall.models.enums import TargetType, Theme
from justcall.models.hotkey import canonical_hotkey

CURRENT_SCHEMA_VERSION = 1


class AppSettings(BaseModel):
    """Global application preferences."""

    autostart: bool = False
    always_on_top: bool = True
    play_join_sound: bool = True
    show_notifications: bool = True
    theme: Theme = Theme.SYSTEM


class Keybinds(BaseModel):
    """Hotkey bindings. Strings are validated when registered, not on load."""

    join_primary: str
    hangup: str
    target_hotkeys: dict[str, str] = Field(default_factory=dict)
    toggle_mute: Optional[str] = None
    toggle_video: Optional[str] = None

    @classmethod
    def platform_default(cls) -> "Keybinds":
        defaults = get_default_keybinds()
        return cls(join_primary=defaults.join_primary, hangup=defaults.hangup)

    def find_binding(self, hotkey: str) -> Optional[str]:
        """
        Name of the keybind already using the same combination as hotkey.

        Per-target bindings are named "target:<id>". Returns None when the
        combination is free or hotkey cannot be parsed.
        """
        wanted = canonical_hotkey(hotkey)
        if wanted is None:
            return None
        named = {
            "join_primary": self.join_primary,
            "hangup": self.hangup,
            "toggle_mute": self.toggle_mute,
            "toggle_video": self.toggle_video,
        }
        named.update({f"target:{tid}": bound for tid, bound in self.target_hotkeys.items()})
        for name, bound in named.items():
            if bound and canonical_hotkey(bound) == wanted:
                return name
        return None


class CallDefaults(BaseModel):
    """Per-target call preferences."""

    start_with_audio: bool = True
    start_with_video: bool = True
    display_name: Optional[str] = None


class Target(BaseModel):
    """A person or group the user can call with one action."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    code: str = Field(..., description="Pairing code; immutable once created")
    target_type: TargetType = Field(..., alias="type")
    is_primary: bool = False
    call_defaults: CallDefaults = Field(default_factory=CallDefaults)
    created_at: datetime
    notes: Optional[str] = None

    @classmethod
    def create(
        cls,
        label: str,
        target_type: TargetType = TargetType.PERSON,
        *,
        code: Optional[str] = None,
        is_primary: bool = False,
        call_defaults: Optional[CallDefaults] = None,
        notes: Optional[str] = None,
    ) -> "Target":
        """
        Build a new target with a fresh id and creation time.

        Args:
            label: Display name chosen by the user
            target_type: Person or group
            code: Pairing code received from a partner; generated if omitted
            is_primary: Request primary status (the store reconciles it)
            call_defaults: Per-target call preferences
            notes: Free-form notes

        Returns:
            New Target (not yet stored)
        """
        return cls(
            id=f"tg_{uuid4().hex[:12]}",
            label=label,
            code=code or generate_pairing_code(),
            target_type=target_type,
            is_primary=is_primary,
            call_defaults=call_defaults or CallDefaults(),
            created_at=datetime.now(timezone.utc),
            notes=notes,
        )


class Settings(BaseModel):
    """Root settings document."""

    version: int = Field(..., ge=1, strict=True)
    app_settings: AppSettings
    keybinds: Keybinds
    targets: list[Target]

    @classmethod
    def default(cls) -> "Settings":
        """First-run settings: platform keybinds and no targets."""
        return cls(
            version=CURRENT_SCHEMA_VERSION,
            app_settings=AppSettings(),
            keybinds=Keybinds.platform_default(),
            targets=[],
        )

    def to_json(self) -> str:
        """Serialize to the on-disk JSON form."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Settings":
        """Parse the on-disk JSON form. Raises pydantic.ValidationError."""
        return cls.model_validate_json(raw)
