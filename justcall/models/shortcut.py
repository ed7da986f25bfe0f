"""
Shortcut actions: the decoded meaning of a fired hotkey.

ShortcutAction is a closed tagged union discriminated by "kind". Parsing an
unknown tag fails instead of falling back to a default action.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from justcall.core.exceptions import ValidationError


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class JoinPrimaryAction(_Action):
    """Join the primary target."""

    kind: Literal["join_primary"] = "join_primary"


class JoinTargetAction(_Action):
    """Join a specific target."""

    kind: Literal["join_target"] = "join_target"
    target_id: str = Field(..., min_length=1)


class HangupAction(_Action):
    """End the active call."""

    kind: Literal["hangup"] = "hangup"


ShortcutAction = Annotated[
    Union[JoinPrimaryAction, JoinTargetAction, HangupAction],
    Field(discriminator="kind"),
]

_action_adapter: TypeAdapter[ShortcutAction] = TypeAdapter(ShortcutAction)


def parse_shortcut_action(payload: Any) -> ShortcutAction:
    """
    Decode a ShortcutAction from a dict or its JSON text.

    Raises:
        ValidationError: On malformed payloads or unknown kinds
    """
    try:
        if isinstance(payload, (str, bytes)):
            return _action_adapter.validate_json(payload)
        return _action_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid shortcut action: {payload!r}", details=e.errors()) from e


def dump_shortcut_action(action: ShortcutAction) -> str:
    """Encode a ShortcutAction as JSON text."""
    return json.dumps(action.model_dump(), ensure_ascii=False)
