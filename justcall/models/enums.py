"""
Enum definitions for the application.

These enums are used across models and provide type-safe state/type values.
"""

from enum import Enum


class TargetType(str, Enum):
    """Kind of call target."""

    PERSON = "person"
    GROUP = "group"


class Theme(str, Enum):
    """Theme preference."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class CallState(str, Enum):
    """
    Call lifecycle state.

    IDLE = No active call, ready to start
    CONNECTING = Join requested, waiting for the conference to confirm
    IN_CALL = Conference confirmed we joined
    DISCONNECTING = Leaving the call
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    IN_CALL = "in_call"
    DISCONNECTING = "disconnecting"

    def can_transition_to(self, next_state: "CallState") -> bool:
        """Check whether next_state is reachable from this state in one step."""
        return next_state in _TRANSITIONS[self]

    @property
    def is_busy(self) -> bool:
        return self is not CallState.IDLE

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_TRANSITIONS: dict[CallState, frozenset[CallState]] = {
    CallState.IDLE: frozenset({CallState.CONNECTING}),
    CallState.CONNECTING: frozenset({CallState.IN_CALL, CallState.DISCONNECTING}),
    CallState.IN_CALL: frozenset({CallState.DISCONNECTING}),
    CallState.DISCONNECTING: frozenset({CallState.IDLE}),
}

_DESCRIPTIONS: dict[CallState, str] = {
    CallState.IDLE: "ready",
    CallState.CONNECTING: "connecting",
    CallState.IN_CALL: "in call",
    CallState.DISCONNECTING: "disconnecting",
}
