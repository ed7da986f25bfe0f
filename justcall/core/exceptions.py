"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class JustCallError(Exception):
    """Base exception for justcall."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(JustCallError):
    """Validation error."""

    pass


class NotFoundError(JustCallError):
    """Resource not found."""

    pass


class TargetNotFoundError(NotFoundError):
    """No call target with the requested id (or no primary target)."""

    def __init__(self, target_id: Optional[str], message: Optional[str] = None):
        super().__init__(
            message or f"Target not found: {target_id}",
            details={"target_id": target_id},
        )
        self.target_id = target_id


class DuplicateError(JustCallError):
    """Duplicate resource detected."""

    pass


class DuplicateTargetError(DuplicateError):
    """A target with the same id already exists."""

    pass


class HotkeyError(JustCallError):
    """Hotkey-related error."""

    pass


class InvalidHotkeyFormatError(HotkeyError):
    """Hotkey string does not follow the Modifier(+Modifier)*+Key grammar."""

    def __init__(self, hotkey: str, reason: str):
        super().__init__(
            f"Invalid hotkey format '{hotkey}': {reason}",
            details={"hotkey": hotkey, "reason": reason},
        )
        self.hotkey = hotkey
        self.reason = reason


class HotkeyConflictError(HotkeyError):
    """Hotkey is already bound to another action."""

    pass


class HotkeyRegistrationError(HotkeyError):
    """The OS shortcut facility refused a (un)registration."""

    pass


class InvalidStateTransitionError(JustCallError):
    """Requested call state transition is not in the transition table."""

    def __init__(self, current: Any, requested: Any, message: Optional[str] = None):
        super().__init__(
            message
            or f"Cannot transition from {getattr(current, 'value', current)} "
            f"to {getattr(requested, 'value', requested)}",
            details={"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class InfrastructureError(JustCallError):
    """Infrastructure-related error (disk, OS facilities, external services)."""

    pass


class PersistenceReadError(InfrastructureError):
    """Settings document could not be read or parsed."""

    pass


class PersistenceWriteError(InfrastructureError):
    """Settings document could not be written."""

    pass


class RandomSourceUnavailableError(InfrastructureError):
    """The operating system CSPRNG is not available."""

    pass


class LaunchError(InfrastructureError):
    """The meeting could not be handed off to the external viewer."""

    pass
