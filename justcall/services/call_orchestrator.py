"""
Call orchestrator.

Turns user intents (join, hangup) and conference lifecycle signals into
state transitions and launcher calls. The active target is guarded by the
state machine's lock so the check-and-transition in join() is atomic.
"""

from __future__ import annotations

from typing import Optional

from justcall.core.exceptions import (
    InvalidStateTransitionError,
    JustCallError,
    TargetNotFoundError,
    ValidationError,
)
from justcall.core.logger import setup_logger
from justcall.core.pairing import build_meeting_url, derive_room_id
from justcall.infrastructure.local.settings_store import ConfigurationStore
from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.models.enums import CallState
from justcall.models.events import LIFECYCLE_EVENTS, REMOTE_JOINED, REMOTE_LEFT
from justcall.models.meeting import MeetingRequest
from justcall.models.shortcut import (
    HangupAction,
    JoinPrimaryAction,
    JoinTargetAction,
    ShortcutAction,
)
from justcall.services.call_state_machine import CallStateMachine

logger = setup_logger(__name__)


class CallOrchestrator:
    """
    Coordinates ConfigurationStore, CallStateMachine and a meeting launcher.

    Launcher calls are made outside the state lock. A failed launch is logged
    and leaves the state in CONNECTING; the user recovers with hangup.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        state_machine: CallStateMachine,
        launcher: IMeetingLauncher,
        conference_host: str,
        display_name: str,
    ):
        self._store = store
        self._machine = state_machine
        self._launcher = launcher
        self._conference_host = conference_host
        self._display_name = display_name
        self._active_target_id: Optional[str] = None

    @property
    def state(self) -> CallState:
        return self._machine.state

    @property
    def active_target_id(self) -> Optional[str]:
        with self._machine.locked():
            return self._active_target_id

    # -- Intents

    def join(self, target_id: str) -> MeetingRequest:
        """
        Start a call with target_id.

        Returns:
            The meeting request handed to the launcher

        Raises:
            InvalidStateTransitionError: If a call is already in progress
            TargetNotFoundError: If no target has this id (state unchanged)
        """
        with self._machine.locked() as machine:
            current = machine.state
            if current is not CallState.IDLE:
                raise InvalidStateTransitionError(
                    current,
                    CallState.CONNECTING,
                    f"Cannot join while {current.description}",
                )

            target = self._store.get_target(target_id)
            if target is None:
                raise TargetNotFoundError(target_id)

            room_id = derive_room_id(target.code)
            request = MeetingRequest(
                room_id=room_id,
                url=build_meeting_url(room_id, self._conference_host),
                target_id=target.id,
                target_label=target.label,
                display_name=target.call_defaults.display_name or self._display_name,
                start_with_audio=target.call_defaults.start_with_audio,
                start_with_video=target.call_defaults.start_with_video,
                always_on_top=self._store.app_settings.always_on_top,
            )
            machine.transition_to(CallState.CONNECTING)
            self._active_target_id = target.id

        logger.info(f"Joining {target.label} in room {room_id}")
        try:
            self._launcher.launch(request)
        except Exception:
            logger.exception(f"Failed to launch meeting for {target.label}")
        return request

    def join_primary(self) -> MeetingRequest:
        """
        Start a call with the primary target.

        Raises:
            TargetNotFoundError: If there are no targets
            InvalidStateTransitionError: If a call is already in progress
        """
        primary = self._store.get_primary_target()
        if primary is None:
            raise TargetNotFoundError(None, "No primary target configured")
        return self.join(primary.id)

    def hangup(self) -> bool:
        """
        End the current call. No-op while idle.

        Returns:
            True if a call was ended
        """
        with self._machine.locked() as machine:
            if machine.state is CallState.IDLE:
                logger.debug("Hangup requested while idle, ignoring")
                return False
            if machine.state is not CallState.DISCONNECTING:
                machine.transition_to(CallState.DISCONNECTING)
            self._active_target_id = None
            machine.transition_to(CallState.IDLE)

        try:
            self._launcher.close()
        except Exception:
            logger.exception("Failed to close meeting")
        return True

    # -- Conference lifecycle

    def on_remote_joined(self) -> None:
        with self._machine.locked() as machine:
            if machine.state is not CallState.CONNECTING:
                logger.debug(f"Ignoring {REMOTE_JOINED} while {machine.state.description}")
                return
            machine.transition_to(CallState.IN_CALL)

    def on_remote_left(self) -> None:
        with self._machine.locked() as machine:
            if machine.state is CallState.IDLE:
                logger.debug(f"Ignoring {REMOTE_LEFT} while idle")
                return
            if machine.state is not CallState.DISCONNECTING:
                machine.transition_to(CallState.DISCONNECTING)
            self._active_target_id = None
            machine.transition_to(CallState.IDLE)

    def handle_lifecycle_event(self, name: str) -> None:
        """
        Route a named conference event.

        Raises:
            ValidationError: If the event name is unknown
        """
        if name not in LIFECYCLE_EVENTS:
            raise ValidationError(f"Unknown lifecycle event: {name}", details={"event": name})
        if name == REMOTE_JOINED:
            self.on_remote_joined()
        else:
            self.on_remote_left()

    # -- Shortcuts

    def handle_action(self, action: ShortcutAction) -> None:
        if isinstance(action, JoinPrimaryAction):
            self.join_primary()
        elif isinstance(action, JoinTargetAction):
            self.join(action.target_id)
        elif isinstance(action, HangupAction):
            self.hangup()
        else:
            raise ValidationError(f"Unsupported shortcut action: {action!r}")

    def on_shortcut(self, action: ShortcutAction) -> None:
        """Registry listener. Runs on the hotkey thread, so errors are logged."""
        try:
            self.handle_action(action)
        except InvalidStateTransitionError as e:
            logger.warning(f"Ignoring {action.kind}: {e.message}")
        except JustCallError as e:
            logger.error(f"Shortcut {action.kind} failed: {e.message}")
