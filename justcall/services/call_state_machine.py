"""
Call state machine.

Owns the single process-wide CallState. Transitions are validated against
the transition table and every successful transition notifies observers
before transition_to() returns.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from justcall.core.exceptions import InvalidStateTransitionError
from justcall.core.logger import setup_logger
from justcall.models.enums import CallState
from justcall.models.events import CALL_STATE_CHANGED

logger = setup_logger(__name__)

StateObserver = Callable[[CallState], None]


class CallStateMachine:
    """
    Thread-safe holder of the current call state.

    Observers run synchronously on the transitioning thread while the state
    lock is held, so they see transitions in order. They must not block;
    they may read the state or call back into the machine (the lock is
    reentrant).
    """

    def __init__(self, initial: CallState = CallState.IDLE):
        self._state = initial
        self._lock = threading.RLock()
        self._observers: list[StateObserver] = []

    @property
    def state(self) -> CallState:
        with self._lock:
            return self._state

    def can_transition_to(self, next_state: CallState) -> bool:
        with self._lock:
            return self._state.can_transition_to(next_state)

    def transition_to(self, next_state: CallState) -> None:
        """
        Move to next_state and notify observers.

        Raises:
            InvalidStateTransitionError: If the table does not allow it (state unchanged)
        """
        with self._lock:
            current = self._state
            if not current.can_transition_to(next_state):
                raise InvalidStateTransitionError(current, next_state)
            self._state = next_state
            logger.info(f"Call state: {current.description} -> {next_state.description}")
            self._notify(next_state)

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """
        Register an observer for "call-state-changed".

        Returns:
            Callable that removes the observer
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    @contextmanager
    def locked(self) -> Iterator["CallStateMachine"]:
        """Hold the state lock across a read-modify-write sequence."""
        with self._lock:
            yield self

    def _notify(self, new_state: CallState) -> None:
        for observer in list(self._observers):
            try:
                observer(new_state)
            except Exception:
                logger.exception(f"{CALL_STATE_CHANGED} observer failed for {new_state.value}")
