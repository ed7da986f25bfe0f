"""
Meeting launcher interface.

Defines the contract for handing a meeting off to something outside the
core. Implementations: external browser, embedded conference window
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from justcall.models.meeting import MeetingRequest


class IMeetingLauncher(ABC):
    """Abstract interface for meeting launch collaborators."""

    @abstractmethod
    def launch(self, request: MeetingRequest) -> None:
        """
        Open the meeting described by request.

        Args:
            request: Room id, URL and per-call preferences

        Raises:
            LaunchError: If the hand-off fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close or clean up the current meeting, if the launcher owns one.

        Must be safe to call when nothing is open.
        """
        pass
