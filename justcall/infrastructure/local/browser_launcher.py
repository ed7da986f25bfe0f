"""
External browser meeting launcher.

Opens the meeting URL in the system default browser. The browser tab is
owned by the user once opened, so close() has nothing to tear down.
"""

import webbrowser

from justcall.core.exceptions import LaunchError
from justcall.core.logger import setup_logger
from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.models.meeting import MeetingRequest

logger = setup_logger(__name__)


class ExternalBrowserLauncher(IMeetingLauncher):
    """Hands meetings off to the default browser."""

    def launch(self, request: MeetingRequest) -> None:
        logger.info(f"Opening meeting in external browser: {request.url}")
        try:
            opened = webbrowser.open(request.url, new=2)
        except webbrowser.Error as e:
            raise LaunchError(f"Failed to open browser: {e}") from e
        if not opened:
            raise LaunchError(f"No browser available to open {request.url}")

    def close(self) -> None:
        logger.debug("External browser meetings are closed by the user")
