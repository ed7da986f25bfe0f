"""
Embedded conference window (pywebview).

Hosts the conferencing service's IFrame API in a pywebview window and
forwards its lifecycle back into the core as "remote-joined" and
"remote-left" events. Only one conference window exists at a time.
"""

from __future__ import annotations

import json
import threading
import time
from string import Template
from typing import Any, Callable, Optional

import webview

from justcall.core.exceptions import LaunchError
from justcall.core.logger import setup_logger
from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.models.events import REMOTE_JOINED, REMOTE_LEFT
from justcall.models.meeting import MeetingRequest

logger = setup_logger(__name__)

HANGUP_GRACE_SECONDS = 0.1

_CONFERENCE_HTML = Template(
    """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>JustCall</title>
<style>html, body, #meet { margin: 0; width: 100%; height: 100%; background: #111; }</style>
<script src="https://$host/external_api.js"></script>
</head>
<body>
<div id="meet"></div>
<script>
const cfg = $config;
function startMeeting() {
  const api = new JitsiMeetExternalAPI(cfg.host, {
    roomName: cfg.room_id,
    parentNode: document.getElementById("meet"),
    userInfo: { displayName: cfg.display_name },
    configOverwrite: {
      startWithAudioMuted: !cfg.start_with_audio,
      startWithVideoMuted: !cfg.start_with_video,
      prejoinPageEnabled: false
    }
  });
  api.addListener("videoConferenceJoined", () => window.pywebview.api.conference_joined());
  api.addListener("videoConferenceLeft", () => window.pywebview.api.conference_left());
  window.justcallHangup = () => api.executeCommand("hangup");
}
window.addEventListener("pywebviewready", startMeeting);
</script>
</body>
</html>
"""
)


def _js_value(value: Any) -> str:
    """Safely encode a Python value for embedding in an inline script."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def render_conference_html(request: MeetingRequest, host: str) -> str:
    config = {
        "host": host,
        "room_id": request.room_id,
        "display_name": request.display_name,
        "start_with_audio": request.start_with_audio,
        "start_with_video": request.start_with_video,
    }
    return _CONFERENCE_HTML.substitute(host=host, config=_js_value(config))


class ConferenceWindowApi:
    """Exposed to JavaScript in the conference window via pywebview.api."""

    def __init__(self, bridge: "ConferenceWindowBridge"):
        self._bridge = bridge

    def conference_joined(self) -> None:
        self._bridge._emit(REMOTE_JOINED)

    def conference_left(self) -> None:
        self._bridge._emit(REMOTE_LEFT)
        self._bridge.close()


class ConferenceWindowBridge(IMeetingLauncher):
    """
    Launches meetings in an embedded window and reports their lifecycle.

    The event handler receives REMOTE_JOINED / REMOTE_LEFT and is called from
    pywebview's threads. close() must be called before the bridge is dropped;
    the bridge is also a context manager that closes on exit.
    """

    def __init__(
        self,
        host: str,
        *,
        width: int = 1024,
        height: int = 768,
        title: str = "JustCall",
        on_event: Optional[Callable[[str], None]] = None,
    ):
        self._host = host
        self._width = width
        self._height = height
        self._title = title
        self._on_event = on_event
        self._lock = threading.Lock()
        self._window: Any = None

    def set_event_handler(self, handler: Callable[[str], None]) -> None:
        self._on_event = handler

    def is_open(self) -> bool:
        with self._lock:
            return self._window is not None

    def launch(self, request: MeetingRequest) -> None:
        html = render_conference_html(request, self._host)
        with self._lock:
            existing = self._window
            if existing is not None:
                logger.info(f"Conference window already open, switching to room {request.room_id}")
                try:
                    existing.load_html(html)
                    existing.show()
                except Exception as e:
                    raise LaunchError(f"Failed to reuse conference window: {e}") from e
                return

            logger.info(f"Opening conference window for room {request.room_id}")
            try:
                window = webview.create_window(
                    f"{self._title} - {request.target_label}",
                    html=html,
                    js_api=ConferenceWindowApi(self),
                    width=self._width,
                    height=self._height,
                    min_size=(640, 480),
                    on_top=request.always_on_top,
                )
            except Exception as e:
                raise LaunchError(f"Failed to create conference window: {e}") from e
            window.events.closed += lambda: self._on_window_closed(window)
            self._window = window

    def close(self) -> None:
        with self._lock:
            window = self._window
            self._window = None
        if window is None:
            return
        logger.info("Closing conference window")
        try:
            window.evaluate_js("window.justcallHangup && window.justcallHangup()")
            time.sleep(HANGUP_GRACE_SECONDS)
        except Exception:
            logger.debug("Conference page did not accept hangup command", exc_info=True)
        try:
            window.destroy()
        except Exception:
            logger.exception("Failed to destroy conference window")

    def __enter__(self) -> "ConferenceWindowBridge":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- Event plumbing

    def _on_window_closed(self, window: Any) -> None:
        with self._lock:
            closed_by_user = self._window is window
            if closed_by_user:
                self._window = None
        if closed_by_user:
            logger.info("Conference window closed by user")
            self._emit(REMOTE_LEFT)

    def _emit(self, event: str) -> None:
        handler = self._on_event
        if handler is None:
            logger.debug(f"No handler for conference event {event}")
            return
        try:
            handler(event)
        except Exception:
            logger.exception(f"Conference event handler failed for {event}")
