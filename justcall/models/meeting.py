"""
Meeting hand-off model passed to launch collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MeetingRequest:
    room_id: str
    url: str
    target_id: str
    target_label: str
    display_name: str
    start_with_audio: bool = True
    start_with_video: bool = True
    always_on_top: bool = True
