"""
Named lifecycle signals exchanged with collaborators.
"""

# Produced by CallStateMachine on every successful transition (payload: CallState)
CALL_STATE_CHANGED = "call-state-changed"

# Consumed from the conference collaborator (no payload)
REMOTE_JOINED = "remote-joined"
REMOTE_LEFT = "remote-left"

LIFECYCLE_EVENTS = frozenset({REMOTE_JOINED, REMOTE_LEFT})
