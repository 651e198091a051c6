"""Tutor session state machine definitions."""

from __future__ import annotations

from enum import Enum, auto


class SessionState(Enum):
    """States of the tutoring session controller.

    Transitions:
        IDLE → CONNECTING (start requested)
        CONNECTING → IDLE (microphone permission denied)
        CONNECTING → OPEN (transport session opened)
        CONNECTING/OPEN → ERRORED (transport failure)
        ERRORED → CLOSING (always)
        CONNECTING/OPEN → CLOSING (stop requested or remote close)
        CLOSING → IDLE (teardown finished)
    """

    IDLE = auto()
    CONNECTING = auto()
    OPEN = auto()
    CLOSING = auto()
    ERRORED = auto()
