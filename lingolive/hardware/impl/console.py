"""Terminal display for the transcript and session status."""

from __future__ import annotations

import time

from lingolive.core.transcript import Speaker, TranscriptEntry
from lingolive.hardware.interfaces import DisplayOutput

_SPEAKER_LABELS = {Speaker.USER: "You", Speaker.AI: "Lingo"}

_STATUS_LABELS = {
    "ready": "Ready. Press Enter to start learning.",
    "connecting": "Connecting...",
    "live": "Live. Listening...",
    "listening": "Listening...",
    "speaking": "Lingo is teaching...",
}


class ConsoleDisplay(DisplayOutput):
    """Prints transcript entries and status lines to stdout."""

    def show_status(self, status: str) -> None:
        print(f"-- {_STATUS_LABELS.get(status, status)}", flush=True)

    def show_entry(self, entry: TranscriptEntry) -> None:
        stamp = time.strftime("%H:%M:%S", time.localtime(entry.timestamp))
        print(f"[{stamp}] {_SPEAKER_LABELS[entry.speaker]}: {entry.text}", flush=True)

    def show_error(self, message: str) -> None:
        print(f"!! {message}", flush=True)

    def clear(self) -> None:
        print("-- Transcript cleared.", flush=True)
