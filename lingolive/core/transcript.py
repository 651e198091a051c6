"""Transcript assembly.

Partial transcription fragments stream in during a turn; they only become
transcript entries once the model signals turn completion.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator


class Speaker(str, Enum):
    USER = "user"
    AI = "ai"


@dataclass(frozen=True)
class TranscriptEntry:
    """One finalized line of the conversation.

    Attributes:
        id: Opaque unique token.
        speaker: Who spoke.
        text: Non-empty, trimmed text.
        timestamp: Unix time in seconds when the entry was created.
    """

    id: str
    speaker: Speaker
    text: str
    timestamp: float


def new_entry_id() -> str:
    return uuid.uuid4().hex


class TranscriptionBuffer:
    """User-side and model-side accumulators for the current turn."""

    def __init__(self) -> None:
        self._user: list[str] = []
        self._model: list[str] = []

    def append_user(self, text: str) -> None:
        self._user.append(text)

    def append_model(self, text: str) -> None:
        self._model.append(text)

    @property
    def user_text(self) -> str:
        return "".join(self._user)

    @property
    def model_text(self) -> str:
        return "".join(self._model)

    def drain(self) -> tuple[str, str]:
        """Return both accumulators trimmed and reset them to empty."""
        user, model = self.user_text.strip(), self.model_text.strip()
        self._user = []
        self._model = []
        return user, model


def assemble_entries(
    user_text: str,
    model_text: str,
    id_factory: Callable[[], str] = new_entry_id,
    clock: Callable[[], float] = time.time,
) -> list[TranscriptEntry]:
    """Build the entries for a completed turn.

    Args:
        user_text: Accumulated user transcription.
        model_text: Accumulated model transcription.
        id_factory: Produces a fresh id per entry.
        clock: Returns the current timestamp.

    Returns:
        Zero, one, or two entries; the user entry comes first.
    """
    entries: list[TranscriptEntry] = []
    for speaker, text in ((Speaker.USER, user_text), (Speaker.AI, model_text)):
        text = text.strip()
        if text:
            entries.append(TranscriptEntry(
                id=id_factory(),
                speaker=speaker,
                text=text,
                timestamp=clock(),
            ))
    return entries


class TranscriptLog:
    """Append-only conversation log, in insertion order."""

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []

    def extend(self, entries: list[TranscriptEntry]) -> None:
        self._entries.extend(entries)

    def clear(self) -> None:
        self._entries = []

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(list(self._entries))
