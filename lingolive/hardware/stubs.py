"""Desktop stub implementations for hardware interfaces.

These stubs enable development and testing without audio devices:
- StubAudioInput: reads PCM frames from a WAV file (or silence)
- StubAudioOutput: records scheduled voices against a manual clock
- StubDisplayOutput: prints to terminal
"""

from __future__ import annotations

import itertools
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from lingolive.core.errors import MicrophonePermissionError
from lingolive.core.transcript import TranscriptEntry
from lingolive.hardware.interfaces import AudioInput, AudioOutput, DisplayOutput


class StubAudioInput(AudioInput):
    """Reads audio frames from a WAV file, looping if necessary.

    Args:
        wav_path: 16-bit mono WAV file to read from. If None, generates silence.
        deny_permission: Simulate the user refusing microphone access.
        max_frames: Raise EOFError after this many frames (None = endless).
    """

    def __init__(
        self,
        wav_path: Path | None = None,
        deny_permission: bool = False,
        max_frames: int | None = None,
    ) -> None:
        self._wav_path = wav_path
        self._deny_permission = deny_permission
        self._max_frames = max_frames
        self._stream_open = False
        self._sample_rate = 16000
        self._frame_size = 4096
        self._samples = np.zeros(0, dtype=np.float32)
        self._read_pos = 0
        self.frames_read = 0

    def open_stream(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        frame_size: int = 4096,
    ) -> None:
        """Open the audio input stream."""
        if self._deny_permission:
            raise MicrophonePermissionError("Permission denied by user.")

        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._read_pos = 0
        self.frames_read = 0
        self._samples = np.zeros(0, dtype=np.float32)

        if self._wav_path and self._wav_path.exists():
            with wave.open(str(self._wav_path), "rb") as wf:
                pcm = wf.readframes(wf.getnframes())
            self._samples = np.frombuffer(pcm, dtype="<i2").astype(np.float32) / 32768.0

        if len(self._samples) == 0:
            # 1 second of silence
            self._samples = np.zeros(sample_rate, dtype=np.float32)

        self._stream_open = True

    def read_frame(self) -> np.ndarray:
        """Read one frame, looping at end of data."""
        if not self._stream_open:
            raise RuntimeError("Audio input stream is not open.")
        if self._max_frames is not None and self.frames_read >= self._max_frames:
            raise EOFError("Stub audio input exhausted.")

        indices = (self._read_pos + np.arange(self._frame_size)) % len(self._samples)
        self._read_pos = int(indices[-1] + 1) % len(self._samples)
        self.frames_read += 1
        return self._samples[indices]

    def close_stream(self) -> None:
        """Close the audio input stream."""
        self._stream_open = False
        self._read_pos = 0

    def is_open(self) -> bool:
        """Check if the stream is currently open."""
        return self._stream_open


@dataclass
class StubVoice:
    """A voice handed to StubAudioOutput.play_at()."""

    handle: int
    samples: np.ndarray
    start_time: float
    sample_rate: int = 24000
    cancelled: bool = False

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate


class StubAudioOutput(AudioOutput):
    """Records scheduled audio instead of playing it.

    The clock does not advance on its own; tests set `clock` directly.
    """

    def __init__(self) -> None:
        self._stream_open = False
        self._sample_rate = 24000
        self._channels = 1
        self._handles = itertools.count(1)
        self._active: dict[int, StubVoice] = {}
        self.voices: list[StubVoice] = []
        self.clock = 0.0

    def open_stream(self, sample_rate: int = 24000, channels: int = 1) -> None:
        """Open the audio output stream."""
        self._sample_rate = sample_rate
        self._channels = channels
        self._active = {}
        self.voices = []
        self.clock = 0.0
        self._stream_open = True

    def current_time(self) -> float:
        return self.clock

    def play_at(self, samples: np.ndarray, start_time: float) -> int:
        if not self._stream_open:
            raise RuntimeError("Audio output stream is not open.")
        voice = StubVoice(
            handle=next(self._handles),
            samples=samples,
            start_time=start_time,
            sample_rate=self._sample_rate,
        )
        self._active[voice.handle] = voice
        self.voices.append(voice)
        return voice.handle

    def cancel(self, handle: int) -> None:
        voice = self._active.pop(handle)
        voice.cancelled = True

    def finish(self, handle: int) -> None:
        """Mark a voice as played to the end (for testing)."""
        self._active.pop(handle, None)

    def close_stream(self) -> None:
        """Drop all voices and close the stream."""
        self._active = {}
        self._stream_open = False

    def is_open(self) -> bool:
        """Check if the stream is currently open."""
        return self._stream_open

    @property
    def active_handles(self) -> list[int]:
        return list(self._active)


class StubDisplayOutput(DisplayOutput):
    """Prints display content to the terminal.

    Also stores what was displayed for testing.
    """

    def __init__(self) -> None:
        self.last_status: str = ""
        self.last_error: str = ""
        self.entries: list[TranscriptEntry] = []

    def show_status(self, status: str) -> None:
        self.last_status = status
        print(f"[STATUS] {status}")

    def show_entry(self, entry: TranscriptEntry) -> None:
        self.entries.append(entry)
        print(f"[{entry.speaker.value.upper()}] {entry.text}")

    def show_error(self, message: str) -> None:
        self.last_error = message
        print(f"[ERROR] {message}")

    def clear(self) -> None:
        self.entries = []
        self.last_error = ""
        print("[DISPLAY] <cleared>")
