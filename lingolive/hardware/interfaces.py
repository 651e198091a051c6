"""Abstract hardware interfaces for the LingoLive tutor.

All session code that touches microphones, speakers, or the screen must
go through these interfaces. Device-specific implementations live in
lingolive/hardware/impl/ — never import audio libraries outside of that.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from lingolive.core.transcript import TranscriptEntry


class AudioInput(ABC):
    """Abstract microphone input."""

    @abstractmethod
    def open_stream(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        frame_size: int = 4096,
    ) -> None:
        """Open the audio input stream.

        Args:
            sample_rate: Sample rate in Hz.
            channels: Number of audio channels (1 = mono).
            frame_size: Number of samples per frame.

        Raises:
            MicrophonePermissionError: If microphone access is denied.
        """
        ...

    @abstractmethod
    def read_frame(self) -> np.ndarray:
        """Read one frame of audio. Blocks until the frame is available.

        Returns:
            float32 array of frame_size mono samples in [-1, 1].

        Raises:
            RuntimeError: If the stream is not open.
        """
        ...

    @abstractmethod
    def close_stream(self) -> None:
        """Close the audio input stream."""
        ...

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the stream is currently open."""
        ...


class AudioOutput(ABC):
    """Abstract speaker output with a playback clock.

    Audio is placed on the device timeline with play_at(); the device
    mixes whatever is due at its current_time().
    """

    @abstractmethod
    def open_stream(self, sample_rate: int = 24000, channels: int = 1) -> None:
        """Open the audio output stream and start its clock at zero."""
        ...

    @abstractmethod
    def current_time(self) -> float:
        """Seconds of audio rendered since the stream was opened."""
        ...

    @abstractmethod
    def play_at(self, samples: np.ndarray, start_time: float) -> int:
        """Queue samples to start at start_time on the output clock.

        Args:
            samples: float32 array shaped (frames, channels).
            start_time: Start time in seconds on the output clock.

        Returns:
            Handle that can be passed to cancel().

        Raises:
            RuntimeError: If the stream is not open.
        """
        ...

    @abstractmethod
    def cancel(self, handle: int) -> None:
        """Stop a queued or playing voice.

        Raises:
            KeyError: If the voice already finished or is unknown.
        """
        ...

    @abstractmethod
    def close_stream(self) -> None:
        """Stop all voices and close the output stream."""
        ...

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the stream is currently open."""
        ...


class DisplayOutput(ABC):
    """Abstract transcript/status display."""

    @abstractmethod
    def show_status(self, status: str) -> None:
        """Display a status indicator ("ready", "connecting", "live", ...)."""
        ...

    @abstractmethod
    def show_entry(self, entry: TranscriptEntry) -> None:
        """Append a finalized transcript entry to the display."""
        ...

    @abstractmethod
    def show_error(self, message: str) -> None:
        """Display a short user-facing error message."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Clear the transcript display."""
        ...
