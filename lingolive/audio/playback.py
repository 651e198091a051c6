"""Audio playback scheduler — gapless playback of model audio.

The model streams variable-length chunks with no timing metadata, so the
scheduler chains start times itself: every chunk starts exactly where the
previous one ends on the output clock. Supports immediate interruption
when the model reports that in-flight audio is stale.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from lingolive.audio.pcm import PlaybackChunk
from lingolive.hardware.interfaces import AudioOutput

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ScheduledChunk:
    """A chunk placed on the playback timeline.

    Attributes:
        chunk: The decoded audio.
        start_time: Start time on the output clock, in seconds.
        handle: Voice handle returned by AudioOutput.play_at().
        timer: Event loop timer that fires when playback ends.
    """

    chunk: PlaybackChunk
    start_time: float
    handle: int
    timer: asyncio.TimerHandle | None = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.chunk.duration


class PlaybackScheduler:
    """Schedules decoded chunks back-to-back on an AudioOutput.

    Args:
        audio_output: Output device with a playback clock.
        on_speaking_changed: Called with True when audio starts and False
            when the last scheduled chunk ends or playback is interrupted.
    """

    def __init__(
        self,
        audio_output: AudioOutput,
        on_speaking_changed: Callable[[bool], None] | None = None,
    ) -> None:
        self._audio_output = audio_output
        self._on_speaking_changed = on_speaking_changed
        self._active: set[ScheduledChunk] = set()
        self._next_start_time = 0.0
        self._speaking = False

    def schedule(self, chunk: PlaybackChunk) -> ScheduledChunk:
        """Play a chunk right after everything already scheduled.

        Args:
            chunk: Decoded audio at the output sample rate.

        Returns:
            The scheduled chunk.

        Raises:
            RuntimeError: If the output stream is not open.
        """
        now = self._audio_output.current_time()
        # Never schedule in the past; a stale timeline starts from "now".
        self._next_start_time = max(self._next_start_time, now)

        start_time = self._next_start_time
        handle = self._audio_output.play_at(chunk.samples, start_time)
        scheduled = ScheduledChunk(chunk=chunk, start_time=start_time, handle=handle)
        self._next_start_time += chunk.duration

        self._active.add(scheduled)
        loop = asyncio.get_running_loop()
        scheduled.timer = loop.call_later(
            max(scheduled.end_time - now, 0.0), self._on_chunk_ended, scheduled
        )
        self._set_speaking(True)
        logger.debug(
            "Scheduled %.3fs chunk at %.3f (next=%.3f)",
            chunk.duration,
            start_time,
            self._next_start_time,
        )
        return scheduled

    def interrupt(self) -> None:
        """Immediately stop all scheduled audio and reset the timeline."""
        for scheduled in list(self._active):
            if scheduled.timer is not None:
                scheduled.timer.cancel()
            try:
                self._audio_output.cancel(scheduled.handle)
            except Exception as e:
                # Already finished on the device.
                logger.debug("Could not cancel voice %d: %r", scheduled.handle, e)
        dropped = len(self._active)
        self._active.clear()
        self._next_start_time = 0.0
        self._set_speaking(False)
        if dropped:
            logger.info("Playback interrupted (%d chunk(s) dropped).", dropped)

    def teardown(self) -> None:
        """Interrupt playback and release the output device."""
        self.interrupt()
        if self._audio_output.is_open():
            self._audio_output.close_stream()
        logger.info("Audio playback stopped.")

    @property
    def is_speaking(self) -> bool:
        """True while any scheduled chunk has not finished."""
        return self._speaking

    @property
    def next_start_time(self) -> float:
        return self._next_start_time

    @property
    def active_count(self) -> int:
        return len(self._active)

    def _on_chunk_ended(self, scheduled: ScheduledChunk) -> None:
        if scheduled not in self._active:
            return
        self._active.discard(scheduled)
        if not self._active:
            self._set_speaking(False)

    def _set_speaking(self, speaking: bool) -> None:
        if speaking == self._speaking:
            return
        self._speaking = speaking
        if self._on_speaking_changed is not None:
            self._on_speaking_changed(speaking)
