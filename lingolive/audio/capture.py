"""Audio capture pipeline — streams microphone frames to a sink.

Reads fixed-size float frames from an AudioInput interface and hands
each one to an async sink in capture order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import numpy as np

from lingolive.hardware.interfaces import AudioInput

logger = logging.getLogger(__name__)

FrameSink = Callable[[np.ndarray], Awaitable[None]]


class AudioCaptureStream:
    """Streams audio frames from AudioInput to a frame sink.

    Args:
        audio_input: Hardware audio input interface.
        sink: Async callback receiving each captured frame.
        sample_rate: Audio sample rate in Hz.
        frame_size: Samples per frame.
    """

    def __init__(
        self,
        audio_input: AudioInput,
        sink: FrameSink,
        sample_rate: int = 16000,
        frame_size: int = 4096,
    ) -> None:
        self._audio_input = audio_input
        self._sink = sink
        self._sample_rate = sample_rate
        self._frame_size = frame_size
        self._streaming = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Begin capturing frames and delivering them to the sink."""
        if self._streaming:
            return

        if not self._audio_input.is_open():
            self._audio_input.open_stream(
                sample_rate=self._sample_rate,
                frame_size=self._frame_size,
            )
        self._streaming = True
        self._task = asyncio.create_task(self._capture_loop())
        logger.info(
            "Audio capture started (rate=%d, frame=%d)",
            self._sample_rate,
            self._frame_size,
        )

    async def stop(self) -> None:
        """Stop capturing audio. Safe to call more than once."""
        self._streaming = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._audio_input.is_open():
            self._audio_input.close_stream()
            logger.info("Audio capture stopped.")

    @property
    def is_streaming(self) -> bool:
        """Check if audio capture is active."""
        return self._streaming

    async def _capture_loop(self) -> None:
        """Main capture loop — reads frames and forwards them to the sink."""
        loop = asyncio.get_running_loop()
        try:
            while self._streaming:
                frame = await loop.run_in_executor(
                    None, self._audio_input.read_frame
                )
                if self._streaming:
                    await self._sink(frame)
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Audio capture error: %s", e)
            self._streaming = False
