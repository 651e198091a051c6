"""Microphone and speaker implementations backed by sounddevice.

The output stream renders scheduled voices from its callback, which runs
on PortAudio's audio thread; the voice list is shared with the event loop
under a lock. The output clock is the number of frames rendered so far.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass

import numpy as np
import sounddevice as sd

from lingolive.core.errors import MicrophonePermissionError
from lingolive.hardware.interfaces import AudioInput, AudioOutput

logger = logging.getLogger(__name__)


class SoundDeviceAudioInput(AudioInput):
    """Blocking microphone reader on a sounddevice InputStream.

    Args:
        device: Input device id or name (None for system default).
    """

    def __init__(self, device: int | str | None = None) -> None:
        self._device = device
        self._stream: sd.InputStream | None = None
        self._frame_size = 4096

    def open_stream(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        frame_size: int = 4096,
    ) -> None:
        self._frame_size = frame_size
        try:
            stream = sd.InputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
                blocksize=frame_size,
                device=self._device,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise MicrophonePermissionError(f"Cannot open microphone: {e}") from e
        self._stream = stream
        logger.info("Microphone opened (rate=%d, frame=%d)", sample_rate, frame_size)

    def read_frame(self) -> np.ndarray:
        stream = self._stream
        if stream is None:
            raise RuntimeError("Audio input stream is not open.")
        data, overflowed = stream.read(self._frame_size)
        if overflowed:
            logger.debug("Microphone input overflow.")
        return data[:, 0].copy()

    def close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()

    def is_open(self) -> bool:
        return self._stream is not None


@dataclass
class _Voice:
    start_frame: int
    samples: np.ndarray


class SoundDeviceAudioOutput(AudioOutput):
    """Mixing speaker output with a frame-accurate playback clock.

    Args:
        device: Output device id or name (None for system default).
        blocksize: Frames rendered per callback.
    """

    def __init__(self, device: int | str | None = None, blocksize: int = 1024) -> None:
        self._device = device
        self._blocksize = blocksize
        self._stream: sd.OutputStream | None = None
        self._sample_rate = 24000
        self._channels = 1
        self._lock = threading.Lock()
        self._voices: dict[int, _Voice] = {}
        self._handles = itertools.count(1)
        self._frames_rendered = 0

    def open_stream(self, sample_rate: int = 24000, channels: int = 1) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        with self._lock:
            self._voices = {}
            self._frames_rendered = 0
        stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            blocksize=self._blocksize,
            device=self._device,
            callback=self._audio_callback,
        )
        stream.start()
        self._stream = stream
        logger.info("Speaker opened (rate=%d)", sample_rate)

    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / self._sample_rate

    def play_at(self, samples: np.ndarray, start_time: float) -> int:
        if self._stream is None:
            raise RuntimeError("Audio output stream is not open.")
        handle = next(self._handles)
        voice = _Voice(
            start_frame=int(round(start_time * self._sample_rate)),
            samples=samples.reshape(-1, self._channels),
        )
        with self._lock:
            self._voices[handle] = voice
        return handle

    def cancel(self, handle: int) -> None:
        with self._lock:
            del self._voices[handle]

    def close_stream(self) -> None:
        stream, self._stream = self._stream, None
        with self._lock:
            self._voices = {}
        if stream is not None:
            stream.stop()
            stream.close()

    def is_open(self) -> bool:
        return self._stream is not None

    def _audio_callback(self, outdata, frames, time, status) -> None:
        if status:
            logger.debug("Output stream status: %s", status)
        outdata.fill(0)
        with self._lock:
            window_start = self._frames_rendered
            window_end = window_start + frames
            finished = []
            for handle, voice in self._voices.items():
                voice_end = voice.start_frame + len(voice.samples)
                if voice_end <= window_start:
                    finished.append(handle)
                    continue
                if voice.start_frame >= window_end:
                    continue
                begin = max(voice.start_frame, window_start)
                end = min(voice_end, window_end)
                outdata[begin - window_start:end - window_start] += (
                    voice.samples[begin - voice.start_frame:end - voice.start_frame]
                )
                if voice_end <= window_end:
                    finished.append(handle)
            for handle in finished:
                del self._voices[handle]
            self._frames_rendered = window_end
        np.clip(outdata, -1.0, 1.0, out=outdata)
