"""PCM codec helpers — framing between float audio and the transport.

Microphone frames are float32 samples in [-1, 1]. The Live API expects
16-bit little-endian PCM wrapped in a base64 blob, and returns 24kHz
16-bit PCM for playback.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

import numpy as np

from lingolive.core.errors import DecodeError

SAMPLE_WIDTH = 2  # bytes per int16 sample
_INT16_SCALE = 32768.0


@dataclass(frozen=True)
class PcmBlob:
    """Transport-ready audio frame.

    Attributes:
        data: Base64 text of little-endian int16 PCM.
        mime_type: Format tag, e.g. "audio/pcm;rate=16000".
    """

    data: str
    mime_type: str


@dataclass(frozen=True, eq=False)
class PlaybackChunk:
    """Decoded audio ready to be scheduled for playback.

    Attributes:
        samples: float32 array shaped (frames, channels).
        sample_rate: Sample rate in Hz.
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def frames(self) -> int:
        return self.samples.shape[0]

    @property
    def duration(self) -> float:
        """Length of the chunk in seconds."""
        return self.frames / self.sample_rate


def pcm_mime_type(sample_rate: int) -> str:
    return f"audio/pcm;rate={sample_rate}"


def encode(frame: np.ndarray, sample_rate: int = 16000) -> PcmBlob:
    """Convert float samples into a base64 PCM blob.

    Args:
        frame: Sequence of float samples in [-1, 1]. Out-of-range values
            are clipped.
        sample_rate: Capture sample rate, recorded in the MIME tag.

    Returns:
        PcmBlob with little-endian int16 data.
    """
    samples = np.clip(np.asarray(frame, dtype=np.float32), -1.0, 1.0)
    scaled = np.clip(np.round(samples * _INT16_SCALE), -32768, 32767)
    pcm = scaled.astype("<i2").tobytes()
    return PcmBlob(
        data=base64.b64encode(pcm).decode("ascii"),
        mime_type=pcm_mime_type(sample_rate),
    )


def decode(data: str | bytes) -> bytes:
    """Decode base64 transport text into raw bytes.

    Raises:
        DecodeError: If the payload is not valid base64.
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e


def decode_audio_data(
    raw: bytes,
    sample_rate: int = 24000,
    channels: int = 1,
) -> PlaybackChunk:
    """Interpret raw bytes as interleaved int16 PCM.

    Args:
        raw: Little-endian 16-bit PCM bytes.
        sample_rate: Sample rate of the payload in Hz.
        channels: Number of interleaved channels.

    Returns:
        PlaybackChunk with normalized float32 samples.

    Raises:
        DecodeError: If the byte length does not hold whole frames.
    """
    if channels < 1:
        raise DecodeError(f"Invalid channel count: {channels}")
    frame_width = SAMPLE_WIDTH * channels
    if len(raw) % frame_width != 0:
        raise DecodeError(
            f"Audio payload of {len(raw)} bytes is not a multiple of "
            f"{frame_width} bytes"
        )

    ints = np.frombuffer(raw, dtype="<i2")
    samples = (ints.astype(np.float32) / _INT16_SCALE).reshape(-1, channels)
    return PlaybackChunk(samples=samples, sample_rate=sample_rate)
