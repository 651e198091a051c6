"""Tests for the PCM codec helpers."""

from __future__ import annotations

import base64

import numpy as np
import pytest

from lingolive.audio.pcm import (
    PcmBlob,
    PlaybackChunk,
    decode,
    decode_audio_data,
    encode,
)
from lingolive.core.errors import DecodeError


class TestEncode:
    def test_returns_tagged_blob(self) -> None:
        blob = encode(np.zeros(4096, dtype=np.float32))
        assert isinstance(blob, PcmBlob)
        assert blob.mime_type == "audio/pcm;rate=16000"
        assert len(base64.b64decode(blob.data)) == 4096 * 2

    def test_mime_type_uses_sample_rate(self) -> None:
        blob = encode(np.zeros(10, dtype=np.float32), sample_rate=8000)
        assert blob.mime_type == "audio/pcm;rate=8000"

    def test_little_endian_int16(self) -> None:
        blob = encode(np.array([0.5, -0.5], dtype=np.float32))
        assert base64.b64decode(blob.data) == b"\x00\x40\x00\xc0"

    def test_full_scale_clamps_to_int16_range(self) -> None:
        raw = base64.b64decode(encode(np.array([1.0, -1.0])).data)
        assert np.frombuffer(raw, dtype="<i2").tolist() == [32767, -32768]

    def test_out_of_range_samples_are_clipped(self) -> None:
        raw = base64.b64decode(encode(np.array([3.0, -7.5])).data)
        assert np.frombuffer(raw, dtype="<i2").tolist() == [32767, -32768]

    def test_deterministic(self) -> None:
        frame = np.linspace(-1, 1, 257, dtype=np.float32)
        assert encode(frame) == encode(frame)

    def test_accepts_plain_sequences(self) -> None:
        blob = encode([0.0, 0.25])
        assert base64.b64decode(blob.data) == b"\x00\x00\x00\x20"


class TestDecode:
    def test_decodes_base64(self) -> None:
        assert decode(base64.b64encode(b"\x01\x02\x03")) == b"\x01\x02\x03"
        assert decode(base64.b64encode(b"abc").decode()) == b"abc"

    def test_invalid_base64_raises(self) -> None:
        with pytest.raises(DecodeError):
            decode("not base64!!")

    def test_round_trip_within_quantization_error(self) -> None:
        rng = np.random.default_rng(7)
        frame = rng.uniform(-1.0, 1.0, 4096).astype(np.float32)

        chunk = decode_audio_data(decode(encode(frame).data), sample_rate=16000)

        assert chunk.frames == 4096
        assert np.max(np.abs(chunk.samples[:, 0] - frame)) <= 1.0 / 32768 + 1e-6


class TestDecodeAudioData:
    def test_normalizes_samples(self) -> None:
        raw = np.array([0, 16384, -32768], dtype="<i2").tobytes()
        chunk = decode_audio_data(raw)
        assert isinstance(chunk, PlaybackChunk)
        assert chunk.sample_rate == 24000
        assert chunk.samples.dtype == np.float32
        assert chunk.samples[:, 0].tolist() == [0.0, 0.5, -1.0]

    def test_duration(self) -> None:
        chunk = decode_audio_data(b"\x00\x00" * 12000, sample_rate=24000)
        assert chunk.duration == pytest.approx(0.5)

    def test_deinterleaves_channels(self) -> None:
        raw = np.array([1, 2, 3, 4], dtype="<i2").tobytes()
        chunk = decode_audio_data(raw, channels=2)
        assert chunk.channels == 2
        assert chunk.frames == 2
        assert chunk.samples[1, 0] == pytest.approx(3 / 32768)

    def test_odd_length_raises(self) -> None:
        with pytest.raises(DecodeError, match="not a multiple"):
            decode_audio_data(b"\x00\x00\x00")

    def test_partial_stereo_frame_raises(self) -> None:
        with pytest.raises(DecodeError):
            decode_audio_data(b"\x00" * 6, channels=2)

    def test_invalid_channel_count_raises(self) -> None:
        with pytest.raises(DecodeError):
            decode_audio_data(b"\x00\x00", channels=0)

    def test_decode_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode_audio_data(b"\x00")

    def test_empty_payload(self) -> None:
        chunk = decode_audio_data(b"")
        assert chunk.frames == 0
        assert chunk.duration == 0.0
