"""Tests for the hardware abstraction layer."""

from __future__ import annotations

import importlib
import sys
import wave
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from lingolive.core.errors import MicrophonePermissionError
from lingolive.core.transcript import Speaker, TranscriptEntry
from lingolive.hardware.interfaces import AudioInput, AudioOutput, DisplayOutput
from lingolive.hardware.stubs import StubAudioInput, StubAudioOutput, StubDisplayOutput


def _write_wav(path: Path, samples: list[int]) -> Path:
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        wf.writeframes(np.array(samples, dtype="<i2").tobytes())
    return path


class TestStubAudioInput:
    def test_implements_interface(self) -> None:
        assert issubclass(StubAudioInput, AudioInput)

    def test_open_and_close(self) -> None:
        audio_in = StubAudioInput()
        assert not audio_in.is_open()
        audio_in.open_stream()
        assert audio_in.is_open()
        audio_in.close_stream()
        assert not audio_in.is_open()

    def test_read_frame_without_open_raises(self) -> None:
        with pytest.raises(RuntimeError, match="not open"):
            StubAudioInput().read_frame()

    def test_generates_silence_without_file(self) -> None:
        audio_in = StubAudioInput()
        audio_in.open_stream(frame_size=512)
        frame = audio_in.read_frame()
        assert frame.shape == (512,)
        assert not frame.any()

    def test_reads_wav_as_float_and_loops(self, tmp_path: Path) -> None:
        wav = _write_wav(tmp_path / "t.wav", [16384, -16384, 0])
        audio_in = StubAudioInput(wav)
        audio_in.open_stream(frame_size=2)

        first = audio_in.read_frame()
        second = audio_in.read_frame()

        assert first.tolist() == [0.5, -0.5]
        assert second.tolist() == [0.0, 0.5]

    def test_empty_wav_falls_back_to_silence(self, tmp_path: Path) -> None:
        wav = _write_wav(tmp_path / "empty.wav", [])
        audio_in = StubAudioInput(wav)
        audio_in.open_stream(frame_size=8)

        frame = audio_in.read_frame()

        assert frame.shape == (8,)
        assert not frame.any()

    def test_deny_permission(self) -> None:
        audio_in = StubAudioInput(deny_permission=True)
        with pytest.raises(PermissionError):
            audio_in.open_stream()
        assert not audio_in.is_open()

    def test_max_frames(self) -> None:
        audio_in = StubAudioInput(max_frames=1)
        audio_in.open_stream(frame_size=16)
        audio_in.read_frame()
        with pytest.raises(EOFError):
            audio_in.read_frame()


class TestStubAudioOutput:
    def test_implements_interface(self) -> None:
        assert issubclass(StubAudioOutput, AudioOutput)

    def test_play_requires_open_stream(self) -> None:
        with pytest.raises(RuntimeError, match="not open"):
            StubAudioOutput().play_at(np.zeros((10, 1)), 0.0)

    def test_records_voices(self) -> None:
        out = StubAudioOutput()
        out.open_stream(sample_rate=24000)
        handle = out.play_at(np.zeros((2400, 1), dtype=np.float32), 1.5)

        assert out.active_handles == [handle]
        assert out.voices[0].start_time == 1.5
        assert out.voices[0].duration == pytest.approx(0.1)

    def test_cancel_unknown_voice_raises(self) -> None:
        out = StubAudioOutput()
        out.open_stream()
        handle = out.play_at(np.zeros((10, 1)), 0.0)
        out.cancel(handle)
        assert out.voices[0].cancelled
        with pytest.raises(KeyError):
            out.cancel(handle)

    def test_clock_is_manual(self) -> None:
        out = StubAudioOutput()
        out.open_stream()
        assert out.current_time() == 0.0
        out.clock = 2.5
        assert out.current_time() == 2.5


class TestStubDisplayOutput:
    def test_implements_interface(self) -> None:
        assert issubclass(StubDisplayOutput, DisplayOutput)

    def test_records_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        display = StubDisplayOutput()
        entry = TranscriptEntry(id="1", speaker=Speaker.AI, text="Hola", timestamp=0.0)

        display.show_status("live")
        display.show_entry(entry)
        display.show_error("oops")

        assert display.last_status == "live"
        assert display.entries == [entry]
        assert display.last_error == "oops"
        assert "[AI] Hola" in capsys.readouterr().out

        display.clear()
        assert display.entries == []


# ---------------------------------------------------------------------------
# sounddevice implementations (PortAudio replaced by a fake module)
# ---------------------------------------------------------------------------


class _FakePortAudioError(Exception):
    pass


@pytest.fixture
def sd_io(monkeypatch: pytest.MonkeyPatch):
    fake_sd = SimpleNamespace(
        InputStream=MagicMock(),
        OutputStream=MagicMock(),
        PortAudioError=_FakePortAudioError,
    )
    monkeypatch.setitem(sys.modules, "sounddevice", fake_sd)
    sys.modules.pop("lingolive.hardware.impl.sounddevice_io", None)
    module = importlib.import_module("lingolive.hardware.impl.sounddevice_io")
    yield module, fake_sd
    sys.modules.pop("lingolive.hardware.impl.sounddevice_io", None)


class TestSoundDeviceAudioInput:
    def test_open_failure_is_permission_error(self, sd_io) -> None:
        module, fake_sd = sd_io
        fake_sd.InputStream.side_effect = _FakePortAudioError("no device")

        audio_in = module.SoundDeviceAudioInput()
        with pytest.raises(MicrophonePermissionError):
            audio_in.open_stream()
        assert not audio_in.is_open()

    def test_read_frame_returns_mono_samples(self, sd_io) -> None:
        module, fake_sd = sd_io
        stream = fake_sd.InputStream.return_value
        stream.read.return_value = (np.full((4, 1), 0.25, dtype=np.float32), False)

        audio_in = module.SoundDeviceAudioInput()
        audio_in.open_stream(frame_size=4)
        frame = audio_in.read_frame()

        stream.read.assert_called_once_with(4)
        assert frame.tolist() == [0.25] * 4

        audio_in.close_stream()
        audio_in.close_stream()
        stream.close.assert_called_once()


class TestSoundDeviceAudioOutput:
    def _render(self, out, frames: int) -> np.ndarray:
        buf = np.zeros((frames, 1), dtype=np.float32)
        out._audio_callback(buf, frames, None, None)
        return buf

    def test_mixes_voices_on_their_start_frame(self, sd_io) -> None:
        module, _ = sd_io
        out = module.SoundDeviceAudioOutput(blocksize=4)
        out.open_stream(sample_rate=4)  # 4 frames per second

        out.play_at(np.full((2, 1), 0.5, dtype=np.float32), start_time=0.5)

        assert self._render(out, 4)[:, 0].tolist() == [0.0, 0.0, 0.5, 0.5]
        assert out.current_time() == 1.0

    def test_voice_spanning_blocks(self, sd_io) -> None:
        module, _ = sd_io
        out = module.SoundDeviceAudioOutput()
        out.open_stream(sample_rate=4)

        handle = out.play_at(np.full((6, 1), 0.25, dtype=np.float32), start_time=0.0)

        assert self._render(out, 4)[:, 0].tolist() == [0.25] * 4
        assert self._render(out, 4)[:, 0].tolist() == [0.25, 0.25, 0.0, 0.0]
        # Finished voices are dropped by the device.
        with pytest.raises(KeyError):
            out.cancel(handle)

    def test_cancel_silences_voice(self, sd_io) -> None:
        module, _ = sd_io
        out = module.SoundDeviceAudioOutput()
        out.open_stream(sample_rate=4)
        handle = out.play_at(np.full((4, 1), 0.5, dtype=np.float32), start_time=0.0)

        out.cancel(handle)

        assert not self._render(out, 4).any()

    def test_play_requires_open_stream(self, sd_io) -> None:
        module, _ = sd_io
        with pytest.raises(RuntimeError, match="not open"):
            module.SoundDeviceAudioOutput().play_at(np.zeros((1, 1)), 0.0)
