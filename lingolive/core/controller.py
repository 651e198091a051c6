"""Tutor session controller — owns the live tutoring session.

Manages the state machine: IDLE → CONNECTING (microphone, audio devices,
Gemini session setup) → OPEN (bidirectional audio) → CLOSING → IDLE.
Routes inbound Gemini messages to playback and the transcript.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable

import numpy as np

from lingolive.audio.capture import AudioCaptureStream
from lingolive.audio.pcm import decode_audio_data, encode
from lingolive.audio.playback import PlaybackScheduler
from lingolive.core.config import Settings
from lingolive.core.errors import (
    MICROPHONE_ERROR_MESSAGE,
    DecodeError,
    SessionConnectionError,
    TransportClosedError,
    user_message_for,
)
from lingolive.core.state_machine import SessionState
from lingolive.core.transcript import (
    TranscriptEntry,
    TranscriptionBuffer,
    TranscriptLog,
    assemble_entries,
    new_entry_id,
)
from lingolive.gemini.session import GeminiSession, GeminiSessionConfig, ServerMessage
from lingolive.hardware.interfaces import AudioInput, AudioOutput, DisplayOutput
from lingolive.tutor.languages import TutorPreferences, build_system_prompt

logger = logging.getLogger(__name__)


class TutorSessionController:
    """Owns the single live tutoring session and everything attached to it.

    The Gemini session, both audio devices, the playback scheduler and the
    transcription accumulators are only ever touched from here.

    Args:
        settings: Application settings.
        audio_input: Microphone interface.
        audio_output: Speaker interface.
        display: Optional transcript/status display.
        preferences: Initial tutor preferences (defaults from settings).
        id_factory: Produces transcript entry ids.
        clock: Returns transcript entry timestamps.
    """

    def __init__(
        self,
        settings: Settings,
        audio_input: AudioInput,
        audio_output: AudioOutput,
        display: DisplayOutput | None = None,
        preferences: TutorPreferences | None = None,
        id_factory: Callable[[], str] = new_entry_id,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._audio_input = audio_input
        self._audio_output = audio_output
        self._display = display
        self._preferences = preferences or settings.preferences
        self._id_factory = id_factory
        self._clock = clock

        self._state = SessionState.IDLE
        self._session: GeminiSession | None = None
        self._capture: AudioCaptureStream | None = None
        self._playback: PlaybackScheduler | None = None
        self._receive_task: asyncio.Task | None = None
        self._failure_task: asyncio.Task | None = None
        self._buffer = TranscriptionBuffer()
        self._transcript = TranscriptLog()
        self._ai_speaking = False
        self._error_message: str | None = None

    # ------------------------------------------------------------------
    # Public controls
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the microphone, the speaker and the Gemini session.

        Does nothing unless the controller is IDLE. Failures are reported
        through error_message and leave the controller IDLE.
        """
        if self._state is not SessionState.IDLE:
            logger.info("Start ignored; session is %s.", self._state.name)
            return

        self._error_message = None
        self._buffer = TranscriptionBuffer()
        self._set_state(SessionState.CONNECTING)
        self._show_status("connecting")

        try:
            self._audio_input.open_stream(
                sample_rate=self._settings.input_sample_rate,
                channels=self._settings.input_channels,
                frame_size=self._settings.capture_frame_size,
            )
        except PermissionError as e:
            logger.warning("Microphone access denied: %s", e)
            self._report_error(MICROPHONE_ERROR_MESSAGE)
            self._set_state(SessionState.IDLE)
            self._show_status("ready")
            return
        except Exception as e:
            logger.error("Failed to open microphone: %s", e)
            self._report_error(user_message_for(e))
            self._set_state(SessionState.IDLE)
            self._show_status("ready")
            return

        try:
            self._audio_output.open_stream(
                sample_rate=self._settings.output_sample_rate, channels=1
            )
        except Exception as e:
            logger.error("Failed to open audio output: %s", e)
            await self._fail(e)
            return
        self._playback = PlaybackScheduler(
            self._audio_output, on_speaking_changed=self._on_speaking_changed
        )

        config = GeminiSessionConfig(
            model=self._settings.gemini_model,
            voice=self._settings.voice,
            system_prompt=build_system_prompt(self._preferences),
        )
        session = GeminiSession(
            api_key=self._settings.gemini_api_key,
            config=config,
        )
        self._session = session

        try:
            await session.connect()
        except Exception as e:
            if self._state is not SessionState.CONNECTING or self._session is not session:
                logger.info("Abandoned session failed to connect: %s", e)
                return
            logger.error("Failed to connect to Gemini: %s", e)
            error = SessionConnectionError(f"Could not open tutor session: {e}")
            error.__cause__ = e
            await self._fail(error)
            return

        if self._state is not SessionState.CONNECTING or self._session is not session:
            logger.info("Session stopped while connecting; closing it.")
            await session.close()
            return

        await self._on_open()

    async def stop(self) -> None:
        """Tear the session down. Safe to call from any state, repeatedly.

        Every cleanup step runs even if an earlier one fails.
        """
        if self._state is SessionState.CLOSING:
            return
        self._set_state(SessionState.CLOSING)

        # Take ownership before the first await so a concurrent stop()
        # finds nothing left to release.
        session, self._session = self._session, None
        capture, self._capture = self._capture, None
        receive_task, self._receive_task = self._receive_task, None
        playback, self._playback = self._playback, None

        if session is not None:
            await self._attempt("close Gemini session", session.close)
        if capture is not None:
            await self._attempt("stop audio capture", capture.stop)
        if receive_task is not None and receive_task is not asyncio.current_task():
            await self._attempt("cancel receive loop", lambda: self._cancel(receive_task))
        if self._audio_input.is_open():
            await self._attempt("close microphone", self._audio_input.close_stream)
        if playback is not None:
            await self._attempt("stop playback", playback.teardown)
        elif self._audio_output.is_open():
            await self._attempt("close audio output", self._audio_output.close_stream)

        self._ai_speaking = False
        self._set_state(SessionState.IDLE)
        self._show_status("ready")
        logger.info("Session stopped.")

    async def toggle(self) -> None:
        """Start when idle, stop otherwise."""
        if self._state is SessionState.IDLE:
            await self.start()
        else:
            await self.stop()

    def clear_transcript(self) -> None:
        self._transcript.clear()
        if self._display:
            self._display.clear()

    async def handle_message(self, msg: ServerMessage) -> None:
        """Route one inbound Gemini message.

        Every field that is present is handled, in a fixed order: audio,
        interruption, user transcription, model transcription, turn end.
        """
        if self._state is not SessionState.OPEN:
            logger.debug("Ignoring message while %s.", self._state.name)
            return

        if msg.setup_complete:
            logger.info("Gemini setup complete.")

        if msg.audio_data:
            self._play_audio(msg.audio_data)

        if msg.interrupted and self._playback is not None:
            self._playback.interrupt()

        if msg.input_transcription:
            self._buffer.append_user(msg.input_transcription)

        if msg.output_transcription:
            self._buffer.append_model(msg.output_transcription)

        if msg.turn_complete:
            self._complete_turn()

        if msg.go_away:
            logger.warning("Gemini session ending (go_away).")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.OPEN

    @property
    def is_ai_speaking(self) -> bool:
        return self._ai_speaking

    @property
    def error_message(self) -> str | None:
        """Last user-facing error, cleared on the next start()."""
        return self._error_message

    @property
    def transcript(self) -> TranscriptLog:
        return self._transcript

    @property
    def preferences(self) -> TutorPreferences:
        return self._preferences

    @preferences.setter
    def preferences(self, value: TutorPreferences) -> None:
        if self._state is not SessionState.IDLE:
            raise RuntimeError("Cannot change tutor settings while a session is active.")
        self._preferences = value

    # ------------------------------------------------------------------
    # Session internals
    # ------------------------------------------------------------------

    async def _on_open(self) -> None:
        """Gemini acknowledged the session — start streaming the microphone."""
        self._set_state(SessionState.OPEN)
        self._show_status("live")
        self._capture = AudioCaptureStream(
            self._audio_input,
            self._send_frame,
            sample_rate=self._settings.input_sample_rate,
            frame_size=self._settings.capture_frame_size,
        )
        self._receive_task = asyncio.create_task(self._receive_loop())
        await self._capture.start()

    async def _send_frame(self, frame: np.ndarray) -> None:
        """Capture sink: encode a frame and send it while the session is open."""
        session = self._session
        if self._state is not SessionState.OPEN or session is None or not session.is_connected:
            return
        blob = encode(frame, sample_rate=self._settings.input_sample_rate)
        try:
            await session.send_audio(blob)
        except TransportClosedError:
            logger.debug("Dropped frame; session already closed.")
        except Exception as e:
            if self._state is not SessionState.OPEN or session is not self._session:
                logger.debug("Dropped frame sent during teardown.")
                return
            logger.error("Failed to send audio to Gemini: %s", e)
            self._fail_later(session, SessionConnectionError(f"Audio send failed: {e}"))

    async def _receive_loop(self) -> None:
        """Process Gemini messages in arrival order until the session ends."""
        session = self._session
        if session is None:
            return
        try:
            async for msg in session.receive():
                if self._state is not SessionState.OPEN:
                    return
                if msg.error:
                    await self._fail(SessionConnectionError(msg.error))
                    return
                await self.handle_message(msg)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Error handling Gemini message: %s", e)
            await self._fail(e)
            return

        if self._state is SessionState.OPEN:
            logger.info("Gemini closed the session.")
            await self.stop()

    def _play_audio(self, raw: bytes) -> None:
        try:
            chunk = decode_audio_data(
                raw, sample_rate=self._settings.output_sample_rate, channels=1
            )
        except DecodeError as e:
            logger.warning("Skipping undecodable audio chunk: %s", e)
            return
        if self._state is not SessionState.OPEN or self._playback is None:
            return
        self._ai_speaking = True
        self._playback.schedule(chunk)

    def _complete_turn(self) -> None:
        user_text, model_text = self._buffer.drain()
        entries = assemble_entries(
            user_text, model_text, id_factory=self._id_factory, clock=self._clock
        )
        self._transcript.extend(entries)
        for entry in entries:
            self._show_entry(entry)

    async def _fail(self, error: BaseException) -> None:
        """Error path: report the failure, then tear everything down."""
        if self._state is SessionState.CLOSING:
            return
        self._set_state(SessionState.ERRORED)
        self._report_error(user_message_for(error))
        await self.stop()

    def _fail_later(self, session: GeminiSession, error: BaseException) -> None:
        """Run the error path outside the capture task, which stop() cancels."""
        if self._failure_task is None or self._failure_task.done():
            self._failure_task = asyncio.create_task(self._fail_if_current(session, error))

    async def _fail_if_current(self, session: GeminiSession, error: BaseException) -> None:
        if self._state is SessionState.OPEN and self._session is session:
            await self._fail(error)

    def _on_speaking_changed(self, speaking: bool) -> None:
        self._ai_speaking = speaking
        if self._state is SessionState.OPEN:
            self._show_status("speaking" if speaking else "listening")

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug("State %s → %s", self._state.name, state.name)
            self._state = state

    def _report_error(self, message: str) -> None:
        self._error_message = message
        if self._display:
            self._display.show_error(message)

    def _show_status(self, status: str) -> None:
        if self._display:
            self._display.show_status(status)

    def _show_entry(self, entry: TranscriptEntry) -> None:
        if self._display:
            self._display.show_entry(entry)

    @staticmethod
    async def _cancel(task: asyncio.Task) -> None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @staticmethod
    async def _attempt(step: str, action: Callable[[], Any]) -> None:
        """Run one cleanup step; log failures instead of raising them."""
        try:
            result = action()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Cleanup step '%s' failed: %s", step, e)
