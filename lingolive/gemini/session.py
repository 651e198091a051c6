"""Gemini Live API session manager.

Wraps the google-genai SDK's Live API client to manage the WebSocket
session used for bidirectional audio streaming with the tutor model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator

from google import genai
from google.genai import errors, types

from lingolive.audio.pcm import PcmBlob, decode
from lingolive.core.errors import TransportClosedError

logger = logging.getLogger(__name__)

# WebSocket close code for a normal, server-initiated end of session.
NORMAL_CLOSURE = 1000


@dataclass
class GeminiSessionConfig:
    """Configuration for a Gemini Live session.

    Attributes:
        model: Gemini model name.
        voice: Prebuilt voice name for speech output.
        system_prompt: System instruction sent to Gemini.
    """

    model: str
    voice: str
    system_prompt: str


@dataclass
class ServerMessage:
    """Normalized message received from Gemini.

    Fields are independent: one message may carry audio, transcription
    deltas and turn signals at the same time.

    Attributes:
        audio_data: PCM audio bytes (24kHz/16-bit/mono), empty if none.
        interrupted: The model discarded its in-flight response.
        input_transcription: Partial transcription of the user's speech.
        output_transcription: Partial transcription of the model's speech.
        turn_complete: The model finished its turn.
        setup_complete: The server acknowledged the session setup.
        go_away: The server will close the connection soon.
        error: Receive failure description, empty if none.
    """

    audio_data: bytes = b""
    interrupted: bool = False
    input_transcription: str = ""
    output_transcription: str = ""
    turn_complete: bool = False
    setup_complete: bool = False
    go_away: bool = False
    error: str = ""

    def is_empty(self) -> bool:
        return self == ServerMessage()


class GeminiSession:
    """Manages a Gemini Live API WebSocket session.

    Args:
        api_key: Google API key for authentication.
        config: Session configuration.
    """

    def __init__(self, api_key: str, config: GeminiSessionConfig) -> None:
        self._api_key = api_key
        self._config = config
        self._client: genai.Client | None = None
        self._session = None
        self._session_cm = None
        self._connected = False

    async def connect(self) -> None:
        """Open WebSocket connection and send setup message."""
        self._client = genai.Client(api_key=self._api_key)

        live_config = types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            system_instruction=self._config.system_prompt,
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=self._config.voice,
                    )
                ),
            ),
            input_audio_transcription=types.AudioTranscriptionConfig(),
            output_audio_transcription=types.AudioTranscriptionConfig(),
        )

        session_cm = self._client.aio.live.connect(
            model=self._config.model,
            config=live_config,
        )
        self._session = await session_cm.__aenter__()
        self._session_cm = session_cm
        self._connected = True
        logger.info(
            "Gemini session connected (model=%s, voice=%s)",
            self._config.model,
            self._config.voice,
        )

    async def send_audio(self, blob: PcmBlob) -> None:
        """Send one captured PCM frame to Gemini.

        Args:
            blob: Base64 PCM frame (16kHz/16-bit/mono).

        Raises:
            TransportClosedError: If the session is not connected.
        """
        if not self._connected or self._session is None:
            raise TransportClosedError("Gemini session is not connected.")

        await self._session.send_realtime_input(
            audio=types.Blob(data=decode(blob.data), mime_type=blob.mime_type),
        )

    async def receive(self) -> AsyncIterator[ServerMessage]:
        """Yield normalized messages from Gemini until the session ends.

        The SDK's receive() iterator stops after each turn, so it is
        re-entered until the connection closes. A normal close from the
        server ends iteration; any other failure is yielded once as an
        error message.

        Yields:
            ServerMessage for each non-empty server event.

        Raises:
            RuntimeError: If not connected.
        """
        if not self._connected or self._session is None:
            raise RuntimeError("Gemini session is not connected.")

        try:
            while self._connected and self._session is not None:
                received = 0
                async for message in self._session.receive():
                    received += 1
                    server_msg = self._parse_message(message)
                    if server_msg is not None:
                        yield server_msg
                if received == 0:
                    # Closed by the server.
                    break
        except errors.APIError as e:
            self._connected = False
            if e.code == NORMAL_CLOSURE:
                logger.info("Gemini closed the session: %s", e)
                return
            logger.error("Gemini session failed (code=%s): %s", e.code, e)
            yield ServerMessage(error=str(e) or type(e).__name__)
        except Exception as e:
            logger.error("Error receiving from Gemini: %s", e)
            self._connected = False
            yield ServerMessage(error=str(e) or type(e).__name__)

    async def close(self) -> None:
        """Close the WebSocket session gracefully."""
        if self._session_cm is not None:
            try:
                await self._session_cm.__aexit__(None, None, None)
            except Exception as e:
                logger.warning("Error closing Gemini session: %s", e)
            finally:
                self._session = None
                self._session_cm = None
                self._connected = False
                logger.info("Gemini session closed.")

    @property
    def is_connected(self) -> bool:
        """Check if the session is currently connected."""
        return self._connected

    def _parse_message(self, message: types.LiveServerMessage) -> ServerMessage | None:
        """Parse a raw SDK message into a normalized ServerMessage.

        Args:
            message: Raw message from the Gemini SDK.

        Returns:
            ServerMessage, or None if the message carries nothing relevant.
        """
        result = ServerMessage()

        if message.setup_complete:
            result.setup_complete = True

        if message.server_content:
            sc = message.server_content

            if sc.model_turn and sc.model_turn.parts:
                audio = [
                    part.inline_data.data
                    for part in sc.model_turn.parts
                    if part.inline_data and part.inline_data.data
                ]
                result.audio_data = b"".join(audio)

            if sc.input_transcription and sc.input_transcription.text:
                result.input_transcription = sc.input_transcription.text

            if sc.output_transcription and sc.output_transcription.text:
                result.output_transcription = sc.output_transcription.text

            if sc.interrupted:
                result.interrupted = True

            if sc.turn_complete:
                result.turn_complete = True

        if message.go_away:
            result.go_away = True

        if result.is_empty():
            return None
        return result
