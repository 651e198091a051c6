"""Error taxonomy for the tutoring session.

Only a handful of failures ever reach the user, and they are reduced to a
single short advisory message by user_message_for(). Everything else is
logged by the component that caught it.
"""

from __future__ import annotations


CONNECTION_ERROR_MESSAGE = (
    "Connection error. Please check your internet and API key status."
)
GENERIC_ERROR_MESSAGE = "Failed to start learning session."
MICROPHONE_ERROR_MESSAGE = (
    "Microphone access was denied. Allow microphone access and try again."
)

_AUTH_HINTS = (
    "api key",
    "api_key",
    "unauthenticated",
    "unauthorized",
    "permission denied",
    "401",
    "403",
)


class TutorError(Exception):
    """Base class for tutoring session errors."""


class MicrophonePermissionError(TutorError, PermissionError):
    """Microphone access was denied or no capture device is available."""


class SessionConnectionError(TutorError, ConnectionError):
    """The duplex transport could not be opened or failed while open."""


class DecodeError(TutorError, ValueError):
    """An audio payload could not be decoded into PCM samples."""


class TransportClosedError(TutorError, ConnectionError):
    """The remote side closed the session."""


def _looks_like_auth_failure(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(hint in text for hint in _AUTH_HINTS)


def user_message_for(exc: BaseException) -> str:
    """Reduce an exception to the advisory message shown to the user.

    Args:
        exc: The failure that ended (or prevented) the session.

    Returns:
        A short, user-facing message.
    """
    if isinstance(exc, MicrophonePermissionError):
        return MICROPHONE_ERROR_MESSAGE

    cause = exc.__cause__ if exc.__cause__ is not None else exc
    if isinstance(cause, (ConnectionError, TimeoutError)):
        return CONNECTION_ERROR_MESSAGE
    # Socket-level failures only count when they came from the transport.
    if isinstance(exc, SessionConnectionError) and isinstance(cause, OSError):
        return CONNECTION_ERROR_MESSAGE
    if _looks_like_auth_failure(cause):
        return CONNECTION_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE
