"""Error types surfaced by capture and sync operations."""

from __future__ import annotations


class DayscribeError(Exception):
    """Base class for every error this package surfaces."""


class MicrophoneAccessError(DayscribeError, PermissionError):
    """Microphone access was denied or no input device exists."""


class RecordingLimitError(DayscribeError):
    """A recording grew past the configured maximum duration."""


class TranscriptionError(DayscribeError):
    pass


class ValidationError(DayscribeError, ValueError):
    pass


class AuthenticationError(DayscribeError):
    """No signed-in user is available."""


class ExtractionError(DayscribeError):
    pass


class SyncError(DayscribeError):
    """A fetch, update or delete against the insight store failed."""


class CaptureStateError(DayscribeError):
    """An operation was requested from a state that does not allow it."""
