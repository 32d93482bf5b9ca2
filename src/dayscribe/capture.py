"""Recording, transcription and journal submission."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import partial
from typing import List, Optional, Type

from .audio_utils import channel_levels, encode_wav, pcm_duration_seconds
from .auth import AuthContext
from .errors import (
    AuthenticationError,
    CaptureStateError,
    DayscribeError,
    ExtractionError,
    MicrophoneAccessError,
    RecordingLimitError,
    TranscriptionError,
    ValidationError,
)
from .extractor import ExtractionService
from .notifier import Notifier
from .recorder import AudioInput
from .signals import RefreshSignal
from .transcriber import TranscriptionService

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    SUBMITTING = "submitting"


def append_transcript(existing: str, addition: str) -> str:
    if not existing:
        return addition
    return f"{existing}\n\n{addition}"


def _as_error(exc: Exception, error_type: Type[DayscribeError]) -> DayscribeError:
    if isinstance(exc, DayscribeError):
        return exc
    wrapped = error_type(str(exc) or type(exc).__name__)
    wrapped.__cause__ = exc
    return wrapped


class CaptureCoordinator:
    """Owns the journal text buffer and the record/transcribe/submit cycle.

    Every public operation returns True on success. Failures are never
    raised: they are surfaced through the notifier and kept in
    ``last_error`` while the state falls back to IDLE.
    """

    def __init__(
        self,
        audio_input: AudioInput,
        transcriber: TranscriptionService,
        extractor: ExtractionService,
        auth: AuthContext,
        signal: RefreshSignal,
        notifier: Optional[Notifier] = None,
        max_recording_seconds: Optional[float] = None,
    ) -> None:
        self.audio_input = audio_input
        self.transcriber = transcriber
        self.extractor = extractor
        self.auth = auth
        self.signal = signal
        self.notifier = notifier or Notifier()
        self.max_recording_seconds = max_recording_seconds

        self.text = ""
        self.state = CaptureState.IDLE
        self.last_error: Optional[DayscribeError] = None

        self._chunks: List[bytes] = []
        self._byte_count = 0
        self._session = 0
        self._mic_open = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def can_record(self) -> bool:
        return self.state in (CaptureState.IDLE, CaptureState.RECORDING)

    @property
    def can_submit(self) -> bool:
        return self.state == CaptureState.IDLE

    @property
    def recorded_seconds(self) -> float:
        return pcm_duration_seconds(
            self._byte_count, self.audio_input.sample_rate_hz, self.audio_input.channels
        )

    def _fail(self, error: DayscribeError, message: Optional[str] = None) -> bool:
        self.last_error = error
        self.notifier.error(message or str(error), error)
        return False

    # Recording

    async def start_capture(self) -> bool:
        if self.state != CaptureState.IDLE:
            return self._fail(
                CaptureStateError(f"Cannot start recording while {self.state.value}.")
            )

        self._loop = asyncio.get_running_loop()
        self._session += 1
        self._chunks = []
        self._byte_count = 0
        self.state = CaptureState.RECORDING
        try:
            await asyncio.to_thread(
                self.audio_input.open, partial(self._chunk_from_audio_thread, self._session)
            )
        except Exception as exc:
            self.state = CaptureState.IDLE
            # release whatever the device acquired before failing
            self._mic_open = True
            self._release_microphone()
            return self._fail(
                _as_error(exc, MicrophoneAccessError),
                "Failed to start recording. Please check microphone permissions.",
            )
        self._mic_open = True
        if self.state != CaptureState.RECORDING:
            # closed while the device was opening
            self._release_microphone()
            return False
        self.last_error = None
        self.notifier.success("Recording started")
        return True

    def _chunk_from_audio_thread(self, session: int, chunk: bytes) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._accept_chunk, session, chunk)

    def _accept_chunk(self, session: int, chunk: bytes) -> None:
        if session != self._session or self.state != CaptureState.RECORDING:
            return
        if not chunk:
            return
        self._chunks.append(chunk)
        self._byte_count += len(chunk)
        if (
            self.max_recording_seconds is not None
            and self.recorded_seconds > self.max_recording_seconds
        ):
            self._discard_recording()
            self._fail(
                RecordingLimitError(
                    f"Recording exceeded {self.max_recording_seconds:g} seconds and was discarded."
                )
            )

    def _release_microphone(self) -> None:
        if not self._mic_open:
            return
        self._mic_open = False
        try:
            self.audio_input.close()
        except Exception:
            logger.exception("Failed to release microphone")

    def _discard_recording(self) -> None:
        self._release_microphone()
        self._session += 1
        self._chunks = []
        self._byte_count = 0
        self.state = CaptureState.IDLE

    async def stop_capture(self) -> bool:
        if self.state != CaptureState.RECORDING:
            return self._fail(CaptureStateError("No recording in progress."))

        self._release_microphone()
        # chunks queued from the audio thread before release land first
        await asyncio.sleep(0)
        if self.state != CaptureState.RECORDING:
            return False

        chunks, self._chunks = self._chunks, []
        seconds = self.recorded_seconds
        self._byte_count = 0
        self._session += 1
        self.state = CaptureState.TRANSCRIBING

        if not chunks:
            self.state = CaptureState.IDLE
            return self._fail(TranscriptionError("No audio was captured."))

        rms, peaks = channel_levels(b"".join(chunks[-20:]), self.audio_input.channels)
        logger.info(
            "Recording stopped: %.1fs in %d chunks (tail rms %s, peak %s)",
            seconds,
            len(chunks),
            " ".join(f"{v:.3f}" for v in rms),
            " ".join(f"{v:.3f}" for v in peaks),
        )
        audio = encode_wav(chunks, self.audio_input.sample_rate_hz, self.audio_input.channels)
        return await self.transcribe(audio)

    async def transcribe(self, audio: bytes) -> bool:
        if self.state not in (CaptureState.IDLE, CaptureState.TRANSCRIBING):
            return self._fail(
                CaptureStateError(f"Cannot transcribe while {self.state.value}.")
            )

        self.state = CaptureState.TRANSCRIBING
        try:
            text = await self.transcriber.transcribe(audio)
        except Exception as exc:
            self.state = CaptureState.IDLE
            error = _as_error(exc, TranscriptionError)
            return self._fail(error, str(error) or "Failed to transcribe audio")

        self.state = CaptureState.IDLE
        self.last_error = None
        if text:
            self.text = append_transcript(self.text, text)
            self.notifier.success("Transcription complete!")
        else:
            self.notifier.info("No speech was recognised.")
        return True

    # Submission

    async def submit(self) -> bool:
        if self.state != CaptureState.IDLE:
            return self._fail(
                CaptureStateError(f"Cannot process the journal while {self.state.value}.")
            )

        content = self.text
        if not content.strip():
            return self._fail(ValidationError("Please write something in your journal"))

        self.state = CaptureState.SUBMITTING
        try:
            user_id = await self.auth.get_current_user()
        except Exception as exc:
            self.state = CaptureState.IDLE
            return self._fail(_as_error(exc, AuthenticationError))
        if not user_id:
            self.state = CaptureState.IDLE
            return self._fail(AuthenticationError("Please sign in to continue"))

        try:
            await self.extractor.process_journal(content, user_id)
        except Exception as exc:
            self.state = CaptureState.IDLE
            error = _as_error(exc, ExtractionError)
            return self._fail(error, str(error) or "Failed to process journal entry")

        self.state = CaptureState.IDLE
        self.last_error = None
        self.text = ""
        self.signal.bump()
        self.notifier.success("Journal processed! Your insights are ready.")
        return True

    def close(self) -> None:
        if self.state == CaptureState.RECORDING:
            logger.info("Discarding recording in progress")
            self._discard_recording()
        else:
            self._release_microphone()
