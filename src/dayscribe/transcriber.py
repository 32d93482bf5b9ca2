"""Speech-to-text backends."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional, Protocol

from .audio_utils import to_base64
from .errors import TranscriptionError
from .remote import TRANSPORT_ERRORS, RemoteClient

logger = logging.getLogger(__name__)


class TranscriptionService(Protocol):
    async def transcribe(self, audio: bytes) -> str:
        ...


class RemoteTranscriber:
    """Posts base64 audio to the transcription function and returns its text."""

    def __init__(self, client: RemoteClient, function_name: str = "transcribe-audio") -> None:
        self.client = client
        self.function_name = function_name

    async def transcribe(self, audio: bytes) -> str:
        try:
            response = await self.client.invoke_function(
                self.function_name, {"audio": to_base64(audio)}
            )
        except TRANSPORT_ERRORS as exc:
            raise TranscriptionError(f"Transcription service unreachable: {exc}") from exc
        if not response.ok:
            raise TranscriptionError(response.error_message())
        data = response.data if isinstance(response.data, dict) else {}
        if data.get("error"):
            raise TranscriptionError(str(data["error"]))
        return str(data.get("text") or "")


class WhisperTranscriber:
    """Local transcription with Faster-Whisper, run off the event loop."""

    def __init__(
        self,
        model_name: str = "small",
        language: Optional[str] = None,
        device: Optional[str] = None,
        compute_type: Optional[str] = None,
    ) -> None:
        self.model_name = model_name
        self.language = language
        self.device = device
        self.compute_type = compute_type
        self._model = None

    def _load_model(self):
        if self._model is None:
            try:
                from faster_whisper import WhisperModel
            except Exception as exc:  # pragma: no cover - optional dependency
                raise TranscriptionError(
                    "faster-whisper is required for local transcription."
                ) from exc

            kwargs = {}
            if self.device:
                kwargs["device"] = self.device
            if self.compute_type:
                kwargs["compute_type"] = self.compute_type
            logger.info("Loading whisper model %s", self.model_name)
            self._model = WhisperModel(self.model_name, **kwargs)
        return self._model

    def _transcribe_sync(self, audio: bytes) -> str:
        model = self._load_model()
        segments, _info = model.transcribe(io.BytesIO(audio), language=self.language)
        return " ".join(seg.text.strip() for seg in segments if seg.text.strip())

    async def transcribe(self, audio: bytes) -> str:
        try:
            return await asyncio.to_thread(self._transcribe_sync, audio)
        except TranscriptionError:
            raise
        except Exception as exc:
            raise TranscriptionError(f"Local transcription failed: {exc}") from exc


def build_transcriber(config, client: Optional[RemoteClient] = None) -> TranscriptionService:
    backend = config.transcription.backend
    if backend == "whisper":
        return WhisperTranscriber(
            model_name=config.transcription.whisper_model,
            language=config.transcription.language,
        )
    if backend == "remote":
        if client is None:
            raise ValueError("The remote transcription backend needs a RemoteClient.")
        return RemoteTranscriber(client, function_name=config.functions.transcribe)
    raise ValueError(f"Unknown transcription backend: {backend!r}")
