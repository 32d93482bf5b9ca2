"""Microphone input."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from .audio_utils import to_pcm16
from .errors import MicrophoneAccessError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]


class AudioInput(Protocol):
    sample_rate_hz: int
    channels: int

    def open(self, on_chunk: ChunkCallback) -> None:
        ...

    def close(self) -> None:
        ...


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RuntimeError("sounddevice is required for device detection.") from exc

    devices = sd.query_devices()
    return [d for d in devices if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise RuntimeError("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]
        logger.info("No input device matches %r, using %s", prefer_name, candidates[0].get("name"))
    return candidates[0]


def find_input_device(prefer_name: Optional[str] = None) -> dict:
    candidates = list_input_devices()
    return select_preferred_device(candidates, prefer_name=prefer_name)


class SoundDeviceInput:
    """Microphone stream backed by sounddevice.

    ``open`` acquires the device and starts delivering int16 PCM chunks to
    ``on_chunk`` from the PortAudio thread. ``close`` releases it and may be
    called more than once.
    """

    def __init__(
        self,
        sample_rate_hz: int = 16000,
        channels: int = 1,
        device_name: Optional[str] = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.device_name = device_name
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self, on_chunk: ChunkCallback) -> None:
        if self._stream is not None:
            raise RuntimeError("Microphone is already open.")
        try:
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise MicrophoneAccessError("sounddevice is required for recording.") from exc

        try:
            device = find_input_device(self.device_name)
        except RuntimeError as exc:
            raise MicrophoneAccessError(str(exc)) from exc

        def _callback(indata, _frames, _time, status):
            if status:
                logger.debug("Input status: %s", status)
            on_chunk(to_pcm16(indata))

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                channels=self.channels,
                dtype="int16",
                device=device.get("index"),
                callback=_callback,
            )
        except Exception as exc:
            raise MicrophoneAccessError(f"Could not open {device.get('name')}: {exc}") from exc
        try:
            stream.start()
        except Exception as exc:
            stream.close()
            raise MicrophoneAccessError(f"Could not open {device.get('name')}: {exc}") from exc
        self._stream = stream
        logger.info("Microphone opened: %s", device.get("name"))

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        logger.info("Microphone released")
