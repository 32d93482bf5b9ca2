"""Audio helpers."""

from __future__ import annotations

import base64
import io
import wave
from typing import Any, Iterable, List

import numpy as np

SAMPLE_WIDTH_BYTES = 2


def to_pcm16(indata: Any) -> bytes:
    data = np.asarray(indata)
    if data.dtype != np.int16:
        data = data.astype(np.int16)
    return data.tobytes()


def pcm_duration_seconds(byte_count: int, sample_rate_hz: int, channels: int) -> float:
    frame_bytes = SAMPLE_WIDTH_BYTES * max(channels, 1)
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be > 0.")
    return byte_count / frame_bytes / sample_rate_hz


def encode_wav(chunks: Iterable[bytes], sample_rate_hz: int, channels: int) -> bytes:
    """Join raw 16-bit PCM chunks, in order, into one WAV file image."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(channels)
        handle.setsampwidth(SAMPLE_WIDTH_BYTES)
        handle.setframerate(sample_rate_hz)
        for chunk in chunks:
            handle.writeframes(chunk)
    return buffer.getvalue()


def to_base64(audio: bytes) -> str:
    return base64.b64encode(audio).decode("ascii")


def channel_levels(pcm: bytes, channels: int) -> tuple[List[float], List[float]]:
    """RMS and peak per channel, normalised to 0..1."""
    data = np.frombuffer(pcm, dtype=np.int16).astype("float32") / 32768.0
    usable = data.size - (data.size % channels)
    if usable == 0:
        return [0.0] * channels, [0.0] * channels
    data = data[:usable].reshape(-1, channels)
    rms = np.sqrt(np.mean(data**2, axis=0)).tolist()
    peaks = np.max(np.abs(data), axis=0).tolist()
    return rms, peaks
