"""Configuration handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import yaml

TRANSCRIPTION_BACKENDS = ("remote", "whisper")


@dataclass
class AudioConfig:
    sample_rate_hz: int = 16000
    channels: int = 1
    device_name: Optional[str] = None
    max_recording_seconds: Optional[int] = None


@dataclass
class StoreConfig:
    url: str = ""
    anon_key: Optional[str] = None
    access_token: Optional[str] = None
    timeout_seconds: Optional[float] = None


@dataclass
class FunctionsConfig:
    transcribe: str = "transcribe-audio"
    process_journal: str = "process-journal"


@dataclass
class TranscriptionConfig:
    backend: str = "remote"
    whisper_model: str = "small"
    language: Optional[str] = None


@dataclass
class Config:
    log_dir: str = "logs"
    audio: AudioConfig = field(default_factory=AudioConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    functions: FunctionsConfig = field(default_factory=FunctionsConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    audio = AudioConfig(**data.get("audio", {}))
    store = StoreConfig(**data.get("store", {}))
    functions = FunctionsConfig(**data.get("functions", {}))
    transcription = TranscriptionConfig(**data.get("transcription", {}))
    if transcription.backend not in TRANSCRIPTION_BACKENDS:
        raise ValueError(
            f"Unknown transcription backend {transcription.backend!r}; "
            f"expected one of {', '.join(TRANSCRIPTION_BACKENDS)}."
        )

    return Config(
        log_dir=data.get("log_dir", "logs"),
        audio=audio,
        store=store,
        functions=functions,
        transcription=transcription,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "log_dir": config.log_dir,
        "audio": {
            "sample_rate_hz": config.audio.sample_rate_hz,
            "channels": config.audio.channels,
            "device_name": config.audio.device_name,
            "max_recording_seconds": config.audio.max_recording_seconds,
        },
        "store": {
            "url": config.store.url,
            "anon_key": config.store.anon_key,
            "access_token": config.store.access_token,
            "timeout_seconds": config.store.timeout_seconds,
        },
        "functions": {
            "transcribe": config.functions.transcribe,
            "process_journal": config.functions.process_journal,
        },
        "transcription": {
            "backend": config.transcription.backend,
            "whisper_model": config.transcription.whisper_model,
            "language": config.transcription.language,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
