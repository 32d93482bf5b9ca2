import asyncio
import dataclasses
from typing import Dict, List, Optional

import pytest

from dayscribe.auth import StaticAuth
from dayscribe.capture import CaptureCoordinator
from dayscribe.errors import MicrophoneAccessError, SyncError
from dayscribe.models import EntityKind
from dayscribe.notifier import Notifier
from dayscribe.signals import RefreshSignal
from dayscribe.sync import InsightSynchronizer


class FakeAudioInput:
    def __init__(self, sample_rate_hz=16000, channels=1, deny=False, error=None):
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.deny = deny
        self.error: Optional[Exception] = error
        self.opens = 0
        self.closes = 0
        self._on_chunk = None

    def open(self, on_chunk):
        self.opens += 1
        if self.deny:
            raise MicrophoneAccessError("Permission denied")
        if self.error is not None:
            raise self.error
        self._on_chunk = on_chunk

    def close(self):
        self.closes += 1
        self._on_chunk = None

    def emit(self, chunk: bytes):
        assert self._on_chunk is not None, "microphone is not open"
        self._on_chunk(chunk)


class FakeTranscriber:
    def __init__(self, text="hello there", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[bytes] = []

    async def transcribe(self, audio: bytes) -> str:
        self.calls.append(audio)
        if self.error is not None:
            raise self.error
        return self.text


class FakeExtractor:
    def __init__(self, error: Optional[Exception] = None, on_call=None, gate=None):
        self.error = error
        self.on_call = on_call
        self.gate = gate
        self.calls: List[tuple] = []

    async def process_journal(self, journal_content: str, user_id: str) -> None:
        self.calls.append((journal_content, user_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.on_call is not None:
            self.on_call(journal_content, user_id)


class FakeStore:
    def __init__(self):
        self.rows: Dict[EntityKind, list] = {kind: [] for kind in EntityKind}
        self.list_calls: Dict[EntityKind, int] = {kind: 0 for kind in EntityKind}
        self.list_users: List[str] = []
        self.updates: List[tuple] = []
        self.deletes: List[tuple] = []
        self.fail_list = set()
        self.fail_update = False
        self.fail_delete = False
        # rows are read before waiting, so a held list returns what was stored then
        self.hold: Optional[asyncio.Event] = None

    def add(self, kind: EntityKind, record):
        self.rows[kind].append(record)
        return record

    async def list(self, kind, user_id):
        self.list_calls[kind] += 1
        self.list_users.append(user_id)
        if kind in self.fail_list:
            raise SyncError(f"{kind.collection} unavailable")
        rows = [dataclasses.replace(r) for r in self.rows[kind] if r.user_id == user_id]
        if self.hold is not None:
            await self.hold.wait()
        return rows

    async def update(self, kind, record_id, fields):
        self.updates.append((kind, record_id, dict(fields)))
        if self.fail_update:
            raise SyncError("update rejected")
        self.rows[kind] = [
            dataclasses.replace(r, **fields) if r.id == record_id else r
            for r in self.rows[kind]
        ]

    async def delete(self, kind, record_id):
        self.deletes.append((kind, record_id))
        if self.fail_delete:
            raise SyncError("delete rejected")
        self.rows[kind] = [r for r in self.rows[kind] if r.id != record_id]


def loads(store: FakeStore) -> int:
    return store.list_calls[EntityKind.TASK]


async def drain():
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def signal():
    return RefreshSignal()


@pytest.fixture
def audio_input():
    return FakeAudioInput()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def auth():
    return StaticAuth("user-1")


@pytest.fixture
def coordinator(audio_input, transcriber, extractor, auth, signal, notifier):
    return CaptureCoordinator(
        audio_input=audio_input,
        transcriber=transcriber,
        extractor=extractor,
        auth=auth,
        signal=signal,
        notifier=notifier,
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def synchronizer(store, auth, notifier, signal):
    return InsightSynchronizer(store, auth, notifier=notifier, signal=signal)


class StubClient:
    """Stands in for RemoteClient, replaying canned responses in order."""

    def __init__(self, *responses, access_token="token"):
        self.responses = list(responses)
        self.requests = []
        self.access_token = access_token

    async def request(self, method, path, params=None, payload=None, extra_headers=None):
        self.requests.append((method, path, params, payload))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def invoke_function(self, name, body):
        return await self.request("POST", f"functions/v1/{name}", payload=body)
