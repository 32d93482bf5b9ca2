"""Loading and editing the extracted insights."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

from .auth import AuthContext
from .errors import DayscribeError, SyncError
from .models import (
    CalendarEvent,
    EditCursor,
    EntityKind,
    HealthMention,
    Note,
    Record,
    Task,
)
from .notifier import Notifier
from .signals import RefreshSignal
from .store import InsightStore

logger = logging.getLogger(__name__)

PANEL_LABELS = {
    EntityKind.TASK: "tasks",
    EntityKind.CALENDAR_EVENT: "calendar events",
    EntityKind.NOTE: "notes",
    EntityKind.HEALTH_MENTION: "health mentions",
}


def _as_sync_error(exc: Exception) -> DayscribeError:
    if isinstance(exc, DayscribeError):
        return exc
    wrapped = SyncError(str(exc) or type(exc).__name__)
    wrapped.__cause__ = exc
    return wrapped


class InsightSynchronizer:
    """Four read-mostly panels plus a single edit cursor.

    The remote store is the only source of truth: every successful mutation
    is followed by a full reload instead of a local patch.
    """

    def __init__(
        self,
        store: InsightStore,
        auth: AuthContext,
        notifier: Optional[Notifier] = None,
        signal: Optional[RefreshSignal] = None,
    ) -> None:
        self.store = store
        self.auth = auth
        self.notifier = notifier or Notifier()
        self.signal = signal
        self.cursor: Optional[EditCursor] = None
        self.last_error: Optional[DayscribeError] = None

        self._panels: Dict[EntityKind, List[Record]] = {kind: [] for kind in EntityKind}
        self._pending: Set[asyncio.Task] = set()
        self._seen_signal: Optional[int] = None
        self._load_seq = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    # Panels

    def panel(self, kind: EntityKind) -> List[Record]:
        return list(self._panels[EntityKind.parse(kind)])

    @property
    def tasks(self) -> List[Task]:
        return self.panel(EntityKind.TASK)

    @property
    def events(self) -> List[CalendarEvent]:
        return self.panel(EntityKind.CALENDAR_EVENT)

    @property
    def notes(self) -> List[Note]:
        return self.panel(EntityKind.NOTE)

    @property
    def health(self) -> List[HealthMention]:
        return self.panel(EntityKind.HEALTH_MENTION)

    def find(self, kind: EntityKind, record_id: str) -> Optional[Record]:
        for record in self._panels[EntityKind.parse(kind)]:
            if record.id == record_id:
                return record
        return None

    def _fail(self, exc: Exception, message: str) -> bool:
        error = _as_sync_error(exc)
        self.last_error = error
        self.notifier.error(message, error)
        return False

    # Refresh signal

    def attach(self) -> None:
        """Follow the refresh signal; loads once now and on every new value."""
        if self.signal is None:
            raise RuntimeError("No refresh signal to attach to.")
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.signal.subscribe(self._on_signal)
        self._on_signal(self.signal.value)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_signal(self, value: int) -> None:
        if value == self._seen_signal:
            return
        self._seen_signal = value
        task = asyncio.get_running_loop().create_task(self.load())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # Loading

    async def load(self) -> bool:
        self._load_seq += 1
        seq = self._load_seq
        try:
            user_id = await self.auth.get_current_user()
        except Exception as exc:
            return self._fail(exc, "Failed to load insights")
        if not user_id:
            logger.debug("No signed-in user, skipping insight load")
            return False

        kinds = list(EntityKind)
        results = await asyncio.gather(
            *(self.store.list(kind, user_id) for kind in kinds),
            return_exceptions=True,
        )
        if seq != self._load_seq:
            # a newer load started while this one was in flight
            logger.debug("Dropping superseded insight load")
            return False
        complete = True
        for kind, result in zip(kinds, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                complete = False
                self._fail(result, f"Failed to load {PANEL_LABELS[kind]}")
                continue
            self._panels[kind] = list(result)
        logger.debug(
            "Loaded insights: %s",
            ", ".join(f"{kind.collection}={len(self._panels[kind])}" for kind in kinds),
        )
        return complete

    # Mutations

    async def toggle_task(self, task_id: str, completed: Optional[bool] = None) -> bool:
        if completed is None:
            task = self.find(EntityKind.TASK, task_id)
            if task is None:
                raise KeyError(f"Task {task_id} is not loaded")
            completed = task.completed
        try:
            await self.store.update(EntityKind.TASK, task_id, {"completed": not completed})
        except Exception as exc:
            return self._fail(exc, "Failed to update task")
        await self.load()
        return True

    def begin_edit(
        self,
        kind: EntityKind,
        record_id: str,
        current_value: Optional[str] = None,
    ) -> EditCursor:
        kind = EntityKind.parse(kind)
        if current_value is None:
            record = self.find(kind, record_id)
            if record is None:
                raise KeyError(f"{kind.collection} record {record_id} is not loaded")
            current_value = kind.text_of(record)

        previous = self.cursor
        if (
            previous is not None
            and previous.dirty
            and (previous.kind, previous.record_id) != (kind, record_id)
        ):
            logger.info(
                "Discarding unsaved edit of %s %s", previous.kind.collection, previous.record_id
            )
        self.cursor = EditCursor(kind, record_id, current_value, original=current_value)
        return self.cursor

    def set_edit_buffer(self, value: str) -> None:
        if self.cursor is None:
            raise RuntimeError("No record is being edited.")
        self.cursor.buffer = value

    def is_editing(self, kind: EntityKind, record_id: str) -> bool:
        cursor = self.cursor
        return (
            cursor is not None
            and cursor.kind == EntityKind.parse(kind)
            and cursor.record_id == record_id
        )

    def cancel_edit(self) -> None:
        self.cursor = None

    async def save_edit(self) -> bool:
        cursor = self.cursor
        if cursor is None:
            return False
        try:
            await self.store.update(
                cursor.kind, cursor.record_id, {cursor.kind.text_field: cursor.buffer}
            )
        except Exception as exc:
            return self._fail(exc, "Failed to update")
        if self.cursor is cursor:
            self.cursor = None
        self.notifier.success("Updated successfully")
        await self.load()
        return True

    async def delete(self, kind: EntityKind, record_id: str) -> bool:
        kind = EntityKind.parse(kind)
        try:
            await self.store.delete(kind, record_id)
        except Exception as exc:
            return self._fail(exc, "Failed to delete")
        if self.is_editing(kind, record_id):
            self.cursor = None
        self.notifier.success("Deleted successfully")
        await self.load()
        return True
