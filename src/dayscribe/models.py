"""Data models for dayscribe."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Optional, Type, Union


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_time(value: Any) -> Optional[time]:
    if not value:
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass
class Task:
    id: str
    title: str
    completed: bool = False
    priority: str = "medium"
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            completed=bool(row.get("completed", False)),
            priority=row.get("priority") or "medium",
            user_id=row.get("user_id"),
            created_at=_parse_timestamp(row.get("created_at")),
        )


@dataclass
class CalendarEvent:
    id: str
    title: str
    event_date: Optional[date] = None
    event_time: Optional[time] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CalendarEvent":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            event_date=_parse_date(row.get("event_date")),
            event_time=_parse_time(row.get("event_time")),
            user_id=row.get("user_id"),
        )


@dataclass
class Note:
    id: str
    content: str
    created_at: Optional[datetime] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Note":
        return cls(
            id=str(row["id"]),
            content=row.get("content") or "",
            created_at=_parse_timestamp(row.get("created_at")),
            user_id=row.get("user_id"),
        )


@dataclass
class HealthMention:
    id: str
    content: str
    created_at: Optional[datetime] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HealthMention":
        return cls(
            id=str(row["id"]),
            content=row.get("content") or "",
            created_at=_parse_timestamp(row.get("created_at")),
            user_id=row.get("user_id"),
        )


Record = Union[Task, CalendarEvent, Note, HealthMention]


@dataclass(frozen=True)
class KindSpec:
    collection: str
    record_type: Type[Any]
    text_field: str
    order_by: str
    ascending: bool = False
    limit: Optional[int] = None


class EntityKind(str, Enum):
    TASK = "tasks"
    CALENDAR_EVENT = "calendar_events"
    NOTE = "notes"
    HEALTH_MENTION = "health_mentions"

    @property
    def spec(self) -> KindSpec:
        return KIND_SPECS[self]

    @property
    def collection(self) -> str:
        return self.spec.collection

    @property
    def text_field(self) -> str:
        return self.spec.text_field

    def from_row(self, row: Dict[str, Any]) -> Record:
        return self.spec.record_type.from_row(row)

    def text_of(self, record: Record) -> str:
        return getattr(record, self.text_field)

    @classmethod
    def parse(cls, value: Union[str, "EntityKind"]) -> "EntityKind":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for kind in cls:
            if key in (kind.value, kind.name.lower()):
                return kind
        if key in _KIND_ALIASES:
            return _KIND_ALIASES[key]
        raise ValueError(f"Unknown entity kind: {value!r}")


KIND_SPECS: Dict[EntityKind, KindSpec] = {
    EntityKind.TASK: KindSpec(
        collection="tasks",
        record_type=Task,
        text_field="title",
        order_by="created_at",
    ),
    EntityKind.CALENDAR_EVENT: KindSpec(
        collection="calendar_events",
        record_type=CalendarEvent,
        text_field="title",
        order_by="event_date",
        ascending=True,
    ),
    EntityKind.NOTE: KindSpec(
        collection="notes",
        record_type=Note,
        text_field="content",
        order_by="created_at",
        limit=10,
    ),
    EntityKind.HEALTH_MENTION: KindSpec(
        collection="health_mentions",
        record_type=HealthMention,
        text_field="content",
        order_by="created_at",
        limit=10,
    ),
}

_KIND_ALIASES = {
    "event": EntityKind.CALENDAR_EVENT,
    "events": EntityKind.CALENDAR_EVENT,
    "calendar": EntityKind.CALENDAR_EVENT,
    "health": EntityKind.HEALTH_MENTION,
}


@dataclass
class EditCursor:
    kind: EntityKind
    record_id: str
    buffer: str
    original: str = ""

    @property
    def dirty(self) -> bool:
        return self.buffer != self.original
