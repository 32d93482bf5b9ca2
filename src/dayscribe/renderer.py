"""Plain-text rendering of the insight panels."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional, Sequence

from .models import CalendarEvent, EditCursor, EntityKind, HealthMention, Note, Task


def _clean_text(value: str) -> str:
    return " ".join(value.split())


def format_day(value: Optional[date]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%b %d, %Y")


def format_clock(value: Optional[time]) -> str:
    if value is None:
        return ""
    return value.strftime("%H:%M")


def _editing_mark(cursor: Optional[EditCursor], kind: EntityKind, record_id: str) -> str:
    if cursor is not None and cursor.kind == kind and cursor.record_id == record_id:
        return " (editing)"
    return ""


def render_tasks(tasks: Sequence[Task], cursor: Optional[EditCursor] = None) -> List[str]:
    lines = ["## Tasks", ""]
    if not tasks:
        lines.append("No tasks yet")
        return lines
    for task in tasks:
        box = "x" if task.completed else " "
        mark = _editing_mark(cursor, EntityKind.TASK, task.id)
        lines.append(
            f"- [{box}] {_clean_text(task.title)} ({task.priority}){mark}  `{task.id}`"
        )
    return lines


def render_events(
    events: Sequence[CalendarEvent], cursor: Optional[EditCursor] = None
) -> List[str]:
    lines = ["## Calendar", ""]
    if not events:
        lines.append("No events scheduled")
        return lines
    for event in events:
        when = format_day(event.event_date)
        if event.event_time is not None:
            when = f"{when} at {format_clock(event.event_time)}".strip()
        mark = _editing_mark(cursor, EntityKind.CALENDAR_EVENT, event.id)
        line = f"- {_clean_text(event.title)}{mark}"
        if when:
            line = f"{line} ({when})"
        lines.append(f"{line}  `{event.id}`")
    return lines


def _render_entries(
    heading: str,
    empty: str,
    kind: EntityKind,
    entries: Sequence[Note] | Sequence[HealthMention],
    cursor: Optional[EditCursor],
) -> List[str]:
    lines = [f"## {heading}", ""]
    if not entries:
        lines.append(empty)
        return lines
    for entry in entries:
        mark = _editing_mark(cursor, kind, entry.id)
        stamp = format_day(entry.created_at)
        suffix = f" ({stamp})" if stamp else ""
        lines.append(f"- {_clean_text(entry.content)}{suffix}{mark}  `{entry.id}`")
    return lines


def render_insights(
    tasks: Sequence[Task],
    events: Sequence[CalendarEvent],
    notes: Sequence[Note],
    health: Sequence[HealthMention],
    cursor: Optional[EditCursor] = None,
) -> str:
    lines: List[str] = []
    lines.extend(render_tasks(tasks, cursor))
    lines.append("")
    lines.extend(render_events(events, cursor))
    lines.append("")
    lines.extend(
        _render_entries("Notes & Insights", "No notes yet", EntityKind.NOTE, notes, cursor)
    )
    lines.append("")
    lines.extend(
        _render_entries(
            "Health & Wellness",
            "No health data yet",
            EntityKind.HEALTH_MENTION,
            health,
            cursor,
        )
    )
    return "\n".join(lines) + "\n"
