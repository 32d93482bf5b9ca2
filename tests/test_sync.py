import asyncio
from datetime import date, datetime, timezone

import pytest

from conftest import FakeExtractor, drain, loads
from dayscribe.capture import CaptureCoordinator
from dayscribe.errors import SyncError
from dayscribe.models import CalendarEvent, EntityKind, HealthMention, Note, Task
from dayscribe.notifier import ERROR, SUCCESS

USER = "user-1"


def _stamp(day: int) -> datetime:
    return datetime(2026, 3, day, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def seeded(store):
    store.add(EntityKind.TASK, Task(id="t1", title="Buy milk", priority="high", user_id=USER))
    store.add(EntityKind.TASK, Task(id="t2", title="File taxes", user_id=USER))
    store.add(
        EntityKind.CALENDAR_EVENT,
        CalendarEvent(id="e1", title="Meet Sarah", event_date=date(2026, 3, 5), user_id=USER),
    )
    store.add(EntityKind.NOTE, Note(id="n1", content="Felt productive", created_at=_stamp(1), user_id=USER))
    store.add(
        EntityKind.HEALTH_MENTION,
        HealthMention(id="h1", content="Ran 5k", created_at=_stamp(1), user_id=USER),
    )
    store.add(EntityKind.TASK, Task(id="x1", title="Someone else's task", user_id="user-2"))
    return store


@pytest.mark.asyncio
async def test_load_fills_all_four_panels(synchronizer, seeded):
    assert await synchronizer.load()

    assert [t.id for t in synchronizer.tasks] == ["t1", "t2"]
    assert [e.id for e in synchronizer.events] == ["e1"]
    assert [n.id for n in synchronizer.notes] == ["n1"]
    assert [h.id for h in synchronizer.health] == ["h1"]
    assert set(seeded.list_users) == {USER}
    assert all(count == 1 for count in seeded.list_calls.values())


@pytest.mark.asyncio
async def test_load_without_user_is_silent(synchronizer, seeded, auth, notifier):
    auth.user_id = None

    assert not await synchronizer.load()
    assert synchronizer.tasks == []
    assert loads(seeded) == 0
    assert notifier.recent == []


@pytest.mark.asyncio
async def test_failed_panel_keeps_previous_value(synchronizer, seeded, notifier):
    await synchronizer.load()
    seeded.fail_list.add(EntityKind.NOTE)
    seeded.add(EntityKind.NOTE, Note(id="n2", content="New note", user_id=USER))
    seeded.add(EntityKind.TASK, Task(id="t3", title="Water plants", user_id=USER))

    assert not await synchronizer.load()

    assert [n.id for n in synchronizer.notes] == ["n1"]
    assert [t.id for t in synchronizer.tasks] == ["t1", "t2", "t3"]
    errors = [n for n in notifier.recent if n.level == ERROR]
    assert len(errors) == 1
    assert "notes" in errors[0].message
    assert isinstance(synchronizer.last_error, SyncError)


@pytest.mark.asyncio
async def test_toggle_twice_restores_value_with_two_reloads(synchronizer, seeded):
    await synchronizer.load()
    before = loads(seeded)

    assert await synchronizer.toggle_task("t1")
    assert synchronizer.find(EntityKind.TASK, "t1").completed is True
    assert await synchronizer.toggle_task("t1")
    assert synchronizer.find(EntityKind.TASK, "t1").completed is False

    assert loads(seeded) - before == 2
    assert seeded.updates == [
        (EntityKind.TASK, "t1", {"completed": True}),
        (EntityKind.TASK, "t1", {"completed": False}),
    ]


@pytest.mark.asyncio
async def test_older_load_finishing_late_does_not_undo_toggle(synchronizer, seeded):
    await synchronizer.load()
    gate = asyncio.Event()
    seeded.hold = gate
    stale = asyncio.create_task(synchronizer.load())
    await drain()

    seeded.hold = None
    assert await synchronizer.toggle_task("t1")
    assert synchronizer.find(EntityKind.TASK, "t1").completed is True

    gate.set()
    assert not await stale
    assert seeded.rows[EntityKind.TASK][0].completed is True
    assert synchronizer.find(EntityKind.TASK, "t1").completed is True


@pytest.mark.asyncio
async def test_toggle_failure_does_not_reload(synchronizer, seeded, notifier):
    await synchronizer.load()
    seeded.fail_update = True
    before = loads(seeded)

    assert not await synchronizer.toggle_task("t1", completed=False)
    assert loads(seeded) == before
    assert synchronizer.find(EntityKind.TASK, "t1").completed is False
    assert notifier.last.level == ERROR


@pytest.mark.asyncio
async def test_begin_edit_on_second_record_replaces_cursor(synchronizer, seeded):
    await synchronizer.load()

    synchronizer.begin_edit(EntityKind.TASK, "t1")
    synchronizer.set_edit_buffer("Buy oat milk")
    synchronizer.begin_edit(EntityKind.NOTE, "n1")

    assert synchronizer.cursor.kind == EntityKind.NOTE
    assert synchronizer.cursor.record_id == "n1"
    assert synchronizer.cursor.buffer == "Felt productive"
    assert not synchronizer.is_editing(EntityKind.TASK, "t1")
    assert seeded.updates == []
    assert seeded.rows[EntityKind.TASK][0].title == "Buy milk"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind,record_id,field",
    [
        (EntityKind.TASK, "t2", "title"),
        (EntityKind.CALENDAR_EVENT, "e1", "title"),
        (EntityKind.NOTE, "n1", "content"),
        (EntityKind.HEALTH_MENTION, "h1", "content"),
    ],
)
async def test_save_edit_writes_the_kind_text_field(
    synchronizer, seeded, notifier, kind, record_id, field
):
    await synchronizer.load()
    synchronizer.begin_edit(kind, record_id)
    synchronizer.set_edit_buffer("Edited")

    assert await synchronizer.save_edit()

    assert seeded.updates == [(kind, record_id, {field: "Edited"})]
    assert synchronizer.cursor is None
    assert kind.text_of(synchronizer.find(kind, record_id)) == "Edited"
    assert any(n.level == SUCCESS and n.message == "Updated successfully" for n in notifier.recent)


@pytest.mark.asyncio
async def test_save_edit_failure_keeps_cursor_for_retry(synchronizer, seeded):
    await synchronizer.load()
    synchronizer.begin_edit(EntityKind.NOTE, "n1")
    synchronizer.set_edit_buffer("Felt very productive")
    seeded.fail_update = True

    assert not await synchronizer.save_edit()
    assert synchronizer.cursor.buffer == "Felt very productive"

    seeded.fail_update = False
    assert await synchronizer.save_edit()
    assert synchronizer.find(EntityKind.NOTE, "n1").content == "Felt very productive"


@pytest.mark.asyncio
async def test_save_without_cursor_does_nothing(synchronizer, seeded):
    assert not await synchronizer.save_edit()
    assert seeded.updates == []


@pytest.mark.asyncio
async def test_cancel_edit_has_no_remote_effect(synchronizer, seeded):
    await synchronizer.load()
    synchronizer.begin_edit(EntityKind.CALENDAR_EVENT, "e1")
    synchronizer.set_edit_buffer("Lunch with Sarah")

    synchronizer.cancel_edit()

    assert synchronizer.cursor is None
    assert seeded.updates == []


def test_begin_edit_on_unloaded_record_raises(synchronizer):
    with pytest.raises(KeyError):
        synchronizer.begin_edit(EntityKind.TASK, "missing")


@pytest.mark.asyncio
async def test_delete_only_affects_its_kind(synchronizer, seeded, notifier):
    await synchronizer.load()

    assert await synchronizer.delete(EntityKind.TASK, "t1")

    assert [t.id for t in synchronizer.tasks] == ["t2"]
    assert [e.id for e in synchronizer.events] == ["e1"]
    assert [n.id for n in synchronizer.notes] == ["n1"]
    assert [h.id for h in synchronizer.health] == ["h1"]
    assert notifier.last.message == "Deleted successfully"


@pytest.mark.asyncio
async def test_delete_clears_cursor_on_deleted_record(synchronizer, seeded):
    await synchronizer.load()
    synchronizer.begin_edit(EntityKind.HEALTH_MENTION, "h1")

    assert await synchronizer.delete("health_mentions", "h1")
    assert synchronizer.cursor is None
    assert synchronizer.health == []


@pytest.mark.asyncio
async def test_delete_failure_leaves_state_unchanged(synchronizer, seeded, notifier):
    await synchronizer.load()
    synchronizer.begin_edit(EntityKind.TASK, "t2")
    seeded.fail_delete = True
    before = loads(seeded)

    assert not await synchronizer.delete(EntityKind.TASK, "t2")
    assert [t.id for t in synchronizer.tasks] == ["t1", "t2"]
    assert synchronizer.is_editing(EntityKind.TASK, "t2")
    assert loads(seeded) == before
    assert notifier.last.message == "Failed to delete"


@pytest.mark.asyncio
async def test_attach_loads_once_and_on_each_signal(synchronizer, seeded, signal):
    synchronizer.attach()
    await synchronizer.wait_idle()
    assert loads(seeded) == 1

    signal.bump()
    await synchronizer.wait_idle()
    assert loads(seeded) == 2

    synchronizer.detach()
    signal.bump()
    await drain()
    assert loads(seeded) == 2


@pytest.mark.asyncio
async def test_submitted_entry_reaches_panels_through_signal(
    seeded, synchronizer, signal, auth, audio_input, transcriber, notifier
):
    def _extract(content, user_id):
        seeded.add(EntityKind.TASK, Task(id="t9", title="Buy milk", user_id=user_id))
        seeded.add(EntityKind.TASK, Task(id="t10", title="Call mom", user_id=user_id))

    coordinator = CaptureCoordinator(
        audio_input=audio_input,
        transcriber=transcriber,
        extractor=FakeExtractor(on_call=_extract),
        auth=auth,
        signal=signal,
        notifier=notifier,
    )
    synchronizer.attach()
    await synchronizer.wait_idle()
    assert loads(seeded) == 1

    coordinator.text = "Buy milk and call mom"
    assert await coordinator.submit()
    assert coordinator.text == ""
    assert signal.value == 1

    await synchronizer.wait_idle()
    assert all(count == 2 for count in seeded.list_calls.values())
    assert {"t9", "t10"} <= {t.id for t in synchronizer.tasks}
