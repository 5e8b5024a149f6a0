import threading
from datetime import datetime, time, timedelta

import pytest

from focus_engine.errors import HostContractError
from focus_engine.parser import parse_free_text
from focus_engine.schema import BehaviorEvent, Category, EventType, Habit, Priority, Task, TaskCompleteMeta, WeekMode
from focus_engine.store import (
    SessionRegistry,
    SessionStore,
    Snapshot,
    add_task,
    apply_badge_action,
    complete_task,
    delete_task,
    edit_task,
    initial_snapshot,
    log_event,
    postpone_task,
    refresh_persona,
    set_week_mode,
    task_from_draft,
    toggle_habit,
    undo_delete,
)

NOW = datetime(2025, 4, 1, 9, 0)


def make_task(task_id, category=Category.STUDY):
    return Task(
        id=task_id,
        title=task_id,
        category=category,
        priority=Priority.NORMAL,
        estimated_minutes=45,
        deadline=NOW + timedelta(hours=8),
        created_at=NOW,
    )


def seeded():
    snapshot = initial_snapshot()
    for task_id in ("a", "b", "c"):
        snapshot = add_task(snapshot, make_task(task_id))
    return snapshot


def test_add_task_prepends_and_rejects_duplicates():
    snapshot = seeded()
    assert [task.id for task in snapshot.tasks] == ["c", "b", "a"]
    with pytest.raises(HostContractError):
        add_task(snapshot, make_task("a"))


def test_complete_task_logs_event_once():
    snapshot = complete_task(seeded(), "b", now=NOW)
    task = next(task for task in snapshot.tasks if task.id == "b")
    assert task.is_completed
    assert task.completed_at == NOW
    assert len(snapshot.events) == 1
    event = snapshot.events[0]
    assert event.type is EventType.TASK_COMPLETE
    assert event.metadata == TaskCompleteMeta(task_id="b", estimated_minutes=45, category=Category.STUDY)

    assert complete_task(snapshot, "b", now=NOW + timedelta(hours=1)) is snapshot


def test_postpone_increments_and_logs():
    snapshot = postpone_task(postpone_task(seeded(), "a", now=NOW), "a", now=NOW)
    task = next(task for task in snapshot.tasks if task.id == "a")
    assert task.postponed_count == 2
    assert [event.type for event in snapshot.events] == [EventType.TASK_POSTPONE] * 2


def test_unknown_ids_are_rejected():
    with pytest.raises(HostContractError):
        complete_task(seeded(), "zzz")
    with pytest.raises(HostContractError):
        toggle_habit(seeded(), "missing")


def test_edit_task_guards_derived_fields():
    snapshot = edit_task(seeded(), "a", title="Read chapter 4", priority=Priority.HIGH)
    task = next(task for task in snapshot.tasks if task.id == "a")
    assert task.title == "Read chapter 4"
    assert task.priority is Priority.HIGH
    for field in ("id", "created_at", "postponed_count", "priority_score"):
        with pytest.raises(HostContractError):
            edit_task(snapshot, "a", **{field: 1})
    with pytest.raises(HostContractError):
        edit_task(snapshot, "a", colour="red")


def test_delete_keeps_one_slot_undo_buffer():
    snapshot = delete_task(delete_task(seeded(), "a"), "b")
    assert [task.id for task in snapshot.tasks] == ["c"]
    assert snapshot.deleted_task.id == "b"

    restored = undo_delete(snapshot)
    assert [task.id for task in restored.tasks] == ["b", "c"]
    assert restored.deleted_task is None
    assert undo_delete(restored) is restored


def test_toggle_habit_history_is_append_only_and_unique():
    snapshot = Snapshot(habits=(Habit("h1", "Meditation", streak_count=4),))
    snapshot = toggle_habit(snapshot, "h1", now=NOW)
    habit = snapshot.habits[0]
    assert habit.is_completed_today and habit.streak_count == 5
    assert habit.history == ("2025-04-01",)

    snapshot = toggle_habit(toggle_habit(snapshot, "h1", now=NOW), "h1", now=NOW)
    habit = snapshot.habits[0]
    assert habit.streak_count == 5
    assert habit.history == ("2025-04-01",)

    snapshot = toggle_habit(snapshot, "h1", now=NOW)
    assert snapshot.habits[0].history == ("2025-04-01",)
    assert not snapshot.habits[0].is_completed_today


def test_just_unlocked_lasts_one_snapshot():
    snapshot = initial_snapshot()
    for _ in range(3):
        snapshot = apply_badge_action(snapshot, "use_ai", now=NOW)
    assert snapshot.just_unlocked == "smart-planner"
    assert set_week_mode(snapshot, WeekMode.CRUNCH).just_unlocked is None


def test_unlocks_from_one_action_are_flagged_one_per_snapshot():
    snapshot = Snapshot(habits=(Habit("h1", "Read", is_completed_today=True),), badges=initial_snapshot().badges)
    categories = (Category.PRAYER, Category.STUDY, Category.WORK, Category.HABIT, Category.OTHER)
    for index, category in enumerate(categories):
        snapshot = add_task(snapshot, make_task(f"t{index}", category))
    for index in range(4):
        snapshot = complete_task(snapshot, f"t{index}", now=NOW)

    snapshot = apply_badge_action(snapshot, "daily_completion_check", now=NOW)
    assert snapshot.just_unlocked == "soul-balance"
    assert snapshot.unlock_queue == ("realist",)

    snapshot = set_week_mode(snapshot, WeekMode.LIGHT)
    assert snapshot.just_unlocked == "realist"
    assert snapshot.unlock_queue == ()

    assert set_week_mode(snapshot, WeekMode.STANDARD).just_unlocked is None


def test_draft_to_task_and_persona_refresh():
    draft = parse_free_text("revise physics tomorrow at 6pm for 90 minutes", now=NOW)
    task = task_from_draft(draft, task_id="p1", now=NOW)
    assert task.category is Category.STUDY
    assert task.scheduled_time == time(18, 0)
    assert task.estimated_minutes == 90
    assert task.created_at == NOW

    snapshot = add_task(initial_snapshot(), task)
    for offset in range(5):
        snapshot = add_task(snapshot, make_task(f"m{offset}"))
        snapshot = complete_task(snapshot, f"m{offset}", now=NOW + timedelta(days=offset))
    snapshot = refresh_persona(snapshot)
    assert snapshot.persona.energy_profile.value == "morning_person"


def test_log_event_appends():
    snapshot = log_event(initial_snapshot(), BehaviorEvent.create("app_open", NOW))
    assert len(snapshot.events) == 1


def test_session_store_serializes_dispatch():
    store = SessionStore(seeded())

    def worker():
        for _ in range(20):
            store.dispatch(postpone_task, "a", now=NOW)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    task = next(task for task in store.snapshot.tasks if task.id == "a")
    assert task.postponed_count == 160
    assert len(store.snapshot.events) == 160


def test_registry_gives_each_user_one_store():
    registry = SessionRegistry()
    assert registry.get("u1") is registry.get("u1")
    assert registry.get("u1") is not registry.get("u2")
    assert len(registry.get("u3").snapshot.badges) == 7
