import dataclasses
from datetime import datetime, timedelta

import pytest

from focus_engine.badges import BADGE_CATALOG, BadgeLedger, apply_action, seed_badges
from focus_engine.errors import HostContractError
from focus_engine.schema import BadgeAction, Category, Habit, Priority, Task
from focus_engine.store import Snapshot, initial_snapshot

NOW = datetime(2025, 3, 10, 20, 0)


def make_task(task_id, category=Category.STUDY, completed=False, deadline=NOW):
    return Task(
        id=task_id,
        title=task_id,
        category=category,
        priority=Priority.NORMAL,
        estimated_minutes=30,
        deadline=deadline,
        created_at=NOW - timedelta(days=1),
        is_completed=completed,
    )


def fold(snapshot, update):
    return dataclasses.replace(snapshot, badges=update.badges, ledger=update.ledger)


def badge(snapshot, badge_id):
    return next(item for item in snapshot.badges if item.id == badge_id)


def test_seed_badges_are_locked_catalog_copies():
    badges = seed_badges()
    assert [item.id for item in badges] == [item.id for item in BADGE_CATALOG]
    assert all(item.is_locked and item.progress == 0 for item in badges)


def test_smart_planner_unlocks_on_third_ai_use():
    snapshot = initial_snapshot()
    surfaced = []
    for step in range(3):
        update = apply_action(snapshot, BadgeAction.USE_AI, now=NOW + timedelta(minutes=step))
        snapshot = fold(snapshot, update)
        surfaced.append(update.newly_unlocked.id if update.newly_unlocked else None)

    assert surfaced == [None, None, "smart-planner"]
    planner = badge(snapshot, "smart-planner")
    assert not planner.is_locked
    assert planner.progress == 100
    assert planner.unlocked_at == NOW + timedelta(minutes=2)
    assert snapshot.ledger.ai_usage_count == 3


def test_unlock_is_terminal():
    snapshot = initial_snapshot()
    for _ in range(3):
        snapshot = fold(snapshot, apply_action(snapshot, "use_ai", now=NOW))
    unlocked = badge(snapshot, "smart-planner")

    for action in ("use_ai", "app_open", "daily_completion_check", "update_task_honest"):
        snapshot = fold(snapshot, apply_action(snapshot, action, now=NOW + timedelta(days=5)))
        assert badge(snapshot, "smart-planner") == unlocked


def test_non_qualifying_action_leaves_badges_identical():
    snapshot = initial_snapshot()
    first = apply_action(snapshot, BadgeAction.DAILY_COMPLETION_CHECK, now=NOW)
    second = apply_action(fold(snapshot, first), BadgeAction.DAILY_COMPLETION_CHECK, now=NOW)
    assert first.badges == snapshot.badges
    assert second.badges == first.badges
    assert first.newly_unlocked is None


def test_unknown_action_is_rejected():
    with pytest.raises(HostContractError):
        apply_action(initial_snapshot(), "open_app", now=NOW)
    with pytest.raises(ValueError):
        apply_action(initial_snapshot(), "bogus", now=NOW)


def test_self_honest_counts_once_per_task_per_day():
    snapshot = initial_snapshot()
    for _ in range(2):
        snapshot = fold(snapshot, apply_action(snapshot, "update_task_honest", {"task_id": "a"}, now=NOW))
    assert badge(snapshot, "self-honest").progress == 20

    snapshot = fold(snapshot, apply_action(snapshot, "update_task_honest", {"task_id": "b"}, now=NOW))
    assert badge(snapshot, "self-honest").progress == 40

    snapshot = fold(snapshot, apply_action(snapshot, "update_task_honest", {"task_id": "a"}, now=NOW + timedelta(days=1)))
    assert badge(snapshot, "self-honest").progress == 60


def test_self_honest_caps_at_hundred_and_unlocks():
    snapshot = initial_snapshot()
    for index in range(6):
        snapshot = fold(snapshot, apply_action(snapshot, "update_task_honest", {"task_id": f"t{index}"}, now=NOW))
    honest = badge(snapshot, "self-honest")
    assert honest.progress == 100
    assert not honest.is_locked


def test_quiet_starter_needs_three_consecutive_days():
    snapshot = initial_snapshot()
    day = NOW.replace(hour=8)
    for offset in (0, 0, 1):
        snapshot = fold(snapshot, apply_action(snapshot, "app_open", now=day + timedelta(days=offset)))
    assert badge(snapshot, "quiet-starter").is_locked
    assert snapshot.ledger.consecutive_open_days == 2

    update = apply_action(snapshot, "app_open", now=day + timedelta(days=2))
    assert update.newly_unlocked is not None
    assert update.newly_unlocked.id == "quiet-starter"


def test_quiet_starter_progress_survives_a_broken_streak():
    snapshot = initial_snapshot()
    day = NOW.replace(hour=8)
    for offset in (0, 1, 4):
        snapshot = fold(snapshot, apply_action(snapshot, "app_open", now=day + timedelta(days=offset)))
    starter = badge(snapshot, "quiet-starter")
    assert snapshot.ledger.consecutive_open_days == 1
    assert starter.progress == 67
    assert starter.is_locked


def test_resilient_unlocks_after_long_gap():
    snapshot = initial_snapshot()
    snapshot = fold(snapshot, apply_action(snapshot, "app_open", now=NOW))
    assert badge(snapshot, "the-resilient").is_locked

    short_gap = fold(snapshot, apply_action(snapshot, "app_open", now=NOW + timedelta(days=2)))
    assert badge(short_gap, "the-resilient").is_locked

    update = apply_action(snapshot, "app_open", now=NOW + timedelta(days=3))
    assert update.newly_unlocked is not None
    assert update.newly_unlocked.id == "the-resilient"


def test_soul_balance_requires_prayer_focus_and_habit():
    tasks = (
        make_task("fajr", Category.PRAYER, completed=True),
        make_task("math", Category.STUDY, completed=True),
    )
    without_habit = Snapshot(tasks=tasks, habits=(Habit("h1", "Water"),), badges=seed_badges())
    update = apply_action(without_habit, "complete_task", {"task_id": "math"}, now=NOW)
    assert badge(fold(without_habit, update), "soul-balance").is_locked

    with_habit = dataclasses.replace(without_habit, habits=(Habit("h1", "Water", is_completed_today=True),))
    update = apply_action(with_habit, "complete_task", {"task_id": "math"}, now=NOW)
    assert update.newly_unlocked is not None
    assert update.newly_unlocked.id == "soul-balance"


def test_soul_balance_ignores_work_completed_on_other_days():
    yesterday = NOW - timedelta(days=1)
    tasks = (
        make_task("fajr", Category.PRAYER, completed=True),
        dataclasses.replace(make_task("report", Category.WORK, completed=True), completed_at=yesterday),
    )
    snapshot = Snapshot(tasks=tasks, habits=(Habit("h1", "Walk", is_completed_today=True),), badges=seed_badges())
    update = apply_action(snapshot, "daily_completion_check", now=NOW)
    assert badge(fold(snapshot, update), "soul-balance").is_locked


def test_realist_needs_five_tasks_and_eighty_percent():
    tasks = tuple(make_task(f"t{i}", Category.OTHER, completed=i < 4) for i in range(5))
    snapshot = Snapshot(tasks=tasks, badges=seed_badges())
    update = apply_action(snapshot, "daily_completion_check", now=NOW)
    assert update.newly_unlocked is not None
    assert update.newly_unlocked.id == "realist"

    tasks = tuple(make_task(f"t{i}", Category.OTHER, completed=i < 3) for i in range(5))
    snapshot = Snapshot(tasks=tasks, badges=seed_badges())
    assert apply_action(snapshot, "daily_completion_check", now=NOW).newly_unlocked is None

    tomorrow = tuple(make_task(f"t{i}", Category.OTHER, completed=True, deadline=NOW + timedelta(days=1)) for i in range(5))
    snapshot = Snapshot(tasks=tomorrow, badges=seed_badges())
    assert apply_action(snapshot, "daily_completion_check", now=NOW).newly_unlocked is None


def test_simultaneous_unlocks_surface_first_in_catalog_order():
    tasks = (
        make_task("fajr", Category.PRAYER, completed=True),
        make_task("math", Category.STUDY, completed=True),
        make_task("mail", Category.WORK, completed=True),
        make_task("gym", Category.HABIT, completed=True),
        make_task("nap", Category.OTHER),
    )
    snapshot = Snapshot(tasks=tasks, habits=(Habit("h1", "Read", is_completed_today=True),), badges=seed_badges())
    update = apply_action(snapshot, "daily_completion_check", now=NOW)
    assert update.newly_unlocked.id == "soul-balance"
    assert [item.id for item in update.unlocked] == ["soul-balance", "realist"]
    result = fold(snapshot, update)
    assert not badge(result, "realist").is_locked


def test_prayer_guardian_is_never_evaluated():
    snapshot = Snapshot(badges=seed_badges(), ledger=BadgeLedger(ai_usage_count=10))
    for action in BadgeAction:
        snapshot = fold(snapshot, apply_action(snapshot, action, now=NOW))
    guardian = badge(snapshot, "prayer-guardian")
    assert guardian.is_locked
    assert guardian.progress == 0
