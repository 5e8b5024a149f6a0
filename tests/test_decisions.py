from datetime import datetime, timedelta

from focus_engine.decisions import evaluate
from focus_engine.load import compute_load
from focus_engine.schema import (
    BehaviorEvent,
    Category,
    DecisionType,
    MorningBoostPayload,
    Priority,
    ProcrastinationPayload,
    Task,
)

AFTERNOON = datetime(2025, 2, 3, 14, 0)


def make_task(task_id, priority=Priority.NORMAL, minutes=30, postponed=0, completed=False):
    return Task(
        id=task_id,
        title=task_id,
        category=Category.WORK,
        priority=priority,
        estimated_minutes=minutes,
        deadline=AFTERNOON + timedelta(days=2),
        created_at=AFTERNOON - timedelta(days=3),
        postponed_count=postponed,
        is_completed=completed,
    )


def test_no_signal():
    assert evaluate([make_task("a")], [], AFTERNOON) is None
    assert evaluate([], [], AFTERNOON) is None


def test_procrastination_scenario():
    stuck = make_task("stuck", minutes=150, postponed=3)
    assert compute_load([stuck]) == 50
    events = [
        BehaviorEvent.create("task_postpone", AFTERNOON - timedelta(days=2), task_id="stuck"),
        BehaviorEvent.create("task_postpone", AFTERNOON - timedelta(days=1), task_id="stuck"),
        BehaviorEvent.create("task_postpone", AFTERNOON - timedelta(days=1), task_id="other"),
    ]
    decision = evaluate([make_task("fine"), stuck], events, AFTERNOON)
    assert decision.type is DecisionType.PROCRASTINATION
    assert decision.payload == ProcrastinationPayload(task_id="stuck", postpone_events=2)
    assert decision.confidence == 0.88


def test_completed_stuck_task_is_ignored():
    assert evaluate([make_task("done", postponed=5, completed=True)], [], AFTERNOON) is None


def test_overload_preempts_procrastination():
    tasks = [
        make_task("huge", Priority.HIGH, 240),
        make_task("stuck", minutes=30, postponed=4),
        make_task("mail", minutes=20),
    ]
    decision = evaluate(tasks, [], AFTERNOON)
    assert decision.type is DecisionType.OVERLOAD
    assert decision.payload.task_ids == ("stuck", "mail")
    assert decision.confidence == 0.95


def test_morning_boost_window_is_inclusive():
    tasks = [make_task("easy"), make_task("key", Priority.HIGH, 60)]
    for hour in (6, 8, 10):
        decision = evaluate(tasks, [], AFTERNOON.replace(hour=hour))
        assert decision.type is DecisionType.MORNING_BOOST
        assert decision.payload == MorningBoostPayload(task_id="key")
    for hour in (5, 11):
        assert evaluate(tasks, [], AFTERNOON.replace(hour=hour)) is None


def test_morning_boost_needs_open_high_priority_task():
    tasks = [make_task("easy"), make_task("key", Priority.HIGH, completed=True)]
    assert evaluate(tasks, [], AFTERNOON.replace(hour=7)) is None


def test_evaluate_does_not_mutate_input():
    tasks = [make_task("huge", Priority.HIGH, 240), make_task("mail")]
    before = list(tasks)
    evaluate(tasks, [], AFTERNOON)
    assert tasks == before
