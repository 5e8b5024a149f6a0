"""Immutable state snapshot, mutation commands and per-user serialization.

Every command is a pure function ``(snapshot, ...) -> snapshot`` applying one
logical mutation. ``SessionStore`` runs commands one at a time per user so
readers only ever see fully published snapshots.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from focus_engine.badges import BadgeLedger, apply_action, seed_badges
from focus_engine.errors import HostContractError
from focus_engine.logging_config import get_logger
from focus_engine.persona import profile
from focus_engine.schema import (
    Badge,
    BadgeAction,
    BehaviorEvent,
    DraftTask,
    EventType,
    Habit,
    Persona,
    Task,
    TaskCompleteMeta,
    TaskPostponeMeta,
    WeekMode,
    coerce_enum,
)

logger = get_logger(__name__)

_READ_ONLY_TASK_FIELDS = frozenset({"id", "created_at", "postponed_count", "priority_score", "shadowed"})


@dataclass(frozen=True)
class Snapshot:
    tasks: tuple[Task, ...] = ()
    habits: tuple[Habit, ...] = ()
    events: tuple[BehaviorEvent, ...] = ()
    badges: tuple[Badge, ...] = ()
    ledger: BadgeLedger = field(default_factory=BadgeLedger)
    deleted_task: Optional[Task] = None
    week_mode: WeekMode = WeekMode.STANDARD
    persona: Persona = field(default_factory=Persona)
    just_unlocked: Optional[str] = None
    unlock_queue: tuple[str, ...] = ()


def initial_snapshot() -> Snapshot:
    """Empty state with the badge catalog seeded."""

    return Snapshot(badges=seed_badges())


def _next(snapshot: Snapshot, **changes: Any) -> Snapshot:
    # The unlock marker lives for exactly one published snapshot; queued
    # unlocks are surfaced one per snapshot, oldest first.
    queue = changes.get("unlock_queue", snapshot.unlock_queue)
    changes["just_unlocked"] = queue[0] if queue else None
    changes["unlock_queue"] = queue[1:]
    return dataclasses.replace(snapshot, **changes)


def _find_task(snapshot: Snapshot, task_id: str) -> Task:
    for task in snapshot.tasks:
        if task.id == task_id:
            return task
    logger.error("unknown_task", task_id=task_id)
    raise HostContractError(f"Unknown task id {task_id!r}")


def _replace_task(snapshot: Snapshot, updated: Task) -> tuple[Task, ...]:
    return tuple(updated if task.id == updated.id else task for task in snapshot.tasks)


def task_from_draft(draft: DraftTask, task_id: Optional[str] = None, now: Optional[datetime] = None) -> Task:
    """Turn a parsed draft into a task, assigning an id and creation time."""

    now = now or datetime.now()
    return Task(
        id=task_id or uuid.uuid4().hex[:9],
        title=draft.title,
        category=draft.category,
        priority=draft.priority,
        estimated_minutes=draft.estimated_minutes,
        deadline=draft.deadline,
        created_at=now,
        scheduled_time=draft.time_of_day,
    )


def add_task(snapshot: Snapshot, task: Task) -> Snapshot:
    if any(existing.id == task.id for existing in snapshot.tasks):
        raise HostContractError(f"Duplicate task id {task.id!r}")
    return _next(snapshot, tasks=(task, *snapshot.tasks))


def complete_task(snapshot: Snapshot, task_id: str, now: Optional[datetime] = None) -> Snapshot:
    """Mark a task done and log ``task_complete``; completing twice is a no-op."""

    task = _find_task(snapshot, task_id)
    if task.is_completed:
        return snapshot
    now = now or datetime.now()
    updated = dataclasses.replace(task, is_completed=True, completed_at=now)
    event = BehaviorEvent(
        EventType.TASK_COMPLETE,
        now,
        TaskCompleteMeta(task_id=task.id, estimated_minutes=task.estimated_minutes, category=task.category),
    )
    return _next(snapshot, tasks=_replace_task(snapshot, updated), events=(*snapshot.events, event))


def postpone_task(snapshot: Snapshot, task_id: str, now: Optional[datetime] = None) -> Snapshot:
    task = _find_task(snapshot, task_id)
    now = now or datetime.now()
    updated = dataclasses.replace(task, postponed_count=task.postponed_count + 1)
    event = BehaviorEvent(EventType.TASK_POSTPONE, now, TaskPostponeMeta(task_id=task.id))
    return _next(snapshot, tasks=_replace_task(snapshot, updated), events=(*snapshot.events, event))


def edit_task(snapshot: Snapshot, task_id: str, **changes: Any) -> Snapshot:
    """Edit user-owned task fields; derived and immutable fields are rejected."""

    forbidden = _READ_ONLY_TASK_FIELDS.intersection(changes)
    if forbidden:
        raise HostContractError(f"Task fields {sorted(forbidden)} cannot be edited")
    task = _find_task(snapshot, task_id)
    try:
        updated = dataclasses.replace(task, **changes)
    except TypeError as exc:
        raise HostContractError(f"Unknown task fields in {sorted(changes)}") from exc
    return _next(snapshot, tasks=_replace_task(snapshot, updated))


def delete_task(snapshot: Snapshot, task_id: str) -> Snapshot:
    """Remove a task, keeping it in the one-slot undo buffer."""

    task = _find_task(snapshot, task_id)
    remaining = tuple(existing for existing in snapshot.tasks if existing.id != task_id)
    return _next(snapshot, tasks=remaining, deleted_task=task)


def undo_delete(snapshot: Snapshot) -> Snapshot:
    if snapshot.deleted_task is None:
        return snapshot
    logger.info("task_restored", task_id=snapshot.deleted_task.id)
    return _next(snapshot, tasks=(snapshot.deleted_task, *snapshot.tasks), deleted_task=None)


def toggle_habit(snapshot: Snapshot, habit_id: str, now: Optional[datetime] = None) -> Snapshot:
    """Flip today's completion. History only ever gains dates."""

    habit = next((item for item in snapshot.habits if item.id == habit_id), None)
    if habit is None:
        raise HostContractError(f"Unknown habit id {habit_id!r}")
    today = (now or datetime.now()).date().isoformat()

    if habit.is_completed_today:
        updated = dataclasses.replace(habit, is_completed_today=False, streak_count=max(0, habit.streak_count - 1))
    else:
        history = habit.history if today in habit.history else (*habit.history, today)
        updated = dataclasses.replace(
            habit, is_completed_today=True, streak_count=habit.streak_count + 1, history=history
        )
    habits = tuple(updated if item.id == habit_id else item for item in snapshot.habits)
    return _next(snapshot, habits=habits)


def log_event(snapshot: Snapshot, event: BehaviorEvent) -> Snapshot:
    return _next(snapshot, events=(*snapshot.events, event))


def set_week_mode(snapshot: Snapshot, week_mode: WeekMode | str) -> Snapshot:
    return _next(snapshot, week_mode=coerce_enum(WeekMode, week_mode))


def apply_badge_action(
    snapshot: Snapshot,
    action: BadgeAction | str,
    metadata: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Snapshot:
    """Fold a badge evaluation into the snapshot, flagging any fresh unlock.

    Badges that unlock together are queued and flagged on successive
    snapshots, so each one is "just unlocked" for exactly one snapshot.
    """

    update = apply_action(snapshot, action, metadata, now)
    queue = snapshot.unlock_queue + tuple(badge.id for badge in update.unlocked)
    return _next(snapshot, badges=update.badges, ledger=update.ledger, unlock_queue=queue)


def refresh_persona(snapshot: Snapshot) -> Snapshot:
    return _next(snapshot, persona=profile(snapshot.events, base=snapshot.persona))


class SessionStore:
    """Holds one user's published snapshot and serializes commands against it."""

    def __init__(self, snapshot: Optional[Snapshot] = None) -> None:
        self._snapshot = snapshot or initial_snapshot()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def dispatch(self, command: Callable[..., Snapshot], *args: Any, **kwargs: Any) -> Snapshot:
        with self._lock:
            self._snapshot = command(self._snapshot, *args, **kwargs)
            return self._snapshot


class SessionRegistry:
    """One ``SessionStore`` (and so one lock) per user id."""

    def __init__(self, factory: Callable[[], Snapshot] = initial_snapshot) -> None:
        self._factory = factory
        self._stores: dict[str, SessionStore] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> SessionStore:
        with self._lock:
            store = self._stores.get(user_id)
            if store is None:
                store = SessionStore(self._factory())
                self._stores[user_id] = store
            return store
