"""Dynamic task priority scoring and ranking."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Iterable

from focus_engine.load import friction_penalty, round_half_up
from focus_engine.schema import Priority, Task

RANK_FRICTION_STEP = 0.5
_PRIORITY_WEIGHT = {Priority.HIGH: 10, Priority.NORMAL: 2}


def _due_soon_weight(deadline: datetime, now: datetime) -> int:
    hours_left = (deadline - now).total_seconds() / 3600.0
    if hours_left < 0:
        return 15
    if hours_left < 24:
        return 10
    if hours_left < 48:
        return 5
    return 0


def score_task(task: Task, now: datetime) -> int:
    """score = (priority*2 + dueSoon*3 + complexity) * friction, rounded."""

    priority_weight = _PRIORITY_WEIGHT[task.priority]
    due_soon_weight = _due_soon_weight(task.deadline, now)
    complexity_weight = min(task.estimated_minutes / 25, 5)
    friction = friction_penalty(task.postponed_count, step=RANK_FRICTION_STEP)
    return round_half_up((priority_weight * 2 + due_soon_weight * 3 + complexity_weight) * friction)


def rank_tasks(tasks: Iterable[Task], now: datetime | None = None) -> list[Task]:
    """Rescore tasks and order them: open before completed, then by descending score.

    Shadowed tasks keep the score forced on them by shadow negotiation. The sort
    is stable, so equal scores keep their input order.
    """

    now = now or datetime.now()
    scored = [
        task if task.shadowed else dataclasses.replace(task, priority_score=score_task(task, now))
        for task in tasks
    ]
    return sorted(scored, key=lambda task: (task.is_completed, -task.priority_score))
