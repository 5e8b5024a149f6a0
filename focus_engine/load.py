"""Psychological load scoring and shadow negotiation."""

from __future__ import annotations

import dataclasses
import math
from functools import lru_cache
from typing import Iterable

import numpy as np

from focus_engine.config import get_settings
from focus_engine.logging_config import get_logger
from focus_engine.schema import Category, Priority, Task

logger = get_logger(__name__)

_PRIORITY_WEIGHT = {Priority.HIGH: 2.0, Priority.NORMAL: 1.0}
LOAD_FRICTION_STEP = 0.2


def friction_penalty(postponed_count: int, step: float = LOAD_FRICTION_STEP) -> float:
    """Multiplier that grows with each deferral of a task."""

    return 1.0 + step * postponed_count


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@lru_cache(maxsize=256)
def _raw_load(tasks: tuple[Task, ...], capacity: int) -> float:
    open_tasks = [task for task in tasks if not task.is_completed]
    if not open_tasks:
        return 0.0

    minutes = np.array([task.estimated_minutes for task in open_tasks], dtype=float)
    weights = np.array([_PRIORITY_WEIGHT[task.priority] for task in open_tasks], dtype=float)
    friction = np.array([friction_penalty(task.postponed_count) for task in open_tasks], dtype=float)
    return float(np.sum(minutes * weights * friction) / capacity * 100.0)


def raw_load(tasks: Iterable[Task]) -> float:
    """Return the unclamped, unrounded load percentage of uncompleted tasks."""

    return _raw_load(tuple(tasks), get_settings().daily_capacity_minutes)


def compute_load(tasks: Iterable[Task]) -> int:
    """Return the display load score, rounded and clamped to [0, 100]."""

    return max(0, min(100, round_half_up(raw_load(tasks))))


def is_overloaded(tasks: Iterable[Task]) -> bool:
    return raw_load(tasks) > get_settings().overload_threshold


def is_survival_mode(tasks: Iterable[Task]) -> bool:
    """True when the unclamped load exceeds a full day of capacity."""

    return raw_load(tasks) > get_settings().survival_threshold


def shadow_candidates(tasks: Iterable[Task]) -> list[Task]:
    """Uncompleted Normal-priority tasks outside Prayer, in input order."""

    return [
        task
        for task in tasks
        if not task.is_completed and task.priority is Priority.NORMAL and task.category is not Category.PRAYER
    ]


def shadow_negotiate(tasks: Iterable[Task]) -> tuple[Task, ...]:
    """Demote low-priority tasks when the day is overloaded; never removes any."""

    settings = get_settings()
    tasks = tuple(tasks)
    load = raw_load(tasks)
    if load <= settings.shadow_threshold:
        return tasks

    demoted = {task.id for task in shadow_candidates(tasks)}
    logger.info("shadow_negotiation", load=round(load, 2), demoted=len(demoted))
    return tuple(
        dataclasses.replace(
            task,
            scheduled_time=None,
            priority_score=settings.shadow_priority_score,
            shadowed=True,
        )
        if task.id in demoted
        else task
        for task in tasks
    )
