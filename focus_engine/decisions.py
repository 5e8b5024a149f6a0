"""Advisory nudge selection."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from focus_engine.config import get_settings
from focus_engine.load import raw_load, shadow_candidates
from focus_engine.priority import rank_tasks
from focus_engine.schema import (
    BehaviorEvent,
    Decision,
    DecisionType,
    EventType,
    MorningBoostPayload,
    OverloadPayload,
    Priority,
    ProcrastinationPayload,
    Task,
    TaskPostponeMeta,
)

OVERLOAD_CONFIDENCE = 0.95
PROCRASTINATION_CONFIDENCE = 0.88
MORNING_BOOST_CONFIDENCE = 0.75


def _postpone_events(events: list[BehaviorEvent], task_id: str) -> int:
    return sum(
        1
        for event in events
        if event.type is EventType.TASK_POSTPONE
        and isinstance(event.metadata, TaskPostponeMeta)
        and event.metadata.task_id == task_id
    )


def evaluate(
    tasks: Iterable[Task], events: Iterable[BehaviorEvent], now: Optional[datetime] = None
) -> Optional[Decision]:
    """Return the first matching signal (overload, procrastination, morning boost) or None."""

    settings = get_settings()
    now = now or datetime.now()
    tasks = list(tasks)

    if raw_load(tasks) > settings.overload_threshold:
        return Decision(
            type=DecisionType.OVERLOAD,
            confidence=OVERLOAD_CONFIDENCE,
            payload=OverloadPayload(task_ids=tuple(task.id for task in shadow_candidates(tasks))),
            reason="Cognitive load exceeds the safe focus threshold.",
        )

    stuck = next(
        (
            task
            for task in tasks
            if not task.is_completed and task.postponed_count >= settings.procrastination_postpones
        ),
        None,
    )
    if stuck is not None:
        return Decision(
            type=DecisionType.PROCRASTINATION,
            confidence=PROCRASTINATION_CONFIDENCE,
            payload=ProcrastinationPayload(task_id=stuck.id, postpone_events=_postpone_events(list(events), stuck.id)),
            reason="Task keeps getting postponed; break it into smaller steps.",
        )

    if settings.morning_boost_start_hour <= now.hour <= settings.morning_boost_end_hour:
        urgent = [task for task in rank_tasks(tasks, now) if not task.is_completed and task.priority is Priority.HIGH]
        if urgent:
            return Decision(
                type=DecisionType.MORNING_BOOST,
                confidence=MORNING_BOOST_CONFIDENCE,
                payload=MorningBoostPayload(task_id=urgent[0].id),
                reason="Morning focus window with high-priority work waiting.",
            )

    return None
