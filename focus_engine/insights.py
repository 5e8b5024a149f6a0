"""Productivity DNA summary over completed tasks."""

from __future__ import annotations

import calendar
from collections import Counter
from typing import Iterable

from focus_engine.schema import Task

MIN_COMPLETIONS = 5
SNIPER_SCORE = 60
SNIPER_SHARE = 0.4

_TEMPORAL_LABELS = {
    "morning": "Early Strategist",
    "afternoon": "Mid-Day Executor",
    "night": "Night Owl",
}


def _daypart(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    return "night"


def productivity_dna(tasks: Iterable[Task]) -> dict:
    """Summarize when, how and on what the user gets things done."""

    completed = [task for task in tasks if task.is_completed]
    count = len(completed)
    if count < MIN_COMPLETIONS:
        return {
            "peak_day": "",
            "temporal_profile": "",
            "focus_style": "",
            "top_category": "",
            "is_locked": True,
            "completion_count": count,
        }

    stamps = [task.completed_at or task.created_at for task in completed]
    by_weekday = Counter(stamp.weekday() for stamp in stamps)
    by_daypart = Counter(_daypart(stamp.hour) for stamp in stamps)
    by_category = Counter(task.category.value for task in completed)

    high_scores = sum(1 for task in completed if task.priority_score > SNIPER_SCORE)

    return {
        "peak_day": calendar.day_name[by_weekday.most_common(1)[0][0]],
        "temporal_profile": _TEMPORAL_LABELS[by_daypart.most_common(1)[0][0]],
        "focus_style": "Sniper Focus" if high_scores / count > SNIPER_SHARE else "Consistent Volume",
        "top_category": by_category.most_common(1)[0][0],
        "is_locked": False,
        "completion_count": count,
    }
