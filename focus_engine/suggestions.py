"""Context-aware quick-choice suggestions per category and week mode."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from focus_engine.schema import Category, Priority, Suggestion, WeekMode, coerce_enum

HIGH = Priority.HIGH
NORMAL = Priority.NORMAL

_FOCUS_CATEGORIES = frozenset({Category.STUDY, Category.WORK})

# Layer 1: week-mode overrides for focus categories.
WEEK_MODE_SUGGESTIONS: dict[WeekMode, tuple[Suggestion, ...]] = {
    WeekMode.CRUNCH: (
        Suggestion("🔥", "Eat the Frog", 120, HIGH, "Massive Focus"),
        Suggestion("🧠", "Deep Work Block", 90, HIGH),
        Suggestion("🚀", "Sprint", 45, HIGH),
    ),
    WeekMode.LIGHT: (
        Suggestion("🌿", "Tiny Task", 15, NORMAL),
        Suggestion("🚶", "Walk & Learn", 30, NORMAL),
        Suggestion("📖", "Casual Review", 20, NORMAL),
    ),
    WeekMode.REVIEW: (
        Suggestion("🔍", "System Audit", 40, NORMAL),
        Suggestion("📅", "Next Week Plan", 25, NORMAL),
        Suggestion("📝", "Organize Files", 15, NORMAL),
    ),
}

# Layer 2: time-of-day buckets for focus categories, (start_hour, end_hour) exclusive.
DAYPART_SUGGESTIONS: tuple[tuple[int, int, tuple[Suggestion, ...]], ...] = (
    (
        5,
        12,
        (
            Suggestion("🐸", "Eat the Frog", 90, HIGH, "Deep Work"),
            Suggestion("🍅", "Pomodoro", 25, NORMAL),
            Suggestion("🧠", "Focus Block", 60, HIGH),
        ),
    ),
    (
        12,
        18,
        (
            Suggestion("⚡", "Quick Sprint", 30, NORMAL),
            Suggestion("📅", "Admin/Planning", 15, NORMAL),
            Suggestion("🤝", "Review", 20, NORMAL),
        ),
    ),
)

EVENING_SUGGESTIONS: tuple[Suggestion, ...] = (
    Suggestion("📖", "Light Review", 45, NORMAL),
    Suggestion("📝", "Tomorrow Prep", 10, NORMAL),
    Suggestion("🧹", "Tidy Up", 15, NORMAL),
)

# Layer 3: fixed lists for the remaining categories.
CATEGORY_SUGGESTIONS: dict[Category, tuple[Suggestion, ...]] = {
    Category.HABIT: (
        Suggestion("🧘", "Meditate", 10, NORMAL),
        Suggestion("🚶", "Walk", 20, NORMAL),
        Suggestion("💧", "Hydrate/Stretch", 5, NORMAL),
    ),
    Category.PRAYER: (
        Suggestion("📖", "Reading", 15, HIGH),
        Suggestion("🤲", "Dua/Reflect", 10, NORMAL),
        Suggestion("🕌", "Mosque Trip", 40, HIGH),
    ),
    Category.OTHER: (
        Suggestion("😴", "Power Nap", 20, NORMAL),
        Suggestion("💤", "4 Cycles (6h)", 360, NORMAL, "Rest"),
        Suggestion("✨", "5 Cycles (7.5h)", 450, NORMAL, "Full Rest"),
    ),
}


def _daypart(hour: int) -> tuple[Suggestion, ...]:
    for start, end, options in DAYPART_SUGGESTIONS:
        if start <= hour < end:
            return options
    return EVENING_SUGGESTIONS


def suggest(
    category: Category | str,
    week_mode: WeekMode | str = WeekMode.STANDARD,
    now: Optional[datetime] = None,
) -> list[Suggestion]:
    """Return ordered suggestions for a category under the given week mode."""

    category = coerce_enum(Category, category)
    week_mode = coerce_enum(WeekMode, week_mode)

    if category in _FOCUS_CATEGORIES:
        override = WEEK_MODE_SUGGESTIONS.get(week_mode)
        if override is not None:
            return list(override)
        now = now or datetime.now()
        return list(_daypart(now.hour))

    return list(CATEGORY_SUGGESTIONS[category])
