"""JSON adapter for snapshot backups (import and export)."""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, time
from typing import Any, Optional

from focus_engine.badges import BadgeLedger, seed_badges
from focus_engine.logging_config import get_logger
from focus_engine.schema import (
    BehaviorEvent,
    CompletionStyle,
    EnergyProfile,
    Habit,
    Persona,
    Task,
    WeekMode,
    coerce_enum,
    parse_timestamp,
    to_jsonable,
)
from focus_engine.store import Snapshot

logger = get_logger(__name__)

_TASK_REQUIRED = {"id", "title", "category", "estimated_minutes"}
_HABIT_REQUIRED = {"id", "name"}
_EVENT_REQUIRED = {"type"}


def _timestamp(raw: Any, where: str, now: datetime) -> datetime:
    try:
        return parse_timestamp(raw)
    except ValueError:
        logger.warning("malformed_timestamp", where=where, value=raw)
        return now


def _optional_timestamp(raw: Any, where: str, now: datetime) -> Optional[datetime]:
    return None if raw in (None, "") else _timestamp(raw, where, now)


def _require(item: Any, fields: set[str], where: str) -> None:
    if not isinstance(item, dict):
        raise ValueError(f"{where}: expected an object")
    missing = sorted(field for field in fields if item.get(field) in (None, ""))
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")


def _parse_task(item: dict, index: int, now: datetime) -> Task:
    where = f"Task {index}"
    _require(item, _TASK_REQUIRED, where)
    scheduled = item.get("scheduled_time")
    try:
        scheduled_time = time.fromisoformat(scheduled) if scheduled else None
    except (TypeError, ValueError):
        scheduled_time = None

    return Task(
        id=str(item["id"]),
        title=str(item["title"]),
        category=item["category"],
        priority=item.get("priority") or "Normal",
        estimated_minutes=int(item["estimated_minutes"]),
        deadline=_timestamp(item.get("deadline"), where, now),
        created_at=_timestamp(item.get("created_at"), where, now),
        postponed_count=int(item.get("postponed_count") or 0),
        is_completed=bool(item.get("is_completed", False)),
        priority_score=int(item.get("priority_score") or 0),
        scheduled_time=scheduled_time,
        completed_at=_optional_timestamp(item.get("completed_at"), where, now),
        shadowed=bool(item.get("shadowed", False)),
    )


def _parse_habit(item: dict, index: int) -> Habit:
    _require(item, _HABIT_REQUIRED, f"Habit {index}")
    history = tuple(dict.fromkeys(str(day) for day in item.get("history") or ()))
    return Habit(
        id=str(item["id"]),
        name=str(item["name"]),
        streak_count=max(0, int(item.get("streak_count") or 0)),
        is_completed_today=bool(item.get("is_completed_today", False)),
        history=history,
    )


def _parse_event(item: dict, index: int, now: datetime) -> BehaviorEvent:
    where = f"Event {index}"
    _require(item, _EVENT_REQUIRED, where)
    metadata = item.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    return BehaviorEvent.create(item["type"], _timestamp(item.get("timestamp"), where, now), **metadata)


def _merge_badges(items: list, now: datetime) -> tuple:
    saved = {str(item.get("id")): item for item in items if isinstance(item, dict)}
    badges = []
    for badge in seed_badges():
        state = saved.get(badge.id)
        if state is None:
            badges.append(badge)
            continue
        badges.append(
            dataclasses.replace(
                badge,
                is_locked=bool(state.get("is_locked", True)),
                progress=int(state.get("progress") or 0),
                unlocked_at=_optional_timestamp(state.get("unlocked_at"), f"Badge {badge.id}", now),
            )
        )
    return tuple(badges)


def _parse_ledger(item: Optional[dict], now: datetime) -> BadgeLedger:
    if not item:
        return BadgeLedger()
    last_open_day = item.get("last_open_day")
    try:
        open_day = date.fromisoformat(last_open_day) if last_open_day else None
    except (TypeError, ValueError):
        open_day = None
    return BadgeLedger(
        consecutive_open_days=int(item.get("consecutive_open_days") or 0),
        last_open_day=open_day,
        last_visit_at=_optional_timestamp(item.get("last_visit_at"), "Ledger", now),
        honest_updates=int(item.get("honest_updates") or 0),
        ai_usage_count=int(item.get("ai_usage_count") or 0),
        applied_keys=frozenset(item.get("applied_keys") or ()),
    )


def _parse_persona(item: Optional[dict]) -> Persona:
    if not item:
        return Persona()
    default = Persona()
    return Persona(
        energy_profile=coerce_enum(EnergyProfile, item.get("energy_profile", default.energy_profile)),
        completion_style=coerce_enum(CompletionStyle, item.get("completion_style", default.completion_style)),
        overwhelm_trigger=int(item.get("overwhelm_trigger", default.overwhelm_trigger)),
        deep_work_hours=float(item.get("deep_work_hours", default.deep_work_hours)),
        current_mood=str(item.get("current_mood", default.current_mood)),
        daily_intention=str(item.get("daily_intention", default.daily_intention)),
    )


def load_snapshot(payload: dict, now: Optional[datetime] = None) -> Snapshot:
    """Build a snapshot from a decoded backup document."""

    if not isinstance(payload, dict):
        raise ValueError("JSON payload must be an object")

    now = now or datetime.now()
    deleted = payload.get("deleted_task")
    return Snapshot(
        tasks=tuple(_parse_task(item, i, now) for i, item in enumerate(payload.get("tasks") or [], start=1)),
        habits=tuple(_parse_habit(item, i) for i, item in enumerate(payload.get("habits") or [], start=1)),
        events=tuple(_parse_event(item, i, now) for i, item in enumerate(payload.get("events") or [], start=1)),
        badges=_merge_badges(payload.get("badges") or [], now),
        ledger=_parse_ledger(payload.get("ledger"), now),
        deleted_task=_parse_task(deleted, 0, now) if deleted else None,
        week_mode=coerce_enum(WeekMode, payload.get("week_mode") or WeekMode.STANDARD),
        persona=_parse_persona(payload.get("persona")),
        unlock_queue=tuple(str(badge_id) for badge_id in payload.get("unlock_queue") or ()),
    )


def parse(file_path: str, now: Optional[datetime] = None) -> Snapshot:
    """Parse a JSON backup file into a snapshot."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return load_snapshot(payload, now)


def dump(snapshot: Snapshot, file_path: str) -> None:
    """Write ``snapshot`` as a JSON backup readable by :func:`parse`."""

    document = to_jsonable(snapshot)
    document.pop("just_unlocked", None)
    ledger = document.get("ledger") or {}
    ledger["applied_keys"] = sorted(ledger.get("applied_keys") or [])
    with open(file_path, "w", encoding="utf-8") as handle:
        json.dump(document, handle, ensure_ascii=False, indent=2)
