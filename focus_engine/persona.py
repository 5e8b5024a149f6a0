"""Behavioral persona inference from the event log."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Iterable, Optional

import numpy as np

from focus_engine.config import get_settings
from focus_engine.logging_config import get_logger
from focus_engine.schema import (
    BehaviorEvent,
    CompletionStyle,
    EnergyProfile,
    EventType,
    FocusSessionMeta,
    Persona,
    TaskCompleteMeta,
)

logger = get_logger(__name__)

_MORNING_HOURS = slice(5, 13)
_NIGHT_HOURS = (slice(18, 24), slice(0, 4))
_DOMINANT_SHARE = 0.6
_MARATHON_MINUTES = 45


def _energy_profile(completions: list[BehaviorEvent]) -> EnergyProfile:
    by_hour = np.bincount([event.timestamp.hour for event in completions], minlength=24)
    total = len(completions)
    morning = int(by_hour[_MORNING_HOURS].sum())
    night = int(sum(by_hour[hours].sum() for hours in _NIGHT_HOURS))

    if morning / total > _DOMINANT_SHARE:
        return EnergyProfile.MORNING_PERSON
    if night / total > _DOMINANT_SHARE:
        return EnergyProfile.NIGHT_OWL
    return EnergyProfile.MIXED


def _completion_style(completions: list[BehaviorEvent], default_minutes: int) -> CompletionStyle:
    minutes = np.array(
        [
            event.metadata.estimated_minutes
            if isinstance(event.metadata, TaskCompleteMeta) and event.metadata.estimated_minutes is not None
            else default_minutes
            for event in completions
        ],
        dtype=float,
    )
    return CompletionStyle.MARATHONER if minutes.mean() >= _MARATHON_MINUTES else CompletionStyle.SPRINTER


def _deep_work_hours(events: list[BehaviorEvent]) -> float:
    minutes = sum(
        event.metadata.minutes or 0.0
        for event in events
        if event.type is EventType.FOCUS_SESSION_COMPLETE and isinstance(event.metadata, FocusSessionMeta)
    )
    return minutes / 60.0


def profile(events: Iterable[BehaviorEvent], base: Optional[Persona] = None) -> Persona:
    """Recompute derived persona traits from the full event log.

    Below the completion threshold the base persona is returned untouched.
    User-entered fields (mood, intention) always come from ``base``.
    """

    settings = get_settings()
    base = base or Persona()
    events = list(events)

    completions = [event for event in events if event.type is EventType.TASK_COMPLETE]
    if len(completions) < settings.persona_min_completions:
        logger.debug("persona_insufficient_signal", completions=len(completions))
        return base

    postpones = sum(1 for event in events if event.type is EventType.TASK_POSTPONE)
    overwhelm_trigger = max(3, 8 - postpones // 2) if postpones else Persona().overwhelm_trigger

    return dataclasses.replace(
        base,
        energy_profile=_energy_profile(completions),
        completion_style=_completion_style(completions, settings.default_task_minutes),
        overwhelm_trigger=overwhelm_trigger,
        deep_work_hours=_deep_work_hours(events),
    )


def should_trigger_soft_ask(last_prompt_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A follow-up prompt may fire once per interval (24h by default)."""

    if last_prompt_at is None:
        return True
    now = now or datetime.now()
    elapsed_hours = (now - last_prompt_at).total_seconds() / 3600.0
    return elapsed_hours >= get_settings().soft_ask_interval_hours
