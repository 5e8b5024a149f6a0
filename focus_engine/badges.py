"""Table-driven badge rules and the unlock state machine.

Each badge id maps to at most one ``BadgeRule``. On every qualifying action the
engine advances an explicit ``BadgeLedger`` (day counters, usage counters,
idempotency keys), then evaluates the rule of every locked badge listening to
that action against the snapshot. Progress never decreases and an unlocked
badge never locks again.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from focus_engine.errors import HostContractError
from focus_engine.logging_config import get_logger
from focus_engine.schema import Badge, BadgeAction, BadgeTier, Category, Habit, Task, coerce_enum

if TYPE_CHECKING:
    from focus_engine.store import Snapshot

logger = get_logger(__name__)

BADGE_CATALOG: tuple[Badge, ...] = (
    Badge("quiet-starter", "Quiet Starter", BadgeTier.BRONZE, "🌅"),
    Badge("the-resilient", "The Resilient", BadgeTier.SILVER, "🌱"),
    Badge("self-honest", "Self Honest", BadgeTier.BRONZE, "🪞"),
    Badge("smart-planner", "Smart Planner", BadgeTier.SILVER, "🧭"),
    Badge("soul-balance", "Soul Balance", BadgeTier.GOLD, "⚖️"),
    Badge("realist", "Realist", BadgeTier.SILVER, "🎯"),
    Badge("prayer-guardian", "Prayer Guardian", BadgeTier.GOLD, "🕌"),
)

OPEN_STREAK_DAYS = 3
RESILIENCE_GAP = timedelta(days=2)
HONEST_STEP = 20
AI_USES_FOR_PLANNER = 3
REALIST_MIN_TASKS = 5
REALIST_COMPLETION_SHARE = 0.8


def seed_badges() -> tuple[Badge, ...]:
    """Fresh, locked copies of the catalog for a first run."""

    return tuple(dataclasses.replace(badge, is_locked=True, progress=0, unlocked_at=None) for badge in BADGE_CATALOG)


@dataclass(frozen=True)
class BadgeLedger:
    """Progress counters the rules need but the snapshot cannot derive."""

    consecutive_open_days: int = 0
    last_open_day: Optional[date] = None
    last_visit_at: Optional[datetime] = None
    honest_updates: int = 0
    ai_usage_count: int = 0
    applied_keys: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RuleContext:
    action: BadgeAction
    now: datetime
    tasks: tuple[Task, ...]
    habits: tuple[Habit, ...]
    ledger: BadgeLedger
    previous_visit_at: Optional[datetime]


@dataclass(frozen=True)
class BadgeRule:
    badge_id: str
    actions: frozenset[BadgeAction]
    progress: Callable[[RuleContext], Optional[float]]


@dataclass(frozen=True)
class BadgeUpdate:
    badges: tuple[Badge, ...]
    ledger: BadgeLedger
    newly_unlocked: Optional[Badge] = None
    unlocked: tuple[Badge, ...] = ()


def _completed_on(task: Task, day: date) -> bool:
    if not task.is_completed:
        return False
    stamp = task.completed_at or task.deadline
    return stamp.date() == day


def _quiet_starter(ctx: RuleContext) -> Optional[float]:
    return ctx.ledger.consecutive_open_days / OPEN_STREAK_DAYS * 100


def _the_resilient(ctx: RuleContext) -> Optional[float]:
    if ctx.previous_visit_at is None:
        return None
    return 100.0 if ctx.now - ctx.previous_visit_at > RESILIENCE_GAP else None


def _self_honest(ctx: RuleContext) -> Optional[float]:
    return float(ctx.ledger.honest_updates * HONEST_STEP)


def _smart_planner(ctx: RuleContext) -> Optional[float]:
    return ctx.ledger.ai_usage_count / AI_USES_FOR_PLANNER * 100


def _soul_balance(ctx: RuleContext) -> Optional[float]:
    today = ctx.now.date()
    done_today = [task for task in ctx.tasks if _completed_on(task, today)]
    prayed = any(task.category is Category.PRAYER for task in done_today)
    worked = any(task.category in (Category.STUDY, Category.WORK) for task in done_today)
    habit_done = any(habit.is_completed_today for habit in ctx.habits)
    return 100.0 if prayed and worked and habit_done else None


def _realist(ctx: RuleContext) -> Optional[float]:
    today = ctx.now.date()
    todays = [task for task in ctx.tasks if task.deadline.date() == today]
    if len(todays) < REALIST_MIN_TASKS:
        return None
    completed = sum(1 for task in todays if task.is_completed)
    return 100.0 if completed / len(todays) >= REALIST_COMPLETION_SHARE else None


BADGE_RULES: dict[str, BadgeRule] = {
    rule.badge_id: rule
    for rule in (
        BadgeRule("quiet-starter", frozenset({BadgeAction.APP_OPEN}), _quiet_starter),
        BadgeRule("the-resilient", frozenset({BadgeAction.APP_OPEN}), _the_resilient),
        BadgeRule("self-honest", frozenset({BadgeAction.UPDATE_TASK_HONEST}), _self_honest),
        BadgeRule("smart-planner", frozenset({BadgeAction.USE_AI}), _smart_planner),
        BadgeRule(
            "soul-balance",
            frozenset({BadgeAction.COMPLETE_TASK, BadgeAction.DAILY_COMPLETION_CHECK}),
            _soul_balance,
        ),
        BadgeRule("realist", frozenset({BadgeAction.DAILY_COMPLETION_CHECK}), _realist),
        # prayer-guardian is reserved: seeded but never evaluated.
    )
}


def _advance_ledger(
    ledger: BadgeLedger, action: BadgeAction, metadata: Mapping[str, Any], now: datetime
) -> BadgeLedger:
    today = now.date()
    day_suffix = f":{today.isoformat()}"
    # Idempotency keys only matter within the current day.
    keys = frozenset(key for key in ledger.applied_keys if key.endswith(day_suffix))
    ledger = dataclasses.replace(ledger, applied_keys=keys)

    task_id = metadata.get("task_id")
    key = f"{action.value}:{task_id}{day_suffix}" if task_id else None
    repeated = key is not None and key in keys
    if key is not None:
        keys = keys | {key}

    if action is BadgeAction.APP_OPEN:
        if ledger.last_open_day == today:
            streak = ledger.consecutive_open_days
        elif ledger.last_open_day == today - timedelta(days=1):
            streak = ledger.consecutive_open_days + 1
        else:
            streak = 1
        return dataclasses.replace(
            ledger, consecutive_open_days=streak, last_open_day=today, last_visit_at=now, applied_keys=keys
        )
    if action is BadgeAction.UPDATE_TASK_HONEST:
        honest = ledger.honest_updates if repeated else ledger.honest_updates + 1
        return dataclasses.replace(ledger, honest_updates=honest, applied_keys=keys)
    if action is BadgeAction.USE_AI:
        return dataclasses.replace(ledger, ai_usage_count=ledger.ai_usage_count + 1, applied_keys=keys)
    return dataclasses.replace(ledger, applied_keys=keys)


def _evaluate(badge: Badge, rule: BadgeRule, ctx: RuleContext) -> Badge:
    computed = rule.progress(ctx)
    if computed is None:
        return badge
    progress = max(badge.progress, min(100, int(round(computed))))
    if progress >= 100:
        return dataclasses.replace(badge, is_locked=False, progress=100, unlocked_at=badge.unlocked_at or ctx.now)
    if progress == badge.progress:
        return badge
    return dataclasses.replace(badge, progress=progress)


def apply_action(
    state: "Snapshot",
    action: BadgeAction | str,
    metadata: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> BadgeUpdate:
    """Apply one qualifying action to the badge state of ``state``.

    Returns the updated badge tuple and ledger. When several badges unlock in
    the same call they all unlock and are listed in catalog order in
    ``unlocked``; only the first is surfaced as ``newly_unlocked``.
    """

    try:
        action = coerce_enum(BadgeAction, action)
    except HostContractError:
        logger.error("unknown_badge_action", action=action)
        raise

    now = now or datetime.now()
    ledger = _advance_ledger(state.ledger, action, metadata or {}, now)
    ctx = RuleContext(
        action=action,
        now=now,
        tasks=tuple(state.tasks),
        habits=tuple(state.habits),
        ledger=ledger,
        previous_visit_at=state.ledger.last_visit_at,
    )

    badges = []
    unlocked = []
    for badge in state.badges:
        rule = BADGE_RULES.get(badge.id)
        if not badge.is_locked or rule is None or action not in rule.actions:
            badges.append(badge)
            continue
        updated = _evaluate(badge, rule, ctx)
        if not updated.is_locked:
            logger.info("badge_unlocked", badge_id=updated.id, action=action.value)
            unlocked.append(updated)
        badges.append(updated)

    return BadgeUpdate(
        badges=tuple(badges),
        ledger=ledger,
        newly_unlocked=unlocked[0] if unlocked else None,
        unlocked=tuple(unlocked),
    )
