"""Core data schema for tasks, habits, behavior events and badges."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Union

from focus_engine.errors import HostContractError


class Category(str, Enum):
    STUDY = "Study"
    HABIT = "Habit"
    PRAYER = "Prayer"
    WORK = "Work"
    OTHER = "Other"


class Priority(str, Enum):
    HIGH = "High"
    NORMAL = "Normal"


class WeekMode(str, Enum):
    STANDARD = "Standard"
    CRUNCH = "Crunch"
    LIGHT = "Light"
    REVIEW = "Review"


class EventType(str, Enum):
    TASK_COMPLETE = "task_complete"
    TASK_POSTPONE = "task_postpone"
    ZEN_MODE_ENTER = "zen_mode_enter"
    USE_AI = "use_ai"
    IDLE_EXIT = "idle_exit"
    DETOX_TASKS = "detox_tasks"
    APP_OPEN = "app_open"
    FOCUS_SESSION_COMPLETE = "focus_session_complete"


class BadgeTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class BadgeAction(str, Enum):
    APP_OPEN = "app_open"
    COMPLETE_TASK = "complete_task"
    UPDATE_TASK_HONEST = "update_task_honest"
    USE_AI = "use_ai"
    DAILY_COMPLETION_CHECK = "daily_completion_check"


class EnergyProfile(str, Enum):
    MORNING_PERSON = "morning_person"
    NIGHT_OWL = "night_owl"
    MIXED = "mixed"


class CompletionStyle(str, Enum):
    SPRINTER = "sprinter"
    MARATHONER = "marathoner"


class DecisionType(str, Enum):
    OVERLOAD = "overload"
    PROCRASTINATION = "procrastination"
    MORNING_BOOST = "morning_boost"


def parse_timestamp(raw: Any) -> datetime:
    """Parse an ISO-8601 timestamp into naive local time.

    A trailing ``Z`` and explicit offsets are accepted; aware values are
    converted to local time so every stored timestamp compares with a naive
    ``datetime.now()``. Raises ``ValueError`` when ``raw`` is not a timestamp.
    """

    if not isinstance(raw, str):
        raise ValueError(f"Not a timestamp: {raw!r}")
    text = raw.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def coerce_enum(enum_cls: type[Enum], value: Any) -> Any:
    """Return ``value`` as a member of ``enum_cls`` or reject it."""

    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise HostContractError(f"Unknown {enum_cls.__name__} value {value!r}") from exc


@dataclass(frozen=True)
class Task:
    """A unit of planned work. ``priority_score`` is derived, see priority.rank_tasks."""

    id: str
    title: str
    category: Category
    priority: Priority
    estimated_minutes: int
    deadline: datetime
    created_at: datetime
    postponed_count: int = 0
    is_completed: bool = False
    priority_score: int = 0
    scheduled_time: Optional[time] = None
    completed_at: Optional[datetime] = None
    shadowed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", coerce_enum(Category, self.category))
        object.__setattr__(self, "priority", coerce_enum(Priority, self.priority))
        if int(self.estimated_minutes) < 1:
            raise HostContractError(f"Task {self.id}: estimated_minutes must be positive")
        if int(self.postponed_count) < 0:
            raise HostContractError(f"Task {self.id}: postponed_count must be non-negative")


@dataclass(frozen=True)
class Habit:
    id: str
    name: str
    streak_count: int = 0
    is_completed_today: bool = False
    history: tuple[str, ...] = ()


# Event metadata: one variant per event type.


@dataclass(frozen=True)
class TaskCompleteMeta:
    task_id: Optional[str] = None
    estimated_minutes: Optional[int] = None
    category: Optional[Category] = None


@dataclass(frozen=True)
class TaskPostponeMeta:
    task_id: Optional[str] = None


@dataclass(frozen=True)
class ZenModeMeta:
    task_id: Optional[str] = None


@dataclass(frozen=True)
class UseAiMeta:
    feature: Optional[str] = None


@dataclass(frozen=True)
class IdleExitMeta:
    prompt_id: Optional[str] = None
    choice: Optional[str] = None


@dataclass(frozen=True)
class DetoxTasksMeta:
    task_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class AppOpenMeta:
    pass


@dataclass(frozen=True)
class FocusSessionMeta:
    task_id: Optional[str] = None
    minutes: Optional[float] = None


EventMetadata = Union[
    TaskCompleteMeta,
    TaskPostponeMeta,
    ZenModeMeta,
    UseAiMeta,
    IdleExitMeta,
    DetoxTasksMeta,
    AppOpenMeta,
    FocusSessionMeta,
]

META_TYPES: dict[EventType, type] = {
    EventType.TASK_COMPLETE: TaskCompleteMeta,
    EventType.TASK_POSTPONE: TaskPostponeMeta,
    EventType.ZEN_MODE_ENTER: ZenModeMeta,
    EventType.USE_AI: UseAiMeta,
    EventType.IDLE_EXIT: IdleExitMeta,
    EventType.DETOX_TASKS: DetoxTasksMeta,
    EventType.APP_OPEN: AppOpenMeta,
    EventType.FOCUS_SESSION_COMPLETE: FocusSessionMeta,
}


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_category(value: Any) -> Optional[Category]:
    try:
        return Category(value)
    except (TypeError, ValueError):
        return None


def _to_ids(value: Any) -> Optional[tuple[str, ...]]:
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(";") if part.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return None


_FIELD_CONVERTERS = {
    "estimated_minutes": _to_int,
    "minutes": _to_float,
    "category": _to_category,
    "task_ids": _to_ids,
}


def build_metadata(event_type: EventType, fields: dict[str, Any]) -> EventMetadata:
    """Build the metadata variant for ``event_type`` from loose key/value data.

    Unknown keys are dropped and unconvertible values fall back to the
    variant's default.
    """

    meta_cls = META_TYPES[event_type]
    values = {}
    for meta_field in dataclasses.fields(meta_cls):
        raw = fields.get(meta_field.name)
        if raw is None or raw == "":
            continue
        converter = _FIELD_CONVERTERS.get(meta_field.name, str)
        converted = converter(raw)
        if converted is not None:
            values[meta_field.name] = converted
    return meta_cls(**values)


@dataclass(frozen=True)
class BehaviorEvent:
    """Append-only behavior log entry."""

    type: EventType
    timestamp: datetime
    metadata: Optional[EventMetadata] = None

    def __post_init__(self) -> None:
        event_type = coerce_enum(EventType, self.type)
        object.__setattr__(self, "type", event_type)
        expected = META_TYPES[event_type]
        if self.metadata is None:
            object.__setattr__(self, "metadata", expected())
        elif not isinstance(self.metadata, expected):
            raise HostContractError(
                f"{event_type.value} events carry {expected.__name__}, got {type(self.metadata).__name__}"
            )

    @classmethod
    def create(cls, type: Any, timestamp: datetime, /, **fields: Any) -> "BehaviorEvent":
        """Build an event from loose metadata fields; see :func:`build_metadata`."""

        event_type = coerce_enum(EventType, type)
        return cls(event_type, timestamp, build_metadata(event_type, fields))


@dataclass(frozen=True)
class Badge:
    id: str
    title: str
    tier: BadgeTier
    icon: str = ""
    is_locked: bool = True
    progress: int = 0
    unlocked_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tier", coerce_enum(BadgeTier, self.tier))
        object.__setattr__(self, "progress", max(0, min(100, int(round(self.progress)))))


@dataclass(frozen=True)
class Persona:
    energy_profile: EnergyProfile = EnergyProfile.MIXED
    completion_style: CompletionStyle = CompletionStyle.SPRINTER
    overwhelm_trigger: int = 5
    deep_work_hours: float = 0.0
    current_mood: str = "Focused"
    daily_intention: str = ""


@dataclass(frozen=True)
class Suggestion:
    icon: str
    label: str
    duration: int
    priority: Priority
    title_suffix: Optional[str] = None


@dataclass(frozen=True)
class DraftTask:
    """Task fields extracted from free text, before an id is assigned."""

    title: str
    category: Category
    estimated_minutes: int
    deadline: datetime
    time_of_day: time
    priority: Priority = Priority.NORMAL
    is_completed: bool = False


@dataclass(frozen=True)
class OverloadPayload:
    task_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcrastinationPayload:
    task_id: str
    strategy: str = "micro-breakdown"
    postpone_events: int = 0


@dataclass(frozen=True)
class MorningBoostPayload:
    task_id: str


DecisionPayload = Union[OverloadPayload, ProcrastinationPayload, MorningBoostPayload]


@dataclass(frozen=True)
class Decision:
    type: DecisionType
    confidence: float
    payload: DecisionPayload
    reason: str = ""


def to_jsonable(value: Any) -> Any:
    """Convert schema objects into JSON-compatible structures."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return value
