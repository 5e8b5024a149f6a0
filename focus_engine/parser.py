"""Best-effort extraction of a draft task from free English/Arabic text.

Vocabularies are plain data tables; matching works on word tokens. English
keywords match the start of a token ("studying" hits "study"), Arabic keywords
match anywhere inside a token so the article and attached particles
("الصلاة", "بالمسجد") still hit.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, time, timedelta
from typing import Optional

from focus_engine.config import get_settings
from focus_engine.logging_config import get_logger
from focus_engine.schema import Category, DraftTask, Priority

logger = get_logger(__name__)

Vocabulary = tuple[tuple[str, ...], tuple[str, ...]]  # (english, arabic)

CATEGORY_KEYWORDS: tuple[tuple[Category, Vocabulary], ...] = (
    (
        Category.STUDY,
        (
            ("study", "math", "read", "book", "exam", "learn", "homework", "lecture", "revise"),
            ("درس", "مذاكرة", "مذاكره", "كتاب", "امتحان", "محاضرة", "مراجعة"),
        ),
    ),
    (
        Category.HABIT,
        (
            ("gym", "run", "walk", "health", "workout", "exercise", "meditat", "stretch"),
            ("جيم", "رياضة", "رياضه", "تمرين", "مشي", "صحة", "تأمل"),
        ),
    ),
    (
        Category.PRAYER,
        (
            ("pray", "quran", "mosque", "fajr", "dhuhr", "asr", "maghrib", "isha", "worship", "dua"),
            ("صلاة", "صلاه", "قرآن", "قران", "مسجد", "فجر", "ظهر", "عصر", "مغرب", "عشاء", "عبادة", "دعاء"),
        ),
    ),
    (
        Category.WORK,
        (
            ("work", "email", "project", "meeting", "audit", "client", "report"),
            ("شغل", "عمل", "بريد", "اجتماع", "مشروع", "تقرير"),
        ),
    ),
)

TOMORROW_WORDS: Vocabulary = (("tomorrow",), ("بكرة", "بكره", "غدا", "الغد"))
TODAY_WORDS: Vocabulary = (("today", "tonight"), ("اليوم", "الليلة"))

# First matching period wins.
PERIOD_TIMES: tuple[tuple[time, Vocabulary], ...] = (
    (time(9, 0), (("morning",), ("صباح", "الصبح"))),
    (time(12, 0), (("noon", "midday"), ("الظهر", "ظهرا"))),
    (time(15, 0), (("afternoon",), ("العصر", "عصرا"))),
    (time(20, 0), (("evening", "night", "tonight"), ("مساء", "الليل", "ليلا"))),
)

FILLER_WORDS = frozenset({"for", "at", "by", "لمدة", "مدة", "عند"})

DEFAULT_TIME = time(9, 0)
UNTITLED = "Untitled task"

_TOKEN_RE = re.compile(r"\w+")
_DUAL_HOURS_RE = re.compile(r"ساعتين|ساعتان")
_HOURS_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:hours?|hrs?|h|ساعات|ساعة|ساعه)(?!\w)", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?|دقيقة|دقيقه|دقائق|دقايق)(?!\w)", re.IGNORECASE)
_CLOCK_12H_RE = re.compile(r"(?:\bat\s+)?\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b", re.IGNORECASE)
_CLOCK_24H_RE = re.compile(r"\bat\s+(\d{1,2}):(\d{2})\b", re.IGNORECASE)
_CLOCK_AR_RE = re.compile(r"(?:الساعة|الساعه)\s*(\d{1,2})(?::(\d{2}))?")

_SPAN_PATTERNS = (_DUAL_HOURS_RE, _HOURS_RE, _MINUTES_RE, _CLOCK_12H_RE, _CLOCK_24H_RE, _CLOCK_AR_RE)


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens (Unicode aware; diacritics split off)."""

    return [token.lower() for token in _TOKEN_RE.findall(text)]


def _token_matches(token: str, vocabulary: Vocabulary) -> bool:
    english, arabic = vocabulary
    return any(token.startswith(word) for word in english) or any(word in token for word in arabic)


def _mentions(tokens: list[str], vocabulary: Vocabulary) -> bool:
    return any(_token_matches(token, vocabulary) for token in tokens)


def classify_category(text: str) -> Category:
    """First category in table order whose keywords appear, else Other."""

    tokens = tokenize(text)
    for category, vocabulary in CATEGORY_KEYWORDS:
        if _mentions(tokens, vocabulary):
            return category
    return Category.OTHER


def _number(raw: str) -> Optional[float]:
    try:
        value = float(raw.replace(",", "."))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def extract_minutes(text: str, default: int) -> int:
    """Explicit hours beat explicit minutes; otherwise ``default``."""

    if _DUAL_HOURS_RE.search(text):
        return 120
    hours = _HOURS_RE.search(text)
    if hours:
        value = _number(hours.group(1))
        if value and value > 0 and math.isfinite(value * 60):
            return max(1, int(round(value * 60)))
    minutes = _MINUTES_RE.search(text)
    if minutes:
        value = _number(minutes.group(1))
        if value and value > 0:
            return int(value)
    return default


def _period_time(tokens: list[str]) -> Optional[time]:
    for clock, vocabulary in PERIOD_TIMES:
        if _mentions(tokens, vocabulary):
            return clock
    return None


def _explicit_time(text: str, period: Optional[time]) -> Optional[time]:
    match = _CLOCK_12H_RE.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        if 1 <= hour <= 12 and minute < 60:
            hour = hour % 12 + (12 if match.group(3).lower() == "pm" else 0)
            return time(hour, minute)

    match = _CLOCK_24H_RE.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour < 24 and minute < 60:
            return time(hour, minute)

    match = _CLOCK_AR_RE.search(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        if hour < 24 and minute < 60:
            if period is not None and period.hour >= 12 and hour < 12:
                hour += 12
            return time(hour, minute)
    return None


def extract_time(text: str) -> time:
    """Period words give a default clock time; an explicit clock time wins."""

    period = _period_time(tokenize(text))
    return _explicit_time(text, period) or period or DEFAULT_TIME


def _is_temporal(word: str) -> bool:
    tokens = tokenize(word)
    vocabularies = [TOMORROW_WORDS, TODAY_WORDS] + [vocabulary for _, vocabulary in PERIOD_TIMES]
    return bool(tokens) and all(any(_token_matches(token, v) for v in vocabularies) for token in tokens)


def extract_title(text: str) -> str:
    """Strip temporal and duration phrases; fall back to the raw text."""

    stripped = text
    for pattern in _SPAN_PATTERNS:
        stripped = pattern.sub(" ", stripped)

    kept = [
        word
        for word in stripped.split()
        if not _is_temporal(word) and word.strip(".,!?;:").lower() not in FILLER_WORDS
    ]
    title = " ".join(kept).strip(" .,-;:")
    if len(title) < 2:
        title = text.strip()
    if not title:
        return UNTITLED
    return title[:1].upper() + title[1:]


def parse_free_text(text: str, now: Optional[datetime] = None) -> DraftTask:
    """Extract a draft task from free text. Never raises."""

    now = now or datetime.now()
    text = text if isinstance(text, str) else str(text or "")
    tokens = tokenize(text)

    deadline = now + timedelta(days=1) if _mentions(tokens, TOMORROW_WORDS) else now
    draft = DraftTask(
        title=extract_title(text),
        category=classify_category(text),
        estimated_minutes=extract_minutes(text, get_settings().default_task_minutes),
        deadline=deadline,
        time_of_day=extract_time(text),
        priority=Priority.NORMAL,
        is_completed=False,
    )
    logger.debug("free_text_parsed", category=draft.category.value, minutes=draft.estimated_minutes)
    return draft
