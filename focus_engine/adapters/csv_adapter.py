"""CSV adapter for behavior event logs."""

from __future__ import annotations

import csv
from datetime import datetime
from typing import Optional

from focus_engine.logging_config import get_logger
from focus_engine.schema import BehaviorEvent, parse_timestamp

logger = get_logger(__name__)

_REQUIRED_FIELDS = {"type"}


def _parse_timestamp(raw: Optional[str], row_number: int, now: datetime) -> datetime:
    try:
        return parse_timestamp(raw)
    except ValueError:
        logger.warning("malformed_timestamp", row=row_number, value=raw)
        return now


def _parse_row(row: dict, row_number: int, now: datetime) -> BehaviorEvent:
    missing = [field for field in _REQUIRED_FIELDS if not row.get(field)]
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    timestamp = _parse_timestamp(row.get("timestamp"), row_number, now)
    metadata = {
        key: value.strip()
        for key, value in row.items()
        if key and key not in ("type", "timestamp") and isinstance(value, str) and value.strip()
    }
    return BehaviorEvent.create(row["type"].strip(), timestamp, **metadata)


def parse(file_path: str, now: Optional[datetime] = None) -> list[BehaviorEvent]:
    """Parse a CSV event log (``type,timestamp`` plus metadata columns)."""

    now = now or datetime.now()
    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: list[BehaviorEvent] = []
        for row_number, row in enumerate(reader, start=2):
            events.append(_parse_row(row, row_number, now))
        return events
