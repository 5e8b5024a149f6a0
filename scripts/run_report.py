"""Print a JSON report of derived signals for a snapshot backup."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from focus_engine.adapters import json_adapter
from focus_engine.decisions import evaluate
from focus_engine.insights import productivity_dna
from focus_engine.load import compute_load, is_overloaded, is_survival_mode
from focus_engine.logging_config import get_logger, setup_logging
from focus_engine.persona import profile
from focus_engine.priority import rank_tasks
from focus_engine.schema import Category, to_jsonable
from focus_engine.suggestions import suggest

logger = get_logger(__name__)


def build_report(snapshot, now: datetime) -> dict:
    ranked = rank_tasks(snapshot.tasks, now)
    return {
        "load": compute_load(snapshot.tasks),
        "overloaded": is_overloaded(snapshot.tasks),
        "survival_mode": is_survival_mode(snapshot.tasks),
        "ranking": [{"id": task.id, "title": task.title, "score": task.priority_score} for task in ranked],
        "persona": to_jsonable(profile(snapshot.events, base=snapshot.persona)),
        "decision": to_jsonable(evaluate(snapshot.tasks, snapshot.events, now)),
        "suggestions": {
            category.value: to_jsonable(suggest(category, snapshot.week_mode, now)) for category in Category
        },
        "dna": productivity_dna(ranked),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Report focus-engine signals for a snapshot")
    parser.add_argument("--snapshot", required=True, help="Path to a JSON snapshot backup")
    parser.add_argument("--now", help="ISO timestamp to evaluate at (defaults to the current time)")
    parser.add_argument("--out", help="Optional path to also write the report to")
    args = parser.parse_args()

    setup_logging()
    now = datetime.fromisoformat(args.now) if args.now else datetime.now()
    snapshot = json_adapter.parse(args.snapshot, now=now)
    report = build_report(snapshot, now)
    logger.info("report_built", tasks=len(snapshot.tasks), events=len(snapshot.events))

    print(json.dumps(report, indent=2, ensure_ascii=False))

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"Saved report to {out_path}")


if __name__ == "__main__":
    main()
