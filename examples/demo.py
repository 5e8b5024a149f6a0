"""Demo script for focus-engine."""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from focus_engine.adapters.json_adapter import parse
from focus_engine.decisions import evaluate
from focus_engine.load import compute_load, shadow_negotiate
from focus_engine.logging_config import setup_logging
from focus_engine.parser import parse_free_text
from focus_engine.priority import rank_tasks
from focus_engine.store import SessionStore, add_task, apply_badge_action, complete_task, task_from_draft


def main() -> None:
    setup_logging()
    now = datetime(2025, 3, 10, 8, 30)
    store = SessionStore(parse(str(Path(__file__).with_name("sample_snapshot.json")), now=now))

    draft = parse_free_text("مذاكرة رياضيات بكرة الساعة 5 لمدة ساعتين", now=now)
    store.dispatch(add_task, task_from_draft(draft, now=now))
    store.dispatch(complete_task, "pray-fajr", now=now)
    store.dispatch(complete_task, "math-review", now=now)
    snapshot = store.dispatch(apply_badge_action, "complete_task", {"task_id": "math-review"}, now=now)

    print("Load:", compute_load(snapshot.tasks))
    print("Ranking:", [(task.title, task.priority_score) for task in rank_tasks(snapshot.tasks, now)])
    print("Shadowed:", [task.title for task in shadow_negotiate(snapshot.tasks) if task.shadowed])
    print("Decision:", evaluate(snapshot.tasks, snapshot.events, now))
    print("Just unlocked:", snapshot.just_unlocked)


if __name__ == "__main__":
    main()
