from datetime import datetime

from focus_engine.config import get_settings, reset_settings
from focus_engine.load import compute_load
from focus_engine.schema import Category, Priority, Task


def test_defaults():
    reset_settings()
    settings = get_settings()
    assert settings.daily_capacity_minutes == 480
    assert settings.overload_threshold == 90
    assert get_settings() is settings


def test_environment_override(monkeypatch):
    monkeypatch.setenv("FOCUS_ENGINE_DAILY_CAPACITY_MINUTES", "240")
    reset_settings()
    try:
        now = datetime(2025, 1, 1, 9)
        task = Task("a", "a", Category.WORK, Priority.NORMAL, 60, now, now)
        assert compute_load([task]) == 25
    finally:
        monkeypatch.delenv("FOCUS_ENGINE_DAILY_CAPACITY_MINUTES")
        reset_settings()
