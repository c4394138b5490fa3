from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ManualHandle:
    def __init__(self, callback: Callable[[], None], due_ms: float) -> None:
        self.callback = callback
        self.due_ms = due_ms
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer:
    """Timer facility whose clock only moves when a test advances it."""

    def __init__(self) -> None:
        self.now_ms = 0.0
        self.handles: list[ManualHandle] = []

    def schedule(self, callback: Callable[[], None], delay_ms: float) -> ManualHandle:
        handle = ManualHandle(callback, self.now_ms + delay_ms)
        self.handles.append(handle)
        return handle

    def cancel(self, handle: ManualHandle) -> None:
        handle.cancel()

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, ms: float) -> None:
        self.now_ms += ms
        for handle in sorted(self.pending, key=lambda h: h.due_ms):
            if handle.due_ms <= self.now_ms and not handle.cancelled:
                handle.fired = True
                handle.callback()


@pytest.fixture
def manual_timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep tests independent of a developer's CATCHER_* environment."""
    from catcher.config import get_settings

    for name in (
        "CATCHER_DEFAULT_TTL_MS",
        "CATCHER_LOG_LEVEL",
        "CATCHER_JSON_LOGS",
        "CATCHER_INSTRUMENT_FETCHERS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
