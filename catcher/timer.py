"""Timer facility used to drive TTL expiry."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timer(Protocol):
    """Schedules a callback after a delay given in milliseconds."""

    def schedule(self, callback: Callable[[], None], delay_ms: float) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle) -> None: ...


class LoopTimer:
    """Timer backed by ``loop.call_later``.

    Without an explicit loop, the running loop at scheduling time is used, so
    scheduling outside of a running loop raises ``RuntimeError``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, callback: Callable[[], None], delay_ms: float) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)

    def cancel(self, handle: TimerHandle) -> None:
        # Cancelling a fired or cancelled asyncio.TimerHandle is harmless.
        handle.cancel()


__all__ = ["LoopTimer", "Timer", "TimerHandle"]
