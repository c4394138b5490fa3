"""Single-value cache wrapping an asynchronous fetcher.

The cache is always in exactly one of three states:

- ``Expired``: nothing cached, nothing in flight.
- ``Fetching``: one underlying fetch is running; every caller gets a view of
  one shared future, which only the fetch itself can settle.
- ``Fetched``: a value is cached and served without calling the fetcher.

Every transition goes through ``Catcher._set_state``, which is also the only
place where the TTL timer is armed (on entering ``Fetched``) and disarmed (on
leaving it).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, Literal, TypeVar, Union

import structlog

from catcher.config import CatcherSettings, get_settings
from catcher.deferred import Deferred, FetchHandle, attach_actions
from catcher.errors import InvalidStateError
from catcher.monitoring import timed
from catcher.timer import LoopTimer, Timer, TimerHandle


logger = structlog.get_logger(__name__)

T = TypeVar("T")

StateType = Literal["expired", "fetching", "fetched"]
Fetcher = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class Expired:
    type: ClassVar[StateType] = "expired"


@dataclass(frozen=True)
class Fetching(Generic[T]):
    type: ClassVar[StateType] = "fetching"

    deferred: Deferred[T]
    handle: FetchHandle


@dataclass
class Fetched(Generic[T]):
    type: ClassVar[StateType] = "fetched"

    data: T
    # Pre-resolved future handed out by fetch(); built lazily when the state
    # was entered without a running loop.
    future: asyncio.Future[T] | None = field(default=None, compare=False)


State = Union[Expired, Fetching[T], Fetched[T]]


class Catcher(Generic[T]):
    """Fetcher with cache.

    Args:
        fetcher: Niladic callable returning an awaitable of the value.
        init_data: Optional initial value. ``None`` means no initial value.
        ttl: Optional time-to-live of a fetched value, in milliseconds.
        fresh: Whether ``init_data`` is already valid. ``False`` treats it
            as stale so the first ``fetch()`` calls the fetcher.
        timer: Timer facility used for the TTL; defaults to ``LoopTimer``.
        instrument: Log duration and outcome of every fetcher call.
    """

    def __init__(
        self,
        fetcher: Fetcher[T],
        *,
        init_data: T | None = None,
        ttl: float | None = None,
        fresh: bool | None = None,
        timer: Timer | None = None,
        instrument: bool = False,
    ) -> None:
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be a positive number of milliseconds")

        self._fetcher = timed(fetcher) if instrument else fetcher
        self._ttl = ttl
        self._timer: Timer = timer if timer is not None else LoopTimer()
        self._timer_handle: TimerHandle | None = None
        self._disposed = False
        # Fetcher invocations in the current fetching episode.
        self._attempts = 0
        # Displaced fetches keep running; hold them so they are not collected.
        self._abandoned: set[asyncio.Future[Any]] = set()

        self._state: State[T] = Expired()
        if init_data is not None and fresh is not False:
            self._set_state(Fetched(init_data))

    @classmethod
    def from_settings(
        cls,
        fetcher: Fetcher[T],
        *,
        settings: CatcherSettings | None = None,
        **kwargs: Any,
    ) -> "Catcher[T]":
        """Build a cache whose TTL and instrumentation default to the settings."""
        if settings is None:
            settings = get_settings()
        kwargs.setdefault("ttl", settings.default_ttl_ms)
        kwargs.setdefault("instrument", settings.instrument_fetchers)
        return cls(fetcher, **kwargs)

    def get_current_state(self) -> StateType:
        return self._state.type

    def unsafe_get(self) -> T:
        """Return the cached data, raising ``InvalidStateError`` if there is none."""
        state = self._state
        if not isinstance(state, Fetched):
            raise InvalidStateError(state.type)
        return state.data

    def fetch(self) -> asyncio.Future[T]:
        """Return a future of the data, starting a fetch only when expired.

        Must be called from a running event loop. While fetching, each caller
        gets its own view of the shared result, so a caller that cancels its
        future (or times out) does not disturb the others.
        """
        state = self._state
        if isinstance(state, Expired):
            deferred: Deferred[T] = Deferred()
            deferred.future.add_done_callback(self._on_settled)
            self._attempts = 0
            handle = self._start(deferred)
            self._set_state(Fetching(deferred, handle))
            return deferred.view()
        if isinstance(state, Fetching):
            return state.deferred.view()
        if state.future is None:
            state.future = Deferred.resolved(state.data).future
        return state.future

    def expire(self, refetch: bool = True) -> None:
        """Expire the cached data or the ongoing fetch.

        While fetching, ``refetch=True`` abandons the running fetch and starts
        a new one whose result settles the already shared future;
        ``refetch=False`` leaves the running fetch alone.
        """
        state = self._state
        if isinstance(state, Expired):
            return
        if isinstance(state, Fetched):
            self._set_state(Expired())
            return
        if not refetch:
            return

        future = state.deferred.future
        if future.done():
            # Settled but the transition callback has not run yet.
            self._on_settled(future)
            self.expire(refetch)
            return

        state.handle.cancel()
        self._abandon(state.handle)
        logger.debug("catcher.fetch.displaced", attempt=self._attempts)
        handle = self._start(state.deferred)
        self._set_state(Fetching(state.deferred, handle))

    def dispose(self) -> None:
        """Cancel any pending TTL timer and stop arming new ones."""
        self._disposed = True
        self._disarm()

    def _start(self, deferred: Deferred[T]) -> FetchHandle:
        self._attempts += 1
        logger.debug("catcher.fetch.start", attempt=self._attempts)
        return attach_actions(self._fetcher, deferred.resolve, deferred.reject)

    def _abandon(self, handle: FetchHandle) -> None:
        task = handle.task
        if task is not None and not task.done():
            self._abandoned.add(task)
            task.add_done_callback(self._abandoned.discard)

    def _on_settled(self, future: asyncio.Future[T]) -> None:
        state = self._state
        if not isinstance(state, Fetching) or state.deferred.future is not future:
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("catcher.fetch.failed", attempt=self._attempts, error=repr(exc))
            self._set_state(Expired())
        else:
            self._set_state(Fetched(future.result(), future))

    def _set_state(self, state: State[T]) -> None:
        previous = self._state
        self._on_exit(previous)
        self._state = state
        self._on_enter(state)
        if previous.type != state.type:
            logger.debug("catcher.state.transition", from_state=previous.type, to_state=state.type)

    def _on_exit(self, state: State[T]) -> None:
        if isinstance(state, Fetched):
            self._disarm()

    def _on_enter(self, state: State[T]) -> None:
        if isinstance(state, Fetched):
            self._arm(state)

    def _arm(self, state: Fetched[T]) -> None:
        if self._ttl is None or self._disposed:
            return
        self._timer_handle = self._timer.schedule(lambda: self._on_ttl(state), self._ttl)

    def _disarm(self) -> None:
        handle = self._timer_handle
        if handle is None:
            return
        self._timer_handle = None
        self._timer.cancel(handle)

    def _on_ttl(self, state: Fetched[T]) -> None:
        if self._state is not state:
            return
        self._timer_handle = None
        logger.debug("catcher.ttl.fired", ttl_ms=self._ttl)
        self.expire(refetch=False)


__all__ = ["Catcher", "Expired", "Fetched", "Fetcher", "Fetching", "State", "StateType"]
