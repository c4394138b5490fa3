"""Future helpers used to share one fetch between many callers.

`Deferred` pairs an asyncio future with hooks that can settle it from outside,
and `attach_actions` wires an awaitable's outcome to those hooks through a
`FetchHandle` that can be tripped to abandon the awaitable.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar


T = TypeVar("T")


def consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'exception was never retrieved' warnings for abandoned futures."""
    if fut.cancelled():
        return
    fut.exception()


class Deferred(Generic[T]):
    """A future together with its resolve and reject hooks.

    The hooks are no-ops once the future is done, so late or duplicate
    settlements never raise ``asyncio.InvalidStateError``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if loop is None:
            loop = asyncio.get_running_loop()
        self.future: asyncio.Future[T] = loop.create_future()
        self.future.add_done_callback(consume_future_exception)

    def resolve(self, value: T) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)

    def view(self) -> asyncio.Future[T]:
        """Return a new future mirroring this one.

        Cancelling the view (for example through ``asyncio.wait_for``)
        detaches that caller only; the deferred itself is left untouched.
        """
        source = self.future
        view: asyncio.Future[T] = source.get_loop().create_future()
        view.add_done_callback(consume_future_exception)

        def _relay(done: asyncio.Future[T]) -> None:
            if view.done():
                return
            if done.cancelled():
                view.cancel()
                return
            exc = done.exception()
            if exc is not None:
                view.set_exception(exc)
            else:
                view.set_result(done.result())

        if source.done():
            _relay(source)
            return view
        source.add_done_callback(_relay)
        view.add_done_callback(lambda _: source.remove_done_callback(_relay))
        return view

    @classmethod
    def resolved(cls, value: T, loop: asyncio.AbstractEventLoop | None = None) -> "Deferred[T]":
        deferred: Deferred[T] = cls(loop)
        deferred.resolve(value)
        return deferred


class FetchHandle:
    """Latch guarding the hooks of a single underlying fetch."""

    def __init__(self) -> None:
        self.cancelled = False
        self.task: asyncio.Future[Any] | None = None

    def cancel(self) -> None:
        self.cancelled = True


def attach_actions(
    operation: Callable[[], Awaitable[T]],
    resolve: Callable[[T], None],
    reject: Callable[[BaseException], None],
) -> FetchHandle:
    """Run *operation* once and forward its outcome unless the handle is cancelled.

    A synchronous exception from *operation* (or a non-awaitable return
    value) is forwarded to *reject* on the next loop iteration, like any
    other failure.
    """

    handle = FetchHandle()
    try:
        task = asyncio.ensure_future(operation())
    except Exception as exc:
        failed: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        failed.set_exception(exc)
        task = failed
    handle.task = task

    def _settle(done: asyncio.Future[T]) -> None:
        if done.cancelled():
            if not handle.cancelled:
                reject(asyncio.CancelledError())
            return
        exc = done.exception()
        if handle.cancelled:
            return
        if exc is not None:
            reject(exc)
        else:
            resolve(done.result())

    task.add_done_callback(_settle)
    return handle


__all__ = ["Deferred", "FetchHandle", "attach_actions", "consume_future_exception"]
