"""Instrumentation for fetchers wrapped by a cache."""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, TypeVar

import structlog


T = TypeVar("T")


def fetcher_name(fetcher: Callable[..., Any]) -> str:
    return getattr(fetcher, "__qualname__", None) or type(fetcher).__qualname__


def timed(fetcher: Callable[[], Awaitable[T]]) -> Callable[[], Awaitable[T]]:
    """Wrap *fetcher* so each call logs its duration and outcome.

    Emits ``fetch.complete`` on success, ``fetch.error`` when the fetcher
    fails and ``fetch.cancelled`` when the call is cancelled; errors are
    re-raised unchanged. Works for coroutine functions as well as callables
    returning any awaitable.
    """

    name = fetcher_name(fetcher)

    async def wrapper() -> T:
        logger = structlog.get_logger(__name__).bind(fetcher=name)
        started = time.perf_counter()
        try:
            result = fetcher()
            if not inspect.isawaitable(result):
                raise TypeError(f"fetcher {name} returned a non-awaitable {type(result).__name__}")
            value = await result
        except asyncio.CancelledError:
            logger.info("fetch.cancelled", duration_seconds=time.perf_counter() - started)
            raise
        except Exception as exc:
            logger.warning(
                "fetch.error",
                duration_seconds=time.perf_counter() - started,
                error=repr(exc),
            )
            raise
        logger.info("fetch.complete", duration_seconds=time.perf_counter() - started)
        return value

    wrapper.__qualname__ = f"timed({name})"
    return wrapper
