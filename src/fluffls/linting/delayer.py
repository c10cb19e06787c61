"""Coalescing scheduler for per-document lint runs.

A ``ThrottledDelayer`` waits for a burst of triggers to settle and then hands
the latest task to a ``Throttler``, which keeps at most one task running and
at most one queued behind it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from fluffls.logging import get_logger

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]

logger = get_logger("linting.delayer")


def _chain(source: asyncio.Future[T], target: asyncio.Future[T]) -> None:
    """Copy the outcome of ``source`` into ``target`` once it is done."""

    def _copy(done: asyncio.Future[T]) -> None:
        if target.done():
            return
        if done.cancelled():
            target.cancel()
        else:
            target.set_result(done.result())

    source.add_done_callback(_copy)


async def _run_task(factory: TaskFactory[T]) -> T | None:
    try:
        return await factory()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Scheduled task failed")
        return None


class Throttler(Generic[T]):
    """Runs one task at a time, remembering only the newest pending one."""

    def __init__(self) -> None:
        self._active: asyncio.Task[T | None] | None = None
        self._queued_factory: TaskFactory[T] | None = None
        self._queued: asyncio.Future[T | None] | None = None

    @property
    def is_active(self) -> bool:
        return self._active is not None

    def queue(self, factory: TaskFactory[T]) -> asyncio.Future[T | None]:
        """
        Run ``factory`` now, or after the task in flight if there is one.

        A factory queued behind the active task replaces any factory queued
        earlier; all callers waiting on the queue share its result.
        """
        if self._active is None:
            return self._start(factory)

        self._queued_factory = factory
        if self._queued is None:
            self._queued = asyncio.get_running_loop().create_future()
        return self._queued

    def _start(self, factory: TaskFactory[T]) -> asyncio.Task[T | None]:
        task = asyncio.get_running_loop().create_task(_run_task(factory))
        self._active = task
        task.add_done_callback(self._on_active_done)
        return task

    def _on_active_done(self, _task: asyncio.Future[T | None]) -> None:
        self._active = None
        if self._queued_factory is None or self._queued is None:
            return

        factory, waiter = self._queued_factory, self._queued
        self._queued_factory = None
        self._queued = None
        _chain(self._start(factory), waiter)


class ThrottledDelayer(Generic[T]):
    """Debounces triggers, then runs the latest task through a ``Throttler``."""

    def __init__(self, delay_ms: int) -> None:
        self.delay_ms = delay_ms
        self._throttler: Throttler[T] = Throttler()
        self._timer: asyncio.TimerHandle | None = None
        self._task: TaskFactory[T] | None = None
        self._completion: asyncio.Future[T | None] | None = None

    def is_triggered(self) -> bool:
        """Whether a task is waiting for the delay to elapse."""
        return self._timer is not None

    def is_idle(self) -> bool:
        """Whether nothing is waiting, running or queued."""
        return self._timer is None and not self._throttler.is_active

    def trigger(
        self, task: TaskFactory[T], delay_ms: int | None = None
    ) -> asyncio.Future[T | None]:
        """
        Schedule ``task`` as the latest unit of work.

        Restarts the delay. A task still waiting for the delay is dropped in
        favour of this one.

        Args:
            task: Zero-argument callable returning an awaitable.
            delay_ms: Override for this trigger; defaults to the delayer's delay.

        Returns:
            Future resolved with the result of the task that ends up running
            for this burst, or None if that task failed.
        """
        loop = asyncio.get_running_loop()
        self._task = task

        if self._timer is not None:
            self._timer.cancel()
        if self._completion is None or self._completion.done():
            self._completion = loop.create_future()

        delay = self.delay_ms if delay_ms is None else delay_ms
        self._timer = loop.call_later(max(delay, 0) / 1000, self._fire)
        return self._completion

    def _fire(self) -> None:
        task, completion = self._task, self._completion
        self._timer = None
        self._task = None
        self._completion = None
        if task is None or completion is None:
            return
        _chain(self._throttler.queue(task), completion)
