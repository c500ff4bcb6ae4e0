"""Debounced invocation of user-triggered actions."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

log = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, callback: Callable[[], None], delay: float) -> Cancellable: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def schedule(self, callback: Callable[[], None], delay: float) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class DebouncedInvoker:
    """Collapse bursts of calls into one execution with the last call's arguments.

    Every call cancels the pending execution and schedules a new one `delay`
    seconds later. Callers get nothing back; the action reports its own outcome.
    Coroutine actions are run as tasks on the current loop.
    """

    def __init__(
        self,
        action: Callable[..., Any],
        delay: float = 0.5,
        scheduler: Optional[Scheduler] = None,
    ):
        self.action = action
        self.delay = delay
        self.scheduler = scheduler or LoopScheduler()
        self._handle: Optional[Cancellable] = None
        self._tasks: set[asyncio.Future] = set()
        # Set whenever nothing is scheduled.
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> bool:
        """True while an execution is scheduled but has not fired."""
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._idle.clear()
        self._handle = self.scheduler.schedule(lambda: self._fire(args, kwargs), self.delay)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._idle.set()

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        self._idle.set()
        result = self.action(*args, **kwargs)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for a scheduled execution to fire and for its work to finish."""
        await self._idle.wait()
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
