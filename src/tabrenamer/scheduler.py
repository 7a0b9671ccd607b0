# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Debounced single-flight recompute scheduler with a mutation guard.

Tab events arrive in bursts (a page load fires several updates; our own
moves and regroups echo back as move/group events).  The scheduler turns
them into at most one running pass:

- **Debounce**: ``schedule()`` re-arms a timer; the pass fires after a
  quiet period.
- **Single flight**: a timer firing while a pass runs does not start a
  second one; it sets the one-slot rerun flag instead.
- **Mutation guard**: ``mutation()`` marks the convergence step as in
  progress; a second convergence attempt while it is held is dropped.  The
  guard is released ``mutation_cooldown`` seconds after the step ends so
  the browser's echo events see it held.
- **Rerun slot**: a boolean, not a queue: any number of requests during a
  pass collapse into one extra pass.

States: IDLE → SCHEDULED → RUNNING → IDLE | PENDING_RERUN (→ SCHEDULED).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import StrEnum

from .config import SchedulerConfig

logger = logging.getLogger(__name__)

RecomputeFn = Callable[[], Awaitable[None]]


class SchedulerState(StrEnum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PENDING_RERUN = "pending_rerun"


class RecomputeScheduler:
    """Owns the debounce timer, the running pass, and the guard/rerun flag pair.

    Usage::

        scheduler = RecomputeScheduler(SchedulerConfig())
        scheduler.bind(engine.recompute_all)
        scheduler.schedule()        # from every tab event
        await scheduler.drain()     # wait until quiet (tests, CLI)
    """

    def __init__(self, config: SchedulerConfig | None = None, run: RecomputeFn | None = None) -> None:
        self._config = config or SchedulerConfig()
        self._run = run
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._cooldown: asyncio.TimerHandle | None = None
        self._mutating = False
        self._pending = False
        self._released = asyncio.Event()
        self._released.set()
        self.passes_started = 0

    def bind(self, run: RecomputeFn) -> None:
        """Set the coroutine function that performs one recompute pass."""
        self._run = run

    # -- State --

    @property
    def state(self) -> SchedulerState:
        if self._task is not None and not self._task.done():
            return SchedulerState.PENDING_RERUN if self._pending else SchedulerState.RUNNING
        if self._timer is not None:
            return SchedulerState.SCHEDULED
        return SchedulerState.IDLE

    @property
    def mutating(self) -> bool:
        """True while a convergence step (or its cooldown) is in progress."""
        return self._mutating

    @property
    def rerun_requested(self) -> bool:
        return self._pending

    def request_rerun(self) -> None:
        """Remember that another pass is needed once the current work settles."""
        self._pending = True

    def consume_rerun(self) -> bool:
        """Clear the rerun slot, returning whether it was set."""
        pending, self._pending = self._pending, False
        return pending

    # -- Debounce --

    def schedule(self) -> None:
        """(Re)start the quiet-period timer for a recompute pass."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._config.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._task is not None and not self._task.done():
            logger.debug("Recompute requested while a pass is running; deferring")
            self._pending = True
            return
        if self._run is None:
            logger.warning("Recompute fired with no pass bound; ignoring")
            return
        self.passes_started += 1
        self._task = asyncio.get_running_loop().create_task(self._run_pass(), name="tabrenamer-recompute")

    async def _run_pass(self) -> None:
        try:
            await self._run()
        except Exception:
            # A failed pass must not kill the scheduler; the next event retries.
            logger.exception("Recompute pass failed")
        finally:
            if self.consume_rerun():
                logger.debug("Rerun requested during pass; rescheduling")
                self.schedule()

    # -- Mutation guard --

    @asynccontextmanager
    async def mutation(self) -> AsyncIterator[bool]:
        """Hold the mutation guard for the duration of the block.

        Yields False (and holds nothing) when the guard is already held;
        the caller must then skip its mutation step.
        """
        if self._mutating:
            yield False
            return
        self._mutating = True
        self._released.clear()
        try:
            yield True
        finally:
            self._release_after_cooldown()

    def _release_after_cooldown(self) -> None:
        if self._config.mutation_cooldown <= 0:
            self._release()
            return
        self._cooldown = asyncio.get_running_loop().call_later(self._config.mutation_cooldown, self._release)

    def _release(self) -> None:
        self._cooldown = None
        self._mutating = False
        self._released.set()

    # -- Lifecycle --

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait until no timer, pass, or guard cooldown is outstanding."""
        loop = asyncio.get_running_loop()
        async with asyncio.timeout(timeout):
            while True:
                if self._task is not None and not self._task.done():
                    await asyncio.wait({self._task})
                    continue
                if self._timer is not None:
                    await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))
                    # let the timer callback run
                    await asyncio.sleep(0)
                    continue
                if self._mutating:
                    await self._released.wait()
                    continue
                return

    async def shutdown(self) -> None:
        """Cancel timers and wait for a running pass to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        if self._timer is not None:
            # the finishing pass may have rescheduled itself
            self._timer.cancel()
            self._timer = None
        if self._cooldown is not None:
            self._cooldown.cancel()
        self._release()
        self._pending = False
