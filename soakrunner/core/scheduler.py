"""
Run scheduler: environment lifecycle plus the deadline-bounded polling loop.

State machine:
    NOT_STARTED --init()--> RUNNING --request_stop()--> STOP_REQUESTED
    RUNNING / STOP_REQUESTED --loop exit or down()--> STOPPED

The loop checks two terminating conditions at the top of every iteration:
the deadline first, then the stop flag. Both are read and written on the
event loop thread only. Ticks sit on fixed slots counted from the start of
gathering, so tick latency and sleep overshoot never cost a slot.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Awaitable, Callable

from soakrunner.connectors.base import EnvManager
from soakrunner.core.eventer import Eventer
from soakrunner.models import RunState, StopReason

logger = logging.getLogger(__name__)

# Absorbs float error in duration / interval (0.3 / 0.1 == 2.9999999999999996).
_SLOT_EPSILON = 1e-9


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Scheduler:
    """Drives a single soak run."""

    def __init__(
        self,
        *,
        env_manager: EnvManager,
        eventer: Eventer,
        start_delay: float,
        test_duration: float,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if start_delay < 0:
            raise ValueError("start_delay must not be negative")
        if test_duration < 0:
            raise ValueError("test_duration must not be negative")
        self.env_manager = env_manager
        self.eventer = eventer
        self.start_delay = float(start_delay)
        self.test_duration = float(test_duration)
        self.interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._state = RunState.NOT_STARTED
        self._env_stopped = False
        self.ticks = 0
        self.stop_reason: StopReason | None = None

    @property
    def state(self) -> RunState:
        return self._state

    async def init(self) -> None:
        if self._state != RunState.NOT_STARTED:
            raise RuntimeError(f"cannot init scheduler in state {self._state.value}")
        await self.env_manager.start()
        self._state = RunState.RUNNING

    def request_stop(self) -> bool:
        """Mark the run for early stop. Returns True only on the transition."""
        if self._state != RunState.RUNNING:
            return False
        logger.info("Stop requested after tick %d", self.ticks)
        self._state = RunState.STOP_REQUESTED
        return True

    async def tick(self) -> None:
        if self._state != RunState.RUNNING:
            return
        self.ticks += 1
        await self.eventer.fire(self._now())

    async def run(self) -> StopReason:
        if self._state == RunState.NOT_STARTED:
            raise RuntimeError("run() called before init()")

        logger.info("=[ delay ]=============================")
        if self.start_delay > 0:
            await self._sleep(self.start_delay)

        logger.info("=[ start gathers ]=====================")
        started = self._clock()
        deadline = started + self.test_duration
        planned = int(self.test_duration / self.interval + _SLOT_EPSILON)
        issued = 0

        while True:
            # Slot k starts at started + k * interval; only whole slots are issued.
            if issued >= planned or self._clock() >= deadline:
                if self._state == RunState.STOP_REQUESTED:
                    reason = StopReason.BREACH
                else:
                    logger.info("=[ timeout ]============================")
                    reason = StopReason.DEADLINE
                break
            if self._state != RunState.RUNNING:
                reason = StopReason.BREACH
                break
            await self.tick()
            issued += 1
            if self._state != RunState.RUNNING:
                continue
            next_slot = started + issued * self.interval
            await self._sleep(max(0.0, next_slot - self._clock()))

        self._state = RunState.STOPPED
        self.stop_reason = reason
        logger.info("Run loop exited (%s) after %d tick(s)", reason.value, self.ticks)
        return reason

    async def down(self) -> None:
        """Tear the environment down. Only the first call reaches the env manager."""
        self._state = RunState.STOPPED
        if self._env_stopped:
            return
        self._env_stopped = True
        await self.env_manager.stop()
