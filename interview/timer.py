from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from utils.logging import get_logger, session_logger


logger = get_logger("interview.timer")

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], Awaitable[None]]


class CountdownTimer:
    """One-second countdown scoped to a single (session, question) pair.

    Every tick reports the new value through ``on_tick`` so the remaining
    time can be rebuilt after a reload. When the count reaches zero the
    timer reports 0, stops, and runs ``on_expire`` as its own task so the
    expiry handler may cancel or replace this timer freely.
    """

    def __init__(
        self,
        session_id: str,
        question_index: int,
        seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
        tick_seconds: float = 1.0,
    ):
        self.session_id = session_id
        self.question_index = question_index
        self.remaining = max(0, int(seconds))
        self.tick_seconds = tick_seconds
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._task: Optional[asyncio.Task] = None
        self.expired = False
        self.cancelled = False
        self.expiry_task: Optional[asyncio.Task] = None
        self.log = session_logger(logger, session_id)

    @property
    def key(self) -> tuple:
        return (self.session_id, self.question_index)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("timer already started")
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> int:
        """Stop ticking and return the remaining seconds."""
        if self.running:
            self._task.cancel()
            self.cancelled = True
        return self.remaining

    async def wait(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self.expiry_task is not None:
            await self.expiry_task

    async def _run(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            self.remaining -= 1
            if self.remaining > 0:
                self._on_tick(self.remaining)
        self._on_tick(0)
        self.expired = True
        self.log.info(f"Question {self.question_index + 1} timer expired")
        self.expiry_task = asyncio.get_running_loop().create_task(self._on_expire())
        self.expiry_task.add_done_callback(self._report_expiry)

    def _report_expiry(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error(f"Expiry handler for question {self.question_index + 1} failed: {exc!r}", exc_info=exc)


class TimerRegistry:
    """Keeps at most one live countdown per session."""

    def __init__(self, tick_seconds: float = 1.0):
        self.tick_seconds = tick_seconds
        self._timers: Dict[str, CountdownTimer] = {}

    def get(self, session_id: str) -> Optional[CountdownTimer]:
        return self._timers.get(session_id)

    def start(
        self,
        session_id: str,
        question_index: int,
        seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
    ) -> CountdownTimer:
        self.cancel(session_id)
        timer = CountdownTimer(
            session_id,
            question_index,
            seconds,
            on_tick,
            on_expire,
            tick_seconds=self.tick_seconds,
        )
        self._timers[session_id] = timer
        timer.start()
        return timer

    def cancel(self, session_id: str) -> Optional[int]:
        timer = self._timers.pop(session_id, None)
        if timer is None:
            return None
        return timer.cancel()

    def cancel_all(self) -> None:
        for session_id in list(self._timers):
            self.cancel(session_id)

    def live_count(self) -> int:
        return sum(1 for t in self._timers.values() if t.running)
