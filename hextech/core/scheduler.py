import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Optional

from loguru import logger


@dataclass(eq=False)
class TimerToken:
    """Handle for one scheduled callback. Pass it to Scheduler.cancel()."""

    id: int
    callback: Callable[[], Any]
    due: float  # ms on the scheduler clock
    interval: Optional[float] = None
    fired: bool = False
    cancelled: bool = False
    handle: Any = None
    on_cancel: Optional[Callable[[], Any]] = None

    @property
    def active(self) -> bool:
        if self.cancelled:
            return False
        return self.interval is not None or not self.fired


class Scheduler(ABC):
    """Delayed execution on the single event-loop thread.

    Callbacks never run concurrently with each other. Cancelling a token
    before it fires guarantees the callback never runs; cancelling it
    afterwards is a no-op.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending: dict[int, TimerToken] = {}
        self._tasks: set[asyncio.Task] = set()

    @abstractmethod
    def now(self) -> float:
        """Current clock reading in milliseconds."""
        ...

    @abstractmethod
    def _arm(self, token: TimerToken) -> None:
        ...

    def _disarm(self, token: TimerToken) -> None:
        pass

    def after(self, delay_ms: float, callback: Callable[[], Any]) -> TimerToken:
        """Run callback once, delay_ms from now."""
        token = TimerToken(next(self._ids), callback, self.now() + max(0.0, delay_ms))
        self._pending[token.id] = token
        self._arm(token)
        return token

    def every(self, interval_ms: float, callback: Callable[[], Any]) -> TimerToken:
        """Run callback every interval_ms until the token is cancelled."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        token = TimerToken(
            next(self._ids), callback, self.now() + interval_ms, interval=interval_ms
        )
        self._pending[token.id] = token
        self._arm(token)
        return token

    def cancel(self, token: Optional[TimerToken]) -> None:
        if token is None or not token.active:
            return
        token.cancelled = True
        self._pending.pop(token.id, None)
        self._disarm(token)
        if token.on_cancel is not None:
            token.on_cancel()

    def cancel_all(self) -> None:
        """Cancel every pending callback, including in-progress sleeps."""
        tokens = list(self._pending.values())
        for token in tokens:
            self.cancel(token)
        if tokens:
            logger.debug("[SCHED] Cancelled {} pending callback(s)", len(tokens))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _fire(self, token: TimerToken) -> None:
        if not token.active:
            return
        if token.interval is None:
            token.fired = True
            self._pending.pop(token.id, None)
        else:
            # Re-arm first so the callback may cancel its own token
            token.due += token.interval
            self._arm(token)
        try:
            token.callback()
        except Exception:
            logger.exception("Scheduled callback #{} failed", token.id)

    async def sleep(self, delay_ms: float) -> None:
        """Suspend the calling coroutine on this scheduler's clock.

        Cancelling the underlying token (e.g. via cancel_all) cancels the
        waiting coroutine.
        """
        future = asyncio.get_running_loop().create_future()

        def wake():
            if not future.done():
                future.set_result(None)

        token = self.after(delay_ms, wake)
        token.on_cancel = future.cancel
        try:
            await future
        finally:
            self.cancel(token)

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Start a tracked background task. Failures are logged, not raised."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("[SCHED] Task {} cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Background task {} failed", task.get_name())

    async def shutdown(self) -> None:
        """Cancel all timers and tasks, then wait for the tasks to unwind."""
        self.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio loop's call_later."""

    def now(self) -> float:
        return asyncio.get_running_loop().time() * 1000.0

    def _arm(self, token: TimerToken) -> None:
        loop = asyncio.get_running_loop()
        delay = max(0.0, token.due - loop.time() * 1000.0) / 1000.0
        token.handle = loop.call_later(delay, self._fire, token)

    def _disarm(self, token: TimerToken) -> None:
        if token.handle is not None:
            token.handle.cancel()
            token.handle = None


class VirtualScheduler(Scheduler):
    """Scheduler on a virtual clock that only moves through advance().

    Used for deterministic simulations and tests: a full duplex cycle
    takes microseconds of wall time.
    """

    # Loop iterations granted to woken coroutines after each callback
    SETTLE_ROUNDS = 20

    def __init__(self, start_ms: float = 0.0):
        super().__init__()
        self._now = start_ms
        self._heap: list[tuple[float, int, TimerToken]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _arm(self, token: TimerToken) -> None:
        heapq.heappush(self._heap, (token.due, next(self._seq), token))

    async def advance(self, delay_ms: float) -> None:
        """Move the clock forward, firing due callbacks in order."""
        target = self._now + delay_ms
        await self.settle()
        while self._heap and self._heap[0][0] <= target:
            due, _, token = heapq.heappop(self._heap)
            if not token.active:
                continue
            self._now = max(self._now, due)
            self._fire(token)
            await self.settle()
        self._now = target

    async def settle(self) -> None:
        """Let runnable coroutines proceed to their next suspension point."""
        for _ in range(self.SETTLE_ROUNDS):
            await asyncio.sleep(0)
