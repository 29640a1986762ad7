"""One-shot countdown timers backed by asyncio tasks."""
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[object]]


class TimerRegistry:
    """
    Named one-shot timers.

    A timer moves itself from the pending map to the running set just before
    its callback runs, so a callback may call cancel() on its own id without
    cancelling itself. The running set keeps the task referenced until done.
    """

    def __init__(self) -> None:
        self._timers: Dict[str, asyncio.Task] = {}
        self._running: Set[asyncio.Task] = set()

    def schedule(self, timer_id: str, delay_seconds: float, callback: TimerCallback) -> None:
        """Arm a timer. An existing timer with the same id is replaced."""
        previous = self._timers.pop(timer_id, None)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.info(f"Replaced pending timer {timer_id}")
        self._timers[timer_id] = asyncio.create_task(self._fire(timer_id, delay_seconds, callback))

    async def _fire(self, timer_id: str, delay_seconds: float, callback: TimerCallback) -> None:
        await asyncio.sleep(delay_seconds)
        task = asyncio.current_task()
        if self._timers.get(timer_id) is task:
            del self._timers[timer_id]
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        try:
            await callback()
        except Exception as e:
            logger.error(f"Timer {timer_id} callback failed: {e}")

    async def cancel(self, timer_id: str) -> bool:
        """Cancel a pending timer. Returns False if nothing was pending."""
        task = self._timers.pop(timer_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def is_scheduled(self, timer_id: str) -> bool:
        task = self._timers.get(timer_id)
        return task is not None and not task.done()

    def pending_count(self) -> int:
        return sum(1 for t in self._timers.values() if not t.done())

    def running_count(self) -> int:
        return len(self._running)


# Global singleton
timer_registry = TimerRegistry()
