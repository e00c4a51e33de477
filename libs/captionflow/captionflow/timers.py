"""Per-key, per-purpose cancelable timers on the running asyncio loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[Any] | None]


class TimerPurpose(str, Enum):
    FINALIZE = "finalize"
    RETRANSLATE = "retranslate"
    LOOP_RESET = "loop_reset"


TimerKey = tuple[str, TimerPurpose]


class TimerCoordinator:
    """At most one live timer per ``(key, purpose)``; arming again replaces it.

    Callbacks run on the event loop, never from inside :meth:`arm`. A callback
    may return an awaitable, which is run as a task and tracked until done.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[TimerKey, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def arm(
        self,
        key: str,
        purpose: TimerPurpose | str,
        delay_s: float,
        callback: TimerCallback,
    ) -> None:
        slot: TimerKey = (str(key), TimerPurpose(purpose))
        self._cancel_slot(slot)
        handle = self._get_loop().call_later(max(0.0, float(delay_s)), self._fire, slot, callback)
        self._handles[slot] = handle

    def cancel(self, key: str, purpose: TimerPurpose | str) -> bool:
        return self._cancel_slot((str(key), TimerPurpose(purpose)))

    def cancel_all(self, key: str) -> int:
        slots = [slot for slot in self._handles if slot[0] == str(key)]
        for slot in slots:
            self._cancel_slot(slot)
        return len(slots)

    def cancel_purpose(self, purpose: TimerPurpose | str) -> int:
        kind = TimerPurpose(purpose)
        slots = [slot for slot in self._handles if slot[1] is kind]
        for slot in slots:
            self._cancel_slot(slot)
        return len(slots)

    def cancel_everything(self) -> int:
        count = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        return count

    def is_armed(self, key: str, purpose: TimerPurpose | str) -> bool:
        return (str(key), TimerPurpose(purpose)) in self._handles

    def armed(self) -> list[TimerKey]:
        return list(self._handles)

    @property
    def busy(self) -> bool:
        """True while a fired callback task is still running."""
        return bool(self._tasks)

    async def drain(self) -> None:
        """Wait for callback tasks that are already running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel pending timers and any callback task still running."""
        self.cancel_everything()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _cancel_slot(self, slot: TimerKey) -> bool:
        handle = self._handles.pop(slot, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self, slot: TimerKey, callback: TimerCallback) -> None:
        self._handles.pop(slot, None)
        try:
            result = callback()
        except Exception:
            logger.exception("timer callback failed (key=%s, purpose=%s)", slot[0], slot[1].value)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("timer task failed: %s", exc, exc_info=exc)
