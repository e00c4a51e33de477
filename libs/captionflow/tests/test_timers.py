from __future__ import annotations

import asyncio

import pytest

from captionflow.timers import TimerCoordinator, TimerPurpose


@pytest.mark.asyncio
async def test_timer_fires_once_and_disarms() -> None:
    timers = TimerCoordinator()
    fired: list[str] = []
    timers.arm("ann", TimerPurpose.FINALIZE, 0.01, lambda: fired.append("ann"))
    assert timers.is_armed("ann", TimerPurpose.FINALIZE)

    await asyncio.sleep(0.05)
    assert fired == ["ann"]
    assert not timers.is_armed("ann", TimerPurpose.FINALIZE)


@pytest.mark.asyncio
async def test_rearming_replaces_the_pending_timer() -> None:
    timers = TimerCoordinator()
    fired: list[str] = []
    timers.arm("ann", TimerPurpose.FINALIZE, 0.01, lambda: fired.append("first"))
    timers.arm("ann", TimerPurpose.FINALIZE, 0.02, lambda: fired.append("second"))

    await asyncio.sleep(0.06)
    assert fired == ["second"]


@pytest.mark.asyncio
async def test_cancel_all_and_cancel_purpose() -> None:
    timers = TimerCoordinator()
    fired: list[str] = []
    timers.arm("ann", TimerPurpose.FINALIZE, 0.01, lambda: fired.append("ann-finalize"))
    timers.arm("ann", TimerPurpose.RETRANSLATE, 0.01, lambda: fired.append("ann-retranslate"))
    timers.arm("bob", TimerPurpose.LOOP_RESET, 0.01, lambda: fired.append("bob-loop"))
    timers.arm("cat", TimerPurpose.LOOP_RESET, 0.01, lambda: fired.append("cat-loop"))

    assert timers.cancel_all("ann") == 2
    assert timers.cancel_purpose(TimerPurpose.LOOP_RESET) == 2
    assert timers.armed() == []

    await asyncio.sleep(0.03)
    assert fired == []


@pytest.mark.asyncio
async def test_async_callback_runs_as_tracked_task() -> None:
    timers = TimerCoordinator()
    done = asyncio.Event()

    async def _callback() -> None:
        await asyncio.sleep(0.01)
        done.set()

    timers.arm("ann", "finalize", 0.0, _callback)
    await asyncio.sleep(0.005)
    assert timers.busy
    await timers.drain()
    assert done.is_set()
    assert not timers.busy


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_other_timers() -> None:
    timers = TimerCoordinator()
    fired: list[str] = []

    def _boom() -> None:
        raise RuntimeError("boom")

    timers.arm("ann", TimerPurpose.FINALIZE, 0.0, _boom)
    timers.arm("bob", TimerPurpose.FINALIZE, 0.0, lambda: fired.append("bob"))
    await asyncio.sleep(0.02)
    assert fired == ["bob"]


@pytest.mark.asyncio
async def test_aclose_cancels_pending_and_running_callbacks() -> None:
    timers = TimerCoordinator()
    cancelled = asyncio.Event()
    fired: list[str] = []

    async def _long() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    timers.arm("ann", TimerPurpose.FINALIZE, 0.0, _long)
    timers.arm("bob", TimerPurpose.FINALIZE, 0.05, lambda: fired.append("bob"))
    await asyncio.sleep(0.01)
    assert timers.busy

    await timers.aclose()
    assert cancelled.is_set()
    assert not timers.busy
    assert timers.armed() == []

    await asyncio.sleep(0.08)
    assert fired == []
