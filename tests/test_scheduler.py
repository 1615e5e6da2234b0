from __future__ import annotations

import asyncio

import pytest

from qrtp.scheduler import AsyncioScheduler, VirtualScheduler


def test_tasks_run_in_due_order():
    s = VirtualScheduler()
    seen = []
    s.schedule(30, lambda: seen.append("c"))
    s.schedule(10, lambda: seen.append("a"))
    s.schedule(10, lambda: seen.append("b"))   # same deadline: FIFO
    assert s.advance(20) == 2
    assert seen == ["a", "b"]
    assert s.now_ms() == 20
    s.advance(10)
    assert seen == ["a", "b", "c"]


def test_clock_is_task_time_inside_callbacks():
    s = VirtualScheduler(start_ms=100)
    stamps = []
    s.schedule(5, lambda: stamps.append(s.now_ms()))
    s.advance(50)
    assert stamps == [105]
    assert s.now_ms() == 150


def test_cancel():
    s = VirtualScheduler()
    seen = []
    h = s.schedule(10, lambda: seen.append(1))
    assert s.pending == 1
    s.cancel(h)
    s.cancel(None)
    assert h.cancelled
    assert s.pending == 0
    s.advance(20)
    assert seen == []


def test_tasks_scheduled_from_tasks():
    s = VirtualScheduler()
    seen = []

    def tick():
        seen.append(s.now_ms())
        if len(seen) < 3:
            s.schedule(10, tick)

    s.schedule(10, tick)
    s.advance(100)
    assert seen == [10, 20, 30]


def test_post_runs_on_next_advance():
    s = VirtualScheduler()
    seen = []
    s.post(lambda: seen.append(1))
    assert seen == []
    s.advance(0)
    assert seen == [1]


def test_run_until():
    s = VirtualScheduler()
    flag = []
    s.schedule(250, lambda: flag.append(True))
    assert s.run_until(lambda: bool(flag), limit_ms=1000)
    assert s.now_ms() == pytest.approx(250)
    assert not s.run_until(lambda: False, limit_ms=100)


def test_asyncio_scheduler():
    async def scenario():
        s = AsyncioScheduler()
        seen = []
        s.schedule(20, lambda: seen.append("late"))
        h = s.schedule(10, lambda: seen.append("cancelled"))
        s.post(lambda: seen.append("soon"))
        s.cancel(h)
        await asyncio.sleep(0.05)
        return seen

    assert asyncio.run(scenario()) == ["soon", "late"]


def test_asyncio_scheduler_needs_a_loop():
    with pytest.raises(RuntimeError):
        AsyncioScheduler()
