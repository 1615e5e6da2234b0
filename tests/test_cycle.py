from __future__ import annotations

import pytest

from qrtp.cycle import CycleScheduler, Phase


def make(sched, total, interval=400):
    shown, done, learned = [], [], []
    cycle = CycleScheduler(total, sched, interval,
                           on_advance=shown.append,
                           on_done=lambda: done.append(True),
                           on_learn=learned.append)
    return cycle, shown, done, learned


def test_round_robin(sched):
    cycle, shown, done, _ = make(sched, 3)
    assert cycle.phase is Phase.IDLE
    cycle.start()
    assert cycle.phase is Phase.CYCLING
    assert cycle.cursor == 0
    sched.advance(400 * 5)
    assert shown == [1, 2, 0, 1, 2]
    assert done == []


def test_skips_acknowledged(sched):
    cycle, shown, _, learned = make(sched, 5)
    cycle.start()
    assert cycle.learn([(1, 2)]) == 2
    assert learned == [2]
    sched.advance(400 * 4)
    assert shown == [3, 4, 0, 3]
    assert cycle.remaining == 3


def test_done_on_tick(sched):
    cycle, shown, done, _ = make(sched, 3)
    cycle.start()
    cycle.learned.update([0, 1, 2])   # acknowledged behind its back
    sched.advance(400)
    assert cycle.phase is Phase.DONE
    assert cycle.cursor == 3
    assert done == [True]
    assert shown == []
    assert sched.pending == 0


def test_done_on_learn_fires_once(sched):
    cycle, _, done, learned = make(sched, 4)
    cycle.start()
    cycle.learn([(0, 1)])
    cycle.learn([(2, 3)])
    assert cycle.phase is Phase.DONE
    assert cycle.cursor == 4
    assert cycle.learn([(0, 3)]) == 0
    sched.advance(2000)
    assert done == [True]
    assert learned == [2, 2]


def test_learn_clips_stale_ranges(sched):
    cycle, _, _, _ = make(sched, 3)
    assert cycle.learn([(2, 9)]) == 1
    assert cycle.learn([(7, 9)]) == 0
    assert cycle.learned.ranges() == ((2, 2),)


def test_stop(sched):
    cycle, shown, _, _ = make(sched, 3)
    cycle.start()
    cycle.stop()
    sched.advance(2000)
    assert shown == []


@pytest.mark.parametrize("total,interval", [(0, 400), (3, 0)])
def test_rejects_bad_arguments(sched, total, interval):
    with pytest.raises(ValueError):
        make(sched, total, interval)
