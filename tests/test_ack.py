from __future__ import annotations

from conftest import RecordingBackward

from qrtp.ack import AckScheduler
from qrtp.events import EventKind
from qrtp.exceptions import ChannelSendFailure
from qrtp.options import ProtocolOptions
from qrtp.ranges import RangeSet


def _encode(batch):
    return ",".join(f"{s}-{e}" for s, e in batch)


def make(channel, sched, events=None, **opts):
    emit = (lambda k, e: events.append((k, e))) if events is not None else (lambda k, e: None)
    return AckScheduler(channel, sched, _encode, ProtocolOptions(**opts), emit)


def test_debounce_coalesces_bursts(sched, recorder):
    ack = make(recorder, sched)
    ack.confirm(0)
    sched.advance(100)
    ack.confirm(1)
    sched.advance(100)
    ack.confirm(2)
    sched.advance(999)
    assert recorder.sent == []
    sched.advance(1)
    assert recorder.sent == ["0-2"]
    assert not ack.acknowledged          # on air, not yet through
    recorder.complete()
    assert ack.acknowledged.ranges() == ((0, 2),)
    assert not ack.pending


def test_repeated_index_does_not_rearm(sched, recorder):
    ack = make(recorder, sched)
    ack.confirm(4)
    sched.advance(600)
    ack.confirm(4)
    ack.reannounce(4)
    sched.advance(400)
    assert recorder.sent == ["4-4"]


def test_single_transmission_in_flight_with_gap(sched, recorder):
    events = []
    ack = make(recorder, sched, events)
    for i in range(0, 24, 2):
        ack.confirm(i)
    assert ack.flush() == 3
    assert recorder.sent == ["0-0,2-2,4-4,6-6,8-8"]
    assert ack.in_flight
    sched.advance(5000)
    assert len(recorder.sent) == 1

    recorder.complete()
    assert not ack.in_flight
    sched.advance(199)
    assert len(recorder.sent) == 1
    sched.advance(1)
    assert recorder.sent[-1] == "10-10,12-12,14-14,16-16,18-18"
    recorder.complete()
    sched.advance(200)
    assert recorder.sent[-1] == "20-20,22-22"
    recorder.complete()
    assert ack.sends == 3
    kinds = [k for k, _ in events]
    assert kinds == [EventKind.SENDING, EventKind.SENT] * 3
    assert events[-1][1].count == 2


def test_backlog_is_compacted(sched, recorder):
    ack = make(recorder, sched, max_ranges_per_batch=2, backlog_threshold=3)
    ack.confirm(0)
    ack.confirm(2)
    ack.flush()                          # on air
    for i in (4, 6, 5):
        ack.confirm(i)
        ack.flush()
    assert len(ack.queue) == 3
    ack.confirm(8)
    ack.flush()
    assert list(ack.queue) == [[(4, 6), (8, 8)]]


def test_failed_send_is_retried_first(sched, recorder):
    events = []
    ack = make(recorder, sched, events)
    ack.confirm(0)
    ack.flush()
    ack.confirm(1)
    ack.confirm(3)
    ack.flush()
    recorder.complete(ChannelSendFailure())
    assert ack.failures == 1
    assert ack.queue[0] == [(0, 0)]
    sched.advance(200)
    assert recorder.sent == ["0-0", "0-0"]
    assert EventKind.SENT not in [k for k, _ in events]
    assert not ack.acknowledged


def test_synchronous_send_failure(sched):
    channel = RecordingBackward(raise_on_send=1)
    ack = make(channel, sched)
    ack.confirm(7)
    ack.flush()
    assert channel.sent == []
    assert ack.failures == 1
    assert not ack.in_flight
    sched.advance(200)
    assert channel.sent == ["7-7"]


def test_stale_completion_is_ignored(sched, recorder):
    ack = make(recorder, sched)
    ack.confirm(0)
    ack.flush()
    done = recorder._done[0]
    recorder.complete()
    done(None)                           # second report for the same send
    assert ack.sends == 1


def test_finish_announces_twice(sched, recorder):
    ack = make(recorder, sched)
    received = RangeSet(range(10))
    ack.confirm(3)
    ack.finish(received)
    assert ack.finished
    assert recorder.sent == ["0-9"]
    assert ack.pending.count() == 0
    recorder.complete()
    sched.advance(999)
    assert recorder.sent == ["0-9"]
    sched.advance(1)
    assert recorder.sent == ["0-9", "0-9"]
    recorder.complete()
    ack.finish(received)
    sched.advance(5000)
    assert recorder.sent == ["0-9", "0-9"]


def test_finish_replaces_queued_batches(sched, recorder):
    ack = make(recorder, sched, max_ranges_per_batch=1)
    for i in (0, 2, 4):
        ack.confirm(i)
    ack.flush()
    assert len(ack.queue) == 2
    ack.finish(RangeSet(range(5)))
    assert list(ack.queue) == [[(0, 4)]]


def test_reannounce_after_acknowledgment(sched, recorder):
    ack = make(recorder, sched)
    ack.confirm(0)
    sched.advance(1000)
    recorder.complete()
    ack.reannounce(0)
    sched.advance(1000)
    assert recorder.sent == ["0-0", "0-0"]


def test_current_frame(sched, recorder):
    ack = make(recorder, sched, max_ranges_per_batch=1)
    assert ack.current_frame() is None
    ack.confirm(0)
    ack.confirm(5)
    ack.flush()
    assert ack.current_frame() == "0-0"
    recorder.complete()
    assert ack.current_frame() == "5-5"


def test_without_channel_queue_is_an_outbox(sched):
    ack = make(None, sched)
    ack.confirm(1)
    ack.confirm(2)
    sched.advance(1000)
    assert ack.current_frame() == "1-2"
    assert ack.sends == 0


def test_close_cancels_everything(sched, recorder):
    ack = make(recorder, sched)
    ack.confirm(0)
    ack.close()
    sched.advance(5000)
    assert recorder.sent == []
    ack.confirm(1)
    assert not ack.pending
    assert sched.pending == 0


def test_volume_is_passed_through(sched, recorder):
    ack = make(recorder, sched, volume=35)
    ack.confirm(0)
    ack.flush()
    assert recorder.volumes == [35]


def test_outbox_rotates_through_every_batch(sched):
    ack = make(None, sched)
    for i in range(0, 20, 2):
        ack.confirm(i)
    ack.flush()
    assert len(ack.queue) == 2
    assert not ack.acknowledged

    first = ack.current_frame()
    assert first == "0-0,2-2,4-4,6-6,8-8"
    assert ack.acknowledged.ranges() == ((0, 0), (2, 2), (4, 4), (6, 6), (8, 8))
    second = ack.current_frame()
    assert second == "10-10,12-12,14-14,16-16,18-18"
    assert ack.acknowledged.count() == 10
    assert ack.current_frame() == first


def test_finish_marks_on_transmission(sched, recorder):
    ack = make(recorder, sched)
    ack.finish(RangeSet(range(4)))
    assert not ack.acknowledged
    recorder.complete()
    assert ack.acknowledged.ranges() == ((0, 3),)
