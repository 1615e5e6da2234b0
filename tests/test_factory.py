from __future__ import annotations

import asyncio

import pytest

from qrtp import Qrtp
from qrtp.codecs import JSONCodec
from qrtp.transports.loopback import LoopbackLink


def test_loopback_label(sched):
    p = Qrtp(transport="loopback", scheduler=sched, airtime_ms=50)
    assert isinstance(p.link, LoopbackLink)
    assert p.link.backward.airtime_ms == 50
    p.dispose()


def test_link_instance_is_not_owned(sched, link):
    seen = []
    link.forward.subscribe(seen.append)
    p = Qrtp(transport=link, scheduler=sched, codec="json")
    assert p.link is link
    assert isinstance(p._fwd, JSONCodec)
    p.dispose()
    link.forward.show("still open")
    sched.advance(0)
    assert seen == ["still open"]


def test_no_transport(sched):
    p = Qrtp(transport=None, scheduler=sched)
    p.configure_sender("abc", chunk_size=2)
    assert p.current_forward_frame() == "QRTPB0/2$ab"


def test_unknown_labels(sched):
    with pytest.raises(ValueError):
        Qrtp(transport="carrier-pigeon", scheduler=sched)
    with pytest.raises(ValueError):
        Qrtp(transport=None, scheduler=sched, codec="yaml")


def test_default_scheduler_in_a_running_loop():
    async def scenario():
        A = Qrtp("A", transport=None)
        B = Qrtp("B", transport=None)
        A.configure_sender("hi there", chunk_size=3, cycle_interval_ms=5)
        B.configure_receiver()
        while not B.is_complete:
            frame = A.current_forward_frame()
            if frame is not None:
                B.parse_forward_frame(frame)
            await asyncio.sleep(0.005)
        message = B.received_message()
        A.dispose()
        B.dispose()
        return message

    assert asyncio.run(scenario()) == "hi there"


def test_labelled_loopback_links_are_private(sched):
    A = Qrtp("A", transport="loopback", scheduler=sched)
    B = Qrtp("B", transport="loopback", scheduler=sched)
    assert A.link is not B.link


def test_peers_share_a_loopback_instance(sched, link):
    A = Qrtp("A", transport=link, scheduler=sched)
    B = Qrtp("B", transport=link, scheduler=sched)
    B.configure_receiver()
    A.configure_sender("shared medium", chunk_size=4)
    assert sched.run_until(lambda: A.is_complete, limit_ms=10000)
    assert B.received_message() == "shared medium"
