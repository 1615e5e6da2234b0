from __future__ import annotations

from typing import Callable, List, Optional

import pytest

from qrtp.channel import BackwardChannel
from qrtp.exceptions import ChannelSendFailure
from qrtp.scheduler import VirtualScheduler
from qrtp.transports.loopback import LoopbackLink


class RecordingBackward(BackwardChannel):
    """Backward channel whose transmissions are completed by the test."""

    def __init__(self, raise_on_send: int = 0):
        self.sent: List[str] = []
        self.volumes: List[int] = []
        self._done: List[Callable[[Optional[BaseException]], None]] = []
        self._raise = raise_on_send

    def send(self, frame, volume, done):
        if self._raise:
            self._raise -= 1
            raise ChannelSendFailure("speaker unavailable")
        self.sent.append(frame)
        self.volumes.append(volume)
        self._done.append(done)

    def complete(self, error: Optional[BaseException] = None) -> None:
        self._done.pop(0)(error)

    def subscribe(self, cb):
        pass

    def unsubscribe(self, cb):
        pass


@pytest.fixture
def sched():
    return VirtualScheduler()


@pytest.fixture
def recorder():
    return RecordingBackward()


@pytest.fixture
def link(sched):
    return LoopbackLink(sched, airtime_ms=100)
