from __future__ import annotations
import logging
import threading
from functools import partial
from typing import List, Optional

from ..channel import BackwardChannel, ForwardChannel, FrameCallback, Link, SendDone
from ..exceptions import ChannelSendFailure
from ..scheduler import Scheduler

try:
    from zyre import Zyre, ZyreEvent
except ImportError as e:
    raise RuntimeError("Zyre Python bindings are required for ZyreLink. Error: %r" % (e,))

log = logging.getLogger(__name__)


def _text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


class _Group:
    """One Zyre group used as a broadcast medium."""

    def __init__(self, link: "ZyreLink", name: str):
        self.link = link
        self.name = name
        self._subs: List[FrameCallback] = []

    def subscribe(self, cb: FrameCallback) -> None:
        if cb not in self._subs:
            self._subs.append(cb)

    def unsubscribe(self, cb: FrameCallback) -> None:
        if cb in self._subs:
            self._subs.remove(cb)

    def _deliver(self, frame: str) -> None:
        for cb in list(self._subs):
            cb(frame)


class ZyreForward(_Group, ForwardChannel):

    def show(self, frame: str) -> None:
        try:
            self.link._shout(self.name, frame)
        except ChannelSendFailure as e:
            # the next cycle tick shows a frame again
            log.warning("forward frame not shown: %s", e)


class ZyreBackward(_Group, BackwardChannel):

    def send(self, frame: str, volume: int, done: SendDone) -> None:
        # volume has no meaning on a network medium
        try:
            self.link._shout(self.name, frame)
        except ChannelSendFailure as e:
            self.link.scheduler.post(partial(done, e))
            return
        self.link.scheduler.post(partial(done, None))


class ZyreLink(Link):
    """Link over Zyre.

    Mapping:
    - forward channel -> SHOUT to group "<group>.fwd"
    - backward channel -> SHOUT to group "<group>.bwd"

    Each message is a single UTF-8 frame holding the encoded protocol frame.
    Received frames are handed to the protocol with scheduler.post, so all
    protocol state is touched on the scheduler's thread only.
    """

    def __init__(self, peer_id: Optional[str] = None, scheduler: Optional[Scheduler] = None,
                 group: str = "qrtp", **kwargs):
        if scheduler is None:
            raise ValueError("ZyreLink needs the protocol's scheduler")
        self.peer_id = peer_id or ""
        self.scheduler = scheduler
        self._forward = ZyreForward(self, f"{group}.fwd")
        self._backward = ZyreBackward(self, f"{group}.bwd")
        self._groups = {g.name: g for g in (self._forward, self._backward)}

        self.node = Zyre(self.peer_id or None)
        for name in self._groups:
            self.node.join(name)
        self.node.start()

        self._running = True
        self._rx_thread = threading.Thread(target=self._rx_loop, daemon=True)
        self._rx_thread.start()

    @property
    def forward(self) -> ZyreForward:
        return self._forward

    @property
    def backward(self) -> ZyreBackward:
        return self._backward

    def _shout(self, group: str, frame: str) -> None:
        if not self._running:
            raise ChannelSendFailure("link closed")
        try:
            self.node.shouts(group, "%s", frame)
        except Exception as e:
            raise ChannelSendFailure(f"shout to {group} failed: {e!r}") from e

    def _rx_loop(self):
        while self._running:
            event = ZyreEvent(self.node)
            if not event:
                continue
            if _text(event.type()) != "SHOUT":
                continue
            target = self._groups.get(_text(event.group()))
            if target is None:
                continue
            frame = self._first_frame(event.msg())
            if frame is None:
                log.debug("dropping undecodable message on %s", target.name)
                continue
            self.scheduler.post(partial(target._deliver, frame))

    def _first_frame(self, zmsg) -> Optional[str]:
        data = zmsg.popstr() if zmsg is not None else None
        if not data:
            return None
        try:
            return _text(data)
        except UnicodeDecodeError:
            return None

    def close(self):
        if not self._running:
            return
        self._running = False
        for name in self._groups:
            self.node.leave(name)
        self.node.stop()
