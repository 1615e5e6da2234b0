from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional

FrameCallback = Callable[[str], None]                       # observed frame text
SendDone    = Callable[[Optional[BaseException]], None]     # None on success

class ForwardChannel(ABC):
    """Sender -> receiver medium. One frame is "on display" at a time."""

    @abstractmethod
    def show(self, frame: str) -> None:
        """Replace the frame being displayed/broadcast."""
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, cb: FrameCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def unsubscribe(self, cb: FrameCallback) -> None:
        raise NotImplementedError

class BackwardChannel(ABC):
    """Receiver -> sender medium. Half-duplex, one transmission at a time."""

    @abstractmethod
    def send(self, frame: str, volume: int, done: SendDone) -> None:
        """
        Start a transmission and return immediately. `done` is called later,
        on the scheduler's thread, with None or a ChannelSendFailure.
        """
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, cb: FrameCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def unsubscribe(self, cb: FrameCallback) -> None:
        raise NotImplementedError

class Link(ABC):
    """A forward/backward channel pair shared by both peers."""

    @property
    @abstractmethod
    def forward(self) -> ForwardChannel:
        raise NotImplementedError

    @property
    @abstractmethod
    def backward(self) -> BackwardChannel:
        raise NotImplementedError

    def close(self) -> None:
        pass
