"""
Public API:
- Protocol: sender/receiver state machine (cycle frames forward, acknowledge ranges back)
- Qrtp: one-liner factory wiring a Protocol to a transport, scheduler and codec
- Template, Codecs: frame formats (header template DSL, JSON, MessagePack)
- RangeSet: sorted disjoint index ranges
- Message, segment: chunking of the payload text
- Scheduler, VirtualScheduler, AsyncioScheduler: timer services
- ForwardChannel, BackwardChannel, Link: abstract classes transports must implement
- LoopbackLink, Impairment: in-memory lossy transport
- EventKind and the event payload types
"""

# Core runtime
from .protocol import Protocol, Role, SenderState, ReceiverState
from .factory import Qrtp
from .options import ProtocolOptions
from .cycle import Phase

# Frames
from .template import Template, template
from .codecs import Codec, Codecs, JSONCodec, MsgPackCodec, TemplateCodec

# Building blocks
from .ranges import RangeSet
from .segmenter import Chunk, Message, segment
from .reassembler import checksum
from .scheduler import AsyncioScheduler, Handle, Scheduler, VirtualScheduler

# Events
from .events import (
    AckEvent,
    AllAcknowledgedEvent,
    ChunkEvent,
    CompleteEvent,
    EventKind,
    FrameEvent,
    InitEvent,
    TransmissionEvent,
)

# Transport contract
from .channel import BackwardChannel, ForwardChannel, Link
from .transports.loopback import Impairment, LoopbackLink

from .exceptions import (
    ChannelSendFailure,
    FrameEncodeError,
    MalformedFrame,
    QrtpError,
    TemplateError,
)

__all__ = [
    "Protocol",
    "Role",
    "SenderState",
    "ReceiverState",
    "Qrtp",
    "ProtocolOptions",
    "Phase",
    "Template",
    "template",
    "Codec",
    "Codecs",
    "JSONCodec",
    "MsgPackCodec",
    "TemplateCodec",
    "RangeSet",
    "Chunk",
    "Message",
    "segment",
    "checksum",
    "AsyncioScheduler",
    "Handle",
    "Scheduler",
    "VirtualScheduler",
    "AckEvent",
    "AllAcknowledgedEvent",
    "ChunkEvent",
    "CompleteEvent",
    "EventKind",
    "FrameEvent",
    "InitEvent",
    "TransmissionEvent",
    "BackwardChannel",
    "ForwardChannel",
    "Link",
    "Impairment",
    "LoopbackLink",
    "ChannelSendFailure",
    "FrameEncodeError",
    "MalformedFrame",
    "QrtpError",
    "TemplateError",
]

__version__ = "0.1.0"
