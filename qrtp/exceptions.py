from __future__ import annotations


class QrtpError(Exception):
    """Base class for every error raised by this package."""


class TemplateError(QrtpError, ValueError):
    """Raised when a frame template cannot be compiled."""


class FrameEncodeError(QrtpError, ValueError):
    """Raised when fields cannot be encoded (missing field, value wider than its cell)."""


class MalformedFrame(QrtpError, ValueError):
    """Raised by decoders when a frame does not match its template."""

    def __init__(self, message: str, frame: str = ""):
        super().__init__(message)
        self.frame = frame


class ChannelSendFailure(QrtpError):
    """Reported by a backward channel when a transmission was rejected."""

    def __init__(self, message: str = "backward channel rejected the transmission"):
        super().__init__(message)
