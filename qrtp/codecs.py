
from __future__ import annotations
from typing import Any, Dict, Mapping, Tuple, Protocol as TypingProtocol

import base64
import binascii
import json

import msgpack

from .constants import BACKWARD_TEMPLATE, FORWARD_TEMPLATE
from .exceptions import FrameEncodeError, MalformedFrame
from .template import Template

class Codec(TypingProtocol):
    name: str
    def encode(self, fields: Mapping[str, Any]) -> str: ...
    def decode(self, frame: str) -> Dict[str, Any]: ...

class TemplateCodec:
    name = "header"
    def __init__(self, spec: str):
        self.template = Template(spec)
    def encode(self, fields: Mapping[str, Any]) -> str:
        return self.template.encode(fields)
    def decode(self, frame: str) -> Dict[str, Any]:
        return self.template.decode(frame)

class JSONCodec:
    name = "json"
    def encode(self, fields: Mapping[str, Any]) -> str:
        try:
            return json.dumps(dict(fields), separators=(",", ":"))
        except (TypeError, ValueError, RecursionError) as e:
            raise FrameEncodeError(str(e)) from e
    def decode(self, frame: str) -> Dict[str, Any]:
        try:
            obj = json.loads(frame)
        except (TypeError, ValueError, RecursionError) as e:
            raise MalformedFrame(f"not a json frame: {e}", str(frame)) from None
        if not isinstance(obj, dict):
            raise MalformedFrame("json frame is not an object", frame)
        return obj

class MsgPackCodec:
    # msgpack body, base64 text so it fits a text-only medium
    name = "msgpack"
    def encode(self, fields: Mapping[str, Any]) -> str:
        try:
            packed = msgpack.packb(dict(fields), use_bin_type=True)
        except (TypeError, ValueError) as e:
            raise FrameEncodeError(str(e)) from e
        return base64.b64encode(packed).decode("ascii")
    def decode(self, frame: str) -> Dict[str, Any]:
        try:
            obj = msgpack.unpackb(base64.b64decode(frame, validate=True), raw=False)
        except (TypeError, ValueError, RecursionError, binascii.Error, msgpack.UnpackException) as e:
            raise MalformedFrame(f"not a msgpack frame: {e}", str(frame)) from None
        if not isinstance(obj, dict):
            raise MalformedFrame("msgpack frame is not a map", frame)
        return obj

class Codecs:
    _registry: Dict[str, Codec] = {"json": JSONCodec(), "msgpack": MsgPackCodec()}

    @classmethod
    def get(cls, name: str) -> 'Codec':
        if name not in cls._registry:
            raise ValueError(f"Unknown codec: {name}")
        return cls._registry[name]

    @classmethod
    def pair(cls, name: str) -> Tuple['Codec', 'Codec']:
        """(forward, backward) codecs for a wire format name."""
        if name == "header":
            return TemplateCodec(FORWARD_TEMPLATE), TemplateCodec(BACKWARD_TEMPLATE)
        codec = cls.get(name)
        return codec, codec
