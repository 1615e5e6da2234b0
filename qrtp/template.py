"""
Declarative text frames.

    t = Template("QRTPB<index:num>/<total:num>")
    t.encode({"index": 0, "total": 3, "payload": "Hello"})  # "QRTPB0/3$Hello"
    t.decode("QRTPB0/3$Hello")  # {"index": 0, "total": 3, "payload": "Hello"}

Placeholders are <name>, <name:kind> or <name:kind-width>.
Kinds: text (default), num, bool, list, nums, pairs, numPairs.

End markers:
- trailing "$": everything after the first "$" of a frame is payload
- trailing "!": fixed-size header, every field is a text, num or bool with a width; the payload
  follows the header directly
Without a marker a non-empty payload is appended after "$".
"""
from __future__ import annotations
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .exceptions import FrameEncodeError, MalformedFrame, TemplateError

PAYLOAD = "$"
FIXED_HEADER = "!"
LIST_SEP = ","
PAIRS_SEP = ";"

FIELD_KINDS = ("text", "num", "bool", "list", "nums", "pairs", "numPairs")
SCALAR_KINDS = ("text", "num", "bool")

_PLACEHOLDER = re.compile(r"<([^:<>]+)(?::([^<>\-]+)(?:-([0-9]+))?)?>")


@dataclass(frozen=True)
class Field:
    name: str
    kind: str = "text"
    width: Optional[int] = None


class Template:

    def __init__(self, spec: str):
        self.spec = spec
        statics: List[str] = []
        fields: List[Field] = []
        last = 0
        for m in _PLACEHOLDER.finditer(spec):
            statics.append(spec[last:m.start()])
            name, kind, width = m.group(1), m.group(2) or "text", m.group(3)
            if kind not in FIELD_KINDS:
                raise TemplateError(f'unknown field kind "{kind}" for "{name}"')
            if width is not None and int(width) <= 0:
                raise TemplateError(f'field "{name}" needs a positive width')
            fields.append(Field(name, kind, int(width) if width is not None else None))
            last = m.end()
        statics.append(spec[last:])

        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise TemplateError(f"duplicate field names in {spec!r}")
        if "payload" in names:
            raise TemplateError('"payload" is reserved for the trailing payload')

        self.fixed = statics[-1] == FIXED_HEADER
        self.dollar = not self.fixed and statics[-1].endswith(PAYLOAD)
        if self.fixed:
            statics[-1] = ""
            if any(f.width is None for f in fields):
                raise TemplateError("a fixed-size header needs a width on every field")
            if any(f.kind not in SCALAR_KINDS for f in fields):
                raise TemplateError("a fixed-size header holds text, num and bool fields only")
            if any(statics[1:]):
                raise TemplateError("a fixed-size header allows a literal prefix only")
        elif self.dollar:
            statics[-1] = statics[-1][:-1]
        if any(PAYLOAD in s for s in statics):
            raise TemplateError(f'"{PAYLOAD}" is only allowed as the trailing payload marker')

        self._statics = statics
        self.fields: Tuple[Field, ...] = tuple(fields)

    def __repr__(self) -> str:
        return f"Template({self.spec!r})"

    # ---- encode ----
    def encode(self, data: Mapping[str, Any]) -> str:
        out = [self._statics[0]]
        for i, f in enumerate(self.fields):
            if data.get(f.name) is None:
                raise FrameEncodeError(f'missing required field "{f.name}"')
            text = _FORMATTERS[f.kind](data[f.name], f)
            nxt = self._statics[i + 1]
            if not self.fixed:
                if PAYLOAD in text:
                    raise FrameEncodeError(f'field "{f.name}" may not contain "{PAYLOAD}"')
                if nxt and nxt in text:
                    raise FrameEncodeError(f'field "{f.name}" may not contain the delimiter "{nxt}"')
            out.append(text)
            out.append(nxt)

        payload = data.get("payload")
        if payload is not None and not isinstance(payload, str):
            raise FrameEncodeError("payload must be text")
        if self.fixed:
            return "".join(out) + (payload or "")
        if self.dollar or payload:
            out.append(PAYLOAD)
            out.append(payload or "")
        return "".join(out)

    # ---- decode ----
    def decode(self, frame: str) -> Dict[str, Any]:
        if not isinstance(frame, str):
            raise MalformedFrame(f"expected text, got {type(frame).__name__}")
        if self.fixed:
            result, payload = self._decode_fixed(frame)
        else:
            cut = frame.find(PAYLOAD)
            if cut >= 0:
                header, payload = frame[:cut], frame[cut + 1:]
            else:
                header, payload = frame, ""
            result = self._decode_delimited(header, frame)
        if payload:
            result["payload"] = payload
        return result

    def _decode_fixed(self, frame: str) -> Tuple[Dict[str, Any], str]:
        prefix = self._statics[0]
        if not frame.startswith(prefix):
            raise MalformedFrame(f'frame does not match template at "{prefix}"', frame)
        result: Dict[str, Any] = {}
        pos = len(prefix)
        for f in self.fields:
            cell = frame[pos:pos + f.width]
            if len(cell) < f.width:
                raise MalformedFrame(f'frame ends inside fixed-width field "{f.name}"', frame)
            result[f.name] = _PARSERS[f.kind](cell, f)
            pos += f.width
        return result, frame[pos:]

    def _decode_delimited(self, header: str, frame: str) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        rest = header
        for i, f in enumerate(self.fields):
            lit = self._statics[i]
            if not rest.startswith(lit):
                raise MalformedFrame(f'frame does not match template at "{lit}"', frame)
            rest = rest[len(lit):]
            nxt = self._statics[i + 1]
            if nxt:
                end = rest.find(nxt)
                if end < 0:
                    raise MalformedFrame(f'missing delimiter "{nxt}" after "{f.name}"', frame)
            elif f.width is not None and f.kind in ("text", "num") and i + 1 < len(self.fields):
                # adjacent fields: a fixed-width scalar takes exactly its width
                end = min(f.width, len(rest))
            else:
                end = len(rest)
            result[f.name] = _PARSERS[f.kind](rest[:end], f)
            rest = rest[end:]
        if rest != self._statics[-1]:
            raise MalformedFrame(f"unexpected trailing text {rest!r}", frame)
        return result


def template(spec: str) -> Template:
    return Template(spec)


# ---- formatters ----
def _fit(text: str, f: Field, pad: Callable[[str, int], str]) -> str:
    if f.width is None:
        return text
    if len(text) > f.width:
        raise FrameEncodeError(f'value "{text}" exceeds fixed width of {f.width} for field "{f.name}"')
    return pad(text, f.width)


def _num_text(value: Any, f: Field) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FrameEncodeError(f'field "{f.name}" expects a number, got {value!r}')
    if isinstance(value, float):
        if not math.isfinite(value):
            raise FrameEncodeError(f'field "{f.name}" expects a finite number')
        if value.is_integer():
            value = int(value)
    return str(value)


def _int_text(value: Any, f: Field) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FrameEncodeError(f'field "{f.name}" expects integers, got {value!r}')
    return str(value)


def _clean_item(value: Any, sep: str, f: Field) -> str:
    text = str(value)
    if sep in text:
        raise FrameEncodeError(f'items of "{f.name}" may not contain "{sep}"')
    return text


def _format_text(value: Any, f: Field) -> str:
    return _fit(str(value), f, str.ljust)


def _format_num(value: Any, f: Field) -> str:
    return _fit(_num_text(value, f), f, str.zfill)


def _format_bool(value: Any, f: Field) -> str:
    if not isinstance(value, bool):
        raise FrameEncodeError(f'field "{f.name}" expects a bool, got {value!r}')
    return _fit("true" if value else "false", f, str.ljust)


def _format_list(values: Any, f: Field) -> str:
    if f.width is None:
        return LIST_SEP.join(_clean_item(v, LIST_SEP, f) for v in values)
    return "".join(_fit(str(v), f, str.ljust) for v in values)


def _format_nums(values: Any, f: Field) -> str:
    if f.width is None:
        return LIST_SEP.join(_num_text(v, f) for v in values)
    return "".join(_fit(_int_text(v, f), f, str.zfill) for v in values)


def _format_pairs(pairs: Any, f: Field) -> str:
    items: List[str] = []
    for pair in pairs:
        k, v = pair
        items.append(_clean_item(k, PAIRS_SEP, f))
        items.append(_clean_item(v, PAIRS_SEP, f))
    return PAIRS_SEP.join(items)


def _format_num_pairs(pairs: Any, f: Field) -> str:
    items: List[str] = []
    for pair in pairs:
        a, b = pair
        items.append(_int_text(a, f))
        items.append(_int_text(b, f))
    return PAIRS_SEP.join(items)


# ---- parsers ----
def _check_width(text: str, f: Field) -> str:
    if f.width is not None and len(text) > f.width:
        raise MalformedFrame(f'value "{text}" exceeds fixed width of {f.width} for field "{f.name}"')
    return text


def _to_number(text: str, f: Field) -> Any:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        raise MalformedFrame(f'field "{f.name}" is not a number: {text!r}') from None
    if not math.isfinite(value):
        raise MalformedFrame(f'field "{f.name}" is not a finite number: {text!r}')
    return value


def _to_int(text: str, f: Field) -> int:
    try:
        return int(text)
    except ValueError:
        raise MalformedFrame(f'field "{f.name}" is not an integer: {text!r}') from None


def _cells(text: str, f: Field) -> List[str]:
    if len(text) % f.width:
        raise MalformedFrame(f'field "{f.name}" is not a whole number of {f.width}-wide cells')
    return [text[i:i + f.width] for i in range(0, len(text), f.width)]


def _split_pairs(text: str, f: Field) -> List[Tuple[str, str]]:
    if not text:
        return []
    items = text.split(PAIRS_SEP)
    if len(items) % 2:
        raise MalformedFrame(f'field "{f.name}" has an odd number of pair items')
    return list(zip(items[0::2], items[1::2]))


def _parse_text(text: str, f: Field) -> str:
    if f.width is None:
        return text
    return _check_width(text, f).rstrip(" ")


def _parse_num(text: str, f: Field) -> Any:
    return _to_number(_check_width(text, f), f)


def _parse_bool(text: str, f: Field) -> bool:
    word = _check_width(text, f).rstrip(" ").lower()
    if word not in ("true", "false"):
        raise MalformedFrame(f'field "{f.name}" is not a bool: {text!r}')
    return word == "true"


def _parse_list(text: str, f: Field) -> List[str]:
    if f.width is None:
        return text.split(LIST_SEP) if text else []
    return [c.rstrip(" ") for c in _cells(text, f)]


def _parse_nums(text: str, f: Field) -> List[Any]:
    if f.width is None:
        return [_to_number(t, f) for t in text.split(LIST_SEP)] if text else []
    return [_to_int(c, f) for c in _cells(text, f)]


def _parse_pairs(text: str, f: Field) -> List[Tuple[str, str]]:
    return _split_pairs(text, f)


def _parse_num_pairs(text: str, f: Field) -> List[Tuple[int, int]]:
    return [(_to_int(a, f), _to_int(b, f)) for a, b in _split_pairs(text, f)]


_FORMATTERS: Dict[str, Callable[[Any, Field], str]] = {
    "text": _format_text,
    "num": _format_num,
    "bool": _format_bool,
    "list": _format_list,
    "nums": _format_nums,
    "pairs": _format_pairs,
    "numPairs": _format_num_pairs,
}

_PARSERS: Dict[str, Callable[[str, Field], Any]] = {
    "text": _parse_text,
    "num": _parse_num,
    "bool": _parse_bool,
    "list": _parse_list,
    "nums": _parse_nums,
    "pairs": _parse_pairs,
    "numPairs": _parse_num_pairs,
}
