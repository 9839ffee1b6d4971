"""Translation of MessagePack into JSON text."""

from __future__ import annotations

import base64
import dataclasses
import io
import json
import math
import struct
from datetime import datetime
from decimal import Decimal
from typing import Any

from msgwire.errors import FatalError, MsgpTypeError, ShortBytesError
from msgwire.extension import Extension, RawExtension, registered_extension
from msgwire.reader import Reader
from msgwire.values import read_extension, read_time
from msgwire.wire import Type

_F32 = struct.Struct(">f")
_ESCAPED_ASCII = frozenset(b'\\"<>&')
_SHORT_ESCAPES = {0x5C: "\\\\", 0x22: '\\"', 0x0A: "\\n", 0x0D: "\\r", 0x09: "\\t"}


def _utf8_width(lead: int) -> int:
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    return 0


def _quote(s: bytes) -> str:
    """Quote raw string bytes as a JSON string; invalid UTF-8 becomes \\ufffd."""
    out = ['"']
    i = 0
    n = len(s)
    while i < n:
        b = s[i]
        if b < 0x80:
            if b >= 0x20 and b not in _ESCAPED_ASCII:
                out.append(chr(b))
            elif b in _SHORT_ESCAPES:
                out.append(_SHORT_ESCAPES[b])
            else:
                out.append(f"\\u00{b:02x}")
            i += 1
            continue
        width = _utf8_width(b)
        ch = None
        if width:
            try:
                ch = s[i : i + width].decode("utf-8")
            except UnicodeDecodeError:
                ch = None
        if ch is None:
            out.append("\\ufffd")
            i += 1
            continue
        if ch in ("\u2028", "\u2029"):
            out.append(f"\\u202{ord(ch) & 0xF:x}")
        else:
            out.append(ch)
        i += width
    out.append('"')
    return "".join(out)


def _b64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def _shortest_float32(f: float) -> str:
    for precision in range(1, 10):
        text = f"{f:.{precision}g}"
        try:
            if _F32.unpack(_F32.pack(float(text)))[0] == f:
                return text
        except (struct.error, OverflowError):
            continue
    return repr(f)


def _format_float(f: float, bits: int) -> str:
    """Shortest decimal form for the given precision, never in exponent notation."""
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    text = _shortest_float32(f) if bits == 32 else repr(f)
    return format(Decimal(text).normalize(), "f")


def _time_json(t: datetime) -> str:
    text = (
        f"{t.year:04d}-{t.month:02d}-{t.day:02d}"
        f"T{t.hour:02d}:{t.minute:02d}:{t.second:02d}"
    )
    if t.microsecond:
        text += "." + f"{t.microsecond:06d}".rstrip("0")
    offset = t.utcoffset()
    if not offset:
        zone = "Z"
    else:
        minutes = int(offset.total_seconds()) // 60
        sign = "+" if minutes >= 0 else "-"
        minutes = abs(minutes)
        zone = f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"
    return f'"{text}{zone}"'


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _b64(bytes(value))
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


def _extension_json(e: Extension) -> str:
    marshal = getattr(e, "marshal_json", None)
    if callable(marshal):
        out = marshal()
        return out.decode("utf-8") if isinstance(out, (bytes, bytearray)) else str(out)
    if dataclasses.is_dataclass(e):
        fields = dataclasses.asdict(e)
    else:
        fields = vars(e)
    public = {k: v for k, v in fields.items() if not k.startswith("_")}
    return json.dumps(public, default=_json_default, separators=(",", ":"))


class _Translator:
    def __init__(self, reader: Reader, *, binary_keys: bool) -> None:
        self._reader = reader
        self._binary_keys = binary_keys

    def value(self) -> str:
        reader = self._reader
        t = reader.next_type()
        if t == Type.STR:
            return _quote(reader.read_string_as_bytes())
        if t == Type.BIN:
            return f'"{_b64(reader.read_bytes())}"'
        if t == Type.MAP:
            return self._map()
        if t == Type.ARRAY:
            return "[" + ",".join(self.value() for _ in range(reader.read_array_header())) + "]"
        if t == Type.FLOAT64:
            return _format_float(reader.read_float64(), 64)
        if t == Type.FLOAT32:
            return _format_float(reader.read_float32(), 32)
        if t == Type.BOOL:
            return "true" if reader.read_bool() else "false"
        if t == Type.INT:
            return str(reader.read_int64())
        if t == Type.UINT:
            return str(reader.read_uint64())
        if t == Type.NIL:
            reader.read_nil()
            return "null"
        if t == Type.TIME:
            return _time_json(read_time(reader))
        if t in (Type.EXTENSION, Type.COMPLEX64, Type.COMPLEX128):
            return self._extension()
        raise FatalError()

    def _map(self) -> str:
        size = self._reader.read_map_header()
        entries = []
        for _ in range(size):
            key = self._key()
            entries.append(f"{key}:{self.value()}")
        return "{" + ",".join(entries) + "}"

    def _key(self) -> str:
        reader = self._reader
        if not self._binary_keys:
            return _quote(reader.read_map_key_ptr())
        try:
            return _quote(reader.read_string_as_bytes())
        except MsgpTypeError as exc:
            if exc.encoded == Type.BIN:
                return f'"{_b64(reader.read_bytes())}"'
            raise

    def _extension(self) -> str:
        reader = self._reader
        _, _, ext_type = reader.peek_extension_header()
        factory = registered_extension(ext_type)
        if factory is not None:
            e = factory()
            read_extension(reader, e)
            return _extension_json(e)
        raw = RawExtension(type=ext_type)
        read_extension(reader, raw)
        return f'{{"type":{raw.type},"data":"{_b64(raw.data)}"}}'


def _emit(w: Any, text: str) -> int:
    data = text.encode("utf-8")
    if isinstance(w, io.TextIOBase):
        w.write(text)
    else:
        w.write(data)
    return len(data)


def _translate(reader: Reader, w: Any, *, binary_keys: bool) -> int:
    translator = _Translator(reader, binary_keys=binary_keys)
    total = 0
    while True:
        try:
            reader.peek(1)
        except EOFError:
            break
        try:
            text = translator.value()
        except EOFError:
            raise ShortBytesError() from None
        total += _emit(w, text)
    return total


def write_to_json(reader: Reader, w: Any) -> int:
    """Translate every value from `reader` into JSON written to `w`, until end of input.

    Returns the number of bytes of JSON written.
    """
    return _translate(reader, w, binary_keys=False)


def copy_to_json(dst: Any, src: Any) -> int:
    """Read MessagePack from `src` (a binary stream or bytes) and write it as JSON to `dst`."""
    return write_to_json(Reader(src), dst)


def unmarshal_as_json(w: Any, msg: bytes) -> bytes:
    """Write the MessagePack values in `msg` to `w` as JSON.

    Keys encoded as 'bin' are written in base64. Returns the bytes left
    untranslated, which is empty once every value has been written.
    """
    data = bytes(msg)
    stream = io.BytesIO(data)
    reader = Reader(stream)
    _translate(reader, w, binary_keys=True)
    return data[stream.tell() - reader.buffered() :]