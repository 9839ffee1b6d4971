"""A MessagePack number that keeps the wire type it was decoded from."""

from __future__ import annotations

import io
import math
import struct
from decimal import Decimal

from msgwire.errors import MsgpError, MsgpTypeError, ShortBytesError
from msgwire.extension import (
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    TIME_EXTENSION,
    peek_extension,
)
from msgwire.reader import Reader
from msgwire.wire import Type, get_type

_MASK64 = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_F32 = struct.Struct(">f")
_U32 = struct.Struct(">I")
_F64 = struct.Struct(">d")
_U64 = struct.Struct(">Q")

_SIZES = {Type.FLOAT32: 5, Type.FLOAT64: 9, Type.INT: 9, Type.UINT: 9}
_NUMERIC = frozenset({Type.FLOAT32, Type.FLOAT64, Type.INT, Type.UINT})
_EXTENSION_TYPES = {
    COMPLEX64_EXTENSION: Type.COMPLEX64,
    COMPLEX128_EXTENSION: Type.COMPLEX128,
    TIME_EXTENSION: Type.TIME,
}


def _format_float(f: float) -> str:
    """Shortest decimal form of `f`, never in exponent notation."""
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    return format(Decimal(repr(f)).normalize(), "f")


def _next_type(data: bytes) -> Type:
    if not data:
        return Type.INVALID
    t = get_type(data[0])
    if t == Type.EXTENSION:
        try:
            return _EXTENSION_TYPES.get(peek_extension(data), t)
        except MsgpError:
            return t
    return t


class Number:
    """An int64, uint64, float32 or float64, tagged with its type.

    The zero value is int 0. Equality compares both the type and the value.
    """

    __slots__ = ("_bits", "_typ")

    def __init__(self) -> None:
        self._bits = 0
        self._typ = Type.INVALID

    def as_int(self, i: int) -> None:
        """Set the number to a signed 64-bit integer."""
        if not _INT64_MIN <= i <= _INT64_MAX:
            raise OverflowError(f"{i} does not fit in int64")
        if i == 0:
            # int 0 always has the zero-value representation so that equality holds
            self._typ = Type.INVALID
            self._bits = 0
            return
        self._typ = Type.INT
        self._bits = i & _MASK64

    def as_uint(self, u: int) -> None:
        """Set the number to an unsigned 64-bit integer."""
        if not 0 <= u <= _MASK64:
            raise OverflowError(f"{u} does not fit in uint64")
        self._typ = Type.UINT
        self._bits = u

    def as_float32(self, f: float) -> None:
        """Set the number to a float32 (the value is rounded to single precision)."""
        self._typ = Type.FLOAT32
        self._bits = _U32.unpack(_F32.pack(f))[0]

    def as_float64(self, f: float) -> None:
        """Set the number to a float64."""
        self._typ = Type.FLOAT64
        self._bits = _U64.unpack(_F64.pack(f))[0]

    def int_value(self) -> tuple[int, bool]:
        """Return the value read as int64, and whether that is its type."""
        value = self._bits - (1 << 64) if self._bits > _INT64_MAX else self._bits
        return value, self._typ in (Type.INT, Type.INVALID)

    def uint_value(self) -> tuple[int, bool]:
        """Return the value read as uint64, and whether that is its type."""
        return self._bits, self._typ == Type.UINT

    def float_value(self) -> tuple[float, bool]:
        """Return the value as a float, and whether it is a float32 or float64."""
        if self._typ == Type.FLOAT32:
            return _F32.unpack(_U32.pack(self._bits & 0xFFFFFFFF))[0], True
        if self._typ == Type.FLOAT64:
            return _F64.unpack(_U64.pack(self._bits))[0], True
        return 0.0, False

    def type(self) -> Type:
        """One of Type.FLOAT64, Type.FLOAT32, Type.UINT or Type.INT."""
        return Type.INT if self._typ == Type.INVALID else self._typ

    def _decode_as(self, typ: Type, reader: Reader) -> None:
        if typ == Type.FLOAT32:
            self.as_float32(reader.read_float32())
        elif typ == Type.FLOAT64:
            self.as_float64(reader.read_float64())
        elif typ == Type.INT:
            self.as_int(reader.read_int64())
        else:
            self.as_uint(reader.read_uint64())

    def decode_msg(self, reader: Reader) -> None:
        """Read the number from a Reader."""
        typ = reader.next_type()
        if typ not in _NUMERIC:
            raise MsgpTypeError(method=Type.INT, encoded=typ)
        self._decode_as(typ, reader)

    def unmarshal_msg(self, b: bytes) -> bytes:
        """Decode the number at the start of `b` and return the remaining bytes."""
        data = bytes(b)
        typ = _next_type(data)
        if typ not in _NUMERIC:
            raise MsgpTypeError(method=Type.INT, encoded=typ)
        stream = io.BytesIO(data)
        reader = Reader(stream)
        try:
            self._decode_as(typ, reader)
        except EOFError:
            raise ShortBytesError() from None
        return data[stream.tell() - reader.buffered():]

    def msgsize(self) -> int:
        """An upper bound on the encoded size of the number."""
        return _SIZES.get(self._typ, 1)

    def marshal_json(self) -> bytes:
        """Return the number as JSON text."""
        return str(self).encode("ascii")

    def __str__(self) -> str:
        if self._typ in (Type.FLOAT32, Type.FLOAT64):
            return _format_float(self.float_value()[0])
        if self._typ == Type.UINT:
            return str(self._bits)
        return str(self.int_value()[0])

    def __repr__(self) -> str:
        return f"Number({self.type().name}, {self})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Number):
            return NotImplemented
        return (self._typ, self._bits) == (other._typ, other._bits)

    def __hash__(self) -> int:
        return hash((self._typ, self._bits))