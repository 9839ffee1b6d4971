"""Buffered, streaming MessagePack decoding."""

from __future__ import annotations

import io
import struct
from typing import Any

from msgwire.errors import (
    ArrayError,
    FatalError,
    IntOverflow,
    InvalidPrefixError,
    MsgpTypeError,
    ShortBytesError,
    UintBelowZero,
    UintOverflow,
    bad_prefix,
)
from msgwire.extension import (
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    TIME_EXTENSION,
)
from msgwire.wire import (
    ARRAY16V,
    ARRAY32V,
    BYTE_SPECS,
    EXTRA8,
    EXTRA16,
    EXTRA32,
    MAP16V,
    MAP32V,
    MARRAY16,
    MARRAY32,
    MBIN8,
    MBIN16,
    MBIN32,
    MEXT8,
    MEXT16,
    MEXT32,
    MFALSE,
    MFIXEXT1,
    MFIXEXT2,
    MFIXEXT4,
    MFIXEXT8,
    MFIXEXT16,
    MFLOAT32,
    MFLOAT64,
    MINT8,
    MINT16,
    MINT32,
    MINT64,
    MMAP16,
    MMAP32,
    MNIL,
    MSTR8,
    MSTR16,
    MSTR32,
    MTRUE,
    MUINT8,
    MUINT16,
    MUINT32,
    MUINT64,
    Type,
)

DEFAULT_BUFFER_SIZE = 4096
MIN_BUFFER_SIZE = 16
_COPY_CHUNK = 64 * 1024

_INT64_MAX = (1 << 63) - 1

_INTEGERS = {
    MINT8: (2, struct.Struct(">b")),
    MUINT8: (2, struct.Struct(">B")),
    MINT16: (3, struct.Struct(">h")),
    MUINT16: (3, struct.Struct(">H")),
    MINT32: (5, struct.Struct(">i")),
    MUINT32: (5, struct.Struct(">I")),
    MINT64: (9, struct.Struct(">q")),
    MUINT64: (9, struct.Struct(">Q")),
}

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")

_STR_HEADERS = {MSTR8: (2, _U8), MSTR16: (3, _U16), MSTR32: (5, _U32)}
_BIN_HEADERS = {MBIN8: (2, _U8), MBIN16: (3, _U16), MBIN32: (5, _U32)}
_KEY_HEADERS = {**_STR_HEADERS, **_BIN_HEADERS}
_MAP_HEADERS = {MMAP16: (3, _U16), MMAP32: (5, _U32)}
_ARRAY_HEADERS = {MARRAY16: (3, _U16), MARRAY32: (5, _U32)}

_FIXEXT_LENGTHS = {MFIXEXT1: 1, MFIXEXT2: 2, MFIXEXT4: 4, MFIXEXT8: 8, MFIXEXT16: 16}
_EXT_HEADERS = {MEXT8: (3, _U8), MEXT16: (4, _U16), MEXT32: (6, _U32)}

_EXTENSION_TYPES = {
    COMPLEX64_EXTENSION: Type.COMPLEX64,
    COMPLEX128_EXTENSION: Type.COMPLEX128,
    TIME_EXTENSION: Type.TIME,
}


def _int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


def _is_fixint(lead: int) -> bool:
    return lead <= 0x7F


def _is_nfixint(lead: int) -> bool:
    return lead >= 0xE0


def _is_fixmap(lead: int) -> bool:
    return lead & 0xF0 == 0x80


def _is_fixarray(lead: int) -> bool:
    return lead & 0xF0 == 0x90


def _is_fixstr(lead: int) -> bool:
    return lead & 0xE0 == 0xA0


def _as_stream(stream: Any) -> Any:
    if isinstance(stream, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(stream))
    return stream


class Reader:
    """Reads MessagePack values from a binary stream through an internal buffer.

    End of input is reported as EOFError.
    """

    def __init__(self, stream: Any, size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._stream = _as_stream(stream)
        self._size = max(size, MIN_BUFFER_SIZE)
        self._buf = bytearray()
        self._pos = 0

    # -- buffering ---------------------------------------------------------

    def _fill(self, n: int) -> bool:
        """Make at least `n` bytes available; return False if the stream ends first."""
        while len(self._buf) - self._pos < n:
            if self._pos:
                del self._buf[: self._pos]
                self._pos = 0
            want = max(self._size, n) - len(self._buf)
            chunk = self._stream.read(max(want, 1))
            if not chunk:
                return False
            self._buf += chunk
        return True

    def peek(self, n: int) -> bytes:
        """Return the next `n` bytes without consuming them."""
        if not self._fill(n):
            raise EOFError("unexpected end of input")
        return bytes(self._buf[self._pos : self._pos + n])

    def take(self, n: int) -> bytes:
        """Consume and return the next `n` bytes."""
        p = self.peek(n)
        self._pos += n
        return p

    def discard(self, n: int) -> int:
        """Consume `n` bytes without returning them."""
        avail = self.buffered()
        if n <= avail:
            self._pos += n
            return n
        self._buf.clear()
        self._pos = 0
        remaining = n - avail
        while remaining:
            chunk = self._stream.read(min(remaining, _COPY_CHUNK))
            if not chunk:
                raise EOFError("unexpected end of input")
            remaining -= len(chunk)
        return n

    def read(self, n: int) -> bytes:
        """Return up to `n` raw bytes; an empty result means end of input."""
        if n <= 0:
            return b""
        if not self.buffered():
            self._fill(1)
        return self.take(min(n, self.buffered()))

    def read_full(self, n: int) -> bytes:
        """Return exactly `n` raw bytes."""
        avail = min(n, self.buffered())
        out = bytearray(self._buf[self._pos : self._pos + avail])
        self._pos += avail
        while len(out) < n:
            chunk = self._stream.read(n - len(out))
            if not chunk:
                raise EOFError("unexpected end of input")
            out += chunk
        return bytes(out)

    def reset(self, stream: Any) -> None:
        """Drop buffered data and read from `stream` from now on."""
        self._stream = _as_stream(stream)
        self._buf.clear()
        self._pos = 0

    def buffered(self) -> int:
        """Number of bytes currently held in the buffer."""
        return len(self._buf) - self._pos

    def buffer_size(self) -> int:
        """The nominal capacity of the buffer."""
        return self._size

    # -- structure ---------------------------------------------------------

    def peek_extension_header(self) -> tuple[int, int, int]:
        """Return (header length, payload length, extension type) of the next extension."""
        p = self.peek(2)
        lead = p[0]
        if lead in _FIXEXT_LENGTHS:
            return 2, _FIXEXT_LENGTHS[lead], _int8(p[1])
        if lead in _EXT_HEADERS:
            offset, fmt = _EXT_HEADERS[lead]
            p = self.peek(offset)
            return offset, fmt.unpack_from(p, 1)[0], _int8(p[offset - 1])
        raise bad_prefix(Type.EXTENSION, lead)

    def next_type(self) -> Type:
        """Return the type of the next value without consuming it."""
        lead = self.peek(1)[0]
        t = BYTE_SPECS[lead][2]
        if t == Type.INVALID:
            raise InvalidPrefixError(lead)
        if t == Type.EXTENSION:
            _, _, ext_type = self.peek_extension_header()
            return _EXTENSION_TYPES.get(ext_type, t)
        return t

    def is_nil(self) -> bool:
        """Whether the next byte is a MessagePack nil."""
        try:
            return self.peek(1)[0] == MNIL
        except EOFError:
            return False

    def _next_size(self) -> tuple[int, int]:
        """Return (bytes in the next object's own encoding, number of child objects)."""
        lead = self.peek(1)[0]
        size, mode, _ = BYTE_SPECS[lead]
        if size == 0:
            raise InvalidPrefixError(lead)
        if mode >= 0:
            return size, mode
        p = self.peek(size)
        if mode == EXTRA8:
            return size + p[1], 0
        if mode == EXTRA16:
            return size + _U16.unpack_from(p, 1)[0], 0
        if mode == EXTRA32:
            return size + _U32.unpack_from(p, 1)[0], 0
        if mode == MAP16V:
            return size, 2 * _U16.unpack_from(p, 1)[0]
        if mode == MAP32V:
            return size, 2 * _U32.unpack_from(p, 1)[0]
        if mode == ARRAY16V:
            return size, _U16.unpack_from(p, 1)[0]
        if mode == ARRAY32V:
            return size, _U32.unpack_from(p, 1)[0]
        raise FatalError()

    def skip(self) -> None:
        """Skip the next value, including every element of a map or array."""
        remaining = 1
        while remaining:
            size, children = self._next_size()
            self.discard(size)
            remaining += children - 1

    def copy_next(self, w: Any) -> int:
        """Copy the next value, undecoded, to `w`; return the number of bytes written."""
        total = 0
        remaining = 1
        while remaining:
            size, children = self._next_size()
            left = size
            while left:
                n = min(left, _COPY_CHUNK)
                try:
                    chunk = self.take(n) if n <= self.buffer_size() else self.read_full(n)
                except EOFError:
                    raise ShortBytesError() from None
                written = w.write(chunk)
                if written is not None and written < len(chunk):
                    raise OSError("short write")
                total += len(chunk)
                left -= n
            remaining += children - 1
        return total

    # -- headers -----------------------------------------------------------

    def _take_length(self, lead: int, table: dict[int, tuple[int, struct.Struct]]) -> int:
        size, fmt = table[lead]
        return fmt.unpack_from(self.take(size), 1)[0]

    def read_map_header(self) -> int:
        """Read a map header and return the number of key/value pairs."""
        lead = self.peek(1)[0]
        if _is_fixmap(lead):
            self.discard(1)
            return lead & 0x0F
        if lead in _MAP_HEADERS:
            return self._take_length(lead, _MAP_HEADERS)
        raise bad_prefix(Type.MAP, lead)

    def read_array_header(self) -> int:
        """Read an array header and return the number of elements."""
        lead = self.peek(1)[0]
        if _is_fixarray(lead):
            self.discard(1)
            return lead & 0x0F
        if lead in _ARRAY_HEADERS:
            return self._take_length(lead, _ARRAY_HEADERS)
        raise bad_prefix(Type.ARRAY, lead)

    def read_map_key(self) -> bytes:
        """Read a map key encoded either as 'str' or as 'bin'."""
        try:
            return self.read_string_as_bytes()
        except MsgpTypeError as exc:
            if exc.encoded == Type.BIN:
                return self.read_bytes()
            raise

    def read_map_key_ptr(self) -> bytes:
        """Read a non-empty 'str' or 'bin' map key."""
        lead = self.peek(1)[0]
        if _is_fixstr(lead):
            self.discard(1)
            n = lead & 0x1F
        elif lead in _KEY_HEADERS:
            n = self._take_length(lead, _KEY_HEADERS)
        else:
            raise bad_prefix(Type.STR, lead)
        if n == 0:
            raise ShortBytesError()
        return self.take(n)

    # -- scalars -----------------------------------------------------------

    def read_nil(self) -> None:
        """Read a nil."""
        lead = self.peek(1)[0]
        if lead != MNIL:
            raise bad_prefix(Type.NIL, lead)
        self.discard(1)

    def read_float64(self) -> float:
        """Read a float64; a float32 on the wire is widened."""
        lead = self.peek(1)[0]
        if lead == MFLOAT32:
            return self.read_float32()
        if lead != MFLOAT64:
            raise bad_prefix(Type.FLOAT64, lead)
        return _F64.unpack_from(self.take(9), 1)[0]

    def read_float32(self) -> float:
        """Read a float32."""
        p = self.peek(5)
        if p[0] != MFLOAT32:
            raise bad_prefix(Type.FLOAT32, p[0])
        self.discard(5)
        return _F32.unpack_from(p, 1)[0]

    def read_bool(self) -> bool:
        """Read a bool."""
        lead = self.peek(1)[0]
        if lead not in (MTRUE, MFALSE):
            raise bad_prefix(Type.BOOL, lead)
        self.discard(1)
        return lead == MTRUE

    def read_duration(self) -> int:
        """Read a duration, returned as an integer number of nanoseconds."""
        return self.read_int64()

    def read_int64(self) -> int:
        """Read a signed 64-bit integer from any integer encoding."""
        lead = self.peek(1)[0]
        if _is_fixint(lead):
            self.discard(1)
            return lead
        if _is_nfixint(lead):
            self.discard(1)
            return lead - 0x100
        if lead not in _INTEGERS:
            raise bad_prefix(Type.INT, lead)
        size, fmt = _INTEGERS[lead]
        value = fmt.unpack_from(self.take(size), 1)[0]
        if value > _INT64_MAX:
            raise UintOverflow(value, 64)
        return value

    def _read_signed(self, bits: int) -> int:
        value = self.read_int64()
        limit = 1 << (bits - 1)
        if not -limit <= value < limit:
            raise IntOverflow(value, bits)
        return value

    def read_int32(self) -> int:
        """Read an integer that must fit in 32 signed bits."""
        return self._read_signed(32)

    def read_int16(self) -> int:
        """Read an integer that must fit in 16 signed bits."""
        return self._read_signed(16)

    def read_int8(self) -> int:
        """Read an integer that must fit in 8 signed bits."""
        return self._read_signed(8)

    def read_int(self) -> int:
        """Read a platform int (64 bits)."""
        return self.read_int64()

    def read_uint64(self) -> int:
        """Read an unsigned 64-bit integer from any non-negative integer encoding."""
        lead = self.peek(1)[0]
        if _is_fixint(lead):
            self.discard(1)
            return lead
        if lead in _INTEGERS:
            size, fmt = _INTEGERS[lead]
            value = fmt.unpack_from(self.take(size), 1)[0]
            if value < 0:
                raise UintBelowZero(value)
            return value
        if _is_nfixint(lead):
            raise UintBelowZero(lead - 0x100)
        raise bad_prefix(Type.UINT, lead)

    def _read_unsigned(self, bits: int) -> int:
        value = self.read_uint64()
        if value >= 1 << bits:
            raise UintOverflow(value, bits)
        return value

    def read_uint32(self) -> int:
        """Read an unsigned integer that must fit in 32 bits."""
        return self._read_unsigned(32)

    def read_uint16(self) -> int:
        """Read an unsigned integer that must fit in 16 bits."""
        return self._read_unsigned(16)

    def read_uint8(self) -> int:
        """Read an unsigned integer that must fit in 8 bits."""
        return self._read_unsigned(8)

    def read_uint(self) -> int:
        """Read a platform unsigned int (64 bits)."""
        return self.read_uint64()

    def read_byte(self) -> int:
        """Read an unsigned integer that must fit in one byte."""
        return self._read_unsigned(8)

    # -- bin and str -------------------------------------------------------

    def read_bytes(self) -> bytes:
        """Read a 'bin' value."""
        lead = self.peek(2)[0]
        if lead not in _BIN_HEADERS:
            raise bad_prefix(Type.BIN, lead)
        return self.read_full(self._take_length(lead, _BIN_HEADERS))

    def read_bytes_header(self) -> int:
        """Read the header of a 'bin' value and return its length."""
        lead = self.peek(1)[0]
        if lead not in _BIN_HEADERS:
            raise bad_prefix(Type.BIN, lead)
        return self._take_length(lead, _BIN_HEADERS)

    def read_exact_bytes(self, size: int) -> bytes:
        """Read a 'bin' value that must be exactly `size` bytes long."""
        lead = self.peek(2)[0]
        if lead not in _BIN_HEADERS:
            raise bad_prefix(Type.BIN, lead)
        header, fmt = _BIN_HEADERS[lead]
        length = fmt.unpack_from(self.peek(header), 1)[0]
        if length != size:
            raise ArrayError(wanted=size, got=length)
        self.discard(header)
        return self.read_full(length)

    def read_string_header(self) -> int:
        """Read the header of a 'str' value and return its length in bytes."""
        lead = self.peek(1)[0]
        if _is_fixstr(lead):
            self.discard(1)
            return lead & 0x1F
        if lead in _STR_HEADERS:
            return self._take_length(lead, _STR_HEADERS)
        raise bad_prefix(Type.STR, lead)

    def read_string_as_bytes(self) -> bytes:
        """Read a 'str' value and return its raw bytes."""
        return self.read_full(self.read_string_header())

    def read_string(self) -> str:
        """Read a 'str' value; bytes that are not UTF-8 survive as surrogate escapes."""
        return self.read_string_as_bytes().decode("utf-8", "surrogateescape")