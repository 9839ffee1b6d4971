"""Decoding of extension-backed, composite and dynamically typed values from a Reader."""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, TypeVar

from msgwire.errors import FatalError, bad_prefix
from msgwire.extension import (
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    TIME_EXTENSION,
    Extension,
    ExtensionTypeError,
    RawExtension,
    registered_extension,
)
from msgwire.reader import Reader
from msgwire.wire import MEXT8, MFIXEXT8, MFIXEXT16, Type, get_unix

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIME_PAYLOAD = 12
_COMPLEX64 = struct.Struct(">ff")
_COMPLEX128 = struct.Struct(">dd")


class _Decodable(Protocol):
    def decode_msg(self, reader: Reader) -> Any: ...


_D = TypeVar("_D", bound=_Decodable)


def _int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


def decode(stream: Any, d: _D) -> _D:
    """Decode `d` from a binary stream (or bytes) through a fresh Reader, and return it."""
    d.decode_msg(Reader(stream))
    return d


def read_complex64(reader: Reader) -> complex:
    """Read a complex64 value (fixext8 of extension type 3)."""
    p = reader.peek(10)
    if p[0] != MFIXEXT8:
        raise bad_prefix(Type.COMPLEX64, p[0])
    ext_type = _int8(p[1])
    if ext_type != COMPLEX64_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=COMPLEX64_EXTENSION)
    real, imag = _COMPLEX64.unpack_from(p, 2)
    reader.discard(10)
    return complex(real, imag)


def read_complex128(reader: Reader) -> complex:
    """Read a complex128 value (fixext16 of extension type 4)."""
    p = reader.peek(18)
    if p[0] != MFIXEXT16:
        raise bad_prefix(Type.COMPLEX128, p[0])
    ext_type = _int8(p[1])
    if ext_type != COMPLEX128_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=COMPLEX128_EXTENSION)
    real, imag = _COMPLEX128.unpack_from(p, 2)
    reader.discard(18)
    return complex(real, imag)


def read_time(reader: Reader) -> datetime:
    """Read a timestamp and return it as an aware datetime in local time.

    Precision below one microsecond is dropped.
    """
    p = reader.peek(15)
    if p[0] != MEXT8 or p[1] != _TIME_PAYLOAD:
        raise bad_prefix(Type.TIME, p[0])
    ext_type = _int8(p[2])
    if ext_type != TIME_EXTENSION:
        raise ExtensionTypeError(got=ext_type, want=TIME_EXTENSION)
    sec, nsec = get_unix(p[3:])
    moment = _EPOCH + timedelta(seconds=sec, microseconds=nsec // 1000)
    reader.discard(15)
    return moment.astimezone()


def read_extension(reader: Reader, e: Extension) -> None:
    """Read the next value as an extension into `e`; its type must match e.extension_type()."""
    offset, length, ext_type = reader.peek_extension_header()
    want = _int8(e.extension_type())
    if ext_type != want:
        raise ExtensionTypeError(got=ext_type, want=want)
    total = offset + length
    p = reader.peek(total)
    e.unmarshal_binary(p[offset:])
    reader.discard(total)


def read_extension_raw(reader: Reader) -> tuple[int, bytes]:
    """Read the next value as an extension and return (type, payload)."""
    offset, length, ext_type = reader.peek_extension_header()
    data = reader.take(offset + length)
    return ext_type, data[offset:]


def read_map_str_intf(reader: Reader) -> dict[str, Any]:
    """Read a map with string keys, decoding each value with read_intf."""
    size = reader.read_map_header()
    out: dict[str, Any] = {}
    for _ in range(size):
        key = reader.read_string()
        out[key] = read_intf(reader)
    return out


def _read_any_extension(reader: Reader) -> Extension:
    _, _, ext_type = reader.peek_extension_header()
    factory = registered_extension(ext_type)
    e: Extension = factory() if factory is not None else RawExtension(type=ext_type)
    read_extension(reader, e)
    return e


def _read_array(reader: Reader) -> list[Any]:
    return [read_intf(reader) for _ in range(reader.read_array_header())]


_READERS = {
    Type.BOOL: Reader.read_bool,
    Type.INT: Reader.read_int64,
    Type.UINT: Reader.read_uint64,
    Type.BIN: Reader.read_bytes,
    Type.STR: Reader.read_string,
    Type.COMPLEX64: read_complex64,
    Type.COMPLEX128: read_complex128,
    Type.TIME: read_time,
    Type.DURATION: Reader.read_duration,
    Type.EXTENSION: _read_any_extension,
    Type.MAP: read_map_str_intf,
    Type.NIL: Reader.read_nil,
    Type.FLOAT32: Reader.read_float32,
    Type.FLOAT64: Reader.read_float64,
    Type.ARRAY: _read_array,
}


def read_intf(reader: Reader) -> Any:
    """Read the next value as a plain Python object.

    Arrays become lists, maps become dicts keyed by str, integers become int,
    nil becomes None, and unregistered extensions become RawExtension.
    """
    t = reader.next_type()
    try:
        read = _READERS[t]
    except KeyError:
        raise FatalError() from None
    return read(reader)