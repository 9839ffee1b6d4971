"""MessagePack extension values: the Extension interface, a raw form and byte-slice codecs."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Callable

from msgwire.errors import MsgpError, ShortBytesError, bad_prefix
from msgwire.wire import (
    BYTE_SPECS,
    CONST_SIZE,
    MEXT8,
    MEXT16,
    MEXT32,
    MFIXEXT1,
    MFIXEXT2,
    MFIXEXT4,
    MFIXEXT8,
    MFIXEXT16,
    Type,
    prefix_uint,
)

COMPLEX64_EXTENSION = 3
"""Extension number used for complex64 values."""

COMPLEX128_EXTENSION = 4
"""Extension number used for complex128 values."""

TIME_EXTENSION = 5
"""Extension number used for timestamps."""

_RESERVED = frozenset({COMPLEX64_EXTENSION, COMPLEX128_EXTENSION, TIME_EXTENSION})

# fixext prefix for each payload length that has one
_FIXED_PREFIX = {1: MFIXEXT1, 2: MFIXEXT2, 4: MFIXEXT4, 8: MFIXEXT8, 16: MFIXEXT16}
# payload length for each fixext prefix
_FIXED_LENGTH = {prefix: length for length, prefix in _FIXED_PREFIX.items()}


def _int8(value: int) -> int:
    """Interpret the low byte of `value` as a signed 8-bit integer."""
    value &= 0xFF
    return value - 0x100 if value >= 0x80 else value


class Extension(abc.ABC):
    """A value that defines its own binary encoding inside a MessagePack extension."""

    @abc.abstractmethod
    def extension_type(self) -> int:
        """The signed 8-bit number identifying this extension type."""

    @abc.abstractmethod
    def __len__(self) -> int:
        """The length of the encoded payload."""

    @abc.abstractmethod
    def marshal_binary(self) -> bytes:
        """Return the payload; it must be exactly len(self) bytes long."""

    @abc.abstractmethod
    def unmarshal_binary(self, data: bytes) -> None:
        """Set the value from an encoded payload."""


@dataclass
class RawExtension(Extension):
    """An extension kept as its type number and undecoded payload."""

    data: bytes = b""
    type: int = 0

    def extension_type(self) -> int:
        return self.type

    def __len__(self) -> int:
        return len(self.data)

    def marshal_binary(self) -> bytes:
        return bytes(self.data)

    def unmarshal_binary(self, data: bytes) -> None:
        self.data = bytes(data)


class ExtensionTypeError(MsgpError):
    """The extension type on the wire differs from the one expected."""

    _contextual = False

    def __init__(self, got: int = 0, want: int = 0) -> None:
        super().__init__()
        self.got = got
        self.want = want

    def _describe(self) -> str:
        return f"msgp: error decoding extension: wanted type {self.want}; got type {self.got}"

    def resumable(self) -> bool:
        return True


_registry: dict[int, Callable[[], Extension]] = {}


def register_extension(typ: int, factory: Callable[[], Extension]) -> None:
    """Register a factory returning a fresh zero value of extension type `typ`.

    Types 3, 4 and 5 are reserved, and a type may be registered only once.
    """
    if typ in _RESERVED:
        raise ValueError(f"msgp: forbidden extension type: {typ}")
    if typ in _registry:
        raise ValueError(f"msgp: RegisterExtension() called with typ {typ} more than once")
    _registry[typ] = factory


def registered_extension(typ: int) -> Callable[[], Extension] | None:
    """Return the factory registered for `typ`, or None."""
    return _registry.get(typ)


def extension_header(length: int, ext_type: int) -> bytes:
    """Return the header that precedes an extension payload of `length` bytes."""
    if length < 0:
        raise ValueError(f"negative extension length {length}")
    type_byte = bytes([ext_type & 0xFF])
    if length == 0:
        return bytes([MEXT8, 0]) + type_byte
    if length in _FIXED_PREFIX:
        return bytes([_FIXED_PREFIX[length]]) + type_byte
    if length < 0xFF:
        return prefix_uint(MEXT8, length, 1) + type_byte
    if length < 0xFFFF:
        return prefix_uint(MEXT16, length, 2) + type_byte
    return prefix_uint(MEXT32, length, 4) + type_byte


def append_extension(b: bytes, e: Extension) -> bytes:
    """Return `b` followed by the MessagePack encoding of extension `e`."""
    length = len(e)
    payload = bytes(e.marshal_binary())
    if len(payload) != length:
        raise ValueError(f"extension payload is {len(payload)} bytes; expected {length}")
    return bytes(b) + extension_header(length, e.extension_type()) + payload


def peek_extension(b: bytes) -> int:
    """Return the extension type of the extension that starts `b`."""
    if not b:
        raise ShortBytesError()
    size, mode, typ = BYTE_SPECS[b[0]]
    if typ != Type.EXTENSION:
        raise bad_prefix(Type.EXTENSION, b[0])
    if len(b) < size:
        raise ShortBytesError()
    if mode == CONST_SIZE:
        return _int8(b[1])
    return _int8(b[size - 1])


def read_extension_bytes(b: bytes, e: Extension) -> bytes:
    """Decode the extension at the start of `b` into `e` and return the remaining bytes."""
    b = bytes(b)
    if len(b) < 3:
        raise ShortBytesError()
    lead = b[0]
    if lead in _FIXED_LENGTH:
        typ = _int8(b[1])
        size = _FIXED_LENGTH[lead]
        offset = 2
    elif lead == MEXT8:
        size = b[1]
        typ = _int8(b[2])
        offset = 3
        if size == 0:
            e.unmarshal_binary(b[3:3])
            return b[3:]
    elif lead == MEXT16:
        if len(b) < 4:
            raise ShortBytesError()
        size = int.from_bytes(b[1:3], "big")
        typ = _int8(b[3])
        offset = 4
    elif lead == MEXT32:
        if len(b) < 6:
            raise ShortBytesError()
        size = int.from_bytes(b[1:5], "big")
        typ = _int8(b[5])
        offset = 6
    else:
        raise bad_prefix(Type.EXTENSION, lead)

    want = _int8(e.extension_type())
    if typ != want:
        raise ExtensionTypeError(got=typ, want=want)
    if len(b) - offset < size:
        raise ShortBytesError()
    end = offset + size
    e.unmarshal_binary(b[offset:end])
    return b[end:]