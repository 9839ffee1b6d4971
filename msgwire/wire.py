"""MessagePack wire-format constants, type classification and fixed-width helpers."""

from __future__ import annotations

import enum
import struct


class Type(enum.IntEnum):
    """A MessagePack wire type, including the built-in extension pseudo-types."""

    INVALID = 0
    STR = 1
    BIN = 2
    MAP = 3
    ARRAY = 4
    FLOAT64 = 5
    FLOAT32 = 6
    BOOL = 7
    INT = 8
    UINT = 9
    NIL = 10
    DURATION = 11
    EXTENSION = 12
    COMPLEX64 = 13
    COMPLEX128 = 14
    TIME = 15

    def __str__(self) -> str:
        return _TYPE_NAMES.get(self, "<invalid>")


_TYPE_NAMES = {
    Type.STR: "str",
    Type.BIN: "bin",
    Type.MAP: "map",
    Type.ARRAY: "array",
    Type.FLOAT64: "float64",
    Type.FLOAT32: "float32",
    Type.BOOL: "bool",
    Type.UINT: "uint",
    Type.INT: "int",
    Type.EXTENSION: "ext",
    Type.NIL: "nil",
}

# Prefix bytes of the MessagePack format.
FIXINT_MAX = 0x7F
FIXMAP = 0x80
FIXARRAY = 0x90
FIXSTR = 0xA0
NFIXINT = 0xE0

MNIL = 0xC0
MFALSE = 0xC2
MTRUE = 0xC3
MBIN8 = 0xC4
MBIN16 = 0xC5
MBIN32 = 0xC6
MEXT8 = 0xC7
MEXT16 = 0xC8
MEXT32 = 0xC9
MFLOAT32 = 0xCA
MFLOAT64 = 0xCB
MUINT8 = 0xCC
MUINT16 = 0xCD
MUINT32 = 0xCE
MUINT64 = 0xCF
MINT8 = 0xD0
MINT16 = 0xD1
MINT32 = 0xD2
MINT64 = 0xD3
MFIXEXT1 = 0xD4
MFIXEXT2 = 0xD5
MFIXEXT4 = 0xD6
MFIXEXT8 = 0xD7
MFIXEXT16 = 0xD8
MSTR8 = 0xD9
MSTR16 = 0xDA
MSTR32 = 0xDB
MARRAY16 = 0xDC
MARRAY32 = 0xDD
MMAP16 = 0xDE
MMAP32 = 0xDF

# Size modes of a byte spec. A non-negative mode is the number of
# child objects that follow a fixed-size header (fixmap, fixarray).
CONST_SIZE = 0
EXTRA8 = -1
EXTRA16 = -2
EXTRA32 = -3
MAP16V = -4
MAP32V = -5
ARRAY16V = -6
ARRAY32V = -7


def _build_specs() -> tuple[tuple[int, int, Type], ...]:
    specs: list[tuple[int, int, Type]] = [(0, CONST_SIZE, Type.INVALID)] * 256
    for lead in range(0x00, FIXINT_MAX + 1):
        specs[lead] = (1, CONST_SIZE, Type.INT)
    for n in range(16):
        specs[FIXMAP | n] = (1, 2 * n, Type.MAP)
        specs[FIXARRAY | n] = (1, n, Type.ARRAY)
    for n in range(32):
        specs[FIXSTR | n] = (1 + n, CONST_SIZE, Type.STR)
    for lead in range(NFIXINT, 0x100):
        specs[lead] = (1, CONST_SIZE, Type.INT)
    fixed = {
        MNIL: (1, CONST_SIZE, Type.NIL),
        MFALSE: (1, CONST_SIZE, Type.BOOL),
        MTRUE: (1, CONST_SIZE, Type.BOOL),
        MBIN8: (2, EXTRA8, Type.BIN),
        MBIN16: (3, EXTRA16, Type.BIN),
        MBIN32: (5, EXTRA32, Type.BIN),
        MEXT8: (3, EXTRA8, Type.EXTENSION),
        MEXT16: (4, EXTRA16, Type.EXTENSION),
        MEXT32: (6, EXTRA32, Type.EXTENSION),
        MFLOAT32: (5, CONST_SIZE, Type.FLOAT32),
        MFLOAT64: (9, CONST_SIZE, Type.FLOAT64),
        MUINT8: (2, CONST_SIZE, Type.UINT),
        MUINT16: (3, CONST_SIZE, Type.UINT),
        MUINT32: (5, CONST_SIZE, Type.UINT),
        MUINT64: (9, CONST_SIZE, Type.UINT),
        MINT8: (2, CONST_SIZE, Type.INT),
        MINT16: (3, CONST_SIZE, Type.INT),
        MINT32: (5, CONST_SIZE, Type.INT),
        MINT64: (9, CONST_SIZE, Type.INT),
        MFIXEXT1: (3, CONST_SIZE, Type.EXTENSION),
        MFIXEXT2: (4, CONST_SIZE, Type.EXTENSION),
        MFIXEXT4: (6, CONST_SIZE, Type.EXTENSION),
        MFIXEXT8: (10, CONST_SIZE, Type.EXTENSION),
        MFIXEXT16: (18, CONST_SIZE, Type.EXTENSION),
        MSTR8: (2, EXTRA8, Type.STR),
        MSTR16: (3, EXTRA16, Type.STR),
        MSTR32: (5, EXTRA32, Type.STR),
        MARRAY16: (3, ARRAY16V, Type.ARRAY),
        MARRAY32: (5, ARRAY32V, Type.ARRAY),
        MMAP16: (3, MAP16V, Type.MAP),
        MMAP32: (5, MAP32V, Type.MAP),
    }
    for lead, spec in fixed.items():
        specs[lead] = spec
    return tuple(specs)


# (prefix size, size mode, type) for every possible lead byte.
BYTE_SPECS: tuple[tuple[int, int, Type], ...] = _build_specs()

_UNIX = struct.Struct(">qi")
_UNIX_OUT = struct.Struct(">QI")
_WIDTH_FORMATS = {1: ">BB", 2: ">BH", 4: ">BI", 8: ">BQ"}


def get_type(lead: int) -> Type:
    """Return the wire type announced by a lead byte."""
    return BYTE_SPECS[lead & 0xFF][2]


def get_unix(b: bytes) -> tuple[int, int]:
    """Decode a big-endian (seconds, nanoseconds) pair from 12 bytes."""
    if len(b) < _UNIX.size:
        raise ValueError(f"need {_UNIX.size} bytes, got {len(b)}")
    return _UNIX.unpack_from(b)


def put_unix(sec: int, nsec: int) -> bytes:
    """Encode seconds and nanoseconds as 12 big-endian bytes."""
    return _UNIX_OUT.pack(sec & 0xFFFFFFFFFFFFFFFF, nsec & 0xFFFFFFFF)


def prefix_uint(prefix: int, value: int, width: int) -> bytes:
    """Return a prefix byte followed by a big-endian unsigned integer of `width` bytes."""
    try:
        fmt = _WIDTH_FORMATS[width]
    except KeyError:
        raise ValueError(f"unsupported width {width}") from None
    try:
        return struct.pack(fmt, prefix, value)
    except struct.error as exc:
        raise OverflowError(str(exc)) from exc