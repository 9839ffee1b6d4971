"""Reading and writing whole files that hold one MessagePack-encoded object."""

from __future__ import annotations

from typing import Any, BinaryIO, Protocol, TypeVar, runtime_checkable

from msgwire.reader import Reader


@runtime_checkable
class Unmarshaler(Protocol):
    """An object that decodes itself from bytes and returns what is left over."""

    def unmarshal_msg(self, b: bytes) -> bytes: ...


@runtime_checkable
class MarshalSizer(Protocol):
    """An object that encodes itself and can bound the size of its encoding."""

    def marshal_msg(self, b: bytes) -> bytes: ...

    def msgsize(self) -> int: ...


_T = TypeVar("_T")


def read_file(dst: _T, file: BinaryIO) -> _T:
    """Decode the whole contents of `file`, from its start, into `dst` and return `dst`.

    `dst` must provide unmarshal_msg(bytes) or decode_msg(Reader).
    """
    file.seek(0)
    unmarshal = getattr(dst, "unmarshal_msg", None)
    if callable(unmarshal):
        unmarshal(file.read())
        return dst
    decode = getattr(dst, "decode_msg", None)
    if callable(decode):
        decode(Reader(file))
        return dst
    raise TypeError(f"{type(dst).__name__} has neither unmarshal_msg nor decode_msg")


def write_file(src: Any, file: BinaryIO) -> int:
    """Replace the whole contents of `file` with the encoding of `src`.

    The encoding must not be larger than src.msgsize(). Returns the number of
    bytes written.
    """
    limit = src.msgsize()
    data = bytes(src.marshal_msg(b""))
    if len(data) > limit:
        raise ValueError(f"encoded size {len(data)} exceeds msgsize() of {limit}")
    file.seek(0)
    file.write(data)
    file.truncate(len(data))
    file.flush()
    return len(data)