import os

import pytest

from msgwire.errors import MsgpTypeError
from msgwire.fileio import read_file, write_file
from msgwire.number import Number
from msgwire.reader import Reader
from msgwire.wire import MBIN32, Type, prefix_uint


class RawBytes:
    """Holds a byte string encoded as a MessagePack 'bin' value."""

    def __init__(self, data: bytes = b"") -> None:
        self.data = data

    def marshal_msg(self, b: bytes) -> bytes:
        return b + prefix_uint(MBIN32, len(self.data), 4) + self.data

    def msgsize(self) -> int:
        return 5 + len(self.data)

    def unmarshal_msg(self, b: bytes) -> bytes:
        reader = Reader(b)
        self.data = reader.read_bytes()
        return b""


class Undersized(RawBytes):
    def msgsize(self) -> int:
        return 1


class DecodeOnly:
    def __init__(self) -> None:
        self.value = None

    def decode_msg(self, reader: Reader) -> None:
        self.value = reader.read_string()


def test_read_write_file(tmp_path):
    data = os.urandom(1024 * 1024)
    path = tmp_path / "tmpfile"
    with open(path, "w+b") as f:
        written = write_file(RawBytes(data), f)
        assert written == 5 + len(data)
        out = RawBytes()
        f.seek(0, os.SEEK_END)
        result = read_file(out, f)
    assert result is out
    assert out.data == data


def test_write_file_truncates_previous_contents(tmp_path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"\x00" * 100)
    with open(path, "r+b") as f:
        write_file(RawBytes(b"abc"), f)
    assert path.read_bytes() == b"\xc6\x00\x00\x00\x03abc"


def test_write_file_rejects_undersized_msgsize(tmp_path):
    with open(tmp_path / "f.bin", "w+b") as f:
        with pytest.raises(ValueError):
            write_file(Undersized(b"hello"), f)


def test_read_file_into_number(tmp_path):
    path = tmp_path / "n.bin"
    path.write_bytes(b"\xd0\x80")
    with open(path, "rb") as f:
        n = read_file(Number(), f)
    assert n.int_value() == (-128, True)
    assert n.type() == Type.INT


def test_read_file_wrong_type_raises(tmp_path):
    path = tmp_path / "n.bin"
    path.write_bytes(b"\xc0")
    with open(path, "rb") as f:
        with pytest.raises(MsgpTypeError):
            read_file(Number(), f)


def test_read_file_with_decode_msg(tmp_path):
    path = tmp_path / "s.bin"
    path.write_bytes(b"\xa5hello")
    with open(path, "rb") as f:
        obj = read_file(DecodeOnly(), f)
    assert obj.value == "hello"


def test_read_file_unsupported_destination(tmp_path):
    path = tmp_path / "x.bin"
    path.write_bytes(b"\xc0")
    with open(path, "rb") as f:
        with pytest.raises(TypeError):
            read_file(object(), f)