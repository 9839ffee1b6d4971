import base64
import io
import json
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from msgwire.errors import InvalidPrefixError, ShortBytesError
from msgwire.extension import Extension, RawExtension, append_extension, register_extension
from msgwire.jsonconv import copy_to_json, unmarshal_as_json, write_to_json
from msgwire.reader import Reader
from msgwire.wire import put_unix


def _str(s):
    data = s.encode("utf-8") if isinstance(s, str) else s
    n = len(data)
    if n < 32:
        return bytes([0xA0 | n]) + data
    if n < 256:
        return bytes([0xD9, n]) + data
    return b"\xda" + struct.pack(">H", n) + data


def _bin(data):
    return bytes([0xC4, len(data)]) + data


def _map(n):
    return bytes([0x80 | n]) if n < 16 else b"\xde" + struct.pack(">H", n)


def _array(n):
    return bytes([0x90 | n])


def _f32(f):
    return b"\xca" + struct.pack(">f", f)


def _f64(f):
    return b"\xcb" + struct.pack(">d", f)


def _i64(i):
    return b"\xd3" + struct.pack(">q", i)


def _u64(u):
    return b"\xcf" + struct.pack(">Q", u)


def _bool(b):
    return b"\xc3" if b else b"\xc2"


NIL = b"\xc0"


def _complex64(real, imag):
    return append_extension(b"", RawExtension(data=struct.pack(">ff", real, imag), type=3))


def _time(sec, nsec):
    return append_extension(b"", RawExtension(data=put_unix(sec, nsec), type=5))


@dataclass
class _Tagged(Extension):
    payload: bytes = b""

    def extension_type(self):
        return 77

    def __len__(self):
        return len(self.payload)

    def marshal_binary(self):
        return self.payload

    def unmarshal_binary(self, data):
        self.payload = bytes(data)

    def marshal_json(self):
        return b'{"tagged":"' + self.payload + b'"}'


register_extension(77, _Tagged)


def _to_json(msg):
    out = io.BytesIO()
    rest = unmarshal_as_json(out, msg)
    assert rest == b""
    return out.getvalue().decode("utf-8")


def test_copy_json():
    msg = (
        _map(6)
        + _str("thing_1") + _str("a string object")
        + _str("a_map") + _map(2)
        + _str("float_a") + _f32(1.0)
        + _str("int_b") + _i64(-100)
        + _str("some bytes") + _bin(b"here are some bytes")
        + _str("a bool") + _bool(True)
        + _str("a map") + _map(2)
        + _str("internal_one") + _str("blah")
        + _str("internal_two") + _str("blahhh...")
        + _str("float64") + _f64(1672209023)
    )
    out = io.BytesIO()
    n = copy_to_json(out, io.BytesIO(msg))
    assert n == len(out.getvalue())
    mp = json.loads(out.getvalue())
    assert len(mp) == 6
    assert mp["thing_1"] == "a string object"
    assert mp["a map"]["internal_one"] == "blah"
    assert mp["float64"] == 1672209023.0
    assert mp["a_map"] == {"float_a": 1, "int_b": -100}
    assert mp["some bytes"] == base64.b64encode(b"here are some bytes").decode()
    assert mp["a bool"] is True


def test_copy_json_negative_utf8():
    out = io.BytesIO()
    copy_to_json(out, io.BytesIO(bytes([0xA1, 0xE0])))
    assert out.getvalue() == b'"\\ufffd"'
    out.getvalue().decode("utf-8")


def test_unmarshal_json():
    msg = (
        _map(5)
        + _str("thing_1") + _str("a string object")
        + _str("a_map") + _map(2)
        + _str("cmplx") + _complex64(1.0, 1.0)
        + _str("int_b") + _i64(-100)
        + _str("an extension") + append_extension(b"", RawExtension(data=b"blaaahhh", type=1))
        + _str("some bytes") + _bin(b"here are some bytes")
        + _str("now") + _time(1609459200, 123456789)
    )
    mp = json.loads(_to_json(msg))
    assert len(mp) == 5
    assert mp["thing_1"] == "a string object"
    assert "now" in mp
    assert "cmplx" in mp["a_map"]
    assert mp["an extension"] == {"type": 1, "data": base64.b64encode(b"blaaahhh").decode()}


@pytest.mark.parametrize(
    "msg, expected",
    [
        (_bool(True), "true"),
        (_bool(False), "false"),
        (NIL, "null"),
        (_f32(1.0), "1"),
        (_f32(3.9081), "3.9081"),
        (_f64(0.5), "0.5"),
        (_f64(100.0), "100"),
        (_u64(2089), "2089"),
        (_i64(-100), "-100"),
        (_map(0), "{}"),
        (_array(0), "[]"),
        (_array(2) + _bool(True) + _u64(2089), "[true,2089]"),
        (_bool(True) + NIL, "truenull"),
    ],
)
def test_pinned_values(msg, expected):
    assert _to_json(msg) == expected


def test_string_escaping():
    msg = _str('<a&b>"\n\t\\\x01')
    assert _to_json(msg) == '"\\u003ca\\u0026b\\u003e\\"\\n\\t\\\\\\u0001"'


def test_line_separators_escaped_and_utf8_kept():
    msg = _str("é\u2028x\u2029")
    assert _to_json(msg) == '"é\\u2028x\\u2029"'


def test_time_value():
    text = json.loads(_to_json(_time(0, 500000000)))
    parsed = datetime.strptime(text, "%Y-%m-%dT%H:%M:%S.%f%z")
    assert parsed == datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=500)


def test_raw_complex_extension_in_stream():
    out = io.BytesIO()
    copy_to_json(out, _complex64(1.0, 2.0))
    expected = base64.b64encode(struct.pack(">ff", 1.0, 2.0)).decode()
    assert json.loads(out.getvalue()) == {"type": 3, "data": expected}


def test_bin_key_modes():
    msg = _map(1) + _bin(b"ab") + _u64(1)
    assert _to_json(msg) == '{"YWI=":1}'
    out = io.BytesIO()
    copy_to_json(out, msg)
    assert out.getvalue() == b'{"ab":1}'


def test_empty_key_modes():
    msg = _map(1) + _str("") + _u64(1)
    assert _to_json(msg) == '{"":1}'
    with pytest.raises(ShortBytesError):
        copy_to_json(io.BytesIO(), msg)


def test_invalid_prefix():
    with pytest.raises(InvalidPrefixError):
        unmarshal_as_json(io.BytesIO(), b"\xc1")


def test_truncated_input():
    with pytest.raises(ShortBytesError):
        unmarshal_as_json(io.BytesIO(), b"\xa5ab")
    with pytest.raises(ShortBytesError):
        copy_to_json(io.BytesIO(), b"\xa5ab")


def test_registered_extension():
    msg = append_extension(b"", _Tagged(b"hi"))
    assert _to_json(msg) == '{"tagged":"hi"}'
    out = io.BytesIO()
    copy_to_json(out, msg)
    assert out.getvalue() == b'{"tagged":"hi"}'


def test_text_stream_and_count():
    out = io.StringIO()
    n = write_to_json(Reader(_array(2) + _str("é") + NIL), out)
    assert out.getvalue() == '["é",null]'
    assert n == len('["é",null]'.encode("utf-8"))


def test_empty_input_writes_nothing():
    out = io.BytesIO()
    assert copy_to_json(out, b"") == 0
    assert out.getvalue() == b""