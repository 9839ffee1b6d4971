import pytest

from msgwire.errors import (
    ArrayError,
    FatalError,
    IntOverflow,
    InvalidPrefixError,
    MsgpError,
    MsgpTypeError,
    ShortBytesError,
    UintBelowZero,
    UintOverflow,
    UnsupportedTypeError,
    WrappedError,
    bad_prefix,
    cause,
    ctx_string,
    quote_str,
    resumable,
    simple_quote_str,
    wrap_error,
)
from msgwire.wire import Type


def test_wrap_vanilla_error_without_context():
    err = Exception("test")
    w = wrap_error(err)
    assert isinstance(w, WrappedError)
    assert str(w) == str(err)
    assert w.resumable() is False


def test_wrap_vanilla_error_with_context():
    err = Exception("test")
    w = wrap_error(err, "foo", "bar")
    assert str(w) != str(err)
    assert resumable(w) is False
    assert str(w).startswith(str(err))
    assert str(w)[len(str(err)):] == " at foo/bar"


def test_wrap_resumable_error():
    w = wrap_error(ArrayError())
    assert resumable(w) is True


def test_wrap_multiple():
    w = wrap_error(wrap_error(MsgpTypeError(), "b"), "a")
    expected = 'msgp: attempted to decode type "<invalid>" with method for "<invalid>" at a/b'
    assert str(w) == expected


@pytest.mark.parametrize(
    "err", [Exception("test"), ArrayError(), UnsupportedTypeError()]
)
def test_cause_of_unwrapped_is_itself(err):
    cerr = wrap_error(err, "test")
    assert cerr is not err and str(cerr).endswith(" at test")
    assert cause(err) is err


def test_cause_of_wrapped_plain_error():
    err = ValueError("test")
    assert cause(wrap_error(err, "test")) is err


def test_cause_short_bytes():
    err = ShortBytesError()
    cerr = wrap_error(err, "test")
    assert cerr is err
    assert cause(err) is err


@pytest.mark.parametrize("err", [Exception("test"), EOFError()])
def test_unwrap_wrapped(err):
    cerr = wrap_error(err, "test")
    assert isinstance(cerr, WrappedError)
    assert cerr.__cause__ is err
    assert cerr.cause is err


@pytest.mark.parametrize("err", [ArrayError(), UnsupportedTypeError()])
def test_context_only(err):
    cerr = wrap_error(err, "test")
    assert type(cerr) is type(err)
    assert cerr.__cause__ is None
    assert err.ctx == ""
    assert cerr.ctx == "test"


@pytest.mark.parametrize(
    "given, expected",
    [
        ("", '""'),
        ("abc", '"abc"'),
        ('"', r'"\""'),
        ("'", "\"'\""),
        ("on🔥!", r'"on\xf0\x9f\x94\xa5!"'),
        ("line\r\nbr", r'"line\r\nbr"'),
        ("\x00", r'"\x00"'),
        (b"not\x80valid", r'"not\x80valid"'),
    ],
)
def test_simple_quote_str(given, expected):
    assert simple_quote_str(given) == expected


def test_quote_str_keeps_printable_unicode():
    assert quote_str("abc") == '"abc"'
    assert quote_str("on🔥!") == '"on🔥!"'
    assert quote_str("line\r\n") == r'"line\r\n"'


def test_ctx_string():
    assert ctx_string(["foo", "bar"]) == "foo/bar"
    assert ctx_string([]) == ""


def test_array_error_message():
    assert str(ArrayError(wanted=3, got=2)) == "msgp: wanted array of size 3; got 2"


def test_int_overflow():
    err = IntOverflow(value=300, failed_bitsize=8)
    assert str(err) == "msgp: 300 overflows int8"
    assert err.resumable() is True
    assert isinstance(err, OverflowError)


def test_uint_overflow():
    err = UintOverflow(value=70000, failed_bitsize=16)
    assert str(err) == "msgp: 70000 overflows uint16"
    assert resumable(err) is True


def test_uint_below_zero_replaces_context():
    w = wrap_error(wrap_error(UintBelowZero(value=-1), "b"), "a")
    assert str(w) == "msgp: attempted to cast int -1 to unsigned at a"
    assert resumable(w) is True


def test_invalid_prefix():
    err = InvalidPrefixError(0xC1)
    assert str(err) == "msgp: unrecognized type prefix 0xc1"
    assert err.resumable() is False


def test_invalid_prefix_is_wrapped_not_contextualised():
    err = InvalidPrefixError(0xC1)
    w = wrap_error(err, "field")
    assert isinstance(w, WrappedError)
    assert cause(w) is err
    assert str(w) == "msgp: unrecognized type prefix 0xc1 at field"


def test_fatal_error_context():
    w = wrap_error(FatalError(), "x", 1)
    assert str(w) == "msgp: fatal decoding error (unreachable code) at x/1"
    assert w.resumable() is False


def test_short_bytes_message():
    err = ShortBytesError()
    assert str(err) == "msgp: too few bytes left to read object"
    assert resumable(err) is False


def test_unsupported_type():
    w = wrap_error(UnsupportedTypeError(int), "test")
    assert str(w) == 'msgp: type "int" not supported at test'
    assert resumable(w) is True


def test_bad_prefix_invalid_lead():
    err = bad_prefix(Type.STR, 0xC1)
    assert isinstance(err, InvalidPrefixError)
    assert err.lead == 0xC1


def test_bad_prefix_type_error():
    err = bad_prefix(Type.STR, 0xC0)
    assert isinstance(err, MsgpTypeError)
    assert err.encoded == Type.NIL
    assert err.method == Type.STR
    assert str(err) == 'msgp: attempted to decode type "nil" with method for "str"'


def test_errors_can_be_raised():
    err = wrap_error(ArrayError(wanted=1, got=0), "list")
    assert isinstance(err, MsgpError)
    assert err.ctx == "list"
    assert str(err) == "msgp: wanted array of size 1; got 0 at list"
    with pytest.raises(ArrayError) as info:
        raise err
    assert info.value is err


def test_resumable_of_plain_exception():
    assert resumable(RuntimeError("boom")) is False