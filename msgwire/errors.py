"""Errors raised while encoding and decoding MessagePack."""

from __future__ import annotations

from typing import Any

from msgwire.wire import Type, get_type

_RESUMABLE_DEFAULT = False


def _add_ctx(ctx: str, add: str) -> str:
    return f"{add}/{ctx}" if ctx else add


class MsgpError(Exception):
    """Base class of every error raised by this package."""

    _contextual = True

    def __init__(self) -> None:
        super().__init__()
        self.ctx = ""

    def _describe(self) -> str:
        return "msgp: error"

    def __str__(self) -> str:
        text = self._describe()
        if self.ctx:
            text += " at " + self.ctx
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def resumable(self) -> bool:
        """Whether decoding may continue after this error."""
        return _RESUMABLE_DEFAULT

    def _clone(self) -> MsgpError:
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        return clone

    def with_context(self, ctx: str) -> MsgpError:
        """Return a copy of this error with `ctx` prepended to its context."""
        if not self._contextual:
            return WrappedError(self, ctx)
        clone = self._clone()
        clone.ctx = _add_ctx(self.ctx, ctx)
        return clone


class ShortBytesError(MsgpError):
    """The data ended before the object being decoded was complete."""

    def _describe(self) -> str:
        return "msgp: too few bytes left to read object"

    def with_context(self, ctx: str) -> MsgpError:
        return self


class FatalError(MsgpError):
    """Raised only when code that should be unreachable is reached."""

    def _describe(self) -> str:
        return "msgp: fatal decoding error (unreachable code)"


class WrappedError(MsgpError):
    """An arbitrary error with decoding context attached."""

    _contextual = False

    def __init__(self, cause: BaseException, ctx: str = "") -> None:
        super().__init__()
        self.cause = cause
        self.ctx = ctx
        self.__cause__ = cause

    def __str__(self) -> str:
        text = str(self.cause)
        if self.ctx:
            text += " at " + self.ctx
        return text

    def resumable(self) -> bool:
        return resumable(self.cause)


class ArrayError(MsgpError):
    """A fixed-size array was encoded with the wrong number of elements."""

    def __init__(self, wanted: int = 0, got: int = 0) -> None:
        super().__init__()
        self.wanted = wanted
        self.got = got

    def _describe(self) -> str:
        return f"msgp: wanted array of size {self.wanted}; got {self.got}"

    def resumable(self) -> bool:
        return True


class IntOverflow(MsgpError, OverflowError):
    """A signed integer does not fit in the requested bit size."""

    def __init__(self, value: int = 0, failed_bitsize: int = 0) -> None:
        super().__init__()
        self.value = value
        self.failed_bitsize = failed_bitsize

    def _describe(self) -> str:
        return f"msgp: {self.value} overflows int{self.failed_bitsize}"

    def resumable(self) -> bool:
        return True


class UintOverflow(MsgpError, OverflowError):
    """An unsigned integer does not fit in the requested bit size."""

    def __init__(self, value: int = 0, failed_bitsize: int = 0) -> None:
        super().__init__()
        self.value = value
        self.failed_bitsize = failed_bitsize

    def _describe(self) -> str:
        return f"msgp: {self.value} overflows uint{self.failed_bitsize}"

    def resumable(self) -> bool:
        return True


class UintBelowZero(MsgpError, ValueError):
    """A negative integer was read where an unsigned one was wanted."""

    def __init__(self, value: int = 0) -> None:
        super().__init__()
        self.value = value

    def _describe(self) -> str:
        return f"msgp: attempted to cast int {self.value} to unsigned"

    def resumable(self) -> bool:
        return True

    def with_context(self, ctx: str) -> MsgpError:
        clone = self._clone()
        clone.ctx = ctx
        return clone


class MsgpTypeError(MsgpError):
    """A decoding method was used on a value of another wire type."""

    def __init__(self, method: Type = Type.INVALID, encoded: Type = Type.INVALID) -> None:
        super().__init__()
        self.method = Type(method)
        self.encoded = Type(encoded)

    def _describe(self) -> str:
        return (
            f"msgp: attempted to decode type {quote_str(str(self.encoded))}"
            f" with method for {quote_str(str(self.method))}"
        )

    def resumable(self) -> bool:
        return True


class InvalidPrefixError(MsgpError):
    """A lead byte that the MessagePack format does not define."""

    _contextual = False

    def __init__(self, lead: int) -> None:
        super().__init__()
        self.lead = lead

    def _describe(self) -> str:
        return f"msgp: unrecognized type prefix 0x{self.lead:x}"


class UnsupportedTypeError(MsgpError):
    """A value of a type that cannot be encoded was supplied."""

    def __init__(self, t: Any = None) -> None:
        super().__init__()
        self.t = t

    def _describe(self) -> str:
        name = self.t.__qualname__ if isinstance(self.t, type) else str(self.t)
        return f"msgp: type {quote_str(name)} not supported"

    def resumable(self) -> bool:
        return True


def cause(e: BaseException) -> BaseException:
    """Return the error underneath a WrappedError, or `e` itself."""
    if isinstance(e, WrappedError) and e.cause is not None:
        return e.cause
    return e


def resumable(e: BaseException) -> bool:
    """Whether decoding may continue after `e`."""
    if isinstance(e, MsgpError):
        return e.resumable()
    return _RESUMABLE_DEFAULT


def wrap_error(err: BaseException, *args: Any) -> BaseException:
    """Attach context naming where in a value `err` occurred; `err` is left unchanged."""
    ctx = ctx_string(args)
    if isinstance(err, ShortBytesError):
        return err
    if isinstance(err, MsgpError):
        return err.with_context(ctx)
    return WrappedError(err, ctx)


def ctx_string(ctx: Any) -> str:
    """Join context parts with '/'."""
    return "/".join(str(part) for part in ctx)


_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def simple_quote_str(s: str | bytes) -> str:
    """Quote a string byte by byte, escaping everything but printable ASCII as \\x."""
    data = s.encode("utf-8", "surrogateescape") if isinstance(s, str) else bytes(s)
    out = ['"']
    for b in data:
        ch = chr(b)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif 0x20 <= b <= 0x7E:
            out.append(ch)
        else:
            out.append(f"\\x{b:02x}")
    out.append('"')
    return "".join(out)


def quote_str(s: str) -> str:
    """Quote a string, keeping printable characters and escaping the rest."""
    out = ['"']
    for ch in s:
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif code < 0x80:
            out.append(f"\\x{code:02x}")
        elif code < 0x10000:
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\U{code:08x}")
    out.append('"')
    return "".join(out)


def bad_prefix(want: Type, lead: int) -> MsgpError:
    """Return the error for finding `lead` where a value of type `want` was expected."""
    t = get_type(lead)
    if t == Type.INVALID:
        return InvalidPrefixError(lead)
    return MsgpTypeError(method=want, encoded=t)