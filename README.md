# msgwire

A MessagePack toolkit for decoding data from streams and byte strings, with
support for extension types, a type-tagged `Number` value and translation of
MessagePack into JSON.

## Installation

```
pip install msgwire
```

## Reading from a stream

`msgwire.reader.Reader` wraps a binary stream (or a `bytes` object) in an
internal buffer and decodes values from it one at a time. Running out of input
raises `EOFError`.

```python
import io
from msgwire.reader import Reader

r = Reader(io.BytesIO(b"\x82\xa1a\x01\xa1b\xc3"), 4096)
r.read_map_header()   # 2
r.read_string()       # "a"
r.read_int64()        # 1
r.read_string()       # "b"
r.read_bool()         # True
```

Besides the scalar readers (`read_int8` ... `read_int64`, `read_uint8` ...
`read_uint64`, `read_float32`, `read_float64`, `read_bool`, `read_nil`,
`read_string`, `read_bytes` and the header readers), a `Reader` offers:

- `next_type()`: the `msgwire.wire.Type` of the next value, without consuming it;
- `skip()`: pass over the next value, maps and arrays included;
- `copy_next(w)`: write the next value's undecoded bytes to a writable stream
  and return how many were written.

Integer readers check ranges: a value that does not fit raises `IntOverflow`
or `UintOverflow`, and a negative value read as unsigned raises
`UintBelowZero`.

## Whole values

`msgwire.values` decodes composite and extension-backed values from a `Reader`:

- `read_intf(reader)` returns the next value as plain Python objects: `dict`
  (string keys), `list`, `int`, `float`, `bool`, `str`, `bytes`, `complex`,
  `datetime`, `None`, or an extension object;
- `read_map_str_intf`, `read_time`, `read_complex64`, `read_complex128`,
  `read_extension` and `read_extension_raw` decode specific kinds;
- `decode(stream, d)` calls `d.decode_msg(Reader(stream))` and returns `d`.

Timestamps come back as aware `datetime` objects in local time, with
microsecond precision.

## Errors

Every decoding problem raises a subclass of `msgwire.errors.MsgpError`:
`MsgpTypeError`, `InvalidPrefixError`, `IntOverflow`, `UintOverflow`,
`UintBelowZero`, `ArrayError`, `ShortBytesError`, `FatalError`, and
`msgwire.extension.ExtensionTypeError`. `resumable(err)` tells whether reading
can continue after the error. `wrap_error(err, "field", 3)` returns a copy that
names where the error happened (`... at field/3`), and `cause(err)` recovers an
error that was wrapped.

## Extensions

Subclass `msgwire.extension.Extension`, or use `RawExtension`, which keeps the
type number and payload as they are:

```python
from msgwire.extension import RawExtension, append_extension, read_extension_bytes

b = append_extension(b"", RawExtension(data=b"abc", type=10))
# b == b"\xc7\x03\x0aabc"
e = RawExtension(type=10)
rest = read_extension_bytes(b, e)   # rest == b"", e.data == b"abc"
```

`register_extension(typ, factory)` makes `read_intf` and the JSON translation
build your class for that type. Types 3, 4 and 5 are reserved for complex64,
complex128 and timestamps, and registering any type twice raises `ValueError`.

## Numbers

`msgwire.number.Number` holds an int, uint, float32 or float64 together with
its type, and decodes itself from any MessagePack number with
`decode_msg(reader)` or `unmarshal_msg(b)` (which returns the bytes left over).
Two numbers are equal only when both type and value match.

```python
from msgwire.number import Number

n = Number()
n.unmarshal_msg(b"\x05")   # b""
str(n)                     # "5"
```

## JSON

`msgwire.jsonconv.copy_to_json(dst, src)` reads MessagePack from a stream or
byte string and writes JSON to `dst` until the input ends, returning the
number of bytes written. `write_to_json(reader, w)` does the same from an
existing `Reader`. `unmarshal_as_json(w, msg)` translates a byte string, also
accepting map keys encoded as `bin` (written in base64), and returns the bytes
left untranslated.

```python
import io
from msgwire.jsonconv import unmarshal_as_json

out = io.BytesIO()
unmarshal_as_json(out, b"\x81\xa1a\x01")
out.getvalue()   # b'{"a":1}'
```

Binary values become base64 strings, timestamps become RFC 3339 strings, and
unregistered extensions become `{"type":<n>,"data":"<base64>"}`.

## Files

`msgwire.fileio.read_file(dst, file)` decodes the whole of an open binary file
into an object that has `unmarshal_msg` or `decode_msg`.
`write_file(src, file)` replaces the file's contents with `src.marshal_msg(b"")`,
refusing output larger than `src.msgsize()`.

## What this package does not do

It is a decoder. There is no general MessagePack encoder or stream writer:
the only encoding it provides is for extensions (`append_extension`,
`extension_header`) and the low-level helpers in `msgwire.wire`. `write_file`
works only with objects that encode themselves. There is no command-line tool.