"""MessagePack decoding from streams and bytes, extensions, tagged numbers and JSON translation."""

__version__ = "0.1.0"
__all__ = ["errors", "extension", "fileio", "jsonconv", "number", "reader", "values", "wire"]