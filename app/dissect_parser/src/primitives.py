import struct

from .byte_cursor import ByteCursor
from .core import InvalidSeparatorError

STRING_SEPARATOR = b"\x00" * 7

_INT32 = struct.Struct("<i")


def read_int(cursor: ByteCursor) -> int:
    """Read a 4-byte little-endian signed integer."""
    return _INT32.unpack(cursor.read(4))[0]


def read_header_string(cursor: ByteCursor) -> bytes:
    """Read a header string: length byte, 7-byte separator, payload."""
    size = cursor.read(1)[0]
    sep = cursor.read(len(STRING_SEPARATOR))
    if sep != STRING_SEPARATOR:
        raise InvalidSeparatorError(f"Invalid string separator {sep.hex(' ')} at offset {cursor.offset - len(sep)}")
    return cursor.read(size)


def read_string(cursor: ByteCursor) -> bytes:
    """Read a body string: length byte followed directly by the payload."""
    size = cursor.read(1)[0]
    return cursor.read(size)
