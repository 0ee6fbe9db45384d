from __future__ import annotations

from functools import lru_cache
from typing import BinaryIO

from .core import PatternNotFoundError, UnexpectedEOFError


@lru_cache(maxsize=32)
def _prefix_table(pattern: bytes) -> tuple[int, ...]:
    """KMP failure table: longest proper prefix of pattern[:i + 1] that is also its suffix."""
    table = [0] * len(pattern)
    k = 0
    for i in range(1, len(pattern)):
        while k and pattern[i] != pattern[k]:
            k = table[k - 1]
        if pattern[i] == pattern[k]:
            k += 1
        table[i] = k
    return tuple(table)


class ByteCursor:
    """Forward-only reader over a decompressed dissect stream."""

    def __init__(self, source: BinaryIO):
        self._source = source
        self._offset = 0

    @property
    def offset(self) -> int:
        """Number of bytes consumed from the source so far."""
        return self._offset

    def read(self, n: int) -> bytes:
        """Read exactly `n` bytes or raise UnexpectedEOFError."""
        if n < 0:
            raise ValueError(f"Cannot read a negative number of bytes: {n}")

        buf = bytearray()
        while len(buf) < n:
            chunk = self._source.read(n - len(buf))
            if not chunk:
                break
            buf += chunk
        self._offset += len(buf)

        if len(buf) < n:
            raise UnexpectedEOFError(f"Expected {n} bytes at offset {self._offset - len(buf)}, got {len(buf)}")
        return bytes(buf)

    def seek(self, pattern: bytes) -> None:
        """Consume bytes until the last len(pattern) bytes read equal `pattern`."""
        if not pattern:
            raise ValueError("Cannot seek to an empty pattern")

        table = _prefix_table(bytes(pattern))
        matched = 0
        while True:
            b = self._source.read(1)
            if not b:
                raise PatternNotFoundError(bytes(pattern), self._offset)
            self._offset += 1

            byte = b[0]
            while matched and pattern[matched] != byte:
                matched = table[matched - 1]
            if pattern[matched] == byte:
                matched += 1
                if matched == len(pattern):
                    return
