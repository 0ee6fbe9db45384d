"""
Decompression of the dissect container.

A dissect file is a run of concatenated zstd frames. Anything after the last
frame that does not start with the zstd magic is not part of the payload and
is treated as end of stream.
"""
from __future__ import annotations

import io
import logging
import os
from typing import BinaryIO

import zstandard

from .core import InvalidFormatError, UnexpectedEOFError

logger = logging.getLogger(__name__)

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
DEFAULT_CHUNK_SIZE = int(os.environ.get("DISSECT_CHUNK_SIZE", 64 * 1024))


class ZstdFrameStream(io.RawIOBase):
    """Readable stream of the decompressed bytes of consecutive zstd frames."""

    def __init__(self, raw: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__()
        self._raw = raw
        self._chunk_size = chunk_size
        self._decompressor = zstandard.ZstdDecompressor()
        self._dobj = None
        self._pending = b""
        self._out = bytearray()
        self._frames = 0
        self._finished = False

    @property
    def frames(self) -> int:
        """Number of frames fully decompressed so far."""
        return self._frames

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._out and not self._finished:
            self._fill()
        n = min(len(b), len(self._out))
        b[:n] = self._out[:n]
        del self._out[:n]
        return n

    def _read_raw(self, size: int) -> bytes:
        return self._raw.read(size) or b""

    def _start_frame(self) -> None:
        while len(self._pending) < len(ZSTD_MAGIC):
            chunk = self._read_raw(self._chunk_size)
            if not chunk:
                break
            self._pending += chunk

        if self._pending[: len(ZSTD_MAGIC)] != ZSTD_MAGIC:
            if self._frames == 0:
                raise InvalidFormatError("Format mismatch: input is not zstd-compressed")
            logger.debug("Stopping after %d frame(s), %d byte(s) of trailing data", self._frames, len(self._pending))
            self._finished = True
            return

        self._dobj = self._decompressor.decompressobj()

    def _fill(self) -> None:
        if self._dobj is None:
            self._start_frame()
            if self._finished:
                return

        data = self._pending or self._read_raw(self._chunk_size)
        self._pending = b""
        if not data:
            raise UnexpectedEOFError(f"Compressed stream ended inside frame {self._frames + 1}")

        try:
            self._out += self._dobj.decompress(data)
        except zstandard.ZstdError as exc:
            raise InvalidFormatError(f"Format mismatch: {exc}") from exc

        if self._dobj.eof:
            self._pending = self._dobj.unused_data
            self._dobj = None
            self._frames += 1


def open_dissect_stream(raw: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> io.BufferedReader:
    """Wrap a compressed dissect stream into a buffered stream of decompressed bytes."""
    return io.BufferedReader(ZstdFrameStream(raw, chunk_size=chunk_size))
