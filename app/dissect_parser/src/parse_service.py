import io
import logging
from pathlib import Path
from typing import BinaryIO

from ..schemas.schemas import MatchHeader
from ..schemas.store import UnknownBlockCollector
from .byte_cursor import ByteCursor
from .decompress import open_dissect_stream
from .dissect_reader import DissectReader

logger = logging.getLogger(__name__)


def decode_dissect(raw: BinaryIO, collector: UnknownBlockCollector | None = None) -> MatchHeader:
    """Decode a compressed dissect stream into a MatchHeader."""
    stream = open_dissect_stream(raw)
    return DissectReader(ByteCursor(stream), collector=collector).decode()


def decode_dissect_bytes(data: bytes, collector: UnknownBlockCollector | None = None) -> MatchHeader:
    """Decode an in-memory compressed dissect file."""
    return decode_dissect(io.BytesIO(data), collector=collector)


def decode_dissect_file(path: str | Path, collector: UnknownBlockCollector | None = None) -> MatchHeader:
    """Decode a dissect file from disk."""
    logger.info("Decoding dissect file: %s", path)
    with open(path, "rb") as fh:
        header = decode_dissect(fh, collector=collector)
    logger.info("Decoded %s: %d player(s), match id %s", path, len(header.players), header.match_id)
    return header
