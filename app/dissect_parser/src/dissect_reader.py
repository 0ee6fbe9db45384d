import logging

from ..schemas.schemas import MatchHeader
from ..schemas.store import UnknownBlockCollector
from .byte_cursor import ByteCursor
from .extract_match_header import read_header, read_header_magic
from .extract_players import scan_players

logger = logging.getLogger(__name__)


class DissectReader:
    """Decoding context for one dissect payload: a single cursor threaded through every stage."""

    def __init__(self, cursor: ByteCursor, collector: UnknownBlockCollector | None = None):
        self.cursor = cursor
        self.collector = collector
        self.header: MatchHeader | None = None

    def decode(self) -> MatchHeader:
        """Read the magic, the header properties and the player records."""
        read_header_magic(self.cursor)
        self.header = read_header(self.cursor)
        scan_players(self.cursor, self.header.players, self.collector)
        logger.debug("Decoded match %s ending at offset %d", self.header.match_id, self.cursor.offset)
        return self.header
