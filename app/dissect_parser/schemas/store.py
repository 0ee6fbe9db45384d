import logging
from collections.abc import Iterator
from typing import Protocol

logger = logging.getLogger(__name__)


class UnknownBlockCollector(Protocol):
    def push(self, username: str, block: bytes) -> None: ...

    def flush(self) -> None: ...


class InMemoryUnknownBlockStore:
    """Simple per-decode in-memory table of unparsed player blocks (username -> blocks)."""

    def __init__(self) -> None:
        self._blocks: dict[str, list[bytes]] = {}

    @property
    def usernames(self) -> list[str]:
        return list(self._blocks)

    def push(self, username: str, block: bytes) -> None:
        """Record one opaque block for the given username."""
        self._blocks.setdefault(username, []).append(bytes(block))

    def get(self, username: str) -> list[bytes] | None:
        """Get the blocks recorded for a username, or None if not found."""
        blocks = self._blocks.get(username)
        return list(blocks) if blocks is not None else None

    def iter_blocks(self) -> Iterator[tuple[str, bytes]]:
        """Read in insertion order."""
        for username, blocks in self._blocks.items():
            for block in blocks:
                yield username, block

    def flush(self) -> None:
        """Log what was collected for this batch and start over."""
        for username, block in self.iter_blocks():
            logger.debug("unknown block for %s: %s", username, block.hex(" "))
        logger.debug("Flushed unknown blocks for %d player(s)", len(self._blocks))
        self._blocks.clear()
