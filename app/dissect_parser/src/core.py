from __future__ import annotations

import logging
import os


def configure_logging() -> None:
    """Configure basic logging once."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


class DissectError(Exception):
    """Base exception for dissect decoding failures."""


class InvalidFormatError(DissectError):
    """Raised when the input is not a dissect file (bad magic or not zstd-compressed)."""


class UnexpectedEOFError(DissectError, EOFError):
    """Raised when the byte source ends in the middle of a read."""


class InvalidSeparatorError(DissectError):
    """Raised when a header string is not followed by the expected separator."""


class PatternNotFoundError(DissectError):
    """Raised when a seek exhausts the stream without finding its pattern."""

    def __init__(self, pattern: bytes, offset: int):
        super().__init__(f"Pattern {pattern.hex(' ')} not found before end of stream (offset {offset})")
        self.pattern = pattern
        self.offset = offset


class FieldParseError(DissectError, ValueError):
    """Raised when a header property is not an integer or breaks a field constraint."""

    def __init__(self, key: str, value: str, reason: str = "Invalid integer"):
        super().__init__(f"{reason} for {key!r}: {value!r}")
        self.key = key
        self.value = value
