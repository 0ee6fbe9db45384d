from __future__ import annotations

import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .core import FieldParseError

ModelT = TypeVar("ModelT", bound=BaseModel)

_INT_RE = re.compile(r"[+-]?[0-9]+")


def ensure_str(value: Any) -> str:
    """Ensure the value is a string, decoding bytes if necessary."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def parse_int(key: str, value: str | None) -> int:
    """Parse a decimal property value strictly (optional sign, ASCII digits only)."""
    if value is None or not _INT_RE.fullmatch(value):
        raise FieldParseError(key, "" if value is None else value)
    return int(value)


def validated(model: type[ModelT], **fields: Any) -> ModelT:
    """Build a pydantic model, reporting constraint violations as FieldParseError."""
    try:
        return model(**fields)
    except ValidationError as exc:
        error = exc.errors()[0]
        key = ".".join(str(part) for part in error["loc"])
        raise FieldParseError(key, str(error.get("input", "")), reason=error["msg"]) from exc
