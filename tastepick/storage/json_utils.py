"""JSON helpers for catalogue fields and stored vectors."""

import json
from typing import Any, Sequence

from tastepick.errors import DataIntegrityError
from tastepick.logging import get_logger

logger = get_logger(__name__)


def encode_json(data: Any) -> str:
    """Compact JSON for catalogue columns, keeping non-ASCII titles readable."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def decode_genres(text: str | None) -> list[str]:
    """Read a stored genre list; anything malformed reads as no genres."""
    if not text:
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Unreadable genres JSON: {e}")
        return []

    if not isinstance(data, list):
        return []
    return [str(genre) for genre in data if genre]


def encode_vector(vector: Sequence[float] | None) -> str | None:
    """Encode a vector for storage; None stays None."""
    if vector is None:
        return None
    return json.dumps([float(x) for x in vector], separators=(",", ":"))


def decode_vector(text: str | None) -> list[float] | None:
    """Decode a stored vector.

    Unlike decode_genres this raises on corrupt data: a vector that
    cannot be read must not be silently treated as missing.
    """
    if text is None:
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataIntegrityError(f"Stored vector is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise DataIntegrityError(f"Stored vector is not a JSON array: {type(data).__name__}")

    try:
        return [float(x) for x in data]
    except (TypeError, ValueError) as e:
        raise DataIntegrityError(f"Stored vector has a non-numeric element: {e}") from e
