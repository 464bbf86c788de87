"""
Encoding and decoding utilities for stored values.

Session values are JSON-serialized and percent-encoded so they can be
stored in a text column. Metadata columns hold plain JSON documents.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote, unquote

from ..errors import DecodeError, PreconditionViolation, ErrorCode


logger = logging.getLogger(__name__)


def encode_value(value: Any) -> str:
    """
    Serialize a value for the session table.

    None, booleans, numbers, strings and nested lists/dicts of those
    keep their types through a round trip.
    """
    try:
        serialized = json.dumps(value, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PreconditionViolation(
            f"Value of type {type(value).__name__} cannot be serialized: {e}",
            field="value",
            code=ErrorCode.ENCODE_FAILED,
            cause=e,
        )
    return quote(serialized, safe='')


def decode_value_strict(text: str) -> Any:
    """Reverse encode_value, raising DecodeError on malformed input."""
    if not isinstance(text, str):
        raise DecodeError(f"Expected encoded text, got {type(text).__name__}")

    try:
        return json.loads(unquote(text, errors='strict'))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Invalid stored value: {e}", cause=e)


def decode_value(text: Optional[str], false_as_absent: bool = False) -> Any:
    """
    Decode a session value, returning None when it cannot be decoded.

    With false_as_absent a stored boolean False is also reported as
    absent, which is how values written by older deployments behave.
    """
    try:
        value = decode_value_strict(text)
    except DecodeError as e:
        logger.debug(f"Discarding undecodable session value: {e.message}")
        return None

    if false_as_absent and value is False:
        return None
    return value


def encode_json_column(value: Any) -> str:
    """Encode a metadata document for a JSON text column."""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PreconditionViolation(
            f"Metadata cannot be encoded as JSON: {e}",
            code=ErrorCode.ENCODE_FAILED,
            cause=e,
        )


def decode_json_column(text: Optional[str]) -> Any:
    """Decode a JSON text column. Missing or malformed columns become None."""
    if text is None:
        return None
    if not isinstance(text, str):
        return None

    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Ignoring malformed JSON column")
        return None


def to_epoch(ts: Optional[datetime]) -> Optional[int]:
    """
    Convert a database timestamp to unix epoch seconds.

    The driver returns naive datetimes in UTC.
    """
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp())
