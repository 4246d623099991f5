#!/usr/bin/env python3
"""
Timestamp and value normalization for raw NAV/Yield samples.

Numbers and numeric strings are epoch milliseconds. ISO-8601 strings are
parsed as UTC when they carry no offset. One upstream defect is repaired:
two ISO instants concatenated back to back
("2025-04-04T18:33:14.324Z2025-04-04T22:08:14.324Z") are cut after the
first "Z". This is a compatibility shim for that producer and should be
removed once the producer is fixed; it is not a general parser.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from ..shared.models import NormalizedInstant
from ..shared.utils import datetime_to_timestamp, iso_from_millis

log = logging.getLogger(__name__)

_NUMERIC_RE = re.compile(r'^[+-]?\d+(\.\d+)?$')

# Magnitudes above this overflow interpolation and domain arithmetic
_MAX_ABS_VALUE = 1e100

# datetime cannot represent instants outside years 1..9999
_MIN_MILLIS = datetime_to_timestamp(datetime(1, 1, 2, tzinfo=timezone.utc))
_MAX_MILLIS = datetime_to_timestamp(datetime(9999, 12, 30, tzinfo=timezone.utc))


class ParseError(ValueError):
    """A raw sample could not be parsed"""
    pass


class TimestampParseError(ParseError):
    """Raw timestamp is not a valid instant, even after repair"""

    def __init__(self, raw: Any, reason: str = "unparsable timestamp"):
        self.raw = raw
        super().__init__(f"{reason}: {raw!r}")


class ValueParseError(ParseError):
    """Raw metric value is missing, unparsable or non-finite"""

    def __init__(self, raw: Any, reason: str = "invalid value"):
        self.raw = raw
        super().__init__(f"{reason}: {raw!r}")


def repair_concatenated_iso(text: str) -> str:
    """
    Cut a doubled ISO string after its first 'Z' terminator.

    Strings without a 'Z', or ending in their only 'Z', are returned as-is.
    """
    idx = text.find('Z')
    if idx != -1 and idx < len(text) - 1:
        repaired = text[:idx + 1]
        log.debug(f"Repaired concatenated timestamp {text!r} -> {repaired!r}")
        return repaired
    return text


def _from_millis(raw: Any, millis: float) -> NormalizedInstant:
    if not math.isfinite(millis):
        raise TimestampParseError(raw, "non-finite epoch value")
    epoch = int(round(millis))
    if epoch < _MIN_MILLIS or epoch > _MAX_MILLIS:
        raise TimestampParseError(raw, "epoch value out of range")
    return NormalizedInstant(iso_timestamp=iso_from_millis(epoch), epoch_millis=epoch)


def _parse_iso(raw: Any, text: str) -> NormalizedInstant:
    candidate = text[:-1] + '+00:00' if text.endswith('Z') else text
    try:
        dt = datetime.fromisoformat(candidate)
    except ValueError:
        raise TimestampParseError(raw) from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return _from_millis(raw, datetime_to_timestamp(dt))


def normalize_timestamp(raw: Any) -> NormalizedInstant:
    """
    Parse/repair one raw timestamp into a canonical instant.

    Args:
        raw: String (ISO-8601 or numeric) or number of epoch milliseconds

    Returns:
        NormalizedInstant with canonical ISO string and epoch millis

    Raises:
        TimestampParseError: If no valid instant can be recovered
    """
    if raw is None or isinstance(raw, bool):
        raise TimestampParseError(raw, "missing timestamp")

    if isinstance(raw, (int, float)):
        return _from_millis(raw, float(raw))

    if isinstance(raw, datetime):
        dt = raw if raw.tzinfo is not None else raw.replace(tzinfo=timezone.utc)
        return _from_millis(raw, datetime_to_timestamp(dt))

    if not isinstance(raw, str):
        raise TimestampParseError(raw, f"unsupported timestamp type {type(raw).__name__}")

    text = raw.strip()
    if not text:
        raise TimestampParseError(raw, "empty timestamp")

    if _NUMERIC_RE.match(text):
        return _from_millis(raw, float(text))

    return _parse_iso(raw, repair_concatenated_iso(text))


def try_normalize_timestamp(raw: Any) -> Optional[NormalizedInstant]:
    """Like normalize_timestamp, but logs and returns None on failure."""
    try:
        return normalize_timestamp(raw)
    except TimestampParseError as e:
        log.warning(f"Dropping point with invalid timestamp: {e}")
        return None


def normalize_value(raw: Any) -> float:
    """
    Parse a metric value into a finite float.

    Raises:
        ValueParseError: For None, booleans, unparsable strings, NaN, infinities
            and magnitudes above 1e100
    """
    if raw is None or isinstance(raw, bool):
        raise ValueParseError(raw, "missing value")
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise ValueParseError(raw) from None
    if not math.isfinite(value):
        raise ValueParseError(raw, "non-finite value")
    if abs(value) > _MAX_ABS_VALUE:
        raise ValueParseError(raw, "value out of range")
    return value
