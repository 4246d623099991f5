#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility Functions for Fund Timeline
Shared helpers for time conversion, formatting and snapshot files.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union

from .models import MetricKind, RawPoint

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def timestamp_to_datetime(timestamp_ms: Union[int, float]) -> datetime:
    """
    Convert millisecond timestamp to UTC datetime

    Args:
        timestamp_ms: Timestamp in milliseconds since epoch

    Returns:
        UTC datetime object
    """
    return _EPOCH + timedelta(milliseconds=timestamp_ms)


def datetime_to_timestamp(dt: datetime) -> int:
    """
    Convert datetime to millisecond timestamp (naive datetimes are read as UTC)

    Args:
        dt: Datetime object

    Returns:
        Timestamp in milliseconds since epoch
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def now_millis(now: Optional[datetime] = None) -> int:
    """Epoch millis for `now`, or for the current wall clock when not injected."""
    if now is None:
        now = datetime.now(timezone.utc)
    return datetime_to_timestamp(now)


def iso_from_millis(epoch_millis: int) -> str:
    """Canonical ISO-8601 form: 2025-04-04T18:33:14.324Z"""
    dt = timestamp_to_datetime(epoch_millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_time_label(epoch_millis: int, fmt: str = "%H:%M") -> str:
    """Axis/tooltip label for a point (UTC)"""
    return timestamp_to_datetime(epoch_millis).strftime(fmt)


def format_datetime_for_output(dt: datetime, format_type: str = "human") -> str:
    """
    Format datetime for exported files

    Args:
        dt: Datetime to format
        format_type: "iso" or "human"

    Returns:
        Formatted datetime string
    """
    if format_type == "iso":
        return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
    elif format_type == "human":
        return dt.strftime("%Y-%m-%d %H:%M:%S")
    else:
        raise ValueError(f"Unknown format_type: {format_type}")


def load_points_file(path: Union[str, Path], metric: MetricKind) -> List[RawPoint]:
    """
    Load an offline snapshot of one metric from a JSON file

    The file holds a list of objects with a `timestamp` and either `value`
    or the metric's own key (`nav` / `yield`), plus an optional `source`.
    Entries that are not objects are skipped; their contents are validated
    later by the normalizer.

    Raises:
        ValueError: If the file is not a JSON list
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"{p} must contain a JSON list of points, got {type(raw).__name__}")

    points: List[RawPoint] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        value = entry.get("value", entry.get(metric.payload_key))
        points.append(RawPoint(
            timestamp=entry.get("timestamp"),
            value=value,
            metric_kind=metric,
            source=entry.get("source"),
        ))
    return points
