#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CSV export of the filtered (pre-downsample) chart series.

Single-metric views export `timestamp,value`; the combined view exports
`timestamp,nav,yield`. Timestamps are human-readable UTC by default, numbers
are written unquoted, and any string field containing a comma is quoted.
"""
from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..shared.models import DenseTimelinePoint, ViewMode
from ..shared.utils import format_datetime_for_output, timestamp_to_datetime

log = logging.getLogger(__name__)

_FILENAME_PREFIX = {
    ViewMode.NAV: "nav-history",
    ViewMode.YIELD: "yield-history",
    ViewMode.COMBINED: "fund-history",
}


def csv_header(view: ViewMode) -> List[str]:
    if view is ViewMode.COMBINED:
        return ["timestamp"] + [m.payload_key for m in view.metrics]
    return ["timestamp", "value"]


def series_to_csv(
    points: Sequence[DenseTimelinePoint],
    view: Union[str, ViewMode] = ViewMode.NAV,
    time_format: str = "human",
) -> str:
    """
    Serialize points to CSV text (header row first, '\\n' line endings)

    Args:
        points: Filtered points in time order
        view: Which metric columns to write
        time_format: "human" (2025-04-04 18:33:14) or "iso"

    Returns:
        CSV document as a string
    """
    view = ViewMode.parse(view)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(csv_header(view))
    for p in points:
        stamp = format_datetime_for_output(timestamp_to_datetime(p.epoch_millis), time_format)
        writer.writerow([stamp] + [p.get(m) for m in view.metrics])
    return buf.getvalue()


def export_filename(view: Union[str, ViewMode] = ViewMode.NAV, today: Optional[date] = None) -> str:
    """e.g. nav-history-2025-04-04.csv"""
    view = ViewMode.parse(view)
    if today is None:
        today = datetime.now(timezone.utc).date()
    return f"{_FILENAME_PREFIX[view]}-{today.isoformat()}.csv"


def write_csv(
    path: Union[str, Path],
    points: Sequence[DenseTimelinePoint],
    view: Union[str, ViewMode] = ViewMode.NAV,
    time_format: str = "human",
) -> Path:
    """
    Write the CSV export to `path` (a directory, or a path without suffix, gets a dated default filename)

    Returns:
        Path of the written file
    """
    target = Path(path)
    if target.is_dir() or not target.suffix:
        target = target / export_filename(view)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", newline="", encoding="utf-8") as f:
        f.write(series_to_csv(points, view, time_format))
    log.info(f"Exported {len(points)} points to {target}")
    return target
