#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Series merging for independently sampled NAV and Yield histories.

Both raw series are normalized point by point and unioned into one list keyed
by canonical ISO timestamp. Matching is exact string equality on the
canonical form; a timestamp carrying only one metric is kept as a partial
point and filled in later by the dense timeline builder.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..shared.models import MetricKind, NormalizedPoint, RawPoint
from .timestamps import ParseError, normalize_timestamp, normalize_value


@dataclass
class MergeStats:
    """Counts describing one merge, useful for logging and no-data decisions"""
    total_in: int = 0
    dropped: int = 0
    distinct: int = 0
    nav_points: int = 0
    yield_points: int = 0

    def __post_init__(self):
        """Validate counts are non-negative"""
        if any(c < 0 for c in (self.total_in, self.dropped, self.distinct, self.nav_points, self.yield_points)):
            raise ValueError("Counts cannot be negative")


class SeriesMerger:
    """
    Unions NAV and Yield samples into time-ordered NormalizedPoints

    Handles:
    - Timestamp repair/normalization per point
    - Dropping (and logging) points with unparsable timestamps or values
    - Exact-timestamp alignment across the two metrics
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _accumulate(
        self,
        points: Iterable[RawPoint],
        metric: MetricKind,
        acc: Dict[str, Dict],
        stats: MergeStats,
    ) -> None:
        for point in points or []:
            stats.total_in += 1
            try:
                instant = normalize_timestamp(point.timestamp)
                value = normalize_value(point.value)
            except ParseError as e:
                stats.dropped += 1
                self.logger.warning(f"Dropping {metric.value} point from {point.source or 'unknown source'}: {e}")
                continue

            record = acc.setdefault(instant.iso_timestamp, {
                "epoch_millis": instant.epoch_millis,
                "nav": None,
                "yield_": None,
            })
            record[metric.field_name] = value
            if metric is MetricKind.NAV:
                stats.nav_points += 1
            else:
                stats.yield_points += 1

    def merge(
        self,
        nav_points: Optional[Iterable[RawPoint]],
        yield_points: Optional[Iterable[RawPoint]],
    ) -> Tuple[List[NormalizedPoint], MergeStats]:
        """
        Merge the two raw series

        Args:
            nav_points: Raw NAV samples in any order
            yield_points: Raw Yield samples in any order

        Returns:
            Tuple of (points sorted by epoch_millis, merge statistics)
        """
        stats = MergeStats()
        acc: Dict[str, Dict] = {}

        self._accumulate(nav_points, MetricKind.NAV, acc, stats)
        self._accumulate(yield_points, MetricKind.YIELD, acc, stats)

        merged = [
            NormalizedPoint(
                iso_timestamp=iso,
                epoch_millis=record["epoch_millis"],
                nav=record["nav"],
                yield_=record["yield_"],
            )
            for iso, record in acc.items()
        ]
        merged.sort(key=lambda p: p.epoch_millis)
        stats.distinct = len(merged)

        if stats.dropped:
            self.logger.info(f"Merged {stats.distinct} timestamps from {stats.total_in} samples ({stats.dropped} dropped)")
        else:
            self.logger.debug(f"Merged {stats.distinct} timestamps from {stats.total_in} samples")
        return merged, stats


def merge_series_with_stats(
    nav_points: Optional[Iterable[RawPoint]],
    yield_points: Optional[Iterable[RawPoint]],
) -> Tuple[List[NormalizedPoint], MergeStats]:
    return SeriesMerger().merge(nav_points, yield_points)


def merge_series(
    nav_points: Optional[Iterable[RawPoint]],
    yield_points: Optional[Iterable[RawPoint]],
) -> List[NormalizedPoint]:
    """Merge NAV and Yield samples into one time-ordered list."""
    merged, _ = SeriesMerger().merge(nav_points, yield_points)
    return merged
