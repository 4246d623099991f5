#!/usr/bin/env python3
"""
Dense timeline construction for NAV/Yield charts.

Turns the merged, irregular sample list into an evenly spaced series over the
observed span (at least one hour wide) with both metrics present at every
instant. When there are no samples at all, EmptyDataError is raised and the
caller may substitute generate_fallback_series(), a deterministic synthetic
series that must be presented as such.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence

from ..shared.models import DenseTimelinePoint, NormalizedPoint
from ..shared.utils import format_time_label, iso_from_millis, now_millis
from .resample import even_instants, resample_at
from .settings import PipelinePolicy

log = logging.getLogger(__name__)

# Relative amplitude of the synthetic series around the fallback constants
FALLBACK_NAV_AMPLITUDE = 0.15
FALLBACK_YIELD_AMPLITUDE = 0.05


class EmptyDataError(Exception):
    """No valid samples survived normalization and merging"""
    pass


def dense_point_count(distinct_timestamps: int, policy: PipelinePolicy) -> int:
    """max(min_dense_points, 2 x distinct timestamps)"""
    return max(policy.min_dense_points, 2 * distinct_timestamps)


def build_dense_timeline(
    points: Sequence[NormalizedPoint],
    policy: Optional[PipelinePolicy] = None,
) -> List[DenseTimelinePoint]:
    """
    Resample merged points onto an evenly spaced timeline.

    Args:
        points: Merged points (any order; duplicates by instant not expected)
        policy: Pipeline policy

    Returns:
        Dense, sorted, NaN-free points spanning [first, max(last, first + min span)]

    Raises:
        EmptyDataError: If `points` is empty
    """
    policy = policy or PipelinePolicy()
    if not points:
        raise EmptyDataError("No valid NAV or Yield samples to build a timeline from")

    ordered = sorted(points, key=lambda p: p.epoch_millis)
    first_ms = ordered[0].epoch_millis
    last_ms = ordered[-1].epoch_millis

    # Widen the nominal span only; no extra real samples are created
    end_ms = max(last_ms, first_ms + policy.min_span_ms)
    if end_ms != last_ms:
        log.debug(f"Observed span {(last_ms - first_ms) / 60000:.1f} min below minimum, widening to {policy.min_span_minutes:.0f} min")

    distinct = len({p.epoch_millis for p in ordered})
    count = dense_point_count(distinct, policy)
    timeline = resample_at(ordered, even_instants(first_ms, end_ms, count), policy)

    log.debug(f"Built dense timeline: {len(timeline)} points from {distinct} samples")
    return timeline


def generate_fallback_series(
    policy: Optional[PipelinePolicy] = None,
    now: Optional[datetime] = None,
) -> List[DenseTimelinePoint]:
    """
    Deterministic placeholder series for when no real samples exist.

    `fallback_points` points spaced `fallback_spacing_minutes` apart, the last
    one at `now`. NAV and Yield follow one full sine period around their
    fallback constants, so each series averages to its constant.

    Args:
        policy: Pipeline policy
        now: End instant (current UTC time if not given)

    Returns:
        Synthetic points, all flagged as interpolated
    """
    policy = policy or PipelinePolicy()
    end_ms = now_millis(now)
    n = policy.fallback_points
    spacing = policy.fallback_spacing_ms

    series: List[DenseTimelinePoint] = []
    for i in range(n):
        t = end_ms - (n - 1 - i) * spacing
        phase = 2 * math.pi * i / n
        series.append(DenseTimelinePoint(
            iso_timestamp=iso_from_millis(t),
            epoch_millis=t,
            nav=policy.fallback_nav + FALLBACK_NAV_AMPLITUDE * math.sin(phase),
            yield_=policy.fallback_yield + FALLBACK_YIELD_AMPLITUDE * math.cos(phase),
            time_formatted=format_time_label(t, policy.time_label_format),
            is_interpolated=True,
        ))
    return series
