#!/usr/bin/env python3
"""
Window filtering (1H / 6H / 1D / ALL) with anti-sparseness rules.

- A window keeping fewer than `min_window_points` points is discarded and the
  full timeline is returned instead (widened).
- A result with fewer than `boost_threshold` points (but at least two) gets up
  to `boost_max_points` interpolated points between its first and last point
  (boosted), using the same resampling primitive as the dense timeline.
Both conditions are expected with sparse real data and are logged at DEBUG.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Union

from ..shared.models import DenseTimelinePoint, WindowToken
from ..shared.utils import now_millis
from .resample import even_instants, resample_at
from .settings import PipelinePolicy

log = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """Filtered points plus which density rules fired"""
    points: List[DenseTimelinePoint] = field(default_factory=list)
    window: WindowToken = WindowToken.ALL
    widened: bool = False
    boosted: bool = False

    @property
    def insufficient_density(self) -> bool:
        return self.widened or self.boosted


def _coerce_window(window: Union[str, WindowToken, None]) -> WindowToken:
    try:
        return WindowToken.parse(window)
    except ValueError as e:
        log.warning(f"{e}; showing ALL")
        return WindowToken.ALL


def boost_density(
    points: Sequence[DenseTimelinePoint],
    policy: Optional[PipelinePolicy] = None,
) -> List[DenseTimelinePoint]:
    """
    Add interpolated points between the first and last point of a sparse selection.

    Returns the input (copied) when it already has `boost_threshold` points or
    fewer than two points.
    """
    policy = policy or PipelinePolicy()
    current = sorted(points, key=lambda p: p.epoch_millis)
    if len(current) >= policy.boost_threshold or len(current) < 2:
        return list(current)

    add = min(policy.boost_max_points, policy.boost_threshold - len(current))
    first_ms, last_ms = current[0].epoch_millis, current[-1].epoch_millis
    existing = {p.epoch_millis for p in current}
    interior = [t for t in even_instants(first_ms, last_ms, add + 2)[1:-1] if t not in existing]
    if not interior:
        return list(current)

    extra = resample_at(current, sorted(set(interior)), policy)
    boosted = sorted(current + extra, key=lambda p: p.epoch_millis)
    log.debug(f"InsufficientDensity: boosted {len(current)} points to {len(boosted)}")
    return boosted


def filter_by_window(
    timeline: Sequence[DenseTimelinePoint],
    window: Union[str, WindowToken, None] = WindowToken.ALL,
    policy: Optional[PipelinePolicy] = None,
    now: Optional[datetime] = None,
) -> FilterResult:
    """
    Restrict the dense timeline to a relative window ending at `now`.

    Args:
        timeline: Dense timeline sorted by instant
        window: 1H, 6H, 1D or ALL (unknown tokens mean ALL)
        policy: Pipeline policy
        now: Reference instant (current UTC time if not given)

    Returns:
        FilterResult with the selected points and density flags
    """
    policy = policy or PipelinePolicy()
    token = _coerce_window(window)
    points = list(timeline)

    if token is WindowToken.ALL:
        return FilterResult(points=points, window=token)

    cutoff = now_millis(now) - token.duration_ms
    selected = [p for p in points if p.epoch_millis >= cutoff]
    result = FilterResult(points=selected, window=token)

    if len(selected) < policy.min_window_points:
        log.debug(f"InsufficientDensity: window {token.value} kept {len(selected)} points, showing full timeline")
        result.points = points
        result.widened = True

    if 2 <= len(result.points) < policy.boost_threshold:
        boosted = boost_density(result.points, policy)
        result.boosted = len(boosted) > len(result.points)
        result.points = boosted

    return result
