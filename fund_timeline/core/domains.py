#!/usr/bin/env python3
"""
Adaptive Y-axis domains for NAV and Yield charts.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Sequence

import numpy as np

from ..shared.models import AxisDomain, DenseTimelinePoint, MetricKind
from .settings import PipelinePolicy

log = logging.getLogger(__name__)

DEFAULT_DOMAINS = {
    MetricKind.NAV: AxisDomain(99.0, 101.0),
    MetricKind.YIELD: AxisDomain(0.0, 5.0),
}


def compute_domain(
    points: Sequence[DenseTimelinePoint],
    metric: MetricKind,
    policy: Optional[PipelinePolicy] = None,
) -> AxisDomain:
    """
    Y-axis bounds for one metric over the filtered (pre-downsample) points.

    Logic:
    - no finite values: fixed default (NAV [99, 101], Yield [0, 5])
    - range below small_range_threshold: expand symmetrically around the
      midpoint to max(range * small_range_factor, min_small_span) so small
      real movements stay visible
    - otherwise: pad by padding_fraction of the range on each side
    - NAV: lower bound clamped to >= 0
    """
    policy = policy or PipelinePolicy()
    raw = [p.get(metric) for p in points]
    values = np.array([v for v in raw if v is not None], dtype=float)
    values = values[np.isfinite(values)]

    if values.size == 0:
        return DEFAULT_DOMAINS[metric]

    lo = float(np.min(values))
    hi = float(np.max(values))
    data_range = hi - lo

    if data_range < policy.small_range_threshold:
        mid = (lo + hi) / 2
        span = max(data_range * policy.small_range_factor, policy.min_small_span)
        y_min, y_max = mid - span / 2, mid + span / 2
    else:
        pad = data_range * policy.padding_fraction
        y_min, y_max = lo - pad, hi + pad

    if metric is MetricKind.NAV:
        y_min = max(0.0, y_min)
        y_max = max(y_max, y_min)

    if not (np.isfinite(y_min) and np.isfinite(y_max)):
        log.warning(f"Non-finite {metric.value} domain [{y_min}, {y_max}], using default")
        return DEFAULT_DOMAINS[metric]

    return AxisDomain(float(y_min), float(y_max))


def compute_domains(
    points: Sequence[DenseTimelinePoint],
    metrics: Iterable[MetricKind] = (MetricKind.NAV, MetricKind.YIELD),
    policy: Optional[PipelinePolicy] = None,
) -> Dict[MetricKind, AxisDomain]:
    """Domain per requested metric"""
    return {metric: compute_domain(points, metric, policy) for metric in metrics}
