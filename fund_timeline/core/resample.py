#!/usr/bin/env python3
"""
Resampling of a sparse NAV/Yield series at arbitrary instants.

This is the single "resample to minimum resolution" primitive used both to
build the dense timeline and to boost sparse window selections, so the two
call sites cannot drift apart.

Per metric, the samples carrying that metric form a sorted track. At each
target instant:
- a real point at exactly that instant is reused verbatim;
- between two samples the value is interpolated linearly by time;
- before the first / after the last sample the nearest value is held flat;
- a metric with no samples at all takes its policy fallback constant.

Neighbour lookup is a binary search over the sorted instant array
(np.interp / np.searchsorted), so cost is O(m log n).
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from ..shared.models import DenseTimelinePoint, MetricKind, NormalizedPoint
from ..shared.utils import format_time_label, iso_from_millis
from .settings import PipelinePolicy

SourcePoint = Union[NormalizedPoint, DenseTimelinePoint]


def fallback_value(metric: MetricKind, policy: PipelinePolicy) -> float:
    return policy.fallback_nav if metric is MetricKind.NAV else policy.fallback_yield


def even_instants(start_ms: int, end_ms: int, count: int) -> List[int]:
    """
    `count` instants spread evenly over [start_ms, end_ms], both ends included.

    Instants are rounded to whole milliseconds; the last one is exactly end_ms.
    """
    if count <= 0:
        return []
    if count == 1:
        return [int(start_ms)]
    span = end_ms - start_ms
    return [int(start_ms + round(span * i / (count - 1))) for i in range(count)]


def _track(points: Sequence[SourcePoint], metric: MetricKind) -> tuple[np.ndarray, np.ndarray]:
    carriers = [(p.epoch_millis, p.get(metric)) for p in points if p.get(metric) is not None]
    carriers.sort(key=lambda c: c[0])
    times = np.array([c[0] for c in carriers], dtype=float)
    values = np.array([c[1] for c in carriers], dtype=float)
    return times, values


def metric_values_at(
    points: Sequence[SourcePoint],
    metric: MetricKind,
    instants: Sequence[int],
    policy: PipelinePolicy,
) -> np.ndarray:
    """
    Value of one metric at each instant (interpolate / hold / fallback).

    Returns:
        Float array aligned with `instants`, never containing NaN
    """
    targets = np.asarray(instants, dtype=float)
    times, values = _track(points, metric)
    if times.size == 0:
        return np.full(targets.shape, fallback_value(metric, policy), dtype=float)
    # np.interp holds fp[0] / fp[-1] outside the sampled range
    return np.interp(targets, times, values)


def resample_at(
    points: Sequence[SourcePoint],
    instants: Sequence[int],
    policy: Optional[PipelinePolicy] = None,
) -> List[DenseTimelinePoint]:
    """
    Build one DenseTimelinePoint per target instant from a sparse series.

    Args:
        points: Source points sorted or unsorted; may carry one metric only
        instants: Target instants in epoch millis
        policy: Pipeline policy (fallback constants, label format)

    Returns:
        Points sorted by instant with both metrics always finite
    """
    policy = policy or PipelinePolicy()
    if not instants:
        return []

    ordered = sorted(int(t) for t in instants)
    nav = metric_values_at(points, MetricKind.NAV, ordered, policy)
    yld = metric_values_at(points, MetricKind.YIELD, ordered, policy)
    by_instant: Dict[int, SourcePoint] = {p.epoch_millis: p for p in points}

    result: List[DenseTimelinePoint] = []
    for i, t in enumerate(ordered):
        real = by_instant.get(t)
        if real is not None:
            nav_val = real.nav if real.nav is not None else float(nav[i])
            yld_val = real.yield_ if real.yield_ is not None else float(yld[i])
            result.append(DenseTimelinePoint(
                iso_timestamp=real.iso_timestamp,
                epoch_millis=t,
                nav=float(nav_val),
                yield_=float(yld_val),
                time_formatted=format_time_label(t, policy.time_label_format),
                is_interpolated=bool(getattr(real, "is_interpolated", False)),
            ))
            continue
        result.append(DenseTimelinePoint(
            iso_timestamp=iso_from_millis(t),
            epoch_millis=t,
            nav=float(nav[i]),
            yield_=float(yld[i]),
            time_formatted=format_time_label(t, policy.time_label_format),
            is_interpolated=True,
        ))
    return result
