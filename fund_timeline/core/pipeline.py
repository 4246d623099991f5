#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
End-to-end NAV/Yield chart preparation.

raw series -> normalize + merge -> dense timeline -> window filter
           -> (domains on the filtered points, downsample for rendering)

run_pipeline() is a pure function of its inputs plus the policy: nothing is
cached between runs and malformed or missing data never raises. A snapshot
without any valid sample is reported as DataStatus.NO_DATA, with the
deterministic synthetic series kept apart in `fallback` so callers can choose
between a placeholder and the synthetic chart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..shared.models import (
    AxisDomain,
    DenseTimelinePoint,
    MetricKind,
    RawPoint,
    ViewMode,
    WindowToken,
)
from .domains import compute_domains
from .downsample import downsample
from .merger import MergeStats, merge_series_with_stats
from .range_filter import filter_by_window
from .settings import PipelinePolicy
from .timeline import EmptyDataError, build_dense_timeline, generate_fallback_series

log = logging.getLogger(__name__)


class DataStatus(str, Enum):
    REAL = "REAL"
    NO_DATA = "NO_DATA"


@dataclass
class PipelineResult:
    """
    Everything the rendering and export layers need from one run

    `points` is the downsampled render series, `filtered` the full window
    selection (exported as CSV and used for domains).
    """
    points: List[DenseTimelinePoint]
    filtered: List[DenseTimelinePoint]
    domains: Dict[MetricKind, AxisDomain]
    status: DataStatus
    window: WindowToken
    view: ViewMode
    fallback: List[DenseTimelinePoint] = field(default_factory=list)
    widened: bool = False
    boosted: bool = False
    merge_stats: MergeStats = field(default_factory=MergeStats)
    revision: int = 0

    @property
    def is_synthetic(self) -> bool:
        return self.status is DataStatus.NO_DATA

    def to_render_payload(self) -> List[dict]:
        """Render-layer dicts carrying only the metrics of the current view"""
        metrics = self.view.metrics
        return [p.to_payload(metrics) for p in self.points]

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "window": self.window.value,
            "view": self.view.value,
            "revision": self.revision,
            "widened": self.widened,
            "boosted": self.boosted,
            "points": self.to_render_payload(),
            "domains": {m.payload_key: d.as_list() for m, d in self.domains.items()},
        }


def run_pipeline(
    nav_points: Optional[Iterable[RawPoint]],
    yield_points: Optional[Iterable[RawPoint]],
    window: Union[str, WindowToken, None] = WindowToken.ALL,
    view: Union[str, ViewMode, None] = ViewMode.COMBINED,
    policy: Optional[PipelinePolicy] = None,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """
    Prepare one chart snapshot.

    Args:
        nav_points: Raw NAV samples (any order, may be malformed)
        yield_points: Raw Yield samples (any order, may be malformed)
        window: 1H, 6H, 1D or ALL
        view: NAV, YIELD or COMBINED; selects the metrics that get domains
            and appear in the render payload
        policy: Pipeline policy constants
        now: Reference instant for windows and the fallback series

    Returns:
        PipelineResult (never raises for bad or missing data)
    """
    policy = policy or PipelinePolicy()
    try:
        view_mode = ViewMode.parse(view)
    except ValueError as e:
        log.warning(f"{e}; showing COMBINED")
        view_mode = ViewMode.COMBINED

    merged, stats = merge_series_with_stats(nav_points, yield_points)

    fallback: List[DenseTimelinePoint] = []
    try:
        dense = build_dense_timeline(merged, policy)
        status = DataStatus.REAL
    except EmptyDataError as e:
        log.warning(f"{e}; using synthetic fallback series")
        fallback = generate_fallback_series(policy, now)
        dense = fallback if policy.render_fallback else []
        status = DataStatus.NO_DATA

    selection = filter_by_window(dense, window, policy, now)
    filtered = selection.points
    domains = compute_domains(filtered, view_mode.metrics, policy)
    points = downsample(filtered, policy.downsample_target, policy.downsample_threshold)

    log.info(
        f"Prepared {len(points)} points ({len(filtered)} in window {selection.window.value}, "
        f"{stats.distinct} real timestamps, status {status.value})"
    )
    return PipelineResult(
        points=points,
        filtered=filtered,
        domains=domains,
        status=status,
        window=selection.window,
        view=view_mode,
        fallback=fallback,
        widened=selection.widened,
        boosted=selection.boosted,
        merge_stats=stats,
    )
