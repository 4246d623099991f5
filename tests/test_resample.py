#!/usr/bin/env python3
"""
Unit tests for the shared resampling primitive
"""
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fund_timeline.core.merger import merge_series
from fund_timeline.core.resample import even_instants, metric_values_at, resample_at
from fund_timeline.core.settings import PipelinePolicy
from fund_timeline.shared.models import MetricKind, RawPoint
from fund_timeline.shared.utils import datetime_to_timestamp

T0 = datetime(2025, 4, 4, 12, 0, tzinfo=timezone.utc)
MIN = 60_000


def _merged():
    return merge_series(
        [
            RawPoint(T0.isoformat(), 100.0, MetricKind.NAV),
            RawPoint((T0 + timedelta(minutes=30)).isoformat(), 100.5, MetricKind.NAV),
        ],
        [RawPoint(T0.isoformat(), 1.5, MetricKind.YIELD)],
    )


class TestEvenInstants:

    def test_includes_both_ends(self):
        assert even_instants(0, 1000, 3) == [0, 500, 1000]

    def test_last_instant_exact(self):
        instants = even_instants(0, 3_600_000, 20)
        assert len(instants) == 20
        assert instants[0] == 0
        assert instants[-1] == 3_600_000

    def test_degenerate_counts(self):
        assert even_instants(5, 10, 1) == [5]
        assert even_instants(5, 10, 0) == []


class TestMetricValuesAt:
    """Interpolate / hold / fallback per metric"""

    def test_linear_interpolation_midpoint(self):
        t0 = datetime_to_timestamp(T0)
        values = metric_values_at(_merged(), MetricKind.NAV, [t0 + 15 * MIN], PipelinePolicy())
        assert values[0] == pytest.approx(100.25)

    def test_hold_after_last_sample(self):
        t0 = datetime_to_timestamp(T0)
        values = metric_values_at(_merged(), MetricKind.YIELD, [t0 + 10 * MIN, t0 + 45 * MIN], PipelinePolicy())
        assert list(values) == [1.5, 1.5]

    def test_hold_before_first_sample(self):
        t0 = datetime_to_timestamp(T0)
        values = metric_values_at(_merged(), MetricKind.NAV, [t0 - 10 * MIN], PipelinePolicy())
        assert values[0] == 100.0

    def test_missing_metric_uses_fallback(self):
        only_nav = merge_series([RawPoint(T0.isoformat(), 100.0, MetricKind.NAV)], [])
        policy = PipelinePolicy(fallback_yield=1.6)
        values = metric_values_at(only_nav, MetricKind.YIELD, [0, 1, 2], policy)
        assert list(values) == [1.6, 1.6, 1.6]


class TestResampleAt:
    """Test resample_at()"""

    def test_exact_instant_reuses_real_point(self):
        merged = _merged()
        t0 = merged[0].epoch_millis
        out = resample_at(merged, [t0], PipelinePolicy())
        assert len(out) == 1
        assert out[0].is_interpolated is False
        assert out[0].iso_timestamp == merged[0].iso_timestamp
        assert out[0].nav == 100.0
        assert out[0].yield_ == 1.5

    def test_real_point_missing_metric_is_filled(self):
        merged = _merged()
        later = merged[1]
        out = resample_at(merged, [later.epoch_millis], PipelinePolicy())
        assert out[0].nav == 100.5
        assert out[0].yield_ == 1.5
        assert out[0].is_interpolated is False

    def test_output_sorted_and_labelled(self):
        t0 = datetime_to_timestamp(T0)
        out = resample_at(_merged(), [t0 + 20 * MIN, t0 + 5 * MIN], PipelinePolicy())
        assert [p.epoch_millis for p in out] == [t0 + 5 * MIN, t0 + 20 * MIN]
        assert out[0].time_formatted == "12:05"
        assert out[0].iso_timestamp == "2025-04-04T12:05:00.000Z"
        assert all(p.is_interpolated for p in out)

    def test_no_instants(self):
        assert resample_at(_merged(), []) == []
