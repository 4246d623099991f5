#!/usr/bin/env python3
"""
Unit tests for adaptive Y-axis domains

Tests cover:
- Default domains when a metric has no values
- Small-range expansion and regular padding
- NAV lower bound clamping
"""
import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fund_timeline.core.domains import DEFAULT_DOMAINS, compute_domain, compute_domains
from fund_timeline.core.settings import PipelinePolicy
from fund_timeline.shared.models import AxisDomain, DenseTimelinePoint, MetricKind
from fund_timeline.shared.utils import format_time_label, iso_from_millis


def _points(navs, ylds=None):
    ylds = ylds or [1.5] * len(navs)
    return [
        DenseTimelinePoint(
            iso_timestamp=iso_from_millis(i * 60_000),
            epoch_millis=i * 60_000,
            nav=n,
            yield_=y,
            time_formatted=format_time_label(i * 60_000),
        )
        for i, (n, y) in enumerate(zip(navs, ylds))
    ]


class TestComputeDomain:
    """Test compute_domain()"""

    def test_defaults_without_points(self):
        assert compute_domain([], MetricKind.NAV) == AxisDomain(99.0, 101.0)
        assert compute_domain([], MetricKind.YIELD) == AxisDomain(0.0, 5.0)
        assert DEFAULT_DOMAINS[MetricKind.YIELD].as_list() == [0.0, 5.0]

    def test_padding_for_regular_range(self):
        domain = compute_domain(_points([100.0, 101.0]), MetricKind.NAV)
        assert domain.min == pytest.approx(99.9)
        assert domain.max == pytest.approx(101.1)

    def test_small_range_expanded_to_minimum_span(self):
        domain = compute_domain(_points([100.0, 100.02]), MetricKind.NAV)
        assert domain.max - domain.min == pytest.approx(0.2)
        assert (domain.min + domain.max) / 2 == pytest.approx(100.01)

    def test_constant_series_expanded(self):
        domain = compute_domain(_points([1.0, 1.0], [1.5, 1.5]), MetricKind.YIELD)
        assert domain.min == pytest.approx(1.4)
        assert domain.max == pytest.approx(1.6)

    def test_small_range_scaled_when_above_minimum_span(self):
        policy = PipelinePolicy(small_range_threshold=1.0, min_small_span=0.2)
        domain = compute_domain(_points([10.0, 10.5]), MetricKind.NAV, policy)
        assert domain.max - domain.min == pytest.approx(1.5)

    def test_nav_min_clamped_at_zero(self):
        domain = compute_domain(_points([0.0, 10.0]), MetricKind.NAV)
        assert domain.min == 0.0
        assert domain.max == pytest.approx(11.0)

    def test_nav_small_range_near_zero_clamped(self):
        domain = compute_domain(_points([0.0, 0.05]), MetricKind.NAV)
        assert domain.min == 0.0
        assert domain.max >= domain.min

    def test_yield_may_go_negative(self):
        domain = compute_domain(_points([100.0, 100.0], [-1.0, 1.0]), MetricKind.YIELD)
        assert domain.min == pytest.approx(-1.2)
        assert domain.max == pytest.approx(1.2)

    @pytest.mark.parametrize("values", [[5.0], [100.0, 99.0, 98.5], [0.001, 0.0], [1e6, -1e6]])
    def test_never_inverted(self, values):
        for metric in (MetricKind.NAV, MetricKind.YIELD):
            domain = compute_domain(_points(values, values), metric)
            assert domain.max >= domain.min
            if metric is MetricKind.NAV:
                assert domain.min >= 0.0

    def test_overflowing_range_uses_default(self):
        points = _points([-1e308, 1e308], [-1e308, 1e308])
        assert compute_domain(points, MetricKind.YIELD) == DEFAULT_DOMAINS[MetricKind.YIELD]
        assert compute_domain(points, MetricKind.NAV) == DEFAULT_DOMAINS[MetricKind.NAV]


class TestComputeDomains:

    def test_requested_metrics_only(self):
        domains = compute_domains(_points([100.0, 101.0]), (MetricKind.NAV,))
        assert list(domains) == [MetricKind.NAV]

    def test_both_metrics_by_default(self):
        domains = compute_domains(_points([100.0, 101.0]))
        assert set(domains) == {MetricKind.NAV, MetricKind.YIELD}
