#!/usr/bin/env python3
"""
Unit tests for window filtering and density rules

Tests cover:
- ALL passthrough and cutoff inclusion
- Widening to the full timeline when a window is too sparse
- Density boost between the first and last selected point
- Unknown window tokens
"""
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fund_timeline.core.range_filter import FilterResult, boost_density, filter_by_window
from fund_timeline.core.settings import PipelinePolicy
from fund_timeline.shared.models import DenseTimelinePoint, WindowToken
from fund_timeline.shared.utils import datetime_to_timestamp, format_time_label, iso_from_millis

NOW = datetime(2025, 4, 4, 18, 0, tzinfo=timezone.utc)
HOUR_MS = 3_600_000


def _point(ms, nav=100.0, yld=1.5, interpolated=True):
    return DenseTimelinePoint(
        iso_timestamp=iso_from_millis(ms),
        epoch_millis=ms,
        nav=nav,
        yield_=yld,
        time_formatted=format_time_label(ms),
        is_interpolated=interpolated,
    )


def _hourly(count, end=NOW):
    end_ms = datetime_to_timestamp(end)
    return [_point(end_ms - (count - 1 - i) * HOUR_MS, nav=100.0 + i) for i in range(count)]


class TestFilterByWindow:
    """Test filter_by_window()"""

    def test_all_returns_input_unchanged(self):
        timeline = _hourly(30)
        result = filter_by_window(timeline, WindowToken.ALL, now=NOW)
        assert result.points == timeline
        assert not result.widened and not result.boosted

    def test_window_keeps_points_at_cutoff(self):
        end_ms = datetime_to_timestamp(NOW)
        timeline = [_point(end_ms - HOUR_MS + i * 200_000) for i in range(19)]
        timeline.insert(0, _point(end_ms - HOUR_MS - 1))
        result = filter_by_window(timeline, "1H", now=NOW)
        assert len(result.points) == 19
        assert result.points[0].epoch_millis == end_ms - HOUR_MS
        assert not result.insufficient_density

    def test_three_point_timeline_widened_to_full(self):
        timeline = _hourly(3, end=NOW - timedelta(hours=3))
        result = filter_by_window(timeline, WindowToken.ONE_HOUR, now=NOW)
        assert result.widened
        assert result.points
        for original in timeline:
            assert original in result.points

    def test_three_point_widening_then_boost(self):
        timeline = _hourly(3, end=NOW - timedelta(hours=3))
        result = filter_by_window(timeline, "1H", now=NOW)
        # 7 interior instants every 15 min, one of which coincides with the middle point
        assert result.boosted
        assert len(result.points) == 9
        stamps = [p.epoch_millis for p in result.points]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_sparse_window_on_long_timeline_widened_without_boost(self):
        end_ms = datetime_to_timestamp(NOW)
        step = (24 * HOUR_MS) // 19
        timeline = [_point(end_ms - (19 - i) * step) for i in range(20)]
        result = filter_by_window(timeline, "1H", now=NOW)
        assert result.widened
        assert not result.boosted
        assert result.points == timeline

    def test_small_window_selection_boosted(self):
        timeline = _hourly(20)
        result = filter_by_window(timeline, "6H", now=NOW)
        assert not result.widened
        assert result.boosted
        # 7 kept, 3 interior instants requested, one collides with an hourly point
        assert len(result.points) == 9
        assert result.points[0].epoch_millis == datetime_to_timestamp(NOW) - 6 * HOUR_MS
        assert result.points[-1].epoch_millis == datetime_to_timestamp(NOW)

    def test_unknown_window_means_all(self, caplog):
        timeline = _hourly(30)
        with caplog.at_level(logging.WARNING):
            result = filter_by_window(timeline, "2W", now=NOW)
        assert result.window is WindowToken.ALL
        assert result.points == timeline
        assert "2W" in caplog.text

    def test_lowercase_token(self):
        result = filter_by_window(_hourly(30), "1d", now=NOW)
        assert result.window is WindowToken.ONE_DAY
        assert len(result.points) == 25

    def test_empty_timeline(self):
        result = filter_by_window([], "1H", now=NOW)
        assert isinstance(result, FilterResult)
        assert result.points == []
        assert result.widened


class TestBoostDensity:
    """Test boost_density()"""

    def test_interpolates_between_neighbours(self):
        start = datetime_to_timestamp(NOW) - HOUR_MS
        points = [_point(start, nav=100.0, interpolated=False), _point(start + HOUR_MS, nav=101.0, interpolated=False)]
        boosted = boost_density(points)
        assert len(boosted) == 10
        assert boosted[0] == points[0] and boosted[-1] == points[-1]
        navs = [p.nav for p in boosted]
        assert navs == sorted(navs)
        assert all(100.0 <= v <= 101.0 for v in navs)

    def test_dense_enough_input_unchanged(self):
        points = _hourly(12)
        assert boost_density(points) == points

    def test_single_point_unchanged(self):
        points = _hourly(1)
        assert boost_density(points) == points

    def test_respects_policy(self):
        start = datetime_to_timestamp(NOW)
        points = [_point(start), _point(start + HOUR_MS)]
        policy = PipelinePolicy(boost_threshold=6, boost_max_points=8)
        assert len(boost_density(points, policy)) == 6
