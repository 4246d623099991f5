#!/usr/bin/env python3
"""
Unit tests for domain models and shared utilities
"""
import json
import math
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fund_timeline.shared.models import (
    AxisDomain,
    DenseTimelinePoint,
    MetricKind,
    NormalizedPoint,
    ViewMode,
    WindowToken,
)
from fund_timeline.shared.utils import (
    datetime_to_timestamp,
    format_datetime_for_output,
    format_time_label,
    iso_from_millis,
    load_points_file,
    now_millis,
    timestamp_to_datetime,
)


class TestTokens:
    """Window and view parsing"""

    def test_window_parse_case_insensitive(self):
        assert WindowToken.parse("1h") is WindowToken.ONE_HOUR
        assert WindowToken.parse(" 6H ") is WindowToken.SIX_HOURS
        assert WindowToken.parse(None) is WindowToken.ALL

    def test_window_durations(self):
        assert WindowToken.ONE_HOUR.duration_ms == 3_600_000
        assert WindowToken.ONE_DAY.duration_ms == 86_400_000
        assert WindowToken.ALL.duration_ms is None

    def test_unknown_window(self):
        with pytest.raises(ValueError):
            WindowToken.parse("2W")

    def test_view_metrics(self):
        assert ViewMode.NAV.metrics == (MetricKind.NAV,)
        assert ViewMode.YIELD.metrics == (MetricKind.YIELD,)
        assert ViewMode.parse("combined").metrics == (MetricKind.NAV, MetricKind.YIELD)

    def test_unknown_view(self):
        with pytest.raises(ValueError):
            ViewMode.parse("PIE")


class TestPoints:
    """Point dataclasses"""

    def test_dense_point_rejects_non_finite(self):
        with pytest.raises(ValueError):
            DenseTimelinePoint("2025-04-04T12:00:00.000Z", 0, math.nan, 1.5, "12:00")
        with pytest.raises(ValueError):
            DenseTimelinePoint("2025-04-04T12:00:00.000Z", 0, 100.0, None, "12:00")

    def test_payload(self):
        point = DenseTimelinePoint("2025-04-04T12:00:00.000Z", 0, 100.0, 1.5, "12:00", is_interpolated=False)
        assert point.to_payload() == {
            "timestamp": "2025-04-04T12:00:00.000Z",
            "timeFormatted": "12:00",
            "nav": 100.0,
            "yield": 1.5,
        }
        assert point.to_payload((MetricKind.YIELD,)) == {
            "timestamp": "2025-04-04T12:00:00.000Z",
            "timeFormatted": "12:00",
            "yield": 1.5,
        }

    def test_normalized_point_get(self):
        point = NormalizedPoint("2025-04-04T12:00:00.000Z", 0, nav=None, yield_=1.5)
        assert point.get(MetricKind.NAV) is None
        assert point.get(MetricKind.YIELD) == 1.5

    def test_axis_domain_validation(self):
        assert AxisDomain(1.0, 1.0).as_list() == [1.0, 1.0]
        with pytest.raises(ValueError):
            AxisDomain(2.0, 1.0)
        with pytest.raises(ValueError):
            AxisDomain(0.0, math.inf)


class TestTimeHelpers:
    """Time conversion helpers"""

    def test_iso_from_millis(self):
        assert iso_from_millis(0) == "1970-01-01T00:00:00.000Z"
        assert iso_from_millis(1_500) == "1970-01-01T00:00:01.500Z"

    def test_iso_from_millis_pads_early_years(self):
        millis = datetime_to_timestamp(datetime(5, 3, 1, 6, 7, 8, 9000, tzinfo=timezone.utc))
        assert iso_from_millis(millis) == "0005-03-01T06:07:08.009Z"

    def test_round_trip(self):
        dt = datetime(2025, 4, 4, 18, 33, 14, 324000, tzinfo=timezone.utc)
        assert timestamp_to_datetime(datetime_to_timestamp(dt)) == dt

    def test_naive_datetime_read_as_utc(self):
        assert datetime_to_timestamp(datetime(1970, 1, 1, 0, 0, 1)) == 1000

    def test_offset_datetime(self):
        dt = datetime(1970, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert datetime_to_timestamp(dt) == 0

    def test_now_millis_injected(self):
        assert now_millis(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_time_label(self):
        assert format_time_label(0) == "00:00"
        assert format_time_label(13 * 3_600_000 + 5 * 60_000, "%H:%M") == "13:05"

    def test_output_formats(self):
        dt = datetime(2025, 4, 4, 18, 33, 14, tzinfo=timezone.utc)
        assert format_datetime_for_output(dt, "human") == "2025-04-04 18:33:14"
        assert format_datetime_for_output(dt, "iso") == "2025-04-04T18:33:14Z"
        with pytest.raises(ValueError):
            format_datetime_for_output(dt, "locale")


class TestLoadPointsFile:
    """Offline JSON snapshots"""

    def test_value_and_metric_keys(self, tmp_path):
        path = tmp_path / "nav.json"
        path.write_text(json.dumps([
            {"timestamp": "2025-04-04T12:00:00Z", "value": 100.0},
            {"timestamp": "2025-04-04T12:30:00Z", "nav": 100.5, "source": "oracle"},
            "not-a-point",
        ]), encoding="utf-8")
        points = load_points_file(path, MetricKind.NAV)
        assert [p.value for p in points] == [100.0, 100.5]
        assert points[1].source == "oracle"
        assert all(p.metric_kind is MetricKind.NAV for p in points)

    def test_yield_key(self, tmp_path):
        path = tmp_path / "yield.json"
        path.write_text(json.dumps([{"timestamp": 0, "yield": 1.5}]), encoding="utf-8")
        assert load_points_file(path, MetricKind.YIELD)[0].value == 1.5

    def test_non_list_rejected(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"timestamp": 0}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_points_file(path, MetricKind.NAV)
