#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Domain Models for Fund Timeline
Defines the point types flowing through the NAV/Yield reconciliation pipeline.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class MetricKind(str, Enum):
    """The two metrics tracked per fund"""
    NAV = "NAV"
    YIELD = "YIELD"

    @property
    def field_name(self) -> str:
        """Attribute name carrying this metric on point objects"""
        return "nav" if self is MetricKind.NAV else "yield_"

    @property
    def payload_key(self) -> str:
        """Key used for this metric in render payloads and CSV headers"""
        return "nav" if self is MetricKind.NAV else "yield"


class WindowToken(str, Enum):
    """Relative time windows offered by the chart controls"""
    ONE_HOUR = "1H"
    SIX_HOURS = "6H"
    ONE_DAY = "1D"
    ALL = "ALL"

    @property
    def duration_ms(self) -> Optional[int]:
        """Window length in milliseconds, None for ALL"""
        return {
            WindowToken.ONE_HOUR: 3_600_000,
            WindowToken.SIX_HOURS: 6 * 3_600_000,
            WindowToken.ONE_DAY: 24 * 3_600_000,
        }.get(self)

    @classmethod
    def parse(cls, value: Union[str, "WindowToken", None]) -> "WindowToken":
        """
        Parse a window token case-insensitively

        Raises:
            ValueError: If the token is not one of 1H, 6H, 1D, ALL
        """
        if isinstance(value, WindowToken):
            return value
        if value is None:
            return cls.ALL
        token = str(value).strip().upper()
        for member in cls:
            if member.value == token:
                return member
        raise ValueError(f"Unknown window token '{value}', expected one of {[m.value for m in cls]}")


class ViewMode(str, Enum):
    """Which series the rendering layer draws"""
    NAV = "NAV"
    YIELD = "YIELD"
    COMBINED = "COMBINED"

    @property
    def metrics(self) -> tuple:
        if self is ViewMode.NAV:
            return (MetricKind.NAV,)
        if self is ViewMode.YIELD:
            return (MetricKind.YIELD,)
        return (MetricKind.NAV, MetricKind.YIELD)

    @classmethod
    def parse(cls, value: Union[str, "ViewMode", None]) -> "ViewMode":
        if isinstance(value, ViewMode):
            return value
        if value is None:
            return cls.COMBINED
        mode = str(value).strip().upper()
        for member in cls:
            if member.value == mode:
                return member
        raise ValueError(f"Unknown view mode '{value}', expected one of {[m.value for m in cls]}")


@dataclass(frozen=True)
class RawPoint:
    """
    One sample as delivered by the data-fetch layer

    Nothing is validated here: timestamp and value may be malformed and are
    checked by the normalizer.
    """
    timestamp: Union[str, int, float, None]
    value: Union[float, int, str, None]
    metric_kind: MetricKind
    source: Optional[str] = None


@dataclass(frozen=True)
class NormalizedInstant:
    """A repaired/parsed timestamp in both canonical forms"""
    iso_timestamp: str
    epoch_millis: int


@dataclass(frozen=True)
class NormalizedPoint:
    """
    Merged sample keyed by canonical timestamp

    At least one of nav/yield_ is set for points coming from real data.
    """
    iso_timestamp: str
    epoch_millis: int
    nav: Optional[float] = None
    yield_: Optional[float] = None

    def get(self, metric: MetricKind) -> Optional[float]:
        return getattr(self, metric.field_name)


@dataclass(frozen=True)
class DenseTimelinePoint:
    """
    Evenly spaced, render-ready point

    Both metric values are always finite floats.
    """
    iso_timestamp: str
    epoch_millis: int
    nav: float
    yield_: float
    time_formatted: str
    is_interpolated: bool = True

    def __post_init__(self):
        """Reject missing or non-finite metric values"""
        for name in ("nav", "yield_"):
            value = getattr(self, name)
            if value is None or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")

    def get(self, metric: MetricKind) -> float:
        return getattr(self, metric.field_name)

    def to_payload(self, metrics=(MetricKind.NAV, MetricKind.YIELD)) -> dict:
        """Render-layer dict with only the requested metrics"""
        payload = {
            "timestamp": self.iso_timestamp,
            "timeFormatted": self.time_formatted,
        }
        for metric in metrics:
            payload[metric.payload_key] = self.get(metric)
        return payload


@dataclass(frozen=True)
class AxisDomain:
    """Y-axis bounds for one metric"""
    min: float
    max: float

    def __post_init__(self):
        """Validate bounds are finite and ordered"""
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise ValueError("AxisDomain bounds must be finite")
        if self.max < self.min:
            raise ValueError(f"AxisDomain max ({self.max}) cannot be below min ({self.min})")

    def as_list(self) -> list:
        return [self.min, self.max]
