#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fund timeline settings loader

Parses the YAML configuration into dataclasses. Every section and key is
optional; defaults reproduce the dashboard's fixed policy constants
(fallback NAV 100.0 / Yield 1.6, 20-point dense timelines, at most ~75 rendered
points, 15 s polling, 100 ms debounce).
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..shared.models import ViewMode, WindowToken

log = logging.getLogger(__name__)


@dataclass
class PipelinePolicy:
    """Policy constants shared by every pipeline stage"""
    fallback_nav: float = 100.0
    fallback_yield: float = 1.6
    min_dense_points: int = 20
    min_span_minutes: float = 60.0
    fallback_points: int = 10
    fallback_spacing_minutes: float = 30.0
    min_window_points: int = 5
    boost_threshold: int = 10
    boost_max_points: int = 8
    downsample_target: int = 75
    downsample_threshold: int = 20
    small_range_threshold: float = 0.1
    small_range_factor: float = 3.0
    min_small_span: float = 0.2
    padding_fraction: float = 0.1
    # When False, a NO_DATA run returns no points and the caller shows a placeholder
    render_fallback: bool = True
    time_label_format: str = "%H:%M"

    @property
    def min_span_ms(self) -> int:
        return int(self.min_span_minutes * 60_000)

    @property
    def fallback_spacing_ms(self) -> int:
        return int(self.fallback_spacing_minutes * 60_000)


@dataclass
class DataSourceConfig:
    """GraphQL backend serving navHistory / yieldHistory"""
    endpoint: str = "http://localhost:4000/graphql"
    timeout: float = 10.0
    retry_attempts: int = 3
    retry_backoff: float = 1.0


@dataclass
class PollingConfig:
    interval_seconds: float = 15.0
    debounce_ms: float = 100.0


@dataclass
class ViewConfig:
    window: WindowToken = WindowToken.ALL
    mode: ViewMode = ViewMode.COMBINED


@dataclass
class ExportConfig:
    time_format: str = "human"  # "human" | "iso"
    dir: str = "output"


@dataclass
class Settings:
    fund_id: Optional[str] = None
    data_source: DataSourceConfig = field(default_factory=DataSourceConfig)
    pipeline: PipelinePolicy = field(default_factory=PipelinePolicy)
    polling: PollingConfig = field(default_factory=PollingConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging_level: str = "INFO"


class SettingsError(Exception):
    """Configuration-related errors"""
    pass


def _validate_settings(settings: Settings) -> None:
    """
    Validate all fields at load time, reporting every problem at once.

    Raises:
        SettingsError: If any field is invalid
    """
    errors: List[str] = []
    p = settings.pipeline

    if p.min_dense_points < 2:
        errors.append(f"pipeline.min_dense_points must be >= 2, got: {p.min_dense_points}")
    if p.min_span_minutes <= 0:
        errors.append(f"pipeline.min_span_minutes must be positive, got: {p.min_span_minutes}")
    if p.fallback_points < 1:
        errors.append(f"pipeline.fallback_points must be >= 1, got: {p.fallback_points}")
    if p.fallback_spacing_minutes <= 0:
        errors.append(f"pipeline.fallback_spacing_minutes must be positive, got: {p.fallback_spacing_minutes}")
    if p.min_window_points < 0:
        errors.append(f"pipeline.min_window_points must be >= 0, got: {p.min_window_points}")
    if p.boost_threshold < 0 or p.boost_max_points < 0:
        errors.append("pipeline.boost_threshold and pipeline.boost_max_points must be >= 0")
    if p.downsample_target < 1:
        errors.append(f"pipeline.downsample_target must be >= 1, got: {p.downsample_target}")
    if p.downsample_threshold < 0:
        errors.append(f"pipeline.downsample_threshold must be >= 0, got: {p.downsample_threshold}")
    if p.small_range_threshold < 0 or p.min_small_span < 0:
        errors.append("pipeline.small_range_threshold and pipeline.min_small_span must be >= 0")
    if p.small_range_factor <= 0:
        errors.append(f"pipeline.small_range_factor must be positive, got: {p.small_range_factor}")
    if p.padding_fraction < 0:
        errors.append(f"pipeline.padding_fraction must be >= 0, got: {p.padding_fraction}")

    ds = settings.data_source
    if not ds.endpoint or not ds.endpoint.strip():
        errors.append("data_source.endpoint must be a non-empty string")
    if ds.timeout <= 0:
        errors.append(f"data_source.timeout must be positive, got: {ds.timeout}")
    if ds.retry_attempts < 1:
        errors.append(f"data_source.retry_attempts must be >= 1, got: {ds.retry_attempts}")
    if ds.retry_backoff < 0:
        errors.append(f"data_source.retry_backoff must be >= 0, got: {ds.retry_backoff}")

    if settings.polling.interval_seconds <= 0:
        errors.append(f"polling.interval_seconds must be positive, got: {settings.polling.interval_seconds}")
    if settings.polling.debounce_ms < 0:
        errors.append(f"polling.debounce_ms must be >= 0, got: {settings.polling.debounce_ms}")

    if settings.export.time_format not in ("human", "iso"):
        errors.append(f"export.time_format must be 'human' or 'iso', got: {settings.export.time_format}")

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.logging_level not in valid_levels:
        errors.append(f"logging.level must be one of {valid_levels}, got: {settings.logging_level}")

    if errors:
        error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        raise SettingsError(error_msg)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise SettingsError(f"'{name}' section must be a mapping")
    return value


def _build(cls, values: Dict[str, Any], section: str):
    """Instantiate a section dataclass, rejecting unknown keys."""
    known = set(cls.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        raise SettingsError(f"Unknown keys in '{section}': {unknown}")
    return cls(**values)


def settings_from_dict(raw: Optional[Dict[str, Any]]) -> Settings:
    """
    Build and validate Settings from an in-memory mapping

    Raises:
        SettingsError: If the mapping is malformed or any value is invalid
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise SettingsError(f"Configuration must be a YAML mapping, got {type(raw).__name__}")

    try:
        fund = _section(raw, "fund")
        view_raw = _section(raw, "view")
        settings = Settings(
            fund_id=str(fund["id"]) if fund.get("id") is not None else None,
            data_source=_build(DataSourceConfig, _section(raw, "data_source"), "data_source"),
            pipeline=_build(PipelinePolicy, _section(raw, "pipeline"), "pipeline"),
            polling=_build(PollingConfig, _section(raw, "polling"), "polling"),
            view=ViewConfig(
                window=WindowToken.parse(view_raw.get("window", "ALL")),
                mode=ViewMode.parse(view_raw.get("mode", "COMBINED")),
            ),
            export=_build(ExportConfig, _section(raw, "export"), "export"),
            logging_level=str(_section(raw, "logging").get("level", "INFO")).upper(),
        )
    except SettingsError:
        raise
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Configuration validation failed: {e}")

    _validate_settings(settings)
    return settings


def load_settings(config_path: str | Path) -> Settings:
    """
    Load and validate settings from a YAML file

    Raises:
        SettingsError: If the file is missing, not valid YAML, or invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise SettingsError(f"Configuration file not found: {config_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {config_path}: {e}")

    settings = settings_from_dict(raw)
    log.debug(f"Loaded settings from {path}")
    return settings


def apply_cli_overrides(settings: Settings, **overrides) -> Settings:
    """
    Return a copy of settings with command-line overrides applied

    Recognized keys: fund_id, endpoint, window, view, log_level. None values
    are ignored.

    Raises:
        SettingsError: If an override is invalid
    """
    updated = copy.deepcopy(settings)
    try:
        if overrides.get("fund_id"):
            updated.fund_id = str(overrides["fund_id"])
        if overrides.get("endpoint"):
            updated.data_source.endpoint = str(overrides["endpoint"])
        if overrides.get("window"):
            updated.view.window = WindowToken.parse(overrides["window"])
        if overrides.get("view"):
            updated.view.mode = ViewMode.parse(overrides["view"])
        if overrides.get("log_level"):
            updated.logging_level = str(overrides["log_level"]).upper()
    except ValueError as e:
        raise SettingsError(f"Failed to apply CLI overrides: {e}")

    _validate_settings(updated)
    return updated
