#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fund timeline runner.
- Loads settings (YAML) and applies command-line overrides
- Reads NAV/Yield history from JSON files or the GraphQL backend
- Prepares the chart series once, or polls until interrupted

Usage examples:
  python -m fund_timeline.main --help
  python -m fund_timeline.main --nav-file nav.json --yield-file yield.json --window 1D --json
  python -m fund_timeline.main --config config/timeline_config.yaml --fund-id F1
  python -m fund_timeline.main --fund-id F1 --once --export-csv output/
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .core.export import write_csv
from .core.pipeline import PipelineResult, run_pipeline
from .core.poller import Snapshot, TimelinePoller
from .core.settings import Settings, SettingsError, apply_cli_overrides, load_settings
from .shared.colored_logging import setup_colored_logging
from .shared.fund_client import FundHistoryClient, FundHistoryClientError
from .shared.logging_setup import resolve_level
from .shared.models import MetricKind, RawPoint, ViewMode, WindowToken
from .shared.utils import load_points_file

log = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).resolve().parents[1] / 'config' / 'timeline_config.yaml'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Fund NAV/Yield timeline preparation')
    parser.add_argument('--config', type=str, default=None, help='Path to timeline_config.yaml')
    parser.add_argument('--nav-file', type=str, default=None, help='JSON list of NAV points (offline mode)')
    parser.add_argument('--yield-file', type=str, default=None, help='JSON list of Yield points (offline mode)')
    parser.add_argument('--fund-id', type=str, default=None, help='Fund id to query on the GraphQL backend')
    parser.add_argument('--endpoint', type=str, default=None, help='GraphQL endpoint URL')
    parser.add_argument('--window', type=str.upper, default=None, choices=[w.value for w in WindowToken], help='Time window')
    parser.add_argument('--view', type=str.upper, default=None, choices=[v.value for v in ViewMode], help='Metrics to show')
    parser.add_argument('--once', action='store_true', help='Run one pass and exit (default with input files)')
    parser.add_argument('--export-csv', type=str, nargs='?', const='', default=None, help='Write the filtered series as CSV (file or directory; export.dir if omitted)')
    parser.add_argument('--json', action='store_true', help='Print the render payload and domains as JSON')
    parser.add_argument('--log-level', type=str.upper, default=None, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], help='Logging level')
    return parser


def _load(args: argparse.Namespace) -> Settings:
    if args.config:
        settings = load_settings(args.config)
    elif DEFAULT_CONFIG.exists():
        settings = load_settings(DEFAULT_CONFIG)
    else:
        settings = Settings()
    return apply_cli_overrides(
        settings,
        fund_id=args.fund_id,
        endpoint=args.endpoint,
        window=args.window,
        view=args.view,
        log_level=args.log_level,
    )


def build_fetch(settings: Settings, nav_file: Optional[str], yield_file: Optional[str]) -> Callable[[], Snapshot]:
    """
    Snapshot source: JSON files when given, otherwise the GraphQL backend

    Raises:
        SettingsError: If neither input files nor a fund id are available
    """
    if nav_file or yield_file:
        def fetch_files() -> Snapshot:
            nav: List[RawPoint] = load_points_file(nav_file, MetricKind.NAV) if nav_file else []
            yld: List[RawPoint] = load_points_file(yield_file, MetricKind.YIELD) if yield_file else []
            return nav, yld
        return fetch_files

    if not settings.fund_id:
        raise SettingsError("No input: pass --nav-file/--yield-file or set fund.id (--fund-id)")

    client = FundHistoryClient.from_settings(settings.data_source)
    fund_id = settings.fund_id
    return lambda: client.fetch_snapshot(fund_id)


def report(result: PipelineResult, as_json: bool = False) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    lines = [
        f"status={result.status.value}, window={result.window.value}, view={result.view.value}, "
        f"points={len(result.points)} (filtered {len(result.filtered)})"
    ]
    for metric, domain in result.domains.items():
        lines.append(f"{metric.value}: domain=[{domain.min:.4f}, {domain.max:.4f}]")
    if result.widened:
        lines.append("window too sparse, showing full history")
    if result.is_synthetic:
        lines.append("no data available, synthetic placeholder series")
    print("\n".join(lines))


def _handle(result: PipelineResult, settings: Settings, args: argparse.Namespace) -> None:
    report(result, args.json)
    if args.export_csv is not None:
        write_csv(args.export_csv or settings.export.dir, result.filtered, result.view, settings.export.time_format)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_colored_logging(level=resolve_level(args.log_level or 'INFO'))

    try:
        settings = _load(args)
        logging.getLogger().setLevel(resolve_level(settings.logging_level))
        fetch = build_fetch(settings, args.nav_file, args.yield_file)
    except SettingsError as e:
        print(f"Invalid configuration: {e}")
        return 2

    once = args.once or bool(args.nav_file or args.yield_file)
    if once:
        try:
            nav, yld = fetch()
        except (FundHistoryClientError, OSError, ValueError) as e:
            log.error(f"Failed to load data: {e}")
            return 1
        result = run_pipeline(nav, yld, settings.view.window, settings.view.mode, settings.pipeline)
        _handle(result, settings, args)
        return 0

    poller = TimelinePoller(fetch, lambda r: _handle(r, settings, args), settings)
    poller.start()
    try:
        # Keep main thread alive
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        log.info("Interrupted, stopping poller")
    finally:
        poller.stop()
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
