#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Colored console logging for the fund timeline CLI and poller.

Log levels are tinted with ANSI codes when stderr is a terminal:
- DEBUG: Cyan (widened windows, density boosts)
- INFO: Green (per-run summaries)
- WARNING: Yellow (dropped points, synthetic fallback)
- ERROR: Red (data source failures)
- CRITICAL: Bold Red
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(module)s.%(funcName)s:%(lineno)d] - %(message)s'
DEFAULT_DATEFMT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str = DEFAULT_FORMAT, datefmt: Optional[str] = None, use_colors: bool = True):
        """
        Args:
            fmt: Format string for log messages
            datefmt: Format string for timestamps
            use_colors: Whether to use colors (auto-disabled if not a TTY or NO_COLOR is set)
        """
        super().__init__(fmt, datefmt)
        self.use_colors = (
            use_colors
            and not os.environ.get("NO_COLOR")
            and hasattr(sys.stderr, 'isatty')
            and sys.stderr.isatty()
        )

    def format(self, record: logging.LogRecord) -> str:
        if not (self.use_colors and record.levelname in self.COLORS):
            return super().format(record)
        orig_levelname = record.levelname
        record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = orig_levelname


def setup_colored_logging(
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    datefmt: Optional[str] = DEFAULT_DATEFMT,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger with colored console output.

    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG)
        fmt: Format string for log messages
        datefmt: Format string for timestamps
        log_file: Optional path for an additional plain-text log file
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(fmt=fmt, datefmt=datefmt))
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # Files never get ANSI codes
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(file_handler)

    root.setLevel(level)
