#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from typing import Union

from .colored_logging import setup_colored_logging


def resolve_level(level: Union[str, int]) -> int:
    """Map 'DEBUG'/'info'/20 style levels to a logging constant (INFO if unknown)."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).strip().upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        setup_colored_logging(level=logging.INFO)
    return logger
