#!/usr/bin/env python3
"""
Point-count reduction for chart rendering (performance optimization).
Does NOT affect domains or exports, only what is handed to the renderer.

Stride sampling keeps the overall shape of an evenly spaced series; the first
and last points are always kept so the chart spans the full window.
"""
from __future__ import annotations

import logging
from typing import List, Sequence, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TARGET_POINTS = 75
DEFAULT_THRESHOLD = 20


def downsample_stride(n_points: int, target: int = DEFAULT_TARGET_POINTS) -> int:
    """
    Stride used to bring `n_points` near `target`.

    Example:
        >>> downsample_stride(300)
        4
        >>> downsample_stride(50)
        1
    """
    return max(1, n_points // max(1, target))


def downsample(
    points: Sequence[T],
    target: int = DEFAULT_TARGET_POINTS,
    threshold: int = DEFAULT_THRESHOLD,
) -> List[T]:
    """
    Take every stride-th point, always keeping the first and last.

    Args:
        points: Render-bound points in time order
        target: Approximate maximum number of points to keep
        threshold: Inputs shorter than this are returned unchanged

    Returns:
        New list; len <= len(points) // stride + 2
    """
    n = len(points)
    if n < threshold or n == 0:
        return list(points)

    stride = downsample_stride(n, target)
    indices = list(range(0, n, stride))
    if indices[-1] != n - 1:
        indices.append(n - 1)

    result = [points[i] for i in indices]
    if len(result) != n:
        log.debug(f"Downsampled {n} points to {len(result)} (stride {stride})")
    return result
