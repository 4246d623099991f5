#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Periodic refresh of the chart snapshot.

- TimelinePoller fetches both series every `polling.interval_seconds` on a
  daemon thread and hands each PipelineResult to a callback.
- Window/view changes are debounced (`polling.debounce_ms`) and recompute on
  the last fetched snapshot without refetching.
- Every result carries an increasing `revision`, taken when its inputs are
  read; results overtaken by a newer revision are not delivered.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple, Union

from ..shared.models import RawPoint, ViewMode, WindowToken
from .pipeline import PipelineResult, run_pipeline
from .settings import Settings

log = logging.getLogger(__name__)

Snapshot = Tuple[List[RawPoint], List[RawPoint]]


class Debouncer:
    """
    Coalesce bursts of trigger() calls into one callback invocation.

    Only the arguments of the last trigger within `delay_seconds` are delivered.
    """

    def __init__(self, delay_seconds: float, callback: Callable[..., Any], timer_factory=threading.Timer):
        self.delay_seconds = max(0.0, float(delay_seconds))
        self.callback = callback
        self._timer_factory = timer_factory
        self._timer = None
        self._pending: Optional[Tuple[tuple, dict]] = None
        self._lock = threading.Lock()

    def trigger(self, *args, **kwargs) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = self._timer_factory(self.delay_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, None
            self._timer = None
        if pending is None:
            return
        args, kwargs = pending
        self.callback(*args, **kwargs)

    def flush(self) -> None:
        """Deliver the pending call immediately, if any"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        self._fire()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None


class TimelinePoller:
    """
    Background refresh loop around run_pipeline().

    Args:
        fetch: Callable returning (nav_points, yield_points)
        on_result: Receives every PipelineResult
        settings: Loaded Settings (polling, view and pipeline sections)
        clock: Optional callable returning the reference `now` for each run
    """

    def __init__(
        self,
        fetch: Callable[[], Snapshot],
        on_result: Callable[[PipelineResult], None],
        settings: Settings,
        clock: Optional[Callable[[], Optional[datetime]]] = None,
    ):
        self.fetch = fetch
        self.on_result = on_result
        self.settings = settings
        self.clock = clock or (lambda: None)
        self.logger = logging.getLogger(self.__class__.__name__)

        self.window: WindowToken = settings.view.window
        self.view: ViewMode = settings.view.mode
        self._snapshot: Snapshot = ([], [])
        self._has_snapshot = False
        self._revision = 0
        self._last_result: Optional[PipelineResult] = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._debouncer = Debouncer(settings.polling.debounce_ms / 1000.0, self.recompute)

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def last_result(self) -> Optional[PipelineResult]:
        return self._last_result

    def poll_once(self) -> Optional[PipelineResult]:
        """
        Fetch a fresh snapshot and recompute; on fetch failure keep the previous one.

        Returns None while no fetch has succeeded yet.
        """
        try:
            nav, yld = self.fetch()
            with self._lock:
                self._snapshot = (list(nav or []), list(yld or []))
                self._has_snapshot = True
        except Exception as e:
            self.logger.error(f"Fetch failed, keeping previous snapshot: {e}")
        return self.recompute()

    def recompute(self) -> Optional[PipelineResult]:
        """
        Run the pipeline on the current snapshot and inputs.

        The revision is taken together with the inputs; a run overtaken by a
        newer revision is returned but not delivered to on_result.
        """
        with self._lock:
            if not self._has_snapshot:
                self.logger.warning("No snapshot fetched yet, skipping recompute")
                return None
            nav, yld = self._snapshot
            window, view = self.window, self.view
            self._revision += 1
            revision = self._revision
        result = run_pipeline(nav, yld, window, view, self.settings.pipeline, self.clock())
        result.revision = revision
        with self._lock:
            if self._last_result is not None and self._last_result.revision > revision:
                self.logger.debug(f"Discarding stale result (revision {revision} < {self._last_result.revision})")
                return result
            self._last_result = result
        self.on_result(result)
        return result

    def update_inputs(
        self,
        window: Union[str, WindowToken, None] = None,
        view: Union[str, ViewMode, None] = None,
    ) -> None:
        """
        Change the window and/or view; the recompute is debounced.

        Raises:
            ValueError: On an unknown window or view token
        """
        with self._lock:
            if window is not None:
                self.window = WindowToken.parse(window)
            if view is not None:
                self.view = ViewMode.parse(view)
        self._debouncer.trigger()

    def _loop(self) -> None:
        interval = max(0.1, float(self.settings.polling.interval_seconds))
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception as e:
                self.logger.exception(f"Refresh error: {e}")
            self._stop.wait(interval)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="timeline-poller", daemon=True)
        self._thread.start()
        self.logger.info(f"Polling every {self.settings.polling.interval_seconds}s")
        return self._thread

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        self._debouncer.cancel()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
