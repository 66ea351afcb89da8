"""
Background analysis scheduling with per-file debounce.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional

from .service import SuggestionService
from .utils import logger


DEFAULT_INTERVAL_MS = 5000


class AnalysisScheduler:
    """Runs analyses off the caller's thread, at most once per interval per file.

    A request that arrives before the interval has elapsed is deferred
    until it has; a newer deferred request for the same file replaces the
    older one.
    """

    def __init__(
        self,
        service: SuggestionService,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_workers: int = 2,
    ):
        self.service = service
        self.interval = max(0, interval_ms) / 1000.0
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="codehint")
        self._lock = threading.Lock()
        self._last_analysis: Dict[str, float] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._stopped = False

    def schedule(self, file_path: str, content: str) -> Optional[Future]:
        """Analyze now if the file is due, otherwise defer it.

        Returns the future of an immediate analysis, or None when deferred
        or after shutdown.
        """
        file_path = str(file_path)
        now = time.monotonic()

        with self._lock:
            if self._stopped:
                return None

            last = self._last_analysis.get(file_path)
            remaining = 0.0 if last is None else self.interval - (now - last)

            pending = self._timers.pop(file_path, None)
            if pending is not None:
                pending.cancel()

            if remaining > 0:
                timer = threading.Timer(remaining, self._run_deferred, args=(file_path, content))
                timer.daemon = True
                self._timers[file_path] = timer
                timer.start()
                logger.debug(f"Deferred analysis of {file_path} by {remaining:.2f}s")
                return None

        return self.analyze_now(file_path, content)

    def analyze_now(self, file_path: str, content: str) -> Optional[Future]:
        """Submit an analysis to the worker pool without debouncing."""
        file_path = str(file_path)
        with self._lock:
            if self._stopped:
                return None
            self._last_analysis[file_path] = time.monotonic()
            return self._executor.submit(self._run, file_path, content)

    def last_analysis_time(self, file_path: str) -> Optional[float]:
        with self._lock:
            return self._last_analysis.get(str(file_path))

    def pending(self) -> int:
        """Number of deferred analyses waiting on a timer."""
        with self._lock:
            return len(self._timers)

    def shutdown(self, wait: bool = True):
        """Cancel deferred work and stop the worker pool."""
        with self._lock:
            self._stopped = True
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancel()
        self._executor.shutdown(wait=wait)

    def _run_deferred(self, file_path: str, content: str):
        with self._lock:
            if self._timers.get(file_path) is threading.current_thread():
                del self._timers[file_path]
        self.analyze_now(file_path, content)

    def _run(self, file_path: str, content: str):
        try:
            return self.service.analyze(file_path, content)
        except Exception as e:
            logger.error(f"Analysis of {file_path} failed: {e}")
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
