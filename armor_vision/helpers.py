# helpers.py
"""Small utility classes that don’t fit elsewhere."""
from __future__ import annotations

import logging
import math
import time
from typing import Optional


class Timer:
    """
    Scoped stopwatch for per-frame instrumentation.

    Either call ``start()`` / ``calc()`` around a block or use the instance as
    a context manager. The last measured duration stays readable through
    ``count()`` until the next measurement.
    """

    def __init__(self, label: str, logger: Optional[logging.Logger] = None) -> None:
        self.label = label
        self.logger = logger or logging.getLogger(__name__)
        self._start: Optional[float] = None
        self._elapsed_ms = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def calc(self, label: Optional[str] = None) -> float:
        """Stop the watch, log and return the elapsed milliseconds."""
        if self._start is None:
            return self._elapsed_ms
        self._elapsed_ms = (time.perf_counter() - self._start) * 1000.0
        self._start = None
        self.logger.debug("[Timer] %s: %.2f ms", label or self.label, self._elapsed_ms)
        return self._elapsed_ms

    def count(self) -> float:
        return self._elapsed_ms

    def __enter__(self) -> "Timer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.calc()


def wrap_angle(rad: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    wrapped = math.atan2(math.sin(rad), math.cos(rad))
    return math.pi if wrapped == -math.pi else wrapped


def wrap_degrees(deg: float) -> float:
    """Wrap an angle into (-180, 180]."""
    wrapped = (deg + 180.0) % 360.0 - 180.0
    return 180.0 if wrapped == -180.0 else wrapped
