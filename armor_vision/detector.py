# detector.py
"""Shared orchestration for every detector variant."""
from __future__ import annotations

import logging
from typing import Generic, List, Optional, TypeVar

import cv2
import numpy as np

from armor_vision import draw
from armor_vision.common import Team
from armor_vision.helpers import Timer

T = TypeVar("T")


def team_mask(frame_bgr: np.ndarray, enemy_team: Team, threshold: int) -> np.ndarray:
    """Binary mask of pixels dominated by the enemy colour channel."""
    b, _, r = cv2.split(frame_bgr)
    if enemy_team is Team.RED:
        diff = cv2.subtract(r, b)
    elif enemy_team is Team.BLUE:
        diff = cv2.subtract(b, r)
    else:
        diff = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2GRAY)
    _, mask = cv2.threshold(diff, threshold, 255, cv2.THRESH_BINARY)
    return mask


def as_bgr(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2 or (frame.ndim == 3 and frame.shape[2] == 1):
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.ndim == 3 and frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame


class Detector(Generic[T]):
    """
    ``detect(frame)`` clears and rebuilds ``targets`` in place and never
    raises; ``visualize_result(output, verbose)`` only draws.

    verbose: 0 nothing, 1 outlines, 2 adds a count/timing label,
    3+ adds every primitive the variant knows how to draw.
    """

    noun = "targets"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.name = type(self).__name__
        self.logger = logger or logging.getLogger(f"{__name__}.{self.name}")
        self.targets: List[T] = []
        self.duration = Timer(f"Find {self.noun}", self.logger)

    # --------------- Variant hooks ---------------
    def _find(self, frame: np.ndarray) -> List[T]:
        raise NotImplementedError

    def _primitives(self, verbose: int) -> List:
        return []

    def apply_config(self, cfg) -> None:
        raise NotImplementedError

    # --------------- Public API ---------------------
    def detect(self, frame: Optional[np.ndarray]) -> List[T]:
        self.targets.clear()
        if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
            self.logger.warning("[%s] Empty frame", self.name)
            return self.targets

        self.duration.start()
        try:
            found = self._find(frame)
        except Exception:  # noqa: BLE001
            self.logger.exception("[%s] Detection failed", self.name)
            found = []
        self.duration.calc()

        self.targets.extend(found)
        if self.targets:
            self.logger.debug("[%s] Found %d %s", self.name, len(self.targets), self.noun)
        else:
            self.logger.debug("[%s] No %s", self.name, self.noun)
        return self.targets

    def visualize_result(self, output: np.ndarray, verbose: int = 1) -> None:
        if verbose <= 0:
            return
        prims = list(self._primitives(verbose))
        if verbose > 1:
            prims.append(
                draw.label(f"{len(self.targets)} {self.noun} in {self.duration.count():.1f} ms")
            )
        draw.render(output, prims)
