# guiding_light.py
"""Guiding-light detector built on cv2.SimpleBlobDetector."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from armor_vision import draw
from armor_vision.common import Point2D
from armor_vision.config import BlobParams
from armor_vision.detector import Detector


@dataclass(frozen=True)
class GuidingLight:
    center: Point2D
    size: float   # blob diameter, px

    @classmethod
    def from_keypoint(cls, kpt: cv2.KeyPoint) -> "GuidingLight":
        return cls((float(kpt.pt[0]), float(kpt.pt[1])), float(kpt.size))


class GuidingLightDetector(Detector[GuidingLight]):
    noun = "lights"

    def __init__(self, params: Optional[BlobParams] = None, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.params = params or BlobParams()
        self.detector = cv2.SimpleBlobDetector_create(self.params.to_cv())
        self.logger.debug("[%s] Constructed.", self.name)

    def reset_by_params(self, params: BlobParams) -> None:
        """Swap in new blob parameters. Rejected parameters leave the old detector running."""
        detector = cv2.SimpleBlobDetector_create(params.to_cv())
        self.detector = detector
        self.params = params
        self.logger.debug("[%s] Parameter has been reset.", self.name)

    def apply_config(self, cfg: BlobParams) -> None:
        self.reset_by_params(cfg)

    def _find(self, frame: np.ndarray) -> List[GuidingLight]:
        key_points = self.detector.detect(frame)
        return [GuidingLight.from_keypoint(k) for k in key_points]

    def _primitives(self, verbose: int) -> List:
        prims: List = []
        for light in self.targets:
            prims.append(draw.Circle(light.center, light.size / 2.0, draw.GREEN, 2))
            if verbose > 2:
                prims.append(draw.Circle(light.center, 2, draw.RED, -1))
                prims.append(
                    draw.Text(
                        f"{light.size:.0f}",
                        (light.center[0] + light.size / 2.0, light.center[1]),
                        draw.GREEN,
                        0.5,
                    )
                )
        return prims
