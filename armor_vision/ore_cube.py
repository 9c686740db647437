# ore_cube.py
"""Ore-cube detector: neural engine -> decode -> NMS."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

import numpy as np

from armor_vision import draw
from armor_vision.config import OreCubeConfig
from armor_vision.decoder import decode_detections
from armor_vision.detector import Detector, as_bgr
from armor_vision.engine import InferenceEngine
from armor_vision.nms import non_max_suppression


class Engine(Protocol):
    input_size: Tuple[int, int]

    def infer(self, frame_bgr: np.ndarray) -> np.ndarray: ...


@dataclass(frozen=True)
class OreCube:
    x_ctr: float
    y_ctr: float
    w: float
    h: float
    conf: float
    class_id: int
    label: str

    @property
    def corners(self) -> Tuple[Tuple[float, float], ...]:
        x0, y0 = self.x_ctr - self.w / 2.0, self.y_ctr - self.h / 2.0
        x1, y1 = x0 + self.w, y0 + self.h
        return ((x0, y0), (x1, y0), (x1, y1), (x0, y1))


class OreCubeDetector(Detector[OreCube]):
    noun = "cubes"

    def __init__(
        self,
        cfg: Optional[OreCubeConfig] = None,
        engine: Optional[Engine] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger)
        self.cfg = cfg or OreCubeConfig()
        self.engine = engine or InferenceEngine(
            self.cfg.model_path, self.cfg.input_size, self.cfg.use_cuda
        )

    def apply_config(self, cfg: OreCubeConfig) -> None:
        # Thresholds and labels only; the engine stays loaded.
        self.cfg = cfg

    def _label(self, class_id: int) -> str:
        names = self.cfg.class_names
        return names[class_id] if 0 <= class_id < len(names) else str(class_id)

    def _find(self, frame: np.ndarray) -> List[OreCube]:
        bgr = as_bgr(frame)
        raw = self.engine.infer(bgr)
        dets = decode_detections(raw, self.cfg.conf_thresh)
        dets = non_max_suppression(dets, self.cfg.nms_thresh)

        in_w, in_h = self.engine.input_size
        sx = bgr.shape[1] / float(in_w)
        sy = bgr.shape[0] / float(in_h)
        return [
            OreCube(
                x_ctr=d.x_ctr * sx,
                y_ctr=d.y_ctr * sy,
                w=d.w * sx,
                h=d.h * sy,
                conf=d.conf,
                class_id=d.class_id,
                label=self._label(d.class_id),
            )
            for d in dets
        ]

    def _primitives(self, verbose: int) -> List:
        prims: List = []
        for cube in self.targets:
            prims.append(draw.outline(cube.corners, draw.GREEN))
            if verbose > 2:
                x0, y0 = cube.corners[0]
                prims.append(
                    draw.Text(f"{cube.label} {cube.conf:.2f}", (x0, y0 - 6.0), draw.GREEN, 0.5)
                )
        return prims
