# solver.py
"""PnP: armor corners -> gimbal-frame position -> (yaw, pitch, distance)."""
from __future__ import annotations

import math
from typing import Optional

import cv2
import numpy as np

from armor_vision.config import SolverConfig
from armor_vision.geometry import Armor


def armor_object_points(width_m: float, height_m: float) -> np.ndarray:
    """Armor corners in the armor frame, ordered TL, TR, BR, BL (y down)."""
    if not (width_m > 0 and height_m > 0):
        raise ValueError(f"Armor size must be positive, got {width_m}x{height_m}")
    hw, hh = 0.5 * width_m, 0.5 * height_m
    return np.array(
        [[-hw, -hh, 0.0], [hw, -hh, 0.0], [hw, hh, 0.0], [-hw, hh, 0.0]],
        dtype=np.float64,
    )


def camera_to_gimbal(t_cam: np.ndarray) -> np.ndarray:
    """OpenCV camera frame (x right, y down, z fwd) -> gimbal (x fwd, y left, z up)."""
    xc, yc, zc = np.asarray(t_cam, dtype=np.float64).reshape(3)
    return np.array([zc, -xc, -yc])


def to_observation(p: np.ndarray) -> np.ndarray:
    x, y, z = np.asarray(p, dtype=np.float64).reshape(3)
    return np.array([math.atan2(y, x), math.atan2(z, math.hypot(x, y)), math.sqrt(x * x + y * y + z * z)])


class ArmorPoseSolver:
    def __init__(self, cfg: Optional[SolverConfig] = None) -> None:
        self.cfg = cfg or SolverConfig()
        self.K = np.asarray(self.cfg.intrinsics.camera_matrix, dtype=np.float64).reshape(3, 3)
        self.dist = np.asarray(self.cfg.intrinsics.dist_coeffs, dtype=np.float64).reshape(-1)
        self.object_points = armor_object_points(self.cfg.armor.width_m, self.cfg.armor.height_m)
        self.offset = (
            np.asarray(self.cfg.gimbal_offset_m, dtype=np.float64).reshape(3)
            if self.cfg.gimbal_offset_m is not None
            else np.zeros(3)
        )

    def solve_points(self, image_points: np.ndarray) -> np.ndarray:
        """Camera-frame translation of the armor center. Raises RuntimeError on failure."""
        img = np.asarray(image_points, dtype=np.float64).reshape(4, 2)
        ok, _, tvec = cv2.solvePnP(
            self.object_points, img, self.K, self.dist, flags=cv2.SOLVEPNP_ITERATIVE
        )
        if not ok or not np.all(np.isfinite(tvec)):
            raise RuntimeError("solvePnP failed")
        return np.asarray(tvec, dtype=np.float64).reshape(3)

    def locate(self, armor: Armor) -> np.ndarray:
        return camera_to_gimbal(self.solve_points(armor.image_points())) + self.offset

    def observe(self, armor: Armor) -> np.ndarray:
        """[yaw, pitch, distance] of the armor as seen from the gimbal."""
        return to_observation(self.locate(armor))
