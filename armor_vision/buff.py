# buff.py
"""Energy-mechanism (buff) detector: rotation center, target armor, spin direction."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import cv2
import numpy as np

from armor_vision import draw
from armor_vision.common import Point2D, RotatedRect, Team
from armor_vision.config import BuffConfig
from armor_vision.detector import Detector, as_bgr, team_mask
from armor_vision.helpers import wrap_degrees

_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))


class Direction(Enum):
    UNKNOWN = 0
    CLOCKWISE = 1
    ANTICLOCKWISE = 2


@dataclass(frozen=True)
class BuffTarget:
    center: Point2D                 # the "R" logo
    armor: RotatedRect
    vertices: Tuple[Point2D, ...]
    angle: float                    # armor polar angle around center, deg, CCW on screen
    direction: Direction


def _rect_aspect(rect: RotatedRect) -> float:
    w, h = rect[1]
    short = max(min(w, h), 1e-6)
    return max(w, h) / short


def _solidity(contour: np.ndarray) -> float:
    hull_area = cv2.contourArea(cv2.convexHull(contour))
    if hull_area <= 0:
        return 1.0
    return cv2.contourArea(contour) / hull_area


class BuffDetector(Detector[BuffTarget]):
    noun = "buffs"

    def __init__(
        self,
        cfg: Optional[BuffConfig] = None,
        enemy_team: Optional[Team] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger)
        self.cfg = cfg or BuffConfig()
        self.enemy_team = Team.parse(enemy_team if enemy_team is not None else self.cfg.enemy_team)
        self.direction = Direction.UNKNOWN
        self._last_angle: Optional[float] = None
        self.armor_candidates: List[RotatedRect] = []

    def set_enemy_team(self, enemy_team: Team) -> None:
        self.enemy_team = Team.parse(enemy_team)
        self.logger.debug("[%s] Enemy team: %s", self.name, self.enemy_team.value)

    def apply_config(self, cfg: BuffConfig) -> None:
        self.cfg = cfg
        self.set_enemy_team(Team.parse(cfg.enemy_team))

    # --------------- Internal helpers ---------------
    def _is_armor(self, rect: RotatedRect) -> bool:
        area = rect[1][0] * rect[1][1]
        return (
            self.cfg.min_armor_area <= area <= self.cfg.max_armor_area
            and self.cfg.min_armor_aspect_ratio <= _rect_aspect(rect) <= self.cfg.max_armor_aspect_ratio
        )

    def _is_center(self, rect: RotatedRect) -> bool:
        area = rect[1][0] * rect[1][1]
        return (
            self.cfg.min_center_area <= area <= self.cfg.max_center_area
            and _rect_aspect(rect) <= self.cfg.max_center_aspect_ratio
        )

    def update_direction(self, angle: float) -> Direction:
        """Estimate the spin direction from consecutive target angles."""
        if self._last_angle is not None:
            delta = wrap_degrees(angle - self._last_angle)
            if self.cfg.direction_deadband_deg < abs(delta) <= self.cfg.max_angle_jump_deg:
                self.direction = Direction.ANTICLOCKWISE if delta > 0 else Direction.CLOCKWISE
        self._last_angle = angle
        return self.direction

    def _find(self, frame: np.ndarray) -> List[BuffTarget]:
        self.armor_candidates = []
        mask = team_mask(as_bgr(frame), self.enemy_team, self.cfg.binary_threshold)
        if self.cfg.dilate_iterations > 0:
            mask = cv2.dilate(mask, _KERNEL, iterations=self.cfg.dilate_iterations)

        contours, hierarchy = cv2.findContours(mask, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_SIMPLE)
        if hierarchy is None or not contours:
            return []
        hierarchy = hierarchy[0]

        centers: List[RotatedRect] = []
        armors: List[Tuple[RotatedRect, float]] = []   # (rect, blade solidity)
        for idx, contour in enumerate(contours):
            _, _, first_child, parent = hierarchy[idx]
            rect = cv2.minAreaRect(contour)
            if parent >= 0:
                if self._is_armor(rect):
                    armors.append((rect, _solidity(contours[parent])))
            elif first_child < 0 and self._is_center(rect):
                centers.append(rect)

        self.armor_candidates = [r for r, _ in armors]
        if not centers or not armors:
            return []

        center_rect = min(centers, key=_rect_aspect)
        target_rect, _ = min(armors, key=lambda a: a[1])

        cx, cy = center_rect[0]
        ax, ay = target_rect[0]
        angle = math.degrees(math.atan2(-(ay - cy), ax - cx))
        direction = self.update_direction(angle)

        vertices = tuple((float(x), float(y)) for x, y in cv2.boxPoints(target_rect))
        return [
            BuffTarget(
                center=(float(cx), float(cy)),
                armor=target_rect,
                vertices=vertices,
                angle=angle,
                direction=direction,
            )
        ]

    def _primitives(self, verbose: int) -> List:
        prims: List = []
        if verbose > 2:
            for rect in self.armor_candidates:
                prims.append(draw.outline(cv2.boxPoints(rect), draw.ORANGE))
        for buff in self.targets:
            prims.append(draw.outline(buff.vertices, draw.GREEN))
            prims.append(draw.Circle(buff.center, 6, draw.YELLOW, 2))
            if verbose > 2:
                prims.append(draw.Line(buff.center, buff.armor[0], draw.YELLOW, 1))
                prims.append(
                    draw.Text(
                        f"{buff.angle:.1f} {buff.direction.name}",
                        (buff.center[0] + 10.0, buff.center[1] - 10.0),
                        draw.YELLOW,
                        0.5,
                    )
                )
        return prims
