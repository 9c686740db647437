# draw.py
"""Overlay primitives. Built off-thread, rendered on the caller's image."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

from armor_vision.common import Point2D

Color = Tuple[int, int, int]

# BGR
GREEN: Color = (0, 255, 0)
RED: Color = (0, 0, 255)
BLUE: Color = (255, 0, 0)
YELLOW: Color = (0, 255, 255)
ORANGE: Color = (0, 165, 255)
WHITE: Color = (255, 255, 255)

_FONT = cv2.FONT_HERSHEY_SIMPLEX
_LABEL_ROW_PX = 30


def _px(pt: Point2D) -> Tuple[int, int]:
    return int(round(pt[0])), int(round(pt[1]))


@dataclass(frozen=True)
class Line:
    pt1: Point2D
    pt2: Point2D
    color: Color = GREEN
    thickness: int = 2

    def draw(self, img: np.ndarray) -> None:
        cv2.line(img, _px(self.pt1), _px(self.pt2), self.color, self.thickness)


@dataclass(frozen=True)
class Circle:
    center: Point2D
    radius: float
    color: Color = YELLOW
    thickness: int = 2   # -1 fills

    def draw(self, img: np.ndarray) -> None:
        cv2.circle(img, _px(self.center), max(1, int(round(self.radius))), self.color, self.thickness)


@dataclass(frozen=True)
class Poly:
    points: Tuple[Point2D, ...]
    color: Color = GREEN
    thickness: int = 2

    def draw(self, img: np.ndarray) -> None:
        pts = np.array([_px(p) for p in self.points], dtype=np.int32).reshape(-1, 1, 2)
        cv2.polylines(img, [pts], True, self.color, self.thickness)


@dataclass(frozen=True)
class Text:
    text: str
    org: Point2D
    color: Color = GREEN
    scale: float = 0.6
    thickness: int = 1

    def draw(self, img: np.ndarray) -> None:
        cv2.putText(img, self.text, _px(self.org), _FONT, self.scale, self.color, self.thickness)


def label(text: str, row: int = 0, color: Color = GREEN) -> Text:
    """Status line anchored at the top-left corner."""
    return Text(text, (10.0, float(_LABEL_ROW_PX * (row + 1))), color, 0.7, 2)


def render(img: np.ndarray, prims: Iterable) -> None:
    for prim in prims:
        prim.draw(img)


def outline(points: Sequence[Point2D], color: Color = GREEN) -> Poly:
    return Poly(tuple((float(x), float(y)) for x, y in points), color)
