# geometry.py
"""Light-bar and armor-plate value types built from oriented rectangles."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import cv2
import numpy as np

from armor_vision import draw
from armor_vision.common import Model, Point2D, RotatedRect

EPS = 1e-6


def _midpoint(a: Point2D, b: Point2D) -> Point2D:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def _dist(a: Point2D, b: Point2D) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


@dataclass(frozen=True)
class LightBar:
    """
    One lit LED strip, described by the rectangle fitted around its blob.

    ``length``/``width`` are the long and short sides regardless of how the
    rectangle reported them, both floored at ``EPS``; ``vertices`` keeps the
    corner order of ``cv2.boxPoints``.
    """
    center: Point2D
    angle: float
    length: float
    width: float
    vertices: Tuple[Point2D, Point2D, Point2D, Point2D]

    @classmethod
    def from_rect(cls, rect: RotatedRect) -> "LightBar":
        (cx, cy), (w, h), angle = rect
        box = ((float(cx), float(cy)), (float(w), float(h)), float(angle))
        pts = cv2.boxPoints(box)
        vertices = tuple((float(x), float(y)) for x, y in pts)
        return cls(
            center=(float(cx), float(cy)),
            angle=float(angle),
            length=max(float(w), float(h), EPS),
            width=max(min(float(w), float(h)), EPS),
            vertices=vertices,  # type: ignore[arg-type]
        )

    @property
    def area(self) -> float:
        return self.length * self.width

    @property
    def aspect_ratio(self) -> float:
        return self.length / self.width

    def _endpoints(self) -> Tuple[Point2D, Point2D]:
        v0, v1, v2, v3 = self.vertices
        # The long axis joins the midpoints of the two short edges.
        if _dist(v0, v1) >= _dist(v1, v2):
            a, b = _midpoint(v1, v2), _midpoint(v3, v0)
        else:
            a, b = _midpoint(v0, v1), _midpoint(v2, v3)
        return (a, b) if a[1] <= b[1] else (b, a)

    @property
    def top(self) -> Point2D:
        return self._endpoints()[0]

    @property
    def bottom(self) -> Point2D:
        return self._endpoints()[1]

    @property
    def tilt(self) -> float:
        """Signed angle (deg) between the long axis and the image vertical."""
        top, bottom = self._endpoints()
        dx, dy = bottom[0] - top[0], bottom[1] - top[1]
        if dx == 0.0 and dy == 0.0:
            return 0.0
        return math.degrees(math.atan2(dx, dy))


class Armor:
    """An armor plate inferred from a left and a right light bar."""

    def __init__(self, left: LightBar, right: LightBar) -> None:
        self.left = left
        self.right = right
        self.center: Point2D = _midpoint(left.center, right.center)
        self.angle: float = (left.angle + right.angle) / 2.0
        self._model = Model.UNKNOWN

    @property
    def model(self) -> Model:
        return self._model

    def get_model(self) -> Model:
        return self._model

    def set_model(self, model: Model) -> None:
        """Assign the classified model. A different second assignment is rejected."""
        if self._model is not Model.UNKNOWN and model is not self._model:
            raise RuntimeError(
                f"Armor model already set to {self._model.name}, refusing {model.name}"
            )
        self._model = model

    @property
    def vertices(self) -> Tuple[Point2D, Point2D, Point2D, Point2D]:
        """Corners as (top-left, top-right, bottom-right, bottom-left)."""
        return (self.left.top, self.right.top, self.right.bottom, self.left.bottom)

    @property
    def width(self) -> float:
        return _dist(self.left.center, self.right.center)

    def image_points(self) -> np.ndarray:
        return np.array(self.vertices, dtype=np.float64)

    def visualize_object(self, detail: bool = False) -> List:
        prims: List = [draw.outline(self.vertices, draw.GREEN)]
        if detail:
            prims.append(draw.Line(self.left.top, self.left.bottom, draw.YELLOW, 2))
            prims.append(draw.Line(self.right.top, self.right.bottom, draw.YELLOW, 2))
            prims.append(draw.Circle(self.center, 3, draw.RED, -1))
            prims.append(
                draw.Text(
                    f"{self._model.name} {self.angle:.1f}",
                    (self.left.top[0], self.left.top[1] - 8.0),
                    draw.GREEN,
                    0.5,
                )
            )
        return prims

    def __repr__(self) -> str:
        cx, cy = self.center
        return f"<Armor center=({cx:.1f}, {cy:.1f}) angle={self.angle:.1f} model={self._model.name}>"
