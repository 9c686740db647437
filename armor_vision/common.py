# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

Point2D = Tuple[float, float]
# Same layout as cv2.minAreaRect: ((cx, cy), (w, h), angle_deg)
RotatedRect = Tuple[Point2D, Tuple[float, float], float]


class Team(str, Enum):
    RED = "red"
    BLUE = "blue"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union[str, "Team"]) -> "Team":
        if isinstance(value, Team):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Model(Enum):
    UNKNOWN = 0
    HERO = 1
    ENGINEER = 2
    INFANTRY_3 = 3
    INFANTRY_4 = 4
    INFANTRY_5 = 5
    SENTRY = 6
    OUTPOST = 7
    BASE = 8


@dataclass(frozen=True)
class TargetReport:
    """
    A single-cycle snapshot of tracker state.
    Positions are metres in the gimbal frame (x forward, y left, z up);
    the aim triple is (yaw, pitch, distance) at the lead-time position.
    """
    t_capture: float
    position_m: Tuple[float, float, float]
    future_position_m: Tuple[float, float, float]
    velocity_m_s: Tuple[float, float]
    aim: Tuple[float, float, float]
    model: Model
    age_frames: int
    coast_frames: int
    track_id: Optional[int]
