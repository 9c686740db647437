# armor_vision/__init__.py
"""Armor-vision package – re-export high-level API."""
from .common import Model, Team, TargetReport                    # noqa: F401
from .config import (                                            # noqa: F401
    ArmorMatchParams, BlobParams, BuffConfig, LightBarParams,
    OreCubeConfig, SnipeConfig, SolverConfig, TrackerConfig,
)
from .decoder import RawDetection, decode_detections             # noqa: F401
from .filters import EKF, Kalman                                  # noqa: F401
from .geometry import Armor, LightBar                             # noqa: F401
from .nms import iou, non_max_suppression                         # noqa: F401
from .pairing import match_armors, pair                           # noqa: F401
from .tracker import ArmorTracker                                 # noqa: F401
from .buff import BuffDetector, BuffTarget, Direction             # noqa: F401
from .guiding_light import GuidingLight, GuidingLightDetector     # noqa: F401
from .ore_cube import OreCube, OreCubeDetector                    # noqa: F401
from .snipe import SnipeDetector                                  # noqa: F401
