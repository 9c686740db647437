# config.py
"""Typed configuration blobs for the whole pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import cv2

_FLT_MAX = 3.4028234663852886e38


# ------------------ Guiding light -------------------
@dataclass
class BlobParams:
    """Mirror of ``cv2.SimpleBlobDetector_Params``."""
    threshold_step: float = 10.0
    min_threshold: float = 0.0
    max_threshold: float = 100.0
    min_repeatability: int = 2
    min_dist_between_blobs: float = 10.0

    filter_by_color: bool = True
    blob_color: int = 0

    filter_by_area: bool = True
    min_area: float = 200.0
    max_area: float = 5000.0

    filter_by_circularity: bool = False
    min_circularity: float = 0.1
    max_circularity: float = _FLT_MAX

    filter_by_inertia: bool = True
    min_inertia_ratio: float = 0.2
    max_inertia_ratio: float = _FLT_MAX

    filter_by_convexity: bool = True
    min_convexity: float = 0.65
    max_convexity: float = _FLT_MAX

    def to_cv(self) -> cv2.SimpleBlobDetector_Params:
        p = cv2.SimpleBlobDetector_Params()
        p.thresholdStep = float(self.threshold_step)
        p.minThreshold = float(self.min_threshold)
        p.maxThreshold = float(self.max_threshold)
        p.minRepeatability = int(self.min_repeatability)
        p.minDistBetweenBlobs = float(self.min_dist_between_blobs)
        p.filterByColor = bool(self.filter_by_color)
        p.blobColor = int(self.blob_color)
        p.filterByArea = bool(self.filter_by_area)
        p.minArea = float(self.min_area)
        p.maxArea = float(self.max_area)
        p.filterByCircularity = bool(self.filter_by_circularity)
        p.minCircularity = float(self.min_circularity)
        p.maxCircularity = float(self.max_circularity)
        p.filterByInertia = bool(self.filter_by_inertia)
        p.minInertiaRatio = float(self.min_inertia_ratio)
        p.maxInertiaRatio = float(self.max_inertia_ratio)
        p.filterByConvexity = bool(self.filter_by_convexity)
        p.minConvexity = float(self.min_convexity)
        p.maxConvexity = float(self.max_convexity)
        return p


# -------------------- Light bars --------------------
@dataclass
class LightBarParams:
    binary_threshold: int = 100       # on the enemy-colour channel difference
    min_area: float = 20.0            # px²
    max_area: float = 5000.0
    min_aspect_ratio: float = 1.5
    max_aspect_ratio: float = 15.0
    max_tilt_deg: float = 40.0        # long axis vs. image vertical


@dataclass
class ArmorMatchParams:
    max_tilt_diff_deg: float = 8.0
    max_length_ratio: float = 1.6
    max_center_offset_ratio: float = 0.8   # |dy| / mean bar length
    min_spacing_ratio: float = 0.8         # center distance / mean bar length
    max_spacing_ratio: float = 5.0


# ---------------------- Snipe -----------------------
@dataclass
class SnipeConfig:
    enemy_team: str = "blue"
    light_bar: LightBarParams = field(default_factory=LightBarParams)
    match: ArmorMatchParams = field(default_factory=ArmorMatchParams)
    dilate_iterations: int = 1


# ----------------------- Buff -----------------------
@dataclass
class BuffConfig:
    enemy_team: str = "blue"
    binary_threshold: int = 100
    dilate_iterations: int = 1
    min_armor_area: float = 300.0
    max_armor_area: float = 8000.0
    min_armor_aspect_ratio: float = 1.0
    max_armor_aspect_ratio: float = 2.5
    min_center_area: float = 50.0
    max_center_area: float = 1500.0
    max_center_aspect_ratio: float = 1.5
    direction_deadband_deg: float = 0.5   # smaller deltas are treated as jitter
    max_angle_jump_deg: float = 30.0      # bigger deltas mean the target blade changed


# --------------------- Ore cube ---------------------
@dataclass
class OreCubeConfig:
    model_path: str = "runtime/RMUT2022_OreCube.onnx"
    input_size: Tuple[int, int] = (640, 640)   # (width, height)
    conf_thresh: float = 0.5
    nms_thresh: float = 0.45
    use_cuda: bool = False
    class_names: List[str] = field(default_factory=lambda: ["ore_cube"])


# ---------------------- Tracker ---------------------
@dataclass
class TrackerConfig:
    # Lead time for the aim point (s)
    predict_lead_time_s: float = 0.1
    # Measurement noise on [yaw, pitch, distance]
    yaw_noise_std: float = 0.01         # rad
    pitch_noise_std: float = 0.01       # rad
    distance_noise_std: float = 0.05    # m
    # Process noise
    process_noise_std: float = 2.0      # m/s² (horizontal)
    height_noise_std: float = 0.05      # m/√s
    # Initial covariance
    initial_position_std: float = 0.1   # m
    initial_velocity_error_std: float = 1.0  # m/s
    # Variance cap while coasting
    max_variance: float = 100.0
    max_coast_frames: int = 30


# ---------------------- Camera ----------------------
@dataclass
class CameraIntrinsics:
    camera_matrix: List[List[float]] = field(
        default_factory=lambda: [
            [1280.0, 0.0, 640.0],
            [0.0, 1280.0, 512.0],
            [0.0, 0.0, 1.0],
        ]
    )
    dist_coeffs: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0, 0.0])


@dataclass
class ArmorSize:
    width_m: float = 0.135    # light-bar spacing, small armor
    height_m: float = 0.055   # light-bar length


@dataclass
class SolverConfig:
    intrinsics: CameraIntrinsics = field(default_factory=CameraIntrinsics)
    armor: ArmorSize = field(default_factory=ArmorSize)
    # Optional fixed offset camera -> gimbal, metres in gimbal frame
    gimbal_offset_m: Optional[List[float]] = None
