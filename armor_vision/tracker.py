# tracker.py
"""Single-armor EKF tracker with variable Δt **and live-tuning**."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from armor_vision.common import Model, TargetReport
from armor_vision.config import TrackerConfig
from armor_vision.filters import EKF, motion_model
from armor_vision.solver import to_observation

logger = logging.getLogger(__name__)


class ArmorTracker:
    _id_counter = 0

    # ------------------------------------------------------------------ #
    #   I N I T
    # ------------------------------------------------------------------ #
    def __init__(self, cfg: TrackerConfig, nominal_dt: float):
        self.cfg = cfg
        self.nominal_dt = nominal_dt
        self.ekf = EKF(cfg, dt=nominal_dt)

        self.initialized = False
        self.last_time: Optional[float] = None
        self.age_frames = 0
        self.coast_frames = 0
        self.track_id: Optional[int] = None
        self.model = Model.UNKNOWN

    # ------------------------------------------------------------------ #
    #   S T A T I C   ID
    # ------------------------------------------------------------------ #
    @classmethod
    def _next_id(cls) -> int:
        cls._id_counter += 1
        return cls._id_counter

    # ------------------------------------------------------------------ #
    #   N O M I N A L   Δt  U P D A T E
    # ------------------------------------------------------------------ #
    def update_nominal_dt(self, dt: float) -> None:
        """If the frame rate changed, adjust F and Q."""
        if dt > 0 and abs(self.nominal_dt - dt) > 1e-6:
            self.nominal_dt = dt
            self.ekf.set_dt(dt)

    # ------------------------------------------------------------------ #
    #   L I V E   T U N I N G   A P I
    # ------------------------------------------------------------------ #
    def apply_tuning(
        self,
        *,
        predict_lead_time_s: float | None = None,
        process_noise_std: float | None = None,
        distance_noise_std: float | None = None,
        angle_noise_std: float | None = None,
    ) -> None:
        """
        Dynamically update key parameters while running.
        Only rebuilds matrices that actually changed.
        """
        if predict_lead_time_s is not None:
            self.cfg.predict_lead_time_s = float(predict_lead_time_s)

        changed = False
        if process_noise_std is not None and process_noise_std > 0:
            self.cfg.process_noise_std = float(process_noise_std)
            changed = True
        if distance_noise_std is not None and distance_noise_std > 0:
            self.cfg.distance_noise_std = float(distance_noise_std)
            changed = True
        if angle_noise_std is not None and angle_noise_std > 0:
            self.cfg.yaw_noise_std = self.cfg.pitch_noise_std = float(angle_noise_std)
            changed = True
        if changed:
            self.ekf.set_noise()

    # ------------------------------------------------------------------ #
    #   P R E D I C T   +   U P D A T E
    # ------------------------------------------------------------------ #
    def predict_and_update(
        self,
        observation: Optional[Sequence[float]],
        timestamp: float,
        model: Optional[Model] = None,
    ) -> None:
        """
        observation: (yaw, pitch, distance) or None when the armor was not seen.
        """
        if not self.initialized:
            if observation is not None:
                # First detection initializes state.
                self.ekf.init(observation)
                self.track_id = self._next_id()
                self.initialized = True
                self.age_frames = 1
                self.coast_frames = 0
                if model is not None:
                    self.model = model
            self.last_time = timestamp
            return

        # ----- Δt clamping + predict -----
        dt = self.nominal_dt
        if self.last_time is not None:
            actual_dt = timestamp - self.last_time
            if actual_dt > 1e-6:
                dt = float(np.clip(actual_dt, 0.5 * self.nominal_dt, 2.0 * self.nominal_dt))
        self.ekf.predict(dt)

        # ----- conditional update -----
        if observation is not None:
            self.ekf.update(observation)
            self.age_frames += 1
            self.coast_frames = 0
            if model is not None and model is not Model.UNKNOWN:
                self.model = model
        else:
            self.coast_frames += 1
            if self.coast_frames == self.cfg.max_coast_frames + 1:
                logger.debug("[Tracker] Track %s lost after %d frames", self.track_id, self.coast_frames)

        self.last_time = timestamp

    @property
    def is_lost(self) -> bool:
        return self.initialized and self.coast_frames > self.cfg.max_coast_frames

    # ------------------------------------------------------------------ #
    #   R E P O R T
    # ------------------------------------------------------------------ #
    def get_report(self) -> Optional[TargetReport]:
        if not self.initialized or self.last_time is None:
            return None
        state = self.ekf.state
        x, vx, y, vy, z = state
        fx, _, fy, _, fz = motion_model(state, self.cfg.predict_lead_time_s).flatten()
        aim = to_observation(np.array([fx, fy, fz]))
        return TargetReport(
            t_capture=self.last_time,
            position_m=(float(x), float(y), float(z)),
            future_position_m=(float(fx), float(fy), float(fz)),
            velocity_m_s=(float(vx), float(vy)),
            aim=(float(aim[0]), float(aim[1]), float(aim[2])),
            model=self.model,
            age_frames=self.age_frames,
            coast_frames=self.coast_frames,
            track_id=self.track_id,
        )
