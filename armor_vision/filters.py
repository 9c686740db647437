# filters.py
"""
Recursive state estimators for a tracked armor.

``Kalman`` is a plain linear filter, ``EKF`` the extended variant used for
aiming. Both sit on top of filterpy and share the same fail-closed update:
a singular innovation covariance or a non-finite result leaves the predicted
state and covariance in place.

EKF model
---------
State ``[x, vx, y, vy, z]`` in the gimbal frame (x forward, y left, z up,
metres). Constant velocity in the horizontal plane, constant height.
Observation ``[yaw, pitch, distance]``:

    yaw      = atan2(y, x)
    pitch    = atan2(z, sqrt(x² + y²))
    distance = sqrt(x² + y² + z²)
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Protocol, Sequence

import numpy as np
from filterpy.common import Q_discrete_white_noise
from filterpy.kalman import ExtendedKalmanFilter, KalmanFilter

from armor_vision.config import TrackerConfig
from armor_vision.helpers import wrap_angle

logger = logging.getLogger(__name__)

DIM_X = 5
DIM_Z = 3
_MIN_RANGE = 1e-6


class StateFilter(Protocol):
    def predict(self) -> np.ndarray: ...

    def update(self, z: Sequence[float]) -> np.ndarray: ...


# ------------------------------------------------------------------ #
#   S H A R E D   G U A R D
# ------------------------------------------------------------------ #
_UPDATE_FIELDS = ("x", "P", "x_post", "P_post", "K", "y", "S", "SI")


def _snapshot(kf) -> dict:
    return {name: np.copy(getattr(kf, name)) for name in _UPDATE_FIELDS if hasattr(kf, name)}


def _restore(kf, saved: dict) -> None:
    for name, value in saved.items():
        setattr(kf, name, value)


def _guarded_update(kf, step: Callable[[], None], log: logging.Logger) -> bool:
    """
    Run ``step``; on numeric failure restore the prior and return False.

    The filter's post-update bookkeeping (``x_post``, ``P_post``, gain,
    residual, innovation covariance) is rolled back with the state.
    """
    saved = _snapshot(kf)
    try:
        step()
    except np.linalg.LinAlgError as exc:
        _restore(kf, saved)
        log.warning("[Filter] Singular innovation covariance, keeping prediction: %s", exc)
        return False
    if not (np.all(np.isfinite(kf.x)) and np.all(np.isfinite(kf.P))):
        _restore(kf, saved)
        log.warning("[Filter] Non-finite correction, keeping prediction")
        return False
    return True


def cap_variance(P: np.ndarray, max_variance: float) -> np.ndarray:
    """Rescale rows/cols so no diagonal entry exceeds ``max_variance``."""
    d = np.diag(P)
    if max_variance <= 0 or np.all(d <= max_variance):
        return P
    s = np.ones_like(d)
    over = d > max_variance
    s[over] = np.sqrt(max_variance / d[over])
    return P * np.outer(s, s)


# ------------------------------------------------------------------ #
#   L I N E A R
# ------------------------------------------------------------------ #
class Kalman:
    """Linear Kalman filter with caller-supplied F/H/Q/R."""

    def __init__(self, states: int, measurements: int, inputs: int = 0) -> None:
        self.kf = KalmanFilter(dim_x=states, dim_z=measurements, dim_u=inputs)
        self.last_update_ok = True

    @property
    def state(self) -> np.ndarray:
        return self.kf.x.flatten()

    @property
    def covariance(self) -> np.ndarray:
        return self.kf.P.copy()

    def predict(self, u: Optional[np.ndarray] = None) -> np.ndarray:
        self.kf.predict(u=u)
        return self.state

    def update(self, z: Sequence[float]) -> np.ndarray:
        zz = np.asarray(z, dtype=float).reshape(self.kf.dim_z, 1)
        self.last_update_ok = _guarded_update(self.kf, lambda: self.kf.update(zz), logger)
        return self.state


# ------------------------------------------------------------------ #
#   M O D E L   F U N C T I O N S
# ------------------------------------------------------------------ #
def motion_model(x: np.ndarray, dt: float) -> np.ndarray:
    out = np.array(x, dtype=float).reshape(DIM_X, 1)
    out[0, 0] += out[1, 0] * dt
    out[2, 0] += out[3, 0] * dt
    return out


def motion_jacobian(x: np.ndarray, dt: float) -> np.ndarray:
    F = np.eye(DIM_X)
    F[0, 1] = dt
    F[2, 3] = dt
    return F


def measurement_model(x: np.ndarray) -> np.ndarray:
    px, _, py, _, pz = np.asarray(x, dtype=float).reshape(DIM_X)
    rxy = math.hypot(px, py)
    return np.array(
        [
            [math.atan2(py, px)],
            [math.atan2(pz, rxy)],
            [math.sqrt(px * px + py * py + pz * pz)],
        ]
    )


def measurement_jacobian(x: np.ndarray) -> np.ndarray:
    px, _, py, _, pz = np.asarray(x, dtype=float).reshape(DIM_X)
    r2xy = max(px * px + py * py, _MIN_RANGE ** 2)
    rxy = math.sqrt(r2xy)
    d2 = r2xy + pz * pz
    d = math.sqrt(d2)

    H = np.zeros((DIM_Z, DIM_X))
    # yaw
    H[0, 0] = -py / r2xy
    H[0, 2] = px / r2xy
    # pitch
    H[1, 0] = -px * pz / (d2 * rxy)
    H[1, 2] = -py * pz / (d2 * rxy)
    H[1, 4] = rxy / d2
    # distance
    H[2, 0] = px / d
    H[2, 2] = py / d
    H[2, 4] = pz / d
    return H


def observation_to_state(z: Sequence[float]) -> np.ndarray:
    yaw, pitch, dist = (float(v) for v in z)
    horiz = dist * math.cos(pitch)
    return np.array(
        [[horiz * math.cos(yaw)], [0.0], [horiz * math.sin(yaw)], [0.0], [dist * math.sin(pitch)]]
    )


def observation_residual(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    y = np.subtract(a, b)
    y[0, 0] = wrap_angle(y[0, 0])
    return y


# ------------------------------------------------------------------ #
#   E X T E N D E D
# ------------------------------------------------------------------ #
class _MotionEKF(ExtendedKalmanFilter):
    """filterpy EKF whose prior comes from ``motion_model``."""

    def __init__(self) -> None:
        super().__init__(dim_x=DIM_X, dim_z=DIM_Z)
        self.dt = 0.0

    def predict_x(self, u=0):
        self.x = motion_model(self.x, self.dt)


class EKF:
    """Extended Kalman filter over ``[x, vx, y, vy, z]`` observed as yaw/pitch/distance."""

    def __init__(
        self,
        cfg: Optional[TrackerConfig] = None,
        dt: float = 0.01,
        initial_state: Optional[Sequence[float]] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg or TrackerConfig()
        self.logger = log or logger
        self.ekf = _MotionEKF()
        self.initialized = False
        self.last_update_ok = True

        self.set_noise()
        self.set_dt(dt)
        self.ekf.P = self._initial_covariance()
        if initial_state is not None:
            self.ekf.x = np.asarray(initial_state, dtype=float).reshape(DIM_X, 1)
            self.initialized = True

    # ---------------- configuration ----------------
    def _initial_covariance(self) -> np.ndarray:
        pos_var = self.cfg.initial_position_std ** 2
        vel_var = self.cfg.initial_velocity_error_std ** 2
        return np.diag([pos_var, vel_var, pos_var, vel_var, pos_var])

    def set_noise(self) -> None:
        """Rebuild R (and Q for the current dt) from the config."""
        self.ekf.R = np.diag(
            [
                self.cfg.yaw_noise_std ** 2,
                self.cfg.pitch_noise_std ** 2,
                self.cfg.distance_noise_std ** 2,
            ]
        )
        if self.ekf.dt > 0:
            self._update_Q(self.ekf.dt)

    def set_dt(self, dt: float) -> None:
        if dt > 0 and abs(dt - self.ekf.dt) > 1e-9:
            self.ekf.dt = dt
            self._update_Q(dt)

    def _update_Q(self, dt: float) -> None:
        axis = Q_discrete_white_noise(dim=2, dt=dt, var=self.cfg.process_noise_std ** 2)
        Q = np.zeros((DIM_X, DIM_X))
        Q[0:2, 0:2] = axis
        Q[2:4, 2:4] = axis
        Q[4, 4] = self.cfg.height_noise_std ** 2 * dt
        self.ekf.Q = Q

    # ---------------- accessors ----------------
    @property
    def dt(self) -> float:
        return self.ekf.dt

    @property
    def state(self) -> np.ndarray:
        return self.ekf.x.flatten()

    @property
    def covariance(self) -> np.ndarray:
        return self.ekf.P.copy()

    def predicted_observation(self) -> np.ndarray:
        return measurement_model(self.ekf.x).flatten()

    # ---------------- filter steps ----------------
    def init(self, z: Sequence[float]) -> np.ndarray:
        """Start from an observation: position from z, zero velocity."""
        self.ekf.x = observation_to_state(z)
        self.ekf.P = self._initial_covariance()
        self.initialized = True
        return self.state

    def predict(self, dt: Optional[float] = None) -> np.ndarray:
        if dt is not None:
            self.set_dt(dt)
        self.ekf.F = motion_jacobian(self.ekf.x, self.ekf.dt)
        self.ekf.predict()
        self.ekf.P = cap_variance(self.ekf.P, self.cfg.max_variance)
        return self.state

    def update(self, z: Sequence[float]) -> np.ndarray:
        zz = np.asarray(z, dtype=float).reshape(DIM_Z, 1)
        self.last_update_ok = _guarded_update(
            self.ekf,
            lambda: self.ekf.update(
                zz,
                HJacobian=measurement_jacobian,
                Hx=measurement_model,
                residual=observation_residual,
            ),
            self.logger,
        )
        return self.state
