"""
Smart Zoom – Smoothing
Turns the (step-changing) committed target into a continuously moving
camera position.

Two interchangeable strategies
------------------------------
ema           – exponential moving average, one factor for all axes
kalmanFast    – constant-velocity Kalman filter, responsive
kalmanSmooth  – constant-velocity Kalman filter, very steady

Kalman tuning
-------------
* Q (process noise)   – how much the target may change per frame.
  Higher Q = trust measurements more, respond faster.
* R (measurement noise) – how noisy the detections are.
  Higher R = trust the prediction more, smoother output.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

import numpy as np

from . import config as cfg
from .framing import Measurement

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SmoothedPosition:
    x: float
    y: float
    zoom: float


HOME = SmoothedPosition(0.0, 0.0, 1.0)

Target = Union[Measurement, SmoothedPosition]


class Smoother(ABC):
    """Common interface for every smoothing strategy."""

    @abstractmethod
    def update(self, measurement: Target) -> SmoothedPosition:
        """Feed the next target, return the new smoothed position."""

    @abstractmethod
    def get_position(self) -> SmoothedPosition:
        """Current position without advancing the filter."""

    @abstractmethod
    def reset(self) -> None:
        """Back to centre at 1x."""


# ── exponential ──────────────────────────────────────────────────────
def ema_step(current: Target, target: Target, smooth_factor: float) -> SmoothedPosition:
    """One exponential step from ``current`` towards ``target``."""
    return SmoothedPosition(
        current.x + (target.x - current.x) * smooth_factor,
        current.y + (target.y - current.y) * smooth_factor,
        current.zoom + (target.zoom - current.zoom) * smooth_factor,
    )


class EmaSmoother(Smoother):
    """``state += (target - state) * smooth_factor`` on every axis."""

    def __init__(self, smooth_factor: float = cfg.EMA_SMOOTH_FACTOR) -> None:
        if not 0.0 <= smooth_factor <= 1.0:
            raise ValueError(f"smooth_factor must be within [0, 1], got {smooth_factor}")
        self.smooth_factor = smooth_factor
        self._state = HOME

    def update(self, measurement: Target) -> SmoothedPosition:
        self._state = ema_step(self._state, measurement, self.smooth_factor)
        return self._state

    def get_position(self) -> SmoothedPosition:
        return self._state

    def reset(self) -> None:
        self._state = HOME


# ── Kalman ───────────────────────────────────────────────────────────
@dataclass(slots=True, frozen=True)
class KalmanConfig:
    process_noise_pos: float    # Q diagonal, position
    process_noise_vel: float    # Q diagonal, velocity
    measurement_noise: float    # R
    initial_uncertainty: float = 1.0


# Responds quickly, some jitter allowed.
KALMAN_FAST = KalmanConfig(
    process_noise_pos=0.01,
    process_noise_vel=0.001,
    measurement_noise=0.1,
)

# Very stable, slower response.
KALMAN_SMOOTH = KalmanConfig(
    process_noise_pos=0.001,
    process_noise_vel=0.0001,
    measurement_noise=0.5,
)


def kalman_predict(x: float, v: float) -> tuple[float, float]:
    """Constant-velocity prediction: ``(x + v, v)``."""
    return x + v, v


class Kalman1D:
    """
    Position/velocity filter for one axis.  Only position is measured.
    """

    _F = np.array([[1.0, 1.0],
                   [0.0, 1.0]])
    _H = np.array([[1.0, 0.0]])

    def __init__(self, config: KalmanConfig, initial_pos: float = 0.0) -> None:
        self.config = config
        self._Q = np.diag([config.process_noise_pos, config.process_noise_vel])
        self._initial_pos = initial_pos
        self.reset()

    @property
    def position(self) -> float:
        return float(self._x[0])

    @property
    def velocity(self) -> float:
        return float(self._x[1])

    @property
    def covariance(self) -> np.ndarray:
        return self._P.copy()

    def update(self, measurement: float) -> float:
        F, H = self._F, self._H

        # predict
        x_pred = F @ self._x
        P_pred = F @ self._P @ F.T + self._Q

        # correct
        s = (H @ P_pred @ H.T)[0, 0] + self.config.measurement_noise
        K = (P_pred @ H.T) / s
        innovation = measurement - (H @ x_pred)[0]
        self._x = x_pred + K[:, 0] * innovation
        self._P = (np.eye(2) - K @ H) @ P_pred

        return self.position

    def reset(self, initial_pos: Optional[float] = None) -> None:
        if initial_pos is not None:
            self._initial_pos = initial_pos
        self._x = np.array([self._initial_pos, 0.0])
        self._P = np.eye(2) * self.config.initial_uncertainty


class KalmanSmoother(Smoother):
    """Three independent :class:`Kalman1D` filters (x, y, zoom)."""

    def __init__(self, config: KalmanConfig = KALMAN_SMOOTH) -> None:
        self.config = config
        self._x = Kalman1D(config, HOME.x)
        self._y = Kalman1D(config, HOME.y)
        self._zoom = Kalman1D(config, HOME.zoom)

    def update(self, measurement: Target) -> SmoothedPosition:
        return SmoothedPosition(
            self._x.update(measurement.x),
            self._y.update(measurement.y),
            self._zoom.update(measurement.zoom),
        )

    def get_position(self) -> SmoothedPosition:
        return SmoothedPosition(self._x.position, self._y.position, self._zoom.position)

    def get_velocities(self) -> Dict[str, float]:
        """Per-axis velocity in units per frame (for diagnostics)."""
        return {
            "vx": self._x.velocity,
            "vy": self._y.velocity,
            "vZoom": self._zoom.velocity,
        }

    def reset(self) -> None:
        self._x.reset(HOME.x)
        self._y.reset(HOME.y)
        self._zoom.reset(HOME.zoom)


# ── presets ──────────────────────────────────────────────────────────
class SmoothingPreset(str, Enum):
    EMA = "ema"
    KALMAN_FAST = "kalmanFast"
    KALMAN_SMOOTH = "kalmanSmooth"

    @classmethod
    def parse(cls, value: Union[str, "SmoothingPreset"]) -> "SmoothingPreset":
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unknown smoothing preset: {value!r} (expected one of {valid})"
            ) from None


SMOOTHING_PRESET_LABELS = {
    SmoothingPreset.EMA: "Standard (EMA)",
    SmoothingPreset.KALMAN_FAST: "Kalman Fast",
    SmoothingPreset.KALMAN_SMOOTH: "Kalman Smooth",
}

SMOOTHING_PRESET_DESCRIPTIONS = {
    SmoothingPreset.EMA:
        "Simple exponential smoothing - good balance of speed and stability",
    SmoothingPreset.KALMAN_FAST:
        "Kalman filter tuned for responsiveness - tracks fast movements",
    SmoothingPreset.KALMAN_SMOOTH:
        "Kalman filter tuned for stability - very smooth, slower response",
}


def create_smoother(
    preset: Union[str, SmoothingPreset],
    smooth_factor: float = cfg.EMA_SMOOTH_FACTOR,
) -> Smoother:
    """Build a fresh smoother for ``preset``.  Unknown presets raise ``ValueError``."""
    preset = SmoothingPreset.parse(preset)
    if preset is SmoothingPreset.EMA:
        return EmaSmoother(smooth_factor)
    if preset is SmoothingPreset.KALMAN_FAST:
        return KalmanSmoother(KALMAN_FAST)
    if preset is SmoothingPreset.KALMAN_SMOOTH:
        return KalmanSmoother(KALMAN_SMOOTH)
    raise ValueError(f"Unhandled smoothing preset: {preset!r}")


# ── speed clamp ──────────────────────────────────────────────────────
@dataclass(slots=True, frozen=True)
class SpeedClampConfig:
    max_pan_speed: float = cfg.MAX_PAN_SPEED
    max_zoom_speed: float = cfg.MAX_ZOOM_SPEED

    def scaled(self, factor: float) -> "SpeedClampConfig":
        return SpeedClampConfig(self.max_pan_speed * factor, self.max_zoom_speed * factor)


def clamp_speed(
    current: Target,
    target: Target,
    max_pan_speed: float,
    max_zoom_speed: float,
) -> SmoothedPosition:
    """
    Limit how far one frame may move from ``current`` towards ``target``.

    Pan is limited by Euclidean distance so the direction survives.
    """
    dx = target.x - current.x
    dy = target.y - current.y
    dzoom = target.zoom - current.zoom

    x, y = target.x, target.y
    pan_speed = math.hypot(dx, dy)
    if pan_speed > max_pan_speed:
        scale = max_pan_speed / pan_speed
        x = current.x + dx * scale
        y = current.y + dy * scale

    zoom = target.zoom
    if abs(dzoom) > max_zoom_speed:
        zoom = current.zoom + math.copysign(max_zoom_speed, dzoom)

    return SmoothedPosition(x, y, zoom)
