"""
Smart Zoom – Framing Controller
Runs the per-frame pipeline that turns hand detections into a camera
transform:

    detections → target → deadband → smoother → speed clamp → viewport

Two outputs
-----------
* ``output``     – updated on every processed frame.  Read this for the
  actual transform.
* ``observable`` – copied from ``output`` every ``ui_update_interval``
  frames.  Good enough for status text, never fresher than ``output``.

The host owns the frame loop: call :meth:`FramingController.step` once
per displayable frame.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path
from typing import Any, Callable, Deque, Dict, Optional, Tuple, Union

from . import config as cfg
from .framing import (
    BoundingBox,
    DetectionFrame,
    FrameSize,
    HysteresisGate,
    Measurement,
    bounding_box,
    measurement_from_box,
)
from .smoothing import (
    SmoothedPosition,
    Smoother,
    SmoothingPreset,
    SpeedClampConfig,
    clamp_speed,
    create_smoother,
)
from .viewport import ClampedEdges, clamp_normalized_pan

logger = logging.getLogger(__name__)


class TrackingState(Enum):
    IDLE = auto()
    ACTIVE = auto()


@dataclass(slots=True, frozen=True)
class FramingConfig:
    """Tunables for one controller.  Defaults come from :mod:`smartzoom.config`."""
    padding: float = cfg.PADDING
    smoothing_preset: SmoothingPreset = SmoothingPreset(cfg.SMOOTHING_PRESET)
    min_zoom: float = cfg.MIN_ZOOM
    max_zoom: float = cfg.MAX_ZOOM
    zoom_threshold: float = cfg.ZOOM_THRESHOLD
    pan_threshold: float = cfg.PAN_THRESHOLD
    smooth_factor: float = cfg.EMA_SMOOTH_FACTOR
    max_pan_speed: float = cfg.MAX_PAN_SPEED
    max_zoom_speed: float = cfg.MAX_ZOOM_SPEED
    lost_speed_scale: float = cfg.LOST_SPEED_SCALE
    loss_debounce_frames: int = cfg.LOSS_DEBOUNCE_FRAMES
    ui_update_interval: int = cfg.UI_UPDATE_INTERVAL
    trace_capacity: int = cfg.DEBUG_TRACE_MAX_ENTRIES

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "smoothing_preset", SmoothingPreset.parse(self.smoothing_preset)
        )
        if self.padding <= 0:
            raise ValueError(f"padding must be positive, got {self.padding}")
        if self.min_zoom < 1 or self.min_zoom > self.max_zoom:
            raise ValueError(f"Invalid zoom range: [{self.min_zoom}, {self.max_zoom}]")
        if self.zoom_threshold < 0 or self.pan_threshold < 0:
            raise ValueError("Deadband thresholds must not be negative")
        if not 0.0 <= self.smooth_factor <= 1.0:
            raise ValueError(f"smooth_factor must be within [0, 1], got {self.smooth_factor}")
        if self.max_pan_speed < 0 or self.max_zoom_speed < 0 or self.lost_speed_scale < 0:
            raise ValueError("Speed limits must not be negative")
        if self.loss_debounce_frames < 0:
            raise ValueError("loss_debounce_frames must not be negative")
        if self.ui_update_interval < 1:
            raise ValueError("ui_update_interval must be at least 1")
        if self.trace_capacity < 1:
            raise ValueError("trace_capacity must be at least 1")

    @property
    def speed_clamp(self) -> SpeedClampConfig:
        return SpeedClampConfig(self.max_pan_speed, self.max_zoom_speed)

    def to_dict(self) -> Dict[str, Any]:
        """The subset written into trace exports."""
        return {
            "padding": self.padding,
            "smoothingPreset": self.smoothing_preset.value,
            "minZoom": self.min_zoom,
            "maxZoom": self.max_zoom,
            "zoomThreshold": self.zoom_threshold,
            "panThreshold": self.pan_threshold,
        }


@dataclass(slots=True, frozen=True)
class ControllerOutput:
    zoom: float = 1.0
    pan: Tuple[float, float] = (0.0, 0.0)
    clamped_edges: ClampedEdges = field(default_factory=ClampedEdges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zoom": self.zoom,
            "pan": {"x": self.pan[0], "y": self.pan[1]},
            "clampedEdges": self.clamped_edges.to_dict(),
        }


@dataclass(slots=True, frozen=True)
class TraceEntry:
    """Everything the pipeline knew about one frame."""
    timestamp: float
    frame: int
    hands_detected: int
    bounding_box: Optional[BoundingBox]
    target: Measurement
    committed: Measurement
    output: ControllerOutput
    video_size: FrameSize

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "frame": self.frame,
            "handsDetected": self.hands_detected,
            "boundingBox": None if self.bounding_box is None else self.bounding_box.to_dict(),
            "targetZoom": self.target.zoom,
            "targetPan": self.target.pan,
            "committedZoom": self.committed.zoom,
            "committedPan": self.committed.pan,
            "currentZoom": self.output.zoom,
            "currentPan": {"x": self.output.pan[0], "y": self.output.pan[1]},
            "clampedEdges": self.output.clamped_edges.to_dict(),
            "videoSize": self.video_size.to_dict(),
        }


class FramingController:
    """
    Owns all per-session state: committed target, smoother, previous
    output, trace and frame counter.  One instance per tracked view.
    """

    def __init__(
        self,
        config: Optional[FramingConfig] = None,
        enabled: bool = False,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config or FramingConfig()
        self._clock = clock
        self._state = TrackingState.IDLE

        self._trace: Deque[TraceEntry] = deque(maxlen=self.config.trace_capacity)
        self._smoother: Smoother
        self._reset_pipeline()

        if enabled:
            self.enable()

    # ── lifecycle ────────────────────────────────────────────────────
    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is TrackingState.ACTIVE

    def enable(self) -> None:
        """IDLE → ACTIVE.  Starts from a clean slate."""
        if self._state is TrackingState.ACTIVE:
            return
        self._reset_pipeline()
        self._state = TrackingState.ACTIVE
        logger.info(
            "Smart zoom enabled (preset=%s, padding=%.2f)",
            self.config.smoothing_preset.value, self.config.padding,
        )

    def disable(self) -> None:
        """ACTIVE → IDLE.  Later :meth:`step` calls do nothing."""
        if self._state is TrackingState.IDLE:
            return
        self._state = TrackingState.IDLE
        self._trace.clear()
        logger.info("Smart zoom disabled after %d frames", self._frame_count)

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def set_smoothing_preset(self, preset: Union[str, SmoothingPreset]) -> None:
        """Swap the smoothing strategy.  Only the smoother is reset."""
        preset = SmoothingPreset.parse(preset)
        self.config = replace(self.config, smoothing_preset=preset)
        self._smoother = create_smoother(preset, self.config.smooth_factor)
        self._smoother.reset()
        logger.info("Smoothing preset set to %s", preset.value)

    def set_padding(self, padding: float) -> None:
        """Takes effect on the next processed frame."""
        self.config = replace(self.config, padding=padding)

    # ── outputs ──────────────────────────────────────────────────────
    @property
    def output(self) -> ControllerOutput:
        """Every-frame value; use this for the transform."""
        return self._output

    @property
    def observable(self) -> ControllerOutput:
        """Throttled copy of :attr:`output` for UI / telemetry."""
        return self._observable

    @property
    def committed_target(self) -> Measurement:
        return self._gate.committed

    @property
    def smoother(self) -> Smoother:
        return self._smoother

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def trace(self) -> Tuple[TraceEntry, ...]:
        return tuple(self._trace)

    # ── per-frame pipeline ───────────────────────────────────────────
    def step(self, frame: DetectionFrame, now: Optional[float] = None) -> Optional[ControllerOutput]:
        """
        Process one detection frame.

        Returns the new output, or ``None`` when nothing was done
        (tracking disabled, or the frame is not newer than the last one).
        """
        if self._state is not TrackingState.ACTIVE:
            return None
        if self._last_timestamp is not None and frame.timestamp <= self._last_timestamp:
            return None
        self._last_timestamp = frame.timestamp

        conf = self.config
        rest = self._rest_target()

        # 1-2) target + deadband
        box = bounding_box(frame.hands)
        if box is not None:
            self._missed_frames = 0
            target = measurement_from_box(box, conf.padding, conf.min_zoom, conf.max_zoom)
            self._gate.offer(target)
            speed = conf.speed_clamp
        else:
            self._missed_frames += 1
            target = rest
            if self._missed_frames > conf.loss_debounce_frames:
                self._gate.force_rest()
            # Gentler return to centre when the hands are lost.
            speed = conf.speed_clamp.scaled(conf.lost_speed_scale)
        committed = self._gate.committed

        # 3) smoothing
        smoothed = self._smoother.update(committed)

        # 4) speed clamp
        limited = clamp_speed(self._prev, smoothed, speed.max_pan_speed, speed.max_zoom_speed)
        zoom = min(max(limited.zoom, conf.min_zoom), conf.max_zoom)

        # 5) viewport
        pan, edges = clamp_normalized_pan((limited.x, limited.y), zoom)

        # 6) outputs
        self._prev = SmoothedPosition(pan[0], pan[1], zoom)
        self._frame_count += 1
        out = ControllerOutput(zoom, pan, edges)
        self._output = out

        # 7) trace
        self._trace.append(
            TraceEntry(
                timestamp=self._clock() if now is None else now,
                frame=self._frame_count,
                hands_detected=sum(1 for hand in frame.hands if hand) if box is not None else 0,
                bounding_box=box,
                target=target,
                committed=committed,
                output=out,
                video_size=frame.source_size,
            )
        )

        # 8) throttled copy
        if self._frame_count % conf.ui_update_interval == 0:
            self._observable = out

        return out

    # ── diagnostics ──────────────────────────────────────────────────
    def get_debug_trace(self) -> Dict[str, Any]:
        """JSON-ready snapshot of the whole trace buffer."""
        return {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "config": self.config.to_dict(),
            "entries": [entry.to_dict() for entry in self._trace],
        }

    def export_debug_trace(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        snapshot = self.get_debug_trace()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)
        logger.info("Wrote %d trace entries to %s", len(snapshot["entries"]), path)
        return path

    # ── internals ────────────────────────────────────────────────────
    def _rest_target(self) -> Measurement:
        return Measurement(0.0, 0.0, self.config.min_zoom)

    def _new_gate(self) -> HysteresisGate:
        return HysteresisGate(
            self.config.zoom_threshold,
            self.config.pan_threshold,
            rest=self._rest_target(),
        )

    def _reset_pipeline(self) -> None:
        # Config may have changed since the last session.
        self._gate = self._new_gate()
        self._smoother = create_smoother(
            self.config.smoothing_preset, self.config.smooth_factor
        )
        if self._trace.maxlen != self.config.trace_capacity:
            self._trace = deque(maxlen=self.config.trace_capacity)
        self._trace.clear()

        rest = self._rest_target()
        self._prev = SmoothedPosition(rest.x, rest.y, rest.zoom)
        self._output = ControllerOutput(zoom=rest.zoom)
        self._observable = self._output
        self._frame_count = 0
        self._missed_frames = 0
        self._last_timestamp: Optional[float] = None
