"""
Smart Zoom – Framing
Turns raw hand landmarks into a single pan/zoom target and decides
when that target is different enough to act on.

Coordinates
-----------
Landmarks are *normalised* (0-1 of frame width/height).  Pan is the
offset that re-centres the subject: a subject at (0.5, 0.5) gives pan
(0, 0); positive pan shifts the view left/up.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from . import config as cfg

logger = logging.getLogger(__name__)
decisions = logging.getLogger("smartzoom.decisions")


@dataclass(slots=True, frozen=True)
class Landmark:
    """Single landmark in *normalised* image coordinates."""
    x: float
    y: float
    z: float = 0.0


# One detected hand: its landmarks in detector order.
HandObservation = Sequence[Landmark]


@dataclass(slots=True, frozen=True)
class FrameSize:
    """Source frame size in pixels."""
    width: int
    height: int

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(slots=True)
class DetectionFrame:
    """Everything the detector reported for one video frame."""
    hands: List[HandObservation] = field(default_factory=list)
    timestamp: float = 0.0
    source_size: FrameSize = FrameSize(0, 0)


@dataclass(slots=True, frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2

    @property
    def size(self) -> float:
        """Largest side of the box."""
        return max(self.max_x - self.min_x, self.max_y - self.min_y)

    def to_dict(self) -> Dict[str, float]:
        return {
            "minX": self.min_x,
            "maxX": self.max_x,
            "minY": self.min_y,
            "maxY": self.max_y,
        }


@dataclass(slots=True, frozen=True)
class Measurement:
    """Pan/zoom target.  Also used for the committed target."""
    x: float
    y: float
    zoom: float

    @property
    def pan(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


REST_TARGET = Measurement(0.0, 0.0, cfg.MIN_ZOOM)


# ── measurement extraction ───────────────────────────────────────────
def bounding_box(hands: Sequence[HandObservation]) -> Optional[BoundingBox]:
    """
    Axis-aligned box around every point of every hand.

    Hands without points and points with non-finite coordinates are
    skipped.  Returns ``None`` when nothing usable is left.
    """
    chunks = []
    for hand in hands:
        if not hand:
            continue
        chunks.append(np.array([[p.x, p.y] for p in hand], dtype=float))

    if not chunks:
        return None

    pts = np.vstack(chunks)
    pts = pts[np.isfinite(pts).all(axis=1)]
    if pts.size == 0:
        return None

    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return BoundingBox(float(min_x), float(min_y), float(max_x), float(max_y))


def measurement_from_box(
    box: BoundingBox,
    padding: float = cfg.PADDING,
    min_zoom: float = cfg.MIN_ZOOM,
    max_zoom: float = cfg.MAX_ZOOM,
) -> Measurement:
    """
    Zoom so the box fills ``1 / padding`` of the view, pan so its
    centre lands on the view centre.
    """
    size = box.size
    zoom = 1.0 / (size * padding) if size > 0 else math.inf
    if not math.isfinite(zoom):
        zoom = max_zoom
    zoom = min(max(zoom, min_zoom), max_zoom)

    cx, cy = box.center
    return Measurement(0.5 - cx, 0.5 - cy, zoom)


def extract_measurement(
    hands: Sequence[HandObservation],
    padding: float = cfg.PADDING,
    min_zoom: float = cfg.MIN_ZOOM,
    max_zoom: float = cfg.MAX_ZOOM,
) -> Optional[Measurement]:
    """Single target for all hands in a frame, or ``None`` if there are none."""
    box = bounding_box(hands)
    if box is None:
        return None
    return measurement_from_box(box, padding, min_zoom, max_zoom)


# ── hysteresis ───────────────────────────────────────────────────────
def exceeds_deadband(
    committed: Measurement,
    candidate: Measurement,
    zoom_threshold: float = cfg.ZOOM_THRESHOLD,
    pan_threshold: float = cfg.PAN_THRESHOLD,
) -> bool:
    zoom_delta = abs(candidate.zoom - committed.zoom)
    pan_dist = math.hypot(candidate.x - committed.x, candidate.y - committed.y)
    return zoom_delta > zoom_threshold or pan_dist > pan_threshold


class HysteresisGate:
    """
    Holds the committed target and only replaces it when a candidate
    moves past the zoom or pan threshold.
    """

    def __init__(
        self,
        zoom_threshold: float = cfg.ZOOM_THRESHOLD,
        pan_threshold: float = cfg.PAN_THRESHOLD,
        rest: Measurement = REST_TARGET,
    ) -> None:
        self.zoom_threshold = zoom_threshold
        self.pan_threshold = pan_threshold
        self._rest = rest
        self.committed: Measurement = rest

    def offer(self, candidate: Measurement) -> bool:
        """Commit ``candidate`` if it clears the deadband.  Returns True on commit."""
        if not exceeds_deadband(
            self.committed, candidate, self.zoom_threshold, self.pan_threshold
        ):
            return False
        decisions.debug(
            "commit zoom %.3f -> %.3f, pan (%.3f, %.3f) -> (%.3f, %.3f)",
            self.committed.zoom, candidate.zoom,
            self.committed.x, self.committed.y,
            candidate.x, candidate.y,
        )
        self.committed = candidate
        return True

    def force_rest(self) -> None:
        """Snap to the rest target, ignoring the thresholds."""
        if self.committed != self._rest:
            decisions.debug("no subject: forcing rest target")
        self.committed = self._rest
