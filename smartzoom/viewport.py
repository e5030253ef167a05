"""
Smart Zoom – Viewport
Keeps the zoomed view inside the source frame.

At zoom ``z`` the visible window is ``1/z`` of the frame, so the view
centre can move at most ``(1 - 1/z) / 2`` from the frame centre on
each axis.  At 1x there is no room to pan at all.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional, Tuple

from . import config as cfg


@dataclass(slots=True, frozen=True)
class ClampedEdges:
    """Which sides the pan is pressed against."""
    left: bool = False
    right: bool = False
    top: bool = False
    bottom: bool = False

    def any(self) -> bool:
        return self.left or self.right or self.top or self.bottom

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


def max_pan(zoom: float) -> float:
    """Largest legal pan offset (normalised) for ``zoom``."""
    zoom = max(zoom, cfg.ZOOM_EPSILON)
    return max((1 - 1 / zoom) / 2, 0.0)


def _clamp(v: float, lo: float, hi: float) -> float:
    return min(max(v, lo), hi)


def clamp_normalized_pan(
    pan: Tuple[float, float],
    zoom: float,
) -> Tuple[Tuple[float, float], ClampedEdges]:
    """
    Clamp a normalised pan to the legal range for ``zoom``.

    Sitting exactly on the limit counts as clamped.
    """
    x, y = pan
    limit = max_pan(zoom)
    edges = ClampedEdges(
        left=x >= limit,
        right=x <= -limit,
        top=y >= limit,
        bottom=y <= -limit,
    )
    return (_clamp(x, -limit, limit), _clamp(y, -limit, limit)), edges


def clamp_pan_to_viewport(
    pan: Tuple[float, float],
    zoom: float,
    video_size: Tuple[int, int],
) -> Tuple[Tuple[float, float], ClampedEdges]:
    """
    Pixel-space variant of :func:`clamp_normalized_pan`.

    Kept for callers that still express pan in source pixels; the
    controller itself works in normalised units.
    """
    width, height = video_size
    zoom = max(zoom, cfg.ZOOM_EPSILON)
    limit_x = width * (1 - 1 / zoom) / 2
    limit_y = height * (1 - 1 / zoom) / 2

    x, y = pan
    edges = ClampedEdges(
        left=x >= limit_x,
        right=x <= -limit_x,
        top=y >= limit_y,
        bottom=y <= -limit_y,
    )
    return (_clamp(x, -limit_x, limit_x), _clamp(y, -limit_y, limit_y)), edges


def visible_region(zoom: float, pan: Tuple[float, float]) -> Tuple[float, float, float, float]:
    """
    Normalised ``(x1, y1, x2, y2)`` of the part of the frame on screen.

    Positive pan shifts the view left/up, i.e. the window moves
    towards the top-left of the source.
    """
    zoom = max(zoom, cfg.ZOOM_EPSILON)
    half = 0.5 / zoom
    cx = 0.5 - pan[0]
    cy = 0.5 - pan[1]
    return cx - half, cy - half, cx + half, cy + half


class ManualZoomPan:
    """
    Zoom/pan driven by the user (wheel + drag) instead of the hands.

    Any zoom input fires ``on_zoom_change`` so the host can switch
    smart zoom off while the user is in control.
    """

    def __init__(
        self,
        min_zoom: float = cfg.MIN_ZOOM,
        max_zoom: float = cfg.MAX_MANUAL_ZOOM,
        on_zoom_change: Optional[Callable[[], None]] = None,
    ) -> None:
        if min_zoom < 1 or min_zoom > max_zoom:
            raise ValueError(f"Invalid manual zoom range: [{min_zoom}, {max_zoom}]")
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.on_zoom_change = on_zoom_change
        self.zoom = 1.0
        self.pan: Tuple[float, float] = (0.0, 0.0)
        self._dragging = False
        self._last_mouse: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def _clamp_pan(self, pan: Tuple[float, float], zoom: float) -> Tuple[float, float]:
        clamped, _ = clamp_normalized_pan(pan, zoom)
        return clamped

    def set_zoom(self, zoom: float) -> None:
        self.zoom = _clamp(zoom, self.min_zoom, self.max_zoom)
        # Less zoom means less room to pan.
        self.pan = self._clamp_pan(self.pan, self.zoom)

    def set_pan(self, pan: Tuple[float, float]) -> None:
        self.pan = self._clamp_pan(pan, self.zoom)

    def wheel(self, delta_y: float) -> None:
        """Scroll up (negative delta) zooms in."""
        if self.on_zoom_change is not None:
            self.on_zoom_change()
        self.set_zoom(self.zoom - delta_y * cfg.WHEEL_SENSITIVITY)

    # ── drag ─────────────────────────────────────────────────────────
    def press(self, x: float, y: float) -> None:
        # Nothing to drag at 1x.
        if self.zoom > 1:
            self._dragging = True
            self._last_mouse = (x, y)

    def drag(self, x: float, y: float, rendered_size: Tuple[float, float]) -> None:
        if not self._dragging or self.zoom <= 1:
            return
        width = rendered_size[0] or 1
        height = rendered_size[1] or 1
        dx = (x - self._last_mouse[0]) / (width * self.zoom)
        dy = (y - self._last_mouse[1]) / (height * self.zoom)
        self.pan = self._clamp_pan((self.pan[0] + dx, self.pan[1] + dy), self.zoom)
        self._last_mouse = (x, y)

    def release(self) -> None:
        self._dragging = False

    def reset(self) -> None:
        if self.on_zoom_change is not None:
            self.on_zoom_change()
        self.zoom = 1.0
        self.pan = (0.0, 0.0)
