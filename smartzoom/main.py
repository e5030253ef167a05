#!/usr/bin/env python3
"""
Smart Zoom – hands-following camera framing
Run with:  python -m smartzoom.main

Keys (preview window)
---------------------
s        toggle smart zoom
p        cycle smoothing preset
[ / ]    less / more padding around the hands
+ / -    manual zoom (switches smart zoom off)
r        reset manual zoom
d        dump the debug trace to JSON
q        quit

Mouse: wheel zooms, drag pans (manual mode).
"""

from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from . import config as cfg
from .controller import FramingConfig, FramingController
from .framing import DetectionFrame
from .hand_tracker import HandTracker
from .smoothing import SMOOTHING_PRESET_LABELS, SmoothingPreset
from .viewport import ClampedEdges, ManualZoomPan, visible_region

_WINDOW = "Smart Zoom"
_PRESETS = list(SmoothingPreset)

# ── colour palette for the HUD ──────────────────────────────────────
_EDGE_COLOUR = (40, 40, 230)
_MINIMAP_VIEW = (0, 255, 200)
_HAND_COLOUR = (0, 200, 255)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep your hands in frame.")
    parser.add_argument("--camera", type=int, default=cfg.CAMERA_INDEX,
                        help="webcam device index")
    parser.add_argument("--padding", type=float, default=cfg.PADDING,
                        help="space around the hands (2.0 = hands fill half the view)")
    parser.add_argument("--preset", default=cfg.SMOOTHING_PRESET,
                        choices=[p.value for p in SmoothingPreset],
                        help="smoothing preset")
    parser.add_argument("--debounce", type=int, default=cfg.LOSS_DEBOUNCE_FRAMES,
                        help="empty frames tolerated before returning to centre")
    parser.add_argument("--no-overlay", action="store_true",
                        help="hide edge bars, minimap and hand points")
    parser.add_argument("--log-level", default="INFO",
                        help="DEBUG shows every deadband decision")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    controller = FramingController(
        FramingConfig(
            padding=args.padding,
            smoothing_preset=args.preset,
            loss_debounce_frames=args.debounce,
        ),
        enabled=True,
    )
    manual = ManualZoomPan(on_zoom_change=controller.disable)
    tracker = HandTracker(args.camera)
    overlay = cfg.SHOW_DEBUG_OVERLAY and not args.no_overlay

    tracker.start()
    print("[SmartZoom] Tracking started – press 'q' in preview or Ctrl-C to quit.")

    cv2.namedWindow(_WINDOW)
    preview_size = [1, 1]
    cv2.setMouseCallback(_WINDOW, _on_mouse, (manual, preview_size))

    last_seq = -1  # track frame sequence to avoid re-processing

    try:
        while True:
            detection, frame, seq = tracker.latest()

            # Only step the pipeline when a new frame is available
            if seq != last_seq and detection is not None:
                last_seq = seq
                controller.step(detection)

            if frame is None:
                time.sleep(0.005)
                continue

            if controller.enabled:
                out = controller.output
                zoom, pan, edges = out.zoom, out.pan, out.clamped_edges
            else:
                zoom, pan, edges = manual.zoom, manual.pan, None

            view = frame.copy()
            if overlay and detection is not None:
                _draw_hands(view, detection)
            view = render_view(view, zoom, pan)
            if overlay:
                if edges is not None:
                    _draw_edges(view, edges)
                _draw_minimap(view, frame, zoom, pan)
            _draw_hud(view, controller, zoom)

            h, w = view.shape[:2]
            preview_size[:] = [int(w * cfg.PREVIEW_SCALE), int(h * cfg.PREVIEW_SCALE)]
            cv2.imshow(_WINDOW, cv2.resize(view, tuple(preview_size)))

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            _handle_key(key, controller, manual)

    except KeyboardInterrupt:
        pass
    finally:
        tracker.stop()
        cv2.destroyAllWindows()
        print("\n[SmartZoom] Stopped.")


# ── input ───────────────────────────────────────────────────────────
def _handle_key(key: int, controller: FramingController, manual: ManualZoomPan) -> None:
    if key == ord("s"):
        if controller.enabled:
            controller.disable()
        else:
            manual.reset()
            controller.enable()
    elif key == ord("p"):
        current = _PRESETS.index(controller.config.smoothing_preset)
        controller.set_smoothing_preset(_PRESETS[(current + 1) % len(_PRESETS)])
    elif key == ord("["):
        controller.set_padding(max(1.0, controller.config.padding - 0.25))
    elif key == ord("]"):
        controller.set_padding(controller.config.padding + 0.25)
    elif key in (ord("+"), ord("=")):
        manual.wheel(-cfg.MANUAL_ZOOM_STEP)
    elif key == ord("-"):
        manual.wheel(cfg.MANUAL_ZOOM_STEP)
    elif key == ord("r"):
        manual.reset()
    elif key == ord("d"):
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = controller.export_debug_trace(f"smartzoom_trace_{stamp}.json")
        print(f"[SmartZoom] Trace saved to {path}")


def _on_mouse(event, x, y, flags, param) -> None:
    manual, preview_size = param
    if event == cv2.EVENT_MOUSEWHEEL:
        # OpenCV reports +120 per notch when scrolling up.
        manual.wheel(-cv2.getMouseWheelDelta(flags))
    elif event == cv2.EVENT_LBUTTONDOWN:
        manual.press(x, y)
    elif event == cv2.EVENT_MOUSEMOVE:
        manual.drag(x, y, tuple(preview_size))
    elif event == cv2.EVENT_LBUTTONUP:
        manual.release()


# ── rendering ───────────────────────────────────────────────────────
def render_view(frame: np.ndarray, zoom: float, pan: Tuple[float, float]) -> np.ndarray:
    """Crop the visible window out of ``frame`` and scale it back up."""
    h, w = frame.shape[:2]
    x1, y1, x2, y2 = visible_region(zoom, pan)
    px1 = int(round(max(0.0, x1) * w))
    py1 = int(round(max(0.0, y1) * h))
    px2 = int(round(min(1.0, x2) * w))
    py2 = int(round(min(1.0, y2) * h))
    crop = frame[py1:py2, px1:px2]
    if crop.size == 0:
        return frame
    return cv2.resize(crop, (w, h), interpolation=cv2.INTER_LINEAR)


def _draw_hands(frame: np.ndarray, detection: DetectionFrame) -> None:
    h, w = frame.shape[:2]
    for hand in detection.hands:
        for lm in hand:
            cv2.circle(frame, (int(lm.x * w), int(lm.y * h)), 3, _HAND_COLOUR, -1)


def _draw_edges(frame: np.ndarray, edges: ClampedEdges) -> None:
    """Red bar on each side the pan is pressed against."""
    h, w = frame.shape[:2]
    t = cfg.EDGE_BAR_THICKNESS
    if edges.left:
        cv2.rectangle(frame, (0, 0), (t, h), _EDGE_COLOUR, -1)
    if edges.right:
        cv2.rectangle(frame, (w - t, 0), (w, h), _EDGE_COLOUR, -1)
    if edges.top:
        cv2.rectangle(frame, (0, 0), (w, t), _EDGE_COLOUR, -1)
    if edges.bottom:
        cv2.rectangle(frame, (0, h - t), (w, h), _EDGE_COLOUR, -1)


def _draw_minimap(view: np.ndarray, source: np.ndarray, zoom: float,
                  pan: Tuple[float, float]) -> None:
    """Full frame thumbnail with the visible window outlined."""
    if zoom <= 1.0:
        return
    h, w = source.shape[:2]
    mw = cfg.MINIMAP_WIDTH
    mh = int(mw * h / w)
    thumb = cv2.resize(source, (mw, mh))
    x1, y1, x2, y2 = visible_region(zoom, pan)
    cv2.rectangle(
        thumb,
        (int(x1 * mw), int(y1 * mh)),
        (int(x2 * mw) - 1, int(y2 * mh) - 1),
        _MINIMAP_VIEW,
        1,
    )
    vh, vw = view.shape[:2]
    view[vh - mh - 10:vh - 10, vw - mw - 10:vw - 10] = thumb


def _draw_hud(frame: np.ndarray, controller: FramingController, zoom: float) -> None:
    if controller.enabled:
        label = SMOOTHING_PRESET_LABELS[controller.config.smoothing_preset]
        status = f"Smart zoom: {label}  {controller.observable.zoom:.2f}x"
        colour = (0, 255, 200)
    else:
        status = f"Manual zoom  {zoom:.2f}x"
        colour = (180, 180, 180)

    # Status bar
    cv2.rectangle(frame, (0, 0), (420, 50), (30, 30, 30), -1)
    cv2.putText(frame, status, (10, 35), cv2.FONT_HERSHEY_SIMPLEX, 0.7, colour, 2)


if __name__ == "__main__":
    main()
