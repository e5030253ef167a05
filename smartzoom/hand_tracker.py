"""
Smart Zoom – Hand Tracker
Threaded webcam capture + MediaPipe Hands inference.
Keeps the main loop free of I/O blocking and publishes each result as
a :class:`~smartzoom.framing.DetectionFrame`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from . import config as cfg
from .framing import DetectionFrame, FrameSize, Landmark

logger = logging.getLogger(__name__)


def detection_from_results(results, timestamp: float, size: FrameSize) -> DetectionFrame:
    """Convert a MediaPipe Hands result into a :class:`DetectionFrame`."""
    hands = []
    for hl in results.multi_hand_landmarks or ():
        hands.append([Landmark(lm.x, lm.y, lm.z) for lm in hl.landmark])
    return DetectionFrame(hands=hands, timestamp=timestamp, source_size=size)


class HandTracker:
    """
    Runs webcam capture in a background thread and exposes the latest
    detections via :pymethod:`latest()`.
    """

    def __init__(self, camera_index: int = cfg.CAMERA_INDEX) -> None:
        self._mp_hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=cfg.MP_MAX_HANDS,
            model_complexity=cfg.MP_MODEL_COMPLEXITY,
            min_detection_confidence=cfg.MP_DETECTION_CONFIDENCE,
            min_tracking_confidence=cfg.MP_TRACKING_CONFIDENCE,
        )

        self._camera_index = camera_index
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()
        self._detection: Optional[DetectionFrame] = None
        self._frame: Optional[np.ndarray] = None
        self._frame_seq: int = 0          # bumped each new frame
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._frame_interval = 1.0 / cfg.TARGET_FPS

    # ── public API ───────────────────────────────────────────────────
    def start(self) -> None:
        """Open the webcam and begin the capture thread."""
        self._cap = cv2.VideoCapture(self._camera_index)
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.CAPTURE_WIDTH)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.CAPTURE_HEIGHT)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # drop stale frames

        if not self._cap.isOpened():
            raise RuntimeError(f"Cannot open camera {self._camera_index}")

        self._running = True
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        logger.info("Capture started on camera %d", self._camera_index)

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2)
        if self._cap is not None:
            self._cap.release()
        self._mp_hands.close()

    def latest(self) -> Tuple[Optional[DetectionFrame], Optional[np.ndarray], int]:
        """Return the most recent (detection, frame, seq) snapshot."""
        with self._lock:
            return self._detection, self._frame, self._frame_seq

    # ── capture loop (runs in background thread) ─────────────────────
    def _loop(self) -> None:
        while self._running:
            t0 = time.perf_counter()

            ok, frame = self._cap.read()
            if not ok:
                continue

            # Flip horizontally for natural mirror view
            frame = cv2.flip(frame, 1)
            h, w = frame.shape[:2]

            # MediaPipe expects RGB
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            results = self._mp_hands.process(rgb)

            detection = detection_from_results(
                results, timestamp=time.perf_counter(), size=FrameSize(w, h)
            )

            with self._lock:
                self._detection = detection
                self._frame = frame
                self._frame_seq += 1

            # Rate-limit to TARGET_FPS
            elapsed = time.perf_counter() - t0
            sleep_time = self._frame_interval - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)
