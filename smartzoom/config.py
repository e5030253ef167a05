"""
Smart Zoom – Configuration
All tuneable knobs live here so nothing is scattered across modules.
"""

# ── Camera ───────────────────────────────────────────────────────────
CAMERA_INDEX = 0                # webcam device index
CAPTURE_WIDTH = 1280            # resolution sent to MediaPipe
CAPTURE_HEIGHT = 720
TARGET_FPS = 30                 # cap processing rate to save CPU

# ── MediaPipe Hands ──────────────────────────────────────────────────
MP_MAX_HANDS = 2                # frame both hands when present
MP_DETECTION_CONFIDENCE = 0.5   # initial detection threshold
MP_TRACKING_CONFIDENCE = 0.5    # per-frame tracking threshold
MP_MODEL_COMPLEXITY = 0         # 0 = lite (fastest), 1 = full

# ── Zoom ─────────────────────────────────────────────────────────────
MIN_ZOOM = 1.0                  # 1x = full frame
MAX_ZOOM = 3.0                  # ceiling for smart zoom
MAX_MANUAL_ZOOM = 5.0           # ceiling for manual zoom

# Minimum zoom change before the committed target moves (deadband).
ZOOM_THRESHOLD = 0.1

# Manual zoom change per unit of wheel delta.
WHEEL_SENSITIVITY = 0.001

# Extra room around the hands.  2.0 = hands fill half the view.
PADDING = 2.0

# Guard for 1/zoom when clamping pan.
ZOOM_EPSILON = 1e-6

# ── Pan ──────────────────────────────────────────────────────────────
# Minimum pan change (normalised distance) before the committed
# target moves.
PAN_THRESHOLD = 0.025

# ── Smoothing ────────────────────────────────────────────────────────
# "ema", "kalmanFast" or "kalmanSmooth"
SMOOTHING_PRESET = "ema"

# Exponential smoothing factor (0-1).  Lower = smoother.
EMA_SMOOTH_FACTOR = 0.05

# ── Speed clamp ──────────────────────────────────────────────────────
MAX_PAN_SPEED = 0.05            # normalised pan units per frame
MAX_ZOOM_SPEED = 0.1            # zoom levels per frame
LOST_SPEED_SCALE = 0.5          # speed multiplier while no hands are seen

# Consecutive empty frames tolerated before the target snaps back to
# centre.  0 = snap back on the first empty frame.
LOSS_DEBOUNCE_FRAMES = 0

# ── Output ───────────────────────────────────────────────────────────
# Observable (UI) snapshot is refreshed every N processed frames.
UI_UPDATE_INTERVAL = 6

# ── Debug trace ──────────────────────────────────────────────────────
DEBUG_TRACE_MAX_ENTRIES = 900   # ~30 s at 30 fps

# ── Debug / UI ───────────────────────────────────────────────────────
PREVIEW_SCALE = 0.6             # resize preview to save screen space
SHOW_DEBUG_OVERLAY = True       # edge bars, minimap, hand points
EDGE_BAR_THICKNESS = 8          # px
MINIMAP_WIDTH = 160             # px
MANUAL_ZOOM_STEP = 100          # wheel units per '+'/'-' key press
MANUAL_PAN_STEP = 40            # rendered px per arrow key press
