import unittest
import math
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smartzoom.framing import Measurement
from smartzoom.smoothing import (
    KALMAN_FAST,
    KALMAN_SMOOTH,
    SMOOTHING_PRESET_DESCRIPTIONS,
    SMOOTHING_PRESET_LABELS,
    EmaSmoother,
    Kalman1D,
    KalmanSmoother,
    SmoothedPosition,
    SmoothingPreset,
    clamp_speed,
    create_smoother,
    ema_step,
    kalman_predict,
)

HOME = SmoothedPosition(0.0, 0.0, 1.0)


def steps_to_reach(smoother, target, fraction, max_steps=200):
    """Frames until x covers ``fraction`` of the way to ``target.x``."""
    for i in range(1, max_steps + 1):
        if smoother.update(target).x >= fraction * target.x:
            return i
    return max_steps + 1


class TestEmaSmoother(unittest.TestCase):
    def test_starts_at_home(self):
        self.assertEqual(EmaSmoother().get_position(), HOME)

    def test_half_step(self):
        result = EmaSmoother(smooth_factor=0.5).update(Measurement(1, 1, 2))
        self.assertAlmostEqual(result.x, 0.5)
        self.assertAlmostEqual(result.y, 0.5)
        self.assertAlmostEqual(result.zoom, 1.5)

    def test_factor_zero_never_moves(self):
        smoother = EmaSmoother(smooth_factor=0.0)
        for _ in range(20):
            smoother.update(Measurement(1, -1, 3))
        self.assertEqual(smoother.get_position(), HOME)

    def test_factor_one_snaps(self):
        result = EmaSmoother(smooth_factor=1.0).update(Measurement(0.2, -0.1, 2.5))
        self.assertEqual(result, SmoothedPosition(0.2, -0.1, 2.5))

    def test_converges(self):
        smoother = EmaSmoother(smooth_factor=0.1)
        target = Measurement(0.3, -0.2, 2.5)
        for _ in range(100):
            smoother.update(target)
        pos = smoother.get_position()
        self.assertLess(abs(pos.x - target.x), 0.01)
        self.assertLess(abs(pos.y - target.y), 0.01)
        self.assertLess(abs(pos.zoom - target.zoom), 0.01)

    def test_get_position_does_not_advance(self):
        smoother = EmaSmoother(smooth_factor=0.5)
        smoother.update(Measurement(1, 1, 2))
        self.assertEqual(smoother.get_position(), smoother.get_position())
        self.assertAlmostEqual(smoother.get_position().x, 0.5)

    def test_reset(self):
        smoother = EmaSmoother()
        smoother.update(Measurement(1, 1, 3))
        smoother.reset()
        self.assertEqual(smoother.get_position(), HOME)

    def test_rejects_bad_factor(self):
        with self.assertRaises(ValueError):
            EmaSmoother(smooth_factor=1.5)


class TestEmaStep(unittest.TestCase):
    def test_single_step(self):
        result = ema_step(HOME, Measurement(1, 1, 2), 0.5)
        self.assertEqual(result, SmoothedPosition(0.5, 0.5, 1.5))

    def test_factor_zero(self):
        self.assertEqual(ema_step(HOME, Measurement(1, 1, 2), 0), HOME)

    def test_factor_one(self):
        self.assertEqual(ema_step(HOME, Measurement(1, 1, 2), 1), SmoothedPosition(1, 1, 2))


class TestKalmanSmoother(unittest.TestCase):
    def test_starts_at_home(self):
        self.assertEqual(KalmanSmoother().get_position(), HOME)

    def test_moves_towards_target(self):
        smoother = KalmanSmoother(KALMAN_FAST)
        for _ in range(10):
            smoother.update(Measurement(1, 1, 2))
        pos = smoother.get_position()
        self.assertGreater(pos.x, 0)
        self.assertGreater(pos.y, 0)
        self.assertGreater(pos.zoom, 1)

    def test_converges_for_both_presets(self):
        target = Measurement(0.3, -0.2, 2.5)
        for config in (KALMAN_FAST, KALMAN_SMOOTH):
            smoother = KalmanSmoother(config)
            for _ in range(200):
                smoother.update(target)
            pos = smoother.get_position()
            self.assertLess(abs(pos.x - target.x), 0.1)
            self.assertLess(abs(pos.y - target.y), 0.1)
            self.assertLess(abs(pos.zoom - target.zoom), 0.1)

    def test_fast_is_quicker_than_smooth(self):
        target = Measurement(1, 0, 1)
        fast = steps_to_reach(KalmanSmoother(KALMAN_FAST), target, 0.9)
        smooth = steps_to_reach(KalmanSmoother(KALMAN_SMOOTH), target, 0.9)
        self.assertLess(fast, smooth)

    def test_velocities(self):
        smoother = KalmanSmoother(KALMAN_FAST)
        smoother.update(Measurement(1, 1, 2))
        vel = smoother.get_velocities()
        self.assertEqual(set(vel), {"vx", "vy", "vZoom"})
        self.assertGreater(vel["vx"], 0)
        for _ in range(20):
            smoother.update(Measurement(1, 1, 2))
        self.assertTrue(all(math.isfinite(v) for v in smoother.get_velocities().values()))

    def test_reset(self):
        smoother = KalmanSmoother()
        for _ in range(10):
            smoother.update(Measurement(1, 1, 3))
        smoother.reset()
        self.assertEqual(smoother.get_position(), HOME)
        self.assertEqual(smoother.get_velocities(), {"vx": 0.0, "vy": 0.0, "vZoom": 0.0})


class TestKalman1D(unittest.TestCase):
    def test_first_update_matches_hand_computation(self):
        f = Kalman1D(KALMAN_FAST)
        # P' = [[2.01, 1], [1, 1.001]], S = 2.11
        pos = f.update(1.0)
        self.assertAlmostEqual(pos, 2.01 / 2.11)
        self.assertAlmostEqual(f.velocity, 1 / 2.11)
        self.assertAlmostEqual(f.covariance[0, 0], (1 - 2.01 / 2.11) * 2.01)

    def test_covariance_stays_symmetric(self):
        f = Kalman1D(KALMAN_SMOOTH)
        for z in (0.1, 0.4, 0.2, 0.9, 0.5):
            f.update(z)
        p = f.covariance
        self.assertAlmostEqual(p[0, 1], p[1, 0])


class TestKalmanPredict(unittest.TestCase):
    def test_predicts_with_velocity(self):
        x, v = kalman_predict(0, 0.1)
        self.assertAlmostEqual(x, 0.1)
        self.assertAlmostEqual(v, 0.1)

    def test_velocity_constant(self):
        self.assertEqual(kalman_predict(5, 0.5)[1], 0.5)


class TestCreateSmoother(unittest.TestCase):
    def test_presets(self):
        self.assertIsInstance(create_smoother("ema"), EmaSmoother)
        fast = create_smoother("kalmanFast")
        self.assertIsInstance(fast, KalmanSmoother)
        self.assertEqual(fast.config, KALMAN_FAST)
        smooth = create_smoother(SmoothingPreset.KALMAN_SMOOTH)
        self.assertEqual(smooth.config, KALMAN_SMOOTH)

    def test_unknown_preset_fails_loudly(self):
        with self.assertRaises(ValueError):
            create_smoother("median")

    def test_every_preset_has_ui_text(self):
        for preset in SmoothingPreset:
            self.assertIn(preset, SMOOTHING_PRESET_LABELS)
            self.assertIn(preset, SMOOTHING_PRESET_DESCRIPTIONS)


class TestClampSpeed(unittest.TestCase):
    def test_within_limits(self):
        target = SmoothedPosition(0.01, 0.01, 1.05)
        self.assertEqual(clamp_speed(HOME, target, 0.1, 0.1), target)

    def test_pan_clamped(self):
        result = clamp_speed(HOME, SmoothedPosition(1, 0, 1), 0.1, 0.1)
        self.assertAlmostEqual(result.x, 0.1)
        self.assertEqual(result.y, 0)

    def test_zoom_clamped(self):
        result = clamp_speed(HOME, SmoothedPosition(0, 0, 3), 0.1, 0.1)
        self.assertAlmostEqual(result.zoom, 1.1)

    def test_negative_zoom_clamped(self):
        result = clamp_speed(SmoothedPosition(0, 0, 3), SmoothedPosition(0, 0, 1), 0.1, 0.1)
        self.assertAlmostEqual(result.zoom, 2.9)

    def test_direction_preserved(self):
        result = clamp_speed(HOME, SmoothedPosition(-1, -1, 1), 0.1, 0.1)
        self.assertAlmostEqual(result.x, result.y)
        self.assertAlmostEqual(math.hypot(result.x, result.y), 0.1)

    def test_no_movement(self):
        self.assertEqual(clamp_speed(HOME, HOME, 0.1, 0.1), HOME)


if __name__ == '__main__':
    unittest.main()
