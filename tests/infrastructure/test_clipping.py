import unittest
import warnings

import numpy as np

from deltaweights.infrastructure._clipping import (
    ClippingPolicy,
    clear_clipping_threshold,
    get_clipping_policy,
    scale_check,
    set_clipping_threshold,
)


class TestClippingPolicy(unittest.TestCase):
    def test_disabled_policy_leaves_gradient_unchanged(self):
        policy = ClippingPolicy()
        g = np.array([30.0, 40.0])
        out = policy.apply(g)
        self.assertIs(out, g)
        np.testing.assert_array_equal(g, [30.0, 40.0])

    def test_gradient_above_threshold_is_rescaled_to_threshold(self):
        policy = ClippingPolicy(5.0)
        g = np.array([30.0, 40.0])  # norm 50
        policy.apply(g)
        self.assertAlmostEqual(float(np.linalg.norm(g)), 5.0, places=12)
        np.testing.assert_allclose(g, [3.0, 4.0], rtol=1e-12)

    def test_gradient_at_threshold_keeps_norm(self):
        policy = ClippingPolicy(5.0)
        g = np.array([3.0, 4.0])
        policy.apply(g)
        np.testing.assert_allclose(g, [3.0, 4.0], rtol=1e-12)

    def test_gradient_below_threshold_is_unchanged(self):
        policy = ClippingPolicy(10.0)
        g = np.array([3.0, 4.0])
        policy.apply(g)
        np.testing.assert_array_equal(g, [3.0, 4.0])

    def test_matrix_uses_frobenius_norm(self):
        policy = ClippingPolicy(1.0)
        g = np.array([[3.0, 0.0], [0.0, 4.0]])
        policy.apply(g)
        self.assertAlmostEqual(float(np.linalg.norm(g)), 1.0, places=12)
        np.testing.assert_allclose(g, [[0.6, 0.0], [0.0, 0.8]], rtol=1e-12)

    def test_random_gradients_respect_threshold(self):
        rng = np.random.default_rng(0)
        policy = ClippingPolicy(2.5)
        for _ in range(50):
            g = rng.normal(scale=3.0, size=(3, 4))
            n0 = float(np.linalg.norm(g))
            before = g.copy()
            policy.apply(g)
            if n0 >= 2.5:
                self.assertAlmostEqual(float(np.linalg.norm(g)), 2.5, places=10)
            else:
                np.testing.assert_array_equal(g, before)

    def test_zero_gradient_is_left_alone(self):
        policy = ClippingPolicy(1e-3)
        g = np.zeros(3)
        policy.apply(g)
        np.testing.assert_array_equal(g, np.zeros(3))

    def test_invalid_threshold_raises(self):
        with self.assertRaises(ValueError):
            ClippingPolicy(0.0)
        with self.assertRaises(ValueError):
            ClippingPolicy(-1.0)
        with self.assertRaises(ValueError):
            ClippingPolicy().set_threshold(float("nan"))

    def test_replacing_threshold_warns(self):
        policy = ClippingPolicy(1.0)
        with self.assertWarns(RuntimeWarning):
            policy.set_threshold(2.0)
        self.assertEqual(policy.threshold, 2.0)

    def test_setting_same_threshold_does_not_warn(self):
        policy = ClippingPolicy(1.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            policy.set_threshold(1.0)

    def test_clear_disables(self):
        policy = ClippingPolicy(1.0)
        policy.clear()
        self.assertFalse(policy.is_enabled())
        self.assertIsNone(policy.threshold)


class TestProcessWideClipping(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def tearDown(self):
        clear_clipping_threshold()

    def test_default_is_unset(self):
        self.assertIsNone(get_clipping_policy().threshold)
        g = np.array([100.0, 0.0])
        scale_check(g)
        np.testing.assert_array_equal(g, [100.0, 0.0])

    def test_set_threshold_applies_to_scale_check(self):
        set_clipping_threshold(1.0)
        g = np.array([100.0, 0.0])
        scale_check(g)
        np.testing.assert_allclose(g, [1.0, 0.0])

    def test_get_policy_returns_shared_instance(self):
        self.assertIs(get_clipping_policy(), get_clipping_policy())


if __name__ == "__main__":
    unittest.main()
