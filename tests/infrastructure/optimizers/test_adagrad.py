import unittest

import numpy as np

from deltaweights.infrastructure._clipping import clear_clipping_threshold
from deltaweights.infrastructure._weight import Weight
from deltaweights.infrastructure.optimizers import AdaGrad, AdaGradUpdater


def make_weight(builder: AdaGrad, value) -> Weight:
    return builder.build_to(Weight(), np.asarray(value, dtype=np.float64))


class TestAdaGrad(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def test_steps_match_reference(self):
        rate, l2, fudge = 0.5, 0.001, 1e-6
        v = np.array([1.0, -2.0, 0.5])
        grads = [np.array([0.3, -0.1, 0.0]), np.array([-0.2, 0.4, 1.0])]
        count = 3

        w = make_weight(AdaGrad(rate=rate, l2decay=l2, fudge_factor=fudge), v)

        ref_v = v.copy()
        ref_h = np.zeros_like(v)
        for g in grads:
            w.accumulate_gradient(g)
            w.apply(count)

            d = ref_v * 2 * l2 + g / count
            ref_h = ref_h + d * d
            ref_v = ref_v - d * (rate / (np.sqrt(ref_h) + fudge))

            np.testing.assert_allclose(w.value, ref_v, rtol=1e-12, atol=1e-15)
            np.testing.assert_allclose(w.algorithm.history, ref_h, rtol=1e-12)

    def test_history_is_lazy(self):
        w = make_weight(AdaGrad(), [1.0, 2.0])
        self.assertIsNone(w.algorithm.history)
        w.accumulate_gradient([0.1, 0.1])
        w.apply(1)
        self.assertEqual(w.algorithm.history.shape, (2,))

    def test_history_is_monotonically_non_decreasing(self):
        rng = np.random.default_rng(7)
        w = make_weight(AdaGrad(rate=0.1), rng.normal(size=(3, 3)))

        previous = np.zeros((3, 3))
        for _ in range(20):
            w.accumulate_gradient(rng.normal(size=(3, 3)))
            w.apply(2)
            history = w.algorithm.history.copy()
            self.assertTrue(np.all(history >= previous))
            previous = history

    def test_update_resets_delta(self):
        w = make_weight(AdaGrad(), np.ones((2, 3)))
        w.accumulate_gradient(np.ones((2, 3)))
        w.apply(5)
        np.testing.assert_array_equal(w.delta, np.zeros((2, 3)))

    def test_default_hyperparameters(self):
        b = AdaGrad()
        self.assertEqual(b.hyperparameters(), [0.0001, 0.6, 1e-6])
        self.assertIsInstance(b.get_updater(np.zeros(2), np.zeros(2)), AdaGradUpdater)

    def test_invalid_hyperparams_raise(self):
        with self.assertRaises(ValueError):
            AdaGrad(rate=-0.1)
        with self.assertRaises(ValueError):
            AdaGrad(fudge_factor=0.0)
        with self.assertRaises(ValueError):
            AdaGrad(l2decay=-1e-3)


if __name__ == "__main__":
    unittest.main()
