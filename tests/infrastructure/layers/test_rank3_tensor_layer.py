import unittest

import numpy as np

from deltaweights.domain._errors import (
    InvalidBatchSizeError,
    ShapeMismatchError,
    WeightStateError,
)
from deltaweights.infrastructure._activations import HyperbolicTangent, Linear, Sigmoid
from deltaweights.infrastructure._clipping import clear_clipping_threshold
from deltaweights.infrastructure.layers import (
    FullRank3TensorLayer,
    SelfRank3TensorLayer,
    layer_from_config,
    register_layer,
)
from deltaweights.infrastructure.optimizers import AdaGrad, StochasticGradientDescent


def fixed_layer() -> FullRank3TensorLayer:
    """fan_in_a=2, fan_in_b=3, n_out=2 with hand-set weights."""
    layer = FullRank3TensorLayer(2, 3, 2, Linear()).initialize(
        StochasticGradientDescent(momentum=0.0, seed=0)
    )
    layer.quadratic[0].value[...] = [[1.0, 0.0, 2.0], [0.0, 1.0, -1.0]]
    layer.quadratic[1].value[...] = [[0.5, 0.5, 0.0], [1.0, 0.0, 0.0]]
    layer.linear.value[...] = [[1.0, 0.0, 0.0, 0.0, 1.0], [0.0, -1.0, 2.0, 0.0, 0.0]]
    layer.bias.value[...] = [0.1, -0.2]
    return layer


class TestRank3TensorLayerStructure(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def test_initialize_allocates_shapes(self):
        layer = FullRank3TensorLayer(3, 4, 5).initialize(AdaGrad(seed=0))
        self.assertEqual(layer.n_in, 7)
        self.assertEqual(layer.n_out, 5)
        self.assertEqual(len(layer.quadratic), 5)
        for q in layer.quadratic:
            self.assertEqual(q.shape, (3, 4))
            self.assertTrue(q.is_bound())
        self.assertEqual(layer.linear.shape, (5, 7))
        self.assertEqual(layer.bias.shape, (5,))

    def test_initialize_uses_activation_range(self):
        layer = FullRank3TensorLayer(3, 4, 5, Sigmoid()).initialize(AdaGrad(seed=0))
        low, high = Sigmoid().initialize(7, 5)
        for w in layer.weights():
            self.assertTrue(np.all(w.value >= low))
            self.assertTrue(np.all(w.value < high))

    def test_default_activation_is_tanh(self):
        layer = SelfRank3TensorLayer(3, 2)
        self.assertIsInstance(layer.activation, HyperbolicTangent)
        self.assertIs(layer.with_activation(Linear()), layer)
        self.assertIsInstance(layer.activation, Linear)

    def test_reinitialize_keeps_values(self):
        layer = FullRank3TensorLayer(2, 2, 2).initialize(AdaGrad(seed=0))
        before = [w.value.copy() for w in layer.weights()]
        layer.initialize(AdaGrad(seed=99))
        for w, b in zip(layer.weights(), before):
            np.testing.assert_array_equal(w.value, b)

    def test_inconsistent_quadratic_count_raises(self):
        layer = FullRank3TensorLayer(2, 2, 3)
        layer.quadratic = layer.quadratic + [layer._new_quadratic(0)]
        with self.assertRaises(ShapeMismatchError):
            layer.initialize(AdaGrad())

    def test_bad_restored_shape_is_rejected_before_rebinding(self):
        layer = FullRank3TensorLayer(2, 2, 2).initialize(AdaGrad(seed=0))
        algorithms = [w.algorithm for w in layer.weights()]
        layer.linear.build(np.zeros((2, 3)), rebind=True)

        with self.assertRaises(ShapeMismatchError):
            layer.initialize(AdaGrad(seed=1))
        for q, algorithm in zip(layer.quadratic, algorithms[2:]):
            self.assertIs(q.algorithm, algorithm)
        self.assertIs(layer.bias.algorithm, algorithms[0])

    def test_duplicate_layer_name_raises(self):
        with self.assertRaises(ValueError):

            @register_layer("FullRank3TensorLayer")
            class Other(FullRank3TensorLayer):
                pass

        cfg = {"fan_in_a": 1, "fan_in_b": 1, "n_out": 1}
        layer = layer_from_config({"type": "FullRank3TensorLayer", "config": cfg})
        self.assertIs(type(layer), FullRank3TensorLayer)

    def test_named_weights_order(self):
        layer = SelfRank3TensorLayer(2, 2).initialize(AdaGrad(seed=0))
        names = [name for name, _ in layer.named_weights()]
        self.assertEqual(names, ["bias", "linear", "quadratic.0", "quadratic.1"])

    def test_invalid_dimensions_raise(self):
        with self.assertRaises(ValueError):
            FullRank3TensorLayer(0, 2, 1)
        with self.assertRaises(ValueError):
            SelfRank3TensorLayer(2, 0)


class TestRank3TensorLayerForward(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def test_forward_matches_formula(self):
        layer = fixed_layer()
        x = np.array([1.0, 2.0, 3.0, -1.0, 0.5])
        a, b = x[:2], x[2:]

        expected = layer.linear.value @ x + layer.bias.value
        expected += np.array([a @ q.value @ b for q in layer.quadratic])
        np.testing.assert_allclose(layer.apply(x), expected, rtol=1e-12)

    def test_forward_applies_activation(self):
        layer = fixed_layer()
        x = np.array([0.1, -0.2, 0.3, 0.0, 0.2])
        linear_out = layer.apply(x)
        layer.with_activation(HyperbolicTangent())
        np.testing.assert_allclose(layer(x), np.tanh(linear_out), rtol=1e-12)

    def test_forward_is_deterministic(self):
        layer = FullRank3TensorLayer(3, 2, 4).initialize(AdaGrad(seed=5))
        x = np.linspace(-1.0, 1.0, 5)
        first = layer.apply(x)
        for _ in range(3):
            np.testing.assert_array_equal(layer.apply(x), first)

    def test_forward_before_initialize_raises(self):
        with self.assertRaises(WeightStateError):
            FullRank3TensorLayer(2, 2, 1).apply(np.zeros(4))

    def test_wrong_input_length_raises(self):
        layer = fixed_layer()
        with self.assertRaises(ShapeMismatchError):
            layer.apply(np.zeros(4))
        with self.assertRaises(ShapeMismatchError):
            layer.apply(np.zeros((5, 1)))

    def test_self_layer_uses_input_twice(self):
        layer = SelfRank3TensorLayer(2, 1, Linear()).initialize(AdaGrad(seed=0))
        layer.quadratic[0].value[...] = [[1.0, 2.0], [0.0, 3.0]]
        layer.linear.value[...] = 0.0
        layer.bias.value[...] = 0.0
        x = np.array([2.0, -1.0])
        # x' Q x = 4 - 4 + 3
        np.testing.assert_allclose(layer.apply(x), [3.0])


class TestRank3TensorLayerBackward(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def test_accumulated_gradients(self):
        layer = fixed_layer().with_activation(HyperbolicTangent())
        x = np.array([0.2, -0.4, 0.1, 0.3, -0.5])
        out = layer.apply(x)
        error = np.array([0.7, -1.3])

        propagated = layer.backward(x, out, error)

        dGdX = (1.0 - out * out) * error
        np.testing.assert_allclose(layer.bias.delta, dGdX, rtol=1e-12)
        np.testing.assert_allclose(layer.linear.delta, np.outer(dGdX, x), rtol=1e-12)
        a, b = x[:2], x[2:]
        for i, q in enumerate(layer.quadratic):
            np.testing.assert_allclose(q.delta, dGdX[i] * np.outer(a, b), rtol=1e-12)

        expected = layer.linear.value.T @ dGdX
        for i, q in enumerate(layer.quadratic):
            expected += dGdX[i] * np.concatenate([q.value @ b, q.value.T @ a])
        np.testing.assert_allclose(propagated, expected, rtol=1e-12)

    def test_backward_does_not_change_values(self):
        layer = fixed_layer()
        before = [w.value.copy() for w in layer.weights()]
        x = np.ones(5)
        layer.backward(x, layer.apply(x), np.ones(2))
        for w, b in zip(layer.weights(), before):
            np.testing.assert_array_equal(w.value, b)

    def test_backward_accumulates_across_examples(self):
        layer = fixed_layer()
        x1 = np.array([1.0, 0.0, 0.0, 1.0, 0.0])
        x2 = np.array([0.0, 1.0, 1.0, 0.0, 1.0])
        e = np.array([1.0, 1.0])
        layer.backward(x1, layer.apply(x1), e)
        layer.backward(x2, layer.apply(x2), e)
        np.testing.assert_allclose(layer.linear.delta, np.outer(e, x1) + np.outer(e, x2))

    def test_wrong_error_length_raises(self):
        layer = fixed_layer()
        x = np.ones(5)
        with self.assertRaises(ShapeMismatchError):
            layer.backward(x, layer.apply(x), np.ones(3))


class TestRank3TensorLayerTraining(unittest.TestCase):
    def setUp(self):
        clear_clipping_threshold()

    def test_update_applies_every_weight_and_resets_deltas(self):
        layer = FullRank3TensorLayer(2, 2, 2).initialize(AdaGrad(rate=0.1, seed=0))
        before = [w.value.copy() for w in layer.weights()]
        x = np.array([0.5, -0.5, 1.0, 0.25])
        layer.backward(x, layer.apply(x), np.array([1.0, -1.0]))
        layer.update(1)

        for w, b in zip(layer.weights(), before):
            self.assertFalse(np.array_equal(w.value, b))
            np.testing.assert_array_equal(w.delta, np.zeros_like(b))

    def test_invalid_batch_size_leaves_every_weight_untouched(self):
        layer = FullRank3TensorLayer(2, 2, 2).initialize(AdaGrad(seed=0))
        x = np.ones(4)
        layer.backward(x, layer.apply(x), np.ones(2))
        values = [w.value.copy() for w in layer.weights()]
        deltas = [w.delta.copy() for w in layer.weights()]

        with self.assertRaises(InvalidBatchSizeError):
            layer.update(0)
        for w, v, d in zip(layer.weights(), values, deltas):
            np.testing.assert_array_equal(w.value, v)
            np.testing.assert_array_equal(w.delta, d)

    def test_loss_is_sum_of_weight_losses(self):
        layer = FullRank3TensorLayer(2, 3, 2).initialize(StochasticGradientDescent(l2decay=0.5, seed=0))
        expected = sum(float(np.sum(w.value**2)) * 0.5 for w in layer.weights())
        self.assertAlmostEqual(layer.loss(), expected, places=12)

    def test_loss_before_initialize_raises(self):
        with self.assertRaises(WeightStateError):
            FullRank3TensorLayer(2, 2, 1).loss()

    def test_training_reduces_squared_error(self):
        rng = np.random.default_rng(11)
        layer = FullRank3TensorLayer(2, 2, 1).initialize(AdaGrad(rate=0.05, seed=1))
        xs = rng.uniform(-1.0, 1.0, size=(16, 4))
        ys = np.tanh(xs[:, 0] * xs[:, 2] - 0.5 * xs[:, 1] * xs[:, 3])[:, None]

        def total_error() -> float:
            return float(sum(np.sum((layer.apply(x) - y) ** 2) for x, y in zip(xs, ys)))

        start = total_error()
        for _ in range(100):
            for x, y in zip(xs, ys):
                out = layer.apply(x)
                layer.backward(x, out, 2.0 * (out - y))
            layer.update(len(xs))
        self.assertLess(total_error(), start)


if __name__ == "__main__":
    unittest.main()
