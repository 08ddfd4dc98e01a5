"""
Rank-3 tensor (bilinear) layers.

A rank-3 tensor layer composes two input vectors through a learned bilinear
form, plus a linear term and a bias:

    v0     = the layer input x
    inA    = in1(x)                    (length fan_in_a)
    inB    = in2(x)                    (length fan_in_b)
    Q_i    = quadratic[i], fan_in_a x fan_in_b, one per output
    L      = linear, n_out x n_in
    b      = bias, n_out

    output = f( [inA' Q_i inB]_i + L x + b )

How ``x`` is split into ``inA``/``inB`` (and how the two partial errors are
recombined on the way back) is the split policy supplied by subclasses:

- `FullRank3TensorLayer`: ``x = [a; b]`` (concatenation).
- `SelfRank3TensorLayer`: ``inA = inB = x`` (quadratic form of one input).

Backward derivation
-------------------
Let ``X = [inA' Q_i inB]_i + L x + b`` and ``dGdX = f'(out) * error``. Only
denominator layout is used.

- bias:       ``dG/db = dGdX``
- linear:     ``dG/dL = dGdX x'``; error ``L' dGdX``
- quadratic:  ``dX_i/dQ_i = inA inB'`` so ``dG/dQ_i = dGdX_i * inA inB'``;
  error ``dGdX_i * restore_error(Q_i inB, Q_i' inA)``, since
  ``dX_i/dinA = Q_i inB`` and ``dX_i/dinB = Q_i' inA``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ...domain._errors import ShapeMismatchError, WeightStateError
from .._activations import (
    Activation,
    HyperbolicTangent,
    activation_from_config,
    activation_to_config,
)
from .._clipping import ClippingPolicy
from .._weight import Weight
from ..optimizers._base import WeightBuilder
from ._base import Layer, register_layer


class Rank3TensorLayer(Layer):
    """
    Fully-connected rank-3 tensor layer with an abstract split policy.

    Parameters
    ----------
    fan_in_a : int
        Length of the first input part.
    fan_in_b : int
        Length of the second input part.
    n_in : int
        Length of the whole layer input.
    n_out : int
        Output dimension (number of quadratic forms).
    activation : Activation, optional
        Output activation. Defaults to `HyperbolicTangent`.
    clipping : ClippingPolicy, optional
        Clipping policy for every owned weight. Defaults to the process-wide
        policy.

    Attributes
    ----------
    quadratic : list[Weight]
        One ``(fan_in_a, fan_in_b)`` matrix per output.
    linear : Weight
        ``(n_out, n_in)`` matrix.
    bias : Weight
        ``(n_out,)`` vector.
    """

    def __init__(
        self,
        fan_in_a: int,
        fan_in_b: int,
        n_in: int,
        n_out: int,
        activation: Optional[Activation] = None,
        *,
        clipping: Optional[ClippingPolicy] = None,
    ) -> None:
        super().__init__(n_in, n_out)
        if int(fan_in_a) <= 0 or int(fan_in_b) <= 0:
            raise ValueError(
                f"fan-ins must be positive, got fan_in_a={fan_in_a}, fan_in_b={fan_in_b}"
            )
        self.fan_in_a = int(fan_in_a)
        self.fan_in_b = int(fan_in_b)
        self.activation: Activation = activation if activation is not None else HyperbolicTangent()
        self._clipping = clipping

        self.quadratic: List[Weight] = []
        self.linear = Weight("linear", clipping=clipping)
        self.bias = Weight("bias", clipping=clipping)

    def with_activation(self, activation: Activation) -> "Rank3TensorLayer":
        self.activation = activation
        return self

    # ---- split policy ----
    @abstractmethod
    def in1(self, x: np.ndarray) -> np.ndarray:
        """
        Retrieve the first input part (length `fan_in_a`).
        """
        raise NotImplementedError

    @abstractmethod
    def in2(self, x: np.ndarray) -> np.ndarray:
        """
        Retrieve the second input part (length `fan_in_b`).
        """
        raise NotImplementedError

    @abstractmethod
    def restore_error(self, err_a: np.ndarray, err_b: np.ndarray) -> np.ndarray:
        """
        Recombine partial errors of both input parts into an input-space
        error of length `n_in`. Exact inverse of the split.
        """
        raise NotImplementedError

    # ---- weights ----
    def named_weights(self) -> Iterator[Tuple[str, Weight]]:
        yield "bias", self.bias
        yield "linear", self.linear
        for i, q in enumerate(self.quadratic):
            yield f"quadratic.{i}", q

    def is_initialized(self) -> bool:
        return (
            len(self.quadratic) == self.n_out
            and all(w.is_initialized() for _, w in self.named_weights())
        )

    def _require_initialized(self) -> None:
        if not self.is_initialized():
            raise WeightStateError(
                f"{type(self).__name__} is not initialized; call initialize(builder) first."
            )

    def _new_quadratic(self, i: int) -> Weight:
        return Weight(f"quadratic.{i}", clipping=self._clipping)

    def _expected_shapes(self) -> Iterator[Tuple[Weight, Tuple[int, ...]]]:
        yield self.bias, (self.n_out,)
        yield self.linear, (self.n_out, self.n_in)
        for q in self.quadratic:
            yield q, (self.fan_in_a, self.fan_in_b)

    @staticmethod
    def _check_shape(weight: Weight, expected: Tuple[int, ...]) -> None:
        if weight.is_initialized() and weight.shape != expected:
            raise ShapeMismatchError(f"weight '{weight.name}'", expected, weight.shape)

    def initialize(self, builder: WeightBuilder) -> "Rank3TensorLayer":
        """
        Allocate (if needed) and build every weight with ``builder``.

        Fresh weights are drawn from the activation's recommended range for
        ``(n_in, n_out)``. Weights that already hold a value (restored from a
        payload) keep it and are rebound to fresh algorithms.

        Raises
        ------
        ShapeMismatchError
            If a restored weight's shape disagrees with the layer's fan-ins.
            Shapes are checked before any weight is rebound.
        """
        init_range = self.activation.initialize(self.n_in, self.n_out)

        if not self.quadratic:
            self.quadratic = [self._new_quadratic(i) for i in range(self.n_out)]
        elif len(self.quadratic) != self.n_out:
            raise ShapeMismatchError(
                "quadratic weight count", (self.n_out,), (len(self.quadratic),)
            )
        for weight, expected in self._expected_shapes():
            self._check_shape(weight, expected)

        for q in self.quadratic:
            builder.initialize_matrix(q, self.fan_in_a, self.fan_in_b, init_range)
        builder.initialize_matrix(self.linear, self.n_out, self.n_in, init_range)
        builder.initialize_vector(self.bias, self.n_out, init_range)
        return self

    # ---- computation ----
    def apply(self, x: np.ndarray) -> np.ndarray:
        """
        Forward computation.

        Parameters
        ----------
        x : np.ndarray
            Input vector of length `n_in`.

        Returns
        -------
        np.ndarray
            Activated output vector of length `n_out`.
        """
        self._require_initialized()
        x = self._as_vector(x, self.n_in, "layer input")
        in_a = self.in1(x)
        in_b = self.in2(x)

        intermediate = self.linear.value @ x
        intermediate += self.bias.value
        intermediate += np.array(
            [in_a @ (q.value @ in_b) for q in self.quadratic], dtype=np.float64
        )

        return self.activation.apply(intermediate)

    def backward(self, x: np.ndarray, out: np.ndarray, error: np.ndarray) -> np.ndarray:
        """
        Backward computation.

        Accumulates gradients into bias, linear and every quadratic weight,
        and returns the error to propagate to the layer below.

        Parameters
        ----------
        x : np.ndarray
            The input given to `apply`.
        out : np.ndarray
            The output returned by `apply` for ``x``.
        error : np.ndarray
            ``dG/dF`` propagated from the layer above (length `n_out`).

        Returns
        -------
        np.ndarray
            ``dG/dx`` (length `n_in`).
        """
        self._require_initialized()
        x = self._as_vector(x, self.n_in, "layer input")
        out = self._as_vector(out, self.n_out, "layer output")
        error = self._as_vector(error, self.n_out, "propagated error")

        in_a = self.in1(x)
        in_b = self.in2(x)

        # f' depends only on the output, so dG/dX = f'(out) * dG/dF
        dGdX = self.activation.derivative_at_output(out) * error

        # bias input is always 1
        self.bias.accumulate_gradient(dGdX)

        self.linear.accumulate_gradient(np.outer(dGdX, x))
        dGdx = self.linear.value.T @ dGdX

        dXdQ = np.outer(in_a, in_b)
        for i in range(self.n_out - 1, -1, -1):
            g = float(dGdX[i])
            q = self.quadratic[i]
            q.accumulate_gradient(dXdQ * g)

            dXdx_a = q.value @ in_b
            dXdx_b = q.value.T @ in_a
            dGdx += self.restore_error(dXdx_a, dXdx_b) * g

        return dGdx

    # ---- persistence ----
    def to_payload(self) -> Dict[str, Any]:
        """
        Serialize the layer state.

        Keys are written (and read back) in this order: ``fan_in_a``,
        ``fan_in_b``, ``activation``, ``bias``, ``linear``, ``n_out``,
        ``quadratic`` (index order), ``base``.
        """
        return {
            "fan_in_a": self.fan_in_a,
            "fan_in_b": self.fan_in_b,
            "activation": activation_to_config(self.activation),
            "bias": self.bias.to_payload(),
            "linear": self.linear.to_payload(),
            "n_out": self.n_out,
            "quadratic": [q.to_payload() for q in self.quadratic],
            "base": self.base_payload(),
        }

    def load_payload(self, payload: Dict[str, Any]) -> "Rank3TensorLayer":
        """
        Restore state written by `to_payload` into this layer.

        Weight values are restored without algorithms; call
        `initialize(builder)` before training resumes. The whole payload is
        decoded and checked before the layer is modified, so a rejected
        payload leaves the layer untouched.

        Raises
        ------
        ShapeMismatchError
            If the payload's dimensions disagree with this layer's, the
            quadratic list length differs from ``n_out``, or a stored weight
            has the wrong shape.
        """
        fan_in_a = int(payload["fan_in_a"])
        fan_in_b = int(payload["fan_in_b"])
        if (fan_in_a, fan_in_b) != (self.fan_in_a, self.fan_in_b):
            raise ShapeMismatchError(
                "layer fan-ins", (self.fan_in_a, self.fan_in_b), (fan_in_a, fan_in_b)
            )

        n_out = int(payload["n_out"])
        entries = list(payload["quadratic"])
        if n_out != self.n_out or len(entries) != n_out:
            raise ShapeMismatchError(
                "quadratic weight count", (self.n_out,), (n_out, len(entries))
            )

        base = payload.get("base", {}) or {}
        if "n_in" in base and int(base["n_in"]) != self.n_in:
            raise ShapeMismatchError("layer input size", (self.n_in,), (int(base["n_in"]),))

        activation = activation_from_config(payload["activation"])
        bias = Weight("bias", clipping=self._clipping).load_payload(payload["bias"])
        linear = Weight("linear", clipping=self._clipping).load_payload(payload["linear"])
        quadratic = [self._new_quadratic(i).load_payload(e) for i, e in enumerate(entries)]

        self._check_shape(bias, (self.n_out,))
        self._check_shape(linear, (self.n_out, self.n_in))
        for q in quadratic:
            self._check_shape(q, (self.fan_in_a, self.fan_in_b))

        self.activation = activation
        self.bias = bias
        self.linear = linear
        self.quadratic = quadratic
        return self


@register_layer()
class FullRank3TensorLayer(Rank3TensorLayer):
    """
    Rank-3 tensor layer over a concatenated input ``x = [a; b]``.

    ``in1(x) = x[:fan_in_a]``, ``in2(x) = x[fan_in_a:]`` and
    ``restore_error`` concatenates, so ``n_in = fan_in_a + fan_in_b``.
    """

    def __init__(
        self,
        fan_in_a: int,
        fan_in_b: int,
        n_out: int,
        activation: Optional[Activation] = None,
        *,
        clipping: Optional[ClippingPolicy] = None,
    ) -> None:
        super().__init__(
            fan_in_a,
            fan_in_b,
            int(fan_in_a) + int(fan_in_b),
            n_out,
            activation,
            clipping=clipping,
        )

    def in1(self, x: np.ndarray) -> np.ndarray:
        return x[: self.fan_in_a]

    def in2(self, x: np.ndarray) -> np.ndarray:
        return x[self.fan_in_a :]

    def restore_error(self, err_a: np.ndarray, err_b: np.ndarray) -> np.ndarray:
        return np.concatenate([err_a, err_b])

    def get_config(self) -> Dict[str, Any]:
        return {"fan_in_a": self.fan_in_a, "fan_in_b": self.fan_in_b, "n_out": self.n_out}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "FullRank3TensorLayer":
        return cls(
            fan_in_a=int(cfg["fan_in_a"]),
            fan_in_b=int(cfg["fan_in_b"]),
            n_out=int(cfg["n_out"]),
        )


@register_layer()
class SelfRank3TensorLayer(Rank3TensorLayer):
    """
    Rank-3 tensor layer applying each quadratic form to the input itself.

    ``in1(x) = in2(x) = x``; since both parts are the same variable, the
    partial errors add up.
    """

    def __init__(
        self,
        fan_in: int,
        n_out: int,
        activation: Optional[Activation] = None,
        *,
        clipping: Optional[ClippingPolicy] = None,
    ) -> None:
        super().__init__(fan_in, fan_in, fan_in, n_out, activation, clipping=clipping)

    def in1(self, x: np.ndarray) -> np.ndarray:
        return x

    def in2(self, x: np.ndarray) -> np.ndarray:
        return x

    def restore_error(self, err_a: np.ndarray, err_b: np.ndarray) -> np.ndarray:
        return err_a + err_b

    def get_config(self) -> Dict[str, Any]:
        return {"fan_in": self.fan_in_a, "n_out": self.n_out}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SelfRank3TensorLayer":
        return cls(fan_in=int(cfg["fan_in"]), n_out=int(cfg["n_out"]))
