"""
Activation capability contract.

Layers consume activations as a black box with three capabilities:

- `apply(x)`: elementwise forward evaluation.
- `derivative_at_output(y)`: elementwise derivative expressed as a function
  of the activation's *output*. This holds for the tanh/sigmoid family and
  lets a layer backpropagate from its cached output alone.
- `initialize(fan_in, fan_out)`: the recommended ``(low, high)`` range for
  uniform weight initialization given the layer's fan-in and fan-out.
"""

from __future__ import annotations

from typing import Protocol, Tuple, runtime_checkable

from ._numeric import NDArrayLike


@runtime_checkable
class IActivation(Protocol):
    """
    Stateless elementwise activation contract.
    """

    def apply(self, x: NDArrayLike) -> NDArrayLike:
        """
        Evaluate the activation elementwise.
        """
        ...

    def derivative_at_output(self, y: NDArrayLike) -> NDArrayLike:
        """
        Evaluate the derivative elementwise, given the forward output ``y``.
        """
        ...

    def initialize(self, fan_in: int, fan_out: int) -> Tuple[float, float]:
        """
        Return the recommended uniform initialization range.
        """
        ...
