"""
Domain-level layer contract.

A layer owns weights, transforms an input vector into an output vector, and
during backpropagation accumulates gradients into its weights and returns the
error to propagate to the layer below.
"""

from __future__ import annotations

from typing import Any, Iterator, Protocol, Tuple, runtime_checkable

from ._numeric import NDArrayLike


@runtime_checkable
class ILayer(Protocol):
    """
    Transform-layer interface contract.

    Required methods
    ----------------
    - `initialize(builder)` allocates and binds weights.
    - `apply(x)` computes the forward output.
    - `backward(x, out, error)` accumulates weight gradients and returns
      ``dLoss/dx``.
    - `update(count)` applies one mini-batch update to every owned weight.
    - `loss()` returns the summed regularization loss of owned weights.
    """

    @property
    def n_in(self) -> int: ...

    @property
    def n_out(self) -> int: ...

    def initialize(self, builder: Any) -> Any: ...

    def apply(self, x: NDArrayLike) -> NDArrayLike: ...

    def backward(
        self, x: NDArrayLike, out: NDArrayLike, error: NDArrayLike
    ) -> NDArrayLike: ...

    def update(self, count: int) -> None: ...

    def loss(self) -> float: ...

    def named_weights(self) -> Iterator[Tuple[str, Any]]: ...
