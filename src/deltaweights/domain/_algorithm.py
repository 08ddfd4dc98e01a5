"""
Domain-level optimizer contracts for deltaweights.

This module defines the `IAlgorithm` and `IWeightBuilder` protocols.

- An algorithm is the per-weight update rule: it borrows one weight's value
  and delta arrays, keeps private history for that weight only, and applies
  one update per mini-batch.
- A builder is the factory for a family of algorithms. It initializes a
  weight's value (random or restored) and binds a freshly constructed
  algorithm carrying the builder's hyperparameters.

Notes
-----
- Domain contracts are backend-agnostic and must not depend on NumPy or
  infrastructure implementations.
- The algorithm family is closed: SGD with momentum, AdaGrad and AdaDelta.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Tuple, runtime_checkable

from ._numeric import NDArrayLike


@runtime_checkable
class IAlgorithm(Protocol):
    """
    Per-weight update rule contract.

    Required members
    ----------------
    - `l2factor` exposes the L2 regularization coefficient used both in the
      effective gradient (``2 * l2factor * value``) and in the weight's loss
      contribution (``||value||^2 * l2factor``).
    - `update(count)` normalizes the accumulated delta by ``count``, applies
      the rule to the bound value in place and zeroes the delta.
    """

    @property
    def l2factor(self) -> float:
        """
        Return the L2 regularization coefficient.
        """
        ...

    def update(self, count: int) -> None:
        """
        Apply one update using the delta accumulated over ``count`` examples.
        """
        ...


@runtime_checkable
class IWeightBuilder(Protocol):
    """
    Weight factory contract for one algorithm family.

    Notes
    -----
    The weight type is left as ``Any`` to keep the domain decoupled from the
    infrastructure `Weight` class.
    """

    def initialize_matrix(
        self, weight: Any, rows: int, cols: int, init_range: Tuple[float, float] = ...
    ) -> Any:
        """
        Initialize (or rebind) a matrix weight of shape ``(rows, cols)``.
        """
        ...

    def initialize_vector(
        self, weight: Any, rows: int, init_range: Tuple[float, float] = ...
    ) -> Any:
        """
        Initialize (or rebind) a vector weight of shape ``(rows,)``.
        """
        ...

    def get_updater(self, value: NDArrayLike, delta: NDArrayLike) -> IAlgorithm:
        """
        Construct this family's algorithm over the given value/delta pair.
        """
        ...

    def hyperparameters(self) -> List[float]:
        """
        Return the persisted hyperparameters in their fixed order.
        """
        ...

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration for this builder.
        """
        ...
