"""
Trainable weight interface definitions.

This module defines the domain-level interface for weights: mutable parameter
cells that hold a value, an accumulated gradient (delta) and a bound update
algorithm.

Lifecycle
---------
1. Declared empty by a layer.
2. Populated by a builder (random init or restored value) and bound to an
   algorithm.
3. Mutated across training by repeated `accumulate_gradient` calls followed
   by one `apply(batch_size)` per mini-batch.
4. Persisted by writing only its value.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ._algorithm import IAlgorithm
from ._numeric import NDArrayLike


@runtime_checkable
class IWeight(Protocol):
    """
    Domain-level interface for trainable weights.

    Notes
    -----
    - `value` and `delta` are either both present or both absent.
    - `apply` and `regularization_loss` require a bound algorithm.
    """

    @property
    def value(self) -> Optional[NDArrayLike]:
        """
        Return the current parameter value, or None if never built.
        """
        ...

    @property
    def delta(self) -> Optional[NDArrayLike]:
        """
        Return the gradient accumulated since the last update.
        """
        ...

    @property
    def algorithm(self) -> Optional[IAlgorithm]:
        """
        Return the bound update algorithm, if any.
        """
        ...

    def is_initialized(self) -> bool:
        """
        Return True once a value has been built or restored.
        """
        ...

    def accumulate_gradient(self, gradient: NDArrayLike) -> None:
        """
        Clip ``gradient`` and add it into `delta` in place.
        """
        ...

    def apply(self, batch_size: int) -> None:
        """
        Run the bound algorithm's update over the accumulated delta.
        """
        ...

    def regularization_loss(self) -> float:
        """
        Return ``||value||^2 * l2factor`` of the bound algorithm.
        """
        ...
