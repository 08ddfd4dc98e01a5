"""
Concrete trainable weight implementation.

This module defines `Weight`, the infrastructure-level implementation of the
domain contract `IWeight`. A `Weight` is a mutable parameter cell holding:

- `value`: the current parameter (float64 vector or matrix),
- `delta`: the gradient accumulated since the last update, same shape,
- `algorithm`: the bound update rule, created by a builder.

Design notes
------------
- The algorithm borrows `value` and `delta` by reference. Both arrays are
  mutated in place and never reassigned while an algorithm is bound, so the
  algorithm and the weight always observe the same storage.
- Gradient contributions are clipped (see `ClippingPolicy`) and summed into
  `delta`; the summation is commutative and associative, so callers may
  accumulate per example or reduce partial deltas externally first.
- A per-weight lock serializes `accumulate_gradient` and `apply`, giving the
  single-writer discipline required when several threads reach one weight.
- Only `value` is persisted. `delta` is transient and the algorithm (with its
  history) is rebuilt by a builder after restore.
"""

from __future__ import annotations

import threading
import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..domain._algorithm import IAlgorithm
from ..domain._errors import ShapeMismatchError, WeightStateError
from ..domain._weight import IWeight
from ._clipping import ClippingPolicy, get_clipping_policy
from .encoding._b64 import ndarray_to_payload, payload_to_ndarray


class Weight(IWeight):
    """
    Trainable parameter cell with gradient accumulator and bound optimizer.

    Parameters
    ----------
    name : str, optional
        Human-readable name used in error messages.
    clipping : ClippingPolicy | None, optional
        Clipping policy for this weight. If None, the process-wide policy is
        consulted on every accumulation.

    Notes
    -----
    - A fresh `Weight` is empty. A builder populates it via `build` and
      `bind`, or a checkpoint restores its value via `load_payload`.
    - `apply` and `regularization_loss` raise `WeightStateError` until an
      algorithm is bound.
    """

    def __init__(
        self, name: str = "weight", *, clipping: Optional[ClippingPolicy] = None
    ) -> None:
        self.name = str(name)
        self._clipping = clipping
        self._value: Optional[np.ndarray] = None
        self._delta: Optional[np.ndarray] = None
        self._algorithm: Optional[IAlgorithm] = None
        self._lock = threading.Lock()

    # ---- state access ----
    @property
    def value(self) -> Optional[np.ndarray]:
        return self._value

    @property
    def delta(self) -> Optional[np.ndarray]:
        return self._delta

    @property
    def algorithm(self) -> Optional[IAlgorithm]:
        return self._algorithm

    @property
    def clipping(self) -> ClippingPolicy:
        """
        Return the clipping policy in effect for this weight.
        """
        return self._clipping if self._clipping is not None else get_clipping_policy()

    @property
    def shape(self) -> Optional[Tuple[int, ...]]:
        return None if self._value is None else tuple(self._value.shape)

    def is_initialized(self) -> bool:
        return self._value is not None

    def is_bound(self) -> bool:
        return self._algorithm is not None

    # ---- lifecycle ----
    def build(self, value: Any, *, rebind: bool = False) -> "Weight":
        """
        Set the parameter value and allocate a zero delta of the same shape.

        Parameters
        ----------
        value : array-like
            Initial value, rank 1 or rank 2. Copied as float64, except when
            ``value`` is already this weight's own float64 value array, which
            is kept as-is (restore path).
        rebind : bool, optional
            Must be True to rebuild an already initialized weight. Any bound
            algorithm is dropped, so optimizer history is not preserved.

        Returns
        -------
        Weight
            This weight, for chaining.

        Raises
        ------
        WeightStateError
            If the weight is already initialized and ``rebind`` is False.
        ShapeMismatchError
            If ``value`` is neither a vector nor a matrix.
        """
        if self._value is not None and not rebind:
            raise WeightStateError(
                f"Weight '{self.name}' is already initialized; use a builder to rebind it."
            )

        if value is self._value and value is not None:
            arr = self._value
        else:
            arr = np.array(value, dtype=np.float64, copy=True)

        if arr.ndim not in (1, 2):
            raise ShapeMismatchError(
                f"weight '{self.name}' value (rank 1 or 2)", (), tuple(arr.shape)
            )

        with self._lock:
            self._value = arr
            self._delta = np.zeros_like(arr)
            self._algorithm = None
        return self

    def bind(self, algorithm: IAlgorithm) -> "Weight":
        """
        Bind an update algorithm constructed over this weight's arrays.

        Raises
        ------
        WeightStateError
            If the weight has no value yet, or the algorithm does not borrow
            this weight's own `value`/`delta` arrays.
        """
        if self._value is None:
            raise WeightStateError(
                f"Cannot bind an algorithm to uninitialized weight '{self.name}'."
            )
        if (
            getattr(algorithm, "value", None) is not self._value
            or getattr(algorithm, "delta", None) is not self._delta
        ):
            raise WeightStateError(
                f"Algorithm is not constructed over the arrays of weight '{self.name}'."
            )
        self._algorithm = algorithm
        return self

    # ---- training ----
    def accumulate_gradient(self, gradient: Any) -> None:
        """
        Clip a gradient contribution and add it into `delta` in place.

        Parameters
        ----------
        gradient : array-like
            Contribution with exactly the value's shape. The caller's array is
            not modified; clipping is applied to a float64 copy.

        Raises
        ------
        WeightStateError
            If the weight has no value.
        ShapeMismatchError
            If the gradient shape differs from the value shape.
        """
        if self._value is None:
            raise WeightStateError(
                f"Weight '{self.name}' has no value; build it before accumulating gradients."
            )

        g = np.array(gradient, dtype=np.float64, copy=True)
        if g.shape != self._value.shape:
            raise ShapeMismatchError(
                f"gradient of weight '{self.name}'", self._value.shape, g.shape
            )
        if not np.all(np.isfinite(g)):
            warnings.warn(
                f"Non-finite gradient accumulated into weight '{self.name}'.",
                RuntimeWarning,
                stacklevel=2,
            )

        self.clipping.apply(g)
        with self._lock:
            self._delta += g

    def apply(self, batch_size: int) -> None:
        """
        Apply the bound algorithm's update for one mini-batch.

        Parameters
        ----------
        batch_size : int
            Number of examples whose gradients were accumulated. Must be a
            positive integer (validated by the algorithm).

        Raises
        ------
        WeightStateError
            If no algorithm is bound.
        """
        if self._algorithm is None:
            raise WeightStateError(
                f"Weight '{self.name}' does not have any Algorithm instance."
            )
        with self._lock:
            self._algorithm.update(batch_size)

    def regularization_loss(self) -> float:
        """
        Return the L2 loss contribution ``||value||^2 * l2factor``.

        Raises
        ------
        WeightStateError
            If no algorithm is bound.
        """
        if self._algorithm is None or self._value is None:
            raise WeightStateError(
                f"Weight '{self.name}' does not have any Algorithm instance."
            )
        n = float(np.linalg.norm(self._value))
        return n * n * float(self._algorithm.l2factor)

    # ---- persistence ----
    def to_payload(self) -> Dict[str, Any]:
        """
        Serialize the value (only) into a JSON-safe payload.

        Returns
        -------
        dict
            ``{"present": bool, "value": <ndarray payload> | None}``
        """
        if self._value is None:
            return {"present": False, "value": None}
        return {"present": True, "value": ndarray_to_payload(self._value)}

    def load_payload(self, payload: Dict[str, Any]) -> "Weight":
        """
        Restore the value from a payload produced by `to_payload`.

        The delta is reset to zero and any bound algorithm is dropped; a
        builder must rebind the weight before training resumes.
        """
        if not bool(payload.get("present", False)):
            with self._lock:
                self._value = None
                self._delta = None
                self._algorithm = None
            return self

        arr = payload_to_ndarray(payload["value"])
        return self.build(arr, rebind=True)

    def __repr__(self) -> str:
        return (
            f"Weight(name={self.name!r}, shape={self.shape!r}, "
            f"bound={self.is_bound()})"
        )
