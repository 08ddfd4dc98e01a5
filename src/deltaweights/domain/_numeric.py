"""
Domain-level structural typing for the numeric containers held by weights.

This module defines :class:`NDArrayLike`, a backend-agnostic Protocol for the
dense vectors and matrices a `Weight` stores, without introducing a dependency
on NumPy in the domain layer.

Design intent
-------------
- Weights are either rank-1 (vector) or rank-2 (matrix). Update rules are
  written once against this capability set and run unchanged over both ranks.
- Only the surface the update core touches is modelled: shape queries,
  copying, in-place fill, transposition and item access. Elementwise
  arithmetic is assumed to follow NumPy operator semantics.

Typical implementers include ``numpy.ndarray`` and array types that emulate
its semantics.
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable


@runtime_checkable
class NDArrayLike(Protocol):
    """
    A structural typing interface for dense vector/matrix containers.

    Notes
    -----
    - This is a *Protocol*, not a concrete base class.
    - Implementers are expected to follow NumPy-like semantics, including
      in-place operators (``+=``, ``-=``, ``*=``) that mutate the receiver.
    """

    @property
    def shape(self) -> Tuple[int, ...]:
        """
        Shape of the container as a tuple of dimension sizes.
        """
        ...

    @property
    def ndim(self) -> int:
        """
        Rank of the container (1 for vectors, 2 for matrices).
        """
        ...

    @property
    def dtype(self) -> Any:
        """
        Element data type descriptor (backend-defined).
        """
        ...

    @property
    def T(self) -> NDArrayLike:
        """
        Transposed view of the container.
        """
        ...

    def copy(self) -> NDArrayLike:
        """
        Return an independent copy of the container.
        """
        ...

    def fill(self, value: Any) -> None:
        """
        Overwrite every element with ``value`` in place.
        """
        ...

    def __getitem__(self, key: Any) -> Any: ...

    def __setitem__(self, key: Any, value: Any) -> None: ...
