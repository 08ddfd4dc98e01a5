"""
Gradient clipping by global norm.

This module implements the "scaling down" trick of Pascanu et al. (2013):
any gradient contribution whose norm reaches a threshold is rescaled in place
so that its norm equals the threshold exactly. Contributions below the
threshold pass through untouched.

Design
------
- `ClippingPolicy` is an explicit configuration object. A `Weight` may be
  handed its own policy at construction; otherwise it reads the process-wide
  default returned by `get_clipping_policy()`.
- The process-wide default starts unset. It is meant to be configured once,
  before training, and treated as read-only afterwards. Replacing an already
  configured threshold with a different one emits a `RuntimeWarning`.
- Norms are Euclidean for vectors and Frobenius for matrices.
"""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np


class ClippingPolicy:
    """
    Optional global-norm threshold applied to gradient contributions.

    Parameters
    ----------
    threshold : float | None, optional
        Norm cap. ``None`` disables clipping. Must be > 0 when given.

    Raises
    ------
    ValueError
        If ``threshold`` is not a positive finite number.
    """

    def __init__(self, threshold: Optional[float] = None) -> None:
        self._threshold: Optional[float] = None
        if threshold is not None:
            self._threshold = self._validate(threshold)

    @staticmethod
    def _validate(threshold: float) -> float:
        t = float(threshold)
        if not np.isfinite(t) or t <= 0.0:
            raise ValueError(f"clipping threshold must be > 0, got {threshold!r}")
        return t

    @property
    def threshold(self) -> Optional[float]:
        """
        Return the configured norm cap, or None when clipping is disabled.
        """
        return self._threshold

    def is_enabled(self) -> bool:
        return self._threshold is not None

    def set_threshold(self, threshold: float) -> None:
        """
        Set the norm cap used by all subsequent `apply` calls.

        Parameters
        ----------
        threshold : float
            New norm cap. Must be > 0.

        Notes
        -----
        Replacing a different, already configured threshold mid-process is
        allowed but reported with a `RuntimeWarning`, since gradients clipped
        before and after the change are no longer comparable.
        """
        t = self._validate(threshold)
        if self._threshold is not None and self._threshold != t:
            warnings.warn(
                f"Replacing gradient clipping threshold {self._threshold} with {t}.",
                RuntimeWarning,
                stacklevel=2,
            )
        self._threshold = t

    def clear(self) -> None:
        """
        Disable clipping.
        """
        self._threshold = None

    def apply(self, x: np.ndarray) -> np.ndarray:
        """
        Rescale ``x`` in place if its norm reaches the threshold.

        Parameters
        ----------
        x : np.ndarray
            Gradient contribution (vector or matrix, floating point).

        Returns
        -------
        np.ndarray
            The same object, possibly scaled so that ``norm(x) == threshold``.
        """
        if self._threshold is None:
            return x

        n = float(np.linalg.norm(x))
        # zero-norm gradients are only "over" a threshold that cannot be set
        if n >= self._threshold and n > 0.0:
            x *= self._threshold / n
        return x

    def __repr__(self) -> str:
        return f"ClippingPolicy(threshold={self._threshold!r})"


_DEFAULT_POLICY = ClippingPolicy()


def get_clipping_policy() -> ClippingPolicy:
    """Return the process-wide clipping policy."""
    return _DEFAULT_POLICY


def set_clipping_threshold(threshold: float) -> None:
    """Set the process-wide clipping threshold."""
    _DEFAULT_POLICY.set_threshold(threshold)


def clear_clipping_threshold() -> None:
    """Disable process-wide clipping."""
    _DEFAULT_POLICY.clear()


def scale_check(x: np.ndarray) -> np.ndarray:
    """Apply the process-wide clipping policy to ``x`` in place."""
    return _DEFAULT_POLICY.apply(x)
