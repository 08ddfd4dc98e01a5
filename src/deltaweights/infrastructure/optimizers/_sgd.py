"""
Stochastic Gradient Descent (SGD) with momentum.

Basic gradient descent rule for mini-batch training. With a non-zero
momentum, each step carries a decayed copy of the previous step.

Update rule
-----------
Let ``d = value * 2 * l2decay + delta / count``.

- momentum != 0:
    ``last_delta <- last_delta * momentum + d``
    ``value <- value - last_delta``
- momentum == 0:
    ``value <- value - d`` (no history is allocated)

Notes
-----
The step is not scaled by ``rate``. ``rate`` is carried as a persisted
hyperparameter so that checkpoints keep their fixed layout.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from ._base import Algorithm, WeightBuilder, check_non_negative, check_positive, register_builder


class MomentumUpdater(Algorithm):
    """
    Per-weight SGD-with-momentum rule.

    Parameters
    ----------
    value, delta : np.ndarray
        Borrowed weight arrays.
    l2decay : float
        L2 regularization coefficient.
    momentum : float
        Decay factor applied to the previous step.
    """

    def __init__(
        self, value: np.ndarray, delta: np.ndarray, *, l2decay: float, momentum: float
    ) -> None:
        super().__init__(value, delta, l2decay=l2decay)
        self.momentum = float(momentum)
        # the last update of parameters
        self.last_delta: Optional[np.ndarray] = None

    def _compute_step(self, d: np.ndarray) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        if self.momentum == 0.0:
            return d, {}

        last = self.last_delta if self.last_delta is not None else self._zeros()
        step = last * self.momentum + d
        return step, {"last_delta": step}

    def _commit(self, staged: Dict[str, np.ndarray]) -> None:
        if "last_delta" in staged:
            self.last_delta = staged["last_delta"]


@register_builder("StochasticGradientDescent")
class StochasticGradientDescent(WeightBuilder):
    """
    Builder for SGD-with-momentum weights.

    Parameters
    ----------
    rate : float, optional
        Learning rate. Must be > 0. Defaults to 0.03.
    l2decay : float, optional
        L2 regularization factor. Must be >= 0. Defaults to 0.0001.
    momentum : float, optional
        Momentum factor. Must be >= 0; 0 disables momentum. Defaults to 0.0001.
    seed : int | None, optional
        Seed for weight initialization.

    Examples
    --------
    >>> builder = StochasticGradientDescent(l2decay=0.0001)
    """

    HYPERPARAMETERS = ("l2decay", "rate", "momentum")

    def __init__(
        self,
        rate: float = 0.03,
        l2decay: float = 0.0001,
        momentum: float = 0.0001,
        *,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(seed=seed)
        self.rate = check_positive("rate", rate)
        self.l2decay = check_non_negative("l2decay", l2decay)
        self.momentum = check_non_negative("momentum", momentum)

    def get_updater(self, value: np.ndarray, delta: np.ndarray) -> MomentumUpdater:
        return MomentumUpdater(value, delta, l2decay=self.l2decay, momentum=self.momentum)
