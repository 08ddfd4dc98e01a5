"""
AdaDelta optimizer.

AdaDelta (Zeiler, 2012) keeps exponential moving averages of squared
gradients and of squared steps, and uses their ratio as a per-coordinate
learning rate. There is no global learning rate.

Update rule
-----------
Let ``d = value * 2 * l2decay + delta / count``, ``rho = history_decay`` and
``eps = history_epsilon``.

    grad_sq  <- grad_sq * rho + (d * d) * (1 - rho)
    rate     <- sqrt(delta_sq + eps) / sqrt(grad_sq + eps)
    step     <- d * rate
    value    <- value - step
    delta_sq <- delta_sq * rho + (step * step) * (1 - rho)
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from ._base import Algorithm, WeightBuilder, check_non_negative, check_positive, register_builder


class AdaDeltaUpdater(Algorithm):
    """
    Per-weight AdaDelta rule.
    """

    def __init__(
        self,
        value: np.ndarray,
        delta: np.ndarray,
        *,
        l2decay: float,
        history_decay: float,
        history_epsilon: float,
    ) -> None:
        super().__init__(value, delta, l2decay=l2decay)
        self.history_decay = float(history_decay)
        self.history_epsilon = float(history_epsilon)
        self.grad_sq: Optional[np.ndarray] = None
        self.delta_sq: Optional[np.ndarray] = None

    def _compute_step(self, d: np.ndarray) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        rho = self.history_decay
        eps = self.history_epsilon

        grad_sq = self.grad_sq if self.grad_sq is not None else self._zeros()
        delta_sq = self.delta_sq if self.delta_sq is not None else self._zeros()

        grad_sq = grad_sq * rho + (d * d) * (1.0 - rho)
        rate = np.sqrt(delta_sq + eps) / np.sqrt(grad_sq + eps)
        step = d * rate
        delta_sq = delta_sq * rho + (step * step) * (1.0 - rho)

        return step, {"grad_sq": grad_sq, "delta_sq": delta_sq}

    def _commit(self, staged: Dict[str, np.ndarray]) -> None:
        self.grad_sq = staged["grad_sq"]
        self.delta_sq = staged["delta_sq"]


@register_builder("AdaDelta")
class AdaDelta(WeightBuilder):
    """
    Builder for AdaDelta weights.

    Parameters
    ----------
    l2decay : float, optional
        L2 regularization factor. Must be >= 0. Defaults to 0.0001.
    history_decay : float, optional
        Moving-average decay ``rho``, in (0, 1). Defaults to 0.95.
    history_epsilon : float, optional
        Stabilizer added under both square roots. Must be > 0.
        Defaults to 1e-6.
    seed : int | None, optional
        Seed for weight initialization.
    """

    HYPERPARAMETERS = ("l2decay", "history_decay", "history_epsilon")

    def __init__(
        self,
        l2decay: float = 0.0001,
        history_decay: float = 0.95,
        history_epsilon: float = 1e-6,
        *,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(seed=seed)
        self.l2decay = check_non_negative("l2decay", l2decay)
        self.history_decay = float(history_decay)
        if not (0.0 < self.history_decay < 1.0):
            raise ValueError(f"history_decay must be in (0,1), got {history_decay!r}")
        self.history_epsilon = check_positive("history_epsilon", history_epsilon)

    def get_updater(self, value: np.ndarray, delta: np.ndarray) -> AdaDeltaUpdater:
        return AdaDeltaUpdater(
            value,
            delta,
            l2decay=self.l2decay,
            history_decay=self.history_decay,
            history_epsilon=self.history_epsilon,
        )
