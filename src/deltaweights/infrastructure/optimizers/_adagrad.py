"""
AdaGrad optimizer.

AdaGrad scales every coordinate by the inverse root of its accumulated
squared gradients (Duchi, Hazan & Singer, 2011).

Update rule
-----------
Let ``d = value * 2 * l2decay + delta / count``.

    history <- history + d * d
    value   <- value - d * (rate / (sqrt(history) + fudge_factor))

The history is never reset, so it is non-decreasing across updates.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from ._base import Algorithm, WeightBuilder, check_non_negative, check_positive, register_builder


class AdaGradUpdater(Algorithm):
    """
    Per-weight AdaGrad rule.
    """

    def __init__(
        self,
        value: np.ndarray,
        delta: np.ndarray,
        *,
        l2decay: float,
        rate: float,
        fudge_factor: float,
    ) -> None:
        super().__init__(value, delta, l2decay=l2decay)
        self.rate = float(rate)
        self.fudge_factor = float(fudge_factor)
        # accumulated squared gradients
        self.history: Optional[np.ndarray] = None

    def _compute_step(self, d: np.ndarray) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        history = self.history if self.history is not None else self._zeros()
        history = history + d * d

        step = d * (self.rate / (np.sqrt(history) + self.fudge_factor))
        return step, {"history": history}

    def _commit(self, staged: Dict[str, np.ndarray]) -> None:
        self.history = staged["history"]


@register_builder("AdaGrad")
class AdaGrad(WeightBuilder):
    """
    Builder for AdaGrad weights.

    Parameters
    ----------
    rate : float, optional
        Learning rate. Must be > 0. Defaults to 0.6.
    l2decay : float, optional
        L2 regularization factor. Must be >= 0. Defaults to 0.0001.
    fudge_factor : float, optional
        Denominator stabilizer. Must be > 0. Defaults to 1e-6.
    seed : int | None, optional
        Seed for weight initialization.
    """

    HYPERPARAMETERS = ("l2decay", "rate", "fudge_factor")

    def __init__(
        self,
        rate: float = 0.6,
        l2decay: float = 0.0001,
        fudge_factor: float = 1e-6,
        *,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(seed=seed)
        self.rate = check_positive("rate", rate)
        self.l2decay = check_non_negative("l2decay", l2decay)
        self.fudge_factor = check_positive("fudge_factor", fudge_factor)

    def get_updater(self, value: np.ndarray, delta: np.ndarray) -> AdaGradUpdater:
        return AdaGradUpdater(
            value,
            delta,
            l2decay=self.l2decay,
            rate=self.rate,
            fudge_factor=self.fudge_factor,
        )
