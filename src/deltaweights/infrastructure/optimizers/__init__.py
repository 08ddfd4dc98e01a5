"""
Update algorithms and weight builders.

Importing this package registers the built-in builder family
(`StochasticGradientDescent`, `AdaGrad`, `AdaDelta`) for config-based
reconstruction via `builder_from_config`.
"""

from ._base import (
    DEFAULT_INIT_RANGE,
    Algorithm,
    WeightBuilder,
    available_builders,
    builder_from_config,
    register_builder,
    validate_batch_size,
)
from ._sgd import MomentumUpdater, StochasticGradientDescent
from ._adagrad import AdaGrad, AdaGradUpdater
from ._adadelta import AdaDelta, AdaDeltaUpdater

__all__ = [
    "DEFAULT_INIT_RANGE",
    "Algorithm",
    "WeightBuilder",
    "available_builders",
    "builder_from_config",
    "register_builder",
    "validate_batch_size",
    "MomentumUpdater",
    "StochasticGradientDescent",
    "AdaGrad",
    "AdaGradUpdater",
    "AdaDelta",
    "AdaDeltaUpdater",
]
