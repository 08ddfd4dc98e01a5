"""
deltaweights: the optimizer and parameter-update core of a neural-network
training library, with a rank-3 tensor (bilinear) layer.
"""

from .domain import InvalidBatchSizeError, ShapeMismatchError, WeightStateError
from .infrastructure import (
    AdaDelta,
    AdaGrad,
    ClippingPolicy,
    FullRank3TensorLayer,
    HyperbolicTangent,
    Linear,
    ReLU,
    SelfRank3TensorLayer,
    Sigmoid,
    StochasticGradientDescent,
    Weight,
    clear_clipping_threshold,
    load_json,
    save_json,
    set_clipping_threshold,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidBatchSizeError",
    "ShapeMismatchError",
    "WeightStateError",
    "AdaDelta",
    "AdaGrad",
    "ClippingPolicy",
    "FullRank3TensorLayer",
    "HyperbolicTangent",
    "Linear",
    "ReLU",
    "SelfRank3TensorLayer",
    "Sigmoid",
    "StochasticGradientDescent",
    "Weight",
    "clear_clipping_threshold",
    "load_json",
    "save_json",
    "set_clipping_threshold",
]
