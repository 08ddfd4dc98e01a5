"""
Infrastructure layer: NumPy implementations of the domain contracts.
"""

from ._clipping import (
    ClippingPolicy,
    clear_clipping_threshold,
    get_clipping_policy,
    scale_check,
    set_clipping_threshold,
)
from ._weight import Weight
from ._activations import (
    Activation,
    HyperbolicTangent,
    Linear,
    ReLU,
    Sigmoid,
    activation_from_config,
    activation_to_config,
    register_activation,
)
from .optimizers import (
    AdaDelta,
    AdaGrad,
    StochasticGradientDescent,
    WeightBuilder,
    builder_from_config,
)
from .layers import FullRank3TensorLayer, Rank3TensorLayer, SelfRank3TensorLayer
from .serialization import load_json, save_json

__all__ = [
    "ClippingPolicy",
    "clear_clipping_threshold",
    "get_clipping_policy",
    "scale_check",
    "set_clipping_threshold",
    "Weight",
    "Activation",
    "HyperbolicTangent",
    "Linear",
    "ReLU",
    "Sigmoid",
    "activation_from_config",
    "activation_to_config",
    "register_activation",
    "AdaDelta",
    "AdaGrad",
    "StochasticGradientDescent",
    "WeightBuilder",
    "builder_from_config",
    "FullRank3TensorLayer",
    "Rank3TensorLayer",
    "SelfRank3TensorLayer",
    "load_json",
    "save_json",
]
