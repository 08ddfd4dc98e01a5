"""
Domain layer: backend-agnostic contracts and errors.
"""

from ._errors import InvalidBatchSizeError, ShapeMismatchError, WeightStateError
from ._numeric import NDArrayLike
from ._algorithm import IAlgorithm, IWeightBuilder
from ._weight import IWeight
from ._activation import IActivation
from ._layer import ILayer

__all__ = [
    "WeightStateError",
    "ShapeMismatchError",
    "InvalidBatchSizeError",
    "NDArrayLike",
    "IAlgorithm",
    "IWeightBuilder",
    "IWeight",
    "IActivation",
    "ILayer",
]
