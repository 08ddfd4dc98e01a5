"""
Weight-owning layers.
"""

from ._base import Layer, layer_from_config, register_layer
from ._rank3_tensor import FullRank3TensorLayer, Rank3TensorLayer, SelfRank3TensorLayer

__all__ = [
    "Layer",
    "layer_from_config",
    "register_layer",
    "Rank3TensorLayer",
    "FullRank3TensorLayer",
    "SelfRank3TensorLayer",
]
