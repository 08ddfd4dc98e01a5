"""
Infrastructure layer base class.

This module provides `Layer`, a concrete foundation for weight-owning
transform layers that satisfies the domain-level `ILayer` protocol. It
implements the conveniences shared by every layer:

- fan-in / fan-out bookkeeping,
- traversal of owned weights (`named_weights`, `weights`),
- mini-batch updates and regularization loss over all owned weights,
- `__call__` forwarding to `apply`,
- a name registry (`register_layer`) for config-based reconstruction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

import numpy as np

from ...domain._errors import ShapeMismatchError
from ...domain._layer import ILayer
from .._weight import Weight
from ..optimizers._base import validate_batch_size

_LAYER_REGISTRY: Dict[str, Type["Layer"]] = {}


def register_layer(name: Optional[str] = None) -> Callable[[Type["Layer"]], Type["Layer"]]:
    """
    Decorator to register a Layer class for config-based reconstruction.

    Raises
    ------
    ValueError
        If another class is already registered under the same name.
    """

    def deco(cls: Type[Layer]) -> Type[Layer]:
        key = name or cls.__name__
        if key in _LAYER_REGISTRY and _LAYER_REGISTRY[key] is not cls:
            raise ValueError(f"Layer already registered: {key!r}")
        _LAYER_REGISTRY[key] = cls
        return cls

    return deco


def layer_from_config(node: Dict[str, Any]) -> "Layer":
    """
    Rebuild an (uninitialized) layer from ``{"type": ..., "config": {...}}``.

    Raises
    ------
    ValueError
        If the layer type is not registered.
    """
    type_name = str(node["type"])
    if type_name not in _LAYER_REGISTRY:
        raise ValueError(
            f"Unknown layer type '{type_name}'. Register it via @register_layer."
        )
    return _LAYER_REGISTRY[type_name].from_config(node.get("config", {}) or {})


class Layer(ILayer, ABC):
    """
    Base class for weight-owning transform layers.

    Parameters
    ----------
    n_in : int
        Input dimension. Must be > 0.
    n_out : int
        Output dimension. Must be > 0.
    """

    def __init__(self, n_in: int, n_out: int) -> None:
        if int(n_in) <= 0 or int(n_out) <= 0:
            raise ValueError(
                f"layer dimensions must be positive, got n_in={n_in}, n_out={n_out}"
            )
        self._n_in = int(n_in)
        self._n_out = int(n_out)

    @property
    def n_in(self) -> int:
        return self._n_in

    @property
    def n_out(self) -> int:
        return self._n_out

    @abstractmethod
    def named_weights(self) -> Iterator[Tuple[str, Weight]]:
        """
        Yield ``(name, weight)`` pairs in update order.
        """
        raise NotImplementedError

    def weights(self) -> List[Weight]:
        return [w for _, w in self.named_weights()]

    @abstractmethod
    def apply(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.apply(x)

    def update(self, count: int) -> None:
        """
        Apply one mini-batch update to every owned weight.

        The batch size is validated once up front, so an invalid count leaves
        every weight untouched.
        """
        n = validate_batch_size(count)
        for _, weight in self.named_weights():
            weight.apply(n)

    def loss(self) -> float:
        """
        Return the summed L2 regularization loss of owned weights.
        """
        return float(sum(w.regularization_loss() for _, w in self.named_weights()))

    def _as_vector(self, x: Any, size: int, what: str) -> np.ndarray:
        v = np.asarray(x, dtype=np.float64)
        if v.shape != (size,):
            raise ShapeMismatchError(what, (size,), v.shape)
        return v

    def base_payload(self) -> Dict[str, Any]:
        """
        Return the base-layer state written after the subclass state.
        """
        return {
            "type": type(self).__name__,
            "config": self.get_config(),
            "n_in": self._n_in,
            "n_out": self._n_out,
        }

    def get_config(self) -> Dict[str, Any]:
        return {"n_in": self._n_in, "n_out": self._n_out}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Layer":
        return cls(**cfg)
