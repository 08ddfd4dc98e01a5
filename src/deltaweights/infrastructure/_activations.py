"""
Elementwise activations for weight-owning layers.

Each activation implements the `IActivation` capability set:

- `apply(x)`: forward evaluation,
- `derivative_at_output(y)`: derivative expressed through the forward output,
  which is what layers cache and hand back during backpropagation,
- `initialize(fan_in, fan_out)`: the recommended uniform initialization range.

Activations are registered by name (`register_activation`) so that layers can
persist them as an opaque ``{"type", "config"}`` descriptor.

Initialization ranges
---------------------
- ``HyperbolicTangent`` / ``Linear``: Glorot uniform,
  ``b = sqrt(6 / (fan_in + fan_out))``, range ``(-b, b)``.
- ``Sigmoid``: Glorot uniform scaled by 4.
- ``ReLU``: He uniform, ``b = sqrt(6 / fan_in)``.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Optional, Tuple, Type

import numpy as np
from typing_extensions import Self

from ..domain._activation import IActivation

_ACTIVATION_REGISTRY: Dict[str, Type["Activation"]] = {}


def register_activation(
    name: Optional[str] = None,
) -> Callable[[Type["Activation"]], Type["Activation"]]:
    """
    Decorator to register an activation class for descriptor deserialization.

    Raises
    ------
    ValueError
        If another class is already registered under the same name.
    """

    def deco(cls: Type[Activation]) -> Type[Activation]:
        key = name or cls.__name__
        if key in _ACTIVATION_REGISTRY and _ACTIVATION_REGISTRY[key] is not cls:
            raise ValueError(f"Activation already registered: {key!r}")
        _ACTIVATION_REGISTRY[key] = cls
        return cls

    return deco


def activation_to_config(act: "Activation") -> Dict[str, Any]:
    """
    Convert an activation into a JSON-serializable descriptor.
    """
    return {"type": type(act).__name__, "config": act.get_config()}


def activation_from_config(node: Dict[str, Any]) -> "Activation":
    """
    Rebuild an activation from a descriptor produced by `activation_to_config`.

    Raises
    ------
    ValueError
        If the activation type is not registered.
    """
    type_name = str(node["type"])
    if type_name not in _ACTIVATION_REGISTRY:
        raise ValueError(
            f"Unknown activation type '{type_name}'. Register it via @register_activation."
        )
    return _ACTIVATION_REGISTRY[type_name].from_config(node.get("config", {}) or {})


def _glorot_bound(fan_in: int, fan_out: int) -> float:
    return math.sqrt(6.0 / float(max(1, int(fan_in) + int(fan_out))))


class Activation(IActivation):
    """
    Base class for stateless elementwise activations.

    Notes
    -----
    Subclasses carry no hyperparameters, so configuration is empty and
    `from_config` returns a default instance.
    """

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.apply(x)

    def apply(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def derivative_at_output(self, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def initialize(self, fan_in: int, fan_out: int) -> Tuple[float, float]:
        b = _glorot_bound(fan_in, fan_out)
        return (-b, b)

    def get_config(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        return cls()

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self).__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


@register_activation()
class HyperbolicTangent(Activation):
    """
    Hyperbolic tangent activation.

    Backward uses ``d(tanh)/dx = 1 - tanh(x)^2 = 1 - y^2``.
    """

    def apply(self, x: np.ndarray) -> np.ndarray:
        return np.tanh(np.asarray(x, dtype=np.float64))

    def derivative_at_output(self, y: np.ndarray) -> np.ndarray:
        y = np.asarray(y, dtype=np.float64)
        return 1.0 - y * y


@register_activation()
class Sigmoid(Activation):
    """
    Logistic sigmoid activation.

    Backward uses ``sigmoid'(x) = y * (1 - y)``.
    """

    def apply(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        # split by sign to avoid overflow in exp
        out = np.empty_like(x)
        pos = x >= 0
        out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
        e = np.exp(x[~pos])
        out[~pos] = e / (1.0 + e)
        return out

    def derivative_at_output(self, y: np.ndarray) -> np.ndarray:
        y = np.asarray(y, dtype=np.float64)
        return y * (1.0 - y)

    def initialize(self, fan_in: int, fan_out: int) -> Tuple[float, float]:
        b = 4.0 * _glorot_bound(fan_in, fan_out)
        return (-b, b)


@register_activation()
class Linear(Activation):
    """
    Identity activation.
    """

    def apply(self, x: np.ndarray) -> np.ndarray:
        return np.array(x, dtype=np.float64, copy=True)

    def derivative_at_output(self, y: np.ndarray) -> np.ndarray:
        return np.ones_like(np.asarray(y, dtype=np.float64))


@register_activation()
class ReLU(Activation):
    """
    Rectified linear unit.

    The derivative at output is 1 where ``y > 0`` and 0 elsewhere.
    """

    def apply(self, x: np.ndarray) -> np.ndarray:
        return np.maximum(np.asarray(x, dtype=np.float64), 0.0)

    def derivative_at_output(self, y: np.ndarray) -> np.ndarray:
        return (np.asarray(y) > 0.0).astype(np.float64)

    def initialize(self, fan_in: int, fan_out: int) -> Tuple[float, float]:
        b = math.sqrt(6.0 / float(max(1, int(fan_in))))
        return (-b, b)
