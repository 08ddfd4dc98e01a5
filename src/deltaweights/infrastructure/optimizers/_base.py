"""
Shared machinery for update algorithms and weight builders.

This module provides:

- `Algorithm`: the base class for per-weight update rules. It owns the
  common update pipeline (validate the batch size, normalize the delta, add
  the L2 term, run the rule, commit, zero the delta). Concrete rules only
  compute a step and stage their history.
- `WeightBuilder`: the base class for algorithm families. It initializes a
  weight's value (uniform random, or the weight's restored value) and binds a
  freshly constructed algorithm carrying the builder's hyperparameters.
- A name registry (`register_builder`, `builder_from_config`) so the closed
  family of builders can be persisted by tag.

Design notes
------------
- One algorithm body serves vectors and matrices: every formula is written in
  NumPy elementwise operators, which are rank-polymorphic.
- Updates are atomic. The full step and all new history buffers are computed
  into temporaries first; `value`, history and `delta` are only mutated once
  nothing else can fail.
- History buffers are `None` until the first update and are then allocated
  as zeros shaped like the value.
"""

from __future__ import annotations

import numbers
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
from typing_extensions import Self

from ...domain._algorithm import IAlgorithm, IWeightBuilder
from ...domain._errors import InvalidBatchSizeError, ShapeMismatchError
from .._weight import Weight

DEFAULT_INIT_RANGE: Tuple[float, float] = (1e-2, 2e-2)

_BUILDER_REGISTRY: Dict[str, Type["WeightBuilder"]] = {}


def validate_batch_size(count: Any) -> int:
    """
    Return ``count`` as an int, rejecting anything but a positive integer.

    Raises
    ------
    InvalidBatchSizeError
        If ``count`` is not an integer (bools included) or is <= 0.
    """
    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise InvalidBatchSizeError(count)
    if int(count) <= 0:
        raise InvalidBatchSizeError(count)
    return int(count)


def check_positive(name: str, value: float) -> float:
    v = float(value)
    if not np.isfinite(v) or v <= 0.0:
        raise ValueError(f"{name} must be > 0, got {value!r}")
    return v


def check_non_negative(name: str, value: float) -> float:
    v = float(value)
    if not np.isfinite(v) or v < 0.0:
        raise ValueError(f"{name} must be >= 0, got {value!r}")
    return v


class Algorithm(IAlgorithm, ABC):
    """
    Base class for update rules bound to a single weight.

    Parameters
    ----------
    value : np.ndarray
        The weight's value array (borrowed, mutated in place).
    delta : np.ndarray
        The weight's delta array (borrowed, zeroed after each update).
    l2decay : float
        L2 regularization coefficient.

    Update pipeline
    ---------------
    For ``update(count)``:

        g = delta / count
        d = value * (2 * l2decay) + g
        step = rule(d)             # subclass, staged history
        value -= step
        commit history             # subclass
        delta <- 0
    """

    def __init__(self, value: np.ndarray, delta: np.ndarray, *, l2decay: float) -> None:
        if value.shape != delta.shape:
            raise ShapeMismatchError("delta", value.shape, delta.shape)
        self.value = value
        self.delta = delta
        self._l2decay = float(l2decay)

    @property
    def l2factor(self) -> float:
        return self._l2decay

    def update(self, count: int) -> None:
        """
        Apply one update for a mini-batch of ``count`` examples.

        Raises
        ------
        InvalidBatchSizeError
            If ``count`` is not a positive integer. Nothing is mutated.
        """
        n = validate_batch_size(count)

        d = self.value * (2.0 * self._l2decay)
        d += self.delta * (1.0 / n)

        step, staged = self._compute_step(d)

        self.value -= step
        self._commit(staged)
        self.delta.fill(0.0)

    def _zeros(self) -> np.ndarray:
        return np.zeros_like(self.value)

    @abstractmethod
    def _compute_step(self, d: np.ndarray) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        """
        Compute the step to subtract from the value and the new history.

        Must not mutate any state; the returned history is handed to
        `_commit` after the value has been updated.
        """
        raise NotImplementedError

    @abstractmethod
    def _commit(self, staged: Dict[str, np.ndarray]) -> None:
        """
        Store the history buffers staged by `_compute_step`.
        """
        raise NotImplementedError


def register_builder(
    name: Optional[str] = None,
) -> Callable[[Type["WeightBuilder"]], Type["WeightBuilder"]]:
    """
    Decorator to register a builder class for config-based reconstruction.
    """

    def deco(cls: Type[WeightBuilder]) -> Type[WeightBuilder]:
        key = name or cls.__name__
        if key in _BUILDER_REGISTRY and _BUILDER_REGISTRY[key] is not cls:
            raise ValueError(f"Builder already registered: {key!r}")
        _BUILDER_REGISTRY[key] = cls
        cls.registered_name = key
        return cls

    return deco


def available_builders() -> Tuple[str, ...]:
    """Return registered builder names (sorted)."""
    return tuple(sorted(_BUILDER_REGISTRY))


def builder_from_config(cfg: Dict[str, Any]) -> "WeightBuilder":
    """
    Rebuild a builder from a configuration produced by `get_config()`.

    Raises
    ------
    ValueError
        If the type name is not registered.
    """
    type_name = str(cfg["type"])
    if type_name not in _BUILDER_REGISTRY:
        available = ", ".join(available_builders()) or "<none>"
        raise ValueError(
            f"Unknown builder type {type_name!r}. Available: {available}"
        )
    return _BUILDER_REGISTRY[type_name].from_config(cfg)


class WeightBuilder(IWeightBuilder, ABC):
    """
    Base class for algorithm families that build and bind weights.

    Parameters
    ----------
    seed : int | None, optional
        Seed for the builder's random generator. The seed is not a
        hyperparameter and is not persisted.

    Notes
    -----
    Subclasses declare `HYPERPARAMETERS`, the persisted attribute names in
    their fixed write order, and implement `get_updater`.
    """

    HYPERPARAMETERS: ClassVar[Tuple[str, ...]] = ()
    registered_name: ClassVar[str] = ""

    def __init__(self, *, seed: Optional[int] = None) -> None:
        self._rng = np.random.default_rng(seed)

    # ---- weight initialization ----
    def initialize_matrix(
        self,
        weight: Weight,
        rows: int,
        cols: int,
        init_range: Tuple[float, float] = DEFAULT_INIT_RANGE,
    ) -> Weight:
        """
        Initialize a matrix weight, or rebind a restored one.

        Parameters
        ----------
        weight : Weight
            Target weight.
        rows, cols : int
            Required shape.
        init_range : tuple[float, float], optional
            ``(low, high)`` of the uniform distribution used for fresh
            values. Defaults to ``(1e-2, 2e-2)``, a small positive range
            rather than a zero-mean one.

        Returns
        -------
        Weight
            The same weight, initialized and bound.

        Raises
        ------
        ShapeMismatchError
            If the weight already holds a value of a different shape.
        """
        return self._initialize(weight, (int(rows), int(cols)), init_range)

    def initialize_vector(
        self,
        weight: Weight,
        rows: int,
        init_range: Tuple[float, float] = DEFAULT_INIT_RANGE,
    ) -> Weight:
        """
        Initialize a vector weight, or rebind a restored one.

        See `initialize_matrix` for the semantics.
        """
        return self._initialize(weight, (int(rows),), init_range)

    def _initialize(
        self, weight: Weight, shape: Tuple[int, ...], init_range: Tuple[float, float]
    ) -> Weight:
        if any(s <= 0 for s in shape):
            raise ValueError(f"weight dimensions must be positive, got {shape}")

        if weight.is_initialized():
            if weight.shape != shape:
                raise ShapeMismatchError(f"weight '{weight.name}'", shape, weight.shape)
            return self.build_to(weight, weight.value)

        low, high = float(init_range[0]), float(init_range[1])
        if high < low:
            raise ValueError(f"init_range must satisfy low <= high, got {init_range}")
        return self.build_to(weight, self._rng.uniform(low, high, size=shape))

    def build_to(self, weight: Weight, value: Any) -> Weight:
        """
        Set ``value`` on ``weight`` (zero delta) and bind a fresh algorithm.

        Any existing algorithm and its history are discarded.
        """
        weight.build(value, rebind=True)
        weight.bind(self.get_updater(weight.value, weight.delta))
        return weight

    @abstractmethod
    def get_updater(self, value: np.ndarray, delta: np.ndarray) -> Algorithm:
        """
        Construct this family's algorithm over a value/delta pair.

        The same algorithm class serves vectors and matrices.
        """
        raise NotImplementedError

    # ---- hyperparameter persistence ----
    def hyperparameters(self) -> List[float]:
        """
        Return the persisted hyperparameters in `HYPERPARAMETERS` order.
        """
        return [float(getattr(self, name)) for name in self.HYPERPARAMETERS]

    @classmethod
    def from_hyperparameters(cls, values: Sequence[float]) -> Self:
        """
        Construct a builder from hyperparameters in `HYPERPARAMETERS` order.

        Raises
        ------
        ValueError
            If the number of values does not match.
        """
        values = list(values)
        if len(values) != len(cls.HYPERPARAMETERS):
            raise ValueError(
                f"{cls.__name__} expects {len(cls.HYPERPARAMETERS)} hyperparameters "
                f"{cls.HYPERPARAMETERS}, got {len(values)}."
            )
        return cls(**{k: float(v) for k, v in zip(cls.HYPERPARAMETERS, values)})

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration for this builder.

        Returns
        -------
        dict
            ``{"type": <registered name>, "hyperparameters": [...]}``
        """
        return {
            "type": self.registered_name or type(self).__name__,
            "hyperparameters": self.hyperparameters(),
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        return cls.from_hyperparameters(cfg.get("hyperparameters", []))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={getattr(self, k)!r}" for k in self.HYPERPARAMETERS)
        return f"{type(self).__name__}({params})"
