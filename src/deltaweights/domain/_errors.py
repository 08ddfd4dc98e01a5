"""
Weight- and training-related exceptions for deltaweights.

This module defines the error taxonomy used by the parameter-update core.
Every failure is a programming or configuration error surfaced synchronously
to the caller; nothing in the core retries. The driving training loop decides
whether to abort the job or skip the batch.

Taxonomy
--------
- `WeightStateError`:
    A weight (or a layer owning weights) was used in a state that does not
    support the operation, e.g. applying an update before an algorithm was
    bound, or building a weight twice.
- `ShapeMismatchError`:
    Two arrays that must agree in shape do not (gradient vs value, restored
    value vs requested shape, layer input vs fan-in).
- `InvalidBatchSizeError`:
    A mini-batch size that cannot normalize an accumulated gradient.
"""

from typing import Tuple


class WeightStateError(RuntimeError):
    """
    Raised when a weight is used outside of its valid lifecycle state.

    Typical causes are layer-wiring bugs: calling `apply`/`regularization_loss`
    on a weight that no builder has bound, accumulating a gradient into a
    weight that has no value yet, or calling `build` twice without `rebind`.
    """


class ShapeMismatchError(ValueError):
    """
    Raised when an array's shape disagrees with the shape it must match.

    Shapes are never broadcast or truncated to make an operation succeed.

    Attributes
    ----------
    expected : tuple[int, ...]
        The shape required by the receiver.
    actual : tuple[int, ...]
        The shape that was supplied.
    """

    def __init__(
        self, what: str, expected: Tuple[int, ...], actual: Tuple[int, ...]
    ) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        what : str
            Short description of the operand, e.g. "gradient".
        expected : tuple[int, ...]
            The required shape.
        actual : tuple[int, ...]
            The supplied shape.
        """
        super().__init__(
            f"Shape mismatch for {what}: expected {tuple(expected)}, got {tuple(actual)}."
        )
        self.expected = tuple(expected)
        self.actual = tuple(actual)


class InvalidBatchSizeError(ValueError):
    """
    Raised when an update is requested with a non-positive batch size.

    The accumulated delta is divided by the batch size, so zero or negative
    counts would silently produce inf/NaN parameters.
    """

    def __init__(self, count: object) -> None:
        super().__init__(f"Batch size must be a positive integer, got {count!r}.")
        self.count = count
