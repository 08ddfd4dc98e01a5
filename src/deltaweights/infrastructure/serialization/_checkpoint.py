"""
JSON checkpoints for a layer and its weight builder.

Format
------
{
  "format": "deltaweights.json.ckpt.v1",
  "builder": {"type": "AdaGrad", "hyperparameters": [l2decay, rate, fudge]},
  "layer": {
    "fan_in_a": ..., "fan_in_b": ..., "activation": {...},
    "bias": {...}, "linear": {...}, "n_out": ..., "quadratic": [...],
    "base": {"type": "FullRank3TensorLayer", "config": {...}, "n_in": ..., "n_out": ...}
  }
}

Notes
-----
- Only weight values and builder hyperparameters are stored. Optimizer
  history is not, so a restored layer resumes with cold algorithms and zero
  deltas.
- Keys are written in layer write order (no key sorting).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Tuple

from ..layers._base import layer_from_config
from ..layers._rank3_tensor import Rank3TensorLayer
from ..optimizers._base import WeightBuilder, builder_from_config

CHECKPOINT_FORMAT = "deltaweights.json.ckpt.v1"


def layer_from_payload(payload: Dict[str, Any]) -> Rank3TensorLayer:
    """
    Construct a layer from its ``base`` section and restore its state.

    The returned layer holds restored values but no algorithms.

    Raises
    ------
    TypeError
        If the payload does not describe a rank-3 tensor layer.
    """
    base = payload["base"]
    layer = layer_from_config({"type": base["type"], "config": base.get("config", {})})
    if not isinstance(layer, Rank3TensorLayer):
        raise TypeError(
            f"Payload describes {type(layer).__name__}, expected a Rank3TensorLayer."
        )
    return layer.load_payload(payload)


def checkpoint_to_dict(layer: Rank3TensorLayer, builder: WeightBuilder) -> Dict[str, Any]:
    return {
        "format": CHECKPOINT_FORMAT,
        "builder": builder.get_config(),
        "layer": layer.to_payload(),
    }


def checkpoint_from_dict(payload: Dict[str, Any]) -> Tuple[Rank3TensorLayer, WeightBuilder]:
    """
    Rebuild a layer and its builder, rebinding every weight.

    Raises
    ------
    ValueError
        If the checkpoint format is unsupported.
    """
    fmt = payload.get("format")
    if fmt != CHECKPOINT_FORMAT:
        raise ValueError(f"Unsupported checkpoint format: {fmt!r}")

    builder = builder_from_config(payload["builder"])
    layer = layer_from_payload(payload["layer"])
    layer.initialize(builder)
    return layer, builder


def save_json(path: str | Path, layer: Rank3TensorLayer, builder: WeightBuilder) -> None:
    """
    Save a layer's weights and its builder's hyperparameters to JSON.

    Parameters
    ----------
    path : str | Path
        Output JSON file path, e.g. "checkpoint.json".
    layer : Rank3TensorLayer
        Layer to save.
    builder : WeightBuilder
        Builder whose hyperparameters are needed to rebind the weights.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(checkpoint_to_dict(layer, builder), indent=2), encoding="utf-8")


def load_json(path: str | Path) -> Tuple[Rank3TensorLayer, WeightBuilder]:
    """
    Load a checkpoint created by `save_json()`.

    Returns
    -------
    tuple[Rank3TensorLayer, WeightBuilder]
        The restored layer (weights rebound, ready to train) and builder.
    """
    p = Path(path)
    payload = json.loads(p.read_text(encoding="utf-8"))
    return checkpoint_from_dict(payload)
