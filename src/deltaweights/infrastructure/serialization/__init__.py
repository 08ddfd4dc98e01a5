"""
Checkpoint persistence for layers and builders.
"""

from ._checkpoint import (
    CHECKPOINT_FORMAT,
    checkpoint_from_dict,
    checkpoint_to_dict,
    layer_from_payload,
    load_json,
    save_json,
)

__all__ = [
    "CHECKPOINT_FORMAT",
    "checkpoint_from_dict",
    "checkpoint_to_dict",
    "layer_from_payload",
    "load_json",
    "save_json",
]
