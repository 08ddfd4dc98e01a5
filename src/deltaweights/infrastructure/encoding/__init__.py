"""
Array encodings used by weight persistence.
"""

from ._b64 import ndarray_to_payload, payload_to_ndarray

__all__ = [
    "ndarray_to_payload",
    "payload_to_ndarray",
]
