"""
JSON-safe encoding of weight values.

Weight values are stored as base64-encoded raw bytes together with the dtype
string and shape, which is compact and exact (no decimal round-off).

Payload format
--------------
{
  "b64": "<base64 of C-ordered bytes>",
  "dtype": "<f8",
  "shape": [rows, cols],
  "order": "C"
}
"""

from __future__ import annotations

import base64
from typing import Any, Dict

import numpy as np


def bytes_to_b64_str(b: bytes) -> str:
    """
    Encode raw bytes into a base64 ASCII string.
    """
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    """
    Decode a base64 ASCII string back into raw bytes.
    """
    return base64.b64decode(s.encode("ascii"))


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize a float64 vector or matrix into a JSON-safe payload.

    Parameters
    ----------
    arr : np.ndarray
        Array to encode. It is converted to float64 before encoding so that
        payloads written by different callers are byte-compatible.

    Returns
    -------
    dict
        Payload with ``b64``, ``dtype``, ``shape`` and ``order`` keys.
    """
    a = np.ascontiguousarray(arr, dtype=np.float64)
    return {
        "b64": bytes_to_b64_str(a.tobytes(order="C")),
        "dtype": a.dtype.str,
        "shape": [int(s) for s in a.shape],
        "order": "C",
    }


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a payload produced by `ndarray_to_payload`.

    Raises
    ------
    ValueError
        If the payload's byte length does not match its declared shape, or
        it declares an unsupported memory order.

    Notes
    -----
    The result is an owning, writable float64 copy (never a view on the
    decoded bytes), since weights are mutated in place.
    """
    order = str(payload.get("order", "C"))
    if order != "C":
        raise ValueError(f"Unsupported payload order: {order!r}")

    raw = b64_str_to_bytes(str(payload["b64"]))
    dtype = np.dtype(str(payload["dtype"]))
    shape = tuple(int(x) for x in payload["shape"])

    expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
    if len(raw) != expected:
        raise ValueError(
            f"Payload holds {len(raw)} bytes, expected {expected} for shape {shape} "
            f"and dtype {dtype.str}."
        )

    arr = np.frombuffer(raw, dtype=dtype).reshape(shape)
    return np.array(arr, dtype=np.float64, copy=True, order="C")
