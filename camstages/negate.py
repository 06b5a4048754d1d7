"""Image negative effect."""

from __future__ import annotations

import numpy as np


def negate(buffer):
    """Invert every bit of a writable image buffer in place and return it."""
    view = memoryview(buffer)
    if view.readonly:
        raise TypeError("buffer must be writable")
    if view.nbytes % 4:
        raise ValueError("buffer size must be a multiple of 4 bytes")
    data = np.frombuffer(view.cast("B"), dtype=np.uint8)
    np.bitwise_not(data, out=data)
    return buffer