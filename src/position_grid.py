"""Exhaustive integer coordinate grids over (time, height, width)."""

import numpy as np

from rope_config import AXIS_NAMES, check_positive_int


def position_grid(t_len: int, h_len: int, w_len: int) -> np.ndarray:
    """
    All (t, h, w) triples with width varying fastest and time slowest.

    Row i of the result is (i // (h_len * w_len), (i // w_len) % h_len, i % w_len).

    Args:
        t_len, h_len, w_len: Positive axis extents

    Returns:
        int64 array of shape (t_len * h_len * w_len, 3)
    """
    t_len, h_len, w_len = (
        check_positive_int(f"{name}_len", length)
        for name, length in zip(AXIS_NAMES, (t_len, h_len, w_len))
    )
    grid = np.indices((t_len, h_len, w_len), dtype=np.int64)
    return grid.reshape(3, -1).T.copy()


def grid_index(position, shape) -> int:
    """Flat enumeration index of a (t, h, w) position within a grid of the given shape."""
    t, h, w = (int(v) for v in position)
    _, h_len, w_len = shape
    return (t * h_len + h) * w_len + w
