"""
Per-axis RoPE frequency bands.

An axis of width d gets d/2 frequencies omega_i = base^{-s_i}, with the scales
s_i spaced linearly over [0, (d - 2) / d]. The first frequency is always 1 and
the rest decay geometrically, so low indices rotate fastest.
"""

import numpy as np

from rope_config import check_base, check_even_width


def frequency_scales(axis_width: int) -> np.ndarray:
    """
    Linearly spaced exponents for one axis.

    Args:
        axis_width: Axis embedding width (positive, even)

    Returns:
        Array of shape (axis_width // 2,) spanning [0, (axis_width - 2) / axis_width]
    """
    axis_width = check_even_width("axis_width", axis_width)
    steps = axis_width // 2
    if steps == 1:
        return np.zeros(1, dtype=np.float64)
    return np.linspace(0.0, (axis_width - 2) / axis_width, steps, dtype=np.float64)


def frequency_band(axis_width: int, base: float = 10000.0) -> np.ndarray:
    """
    Frequencies omega = base^{-scale} for one axis.

    Args:
        axis_width: Axis embedding width (positive, even)
        base: Frequency base (> 1)

    Returns:
        Non-increasing array of shape (axis_width // 2,); first entry is 1.0
    """
    base = check_base(base)
    scales = frequency_scales(axis_width)
    return np.power(base, -scales)
