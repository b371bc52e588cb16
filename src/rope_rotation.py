"""
2x2 rotation matrices for rotary position encoding.

For a position p and frequency omega the angle is p * omega and the matrix is
[[cos, -sin], [sin, cos]]. Angles are not reduced modulo 2*pi; compare raw
angles from rotation_angles() rather than recovering them from the matrices.
"""

import numpy as np

from rope_frequencies import frequency_band


def rotation_angles(position: float, frequencies: np.ndarray) -> np.ndarray:
    """Unreduced rotation angles position * omega_i, shape (n,)."""
    return float(position) * np.asarray(frequencies, dtype=np.float64)


def rotation_matrix(angle: float) -> np.ndarray:
    """Single 2x2 rotation matrix R(angle)."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s], [s, c]], dtype=np.float64)


def matrices_from_angles(angles: np.ndarray) -> np.ndarray:
    """
    Stack rotation matrices for an array of angles.

    Args:
        angles: Array of any shape (...)

    Returns:
        Array of shape (..., 2, 2)
    """
    angles = np.asarray(angles, dtype=np.float64)
    cos = np.cos(angles)
    sin = np.sin(angles)
    out = np.stack([cos, -sin, sin, cos], axis=-1)
    return out.reshape(*angles.shape, 2, 2)


def rotation_matrices(position: float, frequencies: np.ndarray) -> np.ndarray:
    """
    One rotation matrix per frequency for a single position.

    Args:
        position: Coordinate value (integer, or integer plus offset)
        frequencies: Array of shape (n,)

    Returns:
        Array of shape (n, 2, 2)
    """
    return matrices_from_angles(rotation_angles(position, frequencies))


def rope(position: float, axis_width: int, base: float = 10000.0) -> np.ndarray:
    """Rotation matrices for one axis: shape (axis_width // 2, 2, 2)."""
    return rotation_matrices(position, frequency_band(axis_width, base))


def rotate_vectors(matrices: np.ndarray, vector) -> np.ndarray:
    """
    Apply each rotation matrix to a 2-vector.

    Args:
        matrices: Array of shape (n, 2, 2)
        vector: Length-2 sequence

    Returns:
        Array of shape (n, 2)
    """
    vector = np.asarray(vector, dtype=np.float64)
    if vector.shape != (2,):
        raise ValueError(f"vector must have shape (2,), got {vector.shape}")
    return np.asarray(matrices, dtype=np.float64) @ vector
