"""
Assemble per-axis rotation matrices into full 3-axis embeddings.

The embedding of (t, h, w) is the concatenation, in time -> height -> width
order, of the rotation matrices for t + time_offset, h, and w under each
axis's frequency band. Only the time coordinate carries the offset.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from rope_config import TensorDescriptor
from rope_rotation import matrices_from_angles, rotate_vectors


@dataclass(frozen=True, eq=False)
class EncodedPosition:
    """
    Encoding of one grid position.

    Attributes:
        position: Integer grid coordinates (t, h, w)
        embedding: Read-only array of shape (n_matrices, 2, 2)
        magnitude: sqrt of the sum of squares of every matrix component
        axis_magnitudes: Mean per-matrix Frobenius norm for the (t, h, w) parts
        axis_lengths: Number of matrices belonging to each axis
        time_offset: Offset applied to the time coordinate
    """

    position: Tuple[int, int, int]
    embedding: np.ndarray
    magnitude: float
    axis_magnitudes: Tuple[float, float, float]
    axis_lengths: Tuple[int, int, int]
    time_offset: float = 0.0

    @property
    def coordinates(self) -> Tuple[float, int, int]:
        """Coordinates actually encoded: (t + time_offset, h, w)."""
        t, h, w = self.position
        return (t + self.time_offset, h, w)

    @property
    def flat_encoding(self) -> np.ndarray:
        """Row-major components [cos, -sin, sin, cos] of every matrix, concatenated."""
        return self.embedding.reshape(-1)

    def axis_embeddings(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Split the embedding back into its time, height, and width parts."""
        n_t, n_h, _ = self.axis_lengths
        return (
            self.embedding[:n_t],
            self.embedding[n_t:n_t + n_h],
            self.embedding[n_t + n_h:],
        )

    def vector_pairs(self, max_pairs: int = 8) -> np.ndarray:
        """
        Images of the unit vectors under the leading rotation matrices.

        Returns:
            Array of shape (min(max_pairs, n_matrices), 2, 2) where [i, 0] is
            R_i @ [1, 0] and [i, 1] is R_i @ [0, 1]
        """
        matrices = self.embedding[:max(0, max_pairs)]
        return np.stack(
            [rotate_vectors(matrices, (1.0, 0.0)), rotate_vectors(matrices, (0.0, 1.0))],
            axis=1,
        )


def embedding_magnitude(embedding: np.ndarray) -> float:
    return float(np.sqrt(np.sum(np.square(embedding))))


def axis_magnitude(matrices: np.ndarray) -> float:
    """Mean Frobenius norm over one axis's matrices; 0.0 for an empty axis."""
    if len(matrices) == 0:
        return 0.0
    norms = np.sqrt(np.sum(np.square(matrices), axis=(-2, -1)))
    return float(np.mean(norms))


def _axis_coordinates(positions: np.ndarray, time_offset: float) -> Tuple[np.ndarray, ...]:
    positions = np.asarray(positions)
    return (
        positions[..., 0].astype(np.float64) + time_offset,
        positions[..., 1].astype(np.float64),
        positions[..., 2].astype(np.float64),
    )


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def assemble_embedding(
    position: Sequence[int],
    descriptor: TensorDescriptor,
    bands: Sequence[np.ndarray],
) -> EncodedPosition:
    """
    Build the embedding for a single position.

    Args:
        position: Integer (t, h, w)
        descriptor: Supplies time_offset and the per-axis widths
        bands: Three frequency arrays, one per axis, in (t, h, w) order

    Returns:
        EncodedPosition with embedding of shape (descriptor.embedding_length, 2, 2)
    """
    _check_bands(descriptor, bands)
    coords = _axis_coordinates(np.asarray(position), descriptor.time_offset)
    parts = [matrices_from_angles(c * band) for c, band in zip(coords, bands)]
    embedding = _freeze(np.concatenate(parts, axis=0))
    return EncodedPosition(
        position=tuple(int(v) for v in position),
        embedding=embedding,
        magnitude=embedding_magnitude(embedding),
        axis_magnitudes=tuple(axis_magnitude(p) for p in parts),
        axis_lengths=tuple(len(band) for band in bands),
        time_offset=descriptor.time_offset,
    )


def assemble_embeddings(
    positions: np.ndarray,
    descriptor: TensorDescriptor,
    bands: Sequence[np.ndarray],
) -> Tuple[EncodedPosition, ...]:
    """
    Vectorized assemble_embedding over an (M, 3) array of positions.

    Produces the same records as calling assemble_embedding per row.
    """
    _check_bands(descriptor, bands)
    positions = np.asarray(positions, dtype=np.int64).reshape(-1, 3)
    coords = _axis_coordinates(positions, descriptor.time_offset)

    # (M, n_axis, 2, 2) per axis
    parts = [
        matrices_from_angles(c[:, np.newaxis] * band[np.newaxis, :])
        for c, band in zip(coords, bands)
    ]
    embeddings = np.concatenate(parts, axis=1)
    magnitudes = np.sqrt(np.sum(np.square(embeddings), axis=(1, 2, 3)))
    per_axis = np.stack(
        [
            np.sqrt(np.sum(np.square(p), axis=(-2, -1))).mean(axis=1)
            if p.shape[1] else np.zeros(len(positions))
            for p in parts
        ],
        axis=1,
    )
    axis_lengths = tuple(len(band) for band in bands)

    records = []
    for i, row in enumerate(positions):
        records.append(
            EncodedPosition(
                position=(int(row[0]), int(row[1]), int(row[2])),
                embedding=_freeze(embeddings[i].copy()),
                magnitude=float(magnitudes[i]),
                axis_magnitudes=(float(per_axis[i, 0]), float(per_axis[i, 1]), float(per_axis[i, 2])),
                axis_lengths=axis_lengths,
                time_offset=descriptor.time_offset,
            )
        )
    return tuple(records)


def _check_bands(descriptor: TensorDescriptor, bands: Sequence[np.ndarray]) -> None:
    if len(bands) != 3:
        raise ValueError(f"expected 3 frequency bands, got {len(bands)}")
    for width, band in zip(descriptor.axes_dim, bands):
        if len(band) != width // 2:
            raise ValueError(
                f"frequency band of length {len(band)} does not match axis width {width}"
            )
