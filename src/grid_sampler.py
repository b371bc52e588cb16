"""
Structure-preserving level-of-detail sampling for 3D coordinate grids.

A flat stride over the enumeration order would favour the innermost (width)
axis. Instead every axis is strided independently: with
ratio = (target / N) ** (1/3), each axis keeps about axis_len * ratio evenly
spaced coordinates, and a position survives when all three of its coordinates
are multiples of their axis step. The survivors therefore form a coarser grid
with the same proportions as the original.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from rope_config import LODConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingPlan:
    """
    Per-axis strides chosen for one grid.

    sample_counts are the per-axis targets max(min_samples, floor(len * ratio))
    that the steps were derived from, before any strict-target coarsening;
    axis_counts are the coordinates each axis actually keeps under steps.
    """

    shape: Tuple[int, int, int]
    ratio: float
    sample_counts: Tuple[int, int, int]
    steps: Tuple[int, int, int]

    @property
    def axis_counts(self) -> Tuple[int, int, int]:
        return tuple(_axis_counts(self.shape, self.steps))

    @property
    def expected_size(self) -> int:
        """Size of the strided sub-grid when the input is a full grid."""
        return math.prod(self.axis_counts)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _axis_counts(shape: Sequence[int], steps: Sequence[int]) -> list:
    return [-(-length // step) for length, step in zip(shape, steps)]


class GridSampler:
    """Reduce (N, 3) coordinate sets to a bounded, grid-shaped subset."""

    def __init__(self, config: Optional[LODConfig] = None):
        self.config = config if config is not None else LODConfig()

    def plan(self, shape: Sequence[int], target_count: int) -> SamplingPlan:
        """
        Choose per-axis strides for a grid of the given shape.

        Args:
            shape: (t_len, h_len, w_len)
            target_count: Upper bound on the sample size

        Returns:
            SamplingPlan; steps are all 1 when the grid already fits
        """
        shape = tuple(int(v) for v in shape)
        if len(shape) != 3 or any(v <= 0 for v in shape):
            raise ValueError(f"shape must be three positive extents, got {shape}")
        if target_count < 1:
            raise ValueError(f"target_count must be >= 1, got {target_count}")

        total = math.prod(shape)
        if total <= target_count:
            return SamplingPlan(shape, 1.0, shape, (1, 1, 1))

        ratio = (target_count / total) ** (1.0 / 3.0)
        min_samples = self.config.min_samples_per_axis
        sample_counts = [max(min_samples, int(math.floor(length * ratio))) for length in shape]
        steps = [
            max(1, _round_half_up(length / count))
            for length, count in zip(shape, sample_counts)
        ]

        if self.config.strict_target:
            steps = self._coarsen_to_target(shape, steps, target_count)

        logger.debug(
            "Structured sampling: %s from %s, steps %s (ratio %.4f)",
            "x".join(str(c) for c in _axis_counts(shape, steps)),
            "x".join(str(v) for v in shape),
            tuple(steps),
            ratio,
        )
        return SamplingPlan(shape, ratio, tuple(sample_counts), tuple(steps))

    @staticmethod
    def _coarsen_to_target(shape, steps, target_count):
        """Enlarge the step of the densest axis until the sub-grid fits target_count."""
        steps = list(steps)
        counts = _axis_counts(shape, steps)
        while math.prod(counts) > target_count:
            axis = int(np.argmax(counts))
            others = math.prod(counts) // counts[axis]
            allowed = max(1, target_count // others)
            steps[axis] = -(-shape[axis] // allowed)
            counts = _axis_counts(shape, steps)
        return steps

    def sample_indices(
        self,
        positions: np.ndarray,
        target_count: int,
        shape: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        """
        Indices of the positions kept by structured sampling.

        Args:
            positions: Integer array of shape (N, 3)
            target_count: Upper bound on the sample size
            shape: Grid extents; inferred as max coordinate + 1 when None

        Returns:
            Sorted int64 index array into positions, at most target_count long
        """
        positions = np.asarray(positions)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValueError(f"positions must have shape (N, 3), got {positions.shape}")
        if target_count < 1:
            raise ValueError(f"target_count must be >= 1, got {target_count}")

        n = len(positions)
        if n <= target_count:
            return np.arange(n, dtype=np.int64)

        if shape is None:
            shape = tuple(int(v) + 1 for v in positions.max(axis=0))
        plan = self.plan(shape, target_count)
        steps = np.asarray(plan.steps, dtype=np.int64)

        keep = np.all(positions % steps == 0, axis=1)
        indices = np.flatnonzero(keep).astype(np.int64)
        if len(indices) == 0:
            logger.debug(
                "Structured sampling selected nothing; truncating to first %d positions",
                target_count,
            )
            return np.arange(target_count, dtype=np.int64)
        if len(indices) > target_count:
            # repeated coordinates can exceed the bound the grid shape implies
            logger.debug(
                "Structured sampling kept %d positions; truncating to first %d",
                len(indices),
                target_count,
            )
            return indices[:target_count]
        return indices

    def sample(
        self,
        positions: np.ndarray,
        target_count: int,
        shape: Optional[Sequence[int]] = None,
    ) -> np.ndarray:
        """Structured subset of positions, in enumeration order."""
        positions = np.asarray(positions)
        return positions[self.sample_indices(positions, target_count, shape)]

    def apply_level_of_detail(
        self, positions: np.ndarray, shape: Optional[Sequence[int]] = None
    ) -> np.ndarray:
        """Indices kept under the configured size-tiered target policy."""
        positions = np.asarray(positions)
        target = self.config.target_for(len(positions))
        return self.sample_indices(positions, max(1, target), shape)
