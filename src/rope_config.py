"""
Configuration for the 3-axis RoPE encoding engine.

TensorDescriptor describes one encoding request (grid extents, embedding
width, frequency base, time offset). LODConfig holds the level-of-detail
target policy and EngineConfig bundles it with the cache capacity. All three
are frozen dataclasses validated in __post_init__.

The total embedding dimension is split across the (time, height, width) axes
explicitly: either the caller passes axes_dim, or split_axes_dim() divides the
rotation pairs evenly and gives any remainder to the time axis.
"""

import math
import numbers
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple

from rope_errors import InvalidBase, InvalidDimension

N_AXES = 3
AXIS_NAMES = ("t", "h", "w")


def check_positive_int(name: str, value) -> int:
    """Return value as an int; raise InvalidDimension unless it is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidDimension(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise InvalidDimension(f"{name} must be positive, got {value}")
    return int(value)


def check_even_width(name: str, value) -> int:
    """Return value as an int; raise InvalidDimension unless it is a positive even integer."""
    value = check_positive_int(name, value)
    if value % 2 != 0:
        raise InvalidDimension(f"{name} must be even, got {value}")
    return value


def check_base(base) -> float:
    """Return base as a float; raise InvalidBase unless it is a finite real > 1."""
    if isinstance(base, bool) or not isinstance(base, numbers.Real):
        raise InvalidBase(f"base must be a real number, got {type(base).__name__}")
    if not math.isfinite(base) or base <= 1:
        raise InvalidBase(f"base must be a finite value > 1, got {base}")
    return float(base)


def split_axes_dim(embedding_dim: int) -> Tuple[int, int, int]:
    """
    Split a total embedding dimension into per-axis widths.

    Each axis receives embedding_dim // 6 rotation pairs; leftover pairs go
    to the time axis, so 128 -> (44, 42, 42) and 12 -> (4, 4, 4).

    Args:
        embedding_dim: Total embedding dimension (positive, even, >= 6)

    Returns:
        (t_width, h_width, w_width), each even and positive
    """
    embedding_dim = check_even_width("embedding_dim", embedding_dim)
    pairs = embedding_dim // 2
    per_axis = pairs // N_AXES
    if per_axis == 0:
        raise InvalidDimension(
            f"embedding_dim must be at least {2 * N_AXES} to give every axis "
            f"one rotation pair, got {embedding_dim}"
        )
    leftover = pairs - per_axis * N_AXES
    return (2 * (per_axis + leftover), 2 * per_axis, 2 * per_axis)


def scaled_axes_dim(
    embedding_dim: int, t_len: int, h_len: int, w_len: int
) -> Tuple[int, int, int]:
    """
    Legacy mapping that scales each axis width with the grid extent.

    width = min(embedding_dim / 3, max(4, 2 * axis_len)), floored to even.
    Only used when a caller opts in by passing the result as axes_dim.
    """
    embedding_dim = check_even_width("embedding_dim", embedding_dim)
    widths = []
    for name, length in zip(("t_len", "h_len", "w_len"), (t_len, h_len, w_len)):
        length = check_positive_int(name, length)
        width = min(embedding_dim / N_AXES, max(4, length * 2))
        widths.append(int(width // 2) * 2)
    for name, width in zip(AXIS_NAMES, widths):
        check_even_width(f"axes_dim[{name}]", width)
    return tuple(widths)


@dataclass(frozen=True)
class TensorDescriptor:
    """
    One encoding request over a (t_len, h_len, w_len) grid.

    Attributes:
        t_len, h_len, w_len: Grid extents (positive integers)
        embedding_dim: Total embedding dimension (positive, even)
        base: Frequency base (> 1)
        time_offset: Added to the time coordinate only
        axes_dim: Per-axis widths; derived with split_axes_dim() when None
    """

    t_len: int
    h_len: int
    w_len: int
    embedding_dim: int = 128
    base: float = 10000.0
    time_offset: float = 0.0
    axes_dim: Optional[Tuple[int, int, int]] = None

    def __post_init__(self) -> None:
        for name in ("t_len", "h_len", "w_len"):
            object.__setattr__(self, name, check_positive_int(name, getattr(self, name)))
        object.__setattr__(
            self, "embedding_dim", check_even_width("embedding_dim", self.embedding_dim)
        )
        object.__setattr__(self, "base", check_base(self.base))

        if isinstance(self.time_offset, bool) or not isinstance(
            self.time_offset, numbers.Real
        ):
            raise ValueError(
                f"time_offset must be a real number, got {type(self.time_offset).__name__}"
            )
        if not math.isfinite(self.time_offset):
            raise ValueError(f"time_offset must be finite, got {self.time_offset}")
        object.__setattr__(self, "time_offset", float(self.time_offset))

        if self.axes_dim is None:
            axes = split_axes_dim(self.embedding_dim)
        else:
            axes = tuple(self.axes_dim)
            if len(axes) != N_AXES:
                raise InvalidDimension(
                    f"axes_dim must have {N_AXES} entries, got {len(axes)}"
                )
            axes = tuple(
                check_even_width(f"axes_dim[{name}]", width)
                for name, width in zip(AXIS_NAMES, axes)
            )
            if sum(axes) > self.embedding_dim:
                raise InvalidDimension(
                    f"axes_dim {axes} sums to {sum(axes)}, which exceeds "
                    f"embedding_dim {self.embedding_dim}"
                )
        object.__setattr__(self, "axes_dim", axes)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.t_len, self.h_len, self.w_len)

    @property
    def total_points(self) -> int:
        return self.t_len * self.h_len * self.w_len

    @property
    def embedding_length(self) -> int:
        """Number of rotation matrices in every embedding for this descriptor."""
        return sum(width // 2 for width in self.axes_dim)


@dataclass(frozen=True)
class LODConfig:
    """
    Level-of-detail target policy.

    Grids with at most keep_all_max points are kept whole. Otherwise the first
    (max_points, target) tier with total <= max_points applies, and anything
    larger uses default_target.
    """

    keep_all_max: int = 1000
    tiers: Tuple[Tuple[int, int], ...] = ((5000, 2000), (20000, 1000))
    default_target: int = 500
    min_samples_per_axis: int = 2
    strict_target: bool = True

    def __post_init__(self) -> None:
        for name in ("keep_all_max", "default_target", "min_samples_per_axis"):
            object.__setattr__(self, name, check_positive_int(name, getattr(self, name)))

        tiers = tuple(
            (
                check_positive_int("tier max_points", max_points),
                check_positive_int("tier target", target),
            )
            for max_points, target in self.tiers
        )
        previous = self.keep_all_max
        for max_points, target in tiers:
            if max_points <= previous:
                raise ValueError(
                    f"tier thresholds must increase past keep_all_max, got {max_points} "
                    f"after {previous}"
                )
            previous = max_points
        object.__setattr__(self, "tiers", tiers)

    def target_for(self, total_points: int) -> int:
        """Target sample size for a grid of total_points."""
        if total_points <= self.keep_all_max:
            return total_points
        for max_points, target in self.tiers:
            if total_points <= max_points:
                return target
        return self.default_target


@dataclass(frozen=True)
class EngineConfig:
    """Cache capacity plus LOD policy for RopeEncodingEngine."""

    max_cache_size: int = 50
    lod: LODConfig = field(default_factory=LODConfig)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "max_cache_size", check_positive_int("max_cache_size", self.max_cache_size)
        )
        if not isinstance(self.lod, LODConfig):
            raise TypeError(f"lod must be an LODConfig, got {type(self.lod).__name__}")

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from flat parameters, e.g.
        {"max_cache_size": 20, "default_target": 300, "strict_target": False}.
        """
        engine_keys = {f.name for f in fields(cls)} - {"lod"}
        lod_keys = {f.name for f in fields(LODConfig)}
        unknown = set(params) - engine_keys - lod_keys
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")

        engine_kwargs: Dict[str, Any] = {k: v for k, v in params.items() if k in engine_keys}
        lod_kwargs: Dict[str, Any] = {k: v for k, v in params.items() if k in lod_keys}
        return cls(lod=LODConfig(**lod_kwargs), **engine_kwargs)
