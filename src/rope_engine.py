"""
3-axis RoPE encoding engine.

compute_encoding(descriptor) enumerates the (t, h, w) grid, reduces it with
the level-of-detail sampler, and assembles one rotation-matrix embedding per
surviving position. Frequency bands, grids, and final encodings are memoised
in an injected EncodingCache so repeated requests with equal parameters are
served without recomputation.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from encoding_cache import EncodingCache, make_cache_key
from grid_sampler import GridSampler
from position_grid import position_grid
from rope_config import EngineConfig, TensorDescriptor
from rope_embedding import EncodedPosition, assemble_embeddings
from rope_frequencies import frequency_band

logger = logging.getLogger(__name__)


class RopeEncodingEngine:
    """Computes LOD-reduced 3-axis RoPE encodings with memoisation."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        cache: Optional[EncodingCache] = None,
    ):
        """
        Args:
            config: Engine configuration; defaults to EngineConfig()
            cache: Shared cache; a private one sized by config.max_cache_size
                is created when None
        """
        self.config = config if config is not None else EngineConfig()
        self.cache = cache if cache is not None else EncodingCache(self.config.max_cache_size)
        self.sampler = GridSampler(self.config.lod)

    def frequency_bands(self, descriptor: TensorDescriptor) -> Tuple[np.ndarray, ...]:
        """Read-only frequency arrays for the (t, h, w) axes."""
        return tuple(self._band(width, descriptor.base) for width in descriptor.axes_dim)

    def _band(self, axis_width: int, base: float) -> np.ndarray:
        key = make_cache_key("bands", axis_width, base)
        band = self.cache.get(key)
        if band is None:
            band = frequency_band(axis_width, base)
            band.flags.writeable = False
            self.cache.put(key, band)
        return band

    def grid(self, descriptor: TensorDescriptor) -> np.ndarray:
        """Full read-only position grid for the descriptor's extents."""
        key = make_cache_key("grid", *descriptor.shape)
        grid = self.cache.get(key)
        if grid is None:
            grid = position_grid(*descriptor.shape)
            grid.flags.writeable = False
            self.cache.put(key, grid)
        return grid

    def _encoding_key(self, descriptor: TensorDescriptor) -> Tuple:
        lod = self.config.lod
        return make_cache_key(
            "encoding",
            *descriptor.shape,
            descriptor.embedding_dim,
            descriptor.axes_dim,
            descriptor.base,
            descriptor.time_offset,
            lod.keep_all_max,
            lod.tiers,
            lod.default_target,
            lod.min_samples_per_axis,
            lod.strict_target,
        )

    def compute_encoding(self, descriptor: TensorDescriptor) -> Tuple[EncodedPosition, ...]:
        """
        Encode every LOD-sampled position of the descriptor's grid.

        Args:
            descriptor: Grid extents, widths, base, and time offset

        Returns:
            Tuple of EncodedPosition in grid enumeration order (time slowest,
            width fastest), at most config.lod.target_for(N) long
        """
        key = self._encoding_key(descriptor)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Encoding cache hit for %s", key)
            return cached
        logger.debug("Encoding cache miss for %s", key)

        grid = self.grid(descriptor)
        indices = self.sampler.apply_level_of_detail(grid, shape=descriptor.shape)
        sampled = grid[indices]
        bands = self.frequency_bands(descriptor)
        records = assemble_embeddings(sampled, descriptor, bands)

        logger.info(
            "Encoded %d of %d positions (%dx%dx%d), %d matrices per embedding",
            len(records),
            len(grid),
            descriptor.t_len,
            descriptor.h_len,
            descriptor.w_len,
            descriptor.embedding_length,
        )
        self.cache.put(key, records)
        return records


def compute_encoding(
    descriptor: TensorDescriptor, engine: Optional[RopeEncodingEngine] = None
) -> Tuple[EncodedPosition, ...]:
    """Module-level convenience wrapper; uses a fresh engine when none is given."""
    if engine is None:
        engine = RopeEncodingEngine()
    return engine.compute_encoding(descriptor)
