"""Tests for embedding assembly and the encoding engine."""

import os
import sys
import unittest

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from encoding_cache import EncodingCache
from position_grid import position_grid
from rope_config import EngineConfig, LODConfig, TensorDescriptor
from rope_embedding import assemble_embedding, assemble_embeddings
from rope_engine import RopeEncodingEngine, compute_encoding
from rope_errors import InvalidBase, InvalidDimension
from rope_frequencies import frequency_band
from rope_rotation import rotation_matrices, rotation_matrix


def _bands(descriptor):
    return [frequency_band(w, descriptor.base) for w in descriptor.axes_dim]


class TestAssembleEmbedding(unittest.TestCase):

    def setUp(self):
        self.desc = TensorDescriptor(2, 2, 2, embedding_dim=12, axes_dim=(4, 4, 4))
        self.bands = _bands(self.desc)

    def test_origin_is_all_identity(self):
        rec = assemble_embedding((0, 0, 0), self.desc, self.bands)
        self.assertEqual(rec.embedding.shape, (6, 2, 2))
        for m in rec.embedding:
            np.testing.assert_array_equal(m, np.eye(2))

    def test_axis_order(self):
        rec = assemble_embedding((1, 2, 3), self.desc, self.bands)
        t_part, h_part, w_part = rec.axis_embeddings()
        np.testing.assert_allclose(t_part, rotation_matrices(1, self.bands[0]))
        np.testing.assert_allclose(h_part, rotation_matrices(2, self.bands[1]))
        np.testing.assert_allclose(w_part, rotation_matrices(3, self.bands[2]))

    def test_time_offset_applies_to_time_only(self):
        desc = TensorDescriptor(2, 2, 2, embedding_dim=12, time_offset=1.5)
        rec = assemble_embedding((0, 0, 0), desc, _bands(desc))
        np.testing.assert_allclose(rec.embedding[0], rotation_matrix(1.5))
        for m in rec.embedding[2:]:
            np.testing.assert_array_equal(m, np.eye(2))
        self.assertEqual(rec.coordinates, (1.5, 0, 0))
        self.assertEqual(rec.position, (0, 0, 0))

    def test_magnitudes(self):
        desc = TensorDescriptor(3, 3, 3)
        rec = assemble_embedding((2, 1, 0), desc, _bands(desc))
        self.assertAlmostEqual(rec.magnitude, np.sqrt(2 * desc.embedding_length))
        np.testing.assert_allclose(rec.axis_magnitudes, [np.sqrt(2)] * 3)
        self.assertEqual(rec.axis_lengths, (22, 21, 21))

    def test_flat_encoding(self):
        rec = assemble_embedding((1, 0, 0), self.desc, self.bands)
        flat = rec.flat_encoding
        self.assertEqual(flat.shape, (24,))
        c, s = np.cos(1.0), np.sin(1.0)
        np.testing.assert_allclose(flat[:4], [c, -s, s, c])

    def test_vector_pairs(self):
        rec = assemble_embedding((1, 1, 1), self.desc, self.bands)
        pairs = rec.vector_pairs()
        self.assertEqual(pairs.shape, (6, 2, 2))
        np.testing.assert_allclose(pairs[0, 0], [np.cos(1.0), np.sin(1.0)])
        np.testing.assert_allclose(pairs[0, 1], [-np.sin(1.0), np.cos(1.0)])
        self.assertEqual(rec.vector_pairs(max_pairs=2).shape, (2, 2, 2))

    def test_embedding_is_read_only(self):
        rec = assemble_embedding((1, 1, 1), self.desc, self.bands)
        with self.assertRaises(ValueError):
            rec.embedding[0, 0, 0] = 5.0

    def test_mismatched_bands(self):
        with self.assertRaises(ValueError):
            assemble_embedding((0, 0, 0), self.desc, self.bands[:2])
        with self.assertRaises(ValueError):
            assemble_embedding((0, 0, 0), self.desc, [frequency_band(6)] * 3)

    def test_batched_matches_single(self):
        desc = TensorDescriptor(3, 4, 5, time_offset=0.25)
        bands = _bands(desc)
        grid = position_grid(*desc.shape)
        batched = assemble_embeddings(grid, desc, bands)
        self.assertEqual(len(batched), len(grid))
        for rec, pos in zip(batched, grid):
            single = assemble_embedding(pos, desc, bands)
            self.assertEqual(rec.position, single.position)
            np.testing.assert_allclose(rec.embedding, single.embedding, atol=1e-15)
            self.assertAlmostEqual(rec.magnitude, single.magnitude)
            np.testing.assert_allclose(rec.axis_magnitudes, single.axis_magnitudes)


class TestRopeEncodingEngine(unittest.TestCase):

    def test_two_cubed_scenario(self):
        desc = TensorDescriptor(2, 2, 2, embedding_dim=12, axes_dim=(4, 4, 4), base=10000.0)
        records = RopeEncodingEngine().compute_encoding(desc)
        self.assertEqual(
            [r.position for r in records],
            [(0, 0, 0), (0, 0, 1), (0, 1, 0), (0, 1, 1),
             (1, 0, 0), (1, 0, 1), (1, 1, 0), (1, 1, 1)],
        )
        for m in records[0].embedding[:2]:
            np.testing.assert_array_equal(m, np.eye(2))
        np.testing.assert_allclose(
            records[4].embedding[1], rotation_matrix(10000.0 ** -0.5)
        )

    def test_embedding_length_constant(self):
        desc = TensorDescriptor(4, 5, 6, embedding_dim=128)
        records = compute_encoding(desc)
        self.assertEqual(len(records), 120)
        for rec in records:
            self.assertEqual(rec.embedding.shape, (64, 2, 2))

    def test_second_call_served_from_cache(self):
        cache = EncodingCache(10)
        engine = RopeEncodingEngine(cache=cache)
        desc = TensorDescriptor(6, 6, 6, time_offset=2.0)

        first = engine.compute_encoding(desc)
        misses = cache.stats()["misses"]
        hits = cache.stats()["hits"]

        second = engine.compute_encoding(TensorDescriptor(6, 6, 6, time_offset=2.0))
        self.assertIs(first, second)
        self.assertEqual(cache.stats()["misses"], misses)
        self.assertEqual(cache.stats()["hits"], hits + 1)

    def test_idempotent_across_engines(self):
        desc = TensorDescriptor(5, 7, 3, base=500.0, time_offset=0.5)
        a = RopeEncodingEngine().compute_encoding(desc)
        b = RopeEncodingEngine().compute_encoding(desc)
        self.assertEqual(len(a), len(b))
        for x, y in zip(a, b):
            self.assertEqual(x.position, y.position)
            np.testing.assert_array_equal(x.embedding, y.embedding)
            self.assertEqual(x.magnitude, y.magnitude)

    def test_different_parameters_recompute(self):
        cache = EncodingCache(10)
        engine = RopeEncodingEngine(cache=cache)
        a = engine.compute_encoding(TensorDescriptor(2, 2, 2, time_offset=0.0))
        b = engine.compute_encoding(TensorDescriptor(2, 2, 2, time_offset=1.0))
        self.assertIsNot(a, b)
        self.assertFalse(np.allclose(a[0].embedding, b[0].embedding))

    def test_shared_bands_and_grid_cached(self):
        cache = EncodingCache(10)
        engine = RopeEncodingEngine(cache=cache)
        engine.compute_encoding(TensorDescriptor(3, 3, 3))
        keys = cache.stats()["keys"]
        self.assertIn(("grid", 3, 3, 3), keys)
        self.assertIn(("bands", 44, 10000), keys)
        self.assertIn(("bands", 42, 10000), keys)

    def test_large_grid_reduced(self):
        desc = TensorDescriptor(50, 50, 50)
        records = RopeEncodingEngine().compute_encoding(desc)
        self.assertLessEqual(len(records), 500)
        self.assertEqual(len(records), 448)
        lengths = {rec.embedding.shape[0] for rec in records}
        self.assertEqual(lengths, {desc.embedding_length})

    def test_engine_uses_configured_lod(self):
        config = EngineConfig(lod=LODConfig(keep_all_max=10, tiers=(), default_target=8))
        records = RopeEncodingEngine(config).compute_encoding(TensorDescriptor(4, 4, 4))
        self.assertEqual(len(records), 8)
        self.assertEqual({r.position[0] for r in records}, {0, 2})

    def test_cache_capacity_from_config(self):
        engine = RopeEncodingEngine(EngineConfig(max_cache_size=3))
        self.assertEqual(engine.cache.max_size, 3)
        for t in range(1, 4):
            engine.compute_encoding(TensorDescriptor(t, 2, 2))
        self.assertLessEqual(len(engine.cache), 3)

    def test_invalid_descriptor_fails_fast(self):
        with self.assertRaises(InvalidDimension):
            compute_encoding(TensorDescriptor(2, 2, 2, embedding_dim=10, axes_dim=(4, 3, 2)))
        with self.assertRaises(InvalidBase):
            compute_encoding(TensorDescriptor(2, 2, 2, base=1.0))


if __name__ == "__main__":
    unittest.main()
