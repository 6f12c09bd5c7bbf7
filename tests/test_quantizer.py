"""
Unit tests for the grid quantizer and control specification.
"""

import numpy as np
import pytest
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from symbolic_control.quantizer import Quantizer, OUT_OF_RANGE
from symbolic_control.specification import ControlSpecification, SpecificationType
from symbolic_control.vector import as_vector, normalize


class TestQuantizerConstruction:
    """Tests for grid sizing and validation."""

    def test_cardinality_2d(self):
        q = Quantizer([0.5, 0.5], [-5.0, -10.0], [5.0, 10.0])

        np.testing.assert_array_equal(q.cardinality_per_axis, [20, 40])
        assert q.cardinality == 800
        assert q.dimension == 2

    def test_scalar_eta_is_broadcast(self):
        q = Quantizer(0.5, [0.0, 0.0], [1.0, 2.0])

        np.testing.assert_array_almost_equal(q.eta, [0.5, 0.5])
        np.testing.assert_array_equal(q.cardinality_per_axis, [2, 4])

    def test_cardinality_tolerates_rounding(self):
        """(1.65 - 0.65) / 0.01 is not exactly 100 in floating point."""
        q = Quantizer([0.01, 0.01], [0.65, 4.95], [1.65, 5.95])

        np.testing.assert_array_equal(q.cardinality_per_axis, [100, 100])

    def test_partial_cell_extends_upper_bound(self):
        q = Quantizer([0.5], [0.0], [2 * np.pi])

        assert q.cardinality == 13
        np.testing.assert_array_almost_equal(q.upper_bound, [6.5])

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            Quantizer([0.0], [0.0], [1.0])
        with pytest.raises(ValueError):
            Quantizer([0.1], [1.0], [1.0])
        with pytest.raises(ValueError):
            Quantizer([0.1, 0.1, 0.1], [0.0, 0.0], [1.0, 1.0])


class TestQuantizerIndexing:
    """Tests for index <-> vector conversions."""

    def setup_method(self):
        self.q = Quantizer([1.0, 1.0], [0.0, 0.0], [3.0, 2.0])

    def test_axis_zero_varies_fastest(self):
        np.testing.assert_array_almost_equal(self.q.vector_from_index(0), [0.5, 0.5])
        np.testing.assert_array_almost_equal(self.q.vector_from_index(1), [1.5, 0.5])
        np.testing.assert_array_almost_equal(self.q.vector_from_index(3), [0.5, 1.5])

    def test_index_of_cell_center_round_trips(self):
        for index in range(self.q.cardinality):
            assert self.q.index_from_vector(self.q.vector_from_index(index)) == index

    def test_random_vectors_round_trip_through_their_cell(self):
        rng = np.random.default_rng(0)
        grids = [self.q, Quantizer([0.1, 0.3], [-1.0, -2.0], [1.0, 1.0])]

        for q in grids:
            for _ in range(200):
                snapped = q.quantize_vector(q.random_vector(rng))
                np.testing.assert_array_equal(q.vector_from_index(q.index_from_vector(snapped)), snapped)

    def test_cell_edges_round_trip(self):
        edges = [[0.0, 0.0], [1.0, 0.0], [2.0, 1.0], [1.0, 1.5], [2.999, 1.999]]

        for v in edges:
            snapped = self.q.quantize_vector(v)
            np.testing.assert_array_equal(self.q.vector_from_index(self.q.index_from_vector(snapped)), snapped)

    def test_cells_are_half_open(self):
        assert self.q.index_from_vector([1.0, 0.0]) == 1
        assert self.q.index_from_vector([3.0, 0.5]) == OUT_OF_RANGE
        assert self.q.index_from_vector([2.999, 1.999]) == 5

    def test_out_of_range_vectors(self):
        assert self.q.index_from_vector([-0.1, 0.5]) == OUT_OF_RANGE
        assert self.q.axis_indices_from_vector([0.5, 2.5]) is None
        assert self.q.index_from_axis_indices([3, 0]) == OUT_OF_RANGE

    def test_invalid_index_raises(self):
        with pytest.raises(IndexError):
            self.q.vector_from_index(6)
        with pytest.raises(IndexError):
            self.q.axis_indices_from_index(-1)

    def test_check_index(self):
        self.q.check_index(0)
        self.q.check_index(5)
        for index in (-1, 6):
            with pytest.raises(IndexError):
                self.q.check_index(index)

    def test_neighbor_index(self):
        assert self.q.neighbor_index(0, 0, 1) == 1
        assert self.q.neighbor_index(0, 1, 1) == 3
        assert self.q.neighbor_index(0, 0, -1) == OUT_OF_RANGE
        assert self.q.neighbor_index(5, 1, 1) == OUT_OF_RANGE

    def test_quantize_vector_clamps_and_snaps(self):
        np.testing.assert_array_almost_equal(self.q.quantize_vector([1.2, 0.9]), [1.5, 0.5])
        np.testing.assert_array_almost_equal(self.q.quantize_vector([10.0, -4.0]), [2.5, 0.5])

    def test_cell_centers_match_vector_from_index(self):
        centers = self.q.cell_centers()

        assert centers.shape == (6, 2)
        for index, center in enumerate(centers):
            np.testing.assert_array_almost_equal(center, self.q.vector_from_index(index))


class TestQuantizerGeometry:
    """Tests for vertices, bounds and index ranges."""

    def test_vertex_ordering(self):
        """Bit k of the vertex number selects the upper side of axis k."""
        q = Quantizer([1.0, 2.0], [0.0, 0.0], [4.0, 4.0])
        vertices = q.cell_vertices(0)

        assert vertices.shape == (4, 2)
        np.testing.assert_array_almost_equal(vertices, [[0, 0], [1, 0], [0, 2], [1, 2]])

    def test_cell_vertices_from_vector(self):
        q = Quantizer([1.0], [0.0], [4.0])

        np.testing.assert_array_almost_equal(q.cell_vertices(np.array([2.3])), [[2.0], [3.0]])

    def test_box_bounds_are_closed(self):
        q = Quantizer([1.0], [0.0], [4.0])

        assert q.is_box_in_bounds([0.0], [4.0])
        assert not q.is_box_in_bounds([-0.01], [1.0])
        assert not q.is_in_bounds([4.0])

    def test_axis_index_range_grid_line_upper_bound(self):
        q = Quantizer([1.0, 1.0], [0.0, 0.0], [4.0, 4.0])

        lo, hi = q.axis_index_range([0.0, 0.5], [1.0, 2.5])

        np.testing.assert_array_equal(lo, [0, 0])
        np.testing.assert_array_equal(hi, [0, 2])

    def test_random_vector_is_reproducible(self):
        q = Quantizer([1.0, 1.0], [0.0, 0.0], [4.0, 4.0])

        a = q.random_vector(np.random.default_rng(3))
        b = q.random_vector(np.random.default_rng(3))

        np.testing.assert_array_equal(a, b)
        assert q.is_in_bounds(a)


class TestControlSpecification:
    """Tests for the target interval."""

    def test_membership_is_closed(self):
        spec = ControlSpecification(SpecificationType.INVARIANCE, [-1.0, -1.0], [1.0, 1.0])

        assert spec.is_in_specification_set([1.0, -1.0])
        assert spec.is_in_specification_set([0.0, 0.0])
        assert not spec.is_in_specification_set([1.01, 0.0])

    def test_center(self):
        spec = ControlSpecification(SpecificationType.REACHABILITY, [0.0, 2.0], [2.0, 6.0])

        np.testing.assert_array_almost_equal(spec.center, [1.0, 4.0])
        assert spec.dimension == 2

    def test_malformed_interval(self):
        with pytest.raises(ValueError):
            ControlSpecification(SpecificationType.INVARIANCE, [1.0], [0.0])

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            ControlSpecification('invariance', [0.0], [1.0])

    def test_random_vector_inside(self):
        spec = ControlSpecification(SpecificationType.REACH_AND_STAY, [0.0, 0.0], [1.0, 2.0])
        rng = np.random.default_rng(0)

        for _ in range(20):
            assert spec.is_in_specification_set(spec.random_vector(rng))


class TestVectorHelpers:

    def test_as_vector_checks_length(self):
        np.testing.assert_array_equal(as_vector(3.0), [3.0])
        with pytest.raises(ValueError):
            as_vector([1.0, 2.0], 3)

    def test_normalize(self):
        np.testing.assert_array_almost_equal(normalize(np.array([3.0, 4.0])), [0.6, 0.8])
        np.testing.assert_array_equal(normalize(np.zeros(2)), [0.0, 0.0])
