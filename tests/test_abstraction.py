"""
Unit tests for the over-approximated transition function.

Tests verify:
1. Exact successors for translations (integrator)
2. Out-of-space handling
3. Refined (flood fill) successors under rotation
4. Growth-bound over-approximation for non-linear plants
"""

import numpy as np
import pytest
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import IntegratorPlant, StateSpacePlant, UnicyclePlant
from controllers import StaticController
from symbolic_control.abstraction import Abstraction
from symbolic_control.quantizer import Quantizer
from symbolic_control.specification import ControlSpecification, SpecificationType
from symbolic_control.transition import OUT_OF_SPACE


def make_integrator_abstraction(refined=False):
    """1-D integrator on [0,4) with unit cells and inputs {-1, 0, 1}."""
    plant = IntegratorPlant(n_states=1, tau=1.0)
    sq = Quantizer([1.0], [0.0], [4.0])
    iq = Quantizer([1.0], [-1.5], [1.5])
    controller = StaticController.constant(sq, iq, [0.0])
    return Abstraction(plant, controller, sq, iq, use_refined_transitions=refined)


def make_rotation_abstraction(refined):
    """Rotation by 0.5 rad on [-4,4)^2 with a single zero input."""
    plant = StateSpacePlant(np.array([[0.0, -1.0], [1.0, 0.0]]), np.zeros((2, 1)), tau=0.5)
    sq = Quantizer([0.5, 0.5], [-4.0, -4.0], [4.0, 4.0])
    iq = Quantizer([1.0], [-0.5], [0.5])
    controller = StaticController.constant(sq, iq, [0.0])
    return Abstraction(plant, controller, sq, iq, use_refined_transitions=refined)


class TestIntegratorTransitions:
    """Translations map cells exactly onto cells."""

    @pytest.mark.parametrize("refined", [False, True])
    def test_shift_left(self, refined):
        abstraction = make_integrator_abstraction(refined)

        assert abstraction.compute_transition_function_for_index(1, [-1.0])

        ends = abstraction.get_transition_of_index(1).get_ends(0)
        assert ends == [0]

    @pytest.mark.parametrize("refined", [False, True])
    def test_zero_input_is_self_loop(self, refined):
        abstraction = make_integrator_abstraction(refined)
        abstraction.compute_transition_function_for_index(2, [0.0])

        assert abstraction.get_transition_of_index(2).get_ends(1) == [2]

    def test_shift_onto_upper_border(self):
        abstraction = make_integrator_abstraction()
        abstraction.compute_transition_function_for_index(2, [1.0])

        transition = abstraction.get_transition_of_index(2)
        assert transition.get_ends(2) == [3]
        np.testing.assert_array_almost_equal(transition.get_lower_bound(2), [3.0])
        np.testing.assert_array_almost_equal(transition.get_upper_bound(2), [4.0])

    def test_input_is_quantized(self):
        abstraction = make_integrator_abstraction()
        abstraction.compute_transition_function_for_index(3, [-0.8])

        transition = abstraction.get_transition_of_index(3)
        assert transition.has_transition_been_calculated(0)
        assert transition.get_ends(0) == [2]


class TestOutOfSpace:
    """Images leaving the space collapse to a single OUT_OF_SPACE successor."""

    @pytest.mark.parametrize("refined", [False, True])
    def test_center_leaves_space(self, refined):
        abstraction = make_integrator_abstraction(refined)
        abstraction.compute_transition_function_for_index(0, [-1.0])

        transition = abstraction.get_transition_of_index(0)
        assert transition.get_ends(0) == [OUT_OF_SPACE]
        assert transition.has_transition_been_calculated(0)

    @pytest.mark.parametrize("refined", [False, True])
    def test_vertex_leaves_space(self, refined):
        """Expanding plant: center image stays inside, upper vertex does not."""
        plant = StateSpacePlant(np.array([[1.0]]), np.zeros((1, 1)), tau=0.1)
        sq = Quantizer([1.0], [0.0], [4.0])
        iq = Quantizer([1.0], [-0.5], [0.5])
        controller = StaticController.constant(sq, iq, [0.0])
        abstraction = Abstraction(plant, controller, sq, iq, use_refined_transitions=refined)

        abstraction.compute_transition_function_for_index(3, [0.0])

        transition = abstraction.get_transition_of_index(3)
        assert sq.is_in_bounds(transition.get_post(0))
        assert transition.get_ends(0) == [OUT_OF_SPACE]


class TestIdempotence:

    def test_second_call_is_cached(self):
        abstraction = make_integrator_abstraction()

        assert abstraction.compute_transition_function_for_index(1, [-1.0])
        ends_before = abstraction.get_transition_of_index(1).get_ends(0)

        assert not abstraction.compute_transition_function_for_index(1, [-1.0])
        assert abstraction.get_transition_of_index(1).get_ends(0) == ends_before
        assert abstraction.amount_of_transitions == 1

    def test_empty_transitions(self):
        abstraction = make_integrator_abstraction()
        abstraction.compute_transition_function_for_index(1, [-1.0])

        abstraction.empty_transitions()

        assert abstraction.amount_of_transitions == 0
        assert abstraction.amount_of_ends == 0
        assert abstraction.compute_transition_function_for_index(1, [-1.0])


class TestInvalidIndex:
    """Negative indices must not wrap around onto the last cell."""

    @pytest.mark.parametrize("index", [-1, 4])
    def test_get_transition_raises(self, index):
        abstraction = make_integrator_abstraction()

        with pytest.raises(IndexError):
            abstraction.get_transition_of_index(index)

    @pytest.mark.parametrize("index", [-1, 4])
    def test_compute_transition_raises(self, index):
        abstraction = make_integrator_abstraction()

        with pytest.raises(IndexError):
            abstraction.compute_transition_function_for_index(index, [0.0])

    def test_store_is_untouched(self):
        abstraction = make_integrator_abstraction()

        with pytest.raises(IndexError):
            abstraction.get_transition_of_index(-1)
        with pytest.raises(IndexError):
            abstraction.compute_transition_function_for_index(-1, [0.0])

        assert abstraction.amount_of_transitions == 0
        last = abstraction.get_transition_of_index(3)
        assert last.start_index == 3
        assert last.processed_inputs == []


class TestRefinedTransitions:
    """Flood fill between evolved faces under a rotation."""

    def test_rotated_cell_is_tighter_than_rectangle(self):
        rect = make_rotation_abstraction(refined=False)
        refined = make_rotation_abstraction(refined=True)
        sq = rect.state_quantizer
        index = sq.index_from_vector([2.25, 0.25])

        rect.compute_transition_function_for_index(index, [0.0])
        refined.compute_transition_function_for_index(index, [0.0])

        rect_ends = set(rect.get_transition_of_index(index).get_ends(0))
        refined_ends = set(refined.get_transition_of_index(index).get_ends(0))

        expected = {sq.index_from_vector(c) for c in
                    ([1.75, 1.25], [2.25, 1.25], [1.75, 1.75], [2.25, 1.75])}
        assert len(rect_ends) == 6
        assert refined_ends == expected
        assert refined_ends < rect_ends

    def test_flood_fill_stays_inside_bounding_box(self):
        rect = make_rotation_abstraction(refined=False)
        refined = make_rotation_abstraction(refined=True)
        sq = refined.state_quantizer

        for index in range(0, sq.cardinality, 7):
            rect.compute_transition_function_for_index(index, [0.0])
            refined.compute_transition_function_for_index(index, [0.0])

            rect_ends = rect.get_transition_of_index(index).get_ends(0)
            refined_ends = refined.get_transition_of_index(index).get_ends(0)
            assert len(refined_ends) > 0
            assert set(refined_ends) <= set(rect_ends)

            if OUT_OF_SPACE in refined_ends:
                continue
            transition = refined.get_transition_of_index(index)
            lo, hi = sq.axis_index_range(transition.get_lower_bound(0), transition.get_upper_bound(0))
            for end in refined_ends:
                axes = sq.axis_indices_from_index(end)
                assert np.all(axes >= lo) and np.all(axes <= hi)

    def test_bounds_enclose_every_evolved_vertex(self):
        abstraction = make_rotation_abstraction(refined=False)
        sq = abstraction.state_quantizer
        plant = abstraction.plant
        index = sq.index_from_vector([1.25, -0.75])

        abstraction.compute_transition_function_for_index(index, [0.0])

        transition = abstraction.get_transition_of_index(index)
        lower, upper = transition.get_lower_bound(0), transition.get_upper_bound(0)
        images = np.array([plant.evaluate_dynamics(v, [0.0]) for v in sq.cell_vertices(index)])
        assert np.all(upper > lower)
        np.testing.assert_array_almost_equal(lower, images.min(axis=0))
        np.testing.assert_array_almost_equal(upper, images.max(axis=0))

    def test_refined_requires_linear_plant(self):
        plant = UnicyclePlant()
        sq = Quantizer([0.5, 0.5, 0.5], [0.0, 0.0, 0.0], [10.0, 10.0, 2 * np.pi])
        iq = Quantizer([0.25], [-1.0], [1.0])
        controller = StaticController.constant(sq, iq, [0.0])

        with pytest.raises(ValueError):
            Abstraction(plant, controller, sq, iq, use_refined_transitions=True)

        abstraction = Abstraction(plant, controller, sq, iq)
        with pytest.raises(ValueError):
            abstraction.set_use_refined_transitions(True)


class TestNonLinearTransitions:

    def test_growth_bound_box(self):
        plant = UnicyclePlant(tau=0.3)
        sq = Quantizer([0.5, 0.5, 0.5], [0.0, 0.0, 0.0], [10.0, 10.0, 2 * np.pi])
        iq = Quantizer([0.25], [-1.0], [1.0])
        controller = StaticController.constant(sq, iq, [0.0])
        abstraction = Abstraction(plant, controller, sq, iq)
        index = sq.index_from_vector([5.25, 5.25, 3.25])

        assert abstraction.compute_transition_function_for_index(index, [0.125])

        transition = abstraction.get_transition_of_index(index)
        input_index = iq.index_from_vector([0.125])
        ends = transition.get_ends(input_index)
        assert len(ends) > 1
        assert OUT_OF_SPACE not in ends

        radius = np.array([0.25 + 0.3 * 0.25, 0.25 + 0.3 * 0.25, 0.25])
        width = transition.get_upper_bound(input_index) - transition.get_lower_bound(input_index)
        np.testing.assert_array_almost_equal(width, 2 * radius)

        center = (transition.get_upper_bound(input_index) + transition.get_lower_bound(input_index)) / 2
        np.testing.assert_array_almost_equal(center, transition.get_post(input_index))
        assert sq.index_from_vector(transition.get_post(input_index)) in ends


class TestAbstractionValidation:

    def test_dimension_mismatch(self):
        plant = IntegratorPlant(n_states=2)
        sq = Quantizer([1.0], [0.0], [4.0])
        iq = Quantizer([1.0], [-1.5], [1.5])

        with pytest.raises(ValueError):
            Abstraction(plant, None, sq, iq)

    def test_specification_defaults_to_controller(self):
        sq = Quantizer([1.0], [0.0], [4.0])
        iq = Quantizer([1.0], [-1.5], [1.5])
        spec = ControlSpecification(SpecificationType.INVARIANCE, [1.0], [3.0])
        controller = StaticController.constant(sq, iq, [0.0], specification=spec)

        abstraction = Abstraction(IntegratorPlant(), controller, sq, iq)

        assert abstraction.specification is spec
