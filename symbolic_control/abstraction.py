"""
Abstraction Module - Over-approximated transitions of a closed-loop system.

For every (state cell, input cell) pair the Abstraction computes the set
of cells the evolved cell may land in:

    1. Evolve the cell center; if it leaves the space the transition is
       OUT_OF_SPACE.
    2. Over-approximate the evolved cell by its 2^d evolved vertices
       (linear plants) or by the center image inflated with the plant's
       radial growth bound (non-linear plants).
    3. If any evolved vertex leaves the space the transition is OUT_OF_SPACE.
    4. Enumerate the successor cells, either every cell of the bounding
       box or, in refined mode, a flood fill bounded by the evolved faces.

The module is MODEL-AGNOSTIC: it only talks to the plant through
evaluate_dynamics() and evaluate_radial_growth_bound().
"""

from collections import deque
from itertools import product
from typing import List, Optional, Tuple

import numpy as np

from .hyperplane import Hyperplane
from .quantizer import OUT_OF_RANGE, Quantizer
from .specification import ControlSpecification
from .transition import OUT_OF_SPACE, Transition


class Abstraction:
    """
    Finite transition system over-approximating a plant under a fixed policy.

    Transitions live in an arena indexed by state cell and are created
    lazily. Workers that materialize disjoint index ranges never touch the
    same Transition, so no locking is needed.
    """

    def __init__(self, plant, controller, state_quantizer: Quantizer, input_quantizer: Quantizer,
                 specification: Optional[ControlSpecification] = None,
                 use_refined_transitions: bool = False,
                 save_transitions: bool = True):
        """
        Args:
            plant: Plant providing evaluate_dynamics() and, if non-linear,
                   evaluate_radial_growth_bound()
            controller: Policy providing control_action_from_index()
            state_quantizer: Grid over the state space
            input_quantizer: Grid over the input space
            specification: Goal to verify (default: the controller's specification)
            use_refined_transitions: Flood fill between evolved faces instead of
                                     filling the bounding box (linear plants only)
            save_transitions: Keep transitions between verification passes
        """
        if plant.n_states != state_quantizer.dimension:
            raise ValueError(
                f"Plant has {plant.n_states} states but the state quantizer has dimension {state_quantizer.dimension}"
            )
        if plant.n_inputs != input_quantizer.dimension:
            raise ValueError(
                f"Plant has {plant.n_inputs} inputs but the input quantizer has dimension {input_quantizer.dimension}"
            )

        self.plant = plant
        self.controller = controller
        self.state_quantizer = state_quantizer
        self.input_quantizer = input_quantizer

        if specification is None and controller is not None:
            specification = getattr(controller, 'specification', None)
        if specification is not None and specification.dimension != state_quantizer.dimension:
            raise ValueError(
                f"Specification has dimension {specification.dimension}, state space has {state_quantizer.dimension}"
            )
        self.specification = specification

        self.use_refined_transitions = False
        self.set_use_refined_transitions(use_refined_transitions)
        self.save_transitions = save_transitions

        self._amount_of_vertices_per_cell = state_quantizer.amount_of_vertices
        self._vertices_on_hyperplane_distribution: List[List[int]] = []
        self._normals_of_hyperplane: List[np.ndarray] = []
        self._radial_growth_distribution: Optional[np.ndarray] = None
        self._calculate_vertices_on_hyperplane_distribution()

        self._transitions: List[Optional[Transition]] = [None] * state_quantizer.cardinality

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_use_refined_transitions(self, use: bool = False) -> None:
        """Enable the hyperplane flood fill; only sound for linear plants."""
        if use and not self.plant.is_linear:
            raise ValueError(
                f"Refined transitions require a linear plant; {getattr(self.plant, 'name', self.plant)} is not linear"
            )
        self.use_refined_transitions = bool(use)

    def set_save_transitions(self, save: bool = True) -> None:
        self.save_transitions = bool(save)

    # ------------------------------------------------------------------
    # Transition store
    # ------------------------------------------------------------------

    def get_transition_of_index(self, index: int) -> Transition:
        """Transition starting at a state cell (created on first access)."""
        self.state_quantizer.check_index(index)
        transition = self._transitions[index]
        if transition is None:
            transition = Transition(index, self.input_quantizer.cardinality)
            self._transitions[index] = transition
        return transition

    @property
    def amount_of_transitions(self) -> int:
        """Number of (state, input) pairs computed so far."""
        return sum(len(t.processed_inputs) for t in self._transitions if t is not None)

    @property
    def amount_of_ends(self) -> int:
        return sum(t.amount_of_ends() for t in self._transitions if t is not None)

    def empty_transitions(self) -> None:
        """Discard every stored transition."""
        self._transitions = [None] * self.state_quantizer.cardinality

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    def compute_transition_function_for_index(self, index: int, u) -> bool:
        """
        Compute the successors of a state cell under an input.

        Args:
            index: State cell index
            u: Input vector (quantized with the input quantizer)

        Returns:
            True if the transition was computed, False if it was cached
        """
        self.state_quantizer.check_index(index)
        u = self.input_quantizer.quantize_vector(u)
        input_index = self.input_quantizer.index_from_vector(u)

        transition = self.get_transition_of_index(index)
        if transition.has_transition_been_calculated(input_index):
            return False

        state = self.state_quantizer.vector_from_index(index)
        post = self.plant.evaluate_dynamics(state, u)
        transition.set_post(post, input_index)

        if not self.state_quantizer.is_in_bounds(post):
            self._mark_out_of_space(transition, input_index)
            return True

        vertices, hyperplanes = self._over_approximate_evolution(index, post, u)

        lower = vertices.min(axis=0)
        upper = vertices.max(axis=0)
        if not self.state_quantizer.is_box_in_bounds(lower, upper):
            self._mark_out_of_space(transition, input_index)
            return True

        self._compute_transition_bounds(transition, vertices, input_index)

        if self.use_refined_transitions:
            center = vertices.mean(axis=0)
            self._floodfill_between_hyperplanes(transition, center, hyperplanes, input_index)
        else:
            self._fill_hyper_rectangle_between_bounds(transition, input_index)

        transition.set_input_processed(input_index)
        return True

    def _mark_out_of_space(self, transition: Transition, input_index: int) -> None:
        transition.add_end(OUT_OF_SPACE, input_index)
        transition.set_input_processed(input_index)

    def _over_approximate_evolution(self, index: int, post: np.ndarray,
                                    u: np.ndarray) -> Tuple[np.ndarray, List[Hyperplane]]:
        """
        Evolved vertices of a cell and, in refined mode, the evolved faces.

        Linear plants evolve every vertex; the hyperplanes share the vertex
        array so they follow the evolution. Non-linear plants inflate the
        center image by the radial growth bound at half the cell width.
        """
        hyperplanes: List[Hyperplane] = []

        if self.plant.is_linear:
            cell_center = self.state_quantizer.vector_from_index(index)
            vertices = self.state_quantizer.cell_vertices(index)

            if self.use_refined_transitions:
                hyperplanes = self._hyperplanes_between_vertices(vertices, cell_center)

            for i in range(self._amount_of_vertices_per_cell):
                vertices[i] = self.plant.evaluate_dynamics(vertices[i], u)

            for plane in hyperplanes:
                plane.over_approximate_normal(self.plant, u)
        else:
            growth = self.plant.evaluate_radial_growth_bound(self.state_quantizer.eta / 2.0, u)
            vertices = post + self._radial_growth_distribution * np.abs(growth)

        return vertices, hyperplanes

    def _hyperplanes_between_vertices(self, vertices: np.ndarray, cell_center: np.ndarray) -> List[Hyperplane]:
        """One hyperplane per face, using the precomputed vertex distribution."""
        hyperplanes = []
        for on_plane, normal in zip(self._vertices_on_hyperplane_distribution, self._normals_of_hyperplane):
            plane = Hyperplane(self.state_quantizer.dimension, vertices, on_plane)
            plane.set_normal(normal, cell_center)
            hyperplanes.append(plane)
        return hyperplanes

    def _compute_transition_bounds(self, transition: Transition, vertices: np.ndarray, input_index: int) -> None:
        """Attach the tight axis-aligned box of the evolved vertices."""
        transition.set_lower_and_upper_bound(vertices.min(axis=0), vertices.max(axis=0), input_index)

    def _floodfill_between_hyperplanes(self, transition: Transition, center: np.ndarray,
                                       planes: List[Hyperplane], input_index: int) -> None:
        """
        Breadth-first fill from the cell holding the evolved center.

        A cell is accepted if one of its vertices lies strictly inside every
        plane (the seed cell is always accepted); only accepted cells expand.
        Expansion never leaves the bounding box of the evolved vertices.
        """
        quantizer = self.state_quantizer
        lo_axes, hi_axes = quantizer.axis_index_range(
            transition.get_lower_bound(input_index), transition.get_upper_bound(input_index)
        )

        center_index = quantizer.index_from_vector(center)
        if center_index == OUT_OF_RANGE:
            # Degenerate image on the upper border of the space
            self._fill_hyper_rectangle_between_bounds(transition, input_index)
            return

        queue = deque([center_index])
        visited = {center_index}

        while queue:
            current = queue.popleft()

            is_between_planes = any(
                self._is_point_between_hyperplanes(vertex, planes)
                for vertex in quantizer.cell_vertices(current)
            )
            if not (is_between_planes or current == center_index):
                continue

            transition.add_end(current, input_index)

            axes = quantizer.axis_indices_from_index(current)
            for dim in range(quantizer.dimension):
                for step in (-1, 1):
                    neighbor_axis = axes[dim] + step
                    if neighbor_axis < lo_axes[dim] or neighbor_axis > hi_axes[dim]:
                        continue
                    neighbor_axes = axes.copy()
                    neighbor_axes[dim] = neighbor_axis
                    neighbor = quantizer.index_from_axis_indices(neighbor_axes)
                    if neighbor == OUT_OF_RANGE or neighbor in visited:
                        continue
                    visited.add(neighbor)
                    queue.append(neighbor)

    def _fill_hyper_rectangle_between_bounds(self, transition: Transition, input_index: int) -> None:
        """Add every cell whose axis indices lie inside the transition's bounding box."""
        lo_axes, hi_axes = self.state_quantizer.axis_index_range(
            transition.get_lower_bound(input_index), transition.get_upper_bound(input_index)
        )
        ranges = [range(int(lo), int(hi) + 1) for lo, hi in zip(lo_axes, hi_axes)]
        for axes in product(*ranges):
            transition.add_end(self.state_quantizer.index_from_axis_indices(axes), input_index)

    @staticmethod
    def _is_point_between_hyperplanes(point: np.ndarray, planes: List[Hyperplane]) -> bool:
        return all(plane.is_point_on_internal_side(point) for plane in planes)

    def _calculate_vertices_on_hyperplane_distribution(self) -> None:
        """
        Assign vertices to faces once, from the canonical vertex ordering.

        For each axis and each side, the face holds the vertices lying beyond
        the center on that side; its normal points back into the cell. The
        sign of every vertex offset is kept as the radial growth direction.
        """
        cell_center = self.state_quantizer.vector_from_index(0)
        vertices = self.state_quantizer.cell_vertices(0)
        dimension = self.state_quantizer.dimension

        for dim in range(dimension):
            for side in (-1.0, 1.0):
                on_plane = [
                    i for i in range(self._amount_of_vertices_per_cell)
                    if vertices[i, dim] * side > cell_center[dim] * side
                ]
                normal = np.zeros(dimension)
                normal[dim] = -side

                self._vertices_on_hyperplane_distribution.append(on_plane)
                self._normals_of_hyperplane.append(normal)

        self._radial_growth_distribution = np.sign(vertices - cell_center)
