"""
Verifier Module - Winning set of a fixed closed-loop policy.

Pipeline:
1. compute_transitions: materialize the transition of every state cell
   under the input the policy picks for it. The index range is split in
   contiguous partitions processed by a thread pool; partitions own
   disjoint cells so they need no synchronization beyond the final join.
2. compute_winning_set: fixed-point iteration over a boolean array.

    Invariance:      W₀ = Spec,  remove x if Post(x, π(x)) ⊄ W
    Reachability:    W₀ = Spec,  add x if ∅ ≠ Post(x, π(x)) ⊆ W
    Reach-and-stay:  invariance pass, then reachability pass on its result

Scans update the array in place while sweeping forward, so a cell
evaluated later in a scan already sees the changes made earlier in that
same scan.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from tqdm.auto import tqdm

from .abstraction import Abstraction
from .quantizer import OUT_OF_RANGE
from .specification import SpecificationType
from .transition import OUT_OF_SPACE


class VerifierPhase(Enum):
    IDLE = 'idle'
    COMPUTING_TRANSITIONS = 'computing_transitions'
    COMPUTING_WINNING_SET = 'computing_winning_set'
    CONVERGED = 'converged'


def perform_single_fixed_point_operation(winning_set: np.ndarray, ends_per_index: List[list],
                                         spec_type: SpecificationType) -> bool:
    """
    One in-place forward scan of the fixed-point operator.

    Args:
        winning_set: Boolean array, updated in place
        ends_per_index: Successors of every state cell under its policy input
        spec_type: INVARIANCE (shrinking) or REACHABILITY (growing)

    Returns:
        True if any cell changed membership
    """
    has_set_changed = False

    for index, ends in enumerate(ends_per_index):
        if spec_type is SpecificationType.INVARIANCE and not winning_set[index]:
            continue
        if spec_type is SpecificationType.REACHABILITY and winning_set[index]:
            continue

        all_ends_in_winning_set = len(ends) > 0
        for end in ends:
            if end is OUT_OF_SPACE or not winning_set[end]:
                all_ends_in_winning_set = False
                break

        if spec_type is SpecificationType.INVARIANCE and not all_ends_in_winning_set:
            winning_set[index] = False
            has_set_changed = True
        elif spec_type is SpecificationType.REACHABILITY and all_ends_in_winning_set:
            winning_set[index] = True
            has_set_changed = True

    return has_set_changed


class Verifier:
    """
    Checks which cells a fixed policy drives to satisfy the specification.

    Usage:
        verifier = Verifier(abstraction)
        verifier.compute_transitions()
        verifier.compute_winning_set()
        verifier.winning_set_percentage
    """

    # ASCII maps are only printed for grids at most this wide
    MAX_MAP_WIDTH = 80

    def __init__(self, abstraction: Abstraction, n_workers: Optional[int] = None,
                 verbose: bool = True, seed: Optional[int] = None):
        """
        Args:
            abstraction: Abstraction with plant, policy, quantizers and specification
            n_workers: Number of partitions / worker threads (default: CPU count)
            verbose: Print progress
            seed: Seed for the losing-domain samplers
        """
        if abstraction.specification is None:
            raise ValueError("Abstraction has no control specification to verify")

        self.abstraction = abstraction
        self.n_workers = max(1, n_workers or os.cpu_count() or 1)
        self.verbose = verbose
        self.rng = np.random.default_rng(seed)

        self.phase = VerifierPhase.IDLE

        cardinality = abstraction.state_quantizer.cardinality
        self._winning_set = np.zeros(cardinality, dtype=bool)
        self._losing_indices: List[int] = []
        self._losing_neighbor_indices: List[int] = []

        self.iterations = 0
        self.scan_history: List[int] = []
        self.winning_set_percentage = 0.0

        self._transitions_in_full_abstraction = cardinality * abstraction.input_quantizer.cardinality

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def partitions(self) -> List[Tuple[int, int]]:
        """Contiguous [start, end) slices of the state index range, one per worker."""
        cardinality = self.abstraction.state_quantizer.cardinality
        count = min(self.n_workers, cardinality)
        partition_size = cardinality // count

        slices = []
        for i in range(count):
            start = i * partition_size
            end = (i + 1) * partition_size if i != count - 1 else cardinality
            slices.append((start, end))
        return slices

    def compute_transitions(self) -> int:
        """
        Materialize the transition of every state cell under its policy input.

        Returns:
            Number of transitions newly computed in this call
        """
        self.phase = VerifierPhase.COMPUTING_TRANSITIONS

        if not self.abstraction.save_transitions:
            self.abstraction.empty_transitions()

        slices = self.partitions()
        cardinality = self.abstraction.state_quantizer.cardinality

        if self.verbose:
            print(f"Computing transitions for {cardinality} cells in {len(slices)} partitions...")

        with tqdm(total=cardinality, desc="Transitions", disable=not self.verbose) as progress:
            with ThreadPoolExecutor(max_workers=len(slices)) as executor:
                futures = [
                    executor.submit(self._compute_subset_of_transitions, start, end, progress)
                    for start, end in slices
                ]
                computed = sum(future.result() for future in futures)

        if self.verbose:
            print(f"Done. New transitions: {computed} | "
                  f"completeness: {100 * self.get_abstraction_completeness():.2f}%")

        return computed

    def _compute_subset_of_transitions(self, start: int, end: int, progress=None) -> int:
        """Worker body: one contiguous partition of state cells."""
        controller = self.abstraction.controller
        computed = 0
        step = max(1, (end - start) // 100)

        for index in range(start, end):
            u = controller.control_action_from_index(index)
            if self.abstraction.compute_transition_function_for_index(index, u):
                computed += 1

            if progress is not None and (index - start + 1) % step == 0:
                progress.update(step)

        if progress is not None:
            progress.update((end - start) % step)

        return computed

    # ------------------------------------------------------------------
    # Winning set
    # ------------------------------------------------------------------

    def _policy_ends(self) -> List[list]:
        """Successors of every cell under the input the policy picks for it."""
        abstraction = self.abstraction
        input_quantizer = abstraction.input_quantizer

        ends_per_index = []
        for index in range(abstraction.state_quantizer.cardinality):
            u = input_quantizer.quantize_vector(abstraction.controller.control_action_from_index(index))
            input_index = input_quantizer.index_from_vector(u)
            ends_per_index.append(abstraction.get_transition_of_index(index).get_ends(input_index))
        return ends_per_index

    def _initial_winning_set(self) -> np.ndarray:
        specification = self.abstraction.specification
        centers = self.abstraction.state_quantizer.cell_centers()
        return np.array([specification.is_in_specification_set(c) for c in centers], dtype=bool)

    def _run_fixed_point(self, ends_per_index: List[list], spec_type: SpecificationType) -> None:
        has_iteration_converged = False
        while not has_iteration_converged:
            self.iterations += 1
            has_set_changed = perform_single_fixed_point_operation(self._winning_set, ends_per_index, spec_type)
            size = int(np.count_nonzero(self._winning_set))
            self.scan_history.append(size)

            if self.verbose:
                print(f"  {spec_type.value} i: {self.iterations} | winning cells: {size}")

            has_iteration_converged = not has_set_changed

    def compute_winning_set(self) -> np.ndarray:
        """
        Rebuild the winning set from the specification and iterate to a fixed point.

        Returns:
            Copy of the converged winning set
        """
        self.phase = VerifierPhase.COMPUTING_WINNING_SET
        spec_type = self.abstraction.specification.spec_type

        if self.verbose:
            print("=" * 50)
            print(f"FIXED POINT ({spec_type.value.upper()})")
            print("=" * 50)

        self._winning_set = self._initial_winning_set()
        self.iterations = 0
        self.scan_history = []

        if self.verbose:
            print(f"W₀: {self.get_winning_set_size()} cells")
            self._print_map()

        ends_per_index = self._policy_ends()

        if spec_type is SpecificationType.INVARIANCE:
            self._run_fixed_point(ends_per_index, SpecificationType.INVARIANCE)
        elif spec_type is SpecificationType.REACHABILITY:
            self._run_fixed_point(ends_per_index, SpecificationType.REACHABILITY)
        else:
            self._run_fixed_point(ends_per_index, SpecificationType.INVARIANCE)
            self._run_fixed_point(ends_per_index, SpecificationType.REACHABILITY)

        self._determine_losing_set()

        cardinality = self.abstraction.state_quantizer.cardinality
        self.winning_set_percentage = 100.0 * self.get_winning_set_size() / cardinality
        self.phase = VerifierPhase.CONVERGED

        if self.verbose:
            self._print_map()
            print(f"Converged after {self.iterations} scans! "
                  f"Winning set = {self.get_winning_set_size()} cells ({self.winning_set_percentage:.1f}%)")
            print("=" * 50)

        return self.winning_set

    def verify(self) -> float:
        """Compute transitions and the winning set; returns the winning percentage."""
        self.compute_transitions()
        self.compute_winning_set()
        return self.winning_set_percentage

    def _determine_losing_set(self) -> None:
        """Collect losing cells and the winning cells bordering them."""
        quantizer = self.abstraction.state_quantizer
        self._losing_indices = []
        self._losing_neighbor_indices = []

        for index in np.flatnonzero(~self._winning_set):
            index = int(index)
            self._losing_indices.append(index)

            for dim in range(quantizer.dimension):
                for step in (-1, 1):
                    neighbor = quantizer.neighbor_index(index, dim, step)
                    if neighbor != OUT_OF_RANGE and self._winning_set[neighbor]:
                        self._losing_neighbor_indices.append(neighbor)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def winning_set(self) -> np.ndarray:
        return self._winning_set.copy()

    @property
    def losing_indices(self) -> List[int]:
        return list(self._losing_indices)

    @property
    def losing_neighbor_indices(self) -> List[int]:
        return list(self._losing_neighbor_indices)

    def is_index_in_winning_set(self, index: int) -> bool:
        """Membership test; invalid indices are never winning."""
        if index is None or index < 0 or index >= self._winning_set.shape[0]:
            return False
        return bool(self._winning_set[index])

    def get_winning_set_size(self) -> int:
        return int(np.count_nonzero(self._winning_set))

    def get_abstraction_completeness(self) -> float:
        """Fraction of all (state, input) pairs whose transition has been computed."""
        return self.abstraction.amount_of_transitions / self._transitions_in_full_abstraction

    def get_vector_from_losing_domain(self) -> np.ndarray:
        """Center of a random losing cell (uniform random vector if none)."""
        return self._sample_from(self._losing_indices)

    def get_vector_from_losing_neighbor_domain(self) -> np.ndarray:
        """Center of a random winning cell that borders the losing domain (uniform random vector if none)."""
        return self._sample_from(self._losing_neighbor_indices)

    def _sample_from(self, indices: List[int]) -> np.ndarray:
        quantizer = self.abstraction.state_quantizer
        if not indices:
            return quantizer.random_vector(self.rng)
        return quantizer.vector_from_index(indices[int(self.rng.integers(len(indices)))])

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def winning_set_map(self) -> Optional[str]:
        """ASCII map of a 2-D winning set ('X' winning, '.' losing), top row = highest x2."""
        quantizer = self.abstraction.state_quantizer
        if quantizer.dimension != 2:
            return None

        width, height = (int(n) for n in quantizer.cardinality_per_axis)
        grid = self._winning_set.reshape(height, width)
        rows = [''.join('X' if w else '.' for w in row) for row in grid[::-1]]
        return '\n'.join(rows)

    def _print_map(self) -> None:
        quantizer = self.abstraction.state_quantizer
        if quantizer.dimension != 2 or quantizer.cardinality_per_axis[0] > self.MAX_MAP_WIDTH:
            return
        print(self.winning_set_map())
