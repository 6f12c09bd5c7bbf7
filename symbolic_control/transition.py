"""
Transition Module - Successor storage for a single state cell.

A Transition holds, per input index, the successor cells of its start
cell together with the absolute post and the bounding box of the
over-approximated image. Each (state, input) pair is computed at most
once; `set_input_processed` marks it as done.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np


class OutOfSpace(Enum):
    """Successor marker for images that leave the quantized state space."""
    OUT_OF_SPACE = 'out_of_space'


OUT_OF_SPACE = OutOfSpace.OUT_OF_SPACE

# A successor is either a cell index or OUT_OF_SPACE
Successor = Union[int, OutOfSpace]


class Transition:
    """
    Successor sets of one state cell, keyed by input index.

    Ends are not deduplicated on insertion; only membership matters downstream.
    """

    def __init__(self, start_index: int, input_cardinality: int):
        """
        Args:
            start_index: Index of the state cell this transition starts from
            input_cardinality: Number of input cells
        """
        self.start_index = start_index
        self.input_cardinality = input_cardinality

        self._ends: Dict[int, List[Successor]] = {}
        self._processed_inputs: List[int] = []
        self._post: Dict[int, np.ndarray] = {}
        self._lower_bounds: Dict[int, np.ndarray] = {}
        self._upper_bounds: Dict[int, np.ndarray] = {}

    def _check_input(self, input_index: int) -> None:
        if input_index < 0 or input_index >= self.input_cardinality:
            raise IndexError(f"Input index {input_index} outside [0, {self.input_cardinality})")

    def add_end(self, end: Successor, input_index: int) -> None:
        """Append a successor without checking for duplicates."""
        self._check_input(input_index)
        self._ends.setdefault(input_index, []).append(end)

    def contains(self, end: Successor, input_index: int) -> bool:
        return end in self._ends.get(input_index, ())

    def has_transition_been_calculated(self, input_index: int) -> bool:
        return input_index in self._processed_inputs

    def get_ends(self, input_index: int) -> List[Successor]:
        """Successors for an input (empty list if never computed)."""
        return list(self._ends.get(input_index, ()))

    @property
    def processed_inputs(self) -> List[int]:
        return list(self._processed_inputs)

    def amount_of_ends(self, input_index: Optional[int] = None) -> int:
        """Number of stored ends for one input, or over all inputs."""
        if input_index is not None:
            return len(self._ends.get(input_index, ()))
        return sum(len(ends) for ends in self._ends.values())

    def get_post(self, input_index: int) -> Optional[np.ndarray]:
        return self._post.get(input_index)

    def get_lower_bound(self, input_index: int) -> Optional[np.ndarray]:
        return self._lower_bounds.get(input_index)

    def get_upper_bound(self, input_index: int) -> Optional[np.ndarray]:
        return self._upper_bounds.get(input_index)

    def set_input_processed(self, input_index: int) -> None:
        self._check_input(input_index)
        if input_index not in self._processed_inputs:
            self._processed_inputs.append(input_index)

    def set_post(self, post: np.ndarray, input_index: int) -> None:
        self._check_input(input_index)
        self._post[input_index] = np.array(post, dtype=float)

    def set_lower_and_upper_bound(self, lower: np.ndarray, upper: np.ndarray, input_index: int) -> None:
        self._check_input(input_index)
        self._lower_bounds[input_index] = np.array(lower, dtype=float)
        self._upper_bounds[input_index] = np.array(upper, dtype=float)

    def __repr__(self) -> str:
        return f"Transition(start={self.start_index}, inputs={self._processed_inputs})"
