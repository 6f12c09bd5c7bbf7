"""
Control specification: a goal type plus a target hyper-interval.
"""

from enum import Enum
from typing import Optional

import numpy as np

from .vector import as_vector


class SpecificationType(Enum):
    INVARIANCE = 'invariance'
    REACHABILITY = 'reachability'
    REACH_AND_STAY = 'reach_and_stay'


class ControlSpecification:
    """
    Target set [lower_vertex, upper_vertex] with the goal to satisfy on it.

    - INVARIANCE: stay inside the target forever
    - REACHABILITY: eventually enter the target
    - REACH_AND_STAY: eventually enter an invariant part of the target
    """

    def __init__(self, spec_type: SpecificationType, lower_vertex, upper_vertex):
        """
        Args:
            spec_type: Goal type
            lower_vertex: Lower corner of the target interval
            upper_vertex: Upper corner of the target interval
        """
        if not isinstance(spec_type, SpecificationType):
            raise ValueError(f"Unknown specification type: {spec_type!r}")

        self.spec_type = spec_type
        self.lower_vertex = as_vector(lower_vertex)
        self.upper_vertex = as_vector(upper_vertex, self.lower_vertex.shape[0])

        if np.any(self.lower_vertex > self.upper_vertex):
            raise ValueError(
                f"Malformed specification interval: lower {self.lower_vertex} exceeds upper {self.upper_vertex}"
            )

        self.center = (self.upper_vertex - self.lower_vertex) / 2.0 + self.lower_vertex

    @property
    def dimension(self) -> int:
        return self.lower_vertex.shape[0]

    def is_in_specification_set(self, state) -> bool:
        """Axis-wise closed interval containment."""
        x = np.asarray(state, dtype=float)
        return bool(np.all(x >= self.lower_vertex) and np.all(x <= self.upper_vertex))

    def random_vector(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Uniform random vector from the target interval."""
        if rng is None:
            rng = np.random.default_rng()
        return rng.uniform(self.lower_vertex, self.upper_vertex)

    def __repr__(self) -> str:
        return (f"ControlSpecification({self.spec_type.value}, "
                f"lower={self.lower_vertex.tolist()}, upper={self.upper_vertex.tolist()})")
