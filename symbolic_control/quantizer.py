"""
Quantizer Module - Uniform grid over a bounded hyper-rectangle.

Maps continuous vectors to cell indices and back. Cells are half-open
boxes [lo, lo + eta) and are identified by a mixed-radix index in which
axis 0 varies fastest:

    index = sum_k axis_index[k] * prod(cardinality_per_axis[0..k-1])

The same class quantizes both the state space and the input space.
"""

from typing import Optional, Tuple, Union

import numpy as np

from .vector import as_vector

# Returned by index lookups for vectors or axis tuples outside the grid
OUT_OF_RANGE = -1

_CARDINALITY_TOLERANCE = 1e-9


class Quantizer:
    """
    Bijection between a bounded region and a finite lattice of cells.

    Attributes:
        eta: Cell width per axis
        lower_bound: Lower corner of the quantized region
        upper_bound: Effective upper corner (lower_bound + cardinality_per_axis * eta)
        cardinality_per_axis: Number of cells along each axis
        cardinality: Total number of cells
    """

    def __init__(self, eta, lower_bound, upper_bound):
        """
        Args:
            eta: Cell width per axis (scalar or sequence)
            lower_bound: Lower corner of the region
            upper_bound: Upper corner of the region
        """
        lower = as_vector(lower_bound)
        upper = as_vector(upper_bound, lower.shape[0])
        eta = np.array(eta, dtype=float).reshape(-1)
        if eta.shape[0] == 1 and lower.shape[0] > 1:
            eta = np.full(lower.shape[0], eta[0])
        if eta.shape[0] != lower.shape[0]:
            raise ValueError(f"eta must have {lower.shape[0]} elements, got {eta.shape[0]}")
        if lower.shape[0] == 0:
            raise ValueError("Quantized space must have at least one dimension")
        if np.any(eta <= 0):
            raise ValueError(f"eta must be strictly positive, got {eta}")
        if np.any(upper <= lower):
            raise ValueError(f"Upper bound {upper} must exceed lower bound {lower} on every axis")

        self.dimension = lower.shape[0]
        self.eta = eta
        self.lower_bound = lower

        self.cardinality_per_axis = np.array([
            int(np.ceil((upper[k] - lower[k]) / eta[k] - _CARDINALITY_TOLERANCE))
            for k in range(self.dimension)
        ], dtype=np.int64)
        self.upper_bound = lower + self.cardinality_per_axis * eta
        self.cardinality = int(np.prod(self.cardinality_per_axis))

        # Mixed-radix place values, axis 0 fastest
        self._strides = np.concatenate(([1], np.cumprod(self.cardinality_per_axis[:-1]))).astype(np.int64)

        # Vertex j sits at +eta/2 on axis k iff bit k of j is set
        self.amount_of_vertices = 2 ** self.dimension
        self._vertex_signs = np.array([
            [1.0 if (j >> k) & 1 else -1.0 for k in range(self.dimension)]
            for j in range(self.amount_of_vertices)
        ])

    @property
    def vertex_signs(self) -> np.ndarray:
        """Sign pattern (2^d x d) used to place the cell vertices around the center."""
        return self._vertex_signs.copy()

    def is_in_bounds(self, vector) -> bool:
        """Check whether a vector lies in [lower_bound, upper_bound)."""
        v = np.asarray(vector, dtype=float)
        return bool(np.all(v >= self.lower_bound) and np.all(v < self.upper_bound))

    def is_box_in_bounds(self, lower, upper) -> bool:
        """Check whether the closed box [lower, upper] is contained in the quantized region."""
        return bool(np.all(np.asarray(lower) >= self.lower_bound) and
                    np.all(np.asarray(upper) <= self.upper_bound))

    def quantize_vector(self, vector) -> np.ndarray:
        """Clamp a vector into the region and snap it to the center of its cell."""
        v = as_vector(vector, self.dimension)
        axis_indices = np.floor((v - self.lower_bound) / self.eta)
        axis_indices = np.clip(axis_indices, 0, self.cardinality_per_axis - 1)
        return self.lower_bound + (axis_indices + 0.5) * self.eta

    def axis_indices_from_vector(self, vector) -> Optional[np.ndarray]:
        """Per-axis cell indices of a vector, or None if it lies outside the region."""
        v = np.asarray(vector, dtype=float)
        if not self.is_in_bounds(v):
            return None
        axis_indices = np.floor((v - self.lower_bound) / self.eta).astype(np.int64)
        # Guard against rounding up onto the excluded upper edge
        return np.minimum(axis_indices, self.cardinality_per_axis - 1)

    def axis_indices_from_index(self, index: int) -> np.ndarray:
        """Decompose a cell index into its per-axis indices."""
        self.check_index(index)
        return (int(index) // self._strides) % self.cardinality_per_axis

    def index_from_axis_indices(self, axis_indices) -> int:
        """Compose per-axis indices into a cell index (OUT_OF_RANGE if any axis is outside the grid)."""
        axes = np.asarray(axis_indices, dtype=np.int64)
        if np.any(axes < 0) or np.any(axes >= self.cardinality_per_axis):
            return OUT_OF_RANGE
        return int(np.dot(axes, self._strides))

    def index_from_vector(self, vector) -> int:
        """Cell index containing the vector, or OUT_OF_RANGE."""
        axis_indices = self.axis_indices_from_vector(vector)
        if axis_indices is None:
            return OUT_OF_RANGE
        return int(np.dot(axis_indices, self._strides))

    def vector_from_index(self, index: int) -> np.ndarray:
        """Center of the cell with the given index."""
        axis_indices = self.axis_indices_from_index(index)
        return self.lower_bound + (axis_indices + 0.5) * self.eta

    def neighbor_index(self, index: int, axis: int, step: int) -> int:
        """Index of the cell `step` cells away along `axis` (OUT_OF_RANGE past the border)."""
        axis_indices = self.axis_indices_from_index(index).copy()
        axis_indices[axis] += step
        return self.index_from_axis_indices(axis_indices)

    def axis_index_range(self, lower, upper) -> Tuple[np.ndarray, np.ndarray]:
        """
        Inclusive per-axis index range of the cells touched by the box [lower, upper].

        An upper bound lying exactly on a grid line does not pull in the next
        cell, matching the half-open cell convention. Indices are clipped to
        the grid.
        """
        lo = np.floor((np.asarray(lower, dtype=float) - self.lower_bound) / self.eta).astype(np.int64)
        hi = np.ceil((np.asarray(upper, dtype=float) - self.lower_bound) / self.eta).astype(np.int64) - 1
        hi = np.maximum(hi, lo)
        top = self.cardinality_per_axis - 1
        return np.clip(lo, 0, top), np.clip(hi, 0, top)

    def cell_vertices(self, cell: Union[int, np.ndarray]) -> np.ndarray:
        """
        Corner points of a cell, given by index or by any vector inside it.

        Returns:
            Array of shape (2^d, d); the ordering is identical for every cell.
        """
        if isinstance(cell, (int, np.integer)):
            center = self.vector_from_index(int(cell))
        else:
            center = self.quantize_vector(cell)
        return center + self._vertex_signs * (self.eta / 2.0)

    def cell_centers(self) -> np.ndarray:
        """Centers of all cells, ordered by index (shape: cardinality x d)."""
        indices = np.arange(self.cardinality, dtype=np.int64)
        axis_indices = (indices[:, None] // self._strides[None, :]) % self.cardinality_per_axis[None, :]
        return self.lower_bound + (axis_indices + 0.5) * self.eta

    def random_vector(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Uniform random vector inside the quantized region."""
        if rng is None:
            rng = np.random.default_rng()
        return rng.uniform(self.lower_bound, self.upper_bound)

    def check_index(self, index: int) -> None:
        """Raise IndexError unless 0 <= index < cardinality."""
        if index < 0 or index >= self.cardinality:
            raise IndexError(f"Cell index {index} outside [0, {self.cardinality})")

    def __repr__(self) -> str:
        return (f"Quantizer(eta={self.eta.tolist()}, lower={self.lower_bound.tolist()}, "
                f"upper={self.upper_bound.tolist()}, cardinality={self.cardinality})")
