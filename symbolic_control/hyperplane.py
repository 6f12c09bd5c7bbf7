"""
Hyperplane Module - Bounded affine boundary of an evolved cell.

A hyperplane is defined by the vertices of one face of a cell. The
points are read from a vertex array shared with the Abstraction, so
when the vertices are evolved in place the plane moves with them. The
normal is tracked separately through two probe points (face centroid
and cell center) which are evolved with the plant's dynamics.
"""

from typing import Sequence

import numpy as np

from .vector import dot, normalize


class Hyperplane:
    """
    Face of a (possibly evolved) cell with an inward pointing normal.

    Attributes:
        dimension: Dimension of the surrounding space
        normal: Unit normal pointing towards the interior
        normal_points: [face centroid, cell center] probe points
    """

    def __init__(self, dimension: int, vertices: np.ndarray, vertex_indices: Sequence[int]):
        """
        Args:
            dimension: Dimension of the space
            vertices: Shared (2^d x d) vertex array
            vertex_indices: Rows of `vertices` that lie on this face
        """
        self.dimension = dimension
        self._vertices = vertices
        self._vertex_indices = list(vertex_indices)

        self.normal = np.zeros(dimension)
        self.normal_points = [np.zeros(dimension), np.zeros(dimension)]

    @property
    def points(self) -> np.ndarray:
        """Current defining points of the face."""
        return self._vertices[self._vertex_indices]

    def set_normal(self, normal, cell_center) -> None:
        """
        Orient the plane and record its probe points.

        Args:
            normal: Normal direction pointing into the cell
            cell_center: Center of the cell the face belongs to
        """
        if not self._vertex_indices:
            raise ValueError("Hyperplane has no defining points")

        self.normal = normalize(np.asarray(normal, dtype=float))
        self.normal_points = [
            self.points.mean(axis=0),
            np.array(cell_center, dtype=float),
        ]

    def over_approximate_normal(self, plant, u: np.ndarray) -> None:
        """
        Evolve both probe points one step and redefine the normal as their
        normalized difference (face centroid towards cell center).
        """
        self.normal_points = [plant.evaluate_dynamics(p, u) for p in self.normal_points]
        self.normal = normalize(self.normal_points[1] - self.normal_points[0])

    def is_point_on_internal_side(self, point) -> bool:
        """Strict half-space test against the plane through its first point."""
        if not self._vertex_indices:
            raise ValueError("Hyperplane has no defining points")

        origin = self._vertices[self._vertex_indices[0]]
        point = np.asarray(point, dtype=float)

        if self.dimension == 1:
            return bool((point[0] - origin[0]) * self.normal[0] > 0.0)

        return dot(self.normal, point - origin) > 0.0
