"""
Two-mode linear hybrid plant.

    u < 1:  dx/dt = diag(1, -2.5) x
    u ≥ 1:  dx/dt = diag(-2.5, 1) x

Each mode is a saddle; only switching between them can keep the state
near the origin.
"""

import numpy as np
from .base import Plant


class LinearHybridPlant(Plant):

    SWITCH_THRESHOLD = 1.0

    def __init__(self, tau: float = 0.2):
        self.A_low = np.diag([1.0, -2.5])
        self.A_high = np.diag([-2.5, 1.0])
        super().__init__(2, 1, tau, name='linear_hybrid', is_linear=True)

    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        A = self.A_low if u[0] < self.SWITCH_THRESHOLD else self.A_high
        return A @ x
