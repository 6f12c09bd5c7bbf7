"""
Continuous-time integrator plant.

    dx/dt = u

Sampled with period τ this gives x(t+1) = x(t) + τ u(t): every cell is
translated by τ·u, which makes the plant convenient for checking an
abstraction by hand.
"""

import numpy as np
from typing import Tuple
from .linear import StateSpacePlant


class IntegratorPlant(StateSpacePlant):
    """
    n-axis integrator with one input per axis.

    The system is linear and fully actuated.
    """

    def __init__(self, n_states: int = 1, tau: float = 1.0):
        """
        Initialize integrator plant.

        Args:
            n_states: Number of axes
            tau: Sampling period (default 1.0s)
        """
        super().__init__(np.zeros((n_states, n_states)), np.eye(n_states), tau, name='integrator')

    def get_linearization(self, x_eq: np.ndarray,
                          u_eq: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        The integrator is already linear:
            x(t+1) = I @ x(t) + τ*I @ u(t)
        """
        A = np.eye(self.n_states)
        B = self.tau * np.eye(self.n_states)
        return A, B
