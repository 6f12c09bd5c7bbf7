"""
One-axis rocket.

    x1(t+1) = x1(t) + τ x2(t)
    x2(t+1) = x2(t) + τ (u(t) / m + g)

State: [altitude, vertical velocity], input: thrust.
"""

import numpy as np
from .base import Plant


class RocketPlant(Plant):
    """
    Double integrator with constant gravity, stepped with forward Euler.
    """

    def __init__(self, tau: float = 0.1, mass: float = 267.0, gravity: float = -9.81):
        """
        Args:
            tau: Sampling period (default 0.1s)
            mass: Rocket mass (kg)
            gravity: Gravitational acceleration (m/s²), negative is down
        """
        self.mass = mass
        self.gravity = gravity
        super().__init__(2, 1, tau, name='rocket', is_linear=True)

    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return np.array([x[1], u[0] / self.mass + self.gravity])

    def evaluate_dynamics(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float).reshape(-1)
        u = np.asarray(u, dtype=float).reshape(-1)
        return x + self.tau * self.dynamics_ode(x, u)

    def hover_thrust(self) -> float:
        """Thrust that cancels gravity."""
        return -self.mass * self.gravity
