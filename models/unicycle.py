"""
Unicycle with constant forward speed.

    dx1/dt = v cos(x3)
    dx2/dt = v sin(x3)
    dx3/dt = ω u

State: [x, y, θ] with θ wrapped to [0, 2π). Input: steering command u.
"""

import numpy as np
from typing import Tuple
from .base import Plant


class UnicyclePlant(Plant):
    """
    Nonholonomic mobile robot steered through its turn rate.

    This is a nonlinear system due to the cos/sin terms coupling
    the position to the heading angle, so its abstraction uses the
    radial growth bound:

        dr1/dt = v r3
        dr2/dt = v r3
        dr3/dt = 0
    """

    def __init__(self, tau: float = 0.3, speed: float = 1.0, turn_rate: float = 2.0):
        """
        Args:
            tau: Sampling period (default 0.3s)
            speed: Constant forward speed v
            turn_rate: Turn rate ω per unit of input
        """
        self.speed = speed
        self.turn_rate = turn_rate
        super().__init__(3, 1, tau, name='unicycle', is_linear=False)

    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return np.array([
            self.speed * np.cos(x[2]),
            self.speed * np.sin(x[2]),
            u[0] * self.turn_rate,
        ])

    def growth_bound_ode(self, r: np.ndarray, u: np.ndarray) -> np.ndarray:
        return np.array([r[2] * self.speed, r[2] * self.speed, 0.0])

    def wrap_state(self, x: np.ndarray) -> np.ndarray:
        x = x.copy()
        x[2] = np.mod(x[2], 2 * np.pi)
        return x

    def get_linearization(self, x_eq: np.ndarray,
                          u_eq: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Euler linearization around a heading θ_eq:

        A = I + τ * [0, 0, -v*sin(θ)]
                    [0, 0,  v*cos(θ)]
                    [0, 0,  0       ]

        B = τ * [0, 0, ω]ᵀ
        """
        theta = x_eq[2]

        A = np.eye(3)
        A[0, 2] = -self.tau * self.speed * np.sin(theta)
        A[1, 2] = self.tau * self.speed * np.cos(theta)

        B = self.tau * np.array([[0.0], [0.0], [self.turn_rate]])

        return A, B
