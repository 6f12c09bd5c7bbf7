"""
Linear state-space plant.

    dx/dt = A x + B u + b

Sampled with fourth-order Runge-Kutta, which keeps the one-step map
affine in the state.
"""

import numpy as np
from typing import Optional
from .base import Plant


class StateSpacePlant(Plant):
    """
    Plant defined by constant A and B matrices and an optional bias.
    """

    def __init__(self, A, B, tau: float = 0.1, bias: Optional[np.ndarray] = None,
                 name: str = 'state_space', integration_steps: int = 4):
        """
        Args:
            A: State matrix (n x n)
            B: Input matrix (n x m)
            tau: Sampling period
            bias: Constant drift term (n,), defaults to zero
            name: Plant name
            integration_steps: Runge-Kutta substeps
        """
        A = np.atleast_2d(np.asarray(A, dtype=float))
        B = np.asarray(B, dtype=float)
        if B.ndim == 1:
            B = B.reshape(-1, 1)

        n = A.shape[0]
        if A.shape != (n, n):
            raise ValueError(f"A must be square, got shape {A.shape}")
        if B.shape[0] != n:
            raise ValueError(f"B must have {n} rows, got shape {B.shape}")

        self.A = A
        self.B = B
        self.bias = np.zeros(n) if bias is None else np.asarray(bias, dtype=float).reshape(-1)
        if self.bias.shape[0] != n:
            raise ValueError(f"bias must have {n} elements, got {self.bias.shape[0]}")

        super().__init__(n, B.shape[1], tau, name=name, is_linear=True,
                         integration_steps=integration_steps)

    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return self.A @ x + self.B @ u + self.bias
