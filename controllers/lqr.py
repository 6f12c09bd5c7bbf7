"""
Linear Quadratic Regulator (LQR) Controller.

Optimal state-feedback controller minimizing:
    J = Σ (e'Qe + v'Rv),   e = x - x_eq,  v = u - u_eq

For the sampled plant, solves the discrete algebraic Riccati equation (DARE)
on the plant's one-step linearization and quantizes the feedback

    u = u_eq - K (x - x_eq)

at every state cell center, which yields a policy the Verifier can check.

Lyapunov analysis:
    The LQR solution P from DARE serves as a Lyapunov function:
    V(x) = e' @ P @ e
"""

import numpy as np
from scipy import linalg
from typing import Dict, Any, Optional

from symbolic_control.quantizer import Quantizer
from symbolic_control.specification import ControlSpecification
from .base import Controller


class LQRController(Controller):
    """
    Discrete-time Linear Quadratic Regulator over a quantized state space.

    Computes optimal gain K that minimizes quadratic cost.
    Uses scipy.linalg.solve_discrete_are for DARE solution.
    """

    def __init__(self, state_quantizer: Quantizer, input_quantizer: Quantizer,
                 Q: Optional[np.ndarray] = None,
                 R: Optional[np.ndarray] = None,
                 specification: Optional[ControlSpecification] = None,
                 name: str = "LQR"):
        """
        Initialize LQR controller.

        Args:
            state_quantizer: Grid over the state space
            input_quantizer: Grid over the input space
            Q: State cost matrix (positive semi-definite)
            R: Input cost matrix (positive definite)
            specification: Goal this controller is meant to satisfy
            name: Controller name
        """
        super().__init__(state_quantizer, input_quantizer, specification, name)
        self._Q = Q
        self._R = R
        self._K = None  # Computed gain
        self._P = None  # DARE solution (Lyapunov matrix)
        self._A = None  # System matrices
        self._B = None
        self._x_eq = np.zeros(state_quantizer.dimension)
        self._u_eq = np.zeros(input_quantizer.dimension)

    def design(self, A: np.ndarray, B: np.ndarray,
               Q: Optional[np.ndarray] = None,
               R: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Design LQR controller for given system.

        Solves discrete algebraic Riccati equation:
            A'PA - P - A'PB(R + B'PB)^{-1}B'PA + Q = 0

        Optimal gain:
            K = (R + B'PB)^{-1} B'PA

        Args:
            A: State matrix (n x n)
            B: Input matrix (n x m)
            Q: State cost (default: identity)
            R: Input cost (default: identity)

        Returns:
            K: Optimal feedback gain matrix
        """
        n = A.shape[0]
        m = B.shape[1]

        if Q is None:
            Q = self._Q if self._Q is not None else np.eye(n)
        if R is None:
            R = self._R if self._R is not None else np.eye(m)

        self._Q = Q
        self._R = R
        self._A = A
        self._B = B

        try:
            P = linalg.solve_discrete_are(A, B, Q, R)
        except (np.linalg.LinAlgError, ValueError) as exc:
            raise ValueError("DARE solution failed. System may not be stabilizable.") from exc

        self._P = P

        # Compute optimal gain: K = (R + B'PB)^{-1} B'PA
        self._K = np.linalg.solve(R + B.T @ P @ B, B.T @ P @ A)

        return self._K

    def design_for_plant(self, plant, x_eq: Optional[np.ndarray] = None,
                         u_eq: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Design LQR for a plant around an operating point.

        Args:
            plant: Plant instance providing get_linearization()
            x_eq: Operating state (default: zeros)
            u_eq: Operating input (default: zeros)

        Returns:
            K: Optimal gain matrix
        """
        if x_eq is None:
            x_eq = np.zeros(plant.n_states)
        if u_eq is None:
            u_eq = np.zeros(plant.n_inputs)

        self._x_eq = np.asarray(x_eq, dtype=float).reshape(-1)
        self._u_eq = np.asarray(u_eq, dtype=float).reshape(-1)

        A, B = plant.get_linearization(self._x_eq, self._u_eq)
        return self.design(A, B)

    def feedback(self, x: np.ndarray) -> np.ndarray:
        """Unquantized feedback u_eq - K (x - x_eq)."""
        if self._K is None:
            raise ValueError("Controller not designed. Call design() first.")
        error = np.asarray(x, dtype=float) - self._x_eq
        return self._u_eq - self._K @ error

    def control_action_from_index(self, index: int) -> np.ndarray:
        center = self.state_quantizer.vector_from_index(index)
        return self.input_quantizer.quantize_vector(self.feedback(center))

    @property
    def K(self) -> Optional[np.ndarray]:
        """Get LQR gain matrix."""
        return self._K

    @property
    def P(self) -> Optional[np.ndarray]:
        """Get DARE solution (Lyapunov matrix)."""
        return self._P

    def get_lyapunov_function(self, x: np.ndarray) -> Optional[float]:
        """
        V(x) = (x - x_eq)' @ P @ (x - x_eq), or None before design().
        """
        if self._P is None:
            return None
        error = np.asarray(x, dtype=float) - self._x_eq
        return float(error @ self._P @ error)

    def analyze_stability(self) -> Dict[str, Any]:
        """
        Analyze closed-loop stability of the unquantized linearization.

        Returns eigenvalues and spectral radius.
        """
        if self._A is None or self._K is None:
            return {'analyzed': False, 'reason': 'Controller not designed'}

        # Closed-loop system: e+ = (A - BK)e
        A_cl = self._A - self._B @ self._K

        eigvals = np.linalg.eigvals(A_cl)
        spectral_radius = np.max(np.abs(eigvals))

        return {
            'analyzed': True,
            'closed_loop_matrix': A_cl,
            'eigenvalues': eigvals,
            'spectral_radius': spectral_radius,
            'is_stable': spectral_radius < 1.0,
        }
