"""
Base class for discrete-time plants.

Provides a standard interface for all plants used in abstraction,
verification and simulation.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple


class Plant(ABC):
    """
    Abstract base class for sampled continuous-time plants.

    All plants implement the sampled dynamics:
        x(t+1) = φ(τ, x(t), u(t))

    where φ is obtained by integrating dynamics_ode() over one sampling
    period with fourth-order Runge-Kutta.

    The evaluation methods take the state explicitly, so a single plant
    instance can be shared between worker threads. The stored `state` is
    only used for stepwise simulation through evolve().

    Attributes:
        n_states: Dimension of state space
        n_inputs: Dimension of control input
        tau: Sampling period (seconds)
        name: Human readable name
        is_linear: True if the one-step map is affine in the state
        integration_steps: Runge-Kutta substeps per sampling period
    """

    def __init__(self, n_states: int, n_inputs: int, tau: float = 0.1,
                 name: str = 'plant', is_linear: bool = False, integration_steps: int = 4):
        """
        Initialize plant.

        Args:
            n_states: State space dimension
            n_inputs: Input space dimension
            tau: Sampling period in seconds
            name: Plant name
            is_linear: Whether the dynamics are linear (enables refined transitions)
            integration_steps: Runge-Kutta substeps per sampling period
        """
        if n_states < 1 or n_inputs < 1:
            raise ValueError(f"Plant dimensions must be positive, got n_states={n_states}, n_inputs={n_inputs}")
        if tau <= 0:
            raise ValueError(f"Sampling period must be positive, got {tau}")
        if integration_steps < 1:
            raise ValueError(f"integration_steps must be at least 1, got {integration_steps}")

        self.n_states = n_states
        self.n_inputs = n_inputs
        self.tau = tau
        self.name = name
        self.is_linear = is_linear
        self.integration_steps = integration_steps

        self._state = np.zeros(n_states)

    @abstractmethod
    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Continuous-time vector field dx/dt = f(x, u).

        Args:
            x: State vector
            u: Input vector (held constant over the sampling period)

        Returns:
            dxdt: State derivative
        """
        pass

    def growth_bound_ode(self, r: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Radial growth bound dr/dt = g(r, u) of the deviation from a nominal trajectory.

        Only needed by non-linear plants.
        """
        raise NotImplementedError(f"{self.name} does not define a radial growth bound")

    def _solve_rk4(self, ode, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        h = self.tau / self.integration_steps
        for _ in range(self.integration_steps):
            k1 = h * ode(x, u)
            k2 = h * ode(x + k1 / 2, u)
            k3 = h * ode(x + k2 / 2, u)
            k4 = h * ode(x + k3, u)
            x = x + (k1 + 2 * k2 + 2 * k3 + k4) / 6.0
        return x

    def wrap_state(self, x: np.ndarray) -> np.ndarray:
        """Map a state back into its canonical range (identity by default)."""
        return x

    def evaluate_dynamics(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Compute next state from an explicit state and input.

        Args:
            x: Current state vector
            u: Control input vector

        Returns:
            x_next: State after one sampling period
        """
        x = np.asarray(x, dtype=float).reshape(-1)
        u = np.asarray(u, dtype=float).reshape(-1)
        return self.wrap_state(self._solve_rk4(self.dynamics_ode, x, u))

    def evaluate_radial_growth_bound(self, r: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Integrate the growth bound ODE over one sampling period.

        Args:
            r: Initial deviation radius per axis (typically eta / 2)
            u: Control input vector

        Returns:
            Radius per axis after one sampling period
        """
        r = np.asarray(r, dtype=float).reshape(-1)
        u = np.asarray(u, dtype=float).reshape(-1)
        return self._solve_rk4(self.growth_bound_ode, r, u)

    @property
    def state(self) -> np.ndarray:
        return self._state.copy()

    def set_state(self, x: np.ndarray) -> None:
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape[0] != self.n_states:
            raise ValueError(f"Expected a state of length {self.n_states}, got {x.shape[0]}")
        self._state = x.copy()

    def get_state(self) -> np.ndarray:
        return self.state

    def evolve(self, u: np.ndarray) -> np.ndarray:
        """Advance the stored state by one sampling period and return it."""
        self._state = self.evaluate_dynamics(self._state, u)
        return self.state

    def get_linearization(self, x_eq: np.ndarray,
                          u_eq: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get linearized one-step matrices A, B around an operating point.

        For the sampled system: x(t+1) ≈ A @ (x - x_eq) + B @ (u - u_eq) + φ(x_eq, u_eq)

        Default implementation uses numerical differentiation.
        Override for analytical linearization.

        Args:
            x_eq: Operating state
            u_eq: Operating input

        Returns:
            A: State matrix (n_states x n_states)
            B: Input matrix (n_states x n_inputs)
        """
        eps = 1e-6
        x_eq = np.asarray(x_eq, dtype=float).reshape(-1)
        u_eq = np.asarray(u_eq, dtype=float).reshape(-1)
        A = np.zeros((self.n_states, self.n_states))
        B = np.zeros((self.n_states, self.n_inputs))

        f0 = self.evaluate_dynamics(x_eq, u_eq)

        # Compute A matrix (df/dx)
        for i in range(self.n_states):
            x_plus = x_eq.copy()
            x_plus[i] += eps
            A[:, i] = (self.evaluate_dynamics(x_plus, u_eq) - f0) / eps

        # Compute B matrix (df/du)
        for i in range(self.n_inputs):
            u_plus = u_eq.copy()
            u_plus[i] += eps
            B[:, i] = (self.evaluate_dynamics(x_eq, u_plus) - f0) / eps

        return A, B

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, tau={self.tau}, linear={self.is_linear})"
