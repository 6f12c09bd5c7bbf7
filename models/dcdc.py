"""
Boost DC-DC converter with two switching modes.

State: [inductor current, capacitor voltage], input: switch position.
The switch is open for u < 0.5 and closed otherwise; each mode is affine.
"""

import numpy as np
from .base import Plant


class DCDCConverter(Plant):
    """
    Switched affine plant (two modes).

    Mode 1 (u < 0.5):
        di/dt = -rl/xl · i + vs/xl
        dv/dt = -1/(xc (r0 + rc)) · v

    Mode 2 (u ≥ 0.5):
        di/dt = -(rl + r0 rc/(r0 + rc))/xl · i - r0/(5 xl (r0 + rc)) · v + vs/xl
        dv/dt = 5 r0/(xc (r0 + rc)) · i - 1/(xc (r0 + rc)) · v
    """

    SWITCH_THRESHOLD = 0.5

    def __init__(self, tau: float = 0.1, xc: float = 70.0, xl: float = 3.0, rc: float = 0.005,
                 rl: float = 0.05, r0: float = 1.0, vs: float = 1.0):
        self.xc = xc
        self.xl = xl
        self.rc = rc
        self.rl = rl
        self.r0 = r0
        self.vs = vs

        self.A_open = np.array([
            [-rl / xl, 0.0],
            [0.0, -1.0 / (xc * (r0 + rc))],
        ])
        self.A_closed = np.array([
            [-(rl + r0 * rc / (r0 + rc)) / xl, -(r0 / (r0 + rc)) / xl / 5.0],
            [5.0 * (r0 / (r0 + rc)) / xc, -1.0 / (xc * (r0 + rc))],
        ])
        self.bias = np.array([vs / xl, 0.0])

        super().__init__(2, 1, tau, name='dcdc', is_linear=True)

    def mode_matrix(self, u: np.ndarray) -> np.ndarray:
        return self.A_open if u[0] < self.SWITCH_THRESHOLD else self.A_closed

    def dynamics_ode(self, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        return self.mode_matrix(u) @ x + self.bias
