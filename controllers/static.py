"""
Static lookup-table controller.

Stores one quantized input per state cell; the table can be filled from
an explicit array, from a feedback law evaluated at every cell center,
or with a single constant input.
"""

import numpy as np
from typing import Callable, Optional

from symbolic_control.quantizer import Quantizer
from symbolic_control.specification import ControlSpecification
from .base import Controller


class StaticController(Controller):
    """
    Lookup-table policy over the state cells.

    Usage:
        controller = StaticController.from_function(sq, iq, lambda x: -x)
        controller.control_action_from_index(0)
    """

    def __init__(self, state_quantizer: Quantizer, input_quantizer: Quantizer,
                 inputs=None, specification: Optional[ControlSpecification] = None,
                 name: str = "Static"):
        """
        Args:
            state_quantizer: Grid over the state space
            input_quantizer: Grid over the input space
            inputs: Table of inputs, one row per state cell (cardinality x m);
                    a single input vector is broadcast to every cell
            specification: Goal this controller is meant to satisfy
            name: Controller name
        """
        super().__init__(state_quantizer, input_quantizer, specification, name)

        cardinality = state_quantizer.cardinality
        m = input_quantizer.dimension

        if inputs is None:
            inputs = np.tile(input_quantizer.quantize_vector(input_quantizer.lower_bound), (cardinality, 1))

        table = np.asarray(inputs, dtype=float)
        if table.ndim <= 1 and table.size == m:
            table = np.tile(table.reshape(1, m), (cardinality, 1))
        elif table.ndim == 1:
            # One scalar input per cell
            table = table.reshape(-1, 1)

        if table.shape != (cardinality, m):
            raise ValueError(f"Input table must have shape ({cardinality}, {m}), got {table.shape}")

        self._inputs = np.array([input_quantizer.quantize_vector(u) for u in table])

    @classmethod
    def from_function(cls, state_quantizer: Quantizer, input_quantizer: Quantizer,
                      law: Callable[[np.ndarray], np.ndarray],
                      specification: Optional[ControlSpecification] = None,
                      name: str = "Static") -> 'StaticController':
        """Evaluate a feedback law at every cell center."""
        inputs = [np.atleast_1d(law(center)) for center in state_quantizer.cell_centers()]
        return cls(state_quantizer, input_quantizer, inputs, specification, name)

    @classmethod
    def constant(cls, state_quantizer: Quantizer, input_quantizer: Quantizer, u,
                 specification: Optional[ControlSpecification] = None,
                 name: str = "Constant") -> 'StaticController':
        """Same input everywhere."""
        return cls(state_quantizer, input_quantizer, np.atleast_1d(u), specification, name)

    def set_input(self, index: int, u) -> None:
        """Overwrite the input of one cell (quantized)."""
        self.state_quantizer.check_index(index)
        self._inputs[index] = self.input_quantizer.quantize_vector(u)

    @property
    def inputs(self) -> np.ndarray:
        return self._inputs.copy()

    def control_action_from_index(self, index: int) -> np.ndarray:
        self.state_quantizer.check_index(index)
        return self._inputs[index].copy()
