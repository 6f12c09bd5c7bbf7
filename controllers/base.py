"""
Base controller interface.

All controllers must implement control_action_from_index(index) -> u.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional

from symbolic_control.quantizer import OUT_OF_RANGE, Quantizer
from symbolic_control.specification import ControlSpecification


class Controller(ABC):
    """
    Abstract base class for quantized state-feedback policies.

    A controller assigns one input vector to every state cell. Verification
    asks it for the input of a cell index; simulation asks it for the input
    at a continuous state, which is first mapped to its cell.

    Attributes:
        name: Human-readable controller name
        state_quantizer: Grid over the state space
        input_quantizer: Grid over the input space
    """

    def __init__(self, state_quantizer: Quantizer, input_quantizer: Quantizer,
                 specification: Optional[ControlSpecification] = None,
                 name: str = "BaseController"):
        """
        Initialize controller.

        Args:
            state_quantizer: Grid over the state space
            input_quantizer: Grid over the input space
            specification: Goal this controller is meant to satisfy
            name: Controller identifier for logging/plotting
        """
        self.name = name
        self.state_quantizer = state_quantizer
        self.input_quantizer = input_quantizer
        self._specification = None
        if specification is not None:
            self.set_control_specification(specification)

    def set_control_specification(self, specification: ControlSpecification) -> None:
        """
        Set the goal the controller is verified against.

        Args:
            specification: ControlSpecification over the state space
        """
        if specification.dimension != self.state_quantizer.dimension:
            raise ValueError(
                f"Specification has dimension {specification.dimension}, "
                f"state space has {self.state_quantizer.dimension}"
            )
        self._specification = specification

    @property
    def specification(self) -> Optional[ControlSpecification]:
        """Get current control specification."""
        return self._specification

    @abstractmethod
    def control_action_from_index(self, index: int) -> np.ndarray:
        """
        Input chosen for a state cell.

        Args:
            index: State cell index

        Returns:
            u: Input vector (a center of the input quantizer)
        """
        pass

    def control_action(self, x: np.ndarray) -> np.ndarray:
        """
        Input chosen at a continuous state.

        Args:
            x: State vector inside the quantized state space

        Returns:
            u: Input vector of the cell containing x
        """
        index = self.state_quantizer.index_from_vector(x)
        if index == OUT_OF_RANGE:
            raise ValueError(f"State {np.asarray(x).tolist()} is outside the quantized state space")
        return self.control_action_from_index(index)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
