"""
Discrete-time closed-loop simulation.

Runs a plant under a quantized policy and logs the trajectory. Used to
cross-check a verified winning set against what the true dynamics do
from each cell center.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from tqdm.auto import tqdm

from symbolic_control.quantizer import OUT_OF_RANGE
from symbolic_control.specification import ControlSpecification, SpecificationType


@dataclass
class SimulationResult:
    """
    Container for simulation results.

    Attributes:
        time: Time vector
        states: State trajectory (T x n_states)
        inputs: Control inputs (T-1 x n_inputs), inputs[k] drives states[k] -> states[k+1]
        indices: State cell index of every state (OUT_OF_RANGE once outside)
        left_space: True if the trajectory left the quantized state space
        metadata: Additional simulation information
    """
    time: np.ndarray
    states: np.ndarray
    inputs: np.ndarray
    indices: np.ndarray
    left_space: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def membership(self, specification: ControlSpecification) -> np.ndarray:
        """Boolean per state: inside the specification set."""
        return np.array([specification.is_in_specification_set(x) for x in self.states], dtype=bool)

    def satisfies(self, specification: ControlSpecification) -> bool:
        """
        Empirical check of the goal on this finite trajectory.

        - INVARIANCE: every state inside the target, never left the space
        - REACHABILITY: some state inside the target before leaving the space
        - REACH_AND_STAY: entered the target and stayed until the end
        """
        inside = self.membership(specification)

        if specification.spec_type is SpecificationType.INVARIANCE:
            return bool(not self.left_space and np.all(inside))

        if specification.spec_type is SpecificationType.REACHABILITY:
            return bool(np.any(inside))

        if self.left_space or not np.any(inside):
            return False
        first_entry = int(np.argmax(inside))
        return bool(np.all(inside[first_entry:]))


class Simulator:
    """
    Discrete-time simulation engine.

    Runs closed-loop simulation of a plant with a quantized controller.
    """

    def __init__(self, plant, controller, verbose: bool = False):
        """
        Initialize simulator.

        Args:
            plant: Plant instance
            controller: Controller instance (provides state/input quantizers)
            verbose: Show progress bars
        """
        if plant.n_states != controller.state_quantizer.dimension:
            raise ValueError(
                f"Plant has {plant.n_states} states but the controller's state space has "
                f"dimension {controller.state_quantizer.dimension}"
            )
        self.plant = plant
        self.controller = controller
        self.verbose = verbose

    def run(self, x0: np.ndarray, steps: int, stop_on_exit: bool = True) -> SimulationResult:
        """
        Run closed-loop simulation.

        Args:
            x0: Initial state
            steps: Number of sampling periods to simulate
            stop_on_exit: Stop as soon as the state leaves the quantized space

        Returns:
            SimulationResult with full trajectory data
        """
        if steps < 0:
            raise ValueError(f"steps must be non-negative, got {steps}")

        quantizer = self.controller.state_quantizer
        self.plant.set_state(x0)

        states = [self.plant.state]
        inputs = []
        indices = [quantizer.index_from_vector(states[0])]
        left_space = indices[0] == OUT_OF_RANGE

        for _ in range(steps):
            if indices[-1] == OUT_OF_RANGE:
                if stop_on_exit:
                    break
                # Outside the grid there is no policy input
                inputs.append(np.full(self.plant.n_inputs, np.nan))
                states.append(states[-1].copy())
                indices.append(OUT_OF_RANGE)
                continue

            u = self.controller.control_action_from_index(indices[-1])
            x_next = self.plant.evolve(u)

            inputs.append(u)
            states.append(x_next)
            indices.append(quantizer.index_from_vector(x_next))
            if indices[-1] == OUT_OF_RANGE:
                left_space = True

        states = np.array(states)
        time = np.arange(states.shape[0]) * self.plant.tau

        metadata = {
            'plant': self.plant.name,
            'controller': self.controller.name,
            'tau': self.plant.tau,
            'x0': states[0].copy(),
        }
        if self.controller.specification is not None:
            metadata['specification'] = self.controller.specification

        return SimulationResult(
            time=time,
            states=states,
            inputs=np.array(inputs).reshape(len(inputs), self.plant.n_inputs),
            indices=np.array(indices, dtype=np.int64),
            left_space=left_space,
            metadata=metadata
        )

    def run_batch(self, initial_states: List[np.ndarray], steps: int) -> List[SimulationResult]:
        """
        Run multiple simulations from different initial conditions.

        Args:
            initial_states: List of initial state vectors
            steps: Number of sampling periods

        Returns:
            List of SimulationResult objects
        """
        return [self.run(x0, steps) for x0 in initial_states]

    def apparent_winning_set(self, specification: Optional[ControlSpecification] = None,
                             max_horizon: int = 100) -> np.ndarray:
        """
        Cells whose center empirically satisfies the goal under the true dynamics.

        Each cell center is simulated for max_horizon steps; reachability
        walks stop as soon as the target is hit.

        Args:
            specification: Goal to check (default: the controller's)
            max_horizon: Number of steps per walk

        Returns:
            Boolean array over the state cells
        """
        if specification is None:
            specification = self.controller.specification
        if specification is None:
            raise ValueError("No control specification to check against")

        quantizer = self.controller.state_quantizer
        apparent = np.zeros(quantizer.cardinality, dtype=bool)

        for index in tqdm(range(quantizer.cardinality), desc="Apparent winning set",
                          disable=not self.verbose):
            apparent[index] = self._walk_satisfies(quantizer.vector_from_index(index),
                                                   specification, max_horizon)

        return apparent

    def _walk_satisfies(self, x0: np.ndarray, specification: ControlSpecification, max_horizon: int) -> bool:
        quantizer = self.controller.state_quantizer
        x = np.asarray(x0, dtype=float)
        spec_type = specification.spec_type
        has_reached = False

        for step in range(max_horizon + 1):
            inside = specification.is_in_specification_set(x)

            if spec_type is SpecificationType.REACHABILITY and inside:
                return True
            if spec_type is SpecificationType.INVARIANCE and not inside:
                return False
            if spec_type is SpecificationType.REACH_AND_STAY:
                if has_reached and not inside:
                    return False
                has_reached = has_reached or inside

            if step == max_horizon:
                break

            index = quantizer.index_from_vector(x)
            if index == OUT_OF_RANGE:
                return False
            x = self.plant.evaluate_dynamics(x, self.controller.control_action_from_index(index))

        if spec_type is SpecificationType.REACHABILITY:
            return False
        if spec_type is SpecificationType.INVARIANCE:
            return True
        return has_reached
