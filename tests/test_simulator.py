"""
Unit tests for closed-loop simulation and plotting.
"""

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pytest
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import IntegratorPlant
from controllers import StaticController
from symbolic_control import Abstraction, ControlSpecification, Quantizer, SpecificationType, Verifier
from sim.simulator import Simulator, SimulationResult
from sim.plotting import plot_winning_set, plot_trajectory, plot_scan_history, save_figure


def make_simulator(policy, spec_type=SpecificationType.REACHABILITY, lower=(0.0,), upper=(1.0,)):
    plant = IntegratorPlant(n_states=1, tau=1.0)
    sq = Quantizer([1.0], [0.0], [4.0])
    iq = Quantizer([1.0], [-1.5], [1.5])
    spec = ControlSpecification(spec_type, lower, upper)
    controller = StaticController(sq, iq, np.array(policy, dtype=float), specification=spec)
    return Simulator(plant, controller)


class TestSimulator:

    def test_trajectory_until_exit(self):
        sim = make_simulator([-1, -1, -1, -1])

        result = sim.run([3.5], 10)

        np.testing.assert_array_almost_equal(result.states[:, 0], [3.5, 2.5, 1.5, 0.5, -0.5])
        np.testing.assert_array_equal(result.indices, [3, 2, 1, 0, -1])
        assert result.inputs.shape == (4, 1)
        assert result.left_space
        np.testing.assert_array_almost_equal(result.time, [0.0, 1.0, 2.0, 3.0, 4.0])

    def test_trajectory_without_stop(self):
        sim = make_simulator([-1, -1, -1, -1])

        result = sim.run([0.5], 3, stop_on_exit=False)

        assert result.states.shape == (4, 1)
        assert np.all(np.isnan(result.inputs[1:]))

    def test_stays_inside(self):
        sim = make_simulator([0, 1, -1, 0])

        result = sim.run([1.5], 6)

        assert not result.left_space
        assert result.states.shape == (7, 1)
        assert set(result.indices.tolist()) == {1, 2}

    def test_satisfies(self):
        sim = make_simulator([0, -1, -1, -1])
        result = sim.run([3.5], 5)

        reach = ControlSpecification(SpecificationType.REACHABILITY, [0.0], [1.0])
        stay = ControlSpecification(SpecificationType.REACH_AND_STAY, [0.0], [1.0])
        invariance = ControlSpecification(SpecificationType.INVARIANCE, [0.0], [1.0])

        assert result.satisfies(reach)
        assert result.satisfies(stay)
        assert not result.satisfies(invariance)

    def test_negative_steps(self):
        sim = make_simulator([0, 0, 0, 0])

        with pytest.raises(ValueError):
            sim.run([0.5], -1)


class TestApparentWinningSet:

    def test_matches_verified_set_for_exact_abstraction(self):
        sim = make_simulator([0, -1, -1, 1])
        controller = sim.controller

        abstraction = Abstraction(sim.plant, controller, controller.state_quantizer, controller.input_quantizer)
        verifier = Verifier(abstraction, verbose=False)
        verifier.verify()

        apparent = sim.apparent_winning_set(max_horizon=10)

        np.testing.assert_array_equal(apparent, [True, True, True, False])
        np.testing.assert_array_equal(apparent, verifier.winning_set)

    def test_invariance(self):
        sim = make_simulator([0, 1, -1, 0], SpecificationType.INVARIANCE, (1.0,), (3.0,))

        apparent = sim.apparent_winning_set(max_horizon=10)

        np.testing.assert_array_equal(apparent, [False, True, True, False])

    def test_reach_and_stay(self):
        sim = make_simulator([-1, -1, -1, -1], SpecificationType.REACH_AND_STAY, (0.0,), (1.0,))

        apparent = sim.apparent_winning_set(max_horizon=10)

        assert not np.any(apparent)

    def test_requires_specification(self):
        plant = IntegratorPlant(n_states=1)
        sq = Quantizer([1.0], [0.0], [4.0])
        iq = Quantizer([1.0], [-1.5], [1.5])
        sim = Simulator(plant, StaticController.constant(sq, iq, [0.0]))

        with pytest.raises(ValueError):
            sim.apparent_winning_set()


class TestPlotting:

    def setup_method(self):
        self.sq = Quantizer([1.0, 1.0], [0.0, 0.0], [3.0, 2.0])
        self.spec = ControlSpecification(SpecificationType.INVARIANCE, [0.0, 1.0], [3.0, 2.0])

    def teardown_method(self):
        plt.close('all')

    def test_plot_winning_set(self):
        winning = np.array([False, False, False, True, True, True])

        ax = plot_winning_set(winning, self.sq, self.spec, apparent_winning_set=winning, title='W')

        assert ax.get_title() == 'W'
        assert ax.get_xlim() == pytest.approx((0.0, 3.0))

    def test_plot_winning_set_requires_2d(self):
        with pytest.raises(ValueError):
            plot_winning_set(np.zeros(4, dtype=bool), Quantizer([1.0], [0.0], [4.0]))

    def test_plot_trajectory_and_save(self, tmp_path):
        result = SimulationResult(
            time=np.arange(3) * 0.1,
            states=np.array([[0.5, 0.5], [1.5, 0.5], [3.5, 0.5]]),
            inputs=np.ones((2, 2)),
            indices=np.array([0, 1, -1]),
            left_space=True,
            metadata={'controller': 'Static'},
        )

        ax = plot_trajectory(result, specification=self.spec)
        plot_scan_history([6, 3, 3])
        paths = save_figure(ax.figure, 'trajectory', output_dir=str(tmp_path), formats=['png'])

        assert len(paths) == 1
        assert os.path.exists(paths[0])
