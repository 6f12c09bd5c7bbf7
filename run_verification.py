#!/usr/bin/env python3
"""
Verify a quantized controller on one of the reference plants.

Usage:
    python run_verification.py                  # all scenarios
    python run_verification.py rocket_reach     # a single scenario

For each scenario:
1. Build state/input quantizers and the control specification
2. Build the controller (LQR or a static feedback law)
3. Compute the abstraction and the verified winning set
4. Cross-check with the apparent winning set from simulation
5. Save the winning set plot (2-D scenarios)
"""

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import RocketPlant, DCDCConverter, LinearHybridPlant, UnicyclePlant
from controllers import StaticController, LQRController
from symbolic_control import (
    Abstraction, ControlSpecification, Quantizer, SpecificationType, Verifier
)
from sim.simulator import Simulator
from sim.plotting import plot_winning_set, plot_scan_history, save_figure


OUTPUT_DIR = 'results/figures'


# ============================================================
# Scenarios
# ============================================================

ROCKET_INVARIANCE = {
    'plant': lambda: RocketPlant(tau=0.1),
    'state': {'eta': [0.1, 0.1], 'lower': [-5.0, -10.0], 'upper': [5.0, 10.0]},
    'input': {'eta': [100.0], 'lower': [0.0], 'upper': [5000.0]},
    'spec': (SpecificationType.INVARIANCE, [-2.5, -5.0], [2.5, 5.0]),
    'controller': 'lqr',
    'lqr': {'Q': np.diag([1.0, 1.0]), 'R': np.array([[1e-5]])},
    'refined': True,
}

ROCKET_REACH = {
    **ROCKET_INVARIANCE,
    'input': {'eta': [50.0], 'lower': [0.0], 'upper': [5000.0]},
    'spec': (SpecificationType.REACHABILITY, [-1.0, -1.0], [1.0, 1.0]),
}

DCDC_INVARIANCE = {
    'plant': lambda: DCDCConverter(),
    'state': {'eta': [0.01, 0.01], 'lower': [0.65, 4.95], 'upper': [1.65, 5.95]},
    'input': {'eta': [0.5], 'lower': [0.0], 'upper': [1.0]},
    'spec': (SpecificationType.INVARIANCE, [0.7, 5.0], [1.6, 5.9]),
    'controller': 'static',
    # Close the switch to charge the capacitor whenever the voltage sags
    'law': lambda x: np.array([0.75 if x[1] < 5.45 else 0.25]),
    'refined': True,
}

DCDC_REACH = {
    **DCDC_INVARIANCE,
    'spec': (SpecificationType.REACHABILITY, [1.1, 5.4], [1.6, 5.9]),
}

LINEAR_HYBRID_REACH_AND_STAY = {
    'plant': lambda: LinearHybridPlant(tau=0.2),
    'state': {'eta': [0.05, 0.05], 'lower': [-2.0, -2.0], 'upper': [2.0, 2.0]},
    'input': {'eta': [1.0], 'lower': [0.0], 'upper': [2.0]},
    'spec': (SpecificationType.REACH_AND_STAY, [-0.5, -0.5], [0.5, 0.5]),
    'controller': 'static',
    # Pick the mode that contracts the dominant axis
    'law': lambda x: np.array([1.5 if abs(x[0]) > abs(x[1]) else 0.5]),
    'refined': True,
}

UNICYCLE_REACH = {
    'plant': lambda: UnicyclePlant(tau=0.3),
    'state': {'eta': [0.4, 0.4, 0.4], 'lower': [0.0, 0.0, 0.0], 'upper': [10.0, 10.0, 2 * np.pi]},
    'input': {'eta': [0.25], 'lower': [-1.0], 'upper': [1.0]},
    'spec': (SpecificationType.REACHABILITY, [4.0, 4.0, 0.0], [6.0, 6.0, 2 * np.pi]),
    'controller': 'static',
    'law': lambda x: np.array([np.clip(
        np.arctan2(np.sin(np.arctan2(5.0 - x[1], 5.0 - x[0]) - x[2]),
                   np.cos(np.arctan2(5.0 - x[1], 5.0 - x[0]) - x[2])), -1.0, 1.0)]),
    'refined': False,
}

SCENARIOS = {
    'rocket_invariance': ROCKET_INVARIANCE,
    'rocket_reach': ROCKET_REACH,
    'dcdc_invariance': DCDC_INVARIANCE,
    'dcdc_reach': DCDC_REACH,
    'linear_hybrid_reach_and_stay': LINEAR_HYBRID_REACH_AND_STAY,
    'unicycle_reach': UNICYCLE_REACH,
}


# ============================================================
# Pipeline
# ============================================================

def build_controller(config, plant, state_quantizer, input_quantizer, specification):
    """Instantiate the scenario's policy."""
    if config['controller'] == 'lqr':
        controller = LQRController(state_quantizer, input_quantizer,
                                   Q=config['lqr']['Q'], R=config['lqr']['R'],
                                   specification=specification)
        u_eq = np.array([plant.hover_thrust()]) if hasattr(plant, 'hover_thrust') else None
        controller.design_for_plant(plant, u_eq=u_eq)
        return controller

    return StaticController.from_function(state_quantizer, input_quantizer, config['law'],
                                          specification=specification)


def report_lqr(controller: LQRController, verifier: Verifier) -> None:
    """Closed-loop stability and the largest Lyapunov level set free of losing cells."""
    stability = controller.analyze_stability()
    print(f"  LQR spectral radius: {stability['spectral_radius']:.4f} "
          f"({'stable' if stability['is_stable'] else 'UNSTABLE'})")

    quantizer = verifier.abstraction.state_quantizer
    levels = [controller.get_lyapunov_function(quantizer.vector_from_index(i))
              for i in verifier.losing_indices]
    if levels:
        print(f"  Lyapunov level of nearest losing cell: {min(levels):.4g}")
    else:
        print("  No losing cells")


def run_scenario(name: str, config: dict, max_horizon: int = 100) -> dict:
    """Verify one scenario and return its summary."""
    print("\n" + "=" * 60)
    print(f"SCENARIO: {name}")
    print("=" * 60)

    plant = config['plant']()
    state_quantizer = Quantizer(config['state']['eta'], config['state']['lower'], config['state']['upper'])
    input_quantizer = Quantizer(config['input']['eta'], config['input']['lower'], config['input']['upper'])
    spec_type, spec_lower, spec_upper = config['spec']
    specification = ControlSpecification(spec_type, spec_lower, spec_upper)

    print(f"  Plant: {plant}")
    print(f"  State space: {state_quantizer}")
    print(f"  Input space: {input_quantizer}")
    print(f"  Specification: {specification}")

    controller = build_controller(config, plant, state_quantizer, input_quantizer, specification)

    abstraction = Abstraction(plant, controller, state_quantizer, input_quantizer,
                              use_refined_transitions=config['refined'] and plant.is_linear)
    verifier = Verifier(abstraction, seed=42)

    t0 = time.time()
    percentage = verifier.verify()
    elapsed = time.time() - t0

    apparent = Simulator(plant, controller).apparent_winning_set(specification, max_horizon)
    apparent_percentage = 100.0 * np.count_nonzero(apparent) / state_quantizer.cardinality

    print(f"\n  Verified winning set: {percentage:.2f}%")
    print(f"  Apparent winning set: {apparent_percentage:.2f}%")
    print(f"  Scans: {verifier.iterations} | time: {elapsed:.2f}s")
    if isinstance(controller, LQRController):
        report_lqr(controller, verifier)

    if state_quantizer.dimension == 2:
        fig, axes = plt.subplots(1, 2, figsize=(14, 6))
        plot_winning_set(verifier.winning_set, state_quantizer, specification,
                         apparent_winning_set=apparent, ax=axes[0], title=f'{name}: winning set')
        plot_scan_history(verifier.scan_history, ax=axes[1], title='Fixed-point scans')
        for path in save_figure(fig, name, OUTPUT_DIR, formats=['png']):
            print(f"  Saved: {path}")
        plt.close(fig)

    return {
        'verified': percentage,
        'apparent': apparent_percentage,
        'scans': verifier.iterations,
        'time': elapsed,
    }


def main():
    """Run the selected scenarios."""
    names = sys.argv[1:] or list(SCENARIOS)
    unknown = [n for n in names if n not in SCENARIOS]
    if unknown:
        print(f"Unknown scenario(s): {', '.join(unknown)}")
        print(f"Available: {', '.join(SCENARIOS)}")
        return 1

    summaries = {name: run_scenario(name, SCENARIOS[name]) for name in names}

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    for name, s in summaries.items():
        print(f"  {name:<30} verified {s['verified']:6.2f}% | apparent {s['apparent']:6.2f}% | "
              f"{s['scans']} scans | {s['time']:.1f}s")

    return 0


if __name__ == '__main__':
    sys.exit(main())
