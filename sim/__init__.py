"""
Simulation engine and plotting utilities.

Provides closed-loop simulation of quantized policies, empirical winning
sets and visualization.
"""

from .simulator import Simulator, SimulationResult
from .plotting import plot_winning_set, plot_trajectory, plot_scan_history, save_figure

__all__ = [
    'Simulator',
    'SimulationResult',
    'plot_winning_set',
    'plot_trajectory',
    'plot_scan_history',
    'save_figure',
]
