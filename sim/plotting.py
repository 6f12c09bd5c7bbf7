"""
Plotting utilities for verification and simulation results.

Provides standardized plots for 2-D winning sets and closed-loop
trajectories, plus multi-format figure export.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap
from matplotlib.patches import Rectangle
from typing import Optional, List
import os

from symbolic_control.quantizer import Quantizer
from symbolic_control.specification import ControlSpecification


def _add_specification_patch(ax: plt.Axes, specification: ControlSpecification,
                             dims=(0, 1)) -> None:
    lower = specification.lower_vertex[list(dims)]
    upper = specification.upper_vertex[list(dims)]
    ax.add_patch(Rectangle((lower[0], lower[1]), upper[0] - lower[0], upper[1] - lower[1],
                           fill=False, edgecolor='darkgreen', linewidth=2,
                           label=f'Target ({specification.spec_type.value})'))


def plot_winning_set(winning_set: np.ndarray, state_quantizer: Quantizer,
                     specification: Optional[ControlSpecification] = None,
                     apparent_winning_set: Optional[np.ndarray] = None,
                     ax: Optional[plt.Axes] = None,
                     title: Optional[str] = None) -> plt.Axes:
    """
    Plot a 2-D winning set over the state grid.

    Args:
        winning_set: Boolean array over the state cells
        state_quantizer: Grid the winning set is defined on (must be 2-D)
        specification: Target region to outline
        apparent_winning_set: Empirical winning set; cells that win in
                              simulation but were not verified are shaded
        ax: Matplotlib axes (creates new if None)
        title: Plot title

    Returns:
        Matplotlib axes
    """
    if state_quantizer.dimension != 2:
        raise ValueError(f"Winning set plots need a 2-D state space, got {state_quantizer.dimension}-D")

    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    nx, ny = (int(n) for n in state_quantizer.cardinality_per_axis)

    # 0 = losing, 1 = apparent only, 2 = verified winning
    levels = np.asarray(winning_set, dtype=int) * 2
    if apparent_winning_set is not None:
        levels = np.maximum(levels, np.asarray(apparent_winning_set, dtype=int))
    grid = levels.reshape(ny, nx)

    xs = np.linspace(state_quantizer.lower_bound[0], state_quantizer.upper_bound[0], nx + 1)
    ys = np.linspace(state_quantizer.lower_bound[1], state_quantizer.upper_bound[1], ny + 1)
    cmap = ListedColormap(['#f2f2f2', '#9ecae1', '#3182bd'])
    ax.pcolormesh(xs, ys, grid, cmap=cmap, vmin=0, vmax=2, shading='flat')

    if specification is not None:
        _add_specification_patch(ax, specification)
        ax.legend(loc='upper right')

    ax.set_xlim(xs[0], xs[-1])
    ax.set_ylim(ys[0], ys[-1])
    ax.set_xlabel('$x_1$')
    ax.set_ylabel('$x_2$')

    if title:
        ax.set_title(title)

    return ax


def plot_trajectory(result, ax: Optional[plt.Axes] = None,
                    show_start: bool = True,
                    specification: Optional[ControlSpecification] = None,
                    dims=(0, 1),
                    title: Optional[str] = None,
                    color: str = 'blue',
                    label: Optional[str] = None) -> plt.Axes:
    """
    Plot a trajectory projected on two state axes.

    Args:
        result: SimulationResult object
        ax: Matplotlib axes (creates new if None)
        show_start: Mark initial state
        specification: Target region to outline (default: from result metadata)
        dims: State axes to plot
        title: Plot title
        color: Trajectory color
        label: Legend label

    Returns:
        Matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    states = result.states
    i, j = dims

    ax.plot(states[:, i], states[:, j], '.-', color=color,
            linewidth=1.5, label=label or result.metadata.get('controller', 'Trajectory'))

    if show_start:
        ax.plot(states[0, i], states[0, j], 'go', markersize=10, label='Start')

    if result.left_space:
        ax.plot(states[-1, i], states[-1, j], 'rx', markersize=10, label='Left space')

    if specification is None:
        specification = result.metadata.get('specification')
    if specification is not None:
        _add_specification_patch(ax, specification, dims)

    ax.set_xlabel(f'$x_{i + 1}$')
    ax.set_ylabel(f'$x_{j + 1}$')
    ax.grid(True, alpha=0.3)
    ax.legend()

    if title:
        ax.set_title(title)

    return ax


def plot_scan_history(scan_history: List[int], ax: Optional[plt.Axes] = None,
                      title: Optional[str] = None) -> plt.Axes:
    """
    Plot the winning set size after every fixed-point scan.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    ax.plot(np.arange(1, len(scan_history) + 1), scan_history, 'o-')
    ax.set_xlabel('Scan')
    ax.set_ylabel('Winning cells')
    ax.grid(True, alpha=0.3)

    if title:
        ax.set_title(title)

    return ax


def save_figure(fig: plt.Figure, filename: str,
                output_dir: str = 'results/figures',
                formats: List[str] = ['png', 'pdf']) -> List[str]:
    """
    Save figure to multiple formats.

    Args:
        fig: Matplotlib figure
        filename: Base filename (without extension)
        output_dir: Output directory
        formats: List of file formats

    Returns:
        Paths written
    """
    os.makedirs(output_dir, exist_ok=True)

    paths = []
    for fmt in formats:
        path = os.path.join(output_dir, f'{filename}.{fmt}')
        fig.savefig(path, dpi=150, bbox_inches='tight')
        paths.append(path)
    return paths
