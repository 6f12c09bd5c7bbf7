"""
Plant definitions for abstraction-based verification.

Each plant exposes explicit-state one-step dynamics and, when it is
non-linear, a radial growth bound.
"""

from .base import Plant
from .linear import StateSpacePlant
from .integrator import IntegratorPlant
from .rocket import RocketPlant
from .dcdc import DCDCConverter
from .linear_hybrid import LinearHybridPlant
from .unicycle import UnicyclePlant

__all__ = ['Plant', 'StateSpacePlant', 'IntegratorPlant', 'RocketPlant',
           'DCDCConverter', 'LinearHybridPlant', 'UnicyclePlant']
