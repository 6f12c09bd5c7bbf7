"""
Quantized state-feedback policies.

All controllers implement a standard interface via the Controller base class.
"""

from .base import Controller
from .static import StaticController
from .lqr import LQRController

__all__ = [
    'Controller',
    'StaticController',
    'LQRController',
]
