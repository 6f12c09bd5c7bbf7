"""Abstraction-based verification of quantized control policies"""

from .vector import as_vector, dot, norm, normalize
from .quantizer import Quantizer, OUT_OF_RANGE
from .specification import ControlSpecification, SpecificationType
from .hyperplane import Hyperplane
from .transition import Transition, OutOfSpace, OUT_OF_SPACE
from .abstraction import Abstraction
from .verifier import Verifier, VerifierPhase, perform_single_fixed_point_operation
