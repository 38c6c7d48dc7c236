"""
BigWorld: Large-World Coordinates for Single-Precision Engines

A Python package for simulating planetary-scale scenes inside a
single-precision renderer: double-precision vector and matrix math,
a floating-origin observer frame, distance-based rescaled placement of
far bodies, and analytic Kepler orbits.
"""

# Core classes
from .vectors import DoubleVector3, DoubleVector4
from .matrix import DoubleMatrix4x4, inverse_transform_point
from .orbit_state import OrbitState, OrbitStatus, AttractorData
from .reference_frame import FloatingOriginFrame
from .placement import (DistancePlacement, PlacementResult, PlacementMode,
                        DetailLevels, compute_apparent_width)
from .native import NativeTransform
from .simulation import Simulation, OrbitingBody

# Kepler solver entry points
from .kepler import (kepler_solver, kepler_solver_hyperbolic_case,
                     solve_hyperbolic_kepler, HyperbolicSolution)

# Configuration and logging
from .config import config, temp_config
from .logging_config import setup_logging
from .utils import ConvergenceWarning

# Package metadata
__version__ = "0.1.0"
__author__ = "Shane Billingsley"

# Define what gets imported with "from bigworld import *"
__all__ = [
    # Math
    "DoubleVector3",
    "DoubleVector4",
    "DoubleMatrix4x4",
    "inverse_transform_point",
    # Orbits
    "OrbitState",
    "OrbitStatus",
    "AttractorData",
    "kepler_solver",
    "kepler_solver_hyperbolic_case",
    "solve_hyperbolic_kepler",
    "HyperbolicSolution",
    # Scene
    "FloatingOriginFrame",
    "DistancePlacement",
    "PlacementResult",
    "PlacementMode",
    "DetailLevels",
    "compute_apparent_width",
    "NativeTransform",
    "Simulation",
    "OrbitingBody",
    # Config
    "config",
    "temp_config",
    "setup_logging",
    "ConvergenceWarning",
]
