"""
Global Configuration for BigWorld Package
=========================================

This module provides package-wide configuration settings that users can modify
to control floating-origin thresholds, distance placement, solver limits and
default plotting options.

Examples
--------
View current configuration:

>>> import bigworld
>>> print(bigworld.config)

Modify settings:

>>> bigworld.config.REBASE_THRESHOLD = 2000.0  # Rebase more often
>>> bigworld.config.NEAR_THRESHOLD = 50000.0   # Rescale closer bodies

Reset to defaults:

>>> bigworld.config.reset()

Temporarily modify settings:

>>> with bigworld.temp_config(RESCALE_DISTANCE=10000.0):
...     # Distant bodies are parked closer for this block only
...     result = placement.evaluate(frame)

Notes
-----
These settings affect package-wide behavior. Components read them at call
time, so modifying them impacts all subsequent operations until changed
again or reset. Per-instance overrides passed to a constructor always win.
"""

from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class BigWorldConfig:
    """
    Global configuration for BigWorld package.

    Attributes
    ----------
    REBASE_THRESHOLD : float
        Native distance from the origin beyond which the observer frame folds
        its local displacement into the double-precision reference.
        Default: 5000.0
    NEAR_THRESHOLD : float
        Distance below which bodies are placed directly in native space.
        Default: 150000.0
    RESCALE_DISTANCE : float
        Fixed native distance at which far bodies are parked.
        Default: 148500.0
    RESCALE_FACTOR : float
        Multiplier applied to the apparent pixel width of a far body.
        Default: 11.0
    CAMERA_FOV_DEG : float
        Horizontal camera field of view used for apparent size [deg].
        Default: 60.0
    IMAGE_WIDTH_PX : int
        Rendered image width used for apparent size [px].
        Default: 1920
    ATMOSPHERE_CUTOFF : float
        Atmosphere is shown while distance <= this value.
        Default: 100000.0
    CLOUDS_CUTOFF : float
        Cloud detail is shown while distance <= this value.
        Default: 100000.0
    OCEAN_LOD_DISTANCE : float
        Ocean switches to its low detail level while distance > this value.
        Default: 31800.0
    HYPERBOLIC_TOLERANCE : float
        Step size at which the hyperbolic Kepler iteration stops.
        Default: 1e-8
    HYPERBOLIC_MAX_ITERATIONS : int
        Hard cap on hyperbolic Kepler iterations.
        Default: 100
    VECTOR_EQUALITY_SQR_EPSILON : float
        Squared distance below which two double vectors compare equal.
        Default: 1e-10
    STRICT_VALIDATION : bool
        If True, validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    DEFAULT_ORBIT_POINTS : int
        Default number of points for orbit lines.
        Default: 50
    DEFAULT_PLOT_POINTS : int
        Default number of points for orbit plotting.
        Default: 500
    DEFAULT_BODY_COLOR : str
        Default color for attractors in plots.
        Default: 'lightblue'
    DEFAULT_TRAJ_COLOR : str
        Default color for orbit lines in plots.
        Default: 'red'
    DEFAULT_TRAJ_COLOR_ADD : str
        Default color for orbit lines added to an existing figure.
        Default: 'blue'
    DEFAULT_BODY_OPACITY : float
        Default opacity for attractor markers (0.0 to 1.0).
        Default: 0.6
    """

    # Floating origin
    REBASE_THRESHOLD: float = 5000.0

    # Distance placement
    NEAR_THRESHOLD: float = 150000.0
    RESCALE_DISTANCE: float = 148500.0
    RESCALE_FACTOR: float = 11.0
    CAMERA_FOV_DEG: float = 60.0
    IMAGE_WIDTH_PX: int = 1920

    # Auxiliary detail bands
    ATMOSPHERE_CUTOFF: float = 100000.0
    CLOUDS_CUTOFF: float = 100000.0
    OCEAN_LOD_DISTANCE: float = 31800.0

    # Kepler solver
    HYPERBOLIC_TOLERANCE: float = 1e-8
    HYPERBOLIC_MAX_ITERATIONS: int = 100

    # Numerical tolerance for vector equality
    VECTOR_EQUALITY_SQR_EPSILON: float = 1e-10

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Plotting defaults
    DEFAULT_ORBIT_POINTS: int = 50
    DEFAULT_PLOT_POINTS: int = 500
    DEFAULT_BODY_COLOR: str = 'lightblue'
    DEFAULT_TRAJ_COLOR: str = 'red'
    DEFAULT_TRAJ_COLOR_ADD: str = 'blue'
    DEFAULT_BODY_OPACITY: float = 0.6

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import bigworld
        >>> bigworld.config.REBASE_THRESHOLD = 10.0  # Modify
        >>> bigworld.config.reset()  # Back to defaults
        >>> bigworld.config.REBASE_THRESHOLD
        5000.0
        """
        defaults = BigWorldConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["BigWorldConfig:"]
        lines.append("  Floating Origin:")
        lines.append(f"    REBASE_THRESHOLD = {self.REBASE_THRESHOLD}")
        lines.append("  Distance Placement:")
        lines.append(f"    NEAR_THRESHOLD = {self.NEAR_THRESHOLD}")
        lines.append(f"    RESCALE_DISTANCE = {self.RESCALE_DISTANCE}")
        lines.append(f"    RESCALE_FACTOR = {self.RESCALE_FACTOR}")
        lines.append(f"    CAMERA_FOV_DEG = {self.CAMERA_FOV_DEG}")
        lines.append(f"    IMAGE_WIDTH_PX = {self.IMAGE_WIDTH_PX}")
        lines.append("  Detail Bands:")
        lines.append(f"    ATMOSPHERE_CUTOFF = {self.ATMOSPHERE_CUTOFF}")
        lines.append(f"    CLOUDS_CUTOFF = {self.CLOUDS_CUTOFF}")
        lines.append(f"    OCEAN_LOD_DISTANCE = {self.OCEAN_LOD_DISTANCE}")
        lines.append("  Kepler Solver:")
        lines.append(f"    HYPERBOLIC_TOLERANCE = {self.HYPERBOLIC_TOLERANCE}")
        lines.append(f"    HYPERBOLIC_MAX_ITERATIONS = {self.HYPERBOLIC_MAX_ITERATIONS}")
        lines.append("  Numerical Tolerances:")
        lines.append(f"    VECTOR_EQUALITY_SQR_EPSILON = {self.VECTOR_EQUALITY_SQR_EPSILON}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        lines.append("  Plotting:")
        lines.append(f"    DEFAULT_ORBIT_POINTS = {self.DEFAULT_ORBIT_POINTS}")
        lines.append(f"    DEFAULT_PLOT_POINTS = {self.DEFAULT_PLOT_POINTS}")
        lines.append(f"    DEFAULT_BODY_COLOR = '{self.DEFAULT_BODY_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR = '{self.DEFAULT_TRAJ_COLOR}'")
        lines.append(f"    DEFAULT_TRAJ_COLOR_ADD = '{self.DEFAULT_TRAJ_COLOR_ADD}'")
        lines.append(f"    DEFAULT_BODY_OPACITY = {self.DEFAULT_BODY_OPACITY}")
        return "\n".join(lines)


# Global configuration instance
config = BigWorldConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import bigworld
    >>> with bigworld.temp_config(REBASE_THRESHOLD=100.0, STRICT_VALIDATION=False):
    ...     frame = bigworld.FloatingOriginFrame()
    ...     frame.tick()  # Rebases beyond 100 native units
    >>> # Original config restored here
    >>> bigworld.config.REBASE_THRESHOLD
    5000.0

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    old_values = {}
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise AttributeError(
                f"BigWorldConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
