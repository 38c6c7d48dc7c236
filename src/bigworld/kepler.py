'''Closed-form Keplerian helpers
Anomaly conversions and Kepler equation solvers for elliptic, parabolic
and hyperbolic orbits'''

import logging
import math
import warnings
from typing import NamedTuple, Optional
from .config import config
from .utils import ConvergenceWarning
from .vectors import DoubleVector3

logger = logging.getLogger(__name__)

# Fixed constants so results are reproducible bit for bit
PI_2 = 6.2831853071796
PI = 3.14159265358979
DEG2RAD = 0.017453292519943
RAD2DEG = 57.295779513082


class HyperbolicSolution(NamedTuple):
    """Result of the hyperbolic Kepler iteration."""
    anomaly: float
    iterations: int
    converged: bool


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _clamp_unit(value: float) -> float:
    return -1.0 if value < -1.0 else (1.0 if value > 1.0 else value)


# ========== SCALAR HELPERS ==========
def acosh(x: float) -> float:
    """
    Inverse hyperbolic cosine that returns 0 instead of failing for x < 1.

    The clamp only keeps per-frame callers numerically safe; results for
    x < 1 carry no mathematical meaning.
    """
    if x < 1.0:
        return 0.0
    return math.log(x + math.sqrt(x * x - 1.0))


def rotate_vector_by_angle(v: DoubleVector3, angle_rad: float, n: DoubleVector3) -> DoubleVector3:
    """
    Rotate ``v`` about the unit axis ``n`` by ``angle_rad`` (Rodrigues).

    Parameters
    ----------
    v : DoubleVector3
        Vector to rotate
    angle_rad : float
        Rotation angle [rad], right-handed about ``n``
    n : DoubleVector3
        Normalized rotation axis
    """
    cos_t = math.cos(angle_rad)
    sin_t = math.sin(angle_rad)
    one_minus_cos = 1.0 - cos_t
    a11 = one_minus_cos * n.x * n.x + cos_t
    a12 = one_minus_cos * n.x * n.y - n.z * sin_t
    a13 = one_minus_cos * n.x * n.z + n.y * sin_t
    a21 = one_minus_cos * n.x * n.y + n.z * sin_t
    a22 = one_minus_cos * n.y * n.y + cos_t
    a23 = one_minus_cos * n.y * n.z - n.x * sin_t
    a31 = one_minus_cos * n.x * n.z - n.y * sin_t
    a32 = one_minus_cos * n.y * n.z + n.x * sin_t
    a33 = one_minus_cos * n.z * n.z + cos_t
    return DoubleVector3(v.x * a11 + v.y * a12 + v.z * a13,
                         v.x * a21 + v.y * a22 + v.z * a23,
                         v.x * a31 + v.y * a32 + v.z * a33)


def calc_circle_orbit_velocity(attractor_pos: DoubleVector3, body_pos: DoubleVector3,
                               attractor_mass: float, orbit_normal: DoubleVector3,
                               g_const: float) -> DoubleVector3:
    """Velocity of a circular orbit through ``body_pos`` in the plane of ``orbit_normal``."""
    distance_vector = body_pos - attractor_pos
    dist = distance_vector.magnitude
    if dist == 0.0:
        return DoubleVector3.zero()
    v_scalar = math.sqrt(attractor_mass * g_const / dist)
    return DoubleVector3.cross(distance_vector, -orbit_normal).normalized * v_scalar


def calc_center_of_mass(pos1: DoubleVector3, mass1: float,
                        pos2: DoubleVector3, mass2: float) -> DoubleVector3:
    total = mass1 + mass2
    if total == 0.0:
        return DoubleVector3.zero()
    return (pos1 * mass1 + pos2 * mass2) / total


def calc_true_anomaly_for_distance(distance: float, eccentricity: float,
                                   semi_major_axis: float,
                                   periapsis_distance: float) -> float:
    """
    True anomaly [rad] at which the orbit reaches ``distance`` from the focus.

    Returns the ascending-branch solution in [0, pi]; distances the orbit
    never reaches are clamped to periapsis or apoapsis.
    """
    if distance <= 0.0:
        return 0.0
    if eccentricity < 1.0:
        if eccentricity == 0.0:
            return 0.0
        cos_nu = (semi_major_axis * (1.0 - eccentricity * eccentricity) - distance) / (distance * eccentricity)
    elif eccentricity > 1.0:
        cos_nu = (abs(semi_major_axis) * (eccentricity * eccentricity - 1.0) - distance) / (distance * eccentricity)
    else:
        cos_nu = 2.0 * periapsis_distance / distance - 1.0
    return math.acos(_clamp_unit(cos_nu))


# ========== ANOMALY CONVERSIONS ==========
def convert_eccentric_to_true_anomaly(eccentric_anomaly: float, eccentricity: float) -> float:
    """
    Eccentric (or hyperbolic) anomaly to true anomaly [rad].

    Elliptic input is expected in [0, 2*pi). For a parabola the
    parameterizing anomaly is the true anomaly itself and is returned as is.
    """
    if eccentricity < 1.0:
        cos_e = math.cos(eccentric_anomaly)
        t_anom = math.acos(_clamp_unit((cos_e - eccentricity) / (1.0 - eccentricity * cos_e)))
        if eccentric_anomaly > PI:
            t_anom = PI_2 - t_anom
        return t_anom
    elif eccentricity > 1.0:
        return math.atan2(math.sqrt(eccentricity * eccentricity - 1.0) * math.sinh(eccentric_anomaly),
                          eccentricity - math.cosh(eccentric_anomaly))
    else:
        return eccentric_anomaly


def convert_true_to_eccentric_anomaly(true_anomaly: float, eccentricity: float) -> float:
    """True anomaly to eccentric (or hyperbolic) anomaly [rad]."""
    if math.isnan(eccentricity) or math.isinf(eccentricity):
        return true_anomaly

    # fmod keeps the sign, the hyperbolic branch depends on it
    true_anomaly = math.fmod(true_anomaly, PI_2)
    if eccentricity < 1.0:
        if true_anomaly < 0.0:
            true_anomaly += PI_2
        cos_t = math.cos(true_anomaly)
        ecc_anom = math.acos(_clamp_unit((eccentricity + cos_t) / (1.0 + eccentricity * cos_t)))
        if true_anomaly > math.pi:
            ecc_anom = PI_2 - ecc_anom
        return ecc_anom
    elif eccentricity > 1.0:
        cos_t = math.cos(true_anomaly)
        return acosh((eccentricity + cos_t) / (1.0 + eccentricity * cos_t)) * _sign(true_anomaly)
    else:
        return true_anomaly


def convert_mean_to_eccentric_anomaly(mean_anomaly: float, eccentricity: float) -> float:
    """
    Solve Kepler's equation for the eccentric anomaly [rad].

    Parameters
    ----------
    mean_anomaly : float
        Mean anomaly [rad]
    eccentricity : float
        e < 1 uses the elliptic solver, e > 1 the hyperbolic one and
        e == 1 Barker's equation in closed form

    Returns
    -------
    float
        Eccentric anomaly; hyperbolic anomaly for e > 1; true anomaly for e == 1
    """
    if eccentricity < 1.0:
        return kepler_solver(mean_anomaly, eccentricity)
    elif eccentricity > 1.0:
        return kepler_solver_hyperbolic_case(mean_anomaly, eccentricity)
    else:
        # Cardano root of t^3 + 3t - 6M = 0 with t = tan(nu / 2)
        m = mean_anomaly * 2.0
        v = 12.0 * m + 4.0 * math.sqrt(4.0 + 9.0 * m * m)
        pow_v = v ** (1.0 / 3.0)
        t = 0.5 * pow_v - 2.0 / pow_v
        return 2.0 * math.atan(t)


def convert_eccentric_to_mean_anomaly(eccentric_anomaly: float, eccentricity: float) -> float:
    if eccentricity < 1.0:
        return eccentric_anomaly - eccentricity * math.sin(eccentric_anomaly)
    elif eccentricity > 1.0:
        return math.sinh(eccentric_anomaly) * eccentricity - eccentric_anomaly
    else:
        t = math.tan(eccentric_anomaly * 0.5)
        return (t + t * t * t / 3.0) * 0.5


# ========== KEPLER SOLVERS ==========
def kepler_solver(mean_anomaly: float, eccentricity: float) -> float:
    """
    Elliptic Kepler solver (Laguerre-Conway update).

    Runs a fixed number of iterations, ``ceil((e + 0.7) * 1.25) * 2``,
    which ranges from 2 to 6 across e in [0, 1). The update

        m += -5 d / (n + sign(n) sqrt(|16 n^2 - 20 d e sin m|))

    with ``d = m - e sin m - M`` and ``n = 1 - e cos m`` stays stable for
    e close to 1 where plain Newton-Raphson oscillates. The function is
    pure; identical input gives bit-identical output.
    """
    iterations = int(math.ceil((eccentricity + 0.7) * 1.25)) << 1
    m = mean_anomaly
    for _ in range(iterations):
        esin_e = eccentricity * math.sin(m)
        ecos_e = eccentricity * math.cos(m)
        delta_e = m - esin_e - mean_anomaly
        n = 1.0 - ecos_e
        m += -5.0 * delta_e / (n + _sign(n) * math.sqrt(abs(16.0 * n * n - 20.0 * delta_e * esin_e)))
    return m


def solve_hyperbolic_kepler(mean_anomaly: float, eccentricity: float,
                            tolerance: Optional[float] = None,
                            max_iterations: Optional[int] = None) -> HyperbolicSolution:
    """
    Newton iteration on ``e sinh F - F = M``.

    Parameters
    ----------
    mean_anomaly : float
        Hyperbolic mean anomaly [rad]
    eccentricity : float
        Eccentricity, > 1
    tolerance : float, optional
        Stop once the step magnitude is at or below this value.
        Default: config.HYPERBOLIC_TOLERANCE
    max_iterations : int, optional
        Hard iteration cap. Default: config.HYPERBOLIC_MAX_ITERATIONS

    Returns
    -------
    HyperbolicSolution
        Best estimate of F, the number of iterations spent and whether the
        tolerance was reached. A degenerate seed (NaN or infinite) returns
        ``mean_anomaly`` unchanged with zero iterations.
    """
    if tolerance is None:
        tolerance = config.HYPERBOLIC_TOLERANCE
    if max_iterations is None:
        max_iterations = config.HYPERBOLIC_MAX_ITERATIONS

    # e sinh F - F is odd in F: iterate on |M| and restore the sign
    target = abs(mean_anomaly)
    f = math.log(2.0 * target / eccentricity + 1.8) \
        if eccentricity != 0.0 else math.inf
    if math.isnan(f) or math.isinf(f):
        return HyperbolicSolution(mean_anomaly, 0, False)

    for iteration in range(1, max_iterations + 1):
        try:
            delta = (eccentricity * math.sinh(f) - f - target) / (eccentricity * math.cosh(f) - 1.0)
        except (OverflowError, ZeroDivisionError):
            return HyperbolicSolution(math.copysign(f, mean_anomaly), iteration, False)
        f -= delta
        if abs(delta) <= tolerance:
            return HyperbolicSolution(math.copysign(f, mean_anomaly), iteration, True)
    return HyperbolicSolution(math.copysign(f, mean_anomaly), max_iterations, False)


def kepler_solver_hyperbolic_case(mean_anomaly: float, eccentricity: float) -> float:
    """
    Hyperbolic anomaly [rad] for the given mean anomaly.

    Hitting the iteration cap returns the best estimate and issues a
    ConvergenceWarning.
    """
    solution = solve_hyperbolic_kepler(mean_anomaly, eccentricity)
    if not solution.converged and solution.iterations > 0:
        logger.warning("Hyperbolic Kepler solver stopped after %d iterations (M=%s, e=%s)",
                       solution.iterations, mean_anomaly, eccentricity)
        warnings.warn(f"Hyperbolic Kepler solver did not converge for M={mean_anomaly}, "
                      f"e={eccentricity}", ConvergenceWarning, stacklevel=2)
    return solution.anomaly
