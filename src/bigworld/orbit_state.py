'''Keplerian orbit state for bodies moved analytically
OrbitState class definition'''

import copy
import logging
import math
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union
from . import kepler
from .config import config
from .kepler import PI_2, DEG2RAD, RAD2DEG
from .utils import validation_error
from .vectors import DoubleVector3

logger = logging.getLogger(__name__)

VectorLike = Union[DoubleVector3, Sequence[float]]


class OrbitStatus(Enum):
    UNINITIALIZED = 'uninitialized'
    VALID = 'valid'
    INVALID = 'invalid'


@dataclass(frozen=True)
class AttractorData:
    """Read-only snapshot of the body an orbit is bound to."""
    mass: float
    g_const: float
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def mu(self) -> float:
        return self.mass * self.g_const


def _as_vector(value: VectorLike) -> DoubleVector3:
    if isinstance(value, DoubleVector3):
        return DoubleVector3(value.x, value.y, value.z)
    return DoubleVector3.from_sequence(value)


def _wrap_degrees(value: float) -> float:
    """Wrap an angle to (-180, 180] degrees."""
    value = math.fmod(value, 360.0)
    if value > 180.0:
        value -= 360.0
    elif value <= -180.0:
        value += 360.0
    return value


def _wrap_two_pi(value: float) -> float:
    value = math.fmod(value, PI_2)
    if value < 0.0:
        value += PI_2
    return value


class OrbitState:
    """
    Mutable Keplerian element set of one body around one attractor.

    The element set is the source of truth; anomalies, position, velocity
    and mean motion are derived from it and always recomputed together by
    a single internal step after any mutation, so a partially updated
    state is never observable.

    Conventions
    -----------
    - ``semi_major_axis`` is positive for ellipses (e < 1) and negative
      for hyperbolas (e > 1). For a parabola (e == 1) the constructor's
      ``semi_major_axis`` argument is the periapsis distance.
    - Angles are radians internally; the constructor takes degrees.
    - Position and velocity are relative to the attractor.
    - The orbital basis is (P, Q, W): periapsis direction, in-plane
      direction 90 degrees ahead of it, and the orbit normal. Motion is
      counterclockwise about W.

    Invalid element sets (negative eccentricity, non-positive mass or
    gravitational constant, a semi-major axis with the wrong sign for the
    branch) never raise. They flip the status to ``OrbitStatus.INVALID``,
    zero the position, velocity and mean motion, and make anomaly setters
    no-ops until the elements are corrected. A hyperbolic mean anomaly the
    capped Kepler iteration cannot solve is treated the same way, with
    ``anomaly_converged`` reporting False.
    """
    # ========== CLASS CONSTANTS ==========
    ECLIPTIC_NORMAL = (0.0, 0.0, 1.0)
    ECLIPTIC_UP = (0.0, 1.0, 0.0)
    ECLIPTIC_RIGHT = (1.0, 0.0, 0.0)

    # Eccentricity vectors shorter than this give a circular orbit
    _CIRCULAR_ECCENTRICITY = 1e-12
    # Node vectors shorter than this mean the orbit lies in the ecliptic
    _DEGENERATE_NODE = 1e-12
    # Default sampling extent of open orbits, in periapsis distances
    _OPEN_ORBIT_EXTENT = 10.0

    # ========== CONSTRUCTION ==========
    def __init__(self, eccentricity: float, semi_major_axis: float,
                 mean_anomaly_deg: float = 0.0, inclination_deg: float = 0.0,
                 arg_of_perifocus_deg: float = 0.0, ascending_node_deg: float = 0.0,
                 attractor_mass: float = 1000.0, g_const: float = 0.1,
                 attractor_position: Optional[VectorLike] = None):
        """
        Create an orbit from classical elements.

        Parameters
        ----------
        eccentricity : float
            Eccentricity, >= 0
        semi_major_axis : float
            Semi-major axis (> 0 ellipse, < 0 hyperbola) or periapsis
            distance when eccentricity == 1
        mean_anomaly_deg : float, optional
            Mean anomaly at creation [deg]
        inclination_deg : float, optional
            Inclination to the ecliptic (x-y plane) [deg]
        arg_of_perifocus_deg : float, optional
            Argument of periapsis [deg]
        ascending_node_deg : float, optional
            Longitude of the ascending node [deg]
        attractor_mass : float, optional
            Attractor mass, > 0 for a valid orbit
        g_const : float, optional
            Gravitational constant, > 0 for a valid orbit
        attractor_position : DoubleVector3 or array-like, optional
            World position of the attractor (default: origin)
        """
        self._init_state(attractor_mass, g_const, attractor_position)
        self._eccentricity = float(eccentricity)
        self._a_param = float(semi_major_axis)
        self._mean_anomaly = float(mean_anomaly_deg) * DEG2RAD
        self._basis_from_angles(inclination_deg, arg_of_perifocus_deg, ascending_node_deg)
        self._recalculate()

    @classmethod
    def from_state_vectors(cls, position: VectorLike, velocity: VectorLike,
                           attractor_mass: float, g_const: float,
                           attractor_position: Optional[VectorLike] = None) -> "OrbitState":
        """
        Create an orbit from a Cartesian state relative to the attractor.

        A purely radial state (zero angular momentum) has no orbital plane
        and produces an invalid orbit.
        """
        orbit = cls.__new__(cls)
        orbit._init_state(attractor_mass, g_const, attractor_position)
        orbit.recalculate_from_state_vectors(position, velocity)
        return orbit

    @classmethod
    def from_dict(cls, data: dict) -> "OrbitState":
        """Inverse of ``to_dict``."""
        return cls(**data)

    def _init_state(self, attractor_mass, g_const, attractor_position):
        self._attractor_mass = float(attractor_mass)
        self._g_const = float(g_const)
        if attractor_position is None:
            self._attractor_position = DoubleVector3.zero()
        else:
            self._attractor_position = _as_vector(attractor_position)

        self._eccentricity = 0.0
        self._a_param = 0.0
        self._mean_anomaly = 0.0
        self._eccentric_anomaly = 0.0
        self._true_anomaly = 0.0
        self._set_basis(DoubleVector3(*self.ECLIPTIC_RIGHT), DoubleVector3(*self.ECLIPTIC_NORMAL))

        self._position = DoubleVector3.zero()
        self._velocity = DoubleVector3.zero()
        self._mean_motion = 0.0
        self._status = OrbitStatus.UNINITIALIZED
        self._view_dirty = False
        self._anomaly_converged = True

    def _basis_from_angles(self, inclination_deg, arg_of_perifocus_deg, ascending_node_deg):
        # node rotated about the ecliptic normal, plane tilted about the node,
        # periapsis rotated from the node within the plane
        normal = DoubleVector3(*self.ECLIPTIC_NORMAL)
        node = DoubleVector3(*self.ECLIPTIC_RIGHT)
        node = kepler.rotate_vector_by_angle(
            node, _wrap_degrees(ascending_node_deg) * DEG2RAD, normal).normalized
        normal = kepler.rotate_vector_by_angle(
            normal, _wrap_degrees(inclination_deg) * DEG2RAD, node).normalized
        periapsis = kepler.rotate_vector_by_angle(
            node, _wrap_degrees(arg_of_perifocus_deg) * DEG2RAD, normal).normalized
        self._set_basis(periapsis, normal)

    def _set_basis(self, periapsis_dir: DoubleVector3, normal: DoubleVector3):
        self._periapsis_dir = periapsis_dir
        self._normal = normal
        self._minor_dir = DoubleVector3.cross(normal, periapsis_dir)

    # ========== STATE MACHINE ==========
    def _elements_consistent(self) -> bool:
        e = self._eccentricity
        a = self._a_param
        values = (e, a, self._attractor_mass, self._g_const, self._mean_anomaly)
        if not all(math.isfinite(v) for v in values):
            return False
        if e < 0.0 or self._attractor_mass <= 0.0 or self._g_const <= 0.0:
            return False
        if e > 1.0:
            return a < 0.0
        return a > 0.0

    def _set_status(self, status: OrbitStatus):
        if status is not self._status:
            logger.debug("Orbit status %s -> %s (e=%s, a=%s, mass=%s, g=%s)",
                         self._status.name, status.name, self._eccentricity,
                         self._a_param, self._attractor_mass, self._g_const)
            self._status = status

    def _invalidate(self):
        self._set_status(OrbitStatus.INVALID)
        self._position = DoubleVector3.zero()
        self._velocity = DoubleVector3.zero()
        self._mean_motion = 0.0

    def _recalculate(self, source: str = 'mean', anomaly: Optional[float] = None):
        """
        Recompute every derived quantity from the elements.

        ``source`` names the anomaly that is authoritative for this update
        ('mean', 'eccentric' or 'true'); the other two are derived from it.
        A hyperbolic solve that stops at its iteration cap leaves the orbit
        INVALID with ``anomaly_converged`` False rather than publishing a
        diverged position.
        """
        self._view_dirty = True
        self._anomaly_converged = True
        if not self._elements_consistent():
            self._invalidate()
            return
        self._set_status(OrbitStatus.VALID)

        e = self._eccentricity
        if e == 1.0:
            q = self._a_param
            self._mean_motion = math.sqrt(self.mu / (2.0 * q * q * q))
        else:
            a = abs(self._a_param)
            self._mean_motion = math.sqrt(self.mu / (a * a * a))

        if source == 'true':
            nu = anomaly
            ecc = kepler.convert_true_to_eccentric_anomaly(nu, e)
            mean = kepler.convert_eccentric_to_mean_anomaly(ecc, e)
            if e < 1.0:
                mean = _wrap_two_pi(mean)
        elif source == 'eccentric':
            ecc = anomaly
            nu = kepler.convert_eccentric_to_true_anomaly(ecc, e)
            mean = kepler.convert_eccentric_to_mean_anomaly(ecc, e)
            if e < 1.0:
                mean = _wrap_two_pi(mean)
        else:
            mean = self._mean_anomaly
            if e < 1.0:
                mean = _wrap_two_pi(mean)
            if e > 1.0:
                solution = kepler.solve_hyperbolic_kepler(mean, e)
                if not solution.converged:
                    logger.warning("Hyperbolic anomaly did not converge after %d iterations "
                                   "(M=%s, e=%s); orbit marked invalid",
                                   solution.iterations, mean, e)
                    self._anomaly_converged = False
                    self._mean_anomaly = mean
                    self._invalidate()
                    return
                ecc = solution.anomaly
            else:
                ecc = kepler.convert_mean_to_eccentric_anomaly(mean, e)
            nu = kepler.convert_eccentric_to_true_anomaly(ecc, e)

        self._mean_anomaly = mean
        self._eccentric_anomaly = ecc
        self._true_anomaly = nu

        if source == 'true' or e == 1.0:
            self._position = self.position_at_true_anomaly(nu)
            self._velocity = self.velocity_at_true_anomaly(nu)
        else:
            self._position = self._position_at_eccentric_anomaly(ecc)
            self._velocity = self._velocity_at_eccentric_anomaly(ecc)

    # ========== PROPERTY ACCESS ==========
    @property
    def status(self) -> OrbitStatus:
        return self._status

    @property
    def is_valid_orbit(self) -> bool:
        return self._status is OrbitStatus.VALID

    @property
    def anomaly_converged(self) -> bool:
        """False when the last hyperbolic Kepler solve hit its iteration cap."""
        return self._anomaly_converged

    @property
    def eccentricity(self) -> float:
        return self._eccentricity

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis; negative for hyperbolas, infinite for a parabola."""
        if self._eccentricity == 1.0:
            return math.inf
        return self._a_param

    @property
    def mean_anomaly(self) -> float:
        return self._mean_anomaly

    @property
    def eccentric_anomaly(self) -> float:
        return self._eccentric_anomaly

    @property
    def true_anomaly(self) -> float:
        return self._true_anomaly

    @property
    def mean_motion(self) -> float:
        return self._mean_motion

    @property
    def position(self) -> DoubleVector3:
        """Position relative to the attractor (a copy)."""
        return DoubleVector3(self._position.x, self._position.y, self._position.z)

    @property
    def velocity(self) -> DoubleVector3:
        return DoubleVector3(self._velocity.x, self._velocity.y, self._velocity.z)

    @property
    def world_position(self) -> DoubleVector3:
        return self._attractor_position + self._position

    @property
    def attractor_mass(self) -> float:
        return self._attractor_mass

    @property
    def grav_const(self) -> float:
        return self._g_const

    @property
    def mu(self) -> float:
        """Gravitational parameter, mass times the gravitational constant."""
        return self._attractor_mass * self._g_const

    @property
    def attractor_position(self) -> DoubleVector3:
        p = self._attractor_position
        return DoubleVector3(p.x, p.y, p.z)

    @attractor_position.setter
    def attractor_position(self, value: VectorLike):
        # Moving the attractor leaves the relative state untouched
        self._attractor_position = _as_vector(value)
        self._view_dirty = True

    @property
    def attractor(self) -> AttractorData:
        return AttractorData(self._attractor_mass, self._g_const,
                             self._attractor_position.to_tuple())

    @property
    def orbit_normal(self) -> DoubleVector3:
        return DoubleVector3(self._normal.x, self._normal.y, self._normal.z)

    @property
    def periapsis_direction(self) -> DoubleVector3:
        return DoubleVector3(self._periapsis_dir.x, self._periapsis_dir.y, self._periapsis_dir.z)

    @property
    def semi_minor_axis_direction(self) -> DoubleVector3:
        return DoubleVector3(self._minor_dir.x, self._minor_dir.y, self._minor_dir.z)

    @property
    def view_dirty(self) -> bool:
        """True when the state changed since the last ``update_view``."""
        return self._view_dirty

    # ========== ORIENTATION ==========
    def _node_direction(self) -> DoubleVector3:
        return DoubleVector3.cross(DoubleVector3(*self.ECLIPTIC_NORMAL), self._normal)

    @property
    def inclination(self) -> float:
        """Inclination to the ecliptic plane [rad], in [0, pi]."""
        dot = DoubleVector3.dot(self._normal, DoubleVector3(*self.ECLIPTIC_NORMAL))
        return math.acos(max(-1.0, min(1.0, dot)))

    @property
    def ascending_node_longitude(self) -> float:
        """Longitude of the ascending node [rad], in [0, 2*pi); 0 for equatorial orbits."""
        node = self._node_direction()
        if node.magnitude < self._DEGENERATE_NODE:
            return 0.0
        return _wrap_two_pi(math.atan2(node.y, node.x))

    @property
    def argument_of_perifocus(self) -> float:
        """
        Argument of periapsis [rad], in [0, 2*pi).

        For equatorial orbits the node is undefined and the angle is
        measured from the ecliptic x axis instead (longitude of periapsis).
        """
        node = self._node_direction()
        if node.magnitude < self._DEGENERATE_NODE:
            node = DoubleVector3(*self.ECLIPTIC_RIGHT)
        node = node.normalized
        y = DoubleVector3.dot(DoubleVector3.cross(node, self._periapsis_dir), self._normal)
        x = DoubleVector3.dot(node, self._periapsis_dir)
        return _wrap_two_pi(math.atan2(y, x))

    # ========== GEOMETRY ==========
    @property
    def periapsis_distance(self) -> float:
        e = self._eccentricity
        if e == 1.0:
            return self._a_param
        return abs(self._a_param) * abs(1.0 - e)

    @property
    def apoapsis_distance(self) -> float:
        """Apoapsis distance; infinite for open orbits."""
        if self._eccentricity >= 1.0:
            return math.inf
        return self._a_param * (1.0 + self._eccentricity)

    @property
    def semi_minor_axis(self) -> float:
        e = self._eccentricity
        if e < 1.0:
            return self._a_param * math.sqrt(1.0 - e * e)
        elif e > 1.0:
            return abs(self._a_param) * math.sqrt(e * e - 1.0)
        return 0.0

    @property
    def focal_parameter(self) -> float:
        """Semi-latus rectum p."""
        e = self._eccentricity
        if e < 1.0:
            return self._a_param * (1.0 - e * e)
        elif e > 1.0:
            return abs(self._a_param) * (e * e - 1.0)
        return 2.0 * self._a_param

    @property
    def period(self) -> float:
        """Orbital period; infinite for open orbits and 0 when invalid."""
        if not self.is_valid_orbit:
            return 0.0
        if self._eccentricity >= 1.0:
            return math.inf
        return PI_2 / self._mean_motion

    @property
    def specific_energy(self) -> float:
        """Specific orbital energy, -mu / (2a); 0 for a parabola."""
        if self._eccentricity == 1.0 or self._a_param == 0.0:
            return 0.0
        return -self.mu / (2.0 * self._a_param)

    def position_at_true_anomaly(self, true_anomaly: float) -> DoubleVector3:
        """
        Position relative to the attractor at the given true anomaly.

        Returns the zero vector for an invalid orbit or for anomalies an
        open orbit never reaches (beyond its asymptotes).
        """
        p = self.focal_parameter
        denom = 1.0 + self._eccentricity * math.cos(true_anomaly)
        if not self.is_valid_orbit or p <= 0.0 or denom <= 0.0:
            return DoubleVector3.zero()
        r = p / denom
        return (self._periapsis_dir * (r * math.cos(true_anomaly))
                + self._minor_dir * (r * math.sin(true_anomaly)))

    def velocity_at_true_anomaly(self, true_anomaly: float) -> DoubleVector3:
        p = self.focal_parameter
        if not self.is_valid_orbit or p <= 0.0:
            return DoubleVector3.zero()
        k = math.sqrt(self.mu / p)
        return (self._periapsis_dir * (-k * math.sin(true_anomaly))
                + self._minor_dir * (k * (self._eccentricity + math.cos(true_anomaly))))

    def _position_at_eccentric_anomaly(self, ecc: float) -> DoubleVector3:
        e = self._eccentricity
        a = abs(self._a_param)
        if e < 1.0:
            return (self._periapsis_dir * (a * (math.cos(ecc) - e))
                    + self._minor_dir * (a * math.sqrt(1.0 - e * e) * math.sin(ecc)))
        return (self._periapsis_dir * (a * (e - math.cosh(ecc)))
                + self._minor_dir * (a * math.sqrt(e * e - 1.0) * math.sinh(ecc)))

    def _velocity_at_eccentric_anomaly(self, ecc: float) -> DoubleVector3:
        e = self._eccentricity
        a = abs(self._a_param)
        if e < 1.0:
            r = a * (1.0 - e * math.cos(ecc))
            k = math.sqrt(self.mu * a) / r
            return (self._periapsis_dir * (-k * math.sin(ecc))
                    + self._minor_dir * (k * math.sqrt(1.0 - e * e) * math.cos(ecc)))
        r = a * (e * math.cosh(ecc) - 1.0)
        k = math.sqrt(self.mu * a) / r
        return (self._periapsis_dir * (-k * math.sinh(ecc))
                + self._minor_dir * (k * math.sqrt(e * e - 1.0) * math.cosh(ecc)))

    def _state_at_mean_anomaly(self, mean: float):
        e = self._eccentricity
        if e < 1.0:
            mean = _wrap_two_pi(mean)
        ecc = kepler.convert_mean_to_eccentric_anomaly(mean, e)
        nu = kepler.convert_eccentric_to_true_anomaly(ecc, e)
        if e == 1.0:
            return self.position_at_true_anomaly(nu), self.velocity_at_true_anomaly(nu), nu
        return (self._position_at_eccentric_anomaly(ecc),
                self._velocity_at_eccentric_anomaly(ecc), nu)

    def get_ascending_node(self) -> Optional[DoubleVector3]:
        """
        Position (relative to the attractor) where the body crosses the
        ecliptic heading north, or None when the orbit lies in the ecliptic
        or never reaches the node.
        """
        return self._node_position(ascending=True)

    def get_descending_node(self) -> Optional[DoubleVector3]:
        return self._node_position(ascending=False)

    def _node_position(self, ascending: bool) -> Optional[DoubleVector3]:
        if not self.is_valid_orbit:
            return None
        node = self._node_direction()
        if node.magnitude < self._DEGENERATE_NODE:
            return None
        if not ascending:
            node = -node
        nu = math.atan2(DoubleVector3.dot(node, self._minor_dir),
                        DoubleVector3.dot(node, self._periapsis_dir))
        if 1.0 + self._eccentricity * math.cos(nu) <= 0.0:
            return None
        return self.position_at_true_anomaly(nu)

    def get_orbit_points(self, points_count: Optional[int] = None,
                         origin: Optional[VectorLike] = None,
                         max_distance: Optional[float] = None) -> np.ndarray:
        """
        Sample the orbit path.

        Parameters
        ----------
        points_count : int, optional
            Number of samples. Default: config.DEFAULT_ORBIT_POINTS
        origin : DoubleVector3 or array-like, optional
            Offset added to every point (e.g. the attractor position)
        max_distance : float, optional
            Clip the path to points within this distance of the attractor.
            Default: the whole ellipse for closed orbits, ten periapsis
            distances for open ones

        Returns
        -------
        np.ndarray
            Array of shape (points_count, 3); shape (0, 3) when the orbit
            is invalid, ``points_count < 2``, or the orbit never comes
            within ``max_distance``
        """
        if points_count is None:
            points_count = config.DEFAULT_ORBIT_POINTS
        if not self.is_valid_orbit or points_count < 2:
            return np.empty((0, 3))
        offset = DoubleVector3.zero() if origin is None else _as_vector(origin)

        e = self._eccentricity
        q = self.periapsis_distance
        if e < 1.0 and (max_distance is None or self.apoapsis_distance < max_distance):
            points = [self._position_at_eccentric_anomaly(ecc)
                      for ecc in np.linspace(0.0, PI_2, points_count)]
        else:
            if max_distance is None:
                max_distance = self._OPEN_ORBIT_EXTENT * q
            if max_distance < q:
                return np.empty((0, 3))
            max_angle = kepler.calc_true_anomaly_for_distance(max_distance, e, self._a_param, q)
            points = [self.position_at_true_anomaly(nu)
                      for nu in np.linspace(-max_angle, max_angle, points_count)]
        return np.array([(p + offset).to_tuple() for p in points])

    # ========== MUTATION ==========
    def set_mean_anomaly(self, value: float, deg: bool = False):
        """
        Set the mean anomaly and recompute the full state.

        Ignored (with a debug log) while the orbit is not valid.

        Parameters
        ----------
        value : float
            New mean anomaly, radians unless ``deg`` is True
        deg : bool, optional
            Interpret ``value`` as degrees
        """
        if not self.is_valid_orbit:
            logger.debug("Ignoring mean anomaly update on %s orbit", self._status.name)
            return
        self._mean_anomaly = float(value) * DEG2RAD if deg else float(value)
        self._recalculate('mean')

    def set_true_anomaly(self, value: float, deg: bool = False):
        if not self.is_valid_orbit:
            logger.debug("Ignoring true anomaly update on %s orbit", self._status.name)
            return
        nu = float(value) * DEG2RAD if deg else float(value)
        nu = math.fmod(nu, PI_2)
        if self._eccentricity < 1.0 and nu < 0.0:
            nu += PI_2
        self._recalculate('true', nu)

    def set_eccentric_anomaly(self, value: float, deg: bool = False):
        if not self.is_valid_orbit:
            logger.debug("Ignoring eccentric anomaly update on %s orbit", self._status.name)
            return
        ecc = float(value) * DEG2RAD if deg else float(value)
        if self._eccentricity < 1.0:
            ecc = _wrap_two_pi(ecc)
        self._recalculate('eccentric', ecc)

    def update_by_time(self, delta_time: float):
        """Advance the mean anomaly by ``mean_motion * delta_time``."""
        if not self.is_valid_orbit:
            logger.debug("Skipping time update on %s orbit", self._status.name)
            return
        self._mean_anomaly += self._mean_motion * delta_time
        self._recalculate('mean')

    def get_current_orbit_time(self) -> float:
        """
        Time since periapsis passage, ``M / n``.

        Negative before periapsis on open orbits; 0 for invalid orbits.
        """
        if not self.is_valid_orbit or self._mean_motion <= 0.0:
            return 0.0
        return self._mean_anomaly / self._mean_motion

    def set_eccentricity(self, eccentricity: float):
        """
        Change the eccentricity keeping the periapsis distance, the plane
        and the mean anomaly; the semi-major axis is re-derived with the
        sign of the new branch.
        """
        if not self.is_valid_orbit:
            logger.debug("Ignoring eccentricity update on %s orbit", self._status.name)
            return
        q = self.periapsis_distance
        e = abs(float(eccentricity))
        if e < 1.0:
            a = q / (1.0 - e)
        elif e > 1.0:
            a = -q / (e - 1.0)
        else:
            a = q
        self._eccentricity = e
        self._a_param = a
        self._recalculate('mean')

    _EDITABLE_ELEMENTS = {
        'eccentricity': '_eccentricity',
        'semi_major_axis': '_a_param',
        'mean_anomaly': '_mean_anomaly',
        'attractor_mass': '_attractor_mass',
        'g_const': '_g_const',
    }

    def update_elements(self, **elements):
        """
        Overwrite raw elements and recompute.

        No consistency repair is attempted: for example moving the
        eccentricity across 1 without flipping the sign of the semi-major
        axis leaves the orbit INVALID until the caller fixes it.

        Parameters
        ----------
        **elements
            Any of eccentricity, semi_major_axis, mean_anomaly [rad],
            attractor_mass, g_const
        """
        for key, value in elements.items():
            attr = self._EDITABLE_ELEMENTS.get(key)
            if attr is None:
                validation_error(f"Unknown orbital element '{key}'. "
                                 f"Valid elements: {list(self._EDITABLE_ELEMENTS)}", TypeError)
                continue
            setattr(self, attr, float(value))
        self._recalculate('mean')

    def recalculate_from_state_vectors(self, position: VectorLike, velocity: VectorLike):
        """Re-derive all elements from a position/velocity pair relative to the attractor."""
        r = _as_vector(position)
        v = _as_vector(velocity)
        mu = self.mu
        dist = r.magnitude
        if not (mu > 0.0 and dist > 0.0 and math.isfinite(dist) and math.isfinite(v.sqr_magnitude)):
            self._a_param = math.nan
            self._recalculate()
            return

        h = DoubleVector3.cross(r, v)
        normal = h.normalized
        if normal.sqr_magnitude < 0.99:
            # Radial motion, no orbital plane
            normal = DoubleVector3.cross(r, DoubleVector3(*self.ECLIPTIC_UP)).normalized
            if normal.sqr_magnitude < 0.99:
                normal = DoubleVector3.cross(r, DoubleVector3(*self.ECLIPTIC_RIGHT)).normalized
            ecc_vector = DoubleVector3.zero()
        else:
            ecc_vector = DoubleVector3.cross(v, h) / mu - r / dist

        e = ecc_vector.magnitude
        if e > self._CIRCULAR_ECCENTRICITY:
            periapsis_dir = ecc_vector / e
        else:
            e = 0.0
            periapsis_dir = r / dist
        self._set_basis(periapsis_dir, normal)

        p = h.sqr_magnitude / mu
        self._eccentricity = e
        self._a_param = p / 2.0 if e == 1.0 else p / (1.0 - e * e)

        nu = math.atan2(DoubleVector3.dot(r, self._minor_dir), DoubleVector3.dot(r, self._periapsis_dir))
        if e < 1.0:
            nu = _wrap_two_pi(nu)
        self._recalculate('true', nu)

    def set_auto_circle_orbit(self):
        """
        Collapse to the circular orbit through the current position.

        Sets e = 0 and a = |position|, keeps the orbital plane and the
        periapsis reference direction, so the current position is
        unchanged. The velocity becomes the circular velocity.
        """
        if not self.is_valid_orbit:
            logger.debug("Cannot circularize %s orbit", self._status.name)
            return
        r = self._position
        nu = _wrap_two_pi(math.atan2(DoubleVector3.dot(r, self._minor_dir),
                                     DoubleVector3.dot(r, self._periapsis_dir)))
        self._eccentricity = 0.0
        self._a_param = r.magnitude
        self._recalculate('true', nu)

    def inverse_velocity(self):
        """Reverse the direction of motion at the current position."""
        if not self.is_valid_orbit:
            return
        self.recalculate_from_state_vectors(self._position, -self._velocity)

    def inverse_position(self):
        """Mirror the position through the attractor, keeping the velocity."""
        if not self.is_valid_orbit:
            return
        self.recalculate_from_state_vectors(-self._position, self._velocity)

    def reset(self):
        """Drop all elements and return to UNINITIALIZED, keeping the attractor."""
        logger.debug("Resetting orbit state")
        self._init_state(self._attractor_mass, self._g_const, self._attractor_position)

    def update_view(self) -> DoubleVector3:
        """
        Hand the current state to the view layer.

        Returns
        -------
        DoubleVector3
            World position (attractor position plus relative position);
            clears ``view_dirty``
        """
        self._view_dirty = False
        return self.world_position

    def copy(self) -> "OrbitState":
        return copy.deepcopy(self)

    # ========== EXPORT ==========
    def to_dict(self) -> dict:
        """Element set in constructor form (degrees)."""
        return {
            'eccentricity': self._eccentricity,
            'semi_major_axis': self._a_param,
            'mean_anomaly_deg': self._mean_anomaly * RAD2DEG,
            'inclination_deg': self.inclination * RAD2DEG,
            'arg_of_perifocus_deg': self.argument_of_perifocus * RAD2DEG,
            'ascending_node_deg': self.ascending_node_longitude * RAD2DEG,
            'attractor_mass': self._attractor_mass,
            'g_const': self._g_const,
            'attractor_position': self._attractor_position.to_tuple(),
        }

    def _default_times(self, n_points: int) -> np.ndarray:
        if self._eccentricity < 1.0:
            return np.linspace(0.0, self.period, n_points)
        q = self.periapsis_distance
        nu_max = kepler.calc_true_anomaly_for_distance(self._OPEN_ORBIT_EXTENT * q, self._eccentricity,
                                                       self._a_param, q)
        ecc_max = kepler.convert_true_to_eccentric_anomaly(nu_max, self._eccentricity)
        t_max = kepler.convert_eccentric_to_mean_anomaly(ecc_max, self._eccentricity) / self._mean_motion
        return np.linspace(-t_max, t_max, n_points)

    def to_dataframe(self, times: Optional[np.ndarray] = None,
                     n_points: Optional[int] = None) -> pd.DataFrame:
        """
        Tabulate the state along the orbit without mutating it.

        Parameters
        ----------
        times : array-like, optional
            Times since periapsis passage. Default: one period for closed
            orbits, the arc within ten periapsis distances for open ones
        n_points : int, optional
            Number of samples when times are not given.
            Default: config.DEFAULT_PLOT_POINTS

        Returns
        -------
        pd.DataFrame
            Columns time, x, y, z, vx, vy, vz, nu; empty for invalid orbits
        """
        columns = ['time', 'x', 'y', 'z', 'vx', 'vy', 'vz', 'nu']
        if not self.is_valid_orbit:
            return pd.DataFrame(columns=columns)
        if times is None:
            times = self._default_times(n_points or config.DEFAULT_PLOT_POINTS)
        else:
            times = np.asarray(times, dtype=float)

        rows = []
        for t in times:
            pos, vel, nu = self._state_at_mean_anomaly(self._mean_motion * t)
            rows.append((t, pos.x, pos.y, pos.z, vel.x, vel.y, vel.z, nu))
        return pd.DataFrame(rows, columns=columns)

    # ========== PLOTTING ==========
    def plot_3d(self, n_points: Optional[int] = None, show_attractor: bool = True,
                attractor_color: Optional[str] = None, orbit_color: Optional[str] = None,
                attractor_opacity: Optional[float] = None) -> go.Figure:
        """
        Create a 3D plot of the orbit path in world coordinates.

        Parameters:
            n_points: Number of points along the path (default: config.DEFAULT_PLOT_POINTS)
            show_attractor: Whether to mark the attractor (default: True)
            attractor_color: Color of the attractor marker (default: config.DEFAULT_BODY_COLOR)
            orbit_color: Color of the orbit line (default: config.DEFAULT_TRAJ_COLOR)
            attractor_opacity: Opacity of the attractor marker (default: config.DEFAULT_BODY_OPACITY)

        Returns:
            Plotly Figure object
        """
        fig = go.Figure()
        origin = self._attractor_position

        if show_attractor:
            fig.add_trace(go.Scatter3d(
                x=[origin.x], y=[origin.y], z=[origin.z],
                mode='markers',
                marker=dict(size=10, color=attractor_color or config.DEFAULT_BODY_COLOR,
                            opacity=attractor_opacity if attractor_opacity is not None
                            else config.DEFAULT_BODY_OPACITY),
                name='Attractor',
                hoverinfo='name'
            ))

        self.add_to_plot(fig, n_points=n_points, color=orbit_color or config.DEFAULT_TRAJ_COLOR,
                         name='Orbit')

        body = self.world_position
        fig.add_trace(go.Scatter3d(
            x=[body.x], y=[body.y], z=[body.z],
            mode='markers',
            marker=dict(size=4, color=orbit_color or config.DEFAULT_TRAJ_COLOR),
            name='Body'
        ))

        fig.update_layout(
            scene=dict(
                xaxis_title='X',
                yaxis_title='Y',
                zaxis_title='Z',
                aspectmode='data'
            ),
            title='Kepler Orbit',
            showlegend=True
        )
        return fig

    def add_to_plot(self, fig: go.Figure, n_points: Optional[int] = None,
                    color: Optional[str] = None, name: Optional[str] = None,
                    **kwargs) -> go.Figure:
        """
        Add this orbit path to an existing Plotly figure.

        Parameters:
            fig: Existing Plotly Figure object
            n_points: Number of points along the path (default: config.DEFAULT_PLOT_POINTS)
            color: Color of the orbit line (default: config.DEFAULT_TRAJ_COLOR_ADD)
            name: Legend name (default: 'Orbit N')
            **kwargs: Additional arguments passed to Scatter3d

        Returns:
            Updated Plotly Figure object (same object, modified in place)
        """
        points = self.get_orbit_points(n_points or config.DEFAULT_PLOT_POINTS,
                                       origin=self._attractor_position)
        if name is None:
            n_existing = sum(1 for trace in fig.data
                             if isinstance(trace, go.Scatter3d) and trace.mode == 'lines')
            name = f'Orbit {n_existing + 1}'

        fig.add_trace(go.Scatter3d(
            x=points[:, 0],
            y=points[:, 1],
            z=points[:, 2],
            mode='lines',
            line=dict(color=color or config.DEFAULT_TRAJ_COLOR_ADD, width=3),
            name=name,
            hovertemplate='x: %{x:.1f}<br>y: %{y:.1f}<br>z: %{z:.1f}<extra></extra>',
            **kwargs
        ))
        return fig

    # ========== BATCH OPERATIONS ==========
    class Batch:
        """Operations over lists of OrbitState objects"""

        @staticmethod
        def update_by_time(orbits, delta_time):
            """Advance every orbit by the same time step"""
            for orbit in orbits:
                orbit.update_by_time(delta_time)

        @staticmethod
        def positions(orbits):
            """Positions relative to each attractor, shape (n, 3)"""
            if not orbits:
                return np.empty((0, 3))
            return np.array([o.position.to_tuple() for o in orbits])

        @staticmethod
        def world_positions(orbits):
            if not orbits:
                return np.empty((0, 3))
            return np.array([o.world_position.to_tuple() for o in orbits])

        @staticmethod
        def is_valid(orbits):
            return np.array([o.is_valid_orbit for o in orbits], dtype=bool)

        @staticmethod
        def to_dataframe(orbits, index=None):
            """
            Tabulate the element sets of many orbits.

            Parameters
            ----------
            orbits : list of OrbitState
            index : array-like, optional
                Index for the DataFrame (e.g. body names).
                If None, uses integer index.

            Returns
            -------
            pd.DataFrame
                One row per orbit with the ``to_dict`` elements plus
                status, mean_motion and period

            Raises
            ------
            ValueError
                If index length doesn't match number of orbits
            """
            if not orbits:
                return pd.DataFrame()
            if index is not None and len(index) != len(orbits):
                raise ValueError(
                    f"Index length ({len(index)}) must match "
                    f"number of orbits ({len(orbits)})"
                )
            rows = []
            for orbit in orbits:
                row = orbit.to_dict()
                row.pop('attractor_position')
                row['status'] = orbit.status.value
                row['mean_motion'] = orbit.mean_motion
                row['period'] = orbit.period
                rows.append(row)
            return pd.DataFrame(rows, index=index)

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        return (f"OrbitState(e={self._eccentricity}, a={self._a_param}, "
                f"M={self._mean_anomaly}, status={self._status.name})")

    def __str__(self):
        lines = [f"OrbitState [{self._status.name}]"]
        lines.append(f"  e  = {self._eccentricity:.6f}")
        lines.append(f"  a  = {self.semi_major_axis:.6g}")
        lines.append(f"  i  = {self.inclination * RAD2DEG:.4f} deg")
        lines.append(f"  Ω  = {self.ascending_node_longitude * RAD2DEG:.4f} deg")
        lines.append(f"  ω  = {self.argument_of_perifocus * RAD2DEG:.4f} deg")
        lines.append(f"  M  = {self._mean_anomaly:.6f} rad")
        lines.append(f"  n  = {self._mean_motion:.6g} rad/time")
        return "\n".join(lines)
