"""
Test suite for the OrbitState class.

Tests include:
1. Validity state machine
2. Consistency of derived state (vis-viva, periodicity, angles)
3. State vector roundtrips and circularization
4. Export to dict, DataFrame and Plotly figures
"""

import math
import pytest
import numpy as np
import pandas as pd
import plotly.graph_objects as go

from bigworld import OrbitState, OrbitStatus, DoubleVector3, temp_config
from bigworld.kepler import DEG2RAD


# =============================================================================
# Test Configuration
# =============================================================================

MASS = 1.0e6
G = 1.0
MU = MASS * G

RTOL = 1e-9


def _orbit(e=0.3, a=1000.0, M=45.0, i=30.0, w=40.0, node=50.0, **kwargs):
    kwargs.setdefault('attractor_mass', MASS)
    kwargs.setdefault('g_const', G)
    return OrbitState(e, a, M, i, w, node, **kwargs)


def _vis_viva_residual(orbit):
    r = orbit.position.magnitude
    v2 = orbit.velocity.sqr_magnitude
    inv_a = 0.0 if orbit.eccentricity == 1.0 else 1.0 / orbit.semi_major_axis
    return abs(v2 - orbit.mu * (2.0 / r - inv_a)) / v2


@pytest.fixture
def ellipse():
    return _orbit()


@pytest.fixture
def hyperbola():
    return _orbit(e=1.5, a=-1000.0, M=30.0)


@pytest.fixture
def parabola():
    return _orbit(e=1.0, a=500.0, M=0.0)


# =============================================================================
# Validity
# =============================================================================

class TestValidity:
    """Valid and invalid element sets."""

    def test_valid_construction(self, ellipse):
        """Test a consistent element set is VALID."""
        assert ellipse.status is OrbitStatus.VALID
        assert ellipse.is_valid_orbit

    def test_zero_mass_invalid(self):
        """Test attractor mass 0 is reported invalid after construction."""
        orbit = _orbit(attractor_mass=0.0)
        assert not orbit.is_valid_orbit
        assert orbit.status is OrbitStatus.INVALID
        assert orbit.position.is_exactly(DoubleVector3.zero())
        assert orbit.velocity.is_exactly(DoubleVector3.zero())
        assert orbit.mean_motion == 0.0
        assert orbit.period == 0.0

    @pytest.mark.parametrize("e,a,g", [
        (-0.1, 1000.0, 1.0),     # negative eccentricity
        (0.5, -1000.0, 1.0),     # ellipse with negative a
        (1.5, 1000.0, 1.0),      # hyperbola with positive a
        (0.5, 1000.0, -1.0),     # negative gravitational constant
        (0.5, math.nan, 1.0),
    ])
    def test_inconsistent_elements(self, e, a, g):
        """Test inconsistent sets never raise and flip the validity flag."""
        orbit = _orbit(e=e, a=a, g_const=g)
        assert not orbit.is_valid_orbit

    def test_setters_ignored_when_invalid(self):
        """Test anomaly setters and time updates are no-ops on invalid orbits."""
        orbit = _orbit(attractor_mass=0.0)
        before = orbit.mean_anomaly
        orbit.set_mean_anomaly(1.0)
        orbit.set_true_anomaly(1.0)
        orbit.update_by_time(100.0)
        assert orbit.mean_anomaly == before
        assert orbit.get_current_orbit_time() == 0.0

    def test_crossing_parabolic_boundary(self, ellipse):
        """Test moving e across 1 without fixing a's sign invalidates, and fixing it restores."""
        ellipse.update_elements(eccentricity=1.5)
        assert ellipse.status is OrbitStatus.INVALID
        ellipse.update_elements(semi_major_axis=-1000.0)
        assert ellipse.status is OrbitStatus.VALID

    def test_set_eccentricity_keeps_periapsis(self, ellipse):
        """Test set_eccentricity re-derives a with the right sign."""
        q = ellipse.periapsis_distance
        ellipse.set_eccentricity(1.5)
        assert ellipse.is_valid_orbit
        assert ellipse.semi_major_axis < 0.0
        assert math.isclose(ellipse.periapsis_distance, q, rel_tol=RTOL)

    def test_unknown_element(self, ellipse):
        """Test unknown element names are rejected."""
        with pytest.raises(TypeError):
            ellipse.update_elements(mass=5.0)

    def test_reset(self, ellipse):
        """Test reset returns to UNINITIALIZED."""
        ellipse.reset()
        assert ellipse.status is OrbitStatus.UNINITIALIZED
        assert not ellipse.is_valid_orbit

    def test_inbound_near_parabolic_flyby(self):
        """Test an inbound flyby just above e = 1 stays valid and near the attractor."""
        orbit = OrbitState(1.001, -1000.0, math.degrees(-1.0),
                           attractor_mass=1000.0, g_const=0.1)
        assert orbit.is_valid_orbit
        assert orbit.anomaly_converged
        assert orbit.eccentric_anomaly < 0.0
        r = orbit.position.magnitude
        assert orbit.periapsis_distance <= r < 1.0e4
        assert math.isclose(r, 1000.0 * (1.001 * math.cosh(orbit.eccentric_anomaly) - 1.0),
                            rel_tol=RTOL)

    def test_unconverged_hyperbolic_solve_invalidates(self):
        """Test a hyperbolic solve stopped by the iteration cap flags the orbit invalid."""
        with temp_config(HYPERBOLIC_MAX_ITERATIONS=2):
            orbit = _orbit(e=1.1, a=-1000.0, M=math.degrees(50.0))
        assert orbit.status is OrbitStatus.INVALID
        assert not orbit.anomaly_converged
        assert orbit.position.is_exactly(DoubleVector3.zero())
        assert orbit.mean_motion == 0.0

        orbit.update_elements(mean_anomaly=50.0)
        assert orbit.is_valid_orbit
        assert orbit.anomaly_converged


# =============================================================================
# Derived state
# =============================================================================

class TestDerivedState:
    """Derived quantities agree with each other."""

    @pytest.mark.parametrize("fixture", ["ellipse", "hyperbola", "parabola"])
    def test_vis_viva(self, fixture, request):
        """Test speed satisfies vis-viva on every branch, before and after a time step."""
        orbit = request.getfixturevalue(fixture)
        assert _vis_viva_residual(orbit) < RTOL
        orbit.update_by_time(3.0)
        assert _vis_viva_residual(orbit) < RTOL

    @pytest.mark.parametrize("fixture", ["ellipse", "hyperbola", "parabola"])
    def test_angular_momentum_along_normal(self, fixture, request):
        """Test r x v points along the orbit normal."""
        orbit = request.getfixturevalue(fixture)
        h = DoubleVector3.cross(orbit.position, orbit.velocity).normalized
        assert h == orbit.orbit_normal

    def test_mean_motion(self, ellipse, hyperbola):
        """Test n = sqrt(mu / |a|^3)."""
        assert math.isclose(ellipse.mean_motion, math.sqrt(MU / 1000.0 ** 3), rel_tol=RTOL)
        assert math.isclose(hyperbola.mean_motion, math.sqrt(MU / 1000.0 ** 3), rel_tol=RTOL)

    def test_parabola_periapsis(self, parabola):
        """Test a parabola at M = 0 sits at periapsis with escape speed."""
        assert math.isclose(parabola.position.magnitude, 500.0, rel_tol=RTOL)
        assert math.isclose(parabola.velocity.magnitude, math.sqrt(2.0 * MU / 500.0), rel_tol=RTOL)
        assert parabola.semi_major_axis == math.inf
        assert parabola.period == math.inf

    def test_period_returns_to_start(self, ellipse):
        """Test advancing one period returns to the same position."""
        start = ellipse.position
        ellipse.update_by_time(ellipse.period)
        assert DoubleVector3.distance(ellipse.position, start) < 1e-6 * start.magnitude

    def test_mean_anomaly_wrapped(self, ellipse):
        """Test elliptic mean anomaly stays in [0, 2pi)."""
        for _ in range(7):
            ellipse.update_by_time(ellipse.period / 3.0)
            assert 0.0 <= ellipse.mean_anomaly < 2.0 * np.pi

    def test_hyperbolic_mean_anomaly_not_wrapped(self, hyperbola):
        """Test hyperbolic mean anomaly grows without bound."""
        hyperbola.update_by_time(1e4)
        assert hyperbola.mean_anomaly > 2.0 * np.pi

    def test_current_orbit_time(self, ellipse):
        """Test time since periapsis is M / n."""
        assert math.isclose(ellipse.get_current_orbit_time(),
                            ellipse.mean_anomaly / ellipse.mean_motion, rel_tol=RTOL)

    def test_set_mean_anomaly_degrees(self, ellipse):
        """Test degree input is converted with the fixed constant."""
        ellipse.set_mean_anomaly(90.0, deg=True)
        assert math.isclose(ellipse.mean_anomaly, 90.0 * DEG2RAD, rel_tol=RTOL)

    def test_anomaly_setters_agree(self, ellipse):
        """Test setting any anomaly gives the same state."""
        ellipse.set_mean_anomaly(1.0)
        position = ellipse.position
        nu = ellipse.true_anomaly
        ecc = ellipse.eccentric_anomaly
        ellipse.set_true_anomaly(nu)
        assert ellipse.position == position
        ellipse.set_eccentric_anomaly(ecc)
        assert ellipse.position == position
        assert math.isclose(ellipse.mean_anomaly, 1.0, rel_tol=1e-9)

    def test_orientation_angles(self, ellipse):
        """Test inclination, node and periapsis angles read back."""
        assert math.isclose(ellipse.inclination, 30.0 * DEG2RAD, rel_tol=RTOL)
        assert math.isclose(ellipse.ascending_node_longitude, 50.0 * DEG2RAD, rel_tol=RTOL)
        assert math.isclose(ellipse.argument_of_perifocus, 40.0 * DEG2RAD, rel_tol=RTOL)

    def test_energy_sign(self, ellipse, hyperbola, parabola):
        """Test bound orbits have negative energy, open ones positive."""
        assert ellipse.specific_energy < 0.0
        assert hyperbola.specific_energy > 0.0
        assert parabola.specific_energy == 0.0


# =============================================================================
# State vectors
# =============================================================================

class TestStateVectors:
    """Cartesian state in and out."""

    @pytest.mark.parametrize("fixture", ["ellipse", "hyperbola"])
    def test_state_vector_roundtrip(self, fixture, request):
        """Test elements -> state vectors -> elements."""
        orbit = request.getfixturevalue(fixture)
        rebuilt = OrbitState.from_state_vectors(orbit.position, orbit.velocity, MASS, G)
        assert rebuilt.is_valid_orbit
        assert math.isclose(rebuilt.eccentricity, orbit.eccentricity, rel_tol=RTOL)
        assert math.isclose(rebuilt.semi_major_axis, orbit.semi_major_axis, rel_tol=RTOL)
        assert math.isclose(rebuilt.inclination, orbit.inclination, rel_tol=RTOL)
        assert math.isclose(rebuilt.ascending_node_longitude, orbit.ascending_node_longitude, rel_tol=RTOL)
        assert math.isclose(rebuilt.argument_of_perifocus, orbit.argument_of_perifocus, rel_tol=RTOL)
        assert rebuilt.position == orbit.position
        assert rebuilt.velocity == orbit.velocity

    def test_radial_state_invalid(self):
        """Test zero angular momentum produces an invalid orbit."""
        orbit = OrbitState.from_state_vectors((100.0, 0.0, 0.0), (5.0, 0.0, 0.0), MASS, G)
        assert not orbit.is_valid_orbit

    def test_zero_mass_state_invalid(self):
        """Test state vectors around a massless attractor are invalid."""
        orbit = OrbitState.from_state_vectors((100.0, 0.0, 0.0), (0.0, 5.0, 0.0), 0.0, G)
        assert not orbit.is_valid_orbit

    def test_auto_circle_orbit(self, ellipse):
        """Test circularizing keeps the position and sets e = 0."""
        position = ellipse.position
        normal = ellipse.orbit_normal
        ellipse.set_auto_circle_orbit()
        assert ellipse.eccentricity == 0.0
        assert ellipse.position == position
        assert ellipse.orbit_normal == normal
        assert math.isclose(ellipse.semi_major_axis, position.magnitude, rel_tol=RTOL)
        assert math.isclose(ellipse.velocity.magnitude, math.sqrt(MU / position.magnitude), rel_tol=RTOL)

    def test_inverse_position(self, ellipse):
        """Test mirroring the position through the attractor keeps the velocity."""
        position = ellipse.position
        velocity = ellipse.velocity
        ellipse.inverse_position()
        assert ellipse.is_valid_orbit
        assert ellipse.position == -position
        assert ellipse.velocity == velocity

    def test_inverse_velocity(self, ellipse):
        """Test reversing the velocity keeps the position."""
        position = ellipse.position
        velocity = ellipse.velocity
        ellipse.inverse_velocity()
        assert ellipse.position == position
        assert ellipse.velocity == -velocity

    def test_attractor_offset(self, ellipse):
        """Test moving the attractor shifts only the world position."""
        relative = ellipse.position
        ellipse.attractor_position = (1e9, 0.0, 0.0)
        assert ellipse.position.is_exactly(relative)
        assert ellipse.world_position == relative + DoubleVector3(1e9, 0.0, 0.0)
        assert ellipse.attractor.position == (1e9, 0.0, 0.0)


# =============================================================================
# Geometry
# =============================================================================

class TestGeometry:
    """Path sampling and node positions."""

    def test_orbit_points_ellipse(self, ellipse):
        """Test sampled points lie between periapsis and apoapsis."""
        points = ellipse.get_orbit_points()
        assert points.shape == (50, 3)
        radii = np.linalg.norm(points, axis=1)
        assert np.all(radii >= ellipse.periapsis_distance * (1.0 - 1e-9))
        assert np.all(radii <= ellipse.apoapsis_distance * (1.0 + 1e-9))

    def test_orbit_points_hyperbola(self, hyperbola):
        """Test open orbits are clipped to the requested distance."""
        points = hyperbola.get_orbit_points(40, max_distance=5000.0)
        assert points.shape == (40, 3)
        assert np.all(np.linalg.norm(points, axis=1) <= 5000.0 * (1.0 + 1e-9))

    def test_orbit_points_empty(self, hyperbola):
        """Test invalid orbits and unreachable distances give no points."""
        assert hyperbola.get_orbit_points(max_distance=1.0).shape == (0, 3)
        assert _orbit(attractor_mass=0.0).get_orbit_points().shape == (0, 3)

    def test_orbit_points_origin(self, ellipse):
        """Test the origin offset is added to every point."""
        base = ellipse.get_orbit_points(10)
        shifted = ellipse.get_orbit_points(10, origin=(1.0, 2.0, 3.0))
        assert np.allclose(shifted - base, [1.0, 2.0, 3.0])

    def test_ascending_node(self, ellipse):
        """Test the ascending node lies in the ecliptic along the node line."""
        node = ellipse.get_ascending_node()
        assert abs(node.z) < 1e-9 * node.magnitude
        longitude = math.atan2(node.y, node.x) % (2.0 * np.pi)
        assert math.isclose(longitude, ellipse.ascending_node_longitude, rel_tol=1e-9)
        descending = ellipse.get_descending_node()
        assert DoubleVector3.dot(node, descending) < 0.0

    def test_equatorial_has_no_node(self):
        """Test an orbit in the ecliptic has no nodes."""
        orbit = _orbit(i=0.0)
        assert orbit.get_ascending_node() is None
        assert orbit.get_descending_node() is None


# =============================================================================
# View and export
# =============================================================================

class TestExport:
    """Dirty flag, dict, DataFrame and plotting."""

    def test_view_dirty(self, ellipse):
        """Test update_view clears the flag and mutations set it."""
        assert ellipse.view_dirty
        world = ellipse.update_view()
        assert not ellipse.view_dirty
        assert world == ellipse.world_position
        ellipse.update_by_time(1.0)
        assert ellipse.view_dirty

    def test_dict_roundtrip(self, ellipse):
        """Test from_dict(to_dict()) reproduces the state."""
        rebuilt = OrbitState.from_dict(ellipse.to_dict())
        assert rebuilt.position == ellipse.position
        assert rebuilt.velocity == ellipse.velocity

    def test_copy_is_independent(self, ellipse):
        """Test copies do not share state."""
        other = ellipse.copy()
        other.update_by_time(10.0)
        assert other.mean_anomaly != ellipse.mean_anomaly

    def test_to_dataframe(self, ellipse):
        """Test tabulation over one period leaves the orbit untouched."""
        M = ellipse.mean_anomaly
        df = ellipse.to_dataframe(n_points=20)
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ['time', 'x', 'y', 'z', 'vx', 'vy', 'vz', 'nu']
        assert len(df) == 20
        assert math.isclose(df['time'].iloc[-1], ellipse.period, rel_tol=RTOL)
        first = np.linalg.norm(df[['x', 'y', 'z']].iloc[0].to_numpy())
        assert math.isclose(first, ellipse.periapsis_distance, rel_tol=RTOL)
        assert ellipse.mean_anomaly == M

    def test_to_dataframe_invalid(self):
        """Test invalid orbits tabulate to an empty frame."""
        assert _orbit(attractor_mass=0.0).to_dataframe().empty

    def test_plot_3d(self, ellipse):
        """Test the figure holds attractor, path and body traces."""
        fig = ellipse.plot_3d(n_points=30)
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 3
        assert len(fig.data[1].x) == 30

    def test_add_to_plot_names(self, ellipse, hyperbola):
        """Test added paths are numbered after existing ones."""
        fig = ellipse.plot_3d(n_points=30)
        hyperbola.add_to_plot(fig, n_points=30)
        assert fig.data[-1].name == 'Orbit 2'

    def test_batch(self, ellipse, hyperbola):
        """Test batch helpers over a list of orbits."""
        orbits = [ellipse, hyperbola, _orbit(attractor_mass=0.0)]
        assert OrbitState.Batch.positions(orbits).shape == (3, 3)
        assert OrbitState.Batch.is_valid(orbits).tolist() == [True, True, False]
        df = OrbitState.Batch.to_dataframe(orbits, index=['a', 'b', 'c'])
        assert df.loc['b', 'eccentricity'] == 1.5
        assert df.loc['c', 'status'] == 'invalid'
        with pytest.raises(ValueError):
            OrbitState.Batch.to_dataframe(orbits, index=['a'])
