"""
Test suite for the Simulation update loop.
"""

import math
import pytest
import numpy as np

from bigworld import (Simulation, OrbitState, FloatingOriginFrame, NativeTransform,
                      PlacementMode, DoubleVector3)


@pytest.fixture
def planet_orbit():
    """Circular orbit of radius 1e8 around a star at the origin."""
    return OrbitState(0.0, 1.0e8, attractor_mass=1.0e20, g_const=1.0)


class TestSimulationStep:
    """Order and effects of a single step."""

    def test_step_places_far_body(self, planet_orbit):
        """Test a distant orbiting body is rescaled and written to its target."""
        sim = Simulation()
        target = NativeTransform(name="planet")
        sim.add_body("planet", planet_orbit, bounds_width=1.0e6, target=target)
        results = sim.step(1.0)
        result = results["planet"]
        assert result.mode is PlacementMode.RESCALED
        assert math.isclose(np.linalg.norm(target.position), 148500.0, rel_tol=1e-6)
        assert math.isclose(result.distance, 1.0e8, rel_tol=1e-9)

    def test_step_advances_orbit(self, planet_orbit):
        """Test the orbit moves by mean_motion * dt * time_scale."""
        sim = Simulation(time_scale=10.0)
        sim.add_body("planet", planet_orbit)
        M0 = planet_orbit.mean_anomaly
        sim.step(2.0)
        assert math.isclose(planet_orbit.mean_anomaly, M0 + planet_orbit.mean_motion * 20.0, rel_tol=1e-12)
        assert sim.time == 20.0

    def test_view_updated(self, planet_orbit):
        """Test the step consumes the orbit's dirty flag."""
        sim = Simulation()
        body = sim.add_body("planet", planet_orbit, bounds_width=1.0)
        sim.step(1.0)
        assert not planet_orbit.view_dirty
        assert body.placement.position == planet_orbit.world_position

    def test_rebase_before_placement(self, planet_orbit):
        """Test placement sees the rebased observer in the same step."""
        frame = FloatingOriginFrame(world_position=(1.0e8, 0.0, 0.0))
        sim = Simulation(frame)
        sim.add_body("planet", planet_orbit, bounds_width=1.0)
        frame.native.translate((6000.0, 0.0, 0.0))
        result = sim.step(0.0)["planet"]
        assert frame.rebase_count == 1
        # planet is 6000 units behind the observer and placed directly
        assert result.mode is PlacementMode.DIRECT
        assert np.allclose(result.native_position, [-6000.0, 0.0, 0.0])

    def test_moon_follows_planet(self, planet_orbit):
        """Test a satellite's attractor position tracks its parent body."""
        sim = Simulation()
        sim.add_body("planet", planet_orbit)
        moon_orbit = OrbitState(0.1, 4.0e5, attractor_mass=7.0e15, g_const=1.0)
        moon = sim.add_body("moon", moon_orbit, attractor="planet")
        for _ in range(3):
            sim.step(100.0)
        assert moon.orbit.attractor_position == planet_orbit.world_position
        assert moon.orbit.world_position == planet_orbit.world_position + moon_orbit.position

    def test_invalid_body_does_not_stop_loop(self, planet_orbit):
        """Test an invalid orbit is skipped while others advance."""
        sim = Simulation()
        sim.add_body("broken", OrbitState(0.5, 100.0, attractor_mass=0.0))
        sim.add_body("planet", planet_orbit)
        M0 = planet_orbit.mean_anomaly
        sim.step(1.0)
        assert planet_orbit.mean_anomaly > M0


class TestSimulationBodies:
    """Body registry."""

    def test_duplicate_name(self, planet_orbit):
        """Test names are unique."""
        sim = Simulation()
        sim.add_body("planet", planet_orbit)
        with pytest.raises(ValueError):
            sim.add_body("planet", planet_orbit.copy())

    def test_unknown_body(self):
        """Test lookup of a missing body."""
        with pytest.raises(KeyError):
            Simulation().get_body("nowhere")
