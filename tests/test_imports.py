"""Smoke tests to verify package imports work."""

def test_package_imports():
    """Test that all main classes can be imported."""
    from bigworld import (DoubleVector3, DoubleMatrix4x4, OrbitState,
                          FloatingOriginFrame, DistancePlacement, Simulation)
    assert DoubleVector3 is not None
    assert DoubleMatrix4x4 is not None
    assert OrbitState is not None
    assert FloatingOriginFrame is not None
    assert DistancePlacement is not None
    assert Simulation is not None

def test_version_exists():
    """Test that version is defined."""
    import bigworld
    assert hasattr(bigworld, '__version__')
    assert bigworld.__version__ == "0.1.0"

def test_can_create_vector():
    """Test basic DoubleVector3 creation."""
    from bigworld import DoubleVector3
    v = DoubleVector3(1.0, 2.0, 3.0)
    assert v.y == 2.0

def test_can_create_orbit():
    """Test basic OrbitState creation."""
    from bigworld import OrbitState
    orbit = OrbitState(0.1, 1000.0, attractor_mass=1e6, g_const=1.0)
    assert orbit.is_valid_orbit

def test_can_create_frame():
    """Test basic FloatingOriginFrame creation."""
    from bigworld import FloatingOriginFrame
    frame = FloatingOriginFrame()
    assert frame.universe_position.sqr_magnitude == 0.0
