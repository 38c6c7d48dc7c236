"""
Test suite for FloatingOriginFrame and the NativeTransform it drives.
"""

import logging
import pytest
import numpy as np

from bigworld import FloatingOriginFrame, NativeTransform, DoubleVector3, temp_config


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def frame():
    """Observer frame at a large world offset."""
    return FloatingOriginFrame(world_position=(1.0e12, -3.0e11, 42.0))


# =============================================================================
# Rebase
# =============================================================================

class TestRebase:
    """Folding local displacement into the reference."""

    def test_no_rebase_below_threshold(self, frame):
        """Test a displacement of 4999 does not rebase."""
        frame.native.translate((4999.0, 0.0, 0.0))
        assert frame.tick() is False
        assert frame.rebase_count == 0
        assert frame.local_position == DoubleVector3(4999.0, 0.0, 0.0)

    def test_single_rebase_past_threshold(self, frame):
        """Test 4999 plus a step of 2 triggers exactly one rebase."""
        frame.native.translate((4999.0, 0.0, 0.0))
        frame.tick()
        before = frame.universe_position
        reference_before = frame.reference_position

        frame.native.translate((2.0, 0.0, 0.0))
        assert frame.tick() is True
        assert frame.rebase_count == 1
        assert frame.local_position.is_exactly(DoubleVector3.zero())
        assert np.array_equal(frame.native.position, np.zeros(3, dtype=np.float32))
        # reference absorbed the whole pre-rebase local displacement
        assert frame.reference_position == reference_before + DoubleVector3(5001.0, 0.0, 0.0)
        assert frame.universe_position == before + DoubleVector3(2.0, 0.0, 0.0)

        assert frame.tick() is False
        assert frame.rebase_count == 1

    def test_universe_position_preserved(self, frame):
        """Test many small moves accumulate exactly in double precision."""
        start = frame.universe_position
        for _ in range(1000):
            frame.native.translate((0.0, 37.5, 0.0))
            frame.tick()
        assert frame.rebase_count > 0
        assert frame.universe_position == start + DoubleVector3(0.0, 37500.0, 0.0)
        assert frame.local_position.magnitude <= frame.rebase_threshold

    def test_threshold_override(self):
        """Test the per-frame override beats the configured threshold."""
        frame = FloatingOriginFrame(rebase_threshold=10.0)
        frame.native.translate((11.0, 0.0, 0.0))
        assert frame.tick() is True

    def test_threshold_from_config(self):
        """Test the configured threshold is read at tick time."""
        frame = FloatingOriginFrame()
        frame.native.translate((11.0, 0.0, 0.0))
        with temp_config(REBASE_THRESHOLD=10.0):
            assert frame.tick() is True

    def test_rebase_logged(self, frame, caplog):
        """Test rebases are logged at debug level."""
        frame.native.translate((6000.0, 0.0, 0.0))
        with caplog.at_level(logging.DEBUG, logger="bigworld"):
            frame.tick()
        assert "rebased" in caplog.text


# =============================================================================
# Teleport and conversions
# =============================================================================

class TestWorldPosition:
    """set_world_position and native conversion."""

    def test_set_world_position(self, frame):
        """Test teleporting moves the reference and zeroes native and local."""
        frame.native.translate((100.0, 0.0, 0.0))
        frame.tick()
        frame.set_world_position(DoubleVector3(5.0, 6.0, 7.0))
        assert frame.reference_position.is_exactly(DoubleVector3(5.0, 6.0, 7.0))
        assert frame.local_position.is_exactly(DoubleVector3.zero())
        assert np.array_equal(frame.native.position, np.zeros(3, dtype=np.float32))
        assert frame.universe_position.is_exactly(DoubleVector3(5.0, 6.0, 7.0))

    def test_rebase_zeroes_root(self):
        """Test the scene root is moved back to the origin."""
        root = NativeTransform(name="root")
        frame = FloatingOriginFrame(native=root, rebase_threshold=1.0)
        root.translate((2.0, 0.0, 0.0))
        frame.tick()
        assert np.array_equal(root.position, np.zeros(3, dtype=np.float32))

    def test_to_native(self, frame):
        """Test world positions near the observer map to small float32 coordinates."""
        world = frame.universe_position + DoubleVector3(1.25, -2.5, 3.0)
        native = frame.to_native(world)
        assert native.dtype == np.float32
        assert np.allclose(native, [1.25, -2.5, 3.0])


class TestNativeTransform:
    """Single-precision scene-graph node."""

    def test_child_world_position(self):
        """Test world position accumulates through parents."""
        parent = NativeTransform(position=(10.0, 0.0, 0.0))
        child = NativeTransform(position=(11.0, 1.0, 0.0), parent=parent)
        assert child.local_position.tolist() == [1.0, 1.0, 0.0]
        assert child.root() is parent

    def test_float32_precision_loss(self):
        """Test far-from-origin positions lose sub-unit precision."""
        node = NativeTransform(position=(1.0e8, 0.0, 0.0))
        node.translate((0.5, 0.0, 0.0))
        assert node.position[0] == np.float32(1.0e8)

    def test_uniform_scale(self):
        """Test a scalar local scale applies to all axes."""
        node = NativeTransform()
        node.local_scale = 2.5
        assert node.local_scale.tolist() == [2.5, 2.5, 2.5]

    def test_bad_length(self):
        """Test malformed positions are rejected."""
        with pytest.raises(ValueError):
            NativeTransform(position=(1.0, 2.0))
