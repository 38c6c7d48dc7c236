'''Engine-native transform with single-precision state
NativeTransform class definition'''

import numpy as np
from typing import Optional, Sequence
from .utils import validation_error


def _as_float32(value, name: str) -> np.ndarray:
    arr = np.array(value, dtype=np.float32).ravel()
    if arr.shape != (3,):
        validation_error(f"{name} needs 3 components, got {arr.shape[0]}")
        arr = np.resize(arr, 3)
    return arr


class NativeTransform:
    """
    Scene-graph node of a single-precision engine.

    Holds what an engine transform holds: a float32 position relative to
    the parent, a float32 local scale, and a parent link. World positions
    are accumulated in float32, so the precision loss of a real engine far
    from its origin is reproduced.
    """

    def __init__(self, position: Optional[Sequence[float]] = None,
                 local_scale: Optional[Sequence[float]] = None,
                 parent: Optional["NativeTransform"] = None,
                 name: Optional[str] = None):
        self.parent = parent
        self.name = name
        self._local_position = np.zeros(3, dtype=np.float32)
        self._local_scale = np.ones(3, dtype=np.float32)
        if position is not None:
            self.position = position
        if local_scale is not None:
            self.local_scale = local_scale

    @property
    def local_position(self) -> np.ndarray:
        return self._local_position.copy()

    @local_position.setter
    def local_position(self, value):
        self._local_position = _as_float32(value, "local_position")

    @property
    def position(self) -> np.ndarray:
        """World-space native position (float32)."""
        if self.parent is None:
            return self._local_position.copy()
        return (self.parent.position + self._local_position).astype(np.float32)

    @position.setter
    def position(self, value):
        world = _as_float32(value, "position")
        if self.parent is None:
            self._local_position = world
        else:
            self._local_position = (world - self.parent.position).astype(np.float32)

    @property
    def local_scale(self) -> np.ndarray:
        return self._local_scale.copy()

    @local_scale.setter
    def local_scale(self, value):
        if np.isscalar(value):
            value = (value, value, value)
        self._local_scale = _as_float32(value, "local_scale")

    def translate(self, delta: Sequence[float]):
        """Move by ``delta`` in world space."""
        self.position = self.position + _as_float32(delta, "delta")

    def root(self) -> "NativeTransform":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def __repr__(self):
        return (f"NativeTransform(name={self.name!r}, position={self.position.tolist()}, "
                f"local_scale={self._local_scale.tolist()})")
