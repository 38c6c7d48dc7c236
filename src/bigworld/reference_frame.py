'''Floating origin for an observer in a single-precision engine
FloatingOriginFrame class definition'''

import logging
import numpy as np
from typing import Optional, Sequence, Union
from .config import config
from .native import NativeTransform
from .vectors import DoubleVector3

logger = logging.getLogger(__name__)


class FloatingOriginFrame:
    """
    Reference/local split of one observer's position.

    The true double-precision world position of the observer is always
    ``reference_position + local_position``. ``local_position`` mirrors the
    observer's engine-native (float32) position, which ``tick`` keeps small
    by folding it into the double-precision reference whenever it exceeds
    the rebase threshold and moving the native scene root back to the
    origin.

    ``tick`` must run first in a simulation step: anything that reads the
    observer's native position before it in the same step sees
    un-rebased coordinates.

    The observer's native node is expected to be its scene root (or to
    sit at the root's origin), since a rebase zeroes the root.
    """

    def __init__(self, native: Optional[NativeTransform] = None,
                 rebase_threshold: Optional[float] = None,
                 world_position: Optional[Union[DoubleVector3, Sequence[float]]] = None):
        """
        Parameters
        ----------
        native : NativeTransform, optional
            The observer's engine transform. A new root node is created
            when omitted.
        rebase_threshold : float, optional
            Per-frame override of config.REBASE_THRESHOLD
        world_position : DoubleVector3 or array-like, optional
            Initial world position, applied with ``set_world_position``
        """
        self.native = native if native is not None else NativeTransform(name="observer")
        self._rebase_threshold = rebase_threshold
        self._reference = DoubleVector3.zero()
        self._local = DoubleVector3.from_sequence(self.native.position)
        self.rebase_count = 0
        if world_position is not None:
            self.set_world_position(world_position)

    @property
    def rebase_threshold(self) -> float:
        if self._rebase_threshold is not None:
            return self._rebase_threshold
        return config.REBASE_THRESHOLD

    @property
    def reference_position(self) -> DoubleVector3:
        return DoubleVector3(self._reference.x, self._reference.y, self._reference.z)

    @property
    def local_position(self) -> DoubleVector3:
        return DoubleVector3(self._local.x, self._local.y, self._local.z)

    @property
    def universe_position(self) -> DoubleVector3:
        """True world position, recomputed on every read."""
        return self._reference + self._local

    @property
    def native_position(self) -> DoubleVector3:
        """Current engine-native position of the observer, read back as doubles."""
        return DoubleVector3.from_sequence(self.native.position)

    def set_world_position(self, position: Union[DoubleVector3, Sequence[float]]):
        """Teleport the observer: the reference takes the whole position."""
        if isinstance(position, DoubleVector3):
            self._reference = DoubleVector3(position.x, position.y, position.z)
        else:
            self._reference = DoubleVector3.from_sequence(position)
        self.native.root().position = np.zeros(3, dtype=np.float32)
        self._local = DoubleVector3.zero()
        logger.debug("Observer moved to world position %s", self._reference)

    def tick(self) -> bool:
        """
        Read back the native position and rebase if it drifted too far.

        Returns
        -------
        bool
            True when a rebase happened
        """
        self._local = DoubleVector3.from_sequence(self.native.position)
        if self._local.magnitude > self.rebase_threshold:
            self.rebase()
            return True
        return False

    def rebase(self):
        """Fold the local displacement into the reference and zero the native root."""
        displacement = self._local
        self._reference = self._reference + displacement
        self.native.root().position = np.zeros(3, dtype=np.float32)
        self._local = DoubleVector3.zero()
        self.rebase_count += 1
        logger.debug("Floating origin rebased by %.3f units, reference now %s",
                     displacement.magnitude, self._reference)

    def to_native(self, world_position: DoubleVector3) -> np.ndarray:
        """Native (float32) coordinates of a world position under the current reference."""
        return (world_position - self._reference).to_native()

    def __repr__(self):
        return (f"FloatingOriginFrame(reference={self._reference!r}, "
                f"local={self._local!r}, rebases={self.rebase_count})")
