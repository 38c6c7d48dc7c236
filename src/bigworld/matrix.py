'''Double-precision affine transforms
DoubleMatrix4x4 class definition'''

import logging
import math
import numpy as np
from typing import Iterable
from .kepler import DEG2RAD
from .utils import validation_error
from .vectors import DoubleVector3, DoubleVector4

logger = logging.getLogger(__name__)


class DoubleMatrix4x4:
    """
    4x4 double-precision matrix for affine transforms.

    Uses the column-vector convention: a point ``p`` is transformed as
    ``M @ [p, 1]``, translation lives in the last column and composed
    transforms read right to left (``trs = T @ R @ S``).

    The matrix is immutable; the backing array is read-only and every
    operation returns a new instance.

    Serialized field order is column-major: 16 doubles, column 0 first
    (m00, m10, m20, m30, m01, ...).
    """
    __slots__ = ('_m',)

    # Determinant magnitude below which inversion gives up (smallest double subnormal)
    _SINGULAR_DET = 5e-324

    # ========== CONSTRUCTION ==========
    def __init__(self, values: Iterable):
        """
        Parameters
        ----------
        values : array-like, shape (4, 4)
            Matrix entries indexed ``[row, column]``.
        """
        arr = np.array(values, dtype=np.float64)
        if arr.shape != (4, 4):
            validation_error(f"DoubleMatrix4x4 needs a 4x4 array, got shape {arr.shape}")
            arr = np.resize(arr, (4, 4))
        arr.flags.writeable = False
        self._m = arr

    @classmethod
    def identity(cls) -> "DoubleMatrix4x4":
        return cls(np.identity(4))

    @classmethod
    def zero(cls) -> "DoubleMatrix4x4":
        return cls(np.zeros((4, 4)))

    @classmethod
    def from_columns(cls, c0: DoubleVector4, c1: DoubleVector4,
                     c2: DoubleVector4, c3: DoubleVector4) -> "DoubleMatrix4x4":
        return cls(np.column_stack([c.to_numpy() for c in (c0, c1, c2, c3)]))

    @classmethod
    def from_tuple(cls, values: Iterable[float]) -> "DoubleMatrix4x4":
        """Inverse of ``to_tuple``: 16 doubles in column-major order."""
        arr = np.asarray(values, dtype=np.float64).ravel()
        if arr.shape != (16,):
            validation_error(f"DoubleMatrix4x4 needs 16 values, got {arr.shape[0]}")
            arr = np.resize(arr, 16)
        return cls(arr.reshape((4, 4), order='F'))

    # ========== FACTORY TRANSFORMS ==========
    @classmethod
    def translation(cls, position: DoubleVector3) -> "DoubleMatrix4x4":
        m = np.identity(4)
        m[0:3, 3] = position.to_tuple()
        return cls(m)

    @classmethod
    def scaling(cls, scale: DoubleVector3) -> "DoubleMatrix4x4":
        return cls(np.diag([scale.x, scale.y, scale.z, 1.0]))

    @classmethod
    def rotation(cls, euler_deg: Iterable[float]) -> "DoubleMatrix4x4":
        """
        Rotation from Euler angles in degrees, composed as Rx @ Ry @ Rz.

        Parameters
        ----------
        euler_deg : array-like, shape (3,)
            Rotation about the x, y and z axes [deg]
        """
        ax, ay, az = np.asarray(euler_deg, dtype=np.float64) * DEG2RAD
        cx, sx = math.cos(ax), math.sin(ax)
        cy, sy = math.cos(ay), math.sin(ay)
        cz, sz = math.cos(az), math.sin(az)
        rx = np.array([[1, 0, 0, 0],
                       [0, cx, -sx, 0],
                       [0, sx, cx, 0],
                       [0, 0, 0, 1]], dtype=np.float64)
        ry = np.array([[cy, 0, sy, 0],
                       [0, 1, 0, 0],
                       [-sy, 0, cy, 0],
                       [0, 0, 0, 1]], dtype=np.float64)
        rz = np.array([[cz, -sz, 0, 0],
                       [sz, cz, 0, 0],
                       [0, 0, 1, 0],
                       [0, 0, 0, 1]], dtype=np.float64)
        return cls(rx @ ry @ rz)

    @classmethod
    def trs(cls, position: DoubleVector3, euler_deg: Iterable[float],
            scale: DoubleVector3) -> "DoubleMatrix4x4":
        """Translation-rotation-scale transform, ``T @ R @ S``."""
        return (cls.translation(position) @ cls.rotation(euler_deg)) @ cls.scaling(scale)

    # ========== PROPERTY ACCESS ==========
    @property
    def array(self) -> np.ndarray:
        """Read-only (4, 4) view of the entries."""
        return self._m

    @property
    def determinant(self) -> float:
        return float(np.linalg.det(self._m))

    @property
    def position(self) -> DoubleVector3:
        """Translation part of the transform."""
        return DoubleVector3(self._m[0, 3], self._m[1, 3], self._m[2, 3])

    @property
    def inverse(self) -> "DoubleMatrix4x4":
        return self.invert()

    def get_column(self, index: int) -> DoubleVector4:
        return DoubleVector4.from_sequence(self._m[:, index])

    def get_row(self, index: int) -> DoubleVector4:
        return DoubleVector4.from_sequence(self._m[index, :])

    # ========== TRANSFORM OPERATIONS ==========
    def invert(self) -> "DoubleMatrix4x4":
        """
        Matrix inverse.

        Never raises. A singular input (typically a zero scale axis)
        yields the zero matrix and a logged warning, so callers that map
        points through the result get the origin rather than an exception
        mid-frame.
        """
        det = np.linalg.det(self._m)
        if not np.isfinite(det) or abs(det) < self._SINGULAR_DET:
            logger.warning("Singular transform (det=%s), returning zero matrix", det)
            return DoubleMatrix4x4.zero()
        try:
            return DoubleMatrix4x4(np.linalg.inv(self._m))
        except np.linalg.LinAlgError:
            logger.warning("Transform inversion failed, returning zero matrix")
            return DoubleMatrix4x4.zero()

    def multiply_point3x4(self, point: DoubleVector3) -> DoubleVector3:
        """Apply the affine part to a point, ignoring the projective row."""
        m = self._m
        return DoubleVector3(m[0, 0] * point.x + m[0, 1] * point.y + m[0, 2] * point.z + m[0, 3],
                             m[1, 0] * point.x + m[1, 1] * point.y + m[1, 2] * point.z + m[1, 3],
                             m[2, 0] * point.x + m[2, 1] * point.y + m[2, 2] * point.z + m[2, 3])

    def multiply_point(self, point: DoubleVector3) -> DoubleVector3:
        """Apply the full transform to a point with a perspective divide."""
        m = self._m
        w = m[3, 0] * point.x + m[3, 1] * point.y + m[3, 2] * point.z + m[3, 3]
        if w == 0.0:
            return DoubleVector3.zero()
        return self.multiply_point3x4(point) / w

    def multiply_vector(self, vector: DoubleVector3) -> DoubleVector3:
        """Transform a direction (no translation)."""
        m = self._m
        return DoubleVector3(m[0, 0] * vector.x + m[0, 1] * vector.y + m[0, 2] * vector.z,
                             m[1, 0] * vector.x + m[1, 1] * vector.y + m[1, 2] * vector.z,
                             m[2, 0] * vector.x + m[2, 1] * vector.y + m[2, 2] * vector.z)

    # ========== CONVERSIONS ==========
    def to_tuple(self) -> tuple:
        """16 doubles, column-major."""
        return tuple(float(v) for v in self._m.ravel(order='F'))

    def to_numpy(self) -> np.ndarray:
        return self._m.copy()

    # ========== SPECIAL METHODS ==========
    def __matmul__(self, other):
        if isinstance(other, DoubleMatrix4x4):
            return DoubleMatrix4x4(self._m @ other._m)
        if isinstance(other, DoubleVector4):
            return DoubleVector4.from_sequence(self._m @ other.to_numpy())
        return NotImplemented

    def __eq__(self, other):
        # Column-wise, with the loose DoubleVector4 equality
        if not isinstance(other, DoubleMatrix4x4):
            return NotImplemented
        return all(self.get_column(i) == other.get_column(i) for i in range(4))

    # Loose equality cannot be made consistent with a hash
    __hash__ = None

    def __getitem__(self, key):
        return float(self._m[key])

    def __repr__(self):
        rows = ",\n ".join(str(list(row)) for row in self._m.tolist())
        return f"DoubleMatrix4x4([{rows}])"


def inverse_transform_point(position: DoubleVector3, euler_deg: Iterable[float],
                            scale: DoubleVector3, point: DoubleVector3) -> DoubleVector3:
    """
    Express a world-space point in the local space of a transform.

    Parameters
    ----------
    position : DoubleVector3
        Transform origin in world space
    euler_deg : array-like, shape (3,)
        Transform orientation [deg]
    scale : DoubleVector3
        Transform scale; a zero axis makes the transform singular and the
        result collapses to the origin
    point : DoubleVector3
        World-space point

    Returns
    -------
    DoubleVector3
        ``invert(TRS(position, euler_deg, scale)).multiply_point3x4(point)``
    """
    transform = DoubleMatrix4x4.trs(position, euler_deg, scale)
    return transform.invert().multiply_point3x4(point)
