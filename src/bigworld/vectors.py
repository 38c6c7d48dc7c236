'''Double-precision vector types for positions that outgrow engine floats
DoubleVector3 and DoubleVector4 class definitions'''

import math
import numpy as np
from typing import Iterable, Union
from .config import config
from .utils import validation_error

# Magnitudes at or below this normalize to the zero vector (smallest float32 subnormal)
NORMALIZE_EPSILON = 1.401298e-45


def _clamp(value: float, low: float, high: float) -> float:
    return low if value < low else (high if value > high else value)


class DoubleVector3:
    """
    Three-component vector in IEEE-754 double precision.

    Arithmetic operators always return new vectors and never touch their
    operands. The only mutating members are the explicit in-place helpers
    ``set``, ``scale`` and ``normalize``; because of them the type is not
    hashable.

    Equality is deliberately loose: ``a == b`` holds when the squared
    distance between the vectors is below
    ``config.VECTOR_EQUALITY_SQR_EPSILON``. This suits interactive use
    (comparing positions that went through different float paths) but it
    is NOT transitive, and for very large coordinates two vectors that are
    one ulp apart may still compare unequal. Use ``is_exactly`` for a
    component-wise bitwise comparison.

    Serialized field order is always (x, y, z).
    """
    __slots__ = ('x', 'y', 'z')

    # ========== CONSTRUCTION ==========
    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    @classmethod
    def zero(cls) -> "DoubleVector3":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def one(cls) -> "DoubleVector3":
        return cls(1.0, 1.0, 1.0)

    @classmethod
    def from_sequence(cls, values: Iterable[float]) -> "DoubleVector3":
        """
        Build a vector from any 3-element sequence or array.

        Works for tuples, lists, float64 arrays and the float32 arrays used
        by engine-native transforms.
        """
        values = np.asarray(values, dtype=np.float64).ravel()
        if values.shape != (3,):
            validation_error(f"DoubleVector3 needs 3 components, got {values.shape[0]}")
            values = np.resize(values, 3)
        return cls(values[0], values[1], values[2])

    # ========== PROPERTY ACCESS ==========
    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    @property
    def sqr_magnitude(self) -> float:
        """Squared length; avoids the square root for comparisons."""
        return self.x * self.x + self.y * self.y + self.z * self.z

    @property
    def normalized(self) -> "DoubleVector3":
        return DoubleVector3.normalize_vector(self)

    # ========== IN-PLACE HELPERS ==========
    def set(self, x: float, y: float, z: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def scale(self, factor: Union[float, "DoubleVector3"]) -> None:
        """Scale in place, uniformly by a scalar or per axis by a vector."""
        if isinstance(factor, DoubleVector3):
            self.x *= factor.x
            self.y *= factor.y
            self.z *= factor.z
        else:
            self.x *= factor
            self.y *= factor
            self.z *= factor

    def normalize(self) -> None:
        """Normalize in place; near-zero vectors become the zero vector."""
        unit = DoubleVector3.normalize_vector(self)
        self.x, self.y, self.z = unit.x, unit.y, unit.z

    # ========== VECTOR OPERATIONS ==========
    @staticmethod
    def normalize_vector(value: "DoubleVector3") -> "DoubleVector3":
        """
        Return ``value / |value|``, or the zero vector when
        ``|value| <= NORMALIZE_EPSILON``.

        The threshold is the smallest float32 subnormal rather than literal
        zero so that subnormal noise does not produce inf or NaN components.
        """
        num = value.magnitude
        if num > NORMALIZE_EPSILON:
            return value / num
        return DoubleVector3.zero()

    @staticmethod
    def dot(a: "DoubleVector3", b: "DoubleVector3") -> float:
        return a.x * b.x + a.y * b.y + a.z * b.z

    @staticmethod
    def cross(a: "DoubleVector3", b: "DoubleVector3") -> "DoubleVector3":
        return DoubleVector3(a.y * b.z - a.z * b.y,
                             a.z * b.x - a.x * b.z,
                             a.x * b.y - a.y * b.x)

    @staticmethod
    def distance(a: "DoubleVector3", b: "DoubleVector3") -> float:
        dx = a.x - b.x
        dy = a.y - b.y
        dz = a.z - b.z
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    @staticmethod
    def scaled(a: "DoubleVector3", b: "DoubleVector3") -> "DoubleVector3":
        """Component-wise product."""
        return DoubleVector3(a.x * b.x, a.y * b.y, a.z * b.z)

    @staticmethod
    def min(a: "DoubleVector3", b: "DoubleVector3") -> "DoubleVector3":
        return DoubleVector3(min(a.x, b.x), min(a.y, b.y), min(a.z, b.z))

    @staticmethod
    def max(a: "DoubleVector3", b: "DoubleVector3") -> "DoubleVector3":
        return DoubleVector3(max(a.x, b.x), max(a.y, b.y), max(a.z, b.z))

    @staticmethod
    def lerp(start: "DoubleVector3", end: "DoubleVector3", t: float) -> "DoubleVector3":
        """Linear interpolation with ``t`` clamped to [0, 1]."""
        t = _clamp(t, 0.0, 1.0)
        return DoubleVector3(start.x + (end.x - start.x) * t,
                             start.y + (end.y - start.y) * t,
                             start.z + (end.z - start.z) * t)

    @staticmethod
    def move_towards(current: "DoubleVector3", target: "DoubleVector3",
                     max_distance_delta: float) -> "DoubleVector3":
        """Step from current towards target by at most max_distance_delta."""
        delta = target - current
        magnitude = delta.magnitude
        if magnitude <= max_distance_delta or magnitude == 0.0:
            return DoubleVector3(target.x, target.y, target.z)
        return current + delta / magnitude * max_distance_delta

    @staticmethod
    def reflect(in_direction: "DoubleVector3", in_normal: "DoubleVector3") -> "DoubleVector3":
        return -2.0 * DoubleVector3.dot(in_normal, in_direction) * in_normal + in_direction

    @staticmethod
    def project(vector: "DoubleVector3", on_normal: "DoubleVector3") -> "DoubleVector3":
        num = DoubleVector3.dot(on_normal, on_normal)
        if num < NORMALIZE_EPSILON:
            return DoubleVector3.zero()
        return on_normal * DoubleVector3.dot(vector, on_normal) / num

    @staticmethod
    def exclude(exclude_this: "DoubleVector3", from_that: "DoubleVector3") -> "DoubleVector3":
        """Remove the component of from_that that lies along exclude_this."""
        return from_that - DoubleVector3.project(from_that, exclude_this)

    @staticmethod
    def angle(start: "DoubleVector3", end: "DoubleVector3") -> float:
        """
        Unsigned angle between two vectors [rad].

        The dot product is clamped to [-1, 1] before ``acos`` so rounding
        on nearly parallel vectors cannot produce NaN.
        """
        dot = DoubleVector3.dot(start.normalized, end.normalized)
        return math.acos(_clamp(dot, -1.0, 1.0))

    @staticmethod
    def clamp_magnitude(vector: "DoubleVector3", max_length: float) -> "DoubleVector3":
        if vector.sqr_magnitude > max_length * max_length:
            return vector.normalized * max_length
        return DoubleVector3(vector.x, vector.y, vector.z)

    # ========== CONVERSIONS ==========
    def to_tuple(self) -> tuple:
        return (self.x, self.y, self.z)

    def to_numpy(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def to_native(self) -> np.ndarray:
        """Cast to the engine's single-precision representation."""
        return np.array([self.x, self.y, self.z], dtype=np.float32)

    def is_exactly(self, other: "DoubleVector3") -> bool:
        """Bitwise component equality (NaN never matches)."""
        return self.x == other.x and self.y == other.y and self.z == other.z

    # ========== SPECIAL METHODS ==========
    def __add__(self, other):
        if not isinstance(other, DoubleVector3):
            return NotImplemented
        return DoubleVector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other):
        if not isinstance(other, DoubleVector3):
            return NotImplemented
        return DoubleVector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self):
        return DoubleVector3(-self.x, -self.y, -self.z)

    def __mul__(self, scalar):
        if isinstance(scalar, DoubleVector3):
            return NotImplemented
        return DoubleVector3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        if isinstance(scalar, DoubleVector3):
            return NotImplemented
        return DoubleVector3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __eq__(self, other):
        # Squared-distance comparison, see class docstring
        if not isinstance(other, DoubleVector3):
            return NotImplemented
        return (self - other).sqr_magnitude < config.VECTOR_EQUALITY_SQR_EPSILON

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    # Mutable via set/scale/normalize
    __hash__ = None

    def __len__(self):
        return 3

    def __getitem__(self, key):
        return self.to_tuple()[key]

    def __iter__(self):
        return iter(self.to_tuple())

    def __repr__(self):
        return f"DoubleVector3({self.x!r}, {self.y!r}, {self.z!r})"

    def __str__(self):
        return f"({self.x}; {self.y}; {self.z})"


class DoubleVector4:
    """
    Four-component double vector, mostly used as a homogeneous point or as
    a matrix column. Same value semantics and loose equality as
    DoubleVector3. Serialized field order is (x, y, z, w).
    """
    __slots__ = ('x', 'y', 'z', 'w')

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0, w: float = 0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)
        self.w = float(w)

    @classmethod
    def zero(cls) -> "DoubleVector4":
        return cls(0.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_point(cls, point: DoubleVector3, w: float = 1.0) -> "DoubleVector4":
        """Homogeneous point (w=1) or direction (w=0) from a 3-vector."""
        return cls(point.x, point.y, point.z, w)

    @classmethod
    def from_sequence(cls, values: Iterable[float]) -> "DoubleVector4":
        values = np.asarray(values, dtype=np.float64).ravel()
        if values.shape != (4,):
            validation_error(f"DoubleVector4 needs 4 components, got {values.shape[0]}")
            values = np.resize(values, 4)
        return cls(values[0], values[1], values[2], values[3])

    @property
    def xyz(self) -> DoubleVector3:
        return DoubleVector3(self.x, self.y, self.z)

    @property
    def sqr_magnitude(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.sqr_magnitude)

    @property
    def normalized(self) -> "DoubleVector4":
        num = self.magnitude
        if num > NORMALIZE_EPSILON:
            return self / num
        return DoubleVector4.zero()

    @staticmethod
    def dot(a: "DoubleVector4", b: "DoubleVector4") -> float:
        return a.x * b.x + a.y * b.y + a.z * b.z + a.w * b.w

    def to_tuple(self) -> tuple:
        return (self.x, self.y, self.z, self.w)

    def to_numpy(self) -> np.ndarray:
        return np.array(self.to_tuple(), dtype=np.float64)

    def __add__(self, other):
        if not isinstance(other, DoubleVector4):
            return NotImplemented
        return DoubleVector4(self.x + other.x, self.y + other.y,
                             self.z + other.z, self.w + other.w)

    def __sub__(self, other):
        if not isinstance(other, DoubleVector4):
            return NotImplemented
        return DoubleVector4(self.x - other.x, self.y - other.y,
                             self.z - other.z, self.w - other.w)

    def __neg__(self):
        return DoubleVector4(-self.x, -self.y, -self.z, -self.w)

    def __mul__(self, scalar):
        if isinstance(scalar, DoubleVector4):
            return NotImplemented
        return DoubleVector4(self.x * scalar, self.y * scalar,
                             self.z * scalar, self.w * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        if isinstance(scalar, DoubleVector4):
            return NotImplemented
        return DoubleVector4(self.x / scalar, self.y / scalar,
                             self.z / scalar, self.w / scalar)

    def __eq__(self, other):
        if not isinstance(other, DoubleVector4):
            return NotImplemented
        return (self - other).sqr_magnitude < config.VECTOR_EQUALITY_SQR_EPSILON

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __len__(self):
        return 4

    def __getitem__(self, key):
        return self.to_tuple()[key]

    def __iter__(self):
        return iter(self.to_tuple())

    def __repr__(self):
        return f"DoubleVector4({self.x!r}, {self.y!r}, {self.z!r}, {self.w!r})"
