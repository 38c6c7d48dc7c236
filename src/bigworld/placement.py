'''Distance-based placement of far bodies in a single-precision engine
DistancePlacement class definition and the apparent-size helper'''

import logging
import math
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union
from .config import config
from .matrix import inverse_transform_point
from .native import NativeTransform
from .reference_frame import FloatingOriginFrame
from .utils import validation_error
from .vectors import DoubleVector3

logger = logging.getLogger(__name__)


def compute_apparent_width(distance: float, fov_deg: float, image_width_px: int,
                           true_width: float) -> float:
    """
    On-screen width of an object under a pinhole camera.

    ``width_px = true_width * image_width_px / (2 * distance * tan(fov / 2))``

    Parameters
    ----------
    distance : float
        Camera to object distance
    fov_deg : float
        Horizontal field of view [deg], in (0, 180)
    image_width_px : int
        Rendered image width [px]
    true_width : float
        Object width in world units

    Returns
    -------
    float
        Apparent width [px]; infinite when the camera is at the object
    """
    if not 0.0 < fov_deg < 180.0:
        validation_error(f"Field of view must be in (0, 180) degrees, got {fov_deg}")
    if image_width_px <= 0:
        validation_error(f"Image width must be positive, got {image_width_px}")
    if distance <= 0.0:
        return math.inf
    view_width = 2.0 * distance * math.tan(math.radians(fov_deg) / 2.0)
    return true_width * image_width_px / view_width


class PlacementMode(Enum):
    DIRECT = 'direct'
    RESCALED = 'rescaled'


@dataclass(frozen=True)
class DetailLevels:
    """Auxiliary visual detail toggles for the evaluated distance."""
    atmosphere: bool
    clouds: bool
    ocean_lod: bool

    @classmethod
    def for_distance(cls, distance: float) -> "DetailLevels":
        return cls(atmosphere=distance <= config.ATMOSPHERE_CUTOFF,
                   clouds=distance <= config.CLOUDS_CUTOFF,
                   ocean_lod=distance > config.OCEAN_LOD_DISTANCE)


@dataclass(frozen=True)
class PlacementResult:
    """
    Native transform to apply to a body for one frame.

    Attributes
    ----------
    mode : PlacementMode
        DIRECT or RESCALED
    native_position : np.ndarray
        float32 world-space native position
    scale : float
        Uniform scale for all three axes
    distance : float
        Double-precision observer to body distance
    apparent_width_px : float
        Pinhole apparent width at the true distance
    details : DetailLevels
    """
    mode: PlacementMode
    native_position: np.ndarray
    scale: float
    distance: float
    apparent_width_px: float
    details: DetailLevels


class DistancePlacement:
    """
    Places one body in native space relative to an observer frame.

    Near bodies (``distance < near_threshold``) are placed directly at
    ``position - reference`` with unit scale. Far bodies are parked at a
    fixed native distance along their true direction from the observer
    and scaled so their on-screen size stays plausible:

        scale = compute_apparent_width(distance, fov, px, width) * factor / width

    where ``width`` is the body's unscaled bounding width. That width is
    resolved exactly once, on first use, and cached for the lifetime of
    the placement regardless of later scale changes.

    Thresholds and camera parameters default to the package config (read
    at evaluation time); constructor overrides take precedence.
    """

    def __init__(self, position: Union[DoubleVector3, tuple],
                 bounds_width: Union[float, Callable[[], float]],
                 target: Optional[NativeTransform] = None,
                 near_threshold: Optional[float] = None,
                 rescale_distance: Optional[float] = None,
                 rescale_factor: Optional[float] = None,
                 fov_deg: Optional[float] = None,
                 image_width_px: Optional[int] = None):
        """
        Parameters
        ----------
        position : DoubleVector3 or array-like
            Body world position (double precision)
        bounds_width : float or callable
            Unscaled bounding width, or a callable measuring it (called once)
        target : NativeTransform, optional
            Engine transform updated by ``apply``
        near_threshold, rescale_distance, rescale_factor, fov_deg, image_width_px : optional
            Overrides of the corresponding config values
        """
        self.position = position
        self._bounds_source = bounds_width
        self._width: Optional[float] = None
        self.target = target
        self._near_threshold = near_threshold
        self._rescale_distance = rescale_distance
        self._rescale_factor = rescale_factor
        self._fov_deg = fov_deg
        self._image_width_px = image_width_px

        self.visual_scale = 1.0
        self.last_distance: Optional[float] = None
        self.last_mode: Optional[PlacementMode] = None

    @property
    def position(self) -> DoubleVector3:
        return DoubleVector3(self._position.x, self._position.y, self._position.z)

    @position.setter
    def position(self, value):
        if isinstance(value, DoubleVector3):
            self._position = DoubleVector3(value.x, value.y, value.z)
        else:
            self._position = DoubleVector3.from_sequence(value)

    @property
    def bounds_width(self) -> float:
        """Unscaled bounding width, measured on first access only."""
        if self._width is None:
            source = self._bounds_source
            self._width = float(source() if callable(source) else source)
            logger.debug("Bounding width resolved to %s", self._width)
        return self._width

    @property
    def near_threshold(self) -> float:
        return self._near_threshold if self._near_threshold is not None else config.NEAR_THRESHOLD

    @property
    def rescale_distance(self) -> float:
        return self._rescale_distance if self._rescale_distance is not None else config.RESCALE_DISTANCE

    @property
    def rescale_factor(self) -> float:
        return self._rescale_factor if self._rescale_factor is not None else config.RESCALE_FACTOR

    @property
    def fov_deg(self) -> float:
        return self._fov_deg if self._fov_deg is not None else config.CAMERA_FOV_DEG

    @property
    def image_width_px(self) -> int:
        return self._image_width_px if self._image_width_px is not None else config.IMAGE_WIDTH_PX

    def evaluate(self, frame: FloatingOriginFrame) -> PlacementResult:
        """
        Decide how to place the body for the observer's current state.

        Run after ``frame.tick()`` in the same step.
        """
        width = self.bounds_width
        universe = frame.universe_position
        distance = DoubleVector3.distance(universe, self._position)
        apparent = compute_apparent_width(distance, self.fov_deg, self.image_width_px, width)
        details = DetailLevels.for_distance(distance)

        if distance < self.near_threshold:
            mode = PlacementMode.DIRECT
            native = (self._position - frame.reference_position).to_native()
            scale = 1.0
        else:
            mode = PlacementMode.RESCALED
            local = inverse_transform_point(universe, (0.0, 0.0, 0.0),
                                            DoubleVector3.one(), self._position)
            direction = local.normalized
            native = (direction * self.rescale_distance + frame.native_position).to_native()
            if width > 0.0:
                scale = apparent * self.rescale_factor / width
            else:
                logger.warning("Zero bounding width, keeping unit scale")
                scale = 1.0

        if mode is not self.last_mode:
            logger.debug("Placement switched to %s at distance %.1f", mode.name, distance)
        self.visual_scale = scale
        self.last_distance = distance
        self.last_mode = mode
        return PlacementResult(mode, native, scale, distance, apparent, details)

    def apply(self, frame: FloatingOriginFrame) -> PlacementResult:
        """Evaluate and write position and uniform scale to ``target``."""
        result = self.evaluate(frame)
        if self.target is not None:
            self.target.position = result.native_position
            self.target.local_scale = np.full(3, result.scale, dtype=np.float32)
        return result

    def __repr__(self):
        return (f"DistancePlacement(position={self._position!r}, "
                f"last_distance={self.last_distance}, visual_scale={self.visual_scale})")
