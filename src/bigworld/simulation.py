'''Per-tick orchestration of observer frame, orbits and placement
Simulation and OrbitingBody class definitions'''

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union
from .native import NativeTransform
from .orbit_state import OrbitState
from .placement import DistancePlacement, PlacementResult
from .reference_frame import FloatingOriginFrame

logger = logging.getLogger(__name__)


@dataclass
class OrbitingBody:
    """
    One body moved by an orbit and optionally placed in native space.

    ``attractor`` links to the body being orbited (e.g. a moon's planet);
    its world position is pushed into this body's orbit every tick.
    """
    name: str
    orbit: OrbitState
    placement: Optional[DistancePlacement] = None
    attractor: Optional["OrbitingBody"] = None


class Simulation:
    """
    Single-threaded update loop for one observer and many orbiting bodies.

    Each ``step`` runs in a fixed order:

    1. floating-origin rebase of the observer frame
    2. orbit advance of every body
    3. view update (attractor positions, then world positions)
    4. distance placement against the freshly rebased frame

    Bodies are processed in insertion order, so attractors must be added
    before the bodies orbiting them.
    """

    def __init__(self, frame: Optional[FloatingOriginFrame] = None, time_scale: float = 1.0):
        self.frame = frame if frame is not None else FloatingOriginFrame()
        self.time_scale = time_scale
        self.time = 0.0
        self.bodies: List[OrbitingBody] = []

    def add_body(self, name: str, orbit: OrbitState,
                 bounds_width: Optional[Union[float, Callable[[], float]]] = None,
                 target: Optional[NativeTransform] = None,
                 attractor: Optional[Union[str, OrbitingBody]] = None,
                 **placement_kwargs) -> OrbitingBody:
        """
        Register a body.

        Parameters
        ----------
        name : str
            Unique body name
        orbit : OrbitState
            The body's orbit
        bounds_width : float or callable, optional
            Unscaled bounding width; when given the body also gets a
            DistancePlacement
        target : NativeTransform, optional
            Engine transform the placement writes to
        attractor : str or OrbitingBody, optional
            Body this one orbits
        **placement_kwargs
            Overrides forwarded to DistancePlacement

        Returns
        -------
        OrbitingBody
        """
        if any(b.name == name for b in self.bodies):
            raise ValueError(f"Body '{name}' already exists")
        if isinstance(attractor, str):
            attractor = self.get_body(attractor)
        if attractor is not None:
            orbit.attractor_position = attractor.orbit.world_position

        placement = None
        if bounds_width is not None:
            placement = DistancePlacement(orbit.world_position, bounds_width,
                                          target=target, **placement_kwargs)
        body = OrbitingBody(name, orbit, placement, attractor)
        self.bodies.append(body)
        logger.debug("Added body '%s' (%s)", name, orbit.status.name)
        return body

    def get_body(self, name: str) -> OrbitingBody:
        for body in self.bodies:
            if body.name == name:
                return body
        raise KeyError(f"No body named '{name}'")

    def step(self, delta_time: float) -> Dict[str, PlacementResult]:
        """
        Advance the simulation by ``delta_time`` (scaled by ``time_scale``).

        Returns
        -------
        dict
            Placement result per body name, for bodies with a placement
        """
        # Rebase first so nothing below reads stale native coordinates
        self.frame.tick()

        dt = delta_time * self.time_scale
        for body in self.bodies:
            body.orbit.update_by_time(dt)

        for body in self.bodies:
            if body.attractor is not None:
                body.orbit.attractor_position = body.attractor.orbit.world_position
            if body.orbit.view_dirty:
                world = body.orbit.update_view()
                if body.placement is not None:
                    body.placement.position = world

        results = {}
        for body in self.bodies:
            if body.placement is not None:
                results[body.name] = body.placement.apply(self.frame)

        self.time += dt
        return results

    def __repr__(self):
        return f"Simulation(bodies={len(self.bodies)}, time={self.time}, frame={self.frame!r})"
