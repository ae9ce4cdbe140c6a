"""Geometry and physics model for drone missions.

Pure functions on a flat 2-D plane: Euclidean distance, travel time, agent
volume and extinguish time. :class:`PhysicsModel` binds them to the constants of
a :class:`~firesim.config.SimulationConfig` so a drone can ask "how long to
reach this zone" without carrying the constants around.

Example:
    >>> model = PhysicsModel.from_config(SimulationConfig())
    >>> zone = Zone(1, 0, 0, 700, 600)  # center (350, 300)
    >>> round(model.en_route_time(ORIGIN, zone), 3)
    46.098
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from firesim.config import SimulationConfig
from firesim.events import Severity
from firesim.zones import Zone


@dataclass(frozen=True)
class Point:
    """A position on the simulation plane."""

    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

    def distance_to(self, other: Point) -> float:
        return distance(self, other)


ORIGIN = Point(0.0, 0.0)


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b.x - a.x, b.y - a.y)


def travel_time(start: Point, end: Point, speed: float) -> float:
    """Time to fly in a straight line from ``start`` to ``end``.

    Raises:
        ValueError: If ``speed`` is not positive.
    """
    if speed <= 0:
        msg = f"Speed must be positive, got {speed}"
        raise ValueError(msg)
    return distance(start, end) / speed


def drop_volume(required: float, remaining: float) -> float:
    """Agent actually dropped: the service is capacity-limited, not all-or-nothing."""
    return max(0.0, min(required, remaining))


def extinguish_time(volume: float, drop_rate: float, door_time: float) -> float:
    """Time to dispense ``volume`` of agent.

    The nozzle doors open once and close once regardless of the volume, so the
    door overhead is added twice on top of ``volume / drop_rate``.
    """
    if drop_rate <= 0:
        msg = f"Drop rate must be positive, got {drop_rate}"
        raise ValueError(msg)
    return volume / drop_rate + 2 * door_time


@dataclass(frozen=True)
class PhysicsModel:
    """Mission timing model bound to one configuration.

    Attributes:
        loaded_speed: Cruise speed while flying to a fire.
        unloaded_speed: Cruise speed while returning to base.
        drop_rate: Agent volume dispensed per simulated second.
        door_time: Nozzle door open (or close) time.
        volumes: Required agent volume per severity.
        base: Base station position.
    """

    loaded_speed: float
    unloaded_speed: float
    drop_rate: float
    door_time: float
    volumes: dict[Severity, float]
    base: Point = ORIGIN

    @classmethod
    def from_config(cls, config: SimulationConfig) -> PhysicsModel:
        return cls(
            loaded_speed=config.cruise_speed_loaded,
            unloaded_speed=config.cruise_speed_unloaded,
            drop_rate=config.drop_rate,
            door_time=config.nozzle_door_time,
            volumes=dict(config.volumes),
            base=Point(*config.base_position),
        )

    def required_volume(self, severity: Severity) -> float:
        return self.volumes[severity]

    def en_route_time(self, position: Point, zone: Zone) -> float:
        """Loaded flight time from ``position`` to the center of ``zone``."""
        return travel_time(position, Point(*zone.center), self.loaded_speed)

    def extinguish_time(self, volume: float) -> float:
        return extinguish_time(volume, self.drop_rate, self.door_time)

    def return_time(self, position: Point) -> float:
        """Unloaded flight time from ``position`` back to base."""
        return travel_time(position, self.base, self.unloaded_speed)
