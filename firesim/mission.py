"""Mission bookkeeping shared by drones, the coordinator and the analysis tools."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from firesim.events import FireEvent


class MissionOutcome(Enum):
    """How a drone's mission ended.

    COMPLETED: the fire received its full required volume.
    PARTIAL: the drone ran dry mid-drop and the event went back to the queue.
    REJECTED: the drone lacked the minimum agent and handed the event back on accept.
    ABANDONED: a fault or an interruption ended the mission early.
    """

    COMPLETED = auto()
    PARTIAL = auto()
    REJECTED = auto()
    ABANDONED = auto()


@dataclass(frozen=True)
class MissionRecord:
    """Timing and agent figures of one mission, in simulated seconds.

    Attributes:
        drone_id: Drone that flew the mission.
        event: Event serviced (or handed back).
        outcome: How the mission ended.
        travel_time: Loaded flight time to the zone center.
        extinguish_time: Door overhead plus drop time.
        return_time: Unloaded flight time back to base.
        volume_required: Agent volume the event's severity requires.
        volume_dropped: Agent volume actually dropped.
        agent_left: Agent level after the drop, before refilling.
        started_at: Wall-clock time (``time.monotonic``) the mission was accepted.
        ended_at: Wall-clock time the drone was back at base, or gave up.
    """

    drone_id: int
    event: FireEvent
    outcome: MissionOutcome
    travel_time: float = 0.0
    extinguish_time: float = 0.0
    return_time: float = 0.0
    volume_required: float = 0.0
    volume_dropped: float = 0.0
    agent_left: float = 0.0
    started_at: float = 0.0
    ended_at: float = 0.0

    @property
    def simulated_duration(self) -> float:
        """Total simulated time from accept to arrival at base."""
        return self.travel_time + self.extinguish_time + self.return_time

    def as_dict(self) -> dict:
        return {
            "drone_id": self.drone_id,
            "zone_id": self.event.zone_id,
            "timestamp": self.event.timestamp,
            "severity": self.event.severity.name,
            "outcome": self.outcome.name,
            "travel_time": self.travel_time,
            "extinguish_time": self.extinguish_time,
            "return_time": self.return_time,
            "simulated_duration": self.simulated_duration,
            "volume_required": self.volume_required,
            "volume_dropped": self.volume_dropped,
            "agent_left": self.agent_left,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }
