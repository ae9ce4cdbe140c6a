"""Simulation runner: one coordinator, N drone threads and one feed thread.

Threading Model:
    • ``Drone-<id>`` threads: one :class:`~firesim.vehicles.FirefightingDrone` each
    • ``IncidentFeed`` thread: submits every event, then drains completions
    • Caller thread: starts everything, joins the drones, then the feed

A run ends on its own once every event has been completed. If every drone
faults while events are still pending, nobody is left to take them; the runner
notices that all drone threads have exited and interrupts the coordinator so
the feed thread is released.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import logging
import threading
import time

from firesim.config import SimulationConfig
from firesim.coordinator import Coordinator, CoordinatorSnapshot, FaultKind
from firesim.events import FireEvent
from firesim.feed import IncidentFeed
from firesim.mission import MissionRecord
from firesim.vehicles import FirefightingDrone
from firesim.zones import Zone, ZoneRegistry

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of one run.

    Attributes:
        completed: Completed events in the order the feed received them.
        missions: Mission records reported by the drones.
        final_status: Coordinator snapshot taken after all threads stopped.
        interrupted: Whether the run had to be interrupted to terminate.
        wall_time: Real seconds the run took.
    """

    completed: list[FireEvent] = field(default_factory=list)
    missions: list[MissionRecord] = field(default_factory=list)
    final_status: CoordinatorSnapshot | None = None
    interrupted: bool = False
    wall_time: float = 0.0

    @property
    def unserviced(self) -> int:
        """Events still pending when the run stopped."""
        return self.final_status.pending_count if self.final_status else 0


class Simulation:
    """Wires a coordinator, its drones and the incident feed for one run.

    Example:
        >>> sim = Simulation(SimulationConfig(drone_count=2, time_scale=0.0), zones, events)
        >>> result = sim.run()
        >>> len(result.completed)
        3
    """

    def __init__(
        self,
        config: SimulationConfig,
        zones: ZoneRegistry | Iterable[Zone],
        events: Iterable[FireEvent],
    ):
        config.validate()
        self.config = config
        self.coordinator = Coordinator(zones, base_position=config.base_position)
        self.drones = [
            FirefightingDrone(i, self.coordinator, config)
            for i in range(1, config.drone_count + 1)
        ]
        self.feed = IncidentFeed(self.coordinator, events)
        self._threads: list[threading.Thread] = []
        self._feed_thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the drone threads, then the feed thread."""
        if self._threads:
            msg = "Simulation already started"
            raise RuntimeError(msg)

        logger.info(
            "Starting simulation: %d drones, %d events, time scale %g",
            len(self.drones),
            len(self.feed.events),
            self.config.time_scale,
        )
        for drone in self.drones:
            t = threading.Thread(target=drone.run, name=f"Drone-{drone.id}", daemon=True)
            self._threads.append(t)
            t.start()

        self._feed_thread = threading.Thread(target=self.feed.run, name="IncidentFeed", daemon=True)
        self._feed_thread.start()

    def inject_fault(self, drone_id: int, fault: FaultKind) -> FireEvent | None:
        """Inject ``fault`` into a running drone."""
        for drone in self.drones:
            if drone.id == drone_id:
                return drone.inject_fault(fault)
        return self.coordinator.report_fault(drone_id, fault)

    @property
    def alive(self) -> bool:
        return any(t.is_alive() for t in self._threads) or bool(
            self._feed_thread and self._feed_thread.is_alive()
        )

    def wait(self, on_tick: Callable[[CoordinatorSnapshot], None] | None = None, tick: float = 0.25) -> bool:
        """Block until every thread has stopped.

        Args:
            on_tick: Called with a fresh snapshot every ``tick`` seconds while waiting.
            tick: Polling period in real seconds.

        Returns:
            bool: True if the coordinator had to be interrupted.
        """
        interrupted = False
        for t in self._threads:
            while t.is_alive():
                t.join(tick)
                if on_tick:
                    on_tick(self.coordinator.snapshot_status())

        # No drone left; release the feed if it still waits for completions
        while self._feed_thread and self._feed_thread.is_alive():
            self._feed_thread.join(tick)
            if self._feed_thread.is_alive() and not self.coordinator.interrupted:
                pending = self.coordinator.pending_count
                logger.warning("All drones stopped with %d events pending", pending)
                self.coordinator.interrupt()
                interrupted = True
            if on_tick:
                on_tick(self.coordinator.snapshot_status())
        return interrupted

    def stop(self) -> None:
        """Interrupt every drone and the coordinator."""
        for drone in self.drones:
            drone.interrupt()
        self.coordinator.interrupt()

    def run(self, on_tick: Callable[[CoordinatorSnapshot], None] | None = None) -> SimulationResult:
        """Run the simulation to completion and collect the results."""
        started = time.monotonic()
        self.start()
        try:
            interrupted = self.wait(on_tick)
        except KeyboardInterrupt:
            logger.warning("Simulation stopped by user")
            self.stop()
            self.wait()
            interrupted = True

        result = SimulationResult(
            completed=list(self.feed.completed),
            missions=self.coordinator.mission_log(),
            final_status=self.coordinator.snapshot_status(),
            interrupted=interrupted,
            wall_time=time.monotonic() - started,
        )
        logger.info(
            "Simulation finished in %.2f s: %d completed, %d pending",
            result.wall_time,
            len(result.completed),
            result.unserviced,
        )
        return result
