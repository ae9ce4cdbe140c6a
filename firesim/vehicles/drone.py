"""Firefighting drone mission state machine.

Each :class:`FirefightingDrone` runs in its own thread and loops over one
mission at a time, talking to the shared :class:`~firesim.coordinator.Coordinator`
only through its method contract. Position and agent level are the drone's own
fields; the coordinator learns about them through ``update_status``.

Mission states:
    • IDLE: take the next event from the coordinator. Without enough agent for
      the lowest severity, hand it straight back and go refill.
    • EN_ROUTE: fly loaded to the zone center.
    • EXTINGUISHING: open doors, drop ``min(required, remaining)``, close doors.
      A full drop completes the event; a short drop requeues it.
    • RETURNING: fly unloaded back to base.
    • REFILLING: refill the tank to 100%.
    • FAULTED: entered after a fault report; idle, then stop.

    Normal flow: IDLE → EN_ROUTE → EXTINGUISHING → RETURNING → REFILLING → IDLE
    Refuse on accept: IDLE → RETURNING → REFILLING → IDLE
    Fault: any state → FAULTED

Timing:
    Phase durations are computed in simulated seconds by the
    :class:`~firesim.geometry.PhysicsModel` and waited out as
    ``simulated * config.time_scale`` real seconds. The waits never hold the
    coordinator lock. Faults are detected at phase boundaries: a fault injected
    through :meth:`FirefightingDrone.inject_fault` cuts the current wait short,
    a fault reported directly to the coordinator is noticed once the current
    wait ends.
"""

from __future__ import annotations

from enum import Enum, auto
import logging
import threading
import time

from firesim.config import SimulationConfig
from firesim.coordinator import END, Coordinator, FaultKind
from firesim.energy import FULL_TANK, AgentTank
from firesim.errors import DispatchInterrupted
from firesim.events import FireEvent
from firesim.geometry import PhysicsModel, Point, drop_volume
from firesim.mission import MissionOutcome, MissionRecord
from firesim.state import Action

from .vehicle import Vehicle

logger = logging.getLogger(__name__)


class DroneState(Enum):
    """Mission states of a firefighting drone."""

    IDLE = auto()
    EN_ROUTE = auto()
    EXTINGUISHING = auto()
    RETURNING = auto()
    REFILLING = auto()
    FAULTED = auto()


class FirefightingDrone(Vehicle):
    """A drone worker that services fire events from a coordinator.

    Attributes:
        config (SimulationConfig): Physics constants and time scale.
        physics (PhysicsModel): Timing model bound to ``config``.
        tank (AgentTank): The drone's own agent tank.
        _coordinator (Coordinator): Shared dispatch coordinator.
        _event (FireEvent | None): Mission currently held.
        _record (dict | None): Fields of the mission record being built.
        _running (bool): Loop flag of :meth:`run`.
        _wake (threading.Event): Set to cut a simulated wait short.
        _stop (threading.Event): Set by :meth:`interrupt`.
    """

    def __init__(
        self,
        drone_id: int,
        coordinator: Coordinator,
        config: SimulationConfig | None = None,
        agent: float = FULL_TANK,
    ):
        """Create the drone at base and register it with the coordinator.

        Args:
            drone_id: Identifier, unique within ``coordinator``.
            coordinator: Shared dispatch coordinator.
            config: Simulation configuration. Uses defaults if None.
            agent: Initial agent level in percent.
        """
        self.config = config or SimulationConfig()
        self.physics = PhysicsModel.from_config(self.config)
        super().__init__(drone_id, self.physics.base)

        self.tank = AgentTank(agent)
        self._coordinator = coordinator
        self._event: FireEvent | None = None
        self._record: dict | None = None
        self._running = False
        self._wake = threading.Event()
        self._stop = threading.Event()

        publish = self._publish_status
        self.init_state_machine(
            DroneState.IDLE,
            {
                DroneState.IDLE: [
                    Action(DroneState.EN_ROUTE, publish),
                    Action(DroneState.RETURNING, publish),
                    Action(DroneState.FAULTED, self.enter_faulted),
                ],
                DroneState.EN_ROUTE: [
                    Action(DroneState.EXTINGUISHING, publish),
                    Action(DroneState.FAULTED, self.enter_faulted),
                ],
                DroneState.EXTINGUISHING: [
                    Action(DroneState.RETURNING, publish),
                    Action(DroneState.FAULTED, self.enter_faulted),
                ],
                DroneState.RETURNING: [
                    Action(DroneState.REFILLING, publish),
                    Action(DroneState.FAULTED, self.enter_faulted),
                ],
                DroneState.REFILLING: [
                    Action(DroneState.IDLE, publish),
                    Action(DroneState.FAULTED, self.enter_faulted),
                ],
                DroneState.FAULTED: [],
            },
        )

        self._on_actions = {
            DroneState.IDLE: self.on_idle,
            DroneState.EN_ROUTE: self.on_en_route,
            DroneState.EXTINGUISHING: self.on_extinguishing,
            DroneState.RETURNING: self.on_returning,
            DroneState.REFILLING: self.on_refilling,
            DroneState.FAULTED: self.on_faulted,
        }

        coordinator.register_drone(drone_id, (self.position.x, self.position.y))
        self._publish_status()

    # ------------------------------------------------------------------ public API

    @property
    def agent_remaining(self) -> float:
        return self.tank.remaining

    @property
    def current_event(self) -> FireEvent | None:
        return self._event

    @property
    def is_busy(self) -> bool:
        return self._event is not None

    @property
    def running(self) -> bool:
        return self._running

    def is_operational(self) -> bool:
        return self.current_state is not DroneState.FAULTED and not self._stop.is_set()

    def inject_fault(self, fault: FaultKind) -> FireEvent | None:
        """Report ``fault`` to the coordinator and cut the current wait short.

        The coordinator requeues the held mission right away; the drone enters
        FAULTED at its next phase boundary. ``FaultKind.NONE`` clears the fault
        and leaves the current wait running.

        Returns:
            FireEvent | None: The mission the coordinator requeued, if any.
        """
        requeued = self._coordinator.report_fault(self.id, fault)
        if fault is not FaultKind.NONE:
            self._wake.set()
        return requeued

    def interrupt(self) -> None:
        """Make the current (or next) simulated wait raise :class:`DispatchInterrupted`.

        A drone blocked inside ``Coordinator.next_event`` is released by
        ``Coordinator.interrupt`` instead.
        """
        self._stop.set()
        self._wake.set()

    def run(self) -> None:
        """Thread body: step through missions until the event stream ends."""
        self._running = True
        logger.info("Drone %d started", self.id)
        try:
            while self._running:
                self.step()
        except DispatchInterrupted as e:
            logger.error("Drone %d interrupted in %s: %s", self.id, self.current_state.name, e)
            self._abandon_mission()
        finally:
            self._running = False
        logger.info("Drone %d stopped in %s", self.id, self.current_state.name)

    def step(self) -> None:
        """Execute one phase of the mission loop.

        Before running the current state's handler, a fault reported against
        this drone moves it to FAULTED.

        Raises:
            DispatchInterrupted: If the drone or the coordinator was interrupted.
        """
        if self._stop.is_set():
            msg = f"Drone {self.id} was interrupted"
            raise DispatchInterrupted(msg)
        if self.current_state is not DroneState.FAULTED and self._fault_reported():
            self.transition_to(DroneState.FAULTED)
            return
        self._on_actions[self.current_state]()

    # ------------------------------------------------------------------ state handlers

    def on_idle(self) -> None:
        result = self._coordinator.next_event(self.id)
        if result is END:
            if self._fault_reported():
                self.transition_to(DroneState.FAULTED)
            else:
                logger.info("Drone %d: no more events", self.id)
                self._running = False
            return

        self._event = result
        self._record = {
            "event": result,
            "started_at": time.monotonic(),
            "volume_required": self.physics.required_volume(result.severity),
        }

        threshold = self.config.minimum_service_threshold
        if not self.tank.can_service(threshold):
            logger.warning(
                "Drone %d: insufficient agent (%.1f%%) for %s; must refill before accepting",
                self.id,
                self.tank.remaining,
                result,
            )
            self._coordinator.submit(result, self.id)
            self._event = None
            self._record["outcome"] = MissionOutcome.REJECTED
            self.transition_to(DroneState.RETURNING)
            return

        self.transition_to(DroneState.EN_ROUTE)

    def on_en_route(self) -> None:
        event = self._event
        zone = self._coordinator.zones()[event.zone_id]
        travel = self.physics.en_route_time(self.position, zone)
        self._record["travel_time"] = travel
        logger.info(
            "Drone %d en route to zone %d, expected travel time %.1f s",
            self.id,
            event.zone_id,
            travel,
        )

        if not self._wait(travel):
            return

        self.position = Point(*zone.center)
        self._publish_status()
        self._coordinator.arrived_at_zone(self.id, event)
        self.transition_to(DroneState.EXTINGUISHING)

    def on_extinguishing(self) -> None:
        event = self._event
        required = self.physics.required_volume(event.severity)
        volume = drop_volume(required, self.tank.remaining)
        drop_time = volume / self.physics.drop_rate
        self._record["extinguish_time"] = self.physics.extinguish_time(volume)

        logger.info("Drone %d opening nozzle doors (%.1f s)", self.id, self.physics.door_time)
        if not self._wait(self.physics.door_time):
            return

        logger.info(
            "Drone %d dropping %.1f%% agent on zone %d (%.1f s)",
            self.id,
            volume,
            event.zone_id,
            drop_time,
        )
        if not self._wait(drop_time):
            return

        dropped = self.tank.drop(volume)
        self._record["volume_dropped"] = dropped
        self._record["agent_left"] = self.tank.remaining
        self._publish_status()

        logger.info("Drone %d closing nozzle doors (%.1f s)", self.id, self.physics.door_time)
        if not self._wait(self.physics.door_time):
            return

        if dropped >= required:
            accepted = self._coordinator.complete(event, self.id)
            outcome = MissionOutcome.COMPLETED
            logger.info("Drone %d extinguished fire in zone %d", self.id, event.zone_id)
        else:
            accepted = self._coordinator.submit(event, self.id)
            outcome = MissionOutcome.PARTIAL
            logger.warning(
                "Drone %d ran out of agent; fire in zone %d not fully extinguished",
                self.id,
                event.zone_id,
            )

        self._record["outcome"] = outcome if accepted else MissionOutcome.ABANDONED
        self._event = None
        self.transition_to(DroneState.RETURNING)

    def on_returning(self) -> None:
        travel = self.physics.return_time(self.position)
        if self._record is not None:
            self._record["return_time"] = travel
        logger.info("Drone %d returning to base, expected return time %.1f s", self.id, travel)

        if not self._wait(travel):
            return

        self.position = self.physics.base
        self._finish_record()
        self.transition_to(DroneState.REFILLING)

    def on_refilling(self) -> None:
        logger.info("Drone %d refilling agent at base", self.id)
        if not self._wait(self.config.refill_duration):
            return

        self.tank.refill()
        self._coordinator.returned_to_base(self.id)
        self.transition_to(DroneState.IDLE)

    def on_faulted(self) -> None:
        fault = self._coordinator.fault_of(self.id)
        logger.error("Drone %d inactive after fault %s", self.id, fault.name)
        self._wait(self.config.fault_idle_duration)
        self._running = False

    def enter_faulted(self) -> None:
        # The coordinator requeued the held mission when the fault was reported
        if self._record is not None:
            if self._event is not None:
                self._record["outcome"] = MissionOutcome.ABANDONED
            else:
                self._record.setdefault("outcome", MissionOutcome.ABANDONED)
            self._finish_record()
        self._event = None
        self._publish_status()

    # ------------------------------------------------------------------ internals

    def _wait(self, simulated: float) -> bool:
        """Wait out ``simulated`` seconds scaled to real time.

        A wake that finds neither a fault nor an interrupt resumes the wait
        until the full delay has passed. In FAULTED, faults no longer cut the
        wait short.

        Returns:
            bool: False if a fault was reported during or before the wait, in
            which case the phase must not be completed.

        Raises:
            DispatchInterrupted: If :meth:`interrupt` was called.
        """
        deadline = time.monotonic() + simulated * self.config.time_scale
        while True:
            if self._stop.is_set():
                msg = f"Drone {self.id} was interrupted"
                raise DispatchInterrupted(msg)
            if self.current_state is not DroneState.FAULTED and self._fault_reported():
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            if self._wake.wait(remaining):
                self._wake.clear()

    def _fault_reported(self) -> bool:
        return self._coordinator.fault_of(self.id) is not FaultKind.NONE

    def _publish_status(self) -> None:
        self._coordinator.update_status(
            self.id,
            self.position.x,
            self.position.y,
            self.tank.remaining,
            state=self.current_state.name,
        )

    def _finish_record(self) -> None:
        fields = self._record
        self._record = None
        if fields is None:
            return
        fields.setdefault("agent_left", self.tank.remaining)
        self._coordinator.record_mission(
            MissionRecord(
                drone_id=self.id,
                ended_at=time.monotonic(),
                **fields,
            )
        )

    def _abandon_mission(self) -> None:
        if self._event is not None:
            self._coordinator.submit(self._event, self.id)
            self._event = None
            if self._record is not None:
                self._record["outcome"] = MissionOutcome.ABANDONED
        if self._record is not None:
            self._record.setdefault("outcome", MissionOutcome.ABANDONED)
            self._finish_record()
