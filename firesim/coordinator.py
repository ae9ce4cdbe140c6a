"""Thread-safe dispatch coordinator for the firefighting swarm.

The :class:`Coordinator` brokers fire events between one incident producer and
many drone consumers. It owns every piece of shared mutable state of a run:

    • the FIFO of pending events and the FIFO of completed events
    • the ``all_submitted`` latch raised by the producer after its last event
    • one :class:`DroneStatus` per registered drone

All of it sits behind a single ``threading.Condition``. Every public operation
takes the lock for its whole critical section; the two blocking operations
(:meth:`Coordinator.next_event` and :meth:`Coordinator.next_completed`) wait on
the condition, which releases the lock while suspended and reacquires it on
wakeup. Every state change wakes *all* waiters (``notify_all``) and every waiter
re-checks its predicate in a loop, so no code path relies on a single wakeup.

Event ownership:
    A fire event lives in exactly one place at a time: the pending queue, the
    ``current_mission`` of one drone, or the completed queue. Drones that pass
    their id to :meth:`Coordinator.next_event` have the popped event recorded as
    their mission in the same critical section, and hand it back through
    :meth:`Coordinator.complete` or :meth:`Coordinator.submit` with that id. A
    fault report moves a drone's mission back to the tail of the pending queue
    atomically; a late hand-back from that drone is then refused instead of
    duplicating the event.

End of run:
    ``END`` is returned to consumers once the latch is set, the pending queue is
    empty and no registered drone still holds a mission (a mission in flight may
    yet come back as a partial drop).

Example:
    >>> coordinator = Coordinator(ZoneRegistry([Zone(1, 0, 0, 700, 600)]))
    >>> coordinator.submit(FireEvent("14:03:15", 1, EventType.FIRE_DETECTED, Severity.LOW))
    True
    >>> coordinator.mark_all_submitted()
    >>> coordinator.next_event()
    FireEvent(timestamp='14:03:15', zone_id=1, ...)
    >>> coordinator.next_event() is END
    True
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
import logging
import threading

from firesim.energy import FULL_TANK
from firesim.errors import DispatchInterrupted
from firesim.events import FireEvent
from firesim.mission import MissionRecord
from firesim.zones import Zone, ZoneRegistry

logger = logging.getLogger(__name__)


class EndOfStream(Enum):
    """Sentinel type returned by the blocking queue operations at end of run."""

    END = auto()

    def __repr__(self) -> str:
        return "END"


END = EndOfStream.END


class Phase(Enum):
    """Coarse dispatch phase, for observability only.

    WAITING: a consumer is blocked on an empty pending queue.
    QUEUED: events were submitted while a consumer was waiting.
    ACTIVE: an event was just handed to a consumer.
    """

    WAITING = auto()
    QUEUED = auto()
    ACTIVE = auto()


class FaultKind(Enum):
    """Faults that can be reported against a drone."""

    NONE = auto()
    COMMUNICATION_LOST = auto()
    NOZZLE_FAILURE = auto()
    STUCK_IN_FLIGHT = auto()


@dataclass
class DroneStatus:
    """Coordinator-side record of one drone. Only mutated under the coordinator lock."""

    id: int
    x: float = 0.0
    y: float = 0.0
    agent_remaining: float = FULL_TANK
    fault: FaultKind = FaultKind.NONE
    current_mission: FireEvent | None = None
    state: str = "IDLE"

    def snapshot(self) -> DroneSnapshot:
        return DroneSnapshot(
            id=self.id,
            position=(self.x, self.y),
            agent_remaining=self.agent_remaining,
            fault=self.fault,
            current_mission=self.current_mission,
            state=self.state,
        )


@dataclass(frozen=True)
class DroneSnapshot:
    """Immutable copy of a :class:`DroneStatus` taken under the lock."""

    id: int
    position: tuple[float, float]
    agent_remaining: float
    fault: FaultKind
    current_mission: FireEvent | None
    state: str

    @property
    def is_faulted(self) -> bool:
        return self.fault is not FaultKind.NONE


@dataclass(frozen=True)
class CoordinatorSnapshot:
    """Consistent point-in-time view of the coordinator for renderers.

    Attributes:
        drones: One snapshot per registered drone, ordered by id.
        pending_count: Events waiting for a drone.
        completed_count: Completed events not yet drained by the producer.
        phase: Current dispatch phase.
        all_submitted: Whether the producer raised the latch.
    """

    drones: tuple[DroneSnapshot, ...]
    pending_count: int
    completed_count: int
    phase: Phase
    all_submitted: bool

    def drone(self, drone_id: int) -> DroneSnapshot:
        for snap in self.drones:
            if snap.id == drone_id:
                return snap
        raise KeyError(drone_id)


class Coordinator:
    """Shared blocking queue of fire events, drone registry and status table.

    Attributes:
        _zones (ZoneRegistry): Read-only zone lookup shared with the drones.
        _cond (threading.Condition): The single lock guarding everything below.
        _pending (deque[FireEvent]): Events waiting for a drone, strict FIFO.
        _completed (deque[FireEvent]): Fully serviced events, FIFO.
        _all_submitted (bool): One-way latch set by the producer.
        _closed (bool): Set by :meth:`interrupt`; blocked waits then raise.
        _statuses (dict[int, DroneStatus]): Per-drone status keyed by drone id.
        _phase (Phase): Observability-only dispatch phase.
        _mission_log (list[MissionRecord]): Mission records reported by drones.
    """

    def __init__(
        self,
        zones: ZoneRegistry | Mapping[int, Zone] | Iterable[Zone],
        base_position: tuple[float, float] = (0.0, 0.0),
    ):
        """Initialize the coordinator.

        Args:
            zones: Zone registry, or a mapping/iterable of zones to build one from.
                Must be complete before the first event is submitted.
            base_position: Where newly registered drones start.
        """
        if isinstance(zones, ZoneRegistry):
            self._zones = zones
        elif isinstance(zones, Mapping):
            self._zones = ZoneRegistry(zones.values())
        else:
            self._zones = ZoneRegistry(zones)
        self._base_position = base_position

        self._cond = threading.Condition()
        self._pending: deque[FireEvent] = deque()
        self._completed: deque[FireEvent] = deque()
        self._all_submitted = False
        self._closed = False
        self._statuses: dict[int, DroneStatus] = {}
        self._phase = Phase.WAITING
        self._mission_log: list[MissionRecord] = []

    # ------------------------------------------------------------------ producer side

    def submit(self, event: FireEvent, drone_id: int | None = None) -> bool:
        """Append ``event`` to the tail of the pending queue. Never blocks.

        A drone handing back the mission it holds (resource exhaustion on
        accept, or a partial drop) passes its id so the ownership is released
        in the same critical section.

        Args:
            event: Event to queue.
            drone_id: Drone handing the event back, if any.

        Returns:
            bool: False if ``drone_id`` no longer owns ``event`` (a fault report
            already requeued it) and the hand-back was dropped, True otherwise.

        Raises:
            UnknownZoneError: If the event's zone is not in the registry.
        """
        self._zones[event.zone_id]

        with self._cond:
            if drone_id is not None and not self._release_locked(drone_id, event):
                return False
            self._pending.append(event)
            if self._phase is Phase.WAITING:
                self._phase = Phase.QUEUED
            pending = len(self._pending)
            self._cond.notify_all()

        if drone_id is None:
            logger.info("Submitted %s (pending: %d)", event, pending)
        else:
            logger.info("Drone %d requeued %s (pending: %d)", drone_id, event, pending)
        return True

    def mark_all_submitted(self) -> None:
        """Raise the ``all_submitted`` latch. Idempotent; the latch never reverts."""
        with self._cond:
            already = self._all_submitted
            self._all_submitted = True
            self._cond.notify_all()
        if not already:
            logger.info("All events submitted")

    def next_completed(self) -> FireEvent | EndOfStream:
        """Pop the oldest completed event, blocking until one is available.

        Returns:
            FireEvent | EndOfStream: The next completed event, or ``END`` once no
            completion can ever arrive.

        Raises:
            DispatchInterrupted: If :meth:`interrupt` is called while waiting.
        """
        with self._cond:
            while not self._completed:
                if self._run_finished_locked():
                    return END
                self._check_open_locked()
                self._cond.wait()
            return self._completed.popleft()

    # ------------------------------------------------------------------ consumer side

    def next_event(self, drone_id: int | None = None) -> FireEvent | EndOfStream:
        """Pop the head of the pending queue, blocking while it is empty.

        Args:
            drone_id: Registered drone taking the event. The event becomes that
                drone's ``current_mission`` atomically with the pop.

        Returns:
            FireEvent | EndOfStream: The oldest pending event, or ``END`` when the
            run is finished. A faulted drone always receives ``END``.

        Raises:
            DispatchInterrupted: If :meth:`interrupt` is called while waiting.
        """
        with self._cond:
            while True:
                self._check_open_locked()
                status = self._statuses.get(drone_id) if drone_id is not None else None
                if status is not None and status.fault is not FaultKind.NONE:
                    return END
                if self._pending:
                    break
                if self._run_finished_locked():
                    return END
                self._phase = Phase.WAITING
                self._cond.wait()

            event = self._pending.popleft()
            self._phase = Phase.ACTIVE
            if status is not None:
                status.current_mission = event
            return event

    def complete(self, event: FireEvent, drone_id: int | None = None) -> bool:
        """Append ``event`` to the completed queue and wake waiters.

        Returns:
            bool: False if ``drone_id`` no longer owns ``event`` and the
            completion was dropped, True otherwise.
        """
        with self._cond:
            if drone_id is not None and not self._release_locked(drone_id, event):
                return False
            self._completed.append(event)
            self._cond.notify_all()
        logger.info("Completed %s", event)
        return True

    # ------------------------------------------------------------------ drone registry

    def register_drone(self, drone_id: int, position: tuple[float, float] | None = None) -> bool:
        """Insert a fresh status for ``drone_id``, by default at the base position.

        Returns:
            bool: True if the drone was new, False if it was already registered.
        """
        with self._cond:
            if drone_id in self._statuses:
                return False
            x, y = position if position is not None else self._base_position
            self._statuses[drone_id] = DroneStatus(id=drone_id, x=x, y=y)
        logger.debug("Registered drone %d", drone_id)
        return True

    def update_status(
        self,
        drone_id: int,
        x: float,
        y: float,
        agent_remaining: float,
        state: str | None = None,
    ) -> bool:
        """Overwrite the position and agent level of a drone.

        Returns:
            bool: False if the drone is unknown (nothing changed), True otherwise.

        Raises:
            ValueError: If ``agent_remaining`` is outside 0-100.
        """
        if agent_remaining < 0.0 or agent_remaining > FULL_TANK:
            msg = f"Agent level must be within 0-{FULL_TANK:g}, got {agent_remaining}"
            raise ValueError(msg)

        with self._cond:
            status = self._statuses.get(drone_id)
            if status is None:
                return False
            status.x = x
            status.y = y
            status.agent_remaining = agent_remaining
            if state is not None:
                status.state = state
            return True

    def report_fault(self, drone_id: int, fault: FaultKind) -> FireEvent | None:
        """Mark a drone as faulted and requeue its in-flight mission.

        This is the only path by which a mission held by a drone returns to the
        pending queue without passing through the completed queue. The mission
        goes to the tail of the queue. ``FaultKind.NONE`` clears a fault.

        Returns:
            FireEvent | None: The requeued mission, if the drone held one.
        """
        with self._cond:
            status = self._statuses.get(drone_id)
            if status is None:
                logger.warning("Fault %s reported for unknown drone %d", fault.name, drone_id)
                return None

            status.fault = fault
            requeued = None
            if fault is not FaultKind.NONE and status.current_mission is not None:
                requeued = status.current_mission
                status.current_mission = None
                self._pending.append(requeued)
            self._cond.notify_all()

        if fault is FaultKind.NONE:
            logger.info("Drone %d fault cleared", drone_id)
        elif requeued is not None:
            logger.warning("Drone %d faulted (%s); requeued %s", drone_id, fault.name, requeued)
        else:
            logger.warning("Drone %d faulted (%s)", drone_id, fault.name)
        return requeued

    def fault_of(self, drone_id: int) -> FaultKind:
        """Current fault of a drone; ``NONE`` for unknown drones."""
        with self._cond:
            status = self._statuses.get(drone_id)
            return status.fault if status is not None else FaultKind.NONE

    def arrived_at_zone(self, drone_id: int, event: FireEvent) -> None:
        logger.info("Drone %d arrived at zone %d", drone_id, event.zone_id)

    def returned_to_base(self, drone_id: int) -> None:
        """Record that a drone is back at base with a full tank."""
        with self._cond:
            status = self._statuses.get(drone_id)
            if status is None:
                return
            status.agent_remaining = FULL_TANK
            status.current_mission = None
        logger.info("Drone %d returned to base and refilled", drone_id)

    def zones(self) -> ZoneRegistry:
        """Read-only zone registry."""
        return self._zones

    # ------------------------------------------------------------------ observability

    def snapshot_status(self) -> CoordinatorSnapshot:
        """Consistent view of all drone statuses and queue sizes."""
        with self._cond:
            return CoordinatorSnapshot(
                drones=tuple(self._statuses[i].snapshot() for i in sorted(self._statuses)),
                pending_count=len(self._pending),
                completed_count=len(self._completed),
                phase=self._phase,
                all_submitted=self._all_submitted,
            )

    @property
    def phase(self) -> Phase:
        with self._cond:
            return self._phase

    @property
    def all_submitted(self) -> bool:
        with self._cond:
            return self._all_submitted

    @property
    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending)

    @property
    def completed_count(self) -> int:
        with self._cond:
            return len(self._completed)

    def record_mission(self, record: MissionRecord) -> None:
        with self._cond:
            self._mission_log.append(record)

    def mission_log(self) -> list[MissionRecord]:
        with self._cond:
            return list(self._mission_log)

    # ------------------------------------------------------------------ shutdown

    def interrupt(self) -> None:
        """Wake every blocked waiter with :class:`DispatchInterrupted`.

        Used to stop a run that can no longer finish on its own, for example
        when every drone has faulted while events are still pending.
        """
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        logger.warning("Coordinator interrupted")

    @property
    def interrupted(self) -> bool:
        with self._cond:
            return self._closed

    # ------------------------------------------------------------------ internals

    def _check_open_locked(self) -> None:
        if self._closed:
            msg = "Coordinator was interrupted while waiting"
            raise DispatchInterrupted(msg)

    def _run_finished_locked(self) -> bool:
        if not self._all_submitted or self._pending:
            return False
        return all(s.current_mission is None for s in self._statuses.values())

    def _release_locked(self, drone_id: int, event: FireEvent) -> bool:
        status = self._statuses.get(drone_id)
        if status is None:
            return True
        if status.current_mission is not event:
            logger.warning("Drone %d no longer holds %s; dropping stale hand-back", drone_id, event)
            return False
        status.current_mission = None
        return True
