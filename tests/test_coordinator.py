"""
Tests for the dispatch coordinator.
"""

import threading
import unittest

from firesim.coordinator import END, Coordinator, FaultKind, Phase
from firesim.errors import DispatchInterrupted, UnknownZoneError
from firesim.events import EventType, FireEvent, Severity
from firesim.zones import Zone

JOIN_TIMEOUT = 5.0


def make_event(zone_id=1, severity=Severity.LOW, timestamp="14:03:15"):
    return FireEvent(timestamp, zone_id, EventType.FIRE_DETECTED, severity)


def make_coordinator():
    return Coordinator([Zone(1, 0, 0, 700, 600), Zone(2, 0, 600, 650, 1500)])


def run_in_thread(fn, *args):
    """Run ``fn`` in a thread, capturing its return value or exception."""
    box = {}

    def target():
        try:
            box["result"] = fn(*args)
        except Exception as e:
            box["error"] = e

    t = threading.Thread(target=target, daemon=True)
    t.start()
    return t, box


class TestSubmitAndNextEvent(unittest.TestCase):
    """Test the pending queue."""

    def test_fifo_order(self):
        """Test events are handed out in submission order."""
        coordinator = make_coordinator()
        events = [make_event(1), make_event(2), make_event(1, Severity.HIGH)]
        for event in events:
            self.assertTrue(coordinator.submit(event))

        received = [coordinator.next_event() for _ in events]
        self.assertEqual(len(received), 3)
        for sent, got in zip(events, received):
            self.assertIs(got, sent)

    def test_unknown_zone_rejected(self):
        """Test submitting an event for an unknown zone raises."""
        coordinator = make_coordinator()
        with self.assertRaises(UnknownZoneError):
            coordinator.submit(make_event(99))
        with self.assertRaises(KeyError):
            coordinator.submit(make_event(42))
        self.assertEqual(coordinator.pending_count, 0)

    def test_next_event_blocks_until_submit(self):
        """Test a waiting consumer is woken by a submission."""
        coordinator = make_coordinator()
        t, box = run_in_thread(coordinator.next_event)
        event = make_event()
        coordinator.submit(event)
        t.join(JOIN_TIMEOUT)

        self.assertFalse(t.is_alive())
        self.assertIs(box["result"], event)

    def test_end_after_all_submitted(self):
        """Test END is returned once the latch is set and nothing is pending."""
        coordinator = make_coordinator()
        coordinator.submit(make_event())
        coordinator.mark_all_submitted()

        self.assertIsNot(coordinator.next_event(), END)
        self.assertIs(coordinator.next_event(), END)
        self.assertIs(coordinator.next_event(), END)

    def test_end_releases_every_blocked_consumer(self):
        """Test all consumers blocked on an empty queue receive END."""
        coordinator = make_coordinator()
        for drone_id in (1, 2, 3):
            coordinator.register_drone(drone_id)
        workers = [run_in_thread(coordinator.next_event, i) for i in (1, 2, 3)]

        coordinator.mark_all_submitted()
        for t, box in workers:
            t.join(JOIN_TIMEOUT)
            self.assertFalse(t.is_alive())
            self.assertIs(box["result"], END)

    def test_mark_all_submitted_is_latched(self):
        """Test the latch is idempotent and stays raised."""
        coordinator = make_coordinator()
        self.assertFalse(coordinator.all_submitted)
        coordinator.mark_all_submitted()
        coordinator.mark_all_submitted()
        self.assertTrue(coordinator.all_submitted)
        coordinator.submit(make_event())
        self.assertTrue(coordinator.all_submitted)

    def test_no_end_while_mission_in_flight(self):
        """Test END is withheld while a drone still holds a mission."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        coordinator.register_drone(2)
        event = make_event()
        coordinator.submit(event)
        coordinator.mark_all_submitted()
        self.assertIs(coordinator.next_event(1), event)

        t, box = run_in_thread(coordinator.next_event, 2)
        t.join(0.2)
        self.assertTrue(t.is_alive())

        # A partial drop hands the event back; drone 2 picks it up
        self.assertTrue(coordinator.submit(event, 1))
        t.join(JOIN_TIMEOUT)
        self.assertFalse(t.is_alive())
        self.assertIs(box["result"], event)


class TestCompletion(unittest.TestCase):
    """Test the completed queue."""

    def test_complete_then_next_completed(self):
        """Test completions are drained in order."""
        coordinator = make_coordinator()
        first, second = make_event(1), make_event(2)
        coordinator.complete(first)
        coordinator.complete(second)

        self.assertEqual(coordinator.completed_count, 2)
        self.assertIs(coordinator.next_completed(), first)
        self.assertIs(coordinator.next_completed(), second)

    def test_next_completed_end(self):
        """Test the producer sees END once the run is finished."""
        coordinator = make_coordinator()
        coordinator.mark_all_submitted()
        self.assertIs(coordinator.next_completed(), END)

    def test_next_completed_blocks_until_complete(self):
        """Test the producer is woken by a completion."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        event = make_event()
        coordinator.submit(event)
        coordinator.mark_all_submitted()

        t, box = run_in_thread(coordinator.next_completed)
        taken = coordinator.next_event(1)
        self.assertTrue(coordinator.complete(taken, 1))
        t.join(JOIN_TIMEOUT)

        self.assertFalse(t.is_alive())
        self.assertIs(box["result"], event)
        self.assertIs(coordinator.next_completed(), END)


class TestDroneRegistry(unittest.TestCase):
    """Test drone registration and status updates."""

    def test_register_is_idempotent(self):
        """Test registering the same drone twice keeps one status."""
        coordinator = make_coordinator()
        self.assertTrue(coordinator.register_drone(1))
        self.assertFalse(coordinator.register_drone(1))
        self.assertEqual(len(coordinator.snapshot_status().drones), 1)

    def test_update_status(self):
        """Test position and agent updates are visible in snapshots."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        self.assertTrue(coordinator.update_status(1, 350, 300, 90, state="EXTINGUISHING"))

        drone = coordinator.snapshot_status().drone(1)
        self.assertEqual(drone.position, (350, 300))
        self.assertEqual(drone.agent_remaining, 90)
        self.assertEqual(drone.state, "EXTINGUISHING")

    def test_update_status_unknown_drone(self):
        """Test updating an unregistered drone changes nothing."""
        coordinator = make_coordinator()
        self.assertFalse(coordinator.update_status(7, 0, 0, 50))

    def test_update_status_out_of_range(self):
        """Test agent levels outside 0-100 are rejected."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        with self.assertRaises(ValueError):
            coordinator.update_status(1, 0, 0, 120)
        with self.assertRaises(ValueError):
            coordinator.update_status(1, 0, 0, -1)

    def test_returned_to_base_refills(self):
        """Test returning to base resets agent and clears the mission."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        coordinator.submit(make_event())
        coordinator.next_event(1)
        coordinator.update_status(1, 0, 0, 10)
        coordinator.returned_to_base(1)

        drone = coordinator.snapshot_status().drone(1)
        self.assertEqual(drone.agent_remaining, 100)
        self.assertIsNone(drone.current_mission)


class TestFaults(unittest.TestCase):
    """Test fault reporting and requeueing."""

    def test_fault_requeues_mission_to_tail(self):
        """Test a fault moves the held mission to the back of the queue."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        coordinator.register_drone(2)
        first, second = make_event(1), make_event(2)
        coordinator.submit(first)
        coordinator.submit(second)

        self.assertIs(coordinator.next_event(1), first)
        self.assertIs(coordinator.report_fault(1, FaultKind.NOZZLE_FAILURE), first)
        self.assertEqual(coordinator.pending_count, 2)
        self.assertIsNone(coordinator.snapshot_status().drone(1).current_mission)

        self.assertIs(coordinator.next_event(2), second)
        self.assertTrue(coordinator.complete(second, 2))
        self.assertIs(coordinator.next_event(2), first)

    def test_faulted_drone_receives_end(self):
        """Test a faulted drone is not handed new work."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        coordinator.submit(make_event())
        coordinator.report_fault(1, FaultKind.COMMUNICATION_LOST)

        self.assertIs(coordinator.next_event(1), END)
        self.assertEqual(coordinator.pending_count, 1)
        self.assertTrue(coordinator.snapshot_status().drone(1).is_faulted)

    def test_fault_wakes_blocked_drone(self):
        """Test a drone blocked on an empty queue is released by its fault."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        t, box = run_in_thread(coordinator.next_event, 1)
        coordinator.report_fault(1, FaultKind.STUCK_IN_FLIGHT)
        t.join(JOIN_TIMEOUT)

        self.assertFalse(t.is_alive())
        self.assertIs(box["result"], END)

    def test_stale_hand_back_dropped(self):
        """Test a completion after a fault requeue is not double counted."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        event = make_event()
        coordinator.submit(event)
        coordinator.next_event(1)
        coordinator.report_fault(1, FaultKind.NOZZLE_FAILURE)

        self.assertFalse(coordinator.complete(event, 1))
        self.assertFalse(coordinator.submit(event, 1))
        self.assertEqual(coordinator.completed_count, 0)
        self.assertEqual(coordinator.pending_count, 1)

    def test_fault_unknown_drone(self):
        """Test faults for unknown drones are ignored."""
        coordinator = make_coordinator()
        self.assertIsNone(coordinator.report_fault(5, FaultKind.NOZZLE_FAILURE))
        self.assertIs(coordinator.fault_of(5), FaultKind.NONE)

    def test_clear_fault(self):
        """Test reporting NONE clears a fault."""
        coordinator = make_coordinator()
        coordinator.register_drone(1)
        coordinator.report_fault(1, FaultKind.NOZZLE_FAILURE)
        coordinator.report_fault(1, FaultKind.NONE)
        self.assertIs(coordinator.fault_of(1), FaultKind.NONE)


class TestObservability(unittest.TestCase):
    """Test snapshots and the dispatch phase."""

    def test_phase_progression(self):
        """Test the phase follows submissions and pops."""
        coordinator = make_coordinator()
        self.assertIs(coordinator.phase, Phase.WAITING)
        coordinator.submit(make_event())
        self.assertIs(coordinator.phase, Phase.QUEUED)
        coordinator.next_event()
        self.assertIs(coordinator.phase, Phase.ACTIVE)

    def test_snapshot_is_consistent_copy(self):
        """Test a snapshot does not change with later updates."""
        coordinator = make_coordinator()
        coordinator.register_drone(2)
        coordinator.register_drone(1)
        coordinator.submit(make_event())
        snapshot = coordinator.snapshot_status()
        coordinator.update_status(1, 5, 5, 50)

        self.assertEqual([d.id for d in snapshot.drones], [1, 2])
        self.assertEqual(snapshot.pending_count, 1)
        self.assertEqual(snapshot.drone(1).agent_remaining, 100)
        with self.assertRaises(KeyError):
            snapshot.drone(3)


class TestInterrupt(unittest.TestCase):
    """Test interrupting blocked waits."""

    def test_interrupt_releases_next_event(self):
        """Test a blocked consumer receives DispatchInterrupted."""
        coordinator = make_coordinator()
        t, box = run_in_thread(coordinator.next_event)
        coordinator.interrupt()
        t.join(JOIN_TIMEOUT)

        self.assertFalse(t.is_alive())
        self.assertIsInstance(box["error"], DispatchInterrupted)
        self.assertTrue(coordinator.interrupted)

    def test_interrupt_releases_next_completed(self):
        """Test a blocked producer receives DispatchInterrupted."""
        coordinator = make_coordinator()
        coordinator.submit(make_event())
        coordinator.mark_all_submitted()
        t, box = run_in_thread(coordinator.next_completed)
        coordinator.interrupt()
        t.join(JOIN_TIMEOUT)

        self.assertFalse(t.is_alive())
        self.assertIsInstance(box["error"], DispatchInterrupted)


if __name__ == '__main__':
    unittest.main()
