"""Firefighting drone swarm dispatch simulation.

A shared :class:`~firesim.coordinator.Coordinator` brokers fire events between
an incident feed and a pool of :class:`~firesim.vehicles.FirefightingDrone`
threads. Each drone flies to the event's zone, drops extinguishing agent,
returns to base and refills; partial drops and faults requeue the event.

Package Layout:
    • config: :class:`SimulationConfig` physics constants and runtime knobs
    • events / zones: fire event and zone data model, CSV row parsing
    • geometry: distance, travel time and extinguish time
    • energy: the drone's agent tank
    • state: validated finite state machine
    • coordinator: thread-safe dispatch queue and drone status table
    • vehicles: the drone mission state machine
    • feed / simulator: CSV loading, incident producer and run wiring
    • analysis: pandas/matplotlib post-run mission analysis
    • cli: ``firesim`` command line entry point

Usage:
    >>> from firesim import Simulation, SimulationConfig
    >>> from firesim.feed import load_events, load_zones
    >>> sim = Simulation(SimulationConfig(drone_count=3), load_zones("zones.csv"), load_events("events.csv"))
    >>> result = sim.run()
"""

from firesim.config import SimulationConfig
from firesim.coordinator import END, Coordinator, FaultKind
from firesim.events import EventType, FireEvent, Severity
from firesim.simulator import Simulation, SimulationResult
from firesim.vehicles import DroneState, FirefightingDrone
from firesim.zones import Zone, ZoneRegistry

__all__ = [
    "END",
    "Coordinator",
    "DroneState",
    "EventType",
    "FaultKind",
    "FireEvent",
    "FirefightingDrone",
    "Severity",
    "Simulation",
    "SimulationConfig",
    "SimulationResult",
    "Zone",
    "ZoneRegistry",
]
