"""Abstract worker vehicle with state machine integration.

:class:`Vehicle` is the base of every worker that runs in its own thread
against the dispatch coordinator. It supplies identity, a position on the
simulation plane and the plumbing for a validated state machine; concrete
vehicles define the states, the transition graph and one handler per state.

Execution model:
    A vehicle thread calls :meth:`Vehicle.run`, which repeatedly calls
    :meth:`Vehicle.step` until the vehicle decides to stop. ``step`` executes
    the handler of the current state exactly once and is public so tests can
    drive a vehicle one phase at a time without a thread.

Example Implementation:
    >>> class Scout(Vehicle):
    ...     def __init__(self, vehicle_id):
    ...         super().__init__(vehicle_id, ORIGIN)
    ...         self.init_state_machine(ScoutState.IDLE, scout_graph)
    ...
    ...     def step(self) -> None:
    ...         self._handlers[self.current_state]()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from firesim.geometry import Point
from firesim.state import StateGraph, StateMachine


class Vehicle(ABC):
    """Abstract base class for coordinator-driven worker vehicles.

    Attributes:
        id (int): Vehicle identifier, unique within one coordinator.
        position (Point): Current position. Owned by the vehicle; the
            coordinator only sees what the vehicle reports.
        _state_machine (StateMachine | None): Validated state machine, set up
            by :meth:`init_state_machine`.
    """

    id: int
    position: Point
    _state_machine: StateMachine | None = None

    def __init__(self, vehicle_id: int, pos: Point):
        self.id = vehicle_id
        self.position = pos

    def init_state_machine(self, initial_state: Enum, nodes_graph: StateGraph) -> None:
        """Set up the state machine with its initial state and transition graph."""
        self._state_machine = StateMachine(initial_state, nodes_graph)

    def transition_to(self, next_state: Enum, *args, **kwargs) -> Any:
        """Request a validated transition to ``next_state``.

        Returns:
            The result of the transition's effect, or None.

        Raises:
            NotImplementedError: If the state machine was never initialized.
            ValueError: If the transition is not in the graph.
        """
        if not self._state_machine:
            msg = "Subclasses must initialize the state_machine"
            raise NotImplementedError(msg)

        return self._state_machine.request_transition(next_state, *args, **kwargs)

    @property
    def current_state(self) -> Enum:
        if not self._state_machine:
            msg = "Subclasses must initialize the state_machine"
            raise NotImplementedError(msg)

        return self._state_machine.current

    @property
    def state_history(self) -> list[Enum]:
        """States visited so far, starting with the initial state."""
        if not self._state_machine:
            msg = "Subclasses must initialize the state_machine"
            raise NotImplementedError(msg)

        return self._state_machine.history

    def state_list(self) -> list[Enum]:
        """All states of the vehicle's state machine."""
        if not self._state_machine:
            msg = "Subclasses must initialize the state_machine"
            raise NotImplementedError(msg)

        return self._state_machine.get_state_list()

    @abstractmethod
    def step(self) -> None:
        """Execute the handler of the current state once."""

    @abstractmethod
    def run(self) -> None:
        """Thread body: step until the vehicle stops."""

    @property
    @abstractmethod
    def is_busy(self) -> bool:
        """Whether the vehicle currently holds a mission."""

    @abstractmethod
    def is_operational(self) -> bool:
        """Whether the vehicle can still take work."""
