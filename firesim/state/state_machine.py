"""Validated finite state machine used by the drone mission loop.

A legal transition switches the state first and then runs the action's effect,
so the effect already observes the new state. States absent from the graph
are terminal.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

StateGraph = dict[Enum, Iterable["Action"]]


@dataclass(frozen=True)
class Action:
    """A transition to ``state``; ``effect`` receives the transition's arguments."""

    state: Enum
    effect: Callable[..., Any] | None = None

    def __call__(self, *args, **kwargs) -> Any:
        if self.effect:
            return self.effect(*args, **kwargs)
        return None


class StateMachine:
    _allowed: StateGraph
    _state: Enum
    _history: list[Enum]

    def __init__(self, initial_state: Enum, nodes_graph: StateGraph):
        self._state = initial_state
        self._allowed = nodes_graph
        self._history = [initial_state]

    @property
    def current(self) -> Enum:
        return self._state

    @property
    def history(self) -> list[Enum]:
        return list(self._history)

    def request_transition(self, next_state: Enum, *args, **kwargs) -> Any:
        """Move to ``next_state`` and return the result of its effect.

        Raises:
            ValueError: If the graph has no action from the current state to
                ``next_state``.
        """
        action = self._validate_transition(self._state, next_state)
        self._state = action.state
        self._history.append(action.state)
        return action(*args, **kwargs)

    def can_transition(self, next_state: Enum) -> bool:
        return any(a.state == next_state for a in self._allowed.get(self._state, ()))

    def get_state_list(self) -> list[Enum]:
        """Sources and targets of the graph, in declaration order."""
        seen: dict[Enum, None] = {}
        for frm, actions in self._allowed.items():
            seen.setdefault(frm)
            for action in actions:
                seen.setdefault(action.state)
        return list(seen)

    def _validate_transition(self, frm: Enum, to: Enum) -> Action:
        for action in self._allowed.get(frm, ()):
            if action.state == to:
                return action

        msg = f"Illegal transition {frm.name} -> {to.name}"
        raise ValueError(msg)
