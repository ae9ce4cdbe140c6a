"""Transition-validated state machine behind the drone mission loop."""

from .state_machine import Action, StateGraph, StateMachine

__all__ = ["Action", "StateGraph", "StateMachine"]
