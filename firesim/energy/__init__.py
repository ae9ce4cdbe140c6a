"""Consumable agent tracking for firefighting drones.

Exports:
    AgentTank: Percentage-based extinguishing agent tank with drop and refill operations
    FULL_TANK: Capacity of a full tank, in percent
"""

from .tank import FULL_TANK, AgentTank

__all__ = ["AgentTank", "FULL_TANK"]
