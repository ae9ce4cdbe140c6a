"""Extinguishing agent tank model.

A drone carries its own :class:`AgentTank`; the coordinator only ever sees the
percentage the drone reports through ``update_status``. The tank enforces the
conservation rules of the mission model: the level never drops below zero,
never exceeds a full tank, only decreases while dropping and only returns to
full through :meth:`AgentTank.refill`.
"""

FULL_TANK = 100.0


class AgentTank:
    """Tracks the remaining extinguishing agent as a percentage of capacity.

    Attributes:
        _remaining (float): Current level, from 0.0 to 100.0.
    """

    _remaining: float

    def __init__(self, remaining: float = FULL_TANK):
        """Initialize the tank.

        Args:
            remaining (float): Initial level in percent. Defaults to a full tank.

        Raises:
            ValueError: If ``remaining`` is outside 0-100.
        """
        if remaining < 0.0 or remaining > FULL_TANK:
            msg = f"Agent level must be within 0-{FULL_TANK:g}, got {remaining}"
            raise ValueError(msg)
        self._remaining = float(remaining)

    @property
    def remaining(self) -> float:
        """Current agent level in percent."""
        return self._remaining

    def can_service(self, volume: float) -> bool:
        """Check whether the tank holds at least ``volume`` of agent."""
        return self._remaining >= volume

    def drop(self, volume: float) -> float:
        """Dispense up to ``volume`` of agent.

        The drop is capacity-limited: when the tank holds less than requested,
        everything left is dropped.

        Args:
            volume (float): Requested agent volume.

        Returns:
            float: Volume actually dropped.

        Raises:
            ValueError: If ``volume`` is negative.
        """
        if volume < 0.0:
            msg = "Drop volume cannot be negative"
            raise ValueError(msg)
        dropped = min(volume, self._remaining)
        self._remaining -= dropped
        return dropped

    def refill(self) -> None:
        """Replenish the tank to full capacity."""
        self._remaining = FULL_TANK

    def is_empty(self) -> bool:
        return self._remaining <= 0.0

    def is_full(self) -> bool:
        return self._remaining >= FULL_TANK

    def __repr__(self) -> str:
        return f"AgentTank({self._remaining:.1f}%)"
