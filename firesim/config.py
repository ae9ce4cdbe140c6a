"""Simulation configuration for the firefighting drone swarm.

This module centralizes the physical constants and runtime knobs used by the
coordinator, the drone mission state machine and the simulation runner. The
values below are the measured calibration figures of the swarm: loaded and
unloaded cruise speeds, agent drop rate, nozzle door timing and the agent
volume each fire severity requires.

All durations are expressed in *simulated* seconds. The ``time_scale`` field
converts them into real waits (``real = simulated * time_scale``); it is a pure
pacing concern and never changes the computed travel or extinguish times.

Example:
    >>> from firesim.config import SimulationConfig
    >>> from firesim.events import Severity
    >>> config = SimulationConfig(drone_count=3, time_scale=0.0)
    >>> config.validate()
    >>> config.volume_for(Severity.HIGH)
    30.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os

from firesim.errors import ConfigError
from firesim.events import Severity

# Flight
CRUISE_SPEED_LOADED = 10.0
CRUISE_SPEED_UNLOADED = 15.0

# Nozzle
NOZZLE_DOOR_TIME = 0.5
DROP_RATE = 2.0

# Agent volume (percent of tank) per severity
LOW_VOLUME = 10.0
MODERATE_VOLUME = 20.0
HIGH_VOLUME = 30.0

# Base station
REFILL_DURATION = 150.0
FAULT_IDLE_DURATION = 500.0
BASE_POSITION = (0.0, 0.0)

# Real seconds per simulated second
TIME_SCALE = 0.01

ENV_PREFIX = "FIRESIM_"
_ENV_CASTS = {"drone_count": int, "log_level": str}


def _default_volumes() -> dict[Severity, float]:
    return {
        Severity.LOW: LOW_VOLUME,
        Severity.MODERATE: MODERATE_VOLUME,
        Severity.HIGH: HIGH_VOLUME,
    }


@dataclass
class SimulationConfig:
    """Configuration for one swarm simulation run.

    Attributes:
        drone_count: Number of drone worker threads to start.
        cruise_speed_loaded: Speed while carrying agent to a zone.
        cruise_speed_unloaded: Speed on the way back to base.
        drop_rate: Agent volume dispensed per simulated second.
        nozzle_door_time: Time to open (or close) the nozzle doors, applied once each.
        refill_duration: Simulated time spent refilling at base.
        fault_idle_duration: Simulated time a faulted drone idles before it terminates.
        time_scale: Real seconds waited per simulated second. ``0`` disables waiting.
        base_position: Coordinates of the base station.
        volumes: Agent volume required per fire severity.
        log_level: Level passed to :func:`firesim.log.setup_logging`.
    """

    drone_count: int = 1
    cruise_speed_loaded: float = CRUISE_SPEED_LOADED
    cruise_speed_unloaded: float = CRUISE_SPEED_UNLOADED
    drop_rate: float = DROP_RATE
    nozzle_door_time: float = NOZZLE_DOOR_TIME
    refill_duration: float = REFILL_DURATION
    fault_idle_duration: float = FAULT_IDLE_DURATION
    time_scale: float = TIME_SCALE
    base_position: tuple[float, float] = BASE_POSITION
    volumes: dict[Severity, float] = field(default_factory=_default_volumes)
    log_level: str = "INFO"

    def volume_for(self, severity: Severity) -> float:
        """Return the agent volume a fire of ``severity`` requires."""
        return self.volumes[severity]

    @property
    def minimum_service_threshold(self) -> float:
        """Smallest agent level with which a drone may accept a mission.

        This is the volume of the lowest severity tier: a drone holding less
        than that cannot fully service any fire and must refill first.
        """
        return self.volumes[min(self.volumes)]

    def validate(self) -> None:
        """Check the configuration for values the physics model cannot use.

        Raises:
            ConfigError: If a speed, rate or count is not positive, a duration or
                the time scale is negative, or a severity has no volume.
        """
        if self.drone_count < 1:
            msg = f"drone_count must be at least 1, got {self.drone_count}"
            raise ConfigError(msg)
        for name in ("cruise_speed_loaded", "cruise_speed_unloaded", "drop_rate"):
            if getattr(self, name) <= 0:
                msg = f"{name} must be positive, got {getattr(self, name)}"
                raise ConfigError(msg)
        for name in ("nozzle_door_time", "refill_duration", "fault_idle_duration", "time_scale"):
            if getattr(self, name) < 0:
                msg = f"{name} cannot be negative, got {getattr(self, name)}"
                raise ConfigError(msg)
        missing = [s.name for s in Severity if s not in self.volumes]
        if missing:
            msg = f"No agent volume configured for severity {', '.join(missing)}"
            raise ConfigError(msg)
        if any(v <= 0 or v > 100 for v in self.volumes.values()):
            msg = "Agent volumes must be within (0, 100]"
            raise ConfigError(msg)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> SimulationConfig:
        """Build a configuration from ``FIRESIM_*`` environment variables.

        Scalar fields are read from ``FIRESIM_<FIELD_NAME>`` (for example
        ``FIRESIM_DRONE_COUNT=4`` or ``FIRESIM_TIME_SCALE=0``). Keyword
        ``overrides`` win over the environment.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
            **overrides: Explicit field values.

        Returns:
            SimulationConfig: The validated configuration.

        Raises:
            ConfigError: If a variable cannot be converted or the result is invalid.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            if f.name in ("volumes", "base_position"):
                continue
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            kind = _ENV_CASTS.get(f.name, float)
            try:
                values[f.name] = kind(raw)
            except ValueError as e:
                msg = f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}"
                raise ConfigError(msg) from e

        values.update(overrides)
        config = cls(**values)
        config.validate()
        return config
