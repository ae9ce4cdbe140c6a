"""Exception hierarchy for the firefighting swarm simulation.

Expected conditions of the dispatch protocol (an empty queue, a faulted drone,
a partial agent drop) are never raised: they are reported as values such as the
``END`` sentinel or a ``False`` return. The exceptions below cover programming
errors, malformed input and the one hard stop of the protocol, an interrupted
blocking wait.
"""


class FiresimError(Exception):
    """Base class for all errors raised by firesim."""


class DispatchInterrupted(FiresimError):
    """A blocking wait was interrupted before its predicate became true.

    The interrupted-wait contract offers no safe resumption point, so the thread
    that receives this error is expected to log it and leave its loop.
    """


class UnknownZoneError(FiresimError, KeyError):
    """A fire event references a zone id missing from the zone registry."""

    def __init__(self, zone_id: int):
        super().__init__(zone_id)
        self.zone_id = zone_id

    def __str__(self) -> str:
        return f"Unknown zone id: {self.zone_id}"


class EventParseError(FiresimError, ValueError):
    """An incident row could not be parsed into a fire event."""


class ZoneParseError(FiresimError, ValueError):
    """A zone row could not be parsed into a zone."""


class ConfigError(FiresimError, ValueError):
    """The simulation configuration holds unusable values."""
