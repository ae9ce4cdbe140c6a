"""Fire event data model.

A :class:`FireEvent` is the unit of work brokered by the coordinator. It is
immutable: the object handed back to the pending queue after a fault or a
partial drop is the very object that was first submitted.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, IntEnum, auto

from firesim.errors import EventParseError


class EventType(Enum):
    """Kind of incident report."""

    FIRE_DETECTED = auto()
    DRONE_REQUEST = auto()


# Alternative spellings accepted when parsing incident rows
_TYPE_ALIASES = {
    "INCIDENT_DETECTED": EventType.FIRE_DETECTED,
}


class Severity(IntEnum):
    """Fire severity. The ordinal orders the required agent volume."""

    LOW = 1
    MODERATE = 2
    HIGH = 3


@dataclass(frozen=True, eq=False)
class FireEvent:
    """Immutable incident record requiring service at a zone.

    Equality is identity: two reports with the same fields are still two
    distinct incidents, and the queues track the objects themselves.

    Attributes:
        timestamp: Opaque time stamp from the incident feed (e.g. ``"14:03:15"``).
        zone_id: Id of the zone on fire. Must resolve in the zone registry.
        type: Kind of report.
        severity: Fire severity.
    """

    timestamp: str
    zone_id: int
    type: EventType
    severity: Severity

    @classmethod
    def from_row(cls, row: Sequence[str]) -> FireEvent:
        """Parse a ``time,zone_id,type,severity`` CSV row.

        Enum names are matched case-insensitively and surrounding whitespace is
        ignored, so ``" 14:03:15, 3, FIRE_DETECTED, High "`` is accepted.

        Raises:
            EventParseError: If the row has too few cells or a cell cannot be parsed.
        """
        if len(row) < 4:
            msg = f"Expected 4 columns (time, zone, type, severity), got {len(row)}: {list(row)}"
            raise EventParseError(msg)

        timestamp, zone, kind, severity = (cell.strip() for cell in row[:4])
        try:
            zone_id = int(zone)
        except ValueError as e:
            msg = f"Invalid zone id {zone!r}"
            raise EventParseError(msg) from e

        return cls(timestamp, zone_id, _parse_type(kind), _parse_severity(severity))

    def __str__(self) -> str:
        return f"FireEvent({self.timestamp}, zone {self.zone_id}, {self.type.name}, {self.severity.name})"


def _parse_type(text: str) -> EventType:
    key = text.upper()
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    try:
        return EventType[key]
    except KeyError as e:
        msg = f"Unknown event type {text!r}"
        raise EventParseError(msg) from e


def _parse_severity(text: str) -> Severity:
    try:
        return Severity[text.upper()]
    except KeyError as e:
        msg = f"Unknown severity {text!r}"
        raise EventParseError(msg) from e
