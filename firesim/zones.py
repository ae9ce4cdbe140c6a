"""Zone registry: static lookup from zone id to a rectangular area.

Zones are loaded once before the coordinator starts accepting events and are
never mutated afterwards, so the registry is shared read-only between the
coordinator and every drone thread without locking.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from firesim.errors import UnknownZoneError, ZoneParseError


@dataclass(frozen=True)
class Zone:
    """Axis-aligned rectangular zone.

    The corners may be given in any order; ``center`` is the midpoint of the
    two corners either way.

    Attributes:
        id: Unique zone identifier.
        x1, y1: First corner.
        x2, y2: Opposite corner.
    """

    id: int
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def width(self) -> float:
        return abs(self.x2 - self.x1)

    @property
    def height(self) -> float:
        return abs(self.y2 - self.y1)

    def contains(self, x: float, y: float) -> bool:
        """Check whether ``(x, y)`` lies inside the zone, borders included."""
        return (
            min(self.x1, self.x2) <= x <= max(self.x1, self.x2)
            and min(self.y1, self.y2) <= y <= max(self.y1, self.y2)
        )

    @classmethod
    def from_row(cls, row: Sequence[str]) -> Zone:
        """Parse a ``id,(x1;y1),(x2;y2)`` CSV row.

        Raises:
            ZoneParseError: If the row is malformed.
        """
        if len(row) < 3:
            msg = f"Expected 3 columns (id, start, end), got {len(row)}: {list(row)}"
            raise ZoneParseError(msg)
        try:
            zone_id = int(row[0].strip())
        except ValueError as e:
            msg = f"Invalid zone id {row[0]!r}"
            raise ZoneParseError(msg) from e
        x1, y1 = _parse_corner(row[1])
        x2, y2 = _parse_corner(row[2])
        return cls(zone_id, x1, y1, x2, y2)

    def __str__(self) -> str:
        return f"Zone {self.id} ({self.x1}, {self.y1})-({self.x2}, {self.y2})"


def _parse_corner(cell: str) -> tuple[float, float]:
    parts = cell.strip().strip("()").split(";")
    if len(parts) != 2:
        msg = f"Invalid corner {cell!r}, expected '(x;y)'"
        raise ZoneParseError(msg)
    try:
        return float(parts[0]), float(parts[1])
    except ValueError as e:
        msg = f"Invalid corner {cell!r}, expected numeric coordinates"
        raise ZoneParseError(msg) from e


class ZoneRegistry(Mapping[int, Zone]):
    """Read-only mapping from zone id to :class:`Zone`.

    Lookups of unknown ids raise :class:`~firesim.errors.UnknownZoneError`, which
    is also a ``KeyError`` so the registry behaves like any other mapping.
    """

    def __init__(self, zones: Iterable[Zone] = ()):
        table: dict[int, Zone] = {}
        for zone in zones:
            if zone.id in table:
                msg = f"Duplicate zone id {zone.id}"
                raise ZoneParseError(msg)
            table[zone.id] = zone
        self._zones = MappingProxyType(table)

    def __getitem__(self, zone_id: int) -> Zone:
        try:
            return self._zones[zone_id]
        except KeyError:
            raise UnknownZoneError(zone_id) from None

    def __iter__(self) -> Iterator[int]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

    def as_mapping(self) -> Mapping[int, Zone]:
        return self._zones

    def __repr__(self) -> str:
        return f"ZoneRegistry({sorted(self._zones)})"
