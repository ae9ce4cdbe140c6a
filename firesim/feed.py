"""CSV ingestion and the incident feed producer.

Zone file rows look like ``1,(0;0),(700;600)``; event file rows look like
``14:03:15,3,FIRE_DETECTED,High``. Both files may start with a header row,
recognized by a first cell without digits. Any other row that fails to parse
is an error. Blank lines are ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
import csv
import logging
from pathlib import Path
from typing import TypeVar

from firesim.coordinator import END, Coordinator
from firesim.errors import DispatchInterrupted, EventParseError, UnknownZoneError, ZoneParseError
from firesim.events import FireEvent
from firesim.zones import Zone, ZoneRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _looks_like_header(row: list[str]) -> bool:
    # Data rows start with a zone id or a timestamp; header labels have no digits
    return not any(c.isdigit() for c in row[0])


def _read_rows(
    path: str | Path,
    make: Callable[[list[str]], T],
    error: type[ValueError],
) -> Iterator[T]:
    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.reader(f)
        first = True
        for row in reader:
            row = [cell.strip() for cell in row]
            if not any(row):
                continue
            if first:
                first = False
                if _looks_like_header(row):
                    logger.debug("Skipping header row of %s: %s", path, row)
                    continue
            try:
                item = make(row)
            except error as e:
                msg = f"{path}, line {reader.line_num}: {e}"
                raise error(msg) from e
            yield item


def load_zones(path: str | Path) -> ZoneRegistry:
    """Load a zone CSV file into a registry.

    Raises:
        ZoneParseError: On a malformed row or a duplicate zone id.
    """
    registry = ZoneRegistry(_read_rows(path, Zone.from_row, ZoneParseError))
    logger.info("Loaded %d zones from %s", len(registry), path)
    return registry


def load_events(path: str | Path) -> list[FireEvent]:
    """Load an event CSV file, preserving file order.

    Raises:
        EventParseError: On a malformed row.
    """
    events = list(_read_rows(path, FireEvent.from_row, EventParseError))
    logger.info("Loaded %d events from %s", len(events), path)
    return events


class IncidentFeed:
    """Producer side of a run: submits events, then drains completions.

    Attributes:
        coordinator (Coordinator): Shared dispatch coordinator.
        events (list[FireEvent]): Events to submit, in order.
        completed (list[FireEvent]): Completions received, in arrival order.
        interrupted (bool): Whether the drain was cut short by an interrupt.
    """

    def __init__(self, coordinator: Coordinator, events: Iterable[FireEvent]):
        self.coordinator = coordinator
        self.events = list(events)
        self.completed: list[FireEvent] = []
        self.interrupted = False

    def run(self) -> None:
        """Thread body of the feed.

        Events with an unknown zone are logged and skipped; everything else is
        submitted in order before the ``all_submitted`` latch is raised.
        """
        try:
            for event in self.events:
                try:
                    self.coordinator.submit(event)
                except UnknownZoneError as e:
                    logger.error("Skipping %s: %s", event, e)
            self.coordinator.mark_all_submitted()

            while (event := self.coordinator.next_completed()) is not END:
                self.completed.append(event)
                logger.info(
                    "Fire in zone %d reported extinguished (%d/%d)",
                    event.zone_id,
                    len(self.completed),
                    len(self.events),
                )
        except DispatchInterrupted as e:
            self.interrupted = True
            logger.error("Incident feed interrupted: %s", e)
            return

        logger.info("All fires handled; %d completions received", len(self.completed))
