# backend/data_cache.py
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, List, Sequence, TypeVar

from schedule_models import (
    RouteRecord,
    ServiceCalendarRecord,
    ServiceExceptionRecord,
    StopRecord,
    StopTimeRecord,
    TripRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Minimum number of fields each table row must carry (highest used column + 1)
MIN_FIELDS = {
    "stops.txt": 10,
    "stop_times.txt": 5,
    "trips.txt": 4,
    "routes.txt": 3,
    "calendar.txt": 10,
    "calendar_dates.txt": 3,
}


def _to_stop(fields: Sequence[str]) -> StopRecord:
    return StopRecord(stop_id=fields[0], stop_name=fields[2], parent_station=fields[9])


def _to_stop_time(fields: Sequence[str]) -> StopTimeRecord:
    return StopTimeRecord(
        trip_id=fields[0],
        arrival_time=fields[1],
        stop_id=fields[3],
        stop_sequence=fields[4],
    )


def _to_trip(fields: Sequence[str]) -> TripRecord:
    return TripRecord(
        route_id=fields[0],
        service_id=fields[1],
        trip_id=fields[2],
        trip_headsign=fields[3],
    )


def _to_route(fields: Sequence[str]) -> RouteRecord:
    return RouteRecord(
        route_id=fields[0],
        route_short_name=fields[1],
        route_long_name=fields[2],
    )


def _to_calendar(fields: Sequence[str]) -> ServiceCalendarRecord:
    flags = [f.strip() == "1" for f in fields[1:8]]
    return ServiceCalendarRecord(
        service_id=fields[0],
        monday=flags[0],
        tuesday=flags[1],
        wednesday=flags[2],
        thursday=flags[3],
        friday=flags[4],
        saturday=flags[5],
        sunday=flags[6],
        start_date=fields[8].strip(),
        end_date=fields[9].strip(),
    )


def _to_calendar_date(fields: Sequence[str]) -> ServiceExceptionRecord:
    return ServiceExceptionRecord(
        service_id=fields[0],
        date=fields[1].strip(),
        exception_type=int(fields[2]),
    )


def build_records(
    table: str,
    rows: Sequence[Sequence[str]],
    factory: Callable[[Sequence[str]], T],
) -> List[T]:
    """
    Convert positional field arrays into records.
    Rows that are too short or fail conversion are skipped with a warning.
    """
    min_fields = MIN_FIELDS[table]
    records: List[T] = []
    skipped_count = 0

    for idx, fields in enumerate(rows):
        if len(fields) < min_fields:
            logger.warning(
                "%s row %d has %d fields (expected >= %d), skipping",
                table,
                idx,
                len(fields),
                min_fields,
            )
            skipped_count += 1
            continue
        try:
            records.append(factory(fields))
        except ValueError as e:
            logger.warning("%s row %d could not be parsed: %s", table, idx, e)
            skipped_count += 1

    if skipped_count > 0:
        logger.warning("Skipped %d rows of %s", skipped_count, table)

    return records


class DataCache:
    """Static GTFS tables, loaded once and shared by every query."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.stops: List[StopRecord] = []
        self.stop_times: List[StopTimeRecord] = []
        self.trips: List[TripRecord] = []
        self.routes: List[RouteRecord] = []
        self.calendar: List[ServiceCalendarRecord] = []
        self.calendar_dates: List[ServiceExceptionRecord] = []

    def _read_table(self, file_name: str, required: bool = True) -> List[List[str]]:
        """Read a GTFS text file as field arrays, header row excluded."""
        path = self.data_dir / file_name
        if not path.exists():
            if required:
                raise FileNotFoundError(f"GTFS table not found: {path}")
            logger.info("%s not found, treating as empty", path)
            return []

        with path.open("r", encoding="utf-8-sig", newline="") as f:
            rows = [row for row in csv.reader(f) if row]
        return rows[1:]

    def load_all(self) -> None:
        """Read every static table used by the tracker."""
        logger.info("Reading static GTFS data from %s", self.data_dir)

        self.stops = build_records("stops.txt", self._read_table("stops.txt"), _to_stop)
        self.stop_times = build_records(
            "stop_times.txt", self._read_table("stop_times.txt"), _to_stop_time
        )
        self.trips = build_records("trips.txt", self._read_table("trips.txt"), _to_trip)
        self.routes = build_records("routes.txt", self._read_table("routes.txt"), _to_route)
        self.calendar = build_records(
            "calendar.txt", self._read_table("calendar.txt", required=False), _to_calendar
        )
        self.calendar_dates = build_records(
            "calendar_dates.txt",
            self._read_table("calendar_dates.txt", required=False),
            _to_calendar_date,
        )

        logger.info(
            "Loaded %d stops, %d stop_times, %d trips, %d routes, "
            "%d calendar entries, %d calendar date exceptions",
            len(self.stops),
            len(self.stop_times),
            len(self.trips),
            len(self.routes),
            len(self.calendar),
            len(self.calendar_dates),
        )
