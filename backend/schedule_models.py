from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class StopRecord:
    """stops.txt row"""

    stop_id: str
    stop_name: str
    # "place_xxx" style station id, empty for standalone stops
    parent_station: str


@dataclass(frozen=True)
class StopTimeRecord:
    """stop_times.txt row (one per trip and stop)"""

    trip_id: str
    # wall clock as written in the feed ("HH:MM" or "HH:MM:SS"), no date
    arrival_time: str
    stop_id: str
    stop_sequence: str

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TripRecord:
    """trips.txt row"""

    route_id: str
    service_id: str
    trip_id: str
    trip_headsign: str

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RouteRecord:
    """routes.txt row"""

    route_id: str
    route_short_name: str
    route_long_name: str

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ServiceCalendarRecord:
    """calendar.txt row: weekly recurrence bounded by [start_date, end_date]"""

    service_id: str
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    # YYYYMMDD
    start_date: str
    end_date: str

    def runs_on_isoweekday(self, isoweekday: int) -> bool:
        """isoweekday: 1=Monday ... 7=Sunday"""
        flags = (
            self.monday,
            self.tuesday,
            self.wednesday,
            self.thursday,
            self.friday,
            self.saturday,
            self.sunday,
        )
        return flags[isoweekday - 1]


@dataclass(frozen=True)
class ServiceExceptionRecord:
    """calendar_dates.txt row"""

    service_id: str
    # YYYYMMDD
    date: str
    # 1=added, 2=removed
    exception_type: int


@dataclass(frozen=True)
class JoinedScheduleRow:
    """
    One stop-time at the tracked station, joined with its trip and route.

    live_arrival_time / position stay None until the live merge fills them
    (either with feed values or the "No Live Data" sentinel).
    """

    trip_id: str
    arrival_time: str
    stop_id: str
    stop_sequence: str
    route_id: str
    service_id: str
    trip_headsign: str
    route_short_name: str
    route_long_name: str
    live_arrival_time: str | None = None
    position: Any = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JoinedScheduleRow":
        return cls(
            trip_id=row["trip_id"],
            arrival_time=row["arrival_time"],
            stop_id=row["stop_id"],
            stop_sequence=row["stop_sequence"],
            route_id=row["route_id"],
            service_id=row["service_id"],
            trip_headsign=row.get("trip_headsign", ""),
            route_short_name=row.get("route_short_name", ""),
            route_long_name=row.get("route_long_name", ""),
        )

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CacheEntry:
    """A cached live feed snapshot"""

    feed_name: str
    # unix seconds
    fetched_at: float
    payload: Dict[str, Any]
