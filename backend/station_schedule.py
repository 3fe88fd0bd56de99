"""
Builds the station schedule: stop_times at the station joined with trips and routes.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from join import join_on_field
from schedule_models import (
    JoinedScheduleRow,
    RouteRecord,
    StopRecord,
    StopTimeRecord,
    TripRecord,
)

logger = logging.getLogger(__name__)

TRIP_FIELDS = ["route_id", "service_id", "trip_headsign"]
ROUTE_FIELDS = ["route_short_name", "route_long_name"]


def get_station_stop_ids(stops: Iterable[StopRecord], parent_station: str) -> List[str]:
    """stop_ids of every platform/stop belonging to the given parent station."""
    return [stop.stop_id for stop in stops if stop.parent_station == parent_station]


def build_station_schedule(
    stop_ids: Iterable[str],
    stop_times: Sequence[StopTimeRecord],
    trips: Sequence[TripRecord],
    routes: Sequence[RouteRecord],
) -> List[JoinedScheduleRow]:
    """
    StopTime -> Trip -> Route inner join for the given stops.

    Stop times whose trip, or trips whose route, are missing from the
    static tables are dropped.
    """
    wanted = set(stop_ids)
    station_stop_times = [st.as_row() for st in stop_times if st.stop_id in wanted]

    joined = join_on_field(
        "inner", "trip_id", station_stop_times, [t.as_row() for t in trips], TRIP_FIELDS
    )
    with_trips = len(joined)
    joined = join_on_field(
        "inner", "route_id", joined, [r.as_row() for r in routes], ROUTE_FIELDS
    )

    dropped = len(station_stop_times) - len(joined)
    if dropped:
        logger.debug(
            "Dropped %d station stop_times (%d without trip, %d without route)",
            dropped,
            len(station_stop_times) - with_trips,
            with_trips - len(joined),
        )

    logger.info(
        "Built station schedule: %d rows from %d stops", len(joined), len(wanted)
    )
    return [JoinedScheduleRow.from_row(row) for row in joined]
