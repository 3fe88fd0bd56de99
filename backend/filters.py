"""
Row filters applied in order: active services -> time window -> route.
"""
from __future__ import annotations

import logging
from typing import Collection, List, Sequence

from constants import ALL_ROUTES
from schedule_models import JoinedScheduleRow

logger = logging.getLogger(__name__)


def hhmm_to_minutes(time_str: str) -> int:
    """
    "HH:MM" or "HH:MM:SS" -> minutes since midnight (seconds are dropped).

    Hours above 23 are kept as-is ("25:10" -> 1510), matching GTFS service times.
    """
    parts = time_str.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time format: {time_str} (expected HH:MM)")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError as e:
        raise ValueError(f"Invalid time components in '{time_str}': {e}")
    if hours < 0 or not (0 <= minutes <= 59):
        raise ValueError(f"Invalid time: {time_str}")
    return hours * 60 + minutes


def filter_by_active_services(
    rows: Sequence[JoinedScheduleRow], active_services: Collection[str]
) -> List[JoinedScheduleRow]:
    return [row for row in rows if row.service_id in active_services]


def filter_by_time(
    rows: Sequence[JoinedScheduleRow], time_str: str, window_minutes: int
) -> List[JoinedScheduleRow]:
    """
    Keep rows arriving in [time_str, time_str + window_minutes).

    The window only looks forward from the requested time.
    """
    if window_minutes < 0:
        raise ValueError(f"window_minutes must be >= 0, got {window_minutes}")

    min_time = hhmm_to_minutes(time_str)
    max_time = min_time + window_minutes

    kept: List[JoinedScheduleRow] = []
    for row in rows:
        try:
            arrival = hhmm_to_minutes(row.arrival_time)
        except ValueError:
            logger.warning(
                "Trip %s has unparseable arrival_time %r at stop %s, skipping",
                row.trip_id,
                row.arrival_time,
                row.stop_id,
            )
            continue
        if min_time <= arrival < max_time:
            kept.append(row)
    return kept


def filter_by_route_short_name(
    rows: Sequence[JoinedScheduleRow], route_short_name: str
) -> List[JoinedScheduleRow]:
    if route_short_name == ALL_ROUTES:
        return list(rows)
    return [row for row in rows if row.route_short_name == route_short_name]


def list_route_short_names(rows: Sequence[JoinedScheduleRow]) -> List[str]:
    """Distinct route short names in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        seen.setdefault(row.route_short_name, None)
    return list(seen)
