"""
Attach GTFS-RT live data to station schedule rows.

Neither merge ever drops a row: rows without a live match get the
"No Live Data" sentinel instead.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from constants import DEFAULT_TIMEZONE, NO_LIVE_DATA
from schedule_models import JoinedScheduleRow

logger = logging.getLogger(__name__)


def _entities(feed: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    if not isinstance(feed, Mapping):
        return []
    entities = feed.get("entity")
    if not isinstance(entities, list):
        logger.warning("Live feed has no entity list, ignoring it")
        return []
    return [e for e in entities if isinstance(e, Mapping)]


def _trip_id_of(entity: Mapping[str, Any], kind: str) -> Optional[str]:
    """entity[kind].trip.tripId, or None if any level is missing."""
    inner = entity.get(kind)
    if not isinstance(inner, Mapping):
        return None
    trip = inner.get("trip")
    if not isinstance(trip, Mapping):
        return None
    return trip.get("tripId")


def index_trip_updates(feed: Optional[Mapping[str, Any]]) -> Dict[str, Mapping[str, Any]]:
    """tripId -> first tripUpdate for that trip."""
    index: Dict[str, Mapping[str, Any]] = {}
    for entity in _entities(feed):
        trip_id = _trip_id_of(entity, "tripUpdate")
        if trip_id is not None:
            index.setdefault(trip_id, entity["tripUpdate"])
    return index


def index_vehicles(feed: Optional[Mapping[str, Any]]) -> Dict[str, Mapping[str, Any]]:
    """tripId -> first vehicle for that trip."""
    index: Dict[str, Mapping[str, Any]] = {}
    for entity in _entities(feed):
        trip_id = _trip_id_of(entity, "vehicle")
        if trip_id is not None:
            index.setdefault(trip_id, entity["vehicle"])
    return index


def unix_time_to_hhmm(timestamp: int | float | str, tz: ZoneInfo) -> str:
    """Unix seconds -> "HH:MM" wall clock in tz."""
    return datetime.fromtimestamp(int(float(timestamp)), tz=tz).strftime("%H:%M")


def _stop_time_event(stop_update: Mapping[str, Any]) -> Optional[Any]:
    """arrival.time, falling back to departure.time"""
    for key in ("arrival", "departure"):
        event = stop_update.get(key)
        if isinstance(event, Mapping) and event.get("time") not in (None, ""):
            return event["time"]
    return None


def get_live_arrival_time(
    trip_update: Optional[Mapping[str, Any]], stop_id: str, tz: ZoneInfo
) -> str:
    if trip_update is None:
        return NO_LIVE_DATA

    for stop_update in trip_update.get("stopTimeUpdate") or []:
        if not isinstance(stop_update, Mapping) or stop_update.get("stopId") != stop_id:
            continue
        unix_time = _stop_time_event(stop_update)
        if unix_time is None:
            return NO_LIVE_DATA
        try:
            return unix_time_to_hhmm(unix_time, tz)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.warning("Bad live time %r for stop %s: %s", unix_time, stop_id, e)
            return NO_LIVE_DATA

    return NO_LIVE_DATA


def join_live_trips(
    rows: Sequence[JoinedScheduleRow],
    feed: Optional[Mapping[str, Any]],
    tz: ZoneInfo | None = None,
) -> List[JoinedScheduleRow]:
    """Fill live_arrival_time from the trip updates feed."""
    tz = tz or ZoneInfo(DEFAULT_TIMEZONE)
    trip_updates = index_trip_updates(feed)

    merged = [
        dataclasses.replace(
            row,
            live_arrival_time=get_live_arrival_time(
                trip_updates.get(row.trip_id), row.stop_id, tz
            ),
        )
        for row in rows
    ]
    matched = sum(1 for row in merged if row.live_arrival_time != NO_LIVE_DATA)
    logger.info("Live arrival times found for %d/%d rows", matched, len(merged))
    return merged


def join_live_positions(
    rows: Sequence[JoinedScheduleRow], feed: Optional[Mapping[str, Any]]
) -> List[JoinedScheduleRow]:
    """Fill position from the vehicle positions feed."""
    vehicles = index_vehicles(feed)

    merged: List[JoinedScheduleRow] = []
    for row in rows:
        vehicle = vehicles.get(row.trip_id)
        position = vehicle.get("position") if vehicle is not None else None
        merged.append(
            dataclasses.replace(row, position=position if position is not None else NO_LIVE_DATA)
        )

    matched = sum(1 for row in merged if row.position != NO_LIVE_DATA)
    logger.info("Live positions found for %d/%d rows", matched, len(merged))
    return merged
