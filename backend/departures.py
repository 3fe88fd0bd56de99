"""
End-to-end departure lookup for one station.

    static tables -> station schedule -> active services -> time window
    -> route -> live trip updates -> live vehicle positions
"""
from __future__ import annotations

import logging
import re
from datetime import date as Date
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator

from config import StationConfig, TrackerSettings
from constants import (
    ALL_ROUTES,
    DEFAULT_WINDOW_MINUTES,
    TRIP_UPDATES_FEED,
    VEHICLE_POSITIONS_FEED,
)
from data_cache import DataCache
from feed_cache import FileCacheStore, LiveFeedCache
from filters import (
    filter_by_active_services,
    filter_by_route_short_name,
    filter_by_time,
    list_route_short_names,
)
from gtfs_client import GtfsClient
from live_merge import join_live_positions, join_live_trips
from station_schedule import build_station_schedule, get_station_stop_ids
from schedule_models import JoinedScheduleRow
from service_calendar import get_active_services_on_date

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DepartureQuery(BaseModel):
    """Query parameters. Invalid values raise pydantic.ValidationError."""

    date: Date
    time: str
    window_minutes: int = Field(default=DEFAULT_WINDOW_MINUTES, ge=0, le=24 * 60)
    route: str = ALL_ROUTES

    @field_validator("date", mode="before")
    @classmethod
    def _check_date_format(cls, value: Any) -> Any:
        # pydantic would otherwise read numeric strings as unix timestamps
        if isinstance(value, Date):
            return value
        if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value.strip()):
            raise ValueError("date must be YYYY-MM-DD")
        return value.strip()

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        value = value.strip()
        if not TIME_PATTERN.match(value):
            raise ValueError("time must be HH:mm")
        return value

    @field_validator("route")
    @classmethod
    def _check_route(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("route must not be empty")
        return value


class DepartureTracker:
    """
    Holds the static schedule for one station and answers DepartureQuery.

    The station schedule is assembled once in load(); each query re-runs
    the calendar, filters and live merge.
    """

    def __init__(
        self,
        data_cache: DataCache,
        station: StationConfig,
        feed_cache: LiveFeedCache,
        trip_updates_url: str,
        vehicle_positions_url: str,
        tz: ZoneInfo,
    ) -> None:
        self.data_cache = data_cache
        self.station = station
        self.feed_cache = feed_cache
        self.trip_updates_url = trip_updates_url
        self.vehicle_positions_url = vehicle_positions_url
        self.tz = tz
        self.station_schedule: List[JoinedScheduleRow] = []

    @classmethod
    def from_settings(
        cls, settings: TrackerSettings, client: Optional[GtfsClient] = None
    ) -> "DepartureTracker":
        client = client or GtfsClient()
        feed_cache = LiveFeedCache(
            store=FileCacheStore(settings.cache_dir),
            fetcher=client.fetch_feed,
            ttl_sec=settings.cache_ttl_sec,
        )
        return cls(
            data_cache=DataCache(settings.static_data_dir),
            station=settings.station_config,
            feed_cache=feed_cache,
            trip_updates_url=settings.trip_updates_url,
            vehicle_positions_url=settings.vehicle_positions_url,
            tz=ZoneInfo(settings.timezone),
        )

    def load(self) -> None:
        self.data_cache.load_all()
        stop_ids = get_station_stop_ids(self.data_cache.stops, self.station.parent_station)
        if not stop_ids:
            logger.warning(
                "No stops found for parent_station %s (%s)",
                self.station.parent_station,
                self.station.name,
            )
        self.station_schedule = build_station_schedule(
            stop_ids,
            self.data_cache.stop_times,
            self.data_cache.trips,
            self.data_cache.routes,
        )

    def available_routes(self) -> List[str]:
        return list_route_short_names(self.station_schedule)

    def find_scheduled(self, query: DepartureQuery) -> List[JoinedScheduleRow]:
        """Schedule-only results (no live data)."""
        active_services = get_active_services_on_date(
            query.date, self.data_cache.calendar, self.data_cache.calendar_dates
        )
        rows = filter_by_active_services(self.station_schedule, active_services)
        rows = filter_by_time(rows, query.time, query.window_minutes)
        rows = filter_by_route_short_name(rows, query.route)
        logger.info(
            "%d scheduled arrivals at %s on %s %s (+%d min, route %s)",
            len(rows),
            self.station.name,
            query.date.isoformat(),
            query.time,
            query.window_minutes,
            query.route,
        )
        return rows

    def find_departures(self, query: DepartureQuery) -> List[JoinedScheduleRow]:
        rows = self.find_scheduled(query)
        if not rows:
            return rows

        trip_feed = self.feed_cache.get(self.trip_updates_url, TRIP_UPDATES_FEED)
        rows = join_live_trips(rows, trip_feed, self.tz)

        position_feed = self.feed_cache.get(self.vehicle_positions_url, VEHICLE_POSITIONS_FEED)
        return join_live_positions(rows, position_feed)
