"""
Shared pytest fixtures for the station bus tracker tests

Provides:
- A miniature static GTFS feed written to tmp_path
- Live trip update / vehicle position feeds in the JSON feed shape
- A DepartureTracker wired to an in-memory cache and a fake fetcher
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

from config import get_station_config
from data_cache import DataCache
from departures import DepartureTracker
from feed_cache import LiveFeedCache, MemoryCacheStore

BRISBANE = ZoneInfo("Australia/Brisbane")

TRIP_UPDATES_URL = "http://feeds.test/trip_updates.json"
VEHICLE_POSITIONS_URL = "http://feeds.test/vehicle_positions.json"

STATIC_TABLES = {
    "stops.txt": [
        "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon,zone_id,stop_url,location_type,parent_station,platform_code",
        "S1,001,UQ Lakes stop A,,-27.4977,153.0173,1,,0,place_uqlksa,A",
        "S2,002,UQ Lakes stop B,,-27.4978,153.0175,1,,0,place_uqlksa,B",
        "X9,009,Somewhere else,,-27.4700,153.0200,1,,0,place_other,",
    ],
    "stop_times.txt": [
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence,pickup_type,drop_off_type",
        "T1,08:05:00,08:05:00,S1,3,0,0",
        "T2,08:09:00,08:09:00,S2,5,0,0",
        "T3,08:10:00,08:10:00,S1,4,0,0",
        "T4,07:59:00,07:59:00,S1,2,0,0",
        "T5,08:03:00,08:03:00,S1,1,0,0",
        "T6,08:02:00,08:02:00,S2,1,0,0",
        "T7,08:06:00,08:06:00,X9,1,0,0",
        "T8,08:04:00,08:04:00,S1,1,0,0",
    ],
    "trips.txt": [
        "route_id,service_id,trip_id,trip_headsign,direction_id,block_id,shape_id",
        "R1,SV1,T1,City,0,,",
        "R2,SV1,T2,Indooroopilly,1,,",
        "R1,SV1,T3,City,0,,",
        "R1,SV1,T4,City,0,,",
        "R9,SV1,T6,Nowhere,0,,",
        "R1,SV1,T7,City,0,,",
        "R2,SV2,T8,Indooroopilly,1,,",
    ],
    "routes.txt": [
        "route_id,route_short_name,route_long_name,route_desc,route_type",
        "R1,66,City Loop,,3",
        "R2,29,UQ Lakes - Indooroopilly,,3",
    ],
    "calendar.txt": [
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date",
        "SV1,1,1,1,1,1,0,0,20240101,20241231",
        "SV2,0,0,0,0,0,1,1,20240101,20241231",
    ],
    "calendar_dates.txt": [
        "service_id,date,exception_type",
        "SV1,20240325,2",
        "SV2,20240325,1",
    ],
}

# 2024-01-15 is a Monday
TARGET_MONDAY = "2024-01-15"


def write_static_feed(directory: Path, tables: Optional[Dict[str, List[str]]] = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name, lines in (tables or STATIC_TABLES).items():
        (directory / name).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return directory


def brisbane_ts(year: int, month: int, day: int, hour: int, minute: int) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=BRISBANE).timestamp())


class FakeFetcher:
    """Feed fetcher returning canned payloads and counting calls"""

    def __init__(self, feeds: Dict[str, Optional[dict]]):
        self.feeds = feeds
        self.calls: List[str] = []

    def __call__(self, url: str) -> Optional[dict]:
        self.calls.append(url)
        return self.feeds.get(url)


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """Miniature static GTFS feed"""
    return write_static_feed(tmp_path / "static-data")


@pytest.fixture
def loaded_cache(static_dir: Path) -> DataCache:
    cache = DataCache(static_dir)
    cache.load_all()
    return cache


@pytest.fixture
def trip_updates_feed() -> dict:
    return {
        "header": {"gtfsRealtimeVersion": "2.0"},
        "entity": [
            {
                "id": "1",
                "tripUpdate": {
                    "trip": {"tripId": "T1"},
                    "stopTimeUpdate": [
                        {"stopId": "S0", "arrival": {"time": brisbane_ts(2024, 1, 15, 7, 58)}},
                        {"stopId": "S1", "arrival": {"time": brisbane_ts(2024, 1, 15, 8, 7)}},
                    ],
                },
            },
            {
                "id": "2",
                "tripUpdate": {
                    "trip": {"tripId": "T2"},
                    "stopTimeUpdate": [
                        {"stopId": "S2", "departure": {"time": brisbane_ts(2024, 1, 15, 8, 11)}},
                    ],
                },
            },
        ],
    }


@pytest.fixture
def vehicle_positions_feed() -> dict:
    return {
        "header": {"gtfsRealtimeVersion": "2.0"},
        "entity": [
            {
                "id": "v1",
                "vehicle": {
                    "trip": {"tripId": "T1"},
                    "position": {"latitude": -27.4975, "longitude": 153.0137},
                },
            },
        ],
    }


@pytest.fixture
def fake_fetcher(trip_updates_feed: dict, vehicle_positions_feed: dict) -> FakeFetcher:
    return FakeFetcher(
        {
            TRIP_UPDATES_URL: trip_updates_feed,
            VEHICLE_POSITIONS_URL: vehicle_positions_feed,
        }
    )


def make_tracker(static_dir: Path, fetcher) -> DepartureTracker:
    tracker = DepartureTracker(
        data_cache=DataCache(static_dir),
        station=get_station_config("uq_lakes"),
        feed_cache=LiveFeedCache(store=MemoryCacheStore(), fetcher=fetcher),
        trip_updates_url=TRIP_UPDATES_URL,
        vehicle_positions_url=VEHICLE_POSITIONS_URL,
        tz=BRISBANE,
    )
    tracker.load()
    return tracker


@pytest.fixture
def tracker(static_dir: Path, fake_fetcher: FakeFetcher) -> DepartureTracker:
    return make_tracker(static_dir, fake_fetcher)


@pytest.fixture
def mock_env_vars(monkeypatch, static_dir: Path, tmp_path: Path):
    """Point the app settings at the fixture feed and a temp cache dir"""
    monkeypatch.setenv("STATIC_DATA_DIR", str(static_dir))
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cached-data"))
    monkeypatch.setenv("TRACKER_STATION", "uq_lakes")
    monkeypatch.setenv("TRACKER_TIMEZONE", "Australia/Brisbane")
    monkeypatch.setenv("TRIP_UPDATES_URL", TRIP_UPDATES_URL)
    monkeypatch.setenv("VEHICLE_POSITIONS_URL", VEHICLE_POSITIONS_URL)
