"""
Station definitions and runtime settings.

Supported stations live in SUPPORTED_STATIONS. To track another station,
add its GTFS parent_station id there.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from constants import (
    CACHE_TTL_SEC,
    DEFAULT_FRONTEND_URL,
    DEFAULT_STATION,
    DEFAULT_TIMEZONE,
    TRIP_UPDATES_URL,
    VEHICLE_POSITIONS_URL,
)

BASE_DIR = Path(__file__).resolve().parent.parent


class StationConfig(BaseModel):
    """Per-station settings"""
    name: str             # display name
    parent_station: str   # stops.txt parent_station (col 9)


SUPPORTED_STATIONS: Dict[str, StationConfig] = {
    "uq_lakes": StationConfig(
        name="UQ Lakes station",
        parent_station="place_uqlksa",
    ),
}


def get_station_config(station_key: str) -> Optional[StationConfig]:
    """
    Look up a station by its config key (e.g. "uq_lakes").

    Returns None for stations that are not configured.
    """
    return SUPPORTED_STATIONS.get(station_key)


class TrackerSettings(BaseModel):
    static_data_dir: Path
    cache_dir: Path
    trip_updates_url: str = TRIP_UPDATES_URL
    vehicle_positions_url: str = VEHICLE_POSITIONS_URL
    station: str = DEFAULT_STATION
    timezone: str = DEFAULT_TIMEZONE
    cache_ttl_sec: float = Field(default=CACHE_TTL_SEC, ge=0)
    frontend_urls: List[str] = []

    @field_validator("frontend_urls", mode="before")
    @classmethod
    def _split_origins(cls, value):
        # FRONTEND_URL is a comma separated list
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def station_config(self) -> StationConfig:
        conf = get_station_config(self.station)
        if conf is None:
            raise ValueError(f"Unsupported station: {self.station}")
        return conf


def load_settings() -> TrackerSettings:
    """
    Build settings from the environment (and .env, if present).

    Raises pydantic.ValidationError (a ValueError) for malformed values.
    """
    load_dotenv()

    return TrackerSettings(
        static_data_dir=Path(os.getenv("STATIC_DATA_DIR", str(BASE_DIR / "static-data"))),
        cache_dir=Path(os.getenv("CACHE_DIR", str(BASE_DIR / "cached-data"))),
        trip_updates_url=os.getenv("TRIP_UPDATES_URL", TRIP_UPDATES_URL),
        vehicle_positions_url=os.getenv("VEHICLE_POSITIONS_URL", VEHICLE_POSITIONS_URL),
        station=os.getenv("TRACKER_STATION", DEFAULT_STATION).strip(),
        timezone=os.getenv("TRACKER_TIMEZONE", DEFAULT_TIMEZONE).strip(),
        cache_ttl_sec=os.getenv("CACHE_TTL_SEC", str(CACHE_TTL_SEC)),
        frontend_urls=os.getenv("FRONTEND_URL", DEFAULT_FRONTEND_URL),
    )
