"""
Shared constants for the station bus tracker.
"""

# GTFS-RT endpoints (JSON mirror of the SEQ feeds)
TRIP_UPDATES_URL = "http://127.0.0.1:5343/gtfs/seq/trip_updates.json"
VEHICLE_POSITIONS_URL = "http://127.0.0.1:5343/gtfs/seq/vehicle_positions.json"

# (connect, read) seconds
HTTP_TIMEOUT = (5, 10)

# Live feeds older than this are refetched
CACHE_TTL_SEC = 5 * 60
CACHE_FILE_PREFIX = "translink-parser_"

TRIP_UPDATES_FEED = "live_trips"
VEHICLE_POSITIONS_FEED = "live_positions"

DEFAULT_WINDOW_MINUTES = 10
DEFAULT_STATION = "uq_lakes"
DEFAULT_TIMEZONE = "Australia/Brisbane"
DEFAULT_FRONTEND_URL = "http://localhost:5173"

# Sentinels
ALL_ROUTES = "Show All Routes"
NO_LIVE_DATA = "No Live Data"

# calendar_dates.txt exception_type
EXCEPTION_ADDED = 1
EXCEPTION_REMOVED = 2
