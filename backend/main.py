# backend/main.py
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from config import load_settings
from constants import ALL_ROUTES, DEFAULT_WINDOW_MINUTES
from departures import DepartureQuery, DepartureTracker

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Station Bus Tracker")


@app.on_event("startup")
def startup_event():
    settings = load_settings()
    tracker = DepartureTracker.from_settings(settings)
    tracker.load()
    app.state.tracker = tracker
    logger.info(
        "Static data loaded: %d schedule rows for %s",
        len(tracker.station_schedule),
        tracker.station.name,
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=load_settings().frontend_urls,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_tracker() -> DepartureTracker:
    tracker: Optional[DepartureTracker] = getattr(app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=503, detail="Static schedule not loaded")
    return tracker


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/routes")
def get_routes():
    tracker = get_tracker()
    return {
        "station": tracker.station.name,
        "routes": tracker.available_routes(),
    }


@app.get("/api/departures")
def get_departures(
    date: str = Query(..., description="YYYY-MM-DD"),
    time: str = Query(..., description="HH:mm"),
    window: int = Query(DEFAULT_WINDOW_MINUTES, description="minutes after time"),
    route: str = Query(ALL_ROUTES, description="route short name"),
):
    logger.info(
        "GET /api/departures date=%s time=%s window=%s route=%s", date, time, window, route
    )
    try:
        query = DepartureQuery(date=date, time=time, window_minutes=window, route=route)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
        )

    tracker = get_tracker()
    rows = tracker.find_departures(query)

    def to_departure(row) -> Dict[str, Any]:
        return asdict(row)

    return {
        "station": tracker.station.name,
        "query": {
            "date": query.date.isoformat(),
            "time": query.time,
            "window": query.window_minutes,
            "route": query.route,
        },
        "departures": [to_departure(row) for row in rows],
    }
