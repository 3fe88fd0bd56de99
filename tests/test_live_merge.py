"""Tests for merging live feeds into schedule rows."""

from zoneinfo import ZoneInfo

import pytest

from conftest import brisbane_ts
from constants import NO_LIVE_DATA
from live_merge import (
    get_live_arrival_time,
    index_trip_updates,
    join_live_positions,
    join_live_trips,
    unix_time_to_hhmm,
)
from schedule_models import JoinedScheduleRow

BRISBANE = ZoneInfo("Australia/Brisbane")


def row(trip_id: str, stop_id: str = "S1", arrival_time: str = "08:05:00") -> JoinedScheduleRow:
    return JoinedScheduleRow(
        trip_id=trip_id,
        arrival_time=arrival_time,
        stop_id=stop_id,
        stop_sequence="1",
        route_id="R1",
        service_id="SV1",
        trip_headsign="City",
        route_short_name="66",
        route_long_name="City Loop",
    )


def trip_update(trip_id: str, *stop_updates: dict) -> dict:
    return {"tripUpdate": {"trip": {"tripId": trip_id}, "stopTimeUpdate": list(stop_updates)}}


def test_unix_time_to_hhmm() -> None:
    ts = brisbane_ts(2024, 1, 15, 8, 7)

    assert unix_time_to_hhmm(ts, BRISBANE) == "08:07"
    assert unix_time_to_hhmm(str(ts), BRISBANE) == "08:07"
    assert unix_time_to_hhmm(f"{ts}.0", BRISBANE) == "08:07"
    assert unix_time_to_hhmm(ts + 0.9, BRISBANE) == "08:07"
    assert unix_time_to_hhmm(ts, ZoneInfo("UTC")) == "22:07"


def test_arrival_preferred_over_departure() -> None:
    update = trip_update(
        "T1",
        {
            "stopId": "S1",
            "arrival": {"time": brisbane_ts(2024, 1, 15, 8, 7)},
            "departure": {"time": brisbane_ts(2024, 1, 15, 8, 8)},
        },
    )["tripUpdate"]

    assert get_live_arrival_time(update, "S1", BRISBANE) == "08:07"


def test_departure_used_when_arrival_missing() -> None:
    update = trip_update(
        "T1", {"stopId": "S1", "departure": {"time": brisbane_ts(2024, 1, 15, 8, 8)}}
    )["tripUpdate"]

    assert get_live_arrival_time(update, "S1", BRISBANE) == "08:08"


def test_stop_without_times_has_no_live_data() -> None:
    update = trip_update("T1", {"stopId": "S1", "scheduleRelationship": "SKIPPED"})["tripUpdate"]

    assert get_live_arrival_time(update, "S1", BRISBANE) == NO_LIVE_DATA


def test_join_live_trips(trip_updates_feed: dict) -> None:
    rows = [row("T1", "S1"), row("T2", "S2"), row("T3", "S1")]

    merged = join_live_trips(rows, trip_updates_feed, BRISBANE)

    assert [r.live_arrival_time for r in merged] == ["08:07", "08:11", NO_LIVE_DATA]
    assert [r.trip_id for r in merged] == ["T1", "T2", "T3"]
    # input rows are not mutated
    assert rows[0].live_arrival_time is None


def test_trip_matched_but_stop_missing(trip_updates_feed: dict) -> None:
    merged = join_live_trips([row("T1", "S9")], trip_updates_feed, BRISBANE)

    assert merged[0].live_arrival_time == NO_LIVE_DATA


def test_first_trip_update_wins() -> None:
    feed = {
        "entity": [
            trip_update("T1", {"stopId": "S1", "arrival": {"time": brisbane_ts(2024, 1, 15, 8, 7)}}),
            trip_update("T1", {"stopId": "S1", "arrival": {"time": brisbane_ts(2024, 1, 15, 9, 0)}}),
        ]
    }

    assert join_live_trips([row("T1")], feed, BRISBANE)[0].live_arrival_time == "08:07"


def test_protobuf_shaped_string_times() -> None:
    feed = {
        "entity": [
            trip_update("T1", {"stopId": "S1", "arrival": {"time": str(brisbane_ts(2024, 1, 15, 8, 7))}})
        ]
    }

    assert join_live_trips([row("T1")], feed, BRISBANE)[0].live_arrival_time == "08:07"


@pytest.mark.parametrize(
    "feed",
    [
        None,
        {},
        {"entity": "not a list"},
        {"entity": [{"id": "1"}, "junk", {"tripUpdate": {"trip": None}}]},
    ],
)
def test_missing_or_malformed_feed_degrades(feed) -> None:
    rows = [row("T1"), row("T2")]

    trips = join_live_trips(rows, feed, BRISBANE)
    positions = join_live_positions(rows, feed)

    assert [r.live_arrival_time for r in trips] == [NO_LIVE_DATA, NO_LIVE_DATA]
    assert [r.position for r in positions] == [NO_LIVE_DATA, NO_LIVE_DATA]


def test_fractional_string_time() -> None:
    feed = {
        "entity": [
            trip_update("T1", {"stopId": "S1", "arrival": {"time": f"{brisbane_ts(2024, 1, 15, 8, 7)}.0"}})
        ]
    }

    assert join_live_trips([row("T1")], feed, BRISBANE)[0].live_arrival_time == "08:07"


@pytest.mark.parametrize("value", ["soon", "inf", "nan"])
def test_bad_live_time_degrades(value: str) -> None:
    feed = {"entity": [trip_update("T1", {"stopId": "S1", "arrival": {"time": value}})]}

    assert join_live_trips([row("T1")], feed, BRISBANE)[0].live_arrival_time == NO_LIVE_DATA


def test_index_skips_entities_without_trip_id() -> None:
    feed = {"entity": [{"tripUpdate": {"trip": {}}}, trip_update("T2")]}

    assert list(index_trip_updates(feed)) == ["T2"]


def test_join_live_positions(vehicle_positions_feed: dict) -> None:
    rows = [row("T1"), row("T2")]

    merged = join_live_positions(rows, vehicle_positions_feed)

    assert merged[0].position == {"latitude": -27.4975, "longitude": 153.0137}
    assert merged[1].position == NO_LIVE_DATA


def test_vehicle_without_position_has_no_live_data() -> None:
    feed = {"entity": [{"vehicle": {"trip": {"tripId": "T1"}}}]}

    assert join_live_positions([row("T1")], feed)[0].position == NO_LIVE_DATA


def test_merges_compose(trip_updates_feed: dict, vehicle_positions_feed: dict) -> None:
    rows = join_live_positions(
        join_live_trips([row("T1")], trip_updates_feed, BRISBANE), vehicle_positions_feed
    )

    assert rows[0].live_arrival_time == "08:07"
    assert rows[0].position["latitude"] == -27.4975
