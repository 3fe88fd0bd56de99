"""Interactive console for the station bus tracker."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfoNotFoundError

from pydantic import ValidationError

from config import SUPPORTED_STATIONS, load_settings
from constants import ALL_ROUTES, DEFAULT_WINDOW_MINUTES
from departures import DepartureQuery, DepartureTracker
from schedule_models import JoinedScheduleRow

Prompt = Callable[[str], str]

TABLE_COLUMNS = [
    ("Route Short Name", lambda r: r.route_short_name),
    ("Route Long Name", lambda r: r.route_long_name),
    ("Service ID", lambda r: r.service_id),
    ("Heading Sign", lambda r: r.trip_headsign),
    ("Scheduled Arrival Time", lambda r: r.arrival_time),
    ("Live Arrival Time", lambda r: r.live_arrival_time),
    ("Live Position", lambda r: format_position(r.position)),
]


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def format_position(position: object) -> str:
    if isinstance(position, dict) and "latitude" in position and "longitude" in position:
        return f"{position['latitude']:.5f}, {position['longitude']:.5f}"
    return str(position)


def render_table(rows: Sequence[JoinedScheduleRow]) -> str:
    headers = [name for name, _ in TABLE_COLUMNS]
    body = [[str(getter(row)) for _, getter in TABLE_COLUMNS] for row in rows]
    widths = [
        max([len(headers[i])] + [len(line[i]) for line in body]) for i in range(len(headers))
    ]

    def fmt(cells: Sequence[str]) -> str:
        return " | ".join(cell.ljust(width) for cell, width in zip(cells, widths))

    lines = [fmt(headers), "-+-".join("-" * width for width in widths)]
    lines.extend(fmt(line) for line in body)
    return "\n".join(lines)


def prompt_until_valid(
    prompt: Prompt,
    text: str,
    retry_text: str,
    parse: Callable[[str], Optional[str]],
) -> str:
    """Ask until parse() accepts the answer (returns non-None)."""
    answer = parse(prompt(text))
    while answer is None:
        answer = parse(prompt(retry_text))
    return answer


def _parse_date(raw: str) -> Optional[str]:
    try:
        return DepartureQuery(date=raw.strip(), time="00:00").date.isoformat()
    except ValidationError:
        return None


def _parse_time(raw: str) -> Optional[str]:
    try:
        return DepartureQuery(date="2000-01-01", time=raw).time
    except ValidationError:
        return None


def route_menu(routes: Sequence[str]) -> str:
    options = [f"1: {ALL_ROUTES}"] + [f"{i}: {name}" for i, name in enumerate(routes, start=2)]
    return ", ".join(options)


def _route_parser(routes: Sequence[str]) -> Callable[[str], Optional[str]]:
    def parse(raw: str) -> Optional[str]:
        raw = raw.strip()
        if not raw.isdigit():
            return None
        choice = int(raw)
        if choice == 1:
            return ALL_ROUTES
        if 2 <= choice < len(routes) + 2:
            return routes[choice - 2]
        return None

    return parse


def _parse_again(raw: str) -> Optional[str]:
    answer = raw.strip().lower()
    if answer in ("y", "yes"):
        return "yes"
    if answer in ("n", "no"):
        return "no"
    return None


def ask_query(prompt: Prompt, station_name: str, routes: List[str], window: int) -> DepartureQuery:
    query_date = prompt_until_valid(
        prompt,
        f"What date will you depart {station_name} by bus? ",
        "Incorrect date format. Please use YYYY-MM-DD: ",
        _parse_date,
    )
    query_time = prompt_until_valid(
        prompt,
        f"What time will you depart {station_name} by bus? ",
        "Incorrect time format. Please use HH:mm: ",
        _parse_time,
    )
    route = prompt_until_valid(
        prompt,
        f"What bus route would you like to take? ({route_menu(routes)}): ",
        "Please enter a valid option for a bus route: ",
        _route_parser(routes),
    )
    return DepartureQuery(date=query_date, time=query_time, window_minutes=window, route=route)


def run_interactive(
    tracker: DepartureTracker,
    window: int = DEFAULT_WINDOW_MINUTES,
    prompt: Prompt = input,
    out: Callable[[str], None] = print,
) -> None:
    out(f"Welcome to the {tracker.station.name} bus tracker!")
    routes = tracker.available_routes()

    while True:
        query = ask_query(prompt, tracker.station.name, routes, window)
        rows = tracker.find_departures(query)
        if rows:
            out(render_table(rows))
        else:
            out("No buses found for that date, time and route.")

        again = prompt_until_valid(
            prompt,
            "Would you like to search again? (y/n): ",
            "Please answer y or n: ",
            _parse_again,
        )
        if again == "no":
            break

    out(f"Thanks for using the {tracker.station.name} bus tracker")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="station-tracker",
        description="Find scheduled and live bus arrivals at a station",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--station",
        choices=sorted(SUPPORTED_STATIONS),
        default=None,
        help="Station to track (default: TRACKER_STATION or uq_lakes)",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=DEFAULT_WINDOW_MINUTES,
        help=f"Minutes after the requested time to include (default: {DEFAULT_WINDOW_MINUTES})",
    )
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.window < 0:
        parser.error("--window must be >= 0")

    try:
        settings = load_settings()
        if args.station:
            settings = settings.model_copy(update={"station": args.station})
        tracker = DepartureTracker.from_settings(settings)
        tracker.load()
    except (FileNotFoundError, ValueError, ZoneInfoNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.exception("Failed to load settings or static schedule")
        return 1

    try:
        run_interactive(tracker, window=args.window)
    except (KeyboardInterrupt, EOFError):
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
