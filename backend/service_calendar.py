# backend/service_calendar.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Set

from constants import EXCEPTION_ADDED, EXCEPTION_REMOVED
from schedule_models import ServiceCalendarRecord, ServiceExceptionRecord

logger = logging.getLogger(__name__)


def parse_gtfs_date(value: str) -> date:
    """
    "YYYYMMDD" -> date. Raises ValueError for anything else.
    """
    value = value.strip()
    if len(value) != 8 or not value.isdigit():
        raise ValueError(f"Invalid GTFS date: {value!r} (expected YYYYMMDD)")
    return datetime.strptime(value, "%Y%m%d").date()


def format_gtfs_date(target_date: date) -> str:
    return target_date.strftime("%Y%m%d")


def is_in_service_range(record: ServiceCalendarRecord, target_date: date) -> bool:
    """
    start_date <= target_date <= end_date (both ends inclusive).

    A record with an unparseable start or end date never applies.
    """
    try:
        start = parse_gtfs_date(record.start_date)
        end = parse_gtfs_date(record.end_date)
    except ValueError as e:
        logger.warning("Calendar entry %s excluded: %s", record.service_id, e)
        return False
    return start <= target_date <= end


def get_base_services(
    target_date: date, calendar: Iterable[ServiceCalendarRecord]
) -> Set[str]:
    """Services whose weekly recurrence covers target_date."""
    weekday = target_date.isoweekday()  # 1=Mon, 7=Sun
    return {
        record.service_id
        for record in calendar
        if record.runs_on_isoweekday(weekday) and is_in_service_range(record, target_date)
    }


def get_active_services_on_date(
    target_date: date,
    calendar: Iterable[ServiceCalendarRecord],
    calendar_dates: Iterable[ServiceExceptionRecord],
) -> Set[str]:
    """
    Service ids running on target_date.

    Rules:
      - Weekly recurrence from calendar.txt, bounded by [start_date, end_date].
      - calendar_dates.txt exceptions for exactly target_date:
        type 1 adds the service, type 2 removes it.
      - If a service is both added and removed on the same date, removal wins,
        regardless of row order. Duplicate exceptions are harmless.
    """
    services = get_base_services(target_date, calendar)
    date_key = format_gtfs_date(target_date)

    added: Set[str] = set()
    removed: Set[str] = set()

    for exception in calendar_dates:
        if exception.date.strip() != date_key:
            continue
        if exception.exception_type == EXCEPTION_ADDED:
            added.add(exception.service_id)
        elif exception.exception_type == EXCEPTION_REMOVED:
            removed.add(exception.service_id)
        else:
            logger.warning(
                "Ignoring calendar_dates entry for %s on %s with unknown exception_type %s",
                exception.service_id,
                exception.date,
                exception.exception_type,
            )

    conflicts = added & removed
    if conflicts:
        logger.info(
            "Services both added and removed on %s, treating as removed: %s",
            date_key,
            sorted(conflicts),
        )

    active = (services | added) - removed
    logger.debug(
        "Active services on %s: %d (base %d, +%d, -%d)",
        date_key,
        len(active),
        len(services),
        len(added),
        len(removed),
    )
    return active
