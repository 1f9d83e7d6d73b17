"""
Release date resolution.

Dates travel as ISO strings and are compared as (year, month, day) integer
triples so that no timezone or locale can shift a day.
"""

import calendar
import re
from datetime import datetime

from dateutil import parser as dateparser

ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
YYYYMMDD_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")


def parse_iso(iso: str) -> tuple[int, int, int]:
    """Split an ISO date string into integers, validating the calendar day."""
    match = ISO_RE.match(iso.strip()) if iso else None
    if not match:
        raise ValueError(f"Not an ISO date: {iso!r}")
    year, month, day = (int(g) for g in match.groups())
    if not 1 <= month <= 12 or not 1 <= day <= calendar.monthrange(year, month)[1]:
        raise ValueError(f"Not a calendar date: {iso!r}")
    return year, month, day


def days_from_civil(year: int, month: int, day: int) -> int:
    """Day number of a proleptic Gregorian date, 1970-01-01 being day 0."""
    year -= month <= 2
    era = (year if year >= 0 else year - 399) // 400
    yoe = year - era * 400
    doy = (153 * (month + (-3 if month > 2 else 9)) + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


def day_distance(a: str, b: str) -> int:
    """Absolute number of days between two ISO dates."""
    return abs(days_from_civil(*parse_iso(a)) - days_from_civil(*parse_iso(b)))


def resolve_release_date(requested: str, known: list[str]) -> str:
    """
    Pick the known release date closest to the requested date.

    Args:
        requested: ISO date asked for by the caller
        known: ISO dates of published releases, in discovery order

    Returns:
        requested itself when it is a known release or when known is empty,
        otherwise the nearest known date. Ties go to the earliest candidate
        in input order.
    """
    if not known or requested in known:
        return requested

    target = days_from_civil(*parse_iso(requested))
    best = None
    best_distance = None
    for candidate in known:
        distance = abs(days_from_civil(*parse_iso(candidate)) - target)
        if best_distance is None or distance < best_distance:
            best = candidate
            best_distance = distance
    return best


def yyyymmdd_from_iso(iso: str) -> str:
    """2026-01-08 -> 20260108"""
    year, month, day = parse_iso(iso)
    return f"{year:04d}{month:02d}{day:02d}"


def iso_from_yyyymmdd(value: str) -> str:
    """20260108 -> 2026-01-08"""
    match = YYYYMMDD_RE.match(value.strip()) if value else None
    if not match:
        raise ValueError(f"Not a yyyymmdd date: {value!r}")
    iso = "-".join(match.groups())
    parse_iso(iso)
    return iso


def normalize_date(text: str | None) -> str | None:
    """Parse and normalize a human-readable date to ISO format."""
    if not text:
        return None
    try:
        dt = dateparser.parse(text, fuzzy=True, default=datetime(1900, 1, 1))
    except (ValueError, OverflowError):
        return None
    if dt.year == 1900:
        return None
    return dt.date().isoformat()
