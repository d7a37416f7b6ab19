"""
School calendar: week number -> Sunday..Thursday date range, French date labels.

The week table is static configuration.  It is loaded once into an immutable
``SchoolCalendar`` (built-in 2024-2025 table, or the JSON file named by
``WEEK_DATES_FILE``) and handed to the components that need dates.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from planner.config import settings

logger = logging.getLogger(__name__)


INVALID_DATE_LABEL = "Date invalide"
UNKNOWN_MONTH = "N/A"

# Display order of the school week; the value is the offset from the week start.
WEEKDAY_OFFSETS: Mapping[str, int] = MappingProxyType({
    "Dimanche": 0,
    "Lundi": 1,
    "Mardi": 2,
    "Mercredi": 3,
    "Jeudi": 4,
})
SCHOOL_DAYS: Tuple[str, ...] = tuple(WEEKDAY_OFFSETS)

# Indexed by date.weekday() (Monday == 0)
_DAY_NAMES = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche")
MONTH_NAMES = (
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
)

DEFAULT_WEEK_DATE_RANGES: Mapping[int, Tuple[str, str]] = MappingProxyType({
    1: ("2024-08-25", "2024-08-29"),   2: ("2024-09-01", "2024-09-05"),
    3: ("2024-09-08", "2024-09-12"),   4: ("2024-09-15", "2024-09-19"),
    5: ("2024-09-22", "2024-09-26"),   6: ("2024-09-29", "2024-10-03"),
    7: ("2024-10-06", "2024-10-10"),   8: ("2024-10-13", "2024-10-17"),
    9: ("2024-10-20", "2024-10-24"),  10: ("2024-10-27", "2024-10-31"),
    11: ("2024-11-03", "2024-11-07"), 12: ("2024-11-10", "2024-11-14"),
    13: ("2024-11-17", "2024-11-21"), 14: ("2024-11-24", "2024-11-28"),
    15: ("2024-12-01", "2024-12-05"), 16: ("2024-12-08", "2024-12-12"),
    17: ("2024-12-15", "2024-12-19"), 18: ("2024-12-22", "2024-12-26"),
    19: ("2024-12-29", "2025-01-02"), 20: ("2025-01-05", "2025-01-09"),
    21: ("2025-01-12", "2025-01-16"), 22: ("2025-01-19", "2025-01-23"),
    23: ("2025-01-26", "2025-01-30"), 24: ("2025-02-02", "2025-02-06"),
    25: ("2025-02-09", "2025-02-13"), 26: ("2025-02-16", "2025-02-20"),
    27: ("2025-02-23", "2025-02-27"), 28: ("2025-03-02", "2025-03-06"),
    29: ("2025-03-09", "2025-03-13"), 30: ("2025-03-16", "2025-03-20"),
    31: ("2025-03-23", "2025-03-27"), 32: ("2025-03-30", "2025-04-03"),
    33: ("2025-04-06", "2025-04-10"), 34: ("2025-04-13", "2025-04-17"),
    35: ("2025-04-20", "2025-04-24"), 36: ("2025-04-27", "2025-05-01"),
    37: ("2025-05-04", "2025-05-08"), 38: ("2025-05-11", "2025-05-15"),
    39: ("2025-05-18", "2025-05-22"), 40: ("2025-05-25", "2025-05-29"),
    41: ("2025-06-01", "2025-06-05"), 42: ("2025-06-08", "2025-06-12"),
    43: ("2025-06-15", "2025-06-19"), 44: ("2025-06-22", "2025-06-26"),
    45: ("2025-06-29", "2025-07-03"), 46: ("2025-07-06", "2025-07-10"),
    47: ("2025-07-13", "2025-07-17"), 48: ("2025-07-20", "2025-07-24"),
})


# ---------------------------------------------------------------------------
# Pure date helpers
# ---------------------------------------------------------------------------

def date_for_weekday(week_start: Any, weekday_name: Any) -> Optional[date]:
    """
    Concrete date of ``weekday_name`` in the week starting on ``week_start``.

    Returns None for an unknown day name (e.g. "Samedi") or a missing/invalid
    start date.
    """
    if not isinstance(week_start, date):
        return None
    offset = WEEKDAY_OFFSETS.get(weekday_name) if isinstance(weekday_name, str) else None
    if offset is None:
        return None
    return week_start + timedelta(days=offset)


def format_long_date(value: Any) -> str:
    """Render ``"<Jour> <DD> <Mois> <YYYY>"``, e.g. ``"Mardi 27 Août 2024"``."""
    if not isinstance(value, date):
        return INVALID_DATE_LABEL
    return (
        f"{_DAY_NAMES[value.weekday()]} {value.day:02d} "
        f"{MONTH_NAMES[value.month - 1]} {value.year}"
    )


def _parse_iso_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeekRange:
    week: int
    start: date
    end: date


class SchoolCalendar:
    """Immutable week -> (start, end) lookup."""

    def __init__(self, ranges: Mapping[int, Tuple[str, str]]) -> None:
        self._ranges: Mapping[int, Tuple[str, str]] = MappingProxyType(dict(ranges))

    def __contains__(self, week: int) -> bool:
        return week in self._ranges

    @property
    def weeks(self) -> Tuple[int, ...]:
        return tuple(sorted(self._ranges))

    def week_range(self, week: int) -> Optional[WeekRange]:
        """
        Configured range of ``week``.

        Returns None (and logs why) when the week is not in the table or one
        of its dates does not parse; callers decide whether that is fatal.
        """
        raw = self._ranges.get(week)
        if raw is None:
            logger.warning("week_range: no dates configured for week %s", week)
            return None
        start, end = _parse_iso_date(raw[0]), _parse_iso_date(raw[1])
        if start is None or end is None:
            logger.warning("week_range: unparsable dates for week %s: %r", week, raw)
            return None
        return WeekRange(week=week, start=start, end=end)

    def week_start(self, week: int) -> Optional[date]:
        """Start date of ``week`` on its own; only the start has to parse."""
        raw = self._ranges.get(week)
        return _parse_iso_date(raw[0]) if raw else None

    def month_name(self, week: int) -> str:
        start = self.week_start(week)
        return MONTH_NAMES[start.month - 1] if start else UNKNOWN_MONTH

    def date_of(self, week: int, weekday_name: Any) -> Optional[date]:
        return date_for_weekday(self.week_start(week), weekday_name)


def load_week_ranges(path: str) -> Dict[int, Tuple[str, str]]:
    """
    Read a JSON calendar file: ``{"1": {"start": "2024-08-25", "end": "2024-08-29"}, ...}``.
    """
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    ranges: Dict[int, Tuple[str, str]] = {}
    for week, entry in payload.items():
        ranges[int(week)] = (entry.get("start"), entry.get("end"))
    return ranges


@lru_cache(maxsize=1)
def get_calendar() -> SchoolCalendar:
    """
    Process-wide calendar, built once.  Used as a FastAPI dependency.
    """
    if settings.WEEK_DATES_FILE:
        ranges = load_week_ranges(settings.WEEK_DATES_FILE)
        logger.info(
            "School calendar loaded from %s (%d weeks)", settings.WEEK_DATES_FILE, len(ranges)
        )
        return SchoolCalendar(ranges)
    return SchoolCalendar(DEFAULT_WEEK_DATE_RANGES)
