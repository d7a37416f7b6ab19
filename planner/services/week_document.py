"""
Plan-to-Document Transformer: flat week rows -> day-grouped, dated structure
consumed by the weekly Word template.

Template context keys
---------------------
semaine, classe, notes, plageSemaine
jours: [{jourDateComplete, matieres: [{matiere, Lecon, travailDeClasse, Support, devoirs}]}]
"""
from __future__ import annotations

import dataclasses
import functools
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from planner.errors import ConfigMissing
from planner.services.school_calendar import (
    SCHOOL_DAYS,
    SchoolCalendar,
    date_for_weekday,
    format_long_date,
)
from planner.utils.helpers import get_value

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SubjectEntry:
    matiere: Any
    lecon: Any
    travail_de_classe: Any
    support: Any
    devoirs: Any

    def to_context(self) -> Dict[str, Any]:
        return {
            "matiere": self.matiere,
            "Lecon": self.lecon,
            "travailDeClasse": self.travail_de_classe,
            "Support": self.support,
            "devoirs": self.devoirs,
        }


@dataclasses.dataclass
class DayEntry:
    day_name: str
    date_label: str
    subjects: List[SubjectEntry]


@dataclasses.dataclass
class WeekDocument:
    week: int
    classe: str
    days: List[DayEntry]
    notes: str
    caption: str

    def to_context(self) -> Dict[str, Any]:
        return {
            "semaine": self.week,
            "classe": self.classe,
            "jours": [
                {
                    "jourDateComplete": day.date_label,
                    "matieres": [s.to_context() for s in day.subjects],
                }
                for day in self.days
            ],
            "notes": self.notes,
            "plageSemaine": self.caption,
        }


# ---------------------------------------------------------------------------
# Period ordering
# ---------------------------------------------------------------------------

def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def compare_periods(a: Any, b: Any) -> int:
    """
    Numeric when both periods parse as integers, otherwise a plain string
    comparison of the raw values (None counts as "").
    """
    int_a, int_b = _as_int(a), _as_int(b)
    if int_a is not None and int_b is not None:
        return (int_a > int_b) - (int_a < int_b)
    str_a = "" if a is None else str(a)
    str_b = "" if b is None else str(b)
    return (str_a > str_b) - (str_a < str_b)


def sort_by_period(rows: Sequence[Any]) -> List[Any]:
    key = functools.cmp_to_key(
        lambda r1, r2: compare_periods(get_value(r1, "Période", None), get_value(r2, "Période", None))
    )
    return sorted(rows, key=key)


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------

def group_by_day(rows: Sequence[Any]) -> Dict[str, List[Any]]:
    """Rows bucketed by school day; rows on other days (or none) are dropped."""
    grouped: Dict[str, List[Any]] = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        day = get_value(row, "Jour", None)
        if day in SCHOOL_DAYS:
            grouped.setdefault(day, []).append(row)
    return grouped


def week_caption(week: int, calendar: SchoolCalendar) -> str:
    """``"du Dimanche le 25 Août 2024 à Jeudi 29 Août 2024"`` or ``"Semaine N"``."""
    week_range = calendar.week_range(week)
    if week_range is None:
        return f"Semaine {week}"
    start_label = re.sub(r" (\d{2}) ", r" le \1 ", format_long_date(week_range.start), count=1)
    return f"du {start_label} à {format_long_date(week_range.end)}"


def build_week_document(
    week: int,
    classe: str,
    rows: Sequence[Any],
    notes: Optional[str],
    calendar: SchoolCalendar,
) -> WeekDocument:
    """
    Shape one week of rows for the weekly Word template.

    Raises:
        ConfigMissing: the week has no usable start date
    """
    week_start = calendar.week_start(week)
    if week_start is None:
        logger.error("build_week_document: no start date configured for week %d", week)
        raise ConfigMissing(f"Config Erreur: Dates serveur manquantes pour S{week}.")

    grouped = group_by_day(rows)
    days: List[DayEntry] = []
    for day_name in SCHOOL_DAYS:
        day_rows = grouped.get(day_name)
        if not day_rows:
            continue
        day_date = date_for_weekday(week_start, day_name)
        subjects = [
            SubjectEntry(
                matiere=get_value(row, "Matière"),
                lecon=get_value(row, "Leçon"),
                travail_de_classe=get_value(row, "Travaux de classe"),
                support=get_value(row, "Support"),
                devoirs=get_value(row, "Devoirs"),
            )
            for row in sort_by_period(day_rows)
        ]
        days.append(DayEntry(
            day_name=day_name,
            date_label=format_long_date(day_date) if day_date else day_name,
            subjects=subjects,
        ))

    logger.info(
        "build_week_document: week=%d classe=%r rows=%d days=%d",
        week, classe, len(rows), len(days),
    )
    return WeekDocument(
        week=week,
        classe=classe,
        days=days,
        notes=notes if isinstance(notes, str) else "",
        caption=week_caption(week, calendar),
    )
