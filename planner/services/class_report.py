"""
Report Aggregator: every stored week, filtered to one class, bucketed by subject.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Sequence

from planner.errors import NotFound
from planner.models.database_models import WeekPlan
from planner.services.school_calendar import SchoolCalendar
from planner.utils.helpers import find_field_key, get_value

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ReportRow:
    month: str
    week: int
    period: Any
    lesson: Any
    class_work: Any
    support: Any
    homework: Any


def _falsy_to_empty(value: Any) -> Any:
    return value if value else ""


def build_class_report(
    classe: str,
    weeks: Sequence[WeekPlan],
    calendar: SchoolCalendar,
) -> Dict[str, List[ReportRow]]:
    """
    Collect ``classe``'s rows across all weeks, keyed by subject.

    Raises:
        NotFound: no week records at all, or none of their rows belong to ``classe``
    """
    if not weeks:
        raise NotFound("Aucune donnée trouvée dans la base de données.")

    by_subject: Dict[str, List[ReportRow]] = {}
    for plan in sorted(weeks, key=lambda p: p.week):
        month = calendar.month_name(plan.week)
        for row in plan.rows or []:
            class_key = find_field_key(row, "Classe")
            if class_key is None or row[class_key] != classe:
                continue
            subject = get_value(row, "Matière", None)
            if not subject:
                continue
            by_subject.setdefault(str(subject), []).append(ReportRow(
                month=month,
                week=plan.week,
                period=_falsy_to_empty(get_value(row, "Période")),
                lesson=_falsy_to_empty(get_value(row, "Leçon")),
                class_work=_falsy_to_empty(get_value(row, "Travaux de classe")),
                support=_falsy_to_empty(get_value(row, "Support")),
                homework=_falsy_to_empty(get_value(row, "Devoirs")),
            ))

    if not by_subject:
        raise NotFound(f"Aucune donnée trouvée pour la classe '{classe}'.")

    logger.info(
        "build_class_report: classe=%r weeks=%d subjects=%d",
        classe, len(weeks), len(by_subject),
    )
    return by_subject
