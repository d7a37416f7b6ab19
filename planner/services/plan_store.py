"""
Row Store: persistence of WeekPlan records through an AsyncSession.

Public API
----------
PlanStore.get(week)                         -> Optional[WeekPlan]
PlanStore.get_for_update(week)              -> Optional[WeekPlan]  (row-locked)
PlanStore.replace_rows(week, rows)          -> WeekPlan            (upsert)
PlanStore.set_class_note(week, classe, txt) -> bool                (True if created)
PlanStore.save_rows(plan, rows)             -> None
PlanStore.all_weeks()                       -> List[WeekPlan]      (ascending week)
PlanStore.distinct_classes()                -> List[str]

Methods flush but never commit; the router owns the transaction.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from planner.errors import StoreFailure
from planner.models.database_models import WeekPlan
from planner.utils.helpers import get_value, parse_timestamp

logger = logging.getLogger(__name__)

# Client-side identity fields never persisted inside a row
IDENTITY_FIELDS = ("_id", "id")


def clean_rows(data: List[Any]) -> List[Dict[str, Any]]:
    """
    Prepare incoming rows for a whole-week save.

    Non-mapping items are dropped, identity fields are stripped, and an
    ``updatedAt`` that is set but not a date is removed.
    """
    cleaned: List[Dict[str, Any]] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        row = dict(item)
        for field in IDENTITY_FIELDS:
            row.pop(field, None)
        if row.get("updatedAt") and parse_timestamp(row["updatedAt"]) is None:
            del row["updatedAt"]
        cleaned.append(row)
    return cleaned


class PlanStore:
    """Thin repository over the ``week_plans`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, week: int) -> Optional[WeekPlan]:
        try:
            result = await self.db.execute(select(WeekPlan).where(WeekPlan.week == week))
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("PlanStore.get: week=%s failed: %s", week, exc)
            raise StoreFailure("Erreur DB récupération plan.") from exc

    async def get_for_update(self, week: int) -> Optional[WeekPlan]:
        """Fetch the week record holding a row lock until the transaction ends."""
        try:
            result = await self.db.execute(
                select(WeekPlan).where(WeekPlan.week == week).with_for_update()
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("PlanStore.get_for_update: week=%s failed: %s", week, exc)
            raise StoreFailure("Erreur DB récupération plan.") from exc

    async def replace_rows(self, week: int, rows: List[Dict[str, Any]]) -> WeekPlan:
        """Replace the whole row collection of ``week``, creating the record if needed."""
        try:
            plan = await self.get_for_update(week)
            if plan is None:
                plan = WeekPlan(week=week, rows=rows, class_notes={})
                self.db.add(plan)
            else:
                plan.rows = rows
                flag_modified(plan, "rows")
            await self.db.flush()
            return plan
        except SQLAlchemyError as exc:
            logger.error("PlanStore.replace_rows: week=%s failed: %s", week, exc)
            raise StoreFailure(f"Erreur DB sauvegarde plan: {exc}") from exc

    async def save_rows(self, plan: WeekPlan, rows: List[Dict[str, Any]]) -> None:
        try:
            plan.rows = rows
            flag_modified(plan, "rows")
            await self.db.flush()
        except SQLAlchemyError as exc:
            logger.error("PlanStore.save_rows: week=%s failed: %s", plan.week, exc)
            raise StoreFailure(f"Erreur DB /save-row: {exc}") from exc

    async def set_class_note(self, week: int, classe: str, notes: str) -> bool:
        """
        Upsert one class note.  Unlike row updates this creates the week
        record when it does not exist yet.

        Returns:
            True when a new week record was created
        """
        try:
            plan = await self.get_for_update(week)
            created = plan is None
            if created:
                plan = WeekPlan(week=week, rows=[], class_notes={classe: notes})
                self.db.add(plan)
            else:
                class_notes = copy.deepcopy(plan.class_notes or {})
                class_notes[classe] = notes
                plan.class_notes = class_notes
                flag_modified(plan, "class_notes")
            await self.db.flush()
            return created
        except SQLAlchemyError as exc:
            logger.error("PlanStore.set_class_note: week=%s classe=%r failed: %s", week, classe, exc)
            raise StoreFailure(f"Erreur DB /save-notes: {exc}") from exc

    async def all_weeks(self) -> List[WeekPlan]:
        try:
            result = await self.db.execute(select(WeekPlan).order_by(WeekPlan.week))
            return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.error("PlanStore.all_weeks failed: %s", exc)
            raise StoreFailure("Erreur DB récupération des données.") from exc

    async def distinct_classes(self) -> List[str]:
        """Every non-empty class name appearing in any stored row, sorted."""
        classes = set()
        for plan in await self.all_weeks():
            for row in plan.rows or []:
                value = get_value(row, "Classe", None)
                if value is not None:
                    classes.add(str(value))
        return sorted(classes)
