"""
Row Upsert Engine: update one existing row of a week, located by its
composite natural key (Enseignant, Classe, Jour, Période, Matière).

The engine never creates a week record or a row.  ``build_row_update`` and
``apply_row_update`` are pure; ``RowUpsertService`` binds them to the store.
"""
from __future__ import annotations

import copy
import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from planner.errors import InvalidInput, MissingKeyField, NotFound
from planner.models.schemas import MAX_WEEK, MIN_WEEK
from planner.services.plan_store import PlanStore
from planner.utils.helpers import find_field_key, is_blank, utc_timestamp

logger = logging.getLogger(__name__)

KEY_FIELDS: Tuple[str, ...] = ("Enseignant", "Classe", "Jour", "Période", "Matière")
CONTENT_FIELDS: Tuple[str, ...] = ("Leçon", "Travaux de classe", "Support", "Devoirs")
UPDATED_AT_FIELD = "updatedAt"


@dataclasses.dataclass
class RowUpdate:
    """A validated, staged update for a single row."""

    week: int
    match: Dict[str, Any]       # caller's key spelling -> exact value
    changes: Dict[str, Any]     # field -> new value (includes the timestamp)
    timestamp_key: str
    timestamp: str


@dataclasses.dataclass
class RowUpdateResult:
    updated_data: Dict[str, Any]


def validate_week(week: Any) -> int:
    """Integer week in [1, 53] or InvalidInput."""
    if isinstance(week, bool) or not isinstance(week, int) or not MIN_WEEK <= week <= MAX_WEEK:
        raise InvalidInput("Semaine invalide.")
    return week


def build_row_update(
    week: Any,
    partial_row: Any,
    timestamp: Optional[str] = None,
) -> RowUpdate:
    """
    Validate ``partial_row`` and stage its updatable fields.

    Raises:
        InvalidInput: bad week or empty / non-mapping row
        MissingKeyField: first key field (in KEY_FIELDS order) missing or blank
    """
    week = validate_week(week)
    if not isinstance(partial_row, Mapping) or not partial_row:
        raise InvalidInput("Données ligne invalides.")

    match: Dict[str, Any] = {}
    for name in KEY_FIELDS:
        key = find_field_key(partial_row, name)
        if key is None or is_blank(partial_row[key]):
            logger.error("build_row_update: key field %r (%r) missing/blank", name, key)
            raise MissingKeyField(name)
        match[key] = partial_row[key]

    changes: Dict[str, Any] = {}
    for name in CONTENT_FIELDS:
        key = find_field_key(partial_row, name)
        if key is not None:
            changes[key] = partial_row[key]

    timestamp = timestamp or utc_timestamp()
    timestamp_key = find_field_key(partial_row, UPDATED_AT_FIELD) or UPDATED_AT_FIELD
    changes[timestamp_key] = timestamp

    return RowUpdate(
        week=week,
        match=match,
        changes=changes,
        timestamp_key=timestamp_key,
        timestamp=timestamp,
    )


def row_matches(row: Any, match: Mapping[str, Any]) -> bool:
    """Exact equality on every key field, under the caller's field names."""
    if not isinstance(row, Mapping):
        return False
    return all(key in row and row[key] == value for key, value in match.items())


def apply_row_update(rows: List[Any], update: RowUpdate) -> Optional[List[Any]]:
    """
    Return a copy of ``rows`` with ``update`` merged into the first matching row,
    or None when no row matches.
    """
    for index, row in enumerate(rows):
        if row_matches(row, update.match):
            new_rows = copy.deepcopy(rows)
            new_rows[index].update(update.changes)
            return new_rows
    return None


class RowUpsertService:
    """Applies staged row updates against the Row Store."""

    def __init__(self, store: PlanStore) -> None:
        self.store = store

    async def upsert_row(self, week: Any, partial_row: Any) -> RowUpdateResult:
        update = build_row_update(week, partial_row)
        logger.info(
            "upsert_row: week=%d match=%s fields=%s",
            update.week,
            update.match,
            sorted(update.changes),
        )

        plan = await self.store.get_for_update(update.week)
        new_rows = apply_row_update(plan.rows or [], update) if plan is not None else None
        if new_rows is None:
            logger.error("upsert_row: no row for week=%d match=%s", update.week, update.match)
            raise NotFound(
                "Ligne non trouvée pour la mise à jour. "
                "Les champs clés ont-ils été modifiés par erreur ailleurs ?"
            )

        await self.store.save_rows(plan, new_rows)
        return RowUpdateResult(updated_data={update.timestamp_key: update.timestamp})
