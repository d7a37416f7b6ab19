"""
Week plan storage endpoints.

POST /save-plan     — replace a week's whole row collection (creates the week)
POST /save-notes    — upsert one class note (creates the week)
POST /save-row      — update one existing row by its composite key (never creates)
GET  /plans/{week}  — rows + notes, empty defaults when the week was never saved
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from planner.database import get_db
from planner.models.schemas import (
    MAX_WEEK,
    MIN_WEEK,
    MessageResponse,
    PlanResponse,
    SaveNotesRequest,
    SavePlanRequest,
    SaveRowRequest,
    SaveRowResponse,
)
from planner.services.plan_store import PlanStore, clean_rows
from planner.services.row_upsert import RowUpsertService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/save-plan", response_model=MessageResponse)
async def save_plan(
    body: SavePlanRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Replace every row of ``body.week``; identity fields are stripped first."""
    rows = clean_rows(body.data)
    logger.info("save_plan: week=%d rows=%d (received %d)", body.week, len(rows), len(body.data))

    plan = await PlanStore(db).replace_rows(body.week, rows)
    await db.commit()

    logger.info("save_plan: week=%d stored as id=%s", body.week, plan.id)
    return MessageResponse(message=f"Tableau S{body.week} enregistré.")


@router.post("/save-notes", response_model=MessageResponse)
async def save_notes(
    body: SaveNotesRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Store the note of one class for one week."""
    logger.info(
        "save_notes: week=%d classe=%r length=%d", body.week, body.classe, len(body.notes)
    )
    created = await PlanStore(db).set_class_note(body.week, body.classe, body.notes)
    await db.commit()

    if created:
        logger.info("save_notes: week=%d record created for classe=%r", body.week, body.classe)
    return MessageResponse(message=f"Note pour {body.classe} (S{body.week}) enregistrée.")


@router.post("/save-row", response_model=SaveRowResponse)
async def save_row(
    body: SaveRowRequest,
    db: AsyncSession = Depends(get_db),
) -> SaveRowResponse:
    """
    Merge content fields (Leçon, Travaux de classe, Support, Devoirs) into the
    row whose Enseignant/Classe/Jour/Période/Matière equal the request's.

    Returns 404 when no such row exists in that week.
    """
    result = await RowUpsertService(PlanStore(db)).upsert_row(body.week, body.data)
    await db.commit()

    logger.info("save_row: week=%d row saved", body.week)
    return SaveRowResponse(message="Ligne enregistrée.", updatedData=result.updated_data)


@router.get("/plans/{week}", response_model=PlanResponse)
async def get_plan(
    week: int = Path(..., ge=MIN_WEEK, le=MAX_WEEK),
    db: AsyncSession = Depends(get_db),
) -> PlanResponse:
    plan = await PlanStore(db).get(week)
    if plan is None:
        logger.info("get_plan: week=%d not stored yet", week)
        return PlanResponse(planData=[], classNotes={})

    logger.info(
        "get_plan: week=%d rows=%d notes=%d",
        week, len(plan.rows or []), len(plan.class_notes or {}),
    )
    return PlanResponse(planData=plan.rows or [], classNotes=plan.class_notes or {})
