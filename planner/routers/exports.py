"""
Document export endpoints.

POST /generate-word               — weekly lesson plan (.docx) from the request's rows
POST /generate-excel-workbook     — one week's stored rows as a single sheet (.xlsx)
GET  /api/all-classes             — distinct class names across stored rows
POST /api/full-report-by-class    — whole-year report for one class, a sheet per subject
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from planner.config import settings
from planner.database import get_db
from planner.errors import ConfigMissing, NotFound
from planner.models.schemas import (
    ClassReportRequest,
    GenerateExcelRequest,
    GenerateWordRequest,
)
from planner.services.class_report import build_class_report
from planner.services.plan_store import PlanStore
from planner.services.school_calendar import SchoolCalendar, get_calendar
from planner.services.spreadsheet import (
    XLSX_MEDIA_TYPE,
    render_class_report,
    render_week_workbook,
)
from planner.services.week_document import build_week_document
from planner.services.word_renderer import (
    DOCX_MEDIA_TYPE,
    TemplateFetcher,
    get_template_fetcher,
    render_docx,
)
from planner.utils.helpers import safe_filename_part

logger = logging.getLogger(__name__)

router = APIRouter()


def attachment(content: bytes, filename: str, media_type: str) -> Response:
    logger.info("Sending %s (%d bytes)", filename, len(content))
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/generate-word", response_class=Response)
async def generate_word(
    body: GenerateWordRequest,
    calendar: SchoolCalendar = Depends(get_calendar),
    fetcher: TemplateFetcher = Depends(get_template_fetcher),
) -> Response:
    """
    Group the posted rows by day, date them from the school calendar and
    render the weekly Word template.
    """
    if not settings.WORD_TEMPLATE_URL:
        raise ConfigMissing("WORD_TEMPLATE_URL non configurée.")

    document = build_week_document(body.week, body.classe, body.data, body.notes, calendar)
    template = await fetcher.fetch(settings.WORD_TEMPLATE_URL)
    content = render_docx(template, document.to_context())

    filename = f"Plan_hebdomadaire_S{body.week}_{safe_filename_part(body.classe)}.docx"
    return attachment(content, filename, DOCX_MEDIA_TYPE)


@router.post("/generate-excel-workbook", response_class=Response)
async def generate_excel_workbook(
    body: GenerateExcelRequest,
    db: AsyncSession = Depends(get_db),
) -> Response:
    plan = await PlanStore(db).get(body.week)
    if plan is None or not plan.rows:
        raise NotFound(f"Aucune donnée trouvée pour la semaine {body.week}.")

    content = render_week_workbook(body.week, plan.rows)
    return attachment(content, f"Plan_Hebdomadaire_S{body.week}_Complet.xlsx", XLSX_MEDIA_TYPE)


@router.get("/api/all-classes", response_model=List[str])
async def all_classes(db: AsyncSession = Depends(get_db)) -> List[str]:
    classes = await PlanStore(db).distinct_classes()
    logger.info("all_classes: %d distinct classes", len(classes))
    return classes


@router.post("/api/full-report-by-class", response_class=Response)
async def full_report_by_class(
    body: ClassReportRequest,
    db: AsyncSession = Depends(get_db),
    calendar: SchoolCalendar = Depends(get_calendar),
) -> Response:
    weeks = await PlanStore(db).all_weeks()
    report = build_class_report(body.classe, weeks, calendar)
    content = render_class_report(report)

    filename = f"Rapport_Complet_{safe_filename_part(body.classe)}.xlsx"
    return attachment(content, filename, XLSX_MEDIA_TYPE)
