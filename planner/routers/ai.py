"""
AI lesson-plan endpoint.

POST /generate-ai-lesson-plan — draft one lesson with Gemini, render it into
                                the lesson-plan Word template.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import Response

from planner.config import settings
from planner.errors import ConfigMissing
from planner.models.schemas import AILessonPlanRequest
from planner.routers.exports import attachment
from planner.services.ai_lesson import (
    GeminiLessonService,
    build_ai_lesson_context,
    build_prompt,
    get_lesson_generator,
    parse_ai_sections,
)
from planner.services.school_calendar import SchoolCalendar, get_calendar
from planner.services.word_renderer import (
    DOCX_MEDIA_TYPE,
    TemplateFetcher,
    get_template_fetcher,
    render_docx,
)
from planner.utils.helpers import get_value, safe_filename_part

logger = logging.getLogger(__name__)

router = APIRouter()


async def require_lesson_generator(
    generator: Optional[GeminiLessonService] = Depends(get_lesson_generator),
) -> GeminiLessonService:
    """503 before any body validation when the AI service is not configured."""
    if generator is None:
        raise ConfigMissing(
            "Service IA (Gemini) non configuré ou clé API manquante sur le serveur.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return generator


@router.post("/generate-ai-lesson-plan", response_class=Response)
async def generate_ai_lesson_plan(
    generator: GeminiLessonService = Depends(require_lesson_generator),
    body: AILessonPlanRequest = Body(...),
    calendar: SchoolCalendar = Depends(get_calendar),
    fetcher: TemplateFetcher = Depends(get_template_fetcher),
) -> Response:
    """
    Build the prompt from the row's lesson/subject/class, parse the ten
    sections of the answer and fill the AI lesson-plan template.

    The generator dependency is solved before the body is validated, so an
    unconfigured service answers 503 whatever the payload.
    """
    row = body.rowData

    lecon = get_value(row, "Leçon")
    matiere = get_value(row, "Matière")
    classe = get_value(row, "Classe")
    logger.info(
        "generate_ai_lesson_plan: week=%d classe=%r matiere=%r", body.week, classe, matiere
    )

    answer = await generator.generate(build_prompt(lecon, matiere, classe))
    sections = parse_ai_sections(answer)

    template = await fetcher.fetch(settings.AI_LESSON_TEMPLATE_URL)
    context = build_ai_lesson_context(body.week, row, sections, calendar)
    content = render_docx(template, context)

    filename = (
        f"Plan_Lecon_IA_S{body.week}_{safe_filename_part(str(classe))}"
        f"_{safe_filename_part(str(matiere))}.docx"
    )
    return attachment(content, filename, DOCX_MEDIA_TYPE)
