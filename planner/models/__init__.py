"""Database and schema models for the lesson planner."""
from planner.models.database_models import WeekPlan
from planner.models.schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SavePlanRequest,
    SaveNotesRequest,
    SaveRowRequest,
    SaveRowResponse,
    PlanResponse,
    GenerateWordRequest,
    GenerateExcelRequest,
    ClassReportRequest,
    AILessonPlanRequest,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "WeekPlan",
    # Pydantic schemas
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "SavePlanRequest",
    "SaveNotesRequest",
    "SaveRowRequest",
    "SaveRowResponse",
    "PlanResponse",
    "GenerateWordRequest",
    "GenerateExcelRequest",
    "ClassReportRequest",
    "AILessonPlanRequest",
    "HealthCheckResponse",
]
