"""
Pydantic schemas for request/response validation.

Row payloads stay loosely typed (``Dict[str, Any]``): their field names are
resolved case-insensitively by ``planner.utils.helpers.find_field_key``.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


MIN_WEEK = 1
MAX_WEEK = 53

WeekField = Field(..., ge=MIN_WEEK, le=MAX_WEEK, description="School week number (1-53)")


# Auth Schemas
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool
    username: str


# Plan Schemas
class MessageResponse(BaseModel):
    """Generic acknowledgement body."""

    message: str


class SavePlanRequest(BaseModel):
    """Replace a week's entire row collection."""

    week: int = WeekField
    data: List[Any]


class SaveNotesRequest(BaseModel):
    """Upsert one class's note text within a week."""

    week: int = WeekField
    classe: str
    notes: str

    @field_validator("classe")
    @classmethod
    def _classe_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("classe must not be blank")
        return value.strip()


class SaveRowRequest(BaseModel):
    """Composite-key update of a single existing row."""

    week: int = WeekField
    data: Dict[str, Any]

    @field_validator("data")
    @classmethod
    def _data_not_empty(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if not value:
            raise ValueError("data must be a non-empty object")
        return value


class SaveRowResponse(BaseModel):
    message: str
    updatedData: Dict[str, Any]


class PlanResponse(BaseModel):
    """Stored rows and class notes for one week (empty when never saved)."""

    planData: List[Any] = []
    classNotes: Dict[str, str] = {}


# Export Schemas
class GenerateWordRequest(BaseModel):
    week: int = WeekField
    classe: str = Field(..., min_length=1)
    data: List[Any]
    notes: Optional[Any] = None


class GenerateExcelRequest(BaseModel):
    week: int = WeekField


class ClassReportRequest(BaseModel):
    classe: str = Field(..., min_length=1)


class AILessonPlanRequest(BaseModel):
    week: int = WeekField
    rowData: Dict[str, Any]


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    ai: str
    word_template: str
    timestamp: datetime
