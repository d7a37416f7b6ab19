"""
SQLAlchemy ORM models for the lesson planner database.
"""
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    JSON,
)
from sqlalchemy.sql import func

from planner.database import Base


# Models
class WeekPlan(Base):
    """One school week: its ordered lesson rows plus per-class notes."""

    __tablename__ = "week_plans"

    id = Column(Integer, primary_key=True, index=True)
    week = Column(Integer, nullable=False, unique=True, index=True)
    # Loosely-typed row mappings (Enseignant, Classe, Jour, Période, Matière, ...)
    rows = Column(JSON, nullable=False, default=list)
    # Class name -> free-text note
    class_notes = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<WeekPlan week={self.week} rows={len(self.rows or [])}>"
