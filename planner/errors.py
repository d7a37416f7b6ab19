"""
Domain error kinds raised by services and routers.

Every error carries the HTTP status it maps to; ``planner.main`` turns them
into ``{"message": ...}`` JSON bodies.
"""
from __future__ import annotations

from fastapi import status


class PlannerError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(PlannerError):
    """Malformed or out-of-range request field."""

    status_code = status.HTTP_400_BAD_REQUEST


class MissingKeyField(InvalidInput):
    """One of the five composite-key fields is absent or blank."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Champ clé '{field_name}' manquant/vide.")
        self.field_name = field_name


class NotFound(PlannerError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamUnavailable(PlannerError):
    """A collaborator (template host, text-generation service) failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StoreFailure(PlannerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ConfigMissing(PlannerError):
    """Required static configuration is absent."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
