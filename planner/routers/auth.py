"""
Login endpoint.

POST /login  — literal username/password check against the fixed user list.
"""
import logging
from typing import Mapping

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from planner.dependencies.auth import check_credentials, get_user_directory
from planner.models.schemas import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials"}},
)
async def login(
    body: LoginRequest,
    users: Mapping[str, str] = Depends(get_user_directory),
):
    """Return ``{success, username}`` on a match, 401 otherwise."""
    logger.info("login: attempt for user=%r", body.username)
    if check_credentials(users, body.username, body.password):
        logger.info("login: success for user=%r", body.username)
        return LoginResponse(success=True, username=body.username)

    logger.info("login: rejected user=%r", body.username)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "message": "Identifiants invalides"},
    )
