"""
Main FastAPI application for the weekly lesson planner backend.
Handles CORS, request logging middleware, lifespan events, error handlers
and router registration.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from planner.config import settings
from planner.database import close_db, init_db
from planner.errors import PlannerError
from planner.routers import ai, auth, exports, health, plans
from planner.services.school_calendar import get_calendar

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Stray task failures are logged; the server keeps running."""
    exc = context.get("exception")
    logger.error(
        "Unhandled error outside a request: %s",
        context.get("message", "unknown"),
        exc_info=exc,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting lesson planner backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. Static configuration
    calendar = get_calendar()
    logger.info("✓ School calendar: %d weeks configured", len(calendar.weeks))

    if settings.WORD_TEMPLATE_URL:
        logger.info("✓ Word template URL: %s", settings.WORD_TEMPLATE_URL)
    else:
        logger.warning("⚠ WORD_TEMPLATE_URL not set — /generate-word will fail")

    if settings.ai_enabled:
        logger.info("✓ Gemini enabled with model %s", settings.GEMINI_MODEL)
    else:
        logger.warning("⚠ GEMINI_API_KEY not set — AI lesson plans are disabled")

    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)

    logger.info("=" * 60)
    logger.info("  Planner backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down lesson planner backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Lesson Planner API",
    description=(
        "Weekly lesson planning backend.\n\n"
        "Store per-week lesson rows and class notes, and export them as Word "
        "lesson plans or Excel workbooks.\n\n"
        "Key endpoints:\n"
        "- `POST /save-plan` — replace a week's rows\n"
        "- `POST /save-row` — update one row by its composite key\n"
        "- `GET  /plans/{week}` — rows and class notes of a week\n"
        "- `POST /generate-word` — weekly Word plan\n"
        "- `POST /api/full-report-by-class` — yearly Excel report of a class\n"
        "- `POST /generate-ai-lesson-plan` — AI-drafted lesson plan\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

# First invalid field -> message shown to the frontend
_FIELD_MESSAGES = {
    "week": "Semaine invalide.",
    "data": "\"data\" invalide (tableau ou objet non vide attendu).",
    "classe": "Classe invalide.",
    "notes": "Notes invalides (doit être string).",
    "rowData": "Données de ligne (rowData) invalides.",
}


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    logger.warning(
        "%s %s → %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        type(exc).__name__,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Every malformed request field is a 400 with a readable message."""
    errors = exc.errors()
    message = "Requête invalide."
    for error in errors:
        field = next((part for part in error.get("loc", ()) if part in _FIELD_MESSAGES), None)
        if field is not None:
            message = _FIELD_MESSAGES[field]
            break
    logger.warning("%s %s → 400: %s", request.method, request.url.path, errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": f"Erreur DB: {exc.__class__.__name__}"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    content = {
        "message": "Erreur interne serveur.",
        "path": str(request.url.path),
        "timestamp": datetime.utcnow().isoformat(),
    }
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,  prefix="/api/health", tags=["Health"])
app.include_router(auth.router,    tags=["Auth"])
app.include_router(plans.router,   tags=["Plans"])
app.include_router(exports.router, tags=["Exports"])
app.include_router(ai.router,      tags=["AI"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Lesson Planner API",
        "version": "1.0.0",
        "description": "Weekly lesson planning backend",
        "docs": "/docs",
        "health": "/api/health/",
        "ai_enabled": settings.ai_enabled,
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "planner.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
