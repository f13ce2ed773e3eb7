"""
quizsmith — Credit-Metered Quiz Engine
======================================
FastAPI entry point.
  • Typed errors → JSON error envelope with their own status codes
  • Catch-all handler — never leaks internal detail, always returns JSON
  • /api/v1/quizzes   — PDF upload → multi-round generated quiz
  • /api/v1/clear-ups — PDF upload → cleaned-up existing questions
  • Every generation is preflighted against, then debited from, the owner's credits
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quizsmith.api.v1.endpoints import quiz
from quizsmith.core.config import settings
from quizsmith.core.errors import QuizServiceError
from quizsmith.db.database import init_db
from quizsmith.schemas.common import ErrorResponse, HealthResponse

VERSION = "1.0.0"

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting quizsmith v{VERSION} (AI_PROVIDER={settings.AI_PROVIDER})")
    init_db()
    yield


# ── App ──────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="quizsmith",
    description=(
        "Credit-metered quiz generation service.\n"
        "Upload a PDF → receive a generated quiz or a cleaned-up question paper."
    ),
    version=VERSION,
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        402: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(QuizServiceError)
async def quiz_service_exception_handler(request: Request, exc: QuizServiceError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    body = ErrorResponse(status="error", message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: every unhandled exception returns a clean JSON envelope."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(status="error", message="An internal server error occurred.")
    return JSONResponse(status_code=500, content=body.model_dump())


# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz.router, prefix="/api/v1", tags=["Quizzes"])


@app.get("/", response_model=HealthResponse, tags=["System"])
async def health_check():
    return HealthResponse(status="operational", service="quizsmith", version=VERSION)
