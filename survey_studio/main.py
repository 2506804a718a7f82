"""FastAPI application entry point for Survey Studio.

This module initializes the FastAPI application, sets up logging,
registers routers, and maps service errors to HTTP responses.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from survey_studio.config import get_settings
from survey_studio.logging_config import setup_logging, get_logger, request_id_var
from survey_studio.models.database import Base, engine
from survey_studio.routes import health, participant, question_bank, surveys, users
from survey_studio.services.errors import AnswerValidationError, SurveyStudioError

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Create missing tables
    - Log application startup information

    Shutdown:
    - Log shutdown event

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    # Startup
    settings = get_settings()
    setup_logging()
    Base.metadata.create_all(bind=engine)

    logger.info(
        f"Survey Studio starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'configured'}, "
        f"Version: {settings.git_commit_sha}"
    )

    yield

    # Shutdown
    logger.info("Survey Studio shutting down")


# Initialize FastAPI application
app = FastAPI(
    title="Survey Studio",
    description="Survey authoring, anonymous invite-based participation and reporting",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request with an ID for log correlation.

    Reuses the caller's X-Request-ID header when present and echoes the ID
    back on the response.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# Root endpoint
@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information.

    Returns:
        dict: API information and status
    """
    settings = get_settings()
    return {
        "service": "Survey Studio",
        "version": "1.0.0",
        "environment": settings.environment,
        "status": "operational"
    }


# Register routers
app.include_router(health.router, tags=["Health"])
app.include_router(surveys.router, tags=["Surveys"])
app.include_router(participant.router, tags=["Participant"])
app.include_router(question_bank.router, tags=["Question Bank"])
app.include_router(users.router, tags=["Users"])


@app.exception_handler(SurveyStudioError)
async def survey_studio_error_handler(request: Request, exc: SurveyStudioError) -> JSONResponse:
    """Render service errors as {"error", "message"} with the mapped status.

    Validation errors also carry "fields": question id -> message.
    """
    content = {"error": exc.kind, "message": exc.message}
    if isinstance(exc, AnswerValidationError):
        content["fields"] = exc.fields

    log = logger.warning if exc.status_code in (401, 403, 429) else logger.info
    log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=content)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Logs all unhandled exceptions and returns a generic error response
    to prevent leaking sensitive information.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Generic error response
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
