from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import RateLimitExceeded, TaskError, Unauthorized, ValidationError
from .logging_setup import setup_logging
from .routers.tasks import create_router
from .schemas import violations_from_errors
from .service import build_task_service
from .settings import Settings, get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": (
            "Owner-scoped task lifecycle: create, list with filters and pagination, update, "
            "status transitions, delete, and AI-generated summaries."
        ),
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application from settings."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Task Backend",
        description="Task management API with a constrained status lifecycle and AI-generated summaries.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.task_service = build_task_service(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return request validation failures in the same shape as domain ValidationErrors.

        Response format:
            {
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [{"field": "...", "message": "..."}, ...]
            }
        """
        err = ValidationError(violations_from_errors(exc.errors()))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(TaskError)
    async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
        """Render any core error as {"error", "message", ...} with its mapped status code."""
        headers = None
        if isinstance(exc, RateLimitExceeded) and exc.retry_after is not None:
            headers = {"Retry-After": str(exc.retry_after)}
        elif isinstance(exc, Unauthorized) and exc.www_authenticate:
            headers = {"WWW-Authenticate": exc.www_authenticate}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(create_router(settings))
    return app


app = create_app()
