"""
FastAPI application entrypoint for the CRM calendar sync service.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_calendar.api.routes import router as api_router
from crm_calendar.core.config import get_settings
from crm_calendar.core.logging import configure_logging


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # loc starts with the source ("body", "query", ...); a bare source means the whole payload.
    fields = sorted(
        {
            ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
            for error in exc.errors()
        }
    )
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={"error": f"Invalid or missing fields: {', '.join(fields)}"},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="CRM Calendar Sync",
        version="0.1.0",
        description="Google Calendar connection, calendar selection and event aggregation.",
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
