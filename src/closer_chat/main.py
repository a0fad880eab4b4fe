"""Main entry point for the Closer realtime service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from closer_chat.api.v1 import (
    chat_router,
    chatbot_router,
    live_router,
    notifications_router,
    social_router,
)
from closer_chat.core.errors import InternalError, ServiceError
from closer_chat.core.settings import settings
from closer_chat.schemas.common import ErrorResponse
from closer_chat.services.live import LiveChannel

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Direct messaging and notification fan-out for Closer",
    version=settings.app_version,
)

# One live channel per process, injected into handlers through app.state
app.state.live_channel = LiveChannel()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(chat_router, prefix="/api/v1")
app.include_router(chatbot_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(social_router, prefix="/api/v1")
app.include_router(live_router, prefix="/api/v1")


def _error_response(error: ServiceError) -> JSONResponse:
    body = ErrorResponse(status_code=error.status_code, detail=error.detail)
    return JSONResponse(status_code=error.status_code, content=body.model_dump())


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render service errors in the structured error envelope."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return _error_response(exc)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Report store failures as internal errors without leaking driver details."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error_response(InternalError("Internal server error"))


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Direct messaging and notification fan-out for Closer",
        "live": "/api/v1/live",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("closer_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
