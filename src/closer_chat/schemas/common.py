"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    """Success envelope wrapped around every REST payload."""

    status_code: int = Field(200, description="HTTP status code echoed in the body")
    data: Any = Field(None, description="Endpoint-specific payload")
    message: str = Field("Success", description="Human-readable outcome")
    success: bool = Field(True, description="Always true for successful responses")


class ErrorResponse(BaseModel):
    """Error envelope rendered for service errors."""

    status_code: int
    detail: str
    success: bool = False


def api_response(data: Any, message: str, status_code: int = 200) -> ApiResponse:
    """Wrap ``data`` in the success envelope."""
    return ApiResponse(status_code=status_code, data=data, message=message)
