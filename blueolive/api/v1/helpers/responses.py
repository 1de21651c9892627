"""
Standardized response helpers for consistent API responses.

The ``*_response`` error helpers raise ``HTTPException`` themselves; call
sites still write ``raise error_response(...)`` so the control flow reads
clearly.
"""

from typing import Any
from fastapi import HTTPException, status
from pydantic import BaseModel


class APIResponse(BaseModel):
    """Standard API response model"""

    success: bool
    message: str
    data: Any | None = None
    errors: list[str] | None = None
    meta: dict[str, Any] | None = None


def success_response(
    message: str = "Success",
    data: Any = None,
    meta: dict[str, Any] | None = None,
) -> APIResponse:
    """Create a successful response"""
    return APIResponse(success=True, message=message, data=data, meta=meta)


def error_response(
    message: str = "An error occurred",
    errors: list[str] | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Create an error response"""
    response_data = APIResponse(success=False, message=message, errors=errors or [])

    raise HTTPException(
        status_code=status_code, detail=response_data.model_dump(exclude_none=True)
    )


def not_found_response(message: str = "Resource not found") -> HTTPException:
    """Create a not found error response"""
    return error_response(message=message, status_code=status.HTTP_404_NOT_FOUND)


def unauthorized_response(message: str = "Authentication required") -> HTTPException:
    """Create an unauthorized error response"""
    return error_response(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


def conflict_response(message: str = "Resource conflict") -> HTTPException:
    """Create a conflict error response"""
    return error_response(message=message, status_code=status.HTTP_409_CONFLICT)


def service_unavailable_response(
    message: str = "Service temporarily unavailable",
) -> HTTPException:
    """Create a service unavailable error response"""
    return error_response(
        message=message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
    )
