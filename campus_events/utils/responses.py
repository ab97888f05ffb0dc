"""
Standardized response utilities
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from campus_events.schemas.common import ErrorResponse, StandardResponse


def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=jsonable_encoder(data),
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )


def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=jsonable_encoder(details),
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )
