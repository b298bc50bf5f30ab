from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body"""
    success: bool = Field(False, description="Always false")
    error_code: str = Field(description="Machine readable error code")
    message: str = Field(description="Human readable message")
    details: Optional[Dict[str, Any]] = Field(None, description="Which rule failed")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error_code": "DEADLINE_PASSED",
                "message": "The ordering deadline for this date has passed",
                "details": {"cutoff": "order", "date": "2024-01-15"}
            }
        }
    }


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}
