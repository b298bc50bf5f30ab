"""
Error handling
Turns application errors into the ErrorResponse body and an HTTP status.

Response body:
    {"success": false, "error_code": ..., "message": ..., "details": {...}}
"""

import json
import logging
import traceback
from typing import Any, Dict, Optional, Tuple

import duckdb
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .database import DatabaseManager, db_manager
from .exceptions import BaseApplicationError
from ..schemas.common import ErrorResponse

logger = logging.getLogger("canteen.errors")

Rendered = Tuple[int, ErrorResponse]


class ErrorHandler:
    """Maps each error family to a status and a uniform body"""

    STATUS_BY_CODE = {
        "VALIDATION_ERROR": 400,
        "REQUEST_VALIDATION_ERROR": 422,
        "AUTHENTICATION_REQUIRED": 401,
        "FORBIDDEN": 403,
        "RESOURCE_NOT_FOUND": 404,
        "RESERVATION_NOT_FOUND": 404,
        "MEAL_NOT_FOUND": 404,
        "USER_NOT_FOUND": 404,
        "BUSINESS_RULE_VIOLATION": 422,
        "DATABASE_ERROR": 503,
        "STORAGE_UNAVAILABLE": 503,

        # Deadlines and exchange
        "DEADLINE_PASSED": 400,
        "SELF_CLAIM": 400,
        "ALREADY_RESERVED": 409,
        "ALREADY_IN_EXCHANGE": 409,
        "NOT_IN_EXCHANGE": 409,

        "MONTH_NOT_CLOSED": 400,
    }

    @classmethod
    def status_for(cls, error_code: str) -> int:
        return cls.STATUS_BY_CODE.get(error_code, 400)

    @classmethod
    def from_application_error(cls, error: BaseApplicationError) -> Rendered:
        status = cls.status_for(error.error_code)
        if status >= 500:
            logger.error("%s: %s %s", error.error_code, error.message, error.details)
        return status, ErrorResponse(error_code=error.error_code, message=error.message,
                                     details=error.details)

    @classmethod
    def from_http_exception(cls, error: HTTPException) -> Rendered:
        return error.status_code, ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
        )

    @classmethod
    def from_validation_error(cls, error: Exception) -> Rendered:
        """Request body or query failed pydantic validation"""
        problems = error.errors() if hasattr(error, "errors") else str(error)
        # ctx can hold exception objects
        return cls.status_for("REQUEST_VALIDATION_ERROR"), ErrorResponse(
            error_code="REQUEST_VALIDATION_ERROR",
            message="Request validation failed",
            details={"validation_errors": json.loads(json.dumps(problems, default=str))},
        )

    @classmethod
    def from_unknown_error(cls, error: Exception, db: Optional[DatabaseManager] = None) -> Rendered:
        logger.error("Unhandled error: %s", error, exc_info=error)
        cls._record(db or db_manager, {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        })
        return 500, ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="Internal server error",
            details={"error_type": type(error).__name__},
        )

    @staticmethod
    def _record(db: DatabaseManager, detail: Dict[str, Any]):
        """system_error row in the audit log"""
        try:
            with db.transaction() as con:
                con.execute(
                    "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
                    [None, None, "system_error", json.dumps(detail)]
                )
        except (BaseApplicationError, duckdb.Error):
            logger.error("Could not write system_error row for %s", detail["type"])


def _respond(rendered: Rendered) -> JSONResponse:
    status, body = rendered
    return JSONResponse(status_code=status, content=body.model_dump())


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    return _respond(ErrorHandler.from_application_error(exc))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _respond(ErrorHandler.from_http_exception(exc))


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _respond(ErrorHandler.from_validation_error(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _respond(ErrorHandler.from_unknown_error(exc, getattr(request.app.state, "db", None)))
