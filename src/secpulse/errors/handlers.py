"""FastAPI exception handlers producing ErrorResponse bodies."""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from secpulse.errors.exceptions import ConnectorError, SecPulseError
from secpulse.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "unknown"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def _connector_details(exc: ConnectorError) -> Any:
    if exc.details is None:
        return {"connector": exc.connector}
    if isinstance(exc.details, dict):
        return {"connector": exc.connector, **exc.details}
    return exc.details


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(SecPulseError)
    async def secpulse_error_handler(request: Request, exc: SecPulseError):
        details = exc.details
        if isinstance(exc, ConnectorError):
            details = _connector_details(exc)
            logger.warning("Connector %s error on %s: %s", exc.connector, request.url.path, exc.message)
        elif exc.status_code >= 500:
            logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return _error_response(
            request,
            422,
            "VALIDATION_ERROR",
            "Request validation failed",
            jsonable_encoder(errors),
        )
