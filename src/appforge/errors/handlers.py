"""FastAPI exception handlers producing the standard ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from appforge.errors.exceptions import AppForgeError
from appforge.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(AppForgeError)
    async def appforge_error_handler(request: Request, exc: AppForgeError):
        trace_id = getattr(request.state, "trace_id", "unknown")
        if exc.status_code >= 500:
            logger.warning(
                "Request failed with %s on %s %s: %s",
                exc.code,
                request.method,
                request.url.path,
                exc.message,
            )
        error_response = ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                trace_id=trace_id,
                timestamp=datetime.now(timezone.utc),
            ),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(mode="json", exclude_none=True),
        )
