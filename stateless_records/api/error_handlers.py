"""Error Handlers — map stateless-record errors onto FastAPI responses.

Invariants:
    - StatelessRecordError → structured JSON with code, message, severity
    - RecordNotFound → 404 with the same body for malformed, forged and stale tokens
    - Critical errors (ConfigurationError, EntityStoreError) never leak their message

Design Decisions:
    - Host applications opt in with register_error_handlers(app); nothing registers
      itself on import
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stateless_records.core.errors import ErrorSeverity, StatelessRecordError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register the stateless-record error handler on the FastAPI app."""

    @app.exception_handler(StatelessRecordError)
    async def stateless_record_error_handler(
        request: Request, exc: StatelessRecordError,
    ):
        """Handle all stateless-record errors."""
        if exc.severity is ErrorSeverity.CRITICAL:
            logger.error(
                f"StatelessRecordError on {request.url.path}: {exc.message}",
                extra={"error_code": exc.code},
            )
            return JSONResponse(
                status_code=exc.http_status, content=_build_opaque_response(exc),
            )
        logger.info(
            f"StatelessRecordError on {request.url.path}: {exc.code}",
            extra={"error_code": exc.code},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _build_opaque_response(exc: StatelessRecordError) -> dict:
    """Response for critical errors: code and category only, no details."""
    return {
        "error": {
            "code": exc.code,
            "message": "An unexpected error occurred",
            "category": exc.category.value,
            "severity": exc.severity.value,
        },
    }
