"""
API Error Responses

Response helpers shared by the routers. Client errors carry a JSON body of
the form {"error": "<message>"}; unexpected failures are logged and answered
with a bare plain-text 500 so no partial result ever leaks out.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from typing import Any, Dict, Sequence

from fastapi.responses import JSONResponse, PlainTextResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = "Internal Server Error"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def internal_error(context: str, exc: Exception) -> PlainTextResponse:
    """Log an unexpected failure and build the generic 500 response"""
    logger.error(f"Error {context}: {exc}", exc_info=True)
    return PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)


def validation_message(errors: Sequence[Dict[str, Any]]) -> str:
    """Condense pydantic validation errors into one line"""
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"
