"""Error payloads for the quote API.

Every error body is ``{"message": ..., "field_errors": {name: code}}`` so a
client can point the operator at the input or override that was rejected.
"""

import logging
from typing import Dict, Mapping

from fastapi import HTTPException, status

from ..services.errors import InvalidOverrideError, QuoteEngineError, UnknownServiceError

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Mapping[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    errors: Dict[str, str] = dict(field_errors)
    # 4xx is the caller's mistake; only server-side failures log as errors
    level = logging.ERROR if code >= 500 else logging.WARNING
    logger.log(level, "%s %s", message, errors, extra={"status_code": code, "field_errors": errors})
    return HTTPException(status_code=code, detail={"message": message, "field_errors": errors})


def engine_error_response(exc: QuoteEngineError) -> HTTPException:
    """Map a quote-engine exception onto the API error payload."""
    if isinstance(exc, UnknownServiceError):
        return error_response("Service not found", {"service_id": "not_found"}, status.HTTP_404_NOT_FOUND)
    if isinstance(exc, InvalidOverrideError):
        return error_response("Override values must be numbers", {exc.field: "invalid_number"})
    return error_response(str(exc), {})
