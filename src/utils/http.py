"""Response helpers for the serverless handlers."""

import json
from typing import Any

from src.utils.errors import (
    ConflictingTransitionError,
    ListingNotFoundError,
    ListingValidationError,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def json_response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def parse_body(request: dict) -> dict:
    """Decode a JSON request body; malformed bodies read as empty."""
    raw = request.get("body") or "{}"
    if isinstance(raw, dict):
        return raw
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


def error_response(error: Exception) -> dict:
    """Map engine errors to HTTP responses."""
    if isinstance(error, ListingValidationError):
        return json_response(400, {"error": str(error), "errors": error.errors})
    if isinstance(error, ListingNotFoundError):
        return json_response(404, {"error": str(error)})
    if isinstance(error, ConflictingTransitionError):
        return json_response(409, {
            "error": str(error),
            "retryable": error.retryable,
            "current_status": error.actual,
        })

    logger.error("Unhandled error in handler", exc_info=True, error=str(error))
    return json_response(500, {"error": str(error)})
