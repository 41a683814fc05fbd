"""
Tool result payloads.

Every tool returns ``{"content": [...], "data": {...}}`` on success. Failures
set ``isError`` and carry the error type and its HTTP-equivalent status in
``data.error`` so clients can branch on them.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..errors import LibraryError

logger = logging.getLogger(__name__)


def success(message: str, **data: Any) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "data": data}


def failure(message: str, error_type: str, status: int) -> dict[str, Any]:
    return {
        "isError": True,
        "content": [{"type": "text", "text": message}],
        "data": {"error": {"type": error_type, "status": status}},
    }


def invalid_input(tool: str, error: PydanticValidationError) -> dict[str, Any]:
    logger.info("Invalid %s parameters: %s", tool, error)
    return failure(f"Invalid {tool} parameters: {error}", "validation_error", 400)


def library_failure(tool: str, error: LibraryError) -> dict[str, Any]:
    if error.status_code >= 500:
        logger.error("%s failed: %s", tool, error)
    else:
        logger.info("%s refused: %s", tool, error)
    return failure(error.message, error.error_type, error.status_code)


def unexpected_failure(tool: str, error: Exception) -> dict[str, Any]:
    logger.exception("Unexpected error in %s tool", tool)
    return failure(f"An unexpected error occurred: {error!s}", "internal_error", 500)
