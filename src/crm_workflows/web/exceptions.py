"""Exception handling for workflow web endpoints.

This module maps the crm-workflows exception hierarchy onto HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from litestar import Response
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from crm_workflows.exceptions import NotFoundError, WorkflowValidationError

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

    from crm_workflows.exceptions import WorkflowsError

__all__ = [
    "EXCEPTION_HANDLERS",
    "not_found_handler",
    "validation_error_handler",
]

logger = structlog.get_logger(__name__)


def _error_response(exc: WorkflowsError, status_code: int) -> Response:
    return Response(
        content={
            "status": "error",
            "status_code": status_code,
            "message": str(exc),
        },
        status_code=status_code,
        media_type="application/json",
    )


def not_found_handler(request: Request, exc: NotFoundError) -> Response:
    """Return a 404 response for a missing workflow, step, entity or tag.

    Args:
        request: The Litestar request object.
        exc: The NotFoundError exception.

    Returns:
        Response with the error message.
    """
    logger.info("not_found", path=request.url.path, error=str(exc))
    return _error_response(exc, HTTP_404_NOT_FOUND)


def validation_error_handler(request: Request, exc: WorkflowValidationError) -> Response:
    """Return a 400 response for invalid input."""
    logger.info("validation_failed", path=request.url.path, errors=exc.errors)
    return _error_response(exc, HTTP_400_BAD_REQUEST)


EXCEPTION_HANDLERS = {
    NotFoundError: not_found_handler,
    WorkflowValidationError: validation_error_handler,
}
