"""
Error taxonomy for the portal API.

Every error carries the HTTP status it maps to; ``soc_portal_error_handler``
turns them into the ``{"success": false, "message": ...}`` envelope.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SocPortalError(Exception):
    """Base exception for portal API errors."""

    status = 500

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {"success": False, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(SocPortalError):
    """Malformed or missing request parameters (bad time range, bad report)."""

    status = 400


class DataError(SocPortalError):
    """A stored row does not have the shape the aggregator expects."""

    status = 422


class NotFoundError(SocPortalError):
    status = 404


async def soc_portal_error_handler(request: Request, exc: SocPortalError) -> JSONResponse:
    logger.warning(f"⚠️ {request.method} {request.url.path} rejected ({exc.status}): {exc.message}")
    return JSONResponse(status_code=exc.status, content=exc.to_dict())
