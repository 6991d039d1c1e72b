"""Domain exception classes and their HTTP handlers."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BusinessLogicError(Exception):
    """Raised for domain-specific failures; rendered as a structured response."""

    status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class NotFoundError(BusinessLogicError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(BusinessLogicError):
    """Authenticated, but not allowed to act on this resource."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(BusinessLogicError):
    """Operation is not valid for the entity's current state."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BusinessLogicError):
    """Uniqueness violation (double booking, duplicate review)."""

    status_code = status.HTTP_409_CONFLICT


class InvalidInputError(BusinessLogicError):
    """Malformed or out-of-range input that passed schema validation."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


def register_exception_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI app."""

    @app.exception_handler(BusinessLogicError)
    async def _business_error_handler(_: Request, exc: BusinessLogicError):
        return JSONResponse(
            {"success": False, "message": exc.detail},
            status_code=exc.status_code,
        )

    @app.exception_handler(SQLAlchemyError)
    async def _database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error while handling %s %s", request.method, request.url.path)
        return JSONResponse(
            {"success": False, "message": "Server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
