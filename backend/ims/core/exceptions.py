"""
Error taxonomy and HTTP rendering.

Services raise the typed errors below; routes never build error responses
by hand. Every error reaches the client as `{"error": "<message>"}`.

Unclassified failures are logged with their traceback and answered with a
generic 500 so stack traces, SQL and internal paths never leak.
"""
import enum
import logging
from typing import Iterable, Optional, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


class InventoryError(Exception):
    """Base class for every error with a defined HTTP outcome."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = GENERIC_SERVER_ERROR

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- (a) validation --------------------------------------------------------

class ValidationError(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


# --- (b) conflicts raised by the persistence layer -------------------------

class ConflictError(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request conflicts with existing data."


class UniqueConstraintViolation(ConflictError):
    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        if self.fields:
            message = f"The following fields must be unique: {', '.join(self.fields)}"
        else:
            message = "A record with the same unique value already exists."
        super().__init__(message)


class ForeignKeyViolation(ConflictError):
    default_message = "The record references missing data or is still referenced by other records."


# --- (c) lifecycle state errors -------------------------------------------

class StateError(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The item is not in a state that allows this operation."


class ItemsUnavailable(StateError):
    """Some requested items do not exist or are not in the required status."""

    def __init__(self, action: str, item_ids: Iterable[int] = ()):
        self.action = action
        self.item_ids = tuple(item_ids)
        super().__init__(f"One or more items are not available for {action} or not found.")


class InvalidTransition(StateError):
    pass


class DeletionBlock(str, enum.Enum):
    SOLD = "SOLD"
    BORROWED = "BORROWED"
    ASSIGNED = "ASSIGNED"


_DELETION_MESSAGES = {
    DeletionBlock.SOLD: "Cannot delete an item that has been sold.",
    DeletionBlock.BORROWED: "Cannot delete an item that is currently borrowed.",
    DeletionBlock.ASSIGNED: "Cannot delete an asset that is currently assigned.",
}


class ItemDeletionBlocked(StateError):
    def __init__(self, reason: DeletionBlock):
        self.reason = reason
        super().__init__(_DELETION_MESSAGES[reason])


# --- (d) not found ---------------------------------------------------------

class NotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found")


# --- access ----------------------------------------------------------------

class AccountDisabled(InventoryError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "This account has been disabled."


class PermissionDenied(InventoryError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."


class InvalidCredentials(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


# --- rendering -------------------------------------------------------------

def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"Internal server error on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
        return _error(exc.status_code, GENERIC_SERVER_ERROR)
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.warning(f"Not found: {request.method} {request.url.path} - {exc.message}")
    else:
        logger.info(f"{type(exc).__name__}: {request.method} {request.url.path} - {exc.message}")
    return _error(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error(exc.status_code, detail, headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request."
    logger.info(f"Validation failed: {request.method} {request.url.path} - {message}")
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Internal server error: {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
