"""Application error taxonomy shared by services and the HTTP layer."""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid input"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", identifier=None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{message}: {identifier}"
        super().__init__(message)


class DuplicateError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class StorageError(AppError):
    """Unclassified database failure."""

    status_code = 500
    default_message = "Storage operation failed"

    def __init__(self, message: str = None, operation: str = None):
        self.operation = operation
        if operation:
            message = f"Storage error [{operation}]: {message or self.default_message}"
        super().__init__(message)


UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the driver reports a unique or primary key clash"""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


def handle_storage_error(operation: str, error: Exception) -> None:
    """Re-raise error translated into the taxonomy.

    Unique clashes become DuplicateError. Other constraint failures (NOT NULL,
    foreign key, check) mean the input was unusable and become ValidationError.
    """
    if isinstance(error, AppError):
        raise error

    if isinstance(error, IntegrityError):
        logger.warning(f"Constraint violation in {operation}: {error.orig}")
        if is_unique_violation(error):
            raise DuplicateError("A record with this information already exists") from error
        raise ValidationError("The request violates a data constraint") from error

    if isinstance(error, SQLAlchemyError):
        logger.error(f"Storage operation failed [{operation}]: {error}")
        raise StorageError(str(error), operation=operation) from error

    raise error
