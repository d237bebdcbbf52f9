"""Error taxonomy shared by the services and the API layer."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ShiftPayError(Exception):
    """Base class for errors surfaced to callers with a stable code."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(ShiftPayError):
    """Caller-correctable input problem (dates, overlap, punch sequence, status value)."""

    code = "VALIDATION_FAILED"


class NotFoundError(ShiftPayError):
    """Referenced record does not exist or belongs to another company."""

    code = "RECORD_NOT_FOUND"

    def __init__(self, entity: str, entity_id: object | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} {entity_id} not found"
        super().__init__(msg)


class StateConflictError(ShiftPayError):
    """Operation attempted from a status that does not allow it."""

    code = "INVALID_STATUS"

    def __init__(self, from_status: str, operation: str, reason: str | None = None):
        self.from_status = from_status
        self.operation = operation
        self.reason = reason
        msg = f"Cannot {operation} payroll run in status '{from_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PersistenceError(ShiftPayError):
    """Store I/O failure. Nothing partial was committed, so the call is safe to retry."""

    code = "DATABASE_ERROR"


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate driver/ORM failures into PersistenceError.

    Domain errors raised inside the block pass through unchanged.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("%s failed: %s", operation, e)
        raise PersistenceError(f"{operation} failed") from e
