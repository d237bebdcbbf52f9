"""Payroll run state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from shiftpay.errors import StateConflictError, ValidationError


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Legacy spellings accepted on input.
STATUS_ALIASES: dict[str, str] = {
    "pending": PayrollRunStatus.DRAFT.value,
    "canceled": PayrollRunStatus.CANCELLED.value,
}


class RunOperation(str, Enum):
    """Operations the orchestrator performs on a payroll run."""

    CALCULATE = "calculate"
    PROCESS = "process"
    DELETE = "delete"
    UPDATE_STATUS = "update status"


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → processing (process only)
    - processing → completed (process only)
    - draft → cancelled
    - processing → failed
    - completed → failed
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        "draft": ["processing", "cancelled"],
        "processing": ["completed", "failed"],
        "completed": ["failed"],
        "failed": [],  # Terminal state
        "cancelled": [],  # Terminal state
    }

    # Statuses only the processing pipeline may enter
    PROCESS_ONLY = {"processing", "completed"}

    # Statuses each operation may start from
    OPERATION_ALLOWED_FROM: dict[str, set[str]] = {
        RunOperation.CALCULATE.value: {"draft"},
        RunOperation.PROCESS.value: {"draft"},
        RunOperation.DELETE.value: {"draft"},
    }

    # Statuses where pay stubs may no longer be edited or deleted
    STUBS_IMMUTABLE = {"completed"}

    @classmethod
    def normalize(cls, status: str | PayrollRunStatus) -> str:
        """Return the canonical status value, raising ValidationError if unknown."""
        if isinstance(status, PayrollRunStatus):
            return status.value
        value = str(status).strip().lower()
        value = STATUS_ALIASES.get(value, value)
        try:
            return PayrollRunStatus(value).value
        except ValueError:
            raise ValidationError(f"Invalid payroll status '{status}'") from None

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(cls.normalize(from_status), [])
        return cls.normalize(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising StateConflictError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise StateConflictError(
                cls.normalize(from_status),
                RunOperation.UPDATE_STATUS.value,
                f"transition to '{cls.normalize(to_status)}' is not allowed",
            )

    @classmethod
    def validate_manual_transition(cls, from_status: str, to_status: str) -> str:
        """Validate an administrative status change and return the target status.

        Statuses reached through processing cannot be set directly.
        """
        target = cls.normalize(to_status)
        if target in cls.PROCESS_ONLY:
            raise StateConflictError(
                cls.normalize(from_status),
                RunOperation.UPDATE_STATUS.value,
                f"'{target}' is only reachable by processing the run",
            )
        cls.validate_transition(from_status, target)
        return target

    @classmethod
    def can_perform(cls, status: str, operation: RunOperation) -> bool:
        """Check whether an operation may start from a status."""
        allowed = cls.OPERATION_ALLOWED_FROM.get(RunOperation(operation).value, set())
        return cls.normalize(status) in allowed

    @classmethod
    def require(cls, status: str, operation: RunOperation) -> None:
        """Raise StateConflictError unless the operation may start from status."""
        if not cls.can_perform(status, operation):
            allowed = sorted(cls.OPERATION_ALLOWED_FROM[operation.value])
            raise StateConflictError(
                cls.normalize(status),
                operation.value,
                f"allowed only from {', '.join(allowed)}",
            )

    @classmethod
    def are_stubs_immutable(cls, status: str) -> bool:
        """Check whether pay stubs of a run in this status are locked."""
        return cls.normalize(status) in cls.STUBS_IMMUTABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return list(cls.VALID_TRANSITIONS.get(cls.normalize(current_status), []))
