"""ORM models."""

from shiftpay.models.base import Base, TimestampMixin
from shiftpay.models.company import Company, JobRole
from shiftpay.models.employee import Employee
from shiftpay.models.payroll import PayrollRun, PayStub
from shiftpay.models.punch import Punch

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "JobRole",
    "Employee",
    "Punch",
    "PayrollRun",
    "PayStub",
]
