"""Hours and pay calculators."""

from shiftpay.calculators.hours import HoursCalculator
from shiftpay.calculators.pay import PayCalculator
from shiftpay.calculators.types import (
    DaySummary,
    Deductions,
    PayComputation,
    PunchRecord,
    PunchType,
    RunCalculation,
    RunTotals,
)

__all__ = [
    "HoursCalculator",
    "PayCalculator",
    "DaySummary",
    "Deductions",
    "PayComputation",
    "PunchRecord",
    "PunchType",
    "RunCalculation",
    "RunTotals",
]
