"""shiftpay services."""

from shiftpay.services.notifications import (
    LoggingNotifier,
    MealBreakReminder,
    NotificationDispatcher,
    Notifier,
    PayStubIssued,
)
from shiftpay.services.pay_stub_service import MonthlyTotals, PayStubService, YearToDateTotals
from shiftpay.services.payroll_service import PayrollRunService
from shiftpay.services.punch_service import PunchService, PunchStatus, WeekSummary
from shiftpay.services.state_machine import PayrollRunStateMachine, PayrollRunStatus, RunOperation

__all__ = [
    "LoggingNotifier",
    "MealBreakReminder",
    "NotificationDispatcher",
    "Notifier",
    "PayStubIssued",
    "MonthlyTotals",
    "PayStubService",
    "YearToDateTotals",
    "PayrollRunService",
    "PunchService",
    "PunchStatus",
    "WeekSummary",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "RunOperation",
]
