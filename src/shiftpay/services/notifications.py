"""Fire-and-forget employee notifications.

Notifications are side effects of operations that have already committed.
The dispatcher isolates every notifier: a failure is logged and never
propagated to the caller, and never rolls anything back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MealBreakReminder:
    """Employee has worked past the meal-break threshold without a lunch punch."""

    employee_id: UUID
    first_clock_in: datetime
    as_of: datetime
    hours_worked: Decimal


@dataclass(frozen=True)
class PayStubIssued:
    """A pay stub was created by processing a payroll run."""

    employee_id: UUID
    employee_email: str | None
    employee_name: str | None
    payroll_run_id: UUID
    pay_stub_id: UUID
    period_start: date
    period_end: date
    pay_date: date
    gross_pay: Decimal
    net_pay: Decimal

    @property
    def period_label(self) -> str:
        return f"{self.period_start} to {self.period_end}"


@runtime_checkable
class Notifier(Protocol):
    """Delivery channel for employee notifications (email, push, ...)."""

    async def meal_break_reminder(self, reminder: MealBreakReminder) -> None:
        ...

    async def pay_stub_issued(self, notice: PayStubIssued) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records notifications in the application log."""

    async def meal_break_reminder(self, reminder: MealBreakReminder) -> None:
        logger.info(
            "Meal break reminder for employee %s (%s hours since %s)",
            reminder.employee_id,
            reminder.hours_worked,
            reminder.first_clock_in,
        )

    async def pay_stub_issued(self, notice: PayStubIssued) -> None:
        logger.info(
            "Pay stub %s issued to employee %s for %s: net %s",
            notice.pay_stub_id,
            notice.employee_id,
            notice.period_label,
            notice.net_pay,
        )


class NotificationDispatcher:
    """Fan out notifications to registered notifiers with failure isolation."""

    def __init__(self, notifiers: list[Notifier] | None = None):
        self._notifiers: list[Notifier] = list(notifiers or [])

    def register(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    async def meal_break_reminder(self, reminder: MealBreakReminder) -> list[Exception]:
        """Send a meal-break reminder. Returns the swallowed failures."""
        return await self._dispatch(
            [(n, "meal_break_reminder", reminder) for n in self._notifiers]
        )

    async def pay_stubs_issued(self, notices: list[PayStubIssued]) -> list[Exception]:
        """Notify each employee of a new pay stub. Returns the swallowed failures."""
        return await self._dispatch(
            [(n, "pay_stub_issued", notice) for notice in notices for n in self._notifiers]
        )

    async def _dispatch(self, calls: list[tuple[Notifier, str, object]]) -> list[Exception]:
        if not calls:
            return []
        results = await asyncio.gather(*(self._call(*call) for call in calls))
        return [r for r in results if r is not None]

    async def _call(
        self, notifier: Notifier, method: str, payload: object
    ) -> Exception | None:
        """Call one notifier method, logging and returning any failure."""
        try:
            await getattr(notifier, method)(payload)
        except Exception as e:
            logger.exception("Notifier %s failed in %s", notifier, method)
            return e
        return None
