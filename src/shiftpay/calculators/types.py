"""Type definitions for the hours and pay calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol
from uuid import UUID

CENTS = Decimal("0.01")
ZERO = Decimal("0")


class PunchType(str, Enum):
    """Time-clock event types."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    LUNCH_START = "lunch_start"
    LUNCH_END = "lunch_end"
    BREAK_START = "break_start"
    BREAK_END = "break_end"

    @classmethod
    def parse(cls, value: str | PunchType) -> PunchType:
        """Accept enum members and legacy upper-case values ('CLOCK_IN')."""
        if isinstance(value, PunchType):
            return value
        return cls(str(value).strip().lower())

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")

    @property
    def starts_break(self) -> bool:
        return self in (PunchType.LUNCH_START, PunchType.BREAK_START)

    @property
    def ends_break(self) -> bool:
        return self in (PunchType.LUNCH_END, PunchType.BREAK_END)


class PunchLike(Protocol):
    """Anything carrying a punch type and timestamp (ORM row or plain record)."""

    punch_type: str
    punched_at: datetime


@dataclass(frozen=True)
class PunchRecord:
    """Detached punch used by pure calculations and tests."""

    punch_type: str
    punched_at: datetime


@dataclass
class DaySummary:
    """Worked-time summary for one employee on one calendar day."""

    work_date: date | None
    worked_minutes: Decimal
    worked_hours: Decimal
    break_minutes: Decimal
    punch_count: int
    sessions: int
    is_clocked_in: bool
    is_on_break: bool
    current_session_minutes: Decimal = ZERO
    current_session_hours: Decimal = ZERO
    first_clock_in: datetime | None = None
    last_clock_out: datetime | None = None
    last_punch_at: datetime | None = None


@dataclass(frozen=True)
class Deductions:
    """Itemized withholding, each rounded to cents."""

    federal_tax: Decimal
    state_tax: Decimal
    social_security: Decimal
    medicare: Decimal
    total: Decimal


@dataclass(frozen=True)
class PayComputation:
    """Deterministic pay result for one employee over one pay period."""

    employee_id: UUID
    hourly_rate: Decimal
    overtime_rate: Decimal
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    deductions: Deductions
    net_pay: Decimal
    work_days: int = 0
    employee_name: str | None = None
    employee_email: str | None = None


@dataclass
class RunTotals:
    """Run-wide sums across employee computations."""

    total_gross: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    total_hours: Decimal = ZERO
    total_overtime_hours: Decimal = ZERO

    def add(self, computation: PayComputation) -> None:
        self.total_gross += computation.gross_pay
        self.total_deductions += computation.deductions.total
        self.total_net += computation.net_pay
        self.total_hours += computation.total_hours
        self.total_overtime_hours += computation.overtime_hours


@dataclass
class RunCalculation:
    """In-memory preview of a payroll run. Never persisted."""

    payroll_run_id: UUID
    company_id: UUID
    period_start: date
    period_end: date
    employees: list[PayComputation] = field(default_factory=list)
    totals: RunTotals = field(default_factory=RunTotals)
