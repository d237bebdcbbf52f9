"""Payroll calculator: hours and rates to gross, deductions and net."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from shiftpay.calculators.types import CENTS, ZERO, Deductions, PayComputation
from shiftpay.config import get_settings

OVERTIME_MULTIPLIER = Decimal("1.5")
RATE_PRECISION = Decimal("0.0001")

# Simplified flat-rate withholding estimates, as fractions of gross pay.
FEDERAL_TAX_RATE = Decimal("0.12")
STATE_TAX_RATE = Decimal("0.05")
SOCIAL_SECURITY_RATE = Decimal("0.062")
MEDICARE_RATE = Decimal("0.0145")


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PayCalculator:
    """Deterministic per-employee pay computation.

    Pipeline (stable order):
    1) Split total hours at the overtime threshold (applied to the period total)
    2) Regular and overtime pay
    3) Gross = regular + overtime
    4) Flat-rate deductions from gross
    5) Net = gross - deductions

    Each monetary figure is rounded when it is produced, so stored pay stubs
    reproduce exactly from their own columns.
    """

    def __init__(self, overtime_threshold_hours: Decimal | None = None):
        if overtime_threshold_hours is None:
            overtime_threshold_hours = get_settings().overtime_threshold_hours
        self.overtime_threshold_hours = Decimal(overtime_threshold_hours)

    @staticmethod
    def calculate_deductions(gross_pay: Decimal) -> Deductions:
        """Itemize withholding for a gross amount."""
        federal = round_money(gross_pay * FEDERAL_TAX_RATE)
        state = round_money(gross_pay * STATE_TAX_RATE)
        social_security = round_money(gross_pay * SOCIAL_SECURITY_RATE)
        medicare = round_money(gross_pay * MEDICARE_RATE)
        return Deductions(
            federal_tax=federal,
            state_tax=state,
            social_security=social_security,
            medicare=medicare,
            total=federal + state + social_security + medicare,
        )

    def split_hours(self, total_hours: Decimal) -> tuple[Decimal, Decimal]:
        """Return (regular_hours, overtime_hours)."""
        overtime = max(ZERO, total_hours - self.overtime_threshold_hours)
        return total_hours - overtime, overtime

    def calculate(
        self,
        employee_id: UUID,
        hourly_rate: Decimal | None,
        overtime_rate: Decimal | None,
        total_hours: Decimal,
        work_days: int = 0,
        employee_name: str | None = None,
        employee_email: str | None = None,
    ) -> PayComputation:
        """Compute pay for one employee.

        A missing or zero hourly rate is not an error: it yields zero pay.
        """
        hourly = hourly_rate or ZERO
        if overtime_rate is None:
            overtime_rate = (hourly * OVERTIME_MULTIPLIER).quantize(
                RATE_PRECISION, rounding=ROUND_HALF_UP
            )

        total_hours = round_money(Decimal(total_hours))
        regular_hours, overtime_hours = self.split_hours(total_hours)

        regular_pay = round_money(regular_hours * hourly)
        overtime_pay = round_money(overtime_hours * overtime_rate)
        gross_pay = regular_pay + overtime_pay

        deductions = self.calculate_deductions(gross_pay)
        net_pay = gross_pay - deductions.total

        return PayComputation(
            employee_id=employee_id,
            hourly_rate=hourly,
            overtime_rate=overtime_rate,
            total_hours=total_hours,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            gross_pay=gross_pay,
            deductions=deductions,
            net_pay=net_pay,
            work_days=work_days,
            employee_name=employee_name,
            employee_email=employee_email,
        )
