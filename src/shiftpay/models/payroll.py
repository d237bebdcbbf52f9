"""Payroll run and pay stub models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.company import Company
    from shiftpay.models.employee import Employee


class PayrollRun(Base, TimestampMixin):
    """Company-wide payroll execution for one pay period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_by: Mapped[UUID | None] = mapped_column(nullable=True)
    processed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True, onupdate=datetime.now
    )

    __table_args__ = (
        CheckConstraint("period_end > period_start", name="payroll_run_period_check"),
        CheckConstraint("pay_date >= period_end", name="payroll_run_pay_date_check"),
        CheckConstraint(
            "status IN ('draft', 'processing', 'completed', 'failed', 'cancelled')",
            name="payroll_run_status_check",
        ),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="payroll_runs")
    pay_stubs: Mapped[list[PayStub]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PayStub(Base, TimestampMixin):
    """Computed pay record for one employee within one payroll run."""

    __tablename__ = "pay_stub"

    pay_stub_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    regular_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    regular_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    federal_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    state_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    social_security: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    medicare: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    pdf_reference: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="pay_stub_one_per_employee"),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="pay_stubs")
    employee: Mapped[Employee] = relationship()

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours
