"""Pay stub access, PDF references, monthly and year-to-date totals."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from shiftpay.calculators.types import ZERO
from shiftpay.errors import NotFoundError, StateConflictError, ValidationError, store_errors
from shiftpay.models import Employee, PayrollRun, PayStub
from shiftpay.services.state_machine import PayrollRunStateMachine, PayrollRunStatus

logger = logging.getLogger(__name__)


@dataclass
class YearToDateTotals:
    """Sums over an employee's completed pay stubs for one pay-date year."""

    employee_id: UUID
    year: int
    stub_count: int = 0
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    gross_pay: Decimal = ZERO
    federal_tax: Decimal = ZERO
    state_tax: Decimal = ZERO
    social_security: Decimal = ZERO
    medicare: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO

    def add(self, stub: PayStub) -> None:
        self.stub_count += 1
        self.regular_hours += stub.regular_hours
        self.overtime_hours += stub.overtime_hours
        self.gross_pay += stub.gross_pay
        self.federal_tax += stub.federal_tax
        self.state_tax += stub.state_tax
        self.social_security += stub.social_security
        self.medicare += stub.medicare
        self.total_deductions += stub.total_deductions
        self.net_pay += stub.net_pay


@dataclass
class MonthlyTotals:
    """Sums over an employee's completed pay stubs paid in one month."""

    month: int
    month_name: str
    pay_periods: int = 0
    total_hours: Decimal = ZERO
    gross_pay: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO

    def add(self, stub: PayStub) -> None:
        self.pay_periods += 1
        self.total_hours += stub.regular_hours + stub.overtime_hours
        self.gross_pay += stub.gross_pay
        self.total_deductions += stub.total_deductions
        self.net_pay += stub.net_pay


class PayStubService:
    """Read and administer pay stubs produced by payroll processing.

    Pay stubs are created only by PayrollRunService.process. Once their run
    is completed they can no longer be deleted; attaching a rendered PDF is
    the only change allowed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, pay_stub_id: UUID, company_id: UUID | None = None) -> PayStub:
        with store_errors("Pay stub lookup"):
            async with self.session_factory() as session:
                return await self._get_stub(session, pay_stub_id, company_id)

    async def list_for_run(
        self, payroll_run_id: UUID, company_id: UUID | None = None
    ) -> list[PayStub]:
        """List a run's pay stubs ordered by employee name."""
        with store_errors("Pay stubs lookup"):
            async with self.session_factory() as session:
                payroll_run = await session.get(PayrollRun, payroll_run_id)
                if payroll_run is None or (
                    company_id is not None and payroll_run.company_id != company_id
                ):
                    raise NotFoundError("Payroll run", payroll_run_id)

                result = await session.execute(
                    select(PayStub)
                    .join(Employee, PayStub.employee_id == Employee.employee_id)
                    .where(PayStub.payroll_run_id == payroll_run_id)
                    .order_by(Employee.last_name, Employee.first_name, Employee.employee_id)
                )
                return list(result.scalars().all())

    async def list_for_employee(
        self,
        employee_id: UUID,
        year: int | None = None,
        company_id: UUID | None = None,
    ) -> list[PayStub]:
        """List an employee's pay stubs, most recent pay date first."""
        query = (
            select(PayStub)
            .join(PayrollRun, PayStub.payroll_run_id == PayrollRun.payroll_run_id)
            .where(PayStub.employee_id == employee_id)
            .options(selectinload(PayStub.payroll_run))
        )
        if company_id is not None:
            query = query.where(PayrollRun.company_id == company_id)
        if year is not None:
            query = query.where(
                PayrollRun.pay_date >= date(year, 1, 1),
                PayrollRun.pay_date <= date(year, 12, 31),
            )

        with store_errors("Pay stubs lookup"):
            async with self.session_factory() as session:
                result = await session.execute(
                    query.order_by(PayrollRun.pay_date.desc(), PayStub.created_at.desc())
                )
                return list(result.scalars().all())

    async def attach_pdf(
        self, pay_stub_id: UUID, pdf_reference: str, company_id: UUID | None = None
    ) -> PayStub:
        """Record where the rendered statement PDF is stored."""
        if not pdf_reference or not pdf_reference.strip():
            raise ValidationError("PDF reference is required")

        with store_errors("Pay stub update"):
            async with self.session_factory() as session:
                async with session.begin():
                    stub = await self._get_stub(session, pay_stub_id, company_id)
                    stub.pdf_reference = pdf_reference.strip()

        logger.info("PDF attached to pay stub %s", pay_stub_id)
        return stub

    async def delete(self, pay_stub_id: UUID, company_id: UUID | None = None) -> None:
        """Delete a pay stub whose run has never completed."""
        with store_errors("Pay stub deletion"):
            async with self.session_factory() as session:
                async with session.begin():
                    stub = await self._get_stub(session, pay_stub_id, company_id)
                    payroll_run = stub.payroll_run
                    # A completed run later marked failed still issued its stubs
                    if (
                        PayrollRunStateMachine.are_stubs_immutable(payroll_run.status)
                        or payroll_run.processed_at is not None
                    ):
                        raise StateConflictError(
                            payroll_run.status,
                            "delete pay stubs of",
                            "pay stubs of completed runs are permanent",
                        )
                    await session.delete(stub)

        logger.info("Pay stub %s deleted", pay_stub_id)

    async def statement_view(
        self, pay_stub_id: UUID, company_id: UUID | None = None
    ) -> dict[str, Any]:
        """Assemble everything a PDF renderer needs for one pay statement."""
        with store_errors("Pay statement lookup"):
            async with self.session_factory() as session:
                stub = await self._get_stub(session, pay_stub_id, company_id)

        run = stub.payroll_run
        employee = stub.employee
        company = run.company
        return {
            "pay_stub_id": str(stub.pay_stub_id),
            "company": {"id": str(company.company_id), "name": company.name},
            "employee": {
                "id": str(employee.employee_id),
                "name": employee.full_name,
                "email": employee.email,
                "job_role": employee.job_role.name if employee.job_role else None,
            },
            "pay_period": {
                "start": run.period_start.isoformat(),
                "end": run.period_end.isoformat(),
                "pay_date": run.pay_date.isoformat(),
            },
            "earnings": {
                "regular_hours": str(stub.regular_hours),
                "overtime_hours": str(stub.overtime_hours),
                "total_hours": str(stub.total_hours),
                "hourly_rate": str(stub.hourly_rate),
                "overtime_rate": str(stub.overtime_rate),
                "regular_pay": str(stub.regular_pay),
                "overtime_pay": str(stub.overtime_pay),
                "gross_pay": str(stub.gross_pay),
            },
            "deductions": {
                "federal_tax": str(stub.federal_tax),
                "state_tax": str(stub.state_tax),
                "social_security": str(stub.social_security),
                "medicare": str(stub.medicare),
                "total": str(stub.total_deductions),
            },
            "net_pay": str(stub.net_pay),
            "pdf_reference": stub.pdf_reference,
        }

    async def year_to_date(
        self,
        employee_id: UUID,
        year: int | None = None,
        company_id: UUID | None = None,
    ) -> YearToDateTotals:
        """Sum an employee's completed pay stubs whose pay date falls in the year."""
        year = year or date.today().year
        query = self._completed_stubs_query(employee_id, year, company_id)

        totals = YearToDateTotals(employee_id=employee_id, year=year)
        with store_errors("Year-to-date lookup"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                for stub, _ in result:
                    totals.add(stub)
        return totals

    async def monthly_statement(
        self,
        employee_id: UUID,
        year: int | None = None,
        company_id: UUID | None = None,
    ) -> list[MonthlyTotals]:
        """Twelve month buckets of completed pay, by pay date; empty months are zero."""
        year = year or date.today().year
        query = self._completed_stubs_query(employee_id, year, company_id)

        months = [MonthlyTotals(month=m, month_name=calendar.month_name[m]) for m in range(1, 13)]
        with store_errors("Monthly statement lookup"):
            async with self.session_factory() as session:
                result = await session.execute(query)
                for stub, pay_date in result:
                    months[pay_date.month - 1].add(stub)
        return months

    @staticmethod
    def _completed_stubs_query(employee_id: UUID, year: int, company_id: UUID | None):
        query = (
            select(PayStub, PayrollRun.pay_date)
            .join(PayrollRun, PayStub.payroll_run_id == PayrollRun.payroll_run_id)
            .where(
                PayStub.employee_id == employee_id,
                PayrollRun.status == PayrollRunStatus.COMPLETED.value,
                PayrollRun.pay_date >= date(year, 1, 1),
                PayrollRun.pay_date <= date(year, 12, 31),
            )
        )
        if company_id is not None:
            query = query.where(PayrollRun.company_id == company_id)
        return query

    async def _get_stub(
        self, session: AsyncSession, pay_stub_id: UUID, company_id: UUID | None
    ) -> PayStub:
        result = await session.execute(
            select(PayStub)
            .where(PayStub.pay_stub_id == pay_stub_id)
            .options(
                selectinload(PayStub.payroll_run).selectinload(PayrollRun.company),
                selectinload(PayStub.employee).selectinload(Employee.job_role),
            )
        )
        stub = result.scalar_one_or_none()
        if stub is None:
            raise NotFoundError("Pay stub", pay_stub_id)
        if company_id is not None and stub.payroll_run.company_id != company_id:
            raise NotFoundError("Pay stub", pay_stub_id)
        return stub
