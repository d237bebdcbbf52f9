"""Payroll run service - orchestrates the payroll run lifecycle."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from shiftpay.calculators.hours import HoursCalculator
from shiftpay.calculators.pay import PayCalculator
from shiftpay.calculators.types import PayComputation, RunCalculation, RunTotals
from shiftpay.config import Settings, get_settings
from shiftpay.errors import NotFoundError, StateConflictError, ValidationError, store_errors
from shiftpay.models import Company, Employee, PayrollRun, PayStub, Punch
from shiftpay.services.notifications import (
    LoggingNotifier,
    NotificationDispatcher,
    PayStubIssued,
)
from shiftpay.services.state_machine import (
    PayrollRunStateMachine,
    PayrollRunStatus,
    RunOperation,
)

logger = logging.getLogger(__name__)


class PayrollRunService:
    """Service for managing payroll run lifecycle.

    Operations:
    - create: validate the pay period and persist a draft run
    - calculate: preview per-employee pay and run totals (no writes)
    - process: persist pay stubs and complete the run in one transaction
    - update_status: administrative status change through the transition table
    - delete: remove a draft run
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher | None = None,
        calculator: PayCalculator | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or NotificationDispatcher([LoggingNotifier()])
        settings = settings or get_settings()
        self.calculator = calculator or PayCalculator(settings.overtime_threshold_hours)

    # === Commands ===

    async def create(
        self,
        company_id: UUID,
        period_start: date,
        period_end: date,
        pay_date: date,
        created_by: UUID | None = None,
        description: str | None = None,
    ) -> PayrollRun:
        """Create a payroll run in draft status.

        Raises ValidationError for an inverted period, a pay date before the
        period end, or a period intersecting another non-cancelled run.
        """
        if period_end <= period_start:
            raise ValidationError("Pay period end date must be after start date")
        if pay_date < period_end:
            raise ValidationError("Pay date must be on or after pay period end date")

        with store_errors("Payroll creation"):
            async with self.session_factory() as session:
                async with session.begin():
                    company = await session.get(Company, company_id)
                    if company is None:
                        raise NotFoundError("Company", company_id)

                    overlapping = await self._find_overlapping_run(
                        session, company_id, period_start, period_end
                    )
                    if overlapping is not None:
                        raise ValidationError(
                            "Payroll period overlaps with existing payroll "
                            f"{overlapping.payroll_run_id} "
                            f"({overlapping.period_start} to {overlapping.period_end})"
                        )

                    payroll_run = PayrollRun(
                        company_id=company_id,
                        period_start=period_start,
                        period_end=period_end,
                        pay_date=pay_date,
                        description=description,
                        status=PayrollRunStatus.DRAFT.value,
                        created_by=created_by,
                    )
                    session.add(payroll_run)
                    await session.flush()

        logger.info(
            "Payroll run %s created for company %s: %s to %s",
            payroll_run.payroll_run_id,
            company_id,
            period_start,
            period_end,
        )
        return payroll_run

    async def calculate(
        self, payroll_run_id: UUID, company_id: UUID | None = None
    ) -> RunCalculation:
        """Preview pay for every active employee of the run's company.

        Allowed only from draft. Nothing is written, so repeated calls with
        unchanged punches return identical computations.
        """
        with store_errors("Payroll calculation"):
            async with self.session_factory() as session:
                payroll_run = await self._get_run(session, payroll_run_id, company_id)
                PayrollRunStateMachine.require(payroll_run.status, RunOperation.CALCULATE)
                return await self._calculate(session, payroll_run)

    async def process(
        self,
        payroll_run_id: UUID,
        processed_by: UUID | None,
        company_id: UUID | None = None,
    ) -> PayrollRun:
        """Process a draft run into pay stubs.

        This method:
        1. Claims the run with a conditional draft → processing update
        2. Calculates every active employee's pay
        3. Creates one pay stub per employee
        4. Records total cost and completes the run

        All four steps share one transaction; any failure leaves the run in
        draft with no pay stubs. Employee notifications are sent after commit
        and never fail the call.
        """
        with store_errors("Payroll processing"):
            async with self.session_factory() as session:
                async with session.begin():
                    payroll_run = await self._get_run(session, payroll_run_id, company_id)
                    PayrollRunStateMachine.require(payroll_run.status, RunOperation.PROCESS)

                    # Conditional update serializes concurrent processing of one run
                    claim = await session.execute(
                        update(PayrollRun)
                        .where(
                            PayrollRun.payroll_run_id == payroll_run_id,
                            PayrollRun.status == PayrollRunStatus.DRAFT.value,
                        )
                        .values(status=PayrollRunStatus.PROCESSING.value)
                    )
                    if claim.rowcount == 0:
                        await session.refresh(payroll_run)
                        raise StateConflictError(
                            payroll_run.status,
                            RunOperation.PROCESS.value,
                            "run was processed concurrently",
                        )
                    payroll_run.status = PayrollRunStatus.PROCESSING.value

                    calculation = await self._calculate(session, payroll_run)

                    stubs: list[PayStub] = []
                    for computation in calculation.employees:
                        stub = self._build_pay_stub(payroll_run, computation)
                        session.add(stub)
                        await session.flush()
                        stubs.append(stub)

                    PayrollRunStateMachine.validate_transition(
                        payroll_run.status, PayrollRunStatus.COMPLETED
                    )
                    payroll_run.status = PayrollRunStatus.COMPLETED.value
                    payroll_run.total_cost = calculation.totals.total_net
                    payroll_run.processed_by = processed_by
                    payroll_run.processed_at = payroll_run.updated_at = datetime.now()
                    await session.flush()

        logger.info(
            "Payroll run %s processed: employees=%d total_cost=%s",
            payroll_run_id,
            len(stubs),
            payroll_run.total_cost,
        )

        notices = [
            self._build_notice(payroll_run, stub, computation)
            for stub, computation in zip(stubs, calculation.employees)
        ]
        failures = await self.dispatcher.pay_stubs_issued(notices)
        if failures:
            logger.warning(
                "%d payroll notification(s) failed for run %s",
                len(failures),
                payroll_run_id,
            )

        return payroll_run

    async def update_status(
        self,
        payroll_run_id: UUID,
        new_status: str,
        updated_by: UUID | None = None,
        company_id: UUID | None = None,
    ) -> PayrollRun:
        """Change a run's status through the transition table.

        Raises ValidationError for an unknown status and StateConflictError for
        a transition the table does not allow.
        """
        target = PayrollRunStateMachine.normalize(new_status)

        with store_errors("Payroll status update"):
            async with self.session_factory() as session:
                async with session.begin():
                    payroll_run = await self._get_run(
                        session, payroll_run_id, company_id, lock=True
                    )
                    from_status = payroll_run.status
                    target = PayrollRunStateMachine.validate_manual_transition(
                        from_status, target
                    )
                    payroll_run.status = target
                    payroll_run.updated_by = updated_by
                    payroll_run.updated_at = datetime.now()
                    await session.flush()

        logger.info(
            "Payroll run %s status changed %s -> %s by %s",
            payroll_run_id,
            from_status,
            target,
            updated_by,
        )
        return payroll_run

    async def delete(self, payroll_run_id: UUID, company_id: UUID | None = None) -> None:
        """Delete a draft run. Runs in any other status are protected."""
        with store_errors("Payroll deletion"):
            async with self.session_factory() as session:
                async with session.begin():
                    payroll_run = await self._get_run(
                        session, payroll_run_id, company_id, lock=True
                    )
                    PayrollRunStateMachine.require(payroll_run.status, RunOperation.DELETE)
                    await session.delete(payroll_run)

        logger.info("Payroll run %s deleted", payroll_run_id)

    # === Queries ===

    async def get(self, payroll_run_id: UUID, company_id: UUID | None = None) -> PayrollRun:
        """Load a payroll run, scoped to a company when given."""
        with store_errors("Payroll lookup"):
            async with self.session_factory() as session:
                return await self._get_run(session, payroll_run_id, company_id)

    async def list_runs(
        self,
        company_id: UUID,
        status: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PayrollRun]:
        """List a company's runs, most recent period first."""
        query = select(PayrollRun).where(PayrollRun.company_id == company_id)
        if status is not None:
            query = query.where(
                PayrollRun.status == PayrollRunStateMachine.normalize(status)
            )
        if start_date is not None:
            query = query.where(PayrollRun.period_start >= start_date)
        if end_date is not None:
            query = query.where(PayrollRun.period_end <= end_date)

        with store_errors("Payrolls lookup"):
            async with self.session_factory() as session:
                result = await session.execute(
                    query.order_by(PayrollRun.period_start.desc())
                )
                return list(result.scalars().all())

    # === Calculation ===

    async def _calculate(
        self, session: AsyncSession, payroll_run: PayrollRun
    ) -> RunCalculation:
        """Calculate every active employee from one batched punch query."""
        employees = await self._get_active_employees(session, payroll_run.company_id)
        punches_by_employee = await self._get_period_punches(
            session,
            [e.employee_id for e in employees],
            payroll_run.period_start,
            payroll_run.period_end,
        )

        calculation = RunCalculation(
            payroll_run_id=payroll_run.payroll_run_id,
            company_id=payroll_run.company_id,
            period_start=payroll_run.period_start,
            period_end=payroll_run.period_end,
            totals=RunTotals(),
        )

        for employee in employees:
            total_hours, work_days = HoursCalculator.range_hours(
                punches_by_employee.get(employee.employee_id, [])
            )
            computation = self.calculator.calculate(
                employee_id=employee.employee_id,
                hourly_rate=employee.effective_hourly_rate(),
                overtime_rate=employee.effective_overtime_rate(),
                total_hours=total_hours,
                work_days=work_days,
                employee_name=employee.full_name,
                employee_email=employee.email,
            )
            calculation.employees.append(computation)
            calculation.totals.add(computation)

        return calculation

    @staticmethod
    def _build_pay_stub(payroll_run: PayrollRun, computation: PayComputation) -> PayStub:
        deductions = computation.deductions
        return PayStub(
            payroll_run_id=payroll_run.payroll_run_id,
            employee_id=computation.employee_id,
            regular_hours=computation.regular_hours,
            overtime_hours=computation.overtime_hours,
            hourly_rate=computation.hourly_rate,
            overtime_rate=computation.overtime_rate,
            regular_pay=computation.regular_pay,
            overtime_pay=computation.overtime_pay,
            gross_pay=computation.gross_pay,
            federal_tax=deductions.federal_tax,
            state_tax=deductions.state_tax,
            social_security=deductions.social_security,
            medicare=deductions.medicare,
            total_deductions=deductions.total,
            net_pay=computation.net_pay,
        )

    @staticmethod
    def _build_notice(
        payroll_run: PayrollRun, stub: PayStub, computation: PayComputation
    ) -> PayStubIssued:
        return PayStubIssued(
            employee_id=stub.employee_id,
            employee_email=computation.employee_email,
            employee_name=computation.employee_name,
            payroll_run_id=payroll_run.payroll_run_id,
            pay_stub_id=stub.pay_stub_id,
            period_start=payroll_run.period_start,
            period_end=payroll_run.period_end,
            pay_date=payroll_run.pay_date,
            gross_pay=stub.gross_pay,
            net_pay=stub.net_pay,
        )

    # === Data Loading Methods ===

    async def _get_run(
        self,
        session: AsyncSession,
        payroll_run_id: UUID,
        company_id: UUID | None,
        lock: bool = False,
    ) -> PayrollRun:
        query = select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        if lock:
            query = query.with_for_update()
        result = await session.execute(query)
        payroll_run = result.scalar_one_or_none()
        if payroll_run is None:
            raise NotFoundError("Payroll run", payroll_run_id)
        if company_id is not None and payroll_run.company_id != company_id:
            raise NotFoundError("Payroll run", payroll_run_id)
        return payroll_run

    async def _find_overlapping_run(
        self,
        session: AsyncSession,
        company_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PayrollRun | None:
        """Find a non-cancelled run whose closed window intersects the given one."""
        result = await session.execute(
            select(PayrollRun)
            .where(
                PayrollRun.company_id == company_id,
                PayrollRun.status != PayrollRunStatus.CANCELLED.value,
                PayrollRun.period_start <= period_end,
                PayrollRun.period_end >= period_start,
            )
            .order_by(PayrollRun.period_start)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_active_employees(
        self, session: AsyncSession, company_id: UUID
    ) -> list[Employee]:
        result = await session.execute(
            select(Employee)
            .where(Employee.company_id == company_id, Employee.is_active.is_(True))
            .options(selectinload(Employee.job_role))
            .order_by(Employee.last_name, Employee.first_name, Employee.employee_id)
        )
        return list(result.scalars().all())

    async def _get_period_punches(
        self,
        session: AsyncSession,
        employee_ids: list[UUID],
        period_start: date,
        period_end: date,
    ) -> dict[UUID, list[Punch]]:
        """Fetch all employees' punches for the closed period in one query."""
        if not employee_ids:
            return {}

        window_start = datetime.combine(period_start, time.min)
        window_end = datetime.combine(period_end + timedelta(days=1), time.min)
        result = await session.execute(
            select(Punch)
            .where(
                Punch.employee_id.in_(employee_ids),
                Punch.punched_at >= window_start,
                Punch.punched_at < window_end,
            )
            .order_by(Punch.employee_id, Punch.punched_at)
        )

        grouped: dict[UUID, list[Punch]] = defaultdict(list)
        for punch in result.scalars():
            grouped[punch.employee_id].append(punch)
        return grouped
