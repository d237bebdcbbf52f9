"""Punch sequencer - validates and records time-clock events."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shiftpay.calculators.hours import HoursCalculator
from shiftpay.calculators.pay import PayCalculator
from shiftpay.calculators.types import DaySummary, PunchLike, PunchRecord, PunchType
from shiftpay.config import Settings, get_settings
from shiftpay.errors import NotFoundError, ValidationError, store_errors
from shiftpay.models import Employee, Punch
from shiftpay.services.notifications import (
    LoggingNotifier,
    MealBreakReminder,
    NotificationDispatcher,
)

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = Decimal(3600)


@dataclass
class PunchStatus:
    """Live clock status of one employee."""

    employee_id: UUID
    last_punch: Punch | None
    is_clocked_in: bool
    is_on_break: bool
    current_session_minutes: Decimal
    current_session_hours: Decimal
    allowed_next: list[str] = field(default_factory=list)


@dataclass
class WeekSummary:
    """Seven days of worked time, split at the overtime threshold."""

    employee_id: UUID
    week_start: date
    week_end: date
    days_worked: int
    punch_count: int
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class PunchService:
    """Service for recording and correcting time punches.

    Per employee and calendar day, punches must follow the transition table:
    the first punch is a clock in, a lunch or break must be ended before
    anything else happens, and clock out closes the session until the next
    clock in. Punch creation locks the employee row so that concurrent punches
    for one employee are checked one at a time.
    """

    VALID_SEQUENCES: dict[PunchType, list[PunchType]] = {
        PunchType.CLOCK_IN: [PunchType.LUNCH_START, PunchType.BREAK_START, PunchType.CLOCK_OUT],
        PunchType.LUNCH_START: [PunchType.LUNCH_END],
        PunchType.LUNCH_END: [PunchType.LUNCH_START, PunchType.BREAK_START, PunchType.CLOCK_OUT],
        PunchType.BREAK_START: [PunchType.BREAK_END],
        PunchType.BREAK_END: [PunchType.LUNCH_START, PunchType.BREAK_START, PunchType.CLOCK_OUT],
        PunchType.CLOCK_OUT: [PunchType.CLOCK_IN],
    }

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or NotificationDispatcher([LoggingNotifier()])
        settings = settings or get_settings()
        self.duplicate_window = timedelta(minutes=settings.duplicate_punch_window_minutes)
        self.min_shift = timedelta(minutes=settings.min_shift_minutes)
        self.meal_break_threshold_hours = settings.meal_break_threshold_hours
        self.pay_calculator = PayCalculator(settings.overtime_threshold_hours)

    # === Sequencing rules ===

    @classmethod
    def allowed_next(cls, last_type: PunchType | str | None) -> list[PunchType]:
        """Punch types allowed after the given last punch type of the day."""
        if last_type is None:
            return [PunchType.CLOCK_IN]
        return cls.VALID_SEQUENCES.get(PunchType.parse(last_type), [])

    def validate_next(
        self,
        day_punches: Sequence[PunchLike],
        punch_type: PunchType,
        punched_at: datetime,
    ) -> None:
        """Validate a new punch against the latest punch recorded that day."""
        ordered = sorted(day_punches, key=lambda p: p.punched_at)

        if not ordered:
            if punch_type != PunchType.CLOCK_IN:
                raise ValidationError("First punch of the day must be clock in")
            return

        last_type = PunchType.parse(ordered[-1].punch_type)
        if punch_type not in self.allowed_next(last_type):
            raise ValidationError(f"Cannot {punch_type.label} after {last_type.label}")

        if punch_type == PunchType.CLOCK_OUT:
            clock_ins = [p for p in ordered if PunchType.parse(p.punch_type) == PunchType.CLOCK_IN]
            if clock_ins and punched_at - clock_ins[-1].punched_at < self.min_shift:
                minutes = int(self.min_shift.total_seconds() // 60)
                raise ValidationError(
                    f"Cannot clock out within {minutes} minutes of clocking in"
                )

    def validate_day_sequence(self, punches: Sequence[PunchLike]) -> None:
        """Replay a whole day through the transition table."""
        replayed: list[PunchLike] = []
        for punch in sorted(punches, key=lambda p: p.punched_at):
            self.validate_next(replayed, PunchType.parse(punch.punch_type), punch.punched_at)
            replayed.append(punch)

    # === Commands ===

    async def record_punch(
        self,
        employee_id: UUID,
        punch_type: str | PunchType,
        punched_at: datetime | None = None,
        notes: str | None = None,
        latitude: Decimal | None = None,
        longitude: Decimal | None = None,
        ip_address: str | None = None,
        company_id: UUID | None = None,
    ) -> Punch:
        """Validate and persist a punch.

        Raises:
            ValidationError: unknown type, duplicate, illegal sequence, short shift
            NotFoundError: employee missing, inactive or in another company
            PersistenceError: store failure; the punch was not recorded
        """
        try:
            ptype = PunchType.parse(punch_type)
        except ValueError:
            raise ValidationError(f"Invalid punch type '{punch_type}'") from None

        punched_at = punched_at or datetime.now()

        with store_errors("Time punch creation"):
            async with self.session_factory() as session:
                async with session.begin():
                    await self._get_employee(
                        session, employee_id, company_id, lock=True, require_active=True
                    )
                    await self._check_duplicate(session, employee_id, ptype, punched_at)

                    day_punches = await self._get_day_punches(
                        session, employee_id, punched_at.date()
                    )
                    if any(p.punched_at > punched_at for p in day_punches):
                        self._validate_insertion(day_punches, ptype, punched_at)
                    else:
                        self.validate_next(day_punches, ptype, punched_at)

                    punch = Punch(
                        employee_id=employee_id,
                        punch_type=ptype.value,
                        punched_at=punched_at,
                        notes=notes,
                        latitude=latitude,
                        longitude=longitude,
                        ip_address=ip_address,
                    )
                    session.add(punch)
                    await session.flush()

        logger.info(
            "Time punch %s recorded: employee=%s type=%s at=%s",
            punch.punch_id,
            employee_id,
            ptype.value,
            punched_at,
        )

        try:
            await self._check_meal_break(employee_id, [*day_punches, punch], punched_at)
        except Exception:
            # The punch is already committed
            logger.exception("Meal break check failed for employee %s", employee_id)
        return punch

    async def correct_punch(
        self,
        punch_id: UUID,
        punched_at: datetime | None = None,
        notes: str | None = None,
        company_id: UUID | None = None,
    ) -> Punch:
        """Administrative correction of a punch timestamp and/or notes.

        A timestamp change is re-validated against the full sequence of every
        day it touches.
        """
        if punched_at is None and notes is None:
            raise ValidationError("No valid fields to update")

        with store_errors("Time punch correction"):
            async with self.session_factory() as session:
                async with session.begin():
                    punch = await self._get_punch(session, punch_id, company_id, lock=True)
                    await self._get_employee(session, punch.employee_id, None, lock=True)

                    if punched_at is not None and punched_at != punch.punched_at:
                        await self._validate_correction(session, punch, punched_at)
                        punch.punched_at = punched_at
                    if notes is not None:
                        punch.notes = notes
                    punch.corrected_at = datetime.now()
                    await session.flush()

        logger.info("Time punch %s corrected", punch_id)
        return punch

    # === Queries ===

    async def get_punch(self, punch_id: UUID, company_id: UUID | None = None) -> Punch:
        """Get a punch, scoped to a company when given."""
        with store_errors("Time punch lookup"):
            async with self.session_factory() as session:
                return await self._get_punch(session, punch_id, company_id)

    async def list_punches(
        self,
        employee_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        punch_type: str | None = None,
        company_id: UUID | None = None,
    ) -> list[Punch]:
        """List an employee's punches, most recent first."""
        query = select(Punch).where(Punch.employee_id == employee_id)
        if start_date is not None:
            query = query.where(Punch.punched_at >= _day_bounds(start_date)[0])
        if end_date is not None:
            query = query.where(Punch.punched_at < _day_bounds(end_date)[1])
        if punch_type is not None:
            try:
                query = query.where(Punch.punch_type == PunchType.parse(punch_type).value)
            except ValueError:
                raise ValidationError(f"Invalid punch type '{punch_type}'") from None

        with store_errors("Time punches lookup"):
            async with self.session_factory() as session:
                await self._get_employee(session, employee_id, company_id)
                result = await session.execute(query.order_by(Punch.punched_at.desc()))
                return list(result.scalars().all())

    async def get_day_summary(
        self,
        employee_id: UUID,
        day: date,
        now: datetime | None = None,
        company_id: UUID | None = None,
    ) -> DaySummary:
        """Worked/break time for one day, including the live open session."""
        with store_errors("Daily summary lookup"):
            async with self.session_factory() as session:
                await self._get_employee(session, employee_id, company_id)
                punches = await self._get_day_punches(session, employee_id, day)

        summary = HoursCalculator.summarize_day(punches, now=now or datetime.now())
        summary.work_date = day
        return summary

    async def get_week_summary(
        self,
        employee_id: UUID,
        week_start: date,
        company_id: UUID | None = None,
    ) -> WeekSummary:
        """Hours for the seven days starting at week_start."""
        week_end = week_start + timedelta(days=6)
        with store_errors("Weekly summary lookup"):
            async with self.session_factory() as session:
                await self._get_employee(session, employee_id, company_id)
                result = await session.execute(
                    select(Punch)
                    .where(
                        Punch.employee_id == employee_id,
                        Punch.punched_at >= _day_bounds(week_start)[0],
                        Punch.punched_at < _day_bounds(week_end)[1],
                    )
                    .order_by(Punch.punched_at)
                )
                punches = list(result.scalars().all())

        total_hours, days_worked = HoursCalculator.range_hours(punches)
        regular_hours, overtime_hours = self.pay_calculator.split_hours(total_hours)
        return WeekSummary(
            employee_id=employee_id,
            week_start=week_start,
            week_end=week_end,
            days_worked=days_worked,
            punch_count=len(punches),
            total_hours=total_hours,
            regular_hours=regular_hours,
            overtime_hours=overtime_hours,
        )

    async def get_current_status(
        self,
        employee_id: UUID,
        now: datetime | None = None,
        company_id: UUID | None = None,
    ) -> PunchStatus:
        """Whether the employee is clocked in, and for how long."""
        now = now or datetime.now()
        with store_errors("Current status lookup"):
            async with self.session_factory() as session:
                await self._get_employee(session, employee_id, company_id)
                result = await session.execute(
                    select(Punch)
                    .where(Punch.employee_id == employee_id)
                    .order_by(Punch.punched_at.desc())
                    .limit(1)
                )
                last_punch = result.scalar_one_or_none()
                day_punches: list[Punch] = []
                if last_punch is not None:
                    day_punches = await self._get_day_punches(
                        session, employee_id, last_punch.punched_at.date()
                    )

        summary = HoursCalculator.summarize_day(day_punches, now=now)
        last_type = last_punch.punch_type if last_punch is not None else None
        if last_punch is not None and last_punch.punched_at.date() != now.date():
            # A new calendar day starts a fresh sequence.
            last_type = None

        return PunchStatus(
            employee_id=employee_id,
            last_punch=last_punch,
            is_clocked_in=summary.is_clocked_in,
            is_on_break=summary.is_on_break,
            current_session_minutes=summary.current_session_minutes,
            current_session_hours=summary.current_session_hours,
            allowed_next=[t.value for t in self.allowed_next(last_type)],
        )

    # === Internals ===

    async def _check_meal_break(
        self,
        employee_id: UUID,
        day_punches: Sequence[PunchLike],
        as_of: datetime,
    ) -> None:
        """Remind the employee to take a meal break once past the threshold."""
        types = [PunchType.parse(p.punch_type) for p in day_punches]
        if PunchType.LUNCH_START in types or PunchType.LUNCH_END in types:
            return

        clock_ins = sorted(
            p.punched_at for p in day_punches if PunchType.parse(p.punch_type) == PunchType.CLOCK_IN
        )
        if not clock_ins:
            return

        elapsed = as_of - clock_ins[0]
        hours_worked = Decimal(str(elapsed.total_seconds())) / SECONDS_PER_HOUR
        if hours_worked < self.meal_break_threshold_hours:
            return

        logger.info(
            "Meal break reminder triggered for employee %s after %.2f hours",
            employee_id,
            hours_worked,
        )
        await self.dispatcher.meal_break_reminder(
            MealBreakReminder(
                employee_id=employee_id,
                first_clock_in=clock_ins[0],
                as_of=as_of,
                hours_worked=hours_worked.quantize(Decimal("0.01")),
            )
        )

    def _validate_insertion(
        self, day_punches: Sequence[PunchLike], punch_type: PunchType, punched_at: datetime
    ) -> None:
        """Replay a day with a punch placed before punches already recorded."""
        inserted = PunchRecord(punch_type=punch_type.value, punched_at=punched_at)
        try:
            self.validate_day_sequence([*day_punches, inserted])
        except ValidationError as e:
            raise ValidationError(
                f"Punch at {punched_at:%H:%M} would leave an invalid punch sequence "
                f"on {punched_at.date()}: {e.message}"
            ) from None

    async def _validate_correction(
        self, session: AsyncSession, punch: Punch, new_punched_at: datetime
    ) -> None:
        """Re-validate each day touched by moving a punch to a new timestamp."""
        moved = PunchRecord(punch_type=punch.punch_type, punched_at=new_punched_at)
        for day in sorted({punch.punched_at.date(), new_punched_at.date()}):
            others = [
                p
                for p in await self._get_day_punches(session, punch.employee_id, day)
                if p.punch_id != punch.punch_id
            ]
            sequence: list[PunchLike] = list(others)
            if new_punched_at.date() == day:
                sequence.append(moved)
            try:
                self.validate_day_sequence(sequence)
            except ValidationError as e:
                raise ValidationError(
                    f"Correction would leave an invalid punch sequence on {day}: {e.message}"
                ) from None

    async def _check_duplicate(
        self,
        session: AsyncSession,
        employee_id: UUID,
        punch_type: PunchType,
        punched_at: datetime,
    ) -> None:
        result = await session.execute(
            select(Punch.punch_id)
            .where(
                Punch.employee_id == employee_id,
                Punch.punch_type == punch_type.value,
                Punch.punched_at > punched_at - self.duplicate_window,
                Punch.punched_at < punched_at + self.duplicate_window,
            )
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            raise ValidationError(
                "Duplicate punch detected. Please wait before punching again."
            )

    async def _get_day_punches(
        self, session: AsyncSession, employee_id: UUID, day: date
    ) -> list[Punch]:
        start, end = _day_bounds(day)
        result = await session.execute(
            select(Punch)
            .where(
                Punch.employee_id == employee_id,
                Punch.punched_at >= start,
                Punch.punched_at < end,
            )
            .order_by(Punch.punched_at)
        )
        return list(result.scalars().all())

    async def _get_employee(
        self,
        session: AsyncSession,
        employee_id: UUID,
        company_id: UUID | None,
        lock: bool = False,
        require_active: bool = False,
    ) -> Employee:
        query = select(Employee).where(Employee.employee_id == employee_id)
        if lock:
            query = query.with_for_update()
        result = await session.execute(query)
        employee = result.scalar_one_or_none()
        if employee is None or (require_active and not employee.is_active):
            raise NotFoundError("Employee", employee_id)
        if company_id is not None and employee.company_id != company_id:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _get_punch(
        self,
        session: AsyncSession,
        punch_id: UUID,
        company_id: UUID | None,
        lock: bool = False,
    ) -> Punch:
        query = select(Punch).where(Punch.punch_id == punch_id)
        if company_id is not None:
            query = query.join(Employee).where(Employee.company_id == company_id)
        if lock:
            query = query.with_for_update()
        result = await session.execute(query)
        punch = result.scalar_one_or_none()
        if punch is None:
            raise NotFoundError("Time punch", punch_id)
        return punch
