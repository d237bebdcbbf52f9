"""Tests for recording and correcting time punches."""

import logging
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from conftest import FailingNotifier, add_punches, standard_day
from shiftpay.errors import NotFoundError, PersistenceError, ValidationError
from shiftpay.models import Punch
from shiftpay.services.notifications import NotificationDispatcher
from shiftpay.services.punch_service import PunchService

DAY = datetime(2024, 1, 15)


def at(hour: int, minute: int = 0, day: datetime = DAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.fixture
def service(session_factory, dispatcher, settings) -> PunchService:
    return PunchService(session_factory, dispatcher=dispatcher, settings=settings)


async def punch_count(session, employee) -> int:
    result = await session.execute(
        select(func.count()).select_from(Punch).where(Punch.employee_id == employee.employee_id)
    )
    return result.scalar_one()


class TestSequencing:
    """Test the per-day transition table."""

    async def test_full_day_accepted(self, service, alice):
        for punch_type, punched_at in [
            ("clock_in", at(9)),
            ("lunch_start", at(13)),
            ("lunch_end", at(13, 30)),
            ("clock_out", at(17, 30)),
        ]:
            punch = await service.record_punch(alice.employee_id, punch_type, punched_at)
            assert punch.punch_type == punch_type

        summary = await service.get_day_summary(alice.employee_id, DAY.date(), now=at(18))
        assert summary.worked_hours == Decimal("8.00")
        assert summary.sessions == 1

    async def test_first_punch_must_be_clock_in(self, service, alice):
        with pytest.raises(ValidationError, match="First punch of the day must be clock in"):
            await service.record_punch(alice.employee_id, "lunch_start", at(12))

    async def test_lunch_end_after_clock_in_rejected(self, service, session, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))

        with pytest.raises(ValidationError, match="Cannot lunch end after clock in"):
            await service.record_punch(alice.employee_id, "lunch_end", at(12))

        assert await punch_count(session, alice) == 1

    async def test_break_must_end_before_clock_out(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "break_start", at(10))

        with pytest.raises(ValidationError, match="Cannot clock out after break start"):
            await service.record_punch(alice.employee_id, "clock_out", at(11))

    async def test_lunch_start_twice_rejected(self, service, session, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "lunch_start", at(12))

        # Outside the duplicate window, so only the sequence rule applies
        with pytest.raises(ValidationError, match="Cannot lunch start after lunch start"):
            await service.record_punch(alice.employee_id, "lunch_start", at(12, 10))

        assert await punch_count(session, alice) == 2

    async def test_backdated_punch_breaking_day_rejected(self, service, session, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "clock_out", at(17))

        with pytest.raises(ValidationError, match="invalid punch sequence on 2024-01-15"):
            await service.record_punch(alice.employee_id, "clock_in", at(12))

        assert await punch_count(session, alice) == 2
        summary = await service.get_day_summary(alice.employee_id, DAY.date(), now=at(18))
        assert summary.worked_hours == Decimal("8.00")

    async def test_backdated_lunch_inside_closed_shift_rejected(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "clock_out", at(17))

        with pytest.raises(ValidationError, match="Cannot clock out after lunch start"):
            await service.record_punch(alice.employee_id, "lunch_start", at(12))

    async def test_clock_in_again_after_clock_out(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(6))
        await service.record_punch(alice.employee_id, "clock_out", at(10))
        punch = await service.record_punch(alice.employee_id, "clock_in", at(17))

        assert punch.punch_type == "clock_in"

    async def test_new_day_starts_fresh(self, service, alice):
        """An open session yesterday does not block today's clock in."""
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        punch = await service.record_punch(
            alice.employee_id, "clock_in", datetime(2024, 1, 16, 9, 0)
        )

        assert punch.punched_at == datetime(2024, 1, 16, 9, 0)

    async def test_legacy_upper_case_type(self, service, alice):
        punch = await service.record_punch(alice.employee_id, "CLOCK_IN", at(9))
        assert punch.punch_type == "clock_in"

    async def test_unknown_type(self, service, alice):
        with pytest.raises(ValidationError, match="Invalid punch type"):
            await service.record_punch(alice.employee_id, "nap_start", at(9))


class TestDuplicateAndShiftRules:
    """Test the duplicate window and minimum shift length."""

    async def test_duplicate_within_window_rejected(self, service, session, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "clock_out", at(17))
        await service.record_punch(alice.employee_id, "clock_in", at(18))

        with pytest.raises(ValidationError, match="Duplicate punch detected"):
            await service.record_punch(alice.employee_id, "clock_in", at(18, 1))

        assert await punch_count(session, alice) == 3

    async def test_same_type_outside_window_is_not_a_duplicate(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "break_start", at(10))
        await service.record_punch(alice.employee_id, "break_end", at(10, 1))
        punch = await service.record_punch(alice.employee_id, "break_start", at(10, 3))

        assert punch.punch_type == "break_start"

    async def test_clock_out_within_thirty_minutes_rejected(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))

        with pytest.raises(ValidationError, match="within 30 minutes"):
            await service.record_punch(alice.employee_id, "clock_out", at(9, 29))

    async def test_clock_out_at_thirty_minutes_accepted(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        punch = await service.record_punch(alice.employee_id, "clock_out", at(9, 30))

        assert punch.punch_type == "clock_out"


class TestEmployeeScope:
    """Test employee lookup rules."""

    async def test_unknown_employee(self, service, employees):
        with pytest.raises(NotFoundError):
            await service.record_punch(uuid4(), "clock_in", at(9))

    async def test_inactive_employee_cannot_punch(self, service, employees):
        dave = employees[3]
        with pytest.raises(NotFoundError):
            await service.record_punch(dave.employee_id, "clock_in", at(9))

    async def test_other_company_is_not_found(self, service, alice):
        with pytest.raises(NotFoundError):
            await service.record_punch(
                alice.employee_id, "clock_in", at(9), company_id=uuid4()
            )


class TestMealBreakReminder:
    """Test the meal-break reminder after accepted punches."""

    async def test_reminder_after_threshold_without_lunch(self, service, notifier, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "break_start", at(14))

        assert len(notifier.meal_breaks) == 1
        reminder = notifier.meal_breaks[0]
        assert reminder.employee_id == alice.employee_id
        assert reminder.first_clock_in == at(9)
        assert reminder.hours_worked == Decimal("5.00")

    async def test_no_reminder_before_threshold(self, service, notifier, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "break_start", at(13, 59))

        assert notifier.meal_breaks == []

    async def test_no_reminder_once_lunch_taken(self, service, notifier, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "lunch_start", at(12))
        await service.record_punch(alice.employee_id, "lunch_end", at(12, 30))
        await service.record_punch(alice.employee_id, "clock_out", at(17))

        assert notifier.meal_breaks == []

    async def test_notifier_failure_does_not_undo_punch(
        self, session_factory, session, settings, alice
    ):
        service = PunchService(
            session_factory,
            dispatcher=NotificationDispatcher([FailingNotifier()]),
            settings=settings,
        )
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        punch = await service.record_punch(alice.employee_id, "clock_out", at(15))

        assert punch.punch_type == "clock_out"
        assert await punch_count(session, alice) == 2

    async def test_meal_break_check_error_does_not_fail_recorded_punch(
        self, service, session, alice, caplog, monkeypatch
    ):
        async def broken_check(*args):
            raise ValueError("'shift_swap' is not a valid PunchType")

        monkeypatch.setattr(service, "_check_meal_break", broken_check)

        with caplog.at_level(logging.ERROR, logger="shiftpay.services.punch_service"):
            punch = await service.record_punch(alice.employee_id, "clock_in", at(9))

        assert punch.punch_type == "clock_in"
        assert await punch_count(session, alice) == 1
        assert "Meal break check failed" in caplog.text


class TestCorrections:
    """Test administrative punch corrections."""

    async def test_correct_timestamp(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        clock_out = await service.record_punch(alice.employee_id, "clock_out", at(17))

        corrected = await service.correct_punch(
            clock_out.punch_id, punched_at=at(17, 30), notes="Forgot to punch out"
        )

        assert corrected.punched_at == at(17, 30)
        assert corrected.notes == "Forgot to punch out"
        assert corrected.corrected_at is not None

        summary = await service.get_day_summary(alice.employee_id, DAY.date(), now=at(20))
        assert summary.worked_hours == Decimal("8.50")

    async def test_correction_breaking_sequence_rejected(self, service, session, alice):
        clock_in = await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "clock_out", at(17))

        with pytest.raises(ValidationError, match="invalid punch sequence on 2024-01-15"):
            await service.correct_punch(clock_in.punch_id, punched_at=at(18))

        unchanged = await service.get_punch(clock_in.punch_id)
        assert unchanged.punched_at == at(9)
        assert unchanged.corrected_at is None

    async def test_correction_moving_to_another_day_revalidates_both(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        clock_out = await service.record_punch(alice.employee_id, "clock_out", at(17))

        with pytest.raises(ValidationError):
            await service.correct_punch(
                clock_out.punch_id, punched_at=datetime(2024, 1, 16, 17, 0)
            )

    async def test_notes_only(self, service, alice):
        clock_in = await service.record_punch(alice.employee_id, "clock_in", at(9))

        corrected = await service.correct_punch(clock_in.punch_id, notes="Front door")

        assert corrected.notes == "Front door"
        assert corrected.punched_at == at(9)

    async def test_empty_correction(self, service, alice):
        clock_in = await service.record_punch(alice.employee_id, "clock_in", at(9))

        with pytest.raises(ValidationError, match="No valid fields to update"):
            await service.correct_punch(clock_in.punch_id)


class TestQueries:
    """Test punch reads."""

    async def test_list_punches_most_recent_first(self, service, session, alice):
        await add_punches(
            session,
            alice,
            [("clock_in", at(9)), ("clock_out", at(17)), ("clock_in", at(9, day=datetime(2024, 1, 16)))],
        )

        all_punches = await service.list_punches(alice.employee_id)
        assert [p.punched_at for p in all_punches] == [
            datetime(2024, 1, 16, 9, 0),
            at(17),
            at(9),
        ]

        one_day = await service.list_punches(
            alice.employee_id, start_date=date(2024, 1, 15), end_date=date(2024, 1, 15)
        )
        assert len(one_day) == 2

        clock_outs = await service.list_punches(alice.employee_id, punch_type="CLOCK_OUT")
        assert [p.punch_type for p in clock_outs] == ["clock_out"]

    async def test_current_status(self, service, alice):
        await service.record_punch(alice.employee_id, "clock_in", at(9))
        await service.record_punch(alice.employee_id, "lunch_start", at(12))

        status = await service.get_current_status(alice.employee_id, now=at(12, 15))

        assert status.is_clocked_in is True
        assert status.is_on_break is True
        assert status.current_session_hours == Decimal("3.00")
        assert status.allowed_next == ["lunch_end"]

    async def test_current_status_without_punches(self, service, alice):
        status = await service.get_current_status(alice.employee_id, now=at(8))

        assert status.last_punch is None
        assert status.is_clocked_in is False
        assert status.allowed_next == ["clock_in"]

    async def test_store_failure_is_persistence_error(self, service, engine, alice):
        async with engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE punch")

        with pytest.raises(PersistenceError):
            await service.record_punch(alice.employee_id, "clock_in", at(9))


LEGAL_DAYS = [
    pytest.param(
        [
            ("clock_in", at(9)),
            ("lunch_start", at(13)),
            ("lunch_end", at(13, 30)),
            ("clock_out", at(17, 30)),
        ],
        Decimal("8.00"),
        id="standard",
    ),
    pytest.param(
        [("clock_in", at(6)), ("clock_out", at(10)), ("clock_in", at(14)), ("clock_out", at(22))],
        Decimal("12.00"),
        id="split-shift",
    ),
    pytest.param(
        [
            ("clock_in", at(8)),
            ("break_start", at(10)),
            ("break_end", at(10, 15)),
            ("lunch_start", at(12)),
            ("lunch_end", at(12, 45)),
            ("break_start", at(15)),
            ("break_end", at(15, 10)),
            ("clock_out", at(18)),
        ],
        Decimal("8.83"),
        id="breaks-and-lunch",
    ),
    pytest.param(
        [("clock_in", at(9)), ("clock_out", at(9, 30))],
        Decimal("0.50"),
        id="minimum-shift",
    ),
    pytest.param(
        [("clock_in", at(9)), ("lunch_start", at(12)), ("lunch_end", at(12, 30))],
        Decimal("3.00"),
        id="open-session",
    ),
]


class TestWeekSummary:
    """Test weekly hours and the overtime split."""

    @pytest.mark.parametrize("punches, expected_hours", LEGAL_DAYS)
    async def test_legal_day_hours_split_consistently(
        self, service, alice, punches, expected_hours
    ):
        for punch_type, punched_at in punches:
            await service.record_punch(alice.employee_id, punch_type, punched_at)

        summary = await service.get_week_summary(alice.employee_id, DAY.date())

        assert summary.total_hours == expected_hours
        assert summary.total_hours >= 0
        assert summary.regular_hours >= 0
        assert summary.overtime_hours >= 0
        assert summary.regular_hours + summary.overtime_hours == summary.total_hours

    async def test_overtime_past_forty_hours(self, service, session, alice):
        week = []
        for offset in range(5):
            week += standard_day(datetime(2024, 1, 15 + offset))
        week += [("clock_in", datetime(2024, 1, 20, 8)), ("clock_out", datetime(2024, 1, 20, 12))]
        # Next Monday belongs to the following week
        week += standard_day(datetime(2024, 1, 22))
        await add_punches(session, alice, week)

        summary = await service.get_week_summary(alice.employee_id, date(2024, 1, 15))

        assert summary.week_end == date(2024, 1, 21)
        assert summary.days_worked == 6
        assert summary.punch_count == 22
        assert summary.total_hours == Decimal("44.00")
        assert summary.regular_hours == Decimal("40.00")
        assert summary.overtime_hours == Decimal("4.00")

    async def test_empty_week(self, service, alice):
        summary = await service.get_week_summary(alice.employee_id, date(2024, 1, 15))

        assert summary.days_worked == 0
        assert summary.total_hours == Decimal("0")
        assert summary.overtime_hours == Decimal("0")

    async def test_other_company_is_not_found(self, service, alice):
        with pytest.raises(NotFoundError):
            await service.get_week_summary(
                alice.employee_id, date(2024, 1, 15), company_id=uuid4()
            )
