"""Tests for hours calculation from punches."""

from datetime import datetime
from decimal import Decimal

from shiftpay.calculators.hours import HoursCalculator
from shiftpay.calculators.types import PunchRecord


def punches(*pairs: tuple[str, str]) -> list[PunchRecord]:
    return [PunchRecord(punch_type=t, punched_at=datetime.fromisoformat(at)) for t, at in pairs]


class TestDayHours:
    """Test single-day worked hours."""

    def test_full_day_with_lunch(self):
        """09:00 in, 13:00-13:30 lunch, 17:30 out is exactly 8 hours."""
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("lunch_start", "2024-01-15T13:00"),
            ("lunch_end", "2024-01-15T13:30"),
            ("clock_out", "2024-01-15T17:30"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("8.00")

    def test_input_order_does_not_matter(self):
        day = punches(
            ("clock_out", "2024-01-15T17:30"),
            ("lunch_end", "2024-01-15T13:30"),
            ("clock_in", "2024-01-15T09:00"),
            ("lunch_start", "2024-01-15T13:00"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("8.00")

    def test_breaks_and_lunch_are_excluded(self):
        day = punches(
            ("clock_in", "2024-01-15T08:00"),
            ("break_start", "2024-01-15T10:00"),
            ("break_end", "2024-01-15T10:15"),
            ("lunch_start", "2024-01-15T12:00"),
            ("lunch_end", "2024-01-15T12:45"),
            ("clock_out", "2024-01-15T16:00"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("7.00")

    def test_split_shift(self):
        day = punches(
            ("clock_in", "2024-01-15T06:00"),
            ("clock_out", "2024-01-15T10:00"),
            ("clock_in", "2024-01-15T17:00"),
            ("clock_out", "2024-01-15T21:30"),
        )
        summary = HoursCalculator.summarize_day(day)
        assert summary.worked_hours == Decimal("8.50")
        assert summary.sessions == 2
        assert summary.is_clocked_in is False

    def test_rounds_half_up_to_two_places(self):
        """50 minutes is 0.8333... hours."""
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("clock_out", "2024-01-15T09:50"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("0.83")

    def test_no_punches(self):
        assert HoursCalculator.day_hours([]) == Decimal("0.00")

    def test_open_session_contributes_nothing(self):
        """A day still clocked in at end of input counts zero completed hours."""
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("lunch_start", "2024-01-15T12:00"),
            ("lunch_end", "2024-01-15T12:30"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("0.00")

    def test_stray_punches_are_ignored(self):
        """Lunch end without an open lunch and clock out without clock in add nothing."""
        day = punches(
            ("lunch_end", "2024-01-15T08:00"),
            ("clock_out", "2024-01-15T08:30"),
            ("clock_in", "2024-01-15T09:00"),
            ("clock_out", "2024-01-15T11:00"),
        )
        assert HoursCalculator.day_hours(day) == Decimal("2.00")


class TestDaySummary:
    """Test the live day summary."""

    def test_current_session_while_clocked_in(self):
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("break_start", "2024-01-15T10:00"),
            ("break_end", "2024-01-15T10:15"),
        )
        summary = HoursCalculator.summarize_day(day, now=datetime(2024, 1, 15, 11, 15))

        assert summary.is_clocked_in is True
        assert summary.is_on_break is False
        assert summary.worked_hours == Decimal("0.00")
        assert summary.current_session_minutes == Decimal("120.00")
        assert summary.current_session_hours == Decimal("2.00")
        assert summary.break_minutes == Decimal("15.00")

    def test_on_break(self):
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("lunch_start", "2024-01-15T12:00"),
        )
        summary = HoursCalculator.summarize_day(day, now=datetime(2024, 1, 15, 12, 20))

        assert summary.is_clocked_in is True
        assert summary.is_on_break is True
        assert summary.current_session_hours == Decimal("3.00")

    def test_completed_day(self):
        day = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("lunch_start", "2024-01-15T13:00"),
            ("lunch_end", "2024-01-15T13:30"),
            ("clock_out", "2024-01-15T17:30"),
        )
        summary = HoursCalculator.summarize_day(day, now=datetime(2024, 1, 15, 20, 0))

        assert summary.worked_minutes == Decimal("480.00")
        assert summary.break_minutes == Decimal("30.00")
        assert summary.punch_count == 4
        assert summary.first_clock_in == datetime(2024, 1, 15, 9, 0)
        assert summary.last_clock_out == datetime(2024, 1, 15, 17, 30)
        assert summary.current_session_minutes == Decimal("0.00")


class TestRangeHours:
    """Test multi-day totals."""

    def test_sums_each_day(self):
        week = punches(
            ("clock_in", "2024-01-15T09:00"),
            ("clock_out", "2024-01-15T17:00"),
            ("clock_in", "2024-01-16T09:00"),
            ("lunch_start", "2024-01-16T13:00"),
            ("lunch_end", "2024-01-16T13:30"),
            ("clock_out", "2024-01-16T17:30"),
            ("clock_in", "2024-01-17T09:00"),
        )
        total, days = HoursCalculator.range_hours(week)

        assert total == Decimal("16.00")
        assert days == 3

    def test_session_across_midnight_is_split_per_day(self):
        """Each calendar day is scanned on its own."""
        night = punches(
            ("clock_in", "2024-01-15T22:00"),
            ("clock_out", "2024-01-16T06:00"),
        )
        total, days = HoursCalculator.range_hours(night)

        assert total == Decimal("0.00")
        assert days == 2

    def test_group_by_day_orders_days_and_punches(self):
        mixed = punches(
            ("clock_out", "2024-01-16T17:00"),
            ("clock_in", "2024-01-15T09:00"),
            ("clock_in", "2024-01-16T09:00"),
        )
        grouped = HoursCalculator.group_by_day(mixed)

        assert [d.isoformat() for d in grouped] == ["2024-01-15", "2024-01-16"]
        assert [p.punch_type for p in grouped[datetime(2024, 1, 16).date()]] == [
            "clock_in",
            "clock_out",
        ]
