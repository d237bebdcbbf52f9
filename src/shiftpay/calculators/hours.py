"""Hours calculator: worked time from an ordered sequence of punches."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from shiftpay.calculators.types import CENTS, ZERO, DaySummary, PunchLike, PunchType

SECONDS_PER_MINUTE = Decimal(60)
MINUTES_PER_HOUR = Decimal(60)


def _minutes(delta: timedelta) -> Decimal:
    return Decimal(str(delta.total_seconds())) / SECONDS_PER_MINUTE


def _to_hours(minutes: Decimal) -> Decimal:
    return (minutes / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)


def _ordered(punches: Iterable[PunchLike]) -> list[PunchLike]:
    return sorted(punches, key=lambda p: p.punched_at)


class HoursCalculator:
    """Convert punches into worked hours net of lunch and break time.

    Scan order is by timestamp. A "clocked in since" marker is set on clock_in,
    accrues into worked time and clears on lunch/break start, is reset on
    lunch/break end, and accrues on clock_out which closes the session.
    Punches that arrive outside an accrual context are ignored so that
    malformed historical days still produce a figure.
    """

    @staticmethod
    def group_by_day(punches: Iterable[PunchLike]) -> dict[date, list[PunchLike]]:
        """Group punches by calendar day, each day in timestamp order."""
        days: dict[date, list[PunchLike]] = defaultdict(list)
        for punch in _ordered(punches):
            days[punch.punched_at.date()].append(punch)
        return dict(sorted(days.items()))

    @classmethod
    def summarize_day(
        cls,
        punches: Sequence[PunchLike],
        now: datetime | None = None,
    ) -> DaySummary:
        """Summarize one day. An open session only counts toward the live duration."""
        ordered = _ordered(punches)

        worked = ZERO
        break_minutes = ZERO
        sessions = 0
        marker: datetime | None = None
        in_session = False
        break_started: datetime | None = None
        first_clock_in: datetime | None = None
        last_clock_out: datetime | None = None
        # Accrual of the session still open at the end of the scan.
        open_accrued = ZERO

        for punch in ordered:
            try:
                punch_type = PunchType.parse(punch.punch_type)
            except ValueError:
                continue
            at = punch.punched_at

            if punch_type == PunchType.CLOCK_IN:
                marker = at
                in_session = True
                break_started = None
                open_accrued = ZERO
                if first_clock_in is None:
                    first_clock_in = at

            elif punch_type.starts_break:
                if marker is not None:
                    open_accrued += _minutes(at - marker)
                    marker = None
                    break_started = at

            elif punch_type.ends_break:
                if in_session and marker is None and break_started is not None:
                    break_minutes += _minutes(at - break_started)
                    marker = at
                    break_started = None

            elif punch_type == PunchType.CLOCK_OUT:
                if in_session:
                    if marker is not None:
                        open_accrued += _minutes(at - marker)
                    worked += open_accrued
                    sessions += 1
                    last_clock_out = at
                marker = None
                in_session = False
                break_started = None
                open_accrued = ZERO

        current_minutes = ZERO
        if in_session:
            current_minutes = open_accrued
            if marker is not None and now is not None and now > marker:
                current_minutes += _minutes(now - marker)

        return DaySummary(
            work_date=ordered[0].punched_at.date() if ordered else None,
            worked_minutes=worked.quantize(CENTS, rounding=ROUND_HALF_UP),
            worked_hours=_to_hours(worked),
            break_minutes=break_minutes.quantize(CENTS, rounding=ROUND_HALF_UP),
            punch_count=len(ordered),
            sessions=sessions,
            is_clocked_in=in_session,
            is_on_break=in_session and marker is None,
            current_session_minutes=current_minutes.quantize(CENTS, rounding=ROUND_HALF_UP),
            current_session_hours=_to_hours(current_minutes),
            first_clock_in=first_clock_in,
            last_clock_out=last_clock_out,
            last_punch_at=ordered[-1].punched_at if ordered else None,
        )

    @classmethod
    def day_hours(cls, punches: Sequence[PunchLike]) -> Decimal:
        """Completed hours worked for a single day, rounded to 2 dp."""
        return cls.summarize_day(punches).worked_hours

    @classmethod
    def range_hours(cls, punches: Iterable[PunchLike]) -> tuple[Decimal, int]:
        """Sum per-day hours over a date range.

        Returns (total_hours, days_with_punches).
        """
        days = cls.group_by_day(punches)
        total = sum((cls.day_hours(day) for day in days.values()), ZERO)
        return total, len(days)
