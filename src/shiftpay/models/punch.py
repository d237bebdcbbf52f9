"""Time-clock punch model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.employee import Employee


class Punch(Base, TimestampMixin):
    """Single clock event. Only timestamp and notes change, through corrections."""

    __tablename__ = "punch"

    punch_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    punch_type: Mapped[str] = mapped_column(String, nullable=False)
    punched_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    latitude: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    longitude: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    corrected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "punch_type IN ('clock_in', 'clock_out', 'lunch_start', 'lunch_end', "
            "'break_start', 'break_end')",
            name="punch_type_check",
        ),
        Index("ix_punch_employee_punched_at", "employee_id", "punched_at"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="punches")
