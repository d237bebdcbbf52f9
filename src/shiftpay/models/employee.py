"""Employee model."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.company import Company, JobRole
    from shiftpay.models.punch import Punch


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    job_role_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("job_role.job_role_id", ondelete="SET NULL"),
        nullable=True,
    )
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    access_role: Mapped[str] = mapped_column(String, nullable=False, default="employee")
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    overtime_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "access_role IN ('admin', 'manager', 'employee')",
            name="employee_access_role_check",
        ),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="employees")
    job_role: Mapped[JobRole | None] = relationship()
    punches: Mapped[list[Punch]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    def effective_hourly_rate(self) -> Decimal:
        """Own rate, else the job role's default, else zero."""
        if self.hourly_rate:
            return self.hourly_rate
        if self.job_role is not None and self.job_role.hourly_rate:
            return self.job_role.hourly_rate
        return Decimal("0")

    def effective_overtime_rate(self) -> Decimal | None:
        """Own overtime rate, else the job role's.

        None means the pay calculator falls back to 1.5x the hourly rate.
        """
        if self.overtime_rate:
            return self.overtime_rate
        if self.job_role is not None and self.job_role.overtime_rate:
            return self.job_role.overtime_rate
        return None
