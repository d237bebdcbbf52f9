"""Company and job role models."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftpay.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shiftpay.models.employee import Employee
    from shiftpay.models.payroll import PayrollRun


class Company(Base, TimestampMixin):
    """Employer owning employees and payroll runs."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="company")
    job_roles: Mapped[list[JobRole]] = relationship(back_populates="company")
    payroll_runs: Mapped[list[PayrollRun]] = relationship(back_populates="company")


class JobRole(Base, TimestampMixin):
    """Job role carrying default pay rates for employees without their own."""

    __tablename__ = "job_role"

    job_role_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=Decimal("0")
    )
    overtime_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="job_role_company_name_unique"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="job_roles")
