"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned for every handled failure."""

    detail: str
    code: str


# ============================================================================
# Punch schemas
# ============================================================================


class PunchCreate(BaseModel):
    """Schema for recording a punch. Defaults to the caller's own clock."""

    punch_type: str
    employee_id: UUID | None = None
    punched_at: datetime | None = None
    notes: str | None = None
    latitude: Decimal | None = Field(default=None, ge=-90, le=90)
    longitude: Decimal | None = Field(default=None, ge=-180, le=180)


class PunchCorrection(BaseModel):
    """Schema for an administrative punch correction."""

    punched_at: datetime | None = None
    notes: str | None = None


class PunchResponse(BaseModel):
    """Schema for punch response."""

    model_config = ConfigDict(from_attributes=True)

    punch_id: UUID
    employee_id: UUID
    punch_type: str
    punched_at: datetime
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    notes: str | None = None
    ip_address: str | None = None
    created_at: datetime
    corrected_at: datetime | None = None


class DaySummaryResponse(BaseModel):
    """Schema for one day's worked-time summary."""

    model_config = ConfigDict(from_attributes=True)

    work_date: date | None = None
    worked_minutes: Decimal
    worked_hours: Decimal
    break_minutes: Decimal
    punch_count: int
    sessions: int
    is_clocked_in: bool
    is_on_break: bool
    current_session_minutes: Decimal
    current_session_hours: Decimal
    first_clock_in: datetime | None = None
    last_clock_out: datetime | None = None


class WeekSummaryResponse(BaseModel):
    """Schema for seven days of worked time."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    week_start: date
    week_end: date
    days_worked: int
    punch_count: int
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal


class PunchStatusResponse(BaseModel):
    """Schema for an employee's live clock status."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    last_punch: PunchResponse | None = None
    is_clocked_in: bool
    is_on_break: bool
    current_session_minutes: Decimal
    current_session_hours: Decimal
    allowed_next: list[str]


# ============================================================================
# Payroll run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for creating a new payroll run."""

    period_start: date
    period_end: date
    pay_date: date
    description: str | None = None


class PayrollRunStatusUpdate(BaseModel):
    """Schema for an administrative status change."""

    status: str


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    company_id: UUID
    period_start: date
    period_end: date
    pay_date: date
    description: str | None = None
    status: str
    total_cost: Decimal
    created_by: UUID | None = None
    updated_by: UUID | None = None
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class DeductionsResponse(BaseModel):
    """Itemized withholding."""

    model_config = ConfigDict(from_attributes=True)

    federal_tax: Decimal
    state_tax: Decimal
    social_security: Decimal
    medicare: Decimal
    total: Decimal


class PayComputationResponse(BaseModel):
    """Schema for one employee's previewed pay."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str | None = None
    hourly_rate: Decimal
    overtime_rate: Decimal
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    deductions: DeductionsResponse
    net_pay: Decimal
    work_days: int


class RunTotalsResponse(BaseModel):
    """Run-wide totals."""

    model_config = ConfigDict(from_attributes=True)

    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    total_hours: Decimal
    total_overtime_hours: Decimal


class CalculationResponse(BaseModel):
    """Schema for a payroll preview."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    company_id: UUID
    period_start: date
    period_end: date
    employees: list[PayComputationResponse]
    totals: RunTotalsResponse


# ============================================================================
# Pay stub schemas
# ============================================================================


class PayStubResponse(BaseModel):
    """Schema for pay stub response."""

    model_config = ConfigDict(from_attributes=True)

    pay_stub_id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    regular_hours: Decimal
    overtime_hours: Decimal
    hourly_rate: Decimal
    overtime_rate: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    federal_tax: Decimal
    state_tax: Decimal
    social_security: Decimal
    medicare: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    pdf_reference: str | None = None
    created_at: datetime


class PdfAttach(BaseModel):
    """Schema for attaching a rendered PDF."""

    pdf_reference: str = Field(min_length=1)


class YearToDateResponse(BaseModel):
    """Schema for an employee's year-to-date totals."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    year: int
    stub_count: int
    regular_hours: Decimal
    overtime_hours: Decimal
    gross_pay: Decimal
    federal_tax: Decimal
    state_tax: Decimal
    social_security: Decimal
    medicare: Decimal
    total_deductions: Decimal
    net_pay: Decimal


class MonthlyTotalsResponse(BaseModel):
    """Schema for one month of an employee's pay."""

    model_config = ConfigDict(from_attributes=True)

    month: int
    month_name: str
    pay_periods: int
    total_hours: Decimal
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
