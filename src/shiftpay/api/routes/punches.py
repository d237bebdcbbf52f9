"""Time punch API endpoints."""

from datetime import date, datetime, timedelta
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from shiftpay.api.dependencies import CurrentCaller, PrivilegedCaller, PunchServiceDep
from shiftpay.api.schemas import (
    DaySummaryResponse,
    ErrorResponse,
    PunchCorrection,
    PunchCreate,
    PunchResponse,
    PunchStatusResponse,
    WeekSummaryResponse,
)

router = APIRouter(prefix="/punches", tags=["punches"])


@router.post(
    "",
    response_model=PunchResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def record_punch(
    request: Request,
    caller: CurrentCaller,
    service: PunchServiceDep,
    payload: PunchCreate,
) -> PunchResponse:
    """Record a punch for the caller, or for another employee (managers only)."""
    employee_id = payload.employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    if payload.punched_at is not None and not caller.is_privileged:
        # Employees punch at the server's clock; backdating is a correction.
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    punch = await service.record_punch(
        employee_id=employee_id,
        punch_type=payload.punch_type,
        punched_at=payload.punched_at,
        notes=payload.notes,
        latitude=payload.latitude,
        longitude=payload.longitude,
        ip_address=request.client.host if request.client else None,
        company_id=caller.company_id,
    )
    return PunchResponse.model_validate(punch)


@router.get(
    "",
    response_model=list[PunchResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_punches(
    caller: CurrentCaller,
    service: PunchServiceDep,
    employee_id: UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    punch_type: str | None = None,
) -> list[PunchResponse]:
    """List punches for an employee, most recent first."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    punches = await service.list_punches(
        employee_id,
        start_date=start_date,
        end_date=end_date,
        punch_type=punch_type,
        company_id=caller.company_id,
    )
    return [PunchResponse.model_validate(p) for p in punches]


@router.get(
    "/summary",
    response_model=DaySummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_day_summary(
    caller: CurrentCaller,
    service: PunchServiceDep,
    day: Annotated[date | None, Query()] = None,
    employee_id: UUID | None = None,
) -> DaySummaryResponse:
    """Worked and break time for one day (defaults to today)."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    summary = await service.get_day_summary(
        employee_id,
        day or datetime.now().date(),
        company_id=caller.company_id,
    )
    return DaySummaryResponse.model_validate(summary)


@router.get(
    "/week",
    response_model=WeekSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_week_summary(
    caller: CurrentCaller,
    service: PunchServiceDep,
    week_start: Annotated[date | None, Query()] = None,
    employee_id: UUID | None = None,
) -> WeekSummaryResponse:
    """Hours for seven days from week_start (defaults to this week's Monday)."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    if week_start is None:
        today = datetime.now().date()
        week_start = today - timedelta(days=today.weekday())
    summary = await service.get_week_summary(
        employee_id, week_start, company_id=caller.company_id
    )
    return WeekSummaryResponse.model_validate(summary)


@router.get(
    "/status",
    response_model=PunchStatusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_current_status(
    caller: CurrentCaller,
    service: PunchServiceDep,
    employee_id: UUID | None = None,
) -> PunchStatusResponse:
    """Whether the employee is clocked in and which punches may come next."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    punch_status = await service.get_current_status(employee_id, company_id=caller.company_id)
    return PunchStatusResponse.model_validate(punch_status)


@router.get(
    "/{punch_id}",
    response_model=PunchResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_punch(
    punch_id: UUID,
    caller: CurrentCaller,
    service: PunchServiceDep,
) -> PunchResponse:
    """Get a single punch."""
    punch = await service.get_punch(punch_id, company_id=caller.company_id)
    caller.ensure_can_access(punch.employee_id)
    return PunchResponse.model_validate(punch)


@router.patch(
    "/{punch_id}",
    response_model=PunchResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def correct_punch(
    punch_id: UUID,
    caller: PrivilegedCaller,
    service: PunchServiceDep,
    payload: PunchCorrection,
) -> PunchResponse:
    """Correct a punch timestamp and/or notes."""
    punch = await service.correct_punch(
        punch_id,
        punched_at=payload.punched_at,
        notes=payload.notes,
        company_id=caller.company_id,
    )
    return PunchResponse.model_validate(punch)
