"""Payroll run API endpoints."""

import asyncio
import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from shiftpay.api.dependencies import (
    AppSettings,
    PayrollServiceDep,
    PayStubServiceDep,
    PrivilegedCaller,
)
from shiftpay.api.schemas import (
    CalculationResponse,
    ErrorResponse,
    PayrollRunCreate,
    PayrollRunResponse,
    PayrollRunStatusUpdate,
    PayStubResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


# ============================================================================
# Payroll Run CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_payroll_run(
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
    payload: PayrollRunCreate,
) -> PayrollRunResponse:
    """Create a new payroll run in draft status."""
    payroll_run = await service.create(
        company_id=caller.company_id,
        period_start=payload.period_start,
        period_end=payload.period_end,
        pay_date=payload.pay_date,
        created_by=caller.user_id,
        description=payload.description,
    )
    return PayrollRunResponse.model_validate(payroll_run)


@router.get("", response_model=list[PayrollRunResponse])
async def list_payroll_runs(
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[PayrollRunResponse]:
    """List payroll runs for the caller's company."""
    runs = await service.list_runs(
        caller.company_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )
    return [PayrollRunResponse.model_validate(r) for r in runs]


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
) -> PayrollRunResponse:
    """Get payroll run details."""
    payroll_run = await service.get(payroll_run_id, company_id=caller.company_id)
    return PayrollRunResponse.model_validate(payroll_run)


@router.delete(
    "/{payroll_run_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_payroll_run(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
) -> Response:
    """Delete a draft payroll run."""
    await service.delete(payroll_run_id, company_id=caller.company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Payroll Run Lifecycle
# ============================================================================


@router.post(
    "/{payroll_run_id}/calculate",
    response_model=CalculationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def calculate_payroll_run(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
) -> CalculationResponse:
    """Preview pay for every active employee. Nothing is saved."""
    calculation = await service.calculate(payroll_run_id, company_id=caller.company_id)
    return CalculationResponse.model_validate(calculation)


@router.post(
    "/{payroll_run_id}/process",
    response_model=PayrollRunResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def process_payroll_run(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
    settings: AppSettings,
) -> PayrollRunResponse:
    """Create pay stubs for every active employee and complete the run."""
    try:
        payroll_run = await asyncio.wait_for(
            service.process(
                payroll_run_id,
                processed_by=caller.user_id,
                company_id=caller.company_id,
            ),
            timeout=settings.process_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(
            "Payroll run %s processing timed out after %ss",
            payroll_run_id,
            settings.process_timeout_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Payroll processing timed out; check the run status before retrying",
        )
    return PayrollRunResponse.model_validate(payroll_run)


@router.patch(
    "/{payroll_run_id}/status",
    response_model=PayrollRunResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_payroll_run_status(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    service: PayrollServiceDep,
    payload: PayrollRunStatusUpdate,
) -> PayrollRunResponse:
    """Change a payroll run's status (cancel, mark failed)."""
    payroll_run = await service.update_status(
        payroll_run_id,
        payload.status,
        updated_by=caller.user_id,
        company_id=caller.company_id,
    )
    return PayrollRunResponse.model_validate(payroll_run)


@router.get(
    "/{payroll_run_id}/pay-stubs",
    response_model=list[PayStubResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_payroll_run_pay_stubs(
    payroll_run_id: UUID,
    caller: PrivilegedCaller,
    stubs: PayStubServiceDep,
) -> list[PayStubResponse]:
    """List the pay stubs created by processing this run."""
    pay_stubs = await stubs.list_for_run(payroll_run_id, company_id=caller.company_id)
    return [PayStubResponse.model_validate(s) for s in pay_stubs]
