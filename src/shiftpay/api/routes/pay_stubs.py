"""Pay stub API endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Response, status

from shiftpay.api.dependencies import CurrentCaller, PayStubServiceDep, PrivilegedCaller
from shiftpay.api.schemas import (
    ErrorResponse,
    MonthlyTotalsResponse,
    PayStubResponse,
    PdfAttach,
    YearToDateResponse,
)

router = APIRouter(prefix="/pay-stubs", tags=["pay-stubs"])


@router.get("", response_model=list[PayStubResponse])
async def list_pay_stubs(
    caller: CurrentCaller,
    service: PayStubServiceDep,
    employee_id: UUID | None = None,
    year: int | None = None,
) -> list[PayStubResponse]:
    """List an employee's pay stubs, most recent first."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    stubs = await service.list_for_employee(
        employee_id, year=year, company_id=caller.company_id
    )
    return [PayStubResponse.model_validate(s) for s in stubs]


@router.get("/year-to-date", response_model=YearToDateResponse)
async def get_year_to_date(
    caller: CurrentCaller,
    service: PayStubServiceDep,
    employee_id: UUID | None = None,
    year: int | None = None,
) -> YearToDateResponse:
    """Sum an employee's completed pay stubs for a year."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    totals = await service.year_to_date(employee_id, year=year, company_id=caller.company_id)
    return YearToDateResponse.model_validate(totals)


@router.get("/monthly", response_model=list[MonthlyTotalsResponse])
async def get_monthly_statement(
    caller: CurrentCaller,
    service: PayStubServiceDep,
    employee_id: UUID | None = None,
    year: int | None = None,
) -> list[MonthlyTotalsResponse]:
    """Completed pay per month of a year, January through December."""
    employee_id = employee_id or caller.user_id
    caller.ensure_can_access(employee_id)
    months = await service.monthly_statement(
        employee_id, year=year, company_id=caller.company_id
    )
    return [MonthlyTotalsResponse.model_validate(m) for m in months]


@router.get(
    "/{pay_stub_id}",
    response_model=PayStubResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_stub(
    pay_stub_id: UUID,
    caller: CurrentCaller,
    service: PayStubServiceDep,
) -> PayStubResponse:
    """Get a pay stub."""
    stub = await service.get(pay_stub_id, company_id=caller.company_id)
    caller.ensure_can_access(stub.employee_id)
    return PayStubResponse.model_validate(stub)


@router.get(
    "/{pay_stub_id}/statement",
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_statement(
    pay_stub_id: UUID,
    caller: CurrentCaller,
    service: PayStubServiceDep,
) -> dict[str, Any]:
    """Statement data for PDF rendering."""
    view = await service.statement_view(pay_stub_id, company_id=caller.company_id)
    caller.ensure_can_access(UUID(view["employee"]["id"]))
    return view


@router.put(
    "/{pay_stub_id}/pdf",
    response_model=PayStubResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def attach_pay_stub_pdf(
    pay_stub_id: UUID,
    caller: PrivilegedCaller,
    service: PayStubServiceDep,
    payload: PdfAttach,
) -> PayStubResponse:
    """Record the storage reference of a rendered statement PDF."""
    stub = await service.attach_pdf(
        pay_stub_id, payload.pdf_reference, company_id=caller.company_id
    )
    return PayStubResponse.model_validate(stub)


@router.delete(
    "/{pay_stub_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_pay_stub(
    pay_stub_id: UUID,
    caller: PrivilegedCaller,
    service: PayStubServiceDep,
) -> Response:
    """Delete a pay stub of a run that never completed."""
    await service.delete(pay_stub_id, company_id=caller.company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
