"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shiftpay.config import Settings, get_settings
from shiftpay.database import init_db
from shiftpay.services import (
    LoggingNotifier,
    NotificationDispatcher,
    PayrollRunService,
    PayStubService,
    PunchService,
)

ACCESS_ROLES = ("admin", "manager", "employee")
PRIVILEGED_ROLES = ("admin", "manager")

_dispatcher = NotificationDispatcher([LoggingNotifier()])


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the application's session factory."""
    return init_db()[1]


def get_dispatcher() -> NotificationDispatcher:
    return _dispatcher


def get_app_settings() -> Settings:
    return get_settings()


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


async def get_db_session(
    session_factory: SessionFactory,
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with session_factory() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


# ============================================================================
# Caller identity
# ============================================================================


@dataclass(frozen=True)
class Caller:
    """Identity of the authenticated caller, as forwarded by the gateway."""

    company_id: UUID
    user_id: UUID
    role: str

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def ensure_can_access(self, employee_id: UUID) -> None:
        """Employees may only see their own records."""
        if not self.is_privileged and employee_id != self.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )


def _parse_uuid_header(value: str | None, name: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} header is required",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format",
        )


async def get_caller(
    x_company_id: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Caller:
    """Extract caller identity from headers."""
    company_id = _parse_uuid_header(x_company_id, "X-Company-ID")
    user_id = _parse_uuid_header(x_user_id, "X-User-ID")
    role = (x_user_role or "").strip().lower()
    if role not in ACCESS_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-Role",
        )
    return Caller(company_id=company_id, user_id=user_id, role=role)


CurrentCaller = Annotated[Caller, Depends(get_caller)]


async def require_privileged(caller: CurrentCaller) -> Caller:
    """Allow only admins and managers."""
    if not caller.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return caller


PrivilegedCaller = Annotated[Caller, Depends(require_privileged)]


# ============================================================================
# Services
# ============================================================================


def get_punch_service(
    session_factory: SessionFactory, dispatcher: Dispatcher, settings: AppSettings
) -> PunchService:
    return PunchService(session_factory, dispatcher=dispatcher, settings=settings)


def get_payroll_service(
    session_factory: SessionFactory, dispatcher: Dispatcher, settings: AppSettings
) -> PayrollRunService:
    return PayrollRunService(session_factory, dispatcher=dispatcher, settings=settings)


def get_pay_stub_service(session_factory: SessionFactory) -> PayStubService:
    return PayStubService(session_factory)


PunchServiceDep = Annotated[PunchService, Depends(get_punch_service)]
PayrollServiceDep = Annotated[PayrollRunService, Depends(get_payroll_service)]
PayStubServiceDep = Annotated[PayStubService, Depends(get_pay_stub_service)]
