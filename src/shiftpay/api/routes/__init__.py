"""API routes."""

from shiftpay.api.routes.health import router as health_router
from shiftpay.api.routes.pay_stubs import router as pay_stubs_router
from shiftpay.api.routes.payroll_runs import router as payroll_runs_router
from shiftpay.api.routes.punches import router as punches_router

__all__ = ["health_router", "pay_stubs_router", "payroll_runs_router", "punches_router"]
