"""
Ledger API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .accounts import router as accounts_router
from .operations import router as operations_router
from .rates import router as rates_router
from .admin import router as admin_router
from .vault import router as vault_router
from .. import __version__
from ..errors import (
    ArithmeticOverflow, InsufficientBalance, InvalidAmount, LedgerError,
    RateIncreaseRejected, RedeemTransferFailed, Unauthorized
)


ERROR_STATUS = {
    Unauthorized: 403,
    InsufficientBalance: 409,
    RateIncreaseRejected: 409,
    RedeemTransferFailed: 502,
    InvalidAmount: 400,
    ArithmeticOverflow: 400,
}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Map ledger errors onto HTTP status codes"""
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Accrue Ledger API",
        description="Interest-accruing balance ledger",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(operations_router, prefix="/ledger", tags=["Ledger"])
    app.include_router(rates_router, prefix="/rates", tags=["Rates"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])
    app.include_router(vault_router, prefix="/vault", tags=["Vault"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "accrue_ledger_api",
            "version": __version__
        }

    return app
