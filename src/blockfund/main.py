"""
FastAPI application entry point for the ledger gateway.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from blockfund.config import get_settings
from blockfund.ledger.router import router as ledger_router
from blockfund.ledger.state_machine import CampaignLedger
from blockfund.shared.exceptions import AppError, CampaignNotFoundError, LedgerRejectionError
from blockfund.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info(
        "Ledger gateway starting",
        extra={"env": settings.app_env, "campaigns": app.state.ledger.get_campaign_count()},
    )

    yield

    logger.info("Ledger gateway shutdown complete")


def _error_body(exc: AppError) -> dict[str, object]:
    detail: dict[str, object] = {"code": exc.code, "message": exc.message}
    if isinstance(exc, LedgerRejectionError) and exc.campaign_id is not None:
        detail["campaign_id"] = exc.campaign_id
    return {"detail": detail}


def create_app(ledger: CampaignLedger | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="BlockFund Ledger Gateway",
        description="HTTP access to the authoritative campaign ledger",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.ledger = ledger or CampaignLedger()

    # Map domain exceptions to HTTP responses
    @app.exception_handler(CampaignNotFoundError)
    async def _not_found(_: Request, exc: CampaignNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_body(exc))

    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=_error_body(exc))

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.include_router(ledger_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
