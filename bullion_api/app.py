"""
FastAPI application factory.

``create_app(ledger)`` wires a ready facade (tests); ``create_app()`` builds
one from ``bullion_config.get_active_settings()``.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import FastAPI, Request

from bullion_api.errors import install_error_handlers
from bullion_api.routers import accounts, obligations, refinery, settlements
from bullion_config import LedgerSettings, get_active_settings
from bullion_kernel import __version__
from bullion_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from bullion_kernel.logging_config import LogContext, configure_logging, get_logger
from bullion_kernel.services.ledger_service import AccountLedgerService

logger = get_logger("api")

CORRELATION_HEADER = "X-Correlation-ID"
ACTOR_HEADER = "X-Actor-ID"


def build_ledger(settings: LedgerSettings) -> AccountLedgerService:
    """Initialize the engine from settings and return a facade over it."""
    init_engine_from_url(settings.database.url, **settings.database.engine_options())
    create_tables()
    return AccountLedgerService(get_session_factory(), rules=settings.ledger_rules())


def create_app(
    ledger: AccountLedgerService | None = None,
    settings: LedgerSettings | None = None,
) -> FastAPI:
    if ledger is None:
        settings = settings or get_active_settings()
        configure_logging(level=getattr(logging, settings.logging.level))
        ledger = build_ledger(settings)

    app = FastAPI(title="Bullion Ledger", version=__version__)
    app.state.ledger = ledger

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=request.headers.get(ACTOR_HEADER),
        ):
            logger.debug(
                "request_received",
                extra={"method": request.method, "path": request.url.path},
            )
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    install_error_handlers(app)
    app.include_router(accounts.router)
    app.include_router(obligations.router)
    app.include_router(settlements.router)
    app.include_router(refinery.router)
    return app
