"""FastAPI application factory for the car ledger gateway."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..contract.dispatch import TransactionDispatcher
from ..contract.handlers import CarContract
from ..errors import (
    InsufficientFundsError,
    InvalidOperationError,
    LedgerError,
    NotFoundError,
    SerializationError,
    StorageError,
)
from ..persistence.journal import InvocationJournal
from ..persistence.store import SQLiteLedgerStore
from .config import LedgerConfig
from .middleware import CorrelationIdMiddleware, get_correlation_id
from .router import build_router

logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS: list[tuple[type[LedgerError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidOperationError, status.HTTP_409_CONFLICT),
    (InsufficientFundsError, status.HTTP_409_CONFLICT),
    (SerializationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(error: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(
        f"{request.method} {request.url.path} -> {status_code} {exc.code} "
        f"(correlation_id={get_correlation_id(request)})"
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup/shutdown."""
    config: LedgerConfig = app.state.config
    dispatcher: TransactionDispatcher = app.state.dispatcher

    logger.info(f"Starting car ledger service (world state: {config.db_path})")
    if config.seed_on_startup:
        dispatcher.submit("InitLedger")

    yield

    logger.info("Shutting down car ledger service...")
    app.state.store.close()
    logger.info("Car ledger service shutdown complete")


def create_ledger_app(
    config: LedgerConfig,
    *,
    store: SQLiteLedgerStore | None = None,
    journal: InvocationJournal | None = None,
) -> FastAPI:
    """Create and configure the car ledger FastAPI application.

    Args:
        config: LedgerConfig instance
        store: World state to serve (default: opened from config.db_path)
        journal: Invocation journal (default: opened from config.journal_path
            when journaling is enabled)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Car Ledger",
        description="Ledger-backed vehicle marketplace",
        version=__version__,
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.add_exception_handler(LedgerError, _ledger_error_handler)

    if store is None:
        store = SQLiteLedgerStore(config.db_path)
    if journal is None and config.journal_enabled:
        journal = InvocationJournal(config.journal_path)

    dispatcher = TransactionDispatcher(CarContract(store), journal=journal)
    app.include_router(build_router(dispatcher))

    app.state.config = config
    app.state.store = store
    app.state.dispatcher = dispatcher

    @app.get("/healthz")
    def healthz() -> dict:
        """Health check endpoint with dependency verification."""
        checks = {}
        all_healthy = True

        try:
            store.ping()
            checks["world_state"] = {"status": "healthy", "keys": store.count()}
        except StorageError as e:
            checks["world_state"] = {"status": "unhealthy", "error": str(e)}
            all_healthy = False

        if journal is not None:
            checks["journal"] = {"status": "healthy", "entries": journal.count()}
        else:
            checks["journal"] = {"status": "not_configured"}

        return {
            "status": "ok" if all_healthy else "degraded",
            "service": "carledger",
            "version": __version__,
            "checks": checks,
        }

    @app.get("/ready")
    def ready() -> dict:
        """Readiness probe - true when the world state answers."""
        try:
            store.ping()
            is_ready = True
        except StorageError:
            is_ready = False
        return {"ready": is_ready, "service": "carledger"}

    return app


def create_app_from_env() -> FastAPI:
    """Create app using environment variable configuration."""
    return create_ledger_app(LedgerConfig.from_env())


__all__ = ["create_ledger_app", "create_app_from_env", "status_for"]
