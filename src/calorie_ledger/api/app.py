"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from calorie_ledger.api.analyze import router as analyze_router
from calorie_ledger.api.ledger import router as ledger_router
from calorie_ledger.api.profile import router as profile_router
from calorie_ledger.app_logging import configure_logging
from calorie_ledger.containers import AppContainer
from calorie_ledger.domain.errors import (
    ConflictError,
    IdentityUnavailableError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
    StorageError,
)

_ERROR_STATUS: dict[type[LedgerError], int] = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
    IdentityUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await app.state.container.open_resources()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(ledger_router)
    app.include_router(profile_router)
    app.include_router(analyze_router)

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = _status_for(exc)
        if isinstance(exc, StorageError | IdentityUnavailableError):
            logger.error(
                "Backing service failure",
                exc_info=exc,
                extra={"path": request.url.path},
            )
        body: dict[str, object] = {"error": exc.message}
        if exc.errors:
            body["errors"] = exc.errors
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _status_for(exc: LedgerError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
