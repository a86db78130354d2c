# =============================================================================
# FastAPI Application Factory
# =============================================================================
#
# Run locally:
#   uvicorn accountkeys.main:app --reload
#
# Start-up creates any missing tables. Request-body validation errors are
# rendered as 400 (the endpoint contract), not FastAPI's default 422.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from accountkeys.api.keys import router as keys_router
from accountkeys.config import settings
from accountkeys.db.engine import init_db

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Root logging setup for the API process."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    logger.info("%s v%s started", settings.app_name, settings.app_version)
    yield


async def _validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request.") if errors else "Invalid request."
    return JSONResponse(status_code=400, content={"detail": message})


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(keys_router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


configure_logging(settings.debug)
app = create_app()
