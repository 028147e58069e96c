"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import generation, health, listings
from src.config import settings
from src.domain.errors.generation_errors import SessionInvalidatedError
from src.domain.errors.provider_error import GenerationConfigError
from src.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("listing_generator_starting", model=settings.gemini_model)
    yield
    logger.info("listing_generator_stopping")


async def session_invalidated_handler(request: Request, exc: Exception) -> JSONResponse:
    reason = exc.reason.value if isinstance(exc, SessionInvalidatedError) else None
    logger.info("request_unauthorized", path=request.url.path, reason=reason)
    return JSONResponse({"error": "Invalid or expired session.", "details": reason}, status_code=401)


async def config_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("service_misconfigured", path=request.url.path, error=str(exc))
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Listing Draft Generator",
        description="Turns a product photo or description into an editable marketplace listing draft.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.add_exception_handler(SessionInvalidatedError, session_invalidated_handler)
    app.add_exception_handler(GenerationConfigError, config_error_handler)

    app.include_router(health.router)
    app.include_router(generation.router)
    app.include_router(listings.router)

    return app


app = create_app()
