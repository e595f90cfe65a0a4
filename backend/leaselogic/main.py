"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaselogic.api.routes import analysis
from leaselogic.core.config import Settings, settings as default_settings
from leaselogic.core.logging import get_logger, setup_logging
from leaselogic.core.tracing import setup_tracing
from leaselogic.pipeline.errors import (
    ConflictError,
    NotFoundError,
    NotReadyError,
    PipelineError,
    StorageError,
    ValidationError,
)
from leaselogic.services import build_services

logger = get_logger(__name__)


# ─── Error mapping ────────────────────────────────────────

def _error_body(exc: PipelineError) -> dict:
    body = {"detail": exc.message}
    if exc.details:
        body["errors"] = exc.details
    return body


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(exc))


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = [
        ".".join(str(part) for part in err["loc"] if part != "body")
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid analysis request", "errors": {"fields": missing}},
    )


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(exc))


async def _not_ready(request: Request, exc: NotReadyError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"Analysis is not completed yet. Current status: {exc.status}",
            "status": exc.status,
        },
    )


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc))


async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage error while serving request", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


# ─── Application factory ──────────────────────────────────

def create_app(settings: Settings | None = None, **service_overrides) -> FastAPI:
    """
    Build the API.  `service_overrides` are passed to build_services()
    (tests use them to inject activities and a file store).
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging("DEBUG" if settings.APP_ENV == "development" else settings.LOG_LEVEL)
        setup_tracing(settings)
        log = get_logger("startup")
        log.info("Application starting", env=settings.APP_ENV, backend=settings.EXECUTION_BACKEND)

        services = build_services(settings, **service_overrides)
        if settings.DB_AUTO_CREATE:
            await services.init_db()
        await services.runner.start()
        await services.runner.recover()
        app.state.services = services

        yield

        log.info("Application shutting down")
        await services.aclose()

    app = FastAPI(
        title="LeaseLogic Analysis API",
        description="Durable multi-phase lease document analysis",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(NotReadyError, _not_ready)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(StorageError, _storage_error)

    app.include_router(analysis.router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Public health-check endpoint."""
        return {"status": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
