"""Clinic Operations Engine: FastAPI entry point.

Exposes every engine operation as a JSON endpoint under /api/v1.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_ops import __version__
from clinic_ops.api.responses import ErrorResponse
from clinic_ops.api.routes import admin, billing, clinical, imaging, patients, scheduling
from clinic_ops.config.logging_config import get_logger, setup_logging
from clinic_ops.config.request_context import CORRELATION_HEADER, correlation_id_var, resolve_correlation_id
from clinic_ops.config.settings import Settings, get_settings
from clinic_ops.exceptions import (
    AuthorizationError,
    ClinicOpsError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clinic_ops.services.engine import build_engine

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    AuthorizationError: 403,
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around a freshly wired engine.

    Args:
        settings: Settings to use; defaults to the cached environment settings

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level)
    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting Clinic Operations Engine",
            data_backend=engine.data_backend,
            phi_encryption_enabled=engine.text_cipher.enabled,
        )
        if not engine.text_cipher.enabled:
            logger.warning("PHI_ENCRYPTION_KEY not set, communication notes and task details are stored as plaintext")
        await engine.startup()
        yield
        logger.info("Shutting down Clinic Operations Engine")
        await engine.shutdown()

    app = FastAPI(
        title="Clinic Operations Engine",
        description="Patients, scheduling, benefits estimation, ledger and clinical records for dental practices",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", CORRELATION_HEADER],
    )

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_HEADER))
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.exception_handler(ClinicOpsError)
    async def clinic_ops_exception_handler(request: Request, exc: ClinicOpsError):
        status_code = ERROR_STATUS_CODES.get(type(exc), 400)
        logger.info("Request rejected", status_code=status_code, error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())[:8]
        logger.error("Unhandled exception", error_id=error_id, error=str(exc), path=request.url.path, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "error_id": error_id})

    # Routes
    app.include_router(patients.router, prefix="/api/v1")
    app.include_router(scheduling.router, prefix="/api/v1")
    app.include_router(imaging.router, prefix="/api/v1")
    app.include_router(billing.router, prefix="/api/v1")
    app.include_router(clinical.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "platform": "clinic-ops",
            "components": {"data_backend": engine.data_backend},
        }

    @app.get("/")
    async def root():
        return {
            "name": "Clinic Operations Engine",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("clinic_ops.main:create_app", factory=True, host="0.0.0.0", port=8002, reload=True)
