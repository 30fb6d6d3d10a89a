"""
Signature Verification Service - Main Application
=================================================

FastAPI application verifying IRMA attribute-based signatures.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response, status

from services.sigverify import __version__
from services.sigverify.routes import verify
from shared.config import settings
from shared.logging import get_logger, setup_logging
from shared.models.common import HealthResponse
from shared.trust import TrustStore, TrustStoreInitializationError, get_trust_provider


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=settings.service_name,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "sigverify_service_starting",
        environment=settings.environment.value,
        port=settings.server.port,
        schemes_dir=str(settings.trust.schemes_dir),
        trust_mode=settings.trust.mode.value,
    )

    store = TrustStore(
        get_trust_provider(),
        settings.trust.schemes_dir,
        download_attempts=settings.trust.download_attempts,
    )

    # No usable trust configuration means nothing can be verified
    try:
        await store.initialize()
    except TrustStoreInitializationError as e:
        logger.error("startup_failed", error=str(e))
        raise

    store.start_auto_refresh(settings.trust.update_interval_minutes)
    app.state.trust_store = store

    yield

    # Shutdown
    logger.info("sigverify_service_shutting_down")
    await store.stop()


# Create FastAPI application
app = FastAPI(
    title="Signature Verification Service",
    description="Verification of IRMA attribute-based signatures",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Service health check.

    Reports the trust store state: loaded schemes, snapshot generation
    and refresh failures.
    """
    store: TrustStore | None = getattr(request.app.state, "trust_store", None)

    if store is None:
        components = {"trust_store": {"status": "unhealthy", "error": "not initialized"}}
    else:
        components = {"trust_store": store.status()}

    trust_status = components["trust_store"]["status"]

    return HealthResponse(
        status="healthy" if trust_status == "healthy" else "degraded",
        service=settings.service_name,
        version=__version__,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Signature Verification Service",
        "version": __version__,
        "verify": "/api/verify",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    verify.router,
    prefix="/api",
    tags=["Verification"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.sigverify.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.debug,
        lifespan="on",
        log_config=None,
        log_level=settings.log_level.value.lower(),
    )
