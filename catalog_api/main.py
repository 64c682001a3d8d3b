"""
REST API main application.
Entry point for the FastAPI catalog server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from catalog_api.models import Base
from catalog_api.routers import imports_router, products_router
from catalog_shared.config.logging import catalog_logger as logger, setup_logging
from catalog_shared.config.settings import settings
from catalog_shared.infrastructure.correlation import CorrelationIdMiddleware
from catalog_shared.infrastructure.db import engine
from catalog_shared.utils.exceptions import AppException


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Server will not start with insecure configuration."
            )
        logger.warning("Running with insecure defaults (acceptable for development only)")

    logger.info("Starting catalog API", port=settings.rest_api_port, env=settings.environment)

    if settings.database_auto_create:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down catalog API")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render typed errors as {"code", "detail"}."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique constraint lost outside an atomic block."""
    logger.warning("Unique constraint violation", path=request.url.path, error=str(exc.orig))
    return JSONResponse(
        status_code=409,
        content={
            "code": "uniqueConstraintViolation",
            "detail": "A concurrent change already used one of these unique values",
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Catalog API",
        description="Multi-tenant retail catalog: products, barcodes, variants and imports",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CorrelationIdMiddleware.HEADER_NAME],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(products_router)
    app.include_router(imports_router)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/api/health")
    def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": "catalog-api",
            "environment": settings.environment,
        }

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "catalog_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
