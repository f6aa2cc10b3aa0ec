"""FastAPI application for the Fulfillment Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.storage import SupabaseBlobStore
from libs.db.config import build_engine, build_session_factory
from services.fulfillment_service.routers import (
    orders_router,
    production_router,
    queues_router,
    reporting_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide handles once and release them at shutdown."""
    settings = get_settings()
    engine = build_engine(settings)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.blob_store = SupabaseBlobStore.from_settings(settings)
    logger.info("Fulfillment service started (%s)", settings.ENVIRONMENT)
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Fulfillment service stopped")


def create_app() -> FastAPI:
    """Create and configure the Fulfillment Service FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Orderflow Fulfillment Service",
        version="0.1.0",
        description="Order workflow, production queues and design file handling.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "fulfillment"}

    app.include_router(orders_router)
    app.include_router(queues_router)
    app.include_router(production_router)
    app.include_router(reporting_router)

    return app


app = create_app()
