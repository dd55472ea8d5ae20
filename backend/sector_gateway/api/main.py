"""FastAPI application with OpenTelemetry integration"""

from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from ..core.config import get_settings
from ..core.logger import CentralizedLogger
from ..core.telemetry import setup_telemetry
from ..services.service_factory import ServiceFactory, ServiceType
from ..storage.storage_factory import StorageFactory
from .middleware.telemetry import TelemetryMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .routers import chat, providers, logs


# Initialize settings and logger
settings = get_settings()
logger = CentralizedLogger("API")
tracer = trace.get_tracer(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Starting {settings.app_name}")

    # Setup OpenTelemetry
    if settings.telemetry.enabled:
        setup_telemetry()
        FastAPIInstrumentor().instrument_app(app)
        logger.info("OpenTelemetry instrumentation enabled")

        # Configure OpenTelemetry logging to match centralized format
        from ..core.uvicorn_config import configure_otel_logging
        configure_otel_logging()

    # Initialize the gateway and make sure the registry has providers
    gateway = ServiceFactory.create(ServiceType.ROUTING_GATEWAY)
    if settings.gateway.seed_providers:
        seeded = await gateway.seed_providers()
        if seeded:
            logger.info(f"Seeded {seeded} providers into {settings.storage.type} storage")

    logger.info(f"API running in {settings.environment} mode")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await ServiceFactory.shutdown()
    await StorageFactory.close_all()


# Create FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Multi-sector LLM request routing gateway",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)
app.state.settings = settings

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure based on environment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id", "X-Span-Id"]
)

# Add custom middleware (order matters - bottom executes first)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(TelemetryMiddleware)

# Include routers
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(providers.router, prefix="/api", tags=["providers"])
app.include_router(logs.router, prefix="/api")


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint"""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/api/docs"
    }


@app.get("/api/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint with service status"""
    with tracer.start_as_current_span("health_check"):
        # Get all service health statuses
        service_health = await ServiceFactory.health_check_all()

        # Determine overall health
        all_healthy = all(
            status.get("status") == "healthy"
            for status in service_health.values()
        )

        return {
            "status": "healthy" if all_healthy else "degraded",
            "services": service_health,
            "environment": settings.environment,
            "telemetry_enabled": settings.telemetry.enabled
        }


# Error handlers
@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors"""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "path": str(request.url)
        }
    )
