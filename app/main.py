"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (webhook) and exception handlers
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.schemas.response import HealthResponse
from app.api import webhook
from app.services.twilio_service import twilio_service

APP_VERSION = "1.0.0"

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting CabBot application...")

    try:
        validate_settings()
        logger.info("✅ Configuration validated")

        if settings.STORE_BACKEND == "mongo":
            await connect_to_mongo()
            logger.info("✅ MongoDB connected")

            await create_indexes()
            logger.info("✅ Database indexes created")
        else:
            logger.warning("⚠️ Running with in-memory stores, data is lost on restart")

        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug Mode: {settings.DEBUG}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info("🛑 Shutting down CabBot application...")

    try:
        await close_mongo_connection()
        logger.info("👋 CabBot application shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="CabBot - WhatsApp Cab Booking",
    description="WhatsApp-based conversational cab booking webhook",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Twilio gives up on webhooks after 15 seconds
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


add_exception_handlers(app)

app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "CabBot API",
        "version": APP_VERSION,
        "description": "WhatsApp-based cab booking assistant",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


async def database_status() -> str:
    if settings.STORE_BACKEND != "mongo":
        return "in_memory"
    return "healthy" if await check_database_health() else "unhealthy"


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Checks database connectivity.
    """
    health = HealthResponse(
        timestamp=time.time(),
        environment=settings.ENVIRONMENT,
        version=APP_VERSION,
        store_backend=settings.STORE_BACKEND,
    )

    health.checks["database"] = await database_status()
    if health.checks["database"] == "unhealthy":
        health.status = "unhealthy"

    health.checks["twilio"] = "configured" if twilio_service.is_configured() else "not_configured"
    if health.checks["twilio"] == "not_configured" and health.status == "healthy":
        health.status = "degraded"

    status_code = 503 if health.status == "unhealthy" else 200
    return JSONResponse(content=health.model_dump(), status_code=status_code)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    if await database_status() == "unhealthy":
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "database_unavailable"}
        )
    return {"status": "ready"}


@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
