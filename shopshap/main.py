"""
shopshap/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (phone verification)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
import time

from shopshap.core.config import settings, validate_settings
from shopshap.core.errors import add_exception_handlers
from shopshap.core.logging import setup_logging, get_logger
from shopshap.db.mongo import (
    connect_to_mongo,
    close_mongo_connection,
    check_database_health,
    is_database_configured,
)
from shopshap.db.indexes import create_indexes
from shopshap.services.verification_service import verification_service
from shopshap.api import verification

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


async def sweep_expired_entries(interval_seconds: int):
    """
    Periodically drops expired codes and elapsed rate-limit windows.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        removed = verification_service.purge_expired()
        if removed["codes"] or removed["rate_limits"]:
            logger.info(
                f"🧹 Swept {removed['codes']} expired codes, "
                f"{removed['rate_limits']} rate-limit windows"
            )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting ShopShap verification service...")

    validate_settings()
    logger.info("✅ Configuration validated")

    if not verification_service.gateway.is_configured():
        logger.warning("⚠️ Twilio is not configured; code delivery will fail")

    if is_database_configured():
        try:
            await connect_to_mongo()
            await create_indexes()
        except Exception as e:
            # Profile linking is optional; verification keeps working without it
            logger.error(f"Datastore unavailable, profile linking disabled: {e}", exc_info=True)
    else:
        logger.info("MONGODB_URL not set, profile linking disabled")

    sweeper = None
    if settings.OTP_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(sweep_expired_entries(settings.OTP_SWEEP_INTERVAL_SECONDS))
        logger.info(f"Expiry sweep every {settings.OTP_SWEEP_INTERVAL_SECONDS}s")

    logger.info(f"🎉 Started (environment: {settings.ENVIRONMENT})")

    yield  # Application runs here

    logger.info("🛑 Shutting down ShopShap verification service...")

    if sweeper:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass

    await close_mongo_connection()
    logger.info("👋 Shut down successfully")


app = FastAPI(
    title="ShopShap - Phone Verification",
    description="WhatsApp one-time code login for ShopShap storefronts",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

add_exception_handlers(app)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # The Twilio call has its own timeout; anything close to it is worth a look
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


app.include_router(verification.router, prefix=settings.API_PREFIX, tags=["Verification"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "ShopShap Verification API",
        "version": VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Reports gateway configuration and datastore reachability.
    The datastore is optional, so its absence only degrades the status.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "checks": {}
    }

    if verification_service.gateway.is_configured():
        health_status["checks"]["twilio"] = "configured"
    else:
        health_status["checks"]["twilio"] = "not_configured"
        health_status["status"] = "unhealthy"

    if is_database_configured():
        db_healthy = await check_database_health()
        health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
        if not db_healthy and health_status["status"] == "healthy":
            health_status["status"] = "degraded"
    else:
        health_status["checks"]["database"] = "not_configured"

    status_code = 503 if health_status["status"] == "unhealthy" else 200
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness check - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shopshap.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
