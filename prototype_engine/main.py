"""
Main FastAPI application for the Prototype Engine
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from prototype_engine.config import settings, get_redis_client, validate_required_config
from prototype_engine.logging_config import logger
from prototype_engine.storage.project_store import get_project_store

# Import routers
from prototype_engine.routers import projects, studio


# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Prototype Engine", environment=settings.ENVIRONMENT)

    # Validate required configuration
    validate_required_config()

    # Initialize Sentry if DSN provided
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[FastApiIntegration()],
        )
        logger.info("Sentry initialized")

    # Load stored projects once, running migrations
    store = get_project_store()
    if store.load_result.error_occurred:
        logger.error(
            "Stored projects could not be loaded and were backed up",
            backup_key=store.load_result.backup_key
        )

    logger.info(
        "Prototype Engine started",
        storage_backend=settings.STORAGE_BACKEND,
        gemini_model=settings.GEMINI_MODEL,
        projects=len(store.list())
    )

    yield

    logger.info("Shutting down Prototype Engine")


# Create FastAPI app
app = FastAPI(
    title="Prototype Engine",
    description="AI-powered multi-page web prototype builder",
    version="1.0.0",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in settings.CORS_ORIGINS.split(",")
    if origin.strip()
]

if settings.ENVIRONMENT == "development" or settings.DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Cannot use credentials with wildcard origins
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Prototype Engine",
        "version": "1.0.0",
        "status": "running",
        "model": settings.GEMINI_MODEL
    }


@app.get("/health")
async def health_check():
    """Comprehensive health check"""
    health = {
        "status": "healthy",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {}
    }

    health["checks"]["gemini_api"] = {
        "configured": bool(settings.GEMINI_API_KEY),
        "status": "ok" if settings.GEMINI_API_KEY else "missing"
    }

    # Check Redis
    if settings.STORAGE_BACKEND == "redis":
        try:
            redis_client = get_redis_client()
            if redis_client:
                redis_client.ping()
                health["checks"]["redis"] = {"status": "ok"}
            else:
                health["checks"]["redis"] = {"status": "disabled"}
        except Exception as e:
            health["checks"]["redis"] = {"status": "error", "error": str(e)}
    else:
        health["checks"]["redis"] = {"status": "disabled"}

    store = get_project_store()
    health["checks"]["storage"] = {
        "status": "error" if store.load_result.error_occurred else "ok",
        "backend": settings.STORAGE_BACKEND,
        "backup_key": store.load_result.backup_key
    }

    critical_checks = ["gemini_api"]
    all_critical_ok = all(
        health["checks"].get(check, {}).get("status") == "ok"
        for check in critical_checks
    )

    health["status"] = "healthy" if all_critical_ok else "degraded"

    return health


@app.get("/readiness")
async def readiness_check():
    """Kubernetes readiness probe"""
    health = await health_check()
    critical_checks = ["gemini_api"]

    ready = all(
        health["checks"].get(check, {}).get("status") == "ok"
        for check in critical_checks
    )

    if ready:
        return {"status": "ready"}
    else:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "checks": health["checks"]}
        )


# Include routers
app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(studio.router, prefix="/api", tags=["Studio"])


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler with Sentry integration"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        path=request.url.path,
        exc_info=True
    )

    if settings.SENTRY_DSN:
        sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.ENVIRONMENT == "development" else None
        }
    )


def run():
    import uvicorn
    # Only enable reload in development
    reload_enabled = settings.ENVIRONMENT == "development" or settings.DEBUG
    uvicorn.run("prototype_engine.main:app", host="0.0.0.0", port=8001, reload=reload_enabled)


if __name__ == "__main__":
    run()
