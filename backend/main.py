"""
This is the main entry point for the satellite image comparison FastAPI application.
It initializes the FastAPI app, includes API routers, and configures middleware.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.config import settings
from app.dependencies import close_vision_client
from app.exceptions import (
    ComparisonError,
    ConfigurationMissing,
    MalformedInput,
    UpstreamUnavailable,
)
from app.routes import auth, compare, diagnostics, health, images

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Determine environment
IS_PRODUCTION = settings.BACKEND_ENV == "production"

# Configure CORS based on environment
if IS_PRODUCTION:
    # Production: Restrict to the configured frontend origins
    allowed_origins = settings.ALLOWED_ORIGINS
    logger.info("🚀 Production mode: CORS restricted to %s", allowed_origins)
else:
    # Local development: Allow all origins
    allowed_origins = ["*"]
    logger.info("🔧 Local mode: CORS allows all origins")

ERROR_STATUS = {
    MalformedInput: 400,
    UpstreamUnavailable: 502,
    ConfigurationMissing: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info("=" * 60)
    logger.info("Satellite Compare API starting up...")
    logger.info("Environment: %s", "PRODUCTION" if IS_PRODUCTION else "LOCAL")
    logger.info("Storage bucket: %s", settings.GCS_BUCKET_NAME or "MISSING")
    logger.info("Custom Vision endpoint: %s", settings.CUSTOM_VISION_ENDPOINT)
    logger.info(
        "Custom Vision prediction key: %s",
        "PRESENT" if settings.custom_vision_configured else "MISSING (demo mode)",
    )
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("=" * 60)
    logger.info("Satellite Compare API shutting down...")
    await close_vision_client()
    logger.info("=" * 60)


app = FastAPI(
    title="Satellite Compare API",
    description="API for uploading satellite images and detecting changes between them.",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    https_only=IS_PRODUCTION,
)


@app.exception_handler(ComparisonError)
async def comparison_error_handler(request: Request, exc: ComparisonError):
    """Renders pipeline errors as `{message, details}` with a kind-specific status."""
    status_code = ERROR_STATUS.get(type(exc), 500)
    logger.warning(
        "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message
    )
    return JSONResponse(
        status_code=status_code,
        content={"message": exc.message, "details": exc.details},
    )


# Include API routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(images.router, prefix="/api", tags=["Images"])
app.include_router(compare.router, prefix="/api", tags=["Compare"])
app.include_router(diagnostics.router, prefix="/api/diagnostics", tags=["Diagnostics"])
