"""
Memory Match API - accounts, scores and leaderboards for the memory game.

Main application entry point with FastAPI setup, middleware configuration,
error handlers and lifecycle management.
"""
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from memorymatch import __version__
from memorymatch.config import get_settings
from memorymatch.database import init_db
from memorymatch.errors import APIError
from memorymatch.api.auth import router as auth_router
from memorymatch.api.catalog import router as catalog_router
from memorymatch.api.scores import router as scores_router
from memorymatch.api.stats import router as stats_router
from memorymatch.middleware import RateLimitMiddleware, RequestLoggingMiddleware

settings = get_settings()


def configure_logging() -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    A database that cannot be reached at startup aborts the process.
    """
    logger.info("=" * 60)
    logger.info("Memory Match API Starting Up")
    logger.info("=" * 60)

    try:
        logger.info("Initializing database...")
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}", exc_info=True)
        raise

    if settings.new_relic_license_key:
        try:
            import newrelic.agent
            newrelic.agent.initialize()
            logger.info("New Relic agent initialized successfully")
        except ImportError:
            logger.warning("New Relic package not installed. Monitoring disabled.")
    else:
        logger.info("New Relic monitoring not configured (license key not set)")

    logger.info(f"API Documentation available at: http://{settings.api_host}:{settings.api_port}/docs")

    yield

    logger.info("Memory Match API shutdown complete")


tags_metadata = [
    {"name": "scores", "description": "Score submission and leaderboard pages."},
    {"name": "catalog", "description": "Game categories and difficulty levels."},
    {"name": "stats", "description": "Aggregate statistics and health status."},
    {"name": "auth", "description": "Account registration, login and profile."},
    {"name": "root", "description": "Service banner."},
]

app = FastAPI(
    title="Memory Match API",
    description="""
    ## Memory game scores and leaderboards

    - Accounts with password login and bearer tokens
    - Score submission with server-side scoring and duplicate suppression
    - Leaderboards filtered by category and difficulty, fastest games first
    - Aggregate statistics

    All responses share the shape `{success, data?, error?, message?}`.
    """,
    version=__version__,
    lifespan=lifespan,
    openapi_tags=tags_metadata,
)

app.add_middleware(
    RateLimitMiddleware,
    requests_per_minute=settings.rate_limit_requests,
    window_seconds=settings.rate_limit_window,
)

# Wraps the rate limiter so rejected requests are logged and tagged too
app.add_middleware(RequestLoggingMiddleware)

# Added last so it wraps everything, including rate-limited responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Render domain errors in the uniform response shape."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed with {exc.status_code}: {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies or query parameters are client errors (400)."""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Invalid request data",
            "message": "Invalid request data. Please check your input.",
            "detail": jsonable_encoder(exc.errors()),
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "Route not found",
                "message": f"Cannot {request.method} {request.url.path}",
            }
        )
    logger.warning(f"HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions, hiding detail outside development."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "Something went wrong!",
        }
    )


app.include_router(scores_router)
app.include_router(catalog_router)
app.include_router(stats_router)
app.include_router(auth_router)


@app.get("/", tags=["root"])
async def root():
    """Service banner listing the public endpoints."""
    return {
        "status": "OK",
        "success": True,
        "message": "Memory Match API is running",
        "version": __version__,
        "docs": "/docs",
        "endpoints": [
            "GET /api/categories - Get all game categories",
            "GET /api/difficulties - Get all difficulty levels",
            "GET /api/scores - Get leaderboard scores",
            "GET /api/scores/me - Get your own scores",
            "POST /api/scores - Submit a new score",
            "GET /api/stats - Get game statistics",
            "POST /api/auth/register - Register an account",
            "POST /api/auth/login - Log in",
            "GET /api/auth/me - Get your profile",
        ],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "memorymatch.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=True
    )
