"""
FastAPI application entry point for the job board.

This is the main app that:
- Initializes FastAPI with CORS
- Maps domain errors to JSON responses
- Registers all API routers
- Starts the periodic sweeps
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobboard import database
from jobboard.config import settings
from jobboard.exceptions import JobBoardError
from jobboard.services.lifecycle import InvalidTransitionError
from jobboard.worker import sweep_scheduler
# Import API routers
from jobboard.api import jobs, manage, payments, apply, salaries, admin

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    On startup: start the sweep scheduler if enabled
    On shutdown: stop it and close database connections
    """
    # Startup
    logger.info("🚀 Starting Job Board API...")
    logger.info(f"📊 Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}")
    logger.info(f"🔧 Debug mode: {settings.debug}")
    if settings.sweeps_enabled:
        sweep_scheduler.start()

    yield

    # Shutdown
    logger.info("👋 Shutting down Job Board API...")
    sweep_scheduler.stop()
    await database.engine.dispose()


# Initialize FastAPI app
app = FastAPI(
    title="Job Board API",
    description="Job postings, search, ad tiers and payments",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
# Set ALLOWED_ORIGINS environment variable with comma-separated domains
allowed_origins = [
    "http://localhost:3000",  # Local development
]

if settings.allowed_origins:
    allowed_origins.extend(settings.allowed_origins.split(','))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(JobBoardError)
async def job_board_error_handler(request: Request, exc: JobBoardError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "error": "InvalidTransitionError"},
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Simple health check endpoint."""
    return {
        "status": "healthy",
        "service": "Job Board API",
        "version": "1.0.0",
    }


# Register API routers
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(manage.router, prefix="/api/manage", tags=["manage"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(apply.router, prefix="/api/apply", tags=["apply"])
app.include_router(salaries.router, prefix="/api", tags=["salaries"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
