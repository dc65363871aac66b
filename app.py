"""
DoseRound Backend
FastAPI application serving treatment notification schedules and dose status updates
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Configuration and database
from config import settings
from database import init_db, DatabaseHealthCheck

from api import include_routers
from api.deps import close_view_registry
from services.reminder_client import ReminderSourceError
from services.schedule_view import ReminderNotFound
from tools.dose_status import MutationFailure, TransitionGuardViolation

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}, reminder source: {settings.REMINDER_SOURCE}")

    if settings.REMINDER_SOURCE != "remote":
        try:
            init_db()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    yield

    # Shutdown
    await close_view_registry()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## DoseRound API

    Medication dose scheduling and administration tracking for ward nurses.

    ### Features
    - **Time slots**: reminders grouped by dosage time with completion percentage
    - **Date tabs**: one bucket per day, today first
    - **Dose status**: Pending doses can be marked Completed or Not Required
      once their administration window has started
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers
include_routers(app, prefix=settings.API_PREFIX)


# ==================== EXCEPTION HANDLERS ====================

def _error_response(status_code: int, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    return _error_response(422, jsonable_encoder(exc.errors()))


@app.exception_handler(ReminderNotFound)
async def reminder_not_found_handler(request, exc: ReminderNotFound):
    return _error_response(404, str(exc))


@app.exception_handler(TransitionGuardViolation)
async def transition_guard_handler(request, exc: TransitionGuardViolation):
    logger.info(f"Rejected dose status change: {exc}")
    return _error_response(409, str(exc))


@app.exception_handler(MutationFailure)
async def mutation_failure_handler(request, exc: MutationFailure):
    # Backend not-found/conflict/validation answers keep their status
    status_code = exc.status_code if exc.status_code in (404, 409, 422) else 502
    return _error_response(status_code, exc.message)


@app.exception_handler(ReminderSourceError)
async def reminder_source_handler(request, exc: ReminderSourceError):
    return _error_response(502, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        500,
        "An unexpected error occurred" if not settings.DEBUG else str(exc)
    )


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    checks = {"reminder_source": settings.REMINDER_SOURCE}
    healthy = True

    if settings.REMINDER_SOURCE == "remote":
        checks["hospital_api"] = {
            "url": settings.HOSPITAL_API_URL,
            "configured": bool(settings.HOSPITAL_API_TOKEN)
        }
    else:
        db_connected = DatabaseHealthCheck.is_connected()
        healthy = db_connected
        checks["database"] = {
            "status": "up" if db_connected else "down",
            "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql"
        }
        if db_connected:
            checks["database"]["reminders"] = DatabaseHealthCheck.reminder_status_counts()

    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
        "config": {
            "poll_interval_seconds": settings.POLL_INTERVAL_SECONDS
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
