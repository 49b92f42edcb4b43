# controller-ui/main.py
"""
Network Controller UI - Main Application
FastAPI application entry point
"""

import uvicorn
import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from api.v1 import networks, members
from api.v1.deps import get_controller_client
from core.errors import (
    AmbiguousDelete,
    ControllerError,
    ControllerUnavailable,
    NotFound,
    ValidationFailed,
)
from database.session import init_db, db_manager
from config import settings
from schemas.base import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Track startup time
startup_time = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    - Startup: Initialize the annotation database
    - Shutdown: Close the controller connection pool
    """
    global startup_time

    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Controller: {settings.CONTROLLER_URL}")

    init_db()
    startup_time = datetime.utcnow()

    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down application")
    if get_controller_client.cache_info().currsize:
        await get_controller_client().aclose()


# Initialize FastAPI App
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Network Controller UI API

    Manages virtual networks on a network controller:
    - Networks: create, delete, rename
    - IP assignment pools, managed routes, DNS and assign modes
    - Members: authorization, bridging, IP assignments and display names

    ## Data sources

    - **Controller**: authoritative for networks and members
    - **Annotation store**: local display names for members

    ## Authentication

    - All endpoints require the X-Admin-Token header
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Exception Handlers ===

def _error_response(status_code: int, exc: ControllerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": exc.message,
            "error_code": exc.error_code,
            "details": exc.details() or None,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    """Rejected deltas: field errors plus the submitted values for redisplay"""
    logger.info(f"Rejected {exc.operation}: {exc.message}")
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(AmbiguousDelete)
async def ambiguous_delete_handler(request: Request, exc: AmbiguousDelete):
    return _error_response(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(ControllerUnavailable)
async def controller_unavailable_handler(request: Request, exc: ControllerUnavailable):
    logger.error(f"Controller unavailable during {exc.operation}: {exc.message}")
    return _error_response(status.HTTP_502_BAD_GATEWAY, exc)


@app.exception_handler(ControllerError)
async def controller_error_handler(request: Request, exc: ControllerError):
    logger.error(f"Controller error during {exc.operation}: {exc.message}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Validation error",
            "error_code": "VALIDATION_ERROR",
            "details": {"errors": errors},
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.exception(f"Unexpected error: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "details": {"message": str(exc)} if settings.DEBUG else None,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


# === Include Routers ===

app.include_router(
    networks.router,
    prefix=settings.API_PREFIX,
    tags=["Networks"]
)

app.include_router(
    members.router,
    prefix=settings.API_PREFIX,
    tags=["Members"]
)


# === Root Endpoints ===

@app.get(
    "/",
    summary="Root endpoint",
    description="Welcome message and API info"
)
async def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health"
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check application and annotation database health"
)
async def health_check():
    """Health check endpoint for monitoring"""
    global startup_time

    # Check database connection
    db_status = "connected" if db_manager.check_connection() else "disconnected"

    # Calculate uptime
    uptime = None
    if startup_time:
        uptime = (datetime.utcnow() - startup_time).total_seconds()

    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        version=settings.APP_VERSION,
        uptime_seconds=uptime,
        database=db_status
    )


@app.get(
    "/api/v1",
    summary="API v1 info",
    description="API version information"
)
async def api_v1_info():
    """API v1 information"""
    return {
        "version": "v1",
        "status": "stable",
        "endpoints": {
            "status": "/api/v1/status",
            "networks": "/api/v1/networks",
            "members": "/api/v1/networks/{nwid}/members"
        }
    }


# === Run Application ===

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
