"""Main FastAPI application for the Milestone Tracker."""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from . import __version__
from .api.middleware import (
    ProblemDetailsMiddleware,
    RequestSizeLimitMiddleware,
    register_exception_handlers,
)
from .api import auth, milestones, notifications, tracking, users
from .config import get_config
from .db.database import SessionLocal
from .utils.logging_config import get_logger, initialize_logging

config = get_config()
initialize_logging(log_dir=config.app.log_dir, debug=config.server.debug)
logger = get_logger("main")

# Create FastAPI app
app = FastAPI(
    title=config.app.app_name,
    description=config.app.description,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add custom middleware in correct order (innermost first)
app.add_middleware(ProblemDetailsMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)

allowed_origins = list(
    config.server.cors_origins
    or [f"http://127.0.0.1:{config.server.port}", f"http://localhost:{config.server.port}"]
)

# In development mode, allow additional localhost ports
if config.server.debug:
    allowed_origins.extend([
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
)

register_exception_handlers(app)

# Register API routers
app.include_router(auth.router)
app.include_router(milestones.router)
app.include_router(tracking.router)
app.include_router(users.router)
app.include_router(notifications.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "milestone-tracker", "version": __version__}


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint that validates database connectivity and configuration."""
    start_time = time.time()
    checks = {"database": False, "config": False}
    errors = []

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        errors.append(f"Database check failed: {str(e)}")
    finally:
        db.close()

    try:
        if get_config().app.jwt_secret_key:
            checks["config"] = True
    except Exception as e:
        errors.append(f"Config check failed: {str(e)}")

    response_time_ms = round((time.time() - start_time) * 1000, 2)
    all_ready = all(checks.values())

    response = {
        "status": "ready" if all_ready else "not_ready",
        "service": "milestone-tracker",
        "version": __version__,
        "checks": checks,
        "response_time_ms": response_time_ms,
    }

    if errors:
        logger.warning(f"Readiness check failed: {'; '.join(errors)}")
        response["errors"] = errors

    return JSONResponse(content=response, status_code=200 if all_ready else 503)
