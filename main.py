"""
Campus Events Platform - FastAPI Backend
Main application entry point
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from campus_events.core.config import settings
from campus_events.core.db import engine, Base
from campus_events.core.errors import DomainError
from campus_events.api import (
    routes_academic, routes_admin, routes_attendance, routes_auth,
    routes_events, routes_organizer, routes_public,
)
from campus_events.utils.forms import error_details
from campus_events.utils.responses import error_response

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Campus Events Platform",
    description="Event requests, registrations, check-in and attendance reconciliation",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(
        message=exc.message,
        error_code=exc.kind,
        details=exc.details,
        status_code=exc.status_code,
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(
        message="Invalid request",
        error_code="Validation",
        details=error_details(exc.errors()),
        status_code=400,
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(message="Internal server error", error_code="Internal", status_code=500)

# Mount uploaded files
os.makedirs(settings.UPLOAD_ROOT, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_ROOT), name="uploads")

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_events.router, tags=["events"])
app.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
app.include_router(routes_organizer.router, prefix="/organizer", tags=["organizer"])
app.include_router(routes_attendance.router, prefix="/attendance", tags=["attendance"])
app.include_router(routes_academic.router, prefix="/academic", tags=["academic"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
