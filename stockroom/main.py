"""
Stockroom API - Main Application

SECURITY FEATURES:
- Conditional API docs (disabled in production by default)
- Logging without credentials or full database URLs
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from stockroom.api.v1.router import api_router
from stockroom.config import settings
from stockroom.database import init_db
from stockroom.exceptions import create_exception_handlers
from stockroom.services.errors import InventoryError
from stockroom.tasks.notification_scheduler import start_notification_scheduler, stop_notification_scheduler

VERSION = "1.0.0"

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Stockroom API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    await init_db()
    logger.info("Database initialized successfully")

    if settings.SCHEDULER_ENABLED:
        start_notification_scheduler()
    yield
    logger.info("Shutting down Stockroom API...")
    stop_notification_scheduler()


docs_url = "/docs" if settings.DOCS_ENABLED else None
redoc_url = "/redoc" if settings.DOCS_ENABLED else None

app = FastAPI(
    title="Stockroom API",
    description="School inventory: material stock ledger, asset loans and notifications",
    version=VERSION,
    docs_url=docs_url,
    redoc_url=redoc_url,
    lifespan=lifespan,
)

allowed_origins = [
    settings.FRONTEND_URL,
    "http://localhost:5173",  # Vite dev server
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(InventoryError, handlers["inventory"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint - API info."""
    response = {"name": "Stockroom API", "version": VERSION, "health": "/health"}
    if settings.DOCS_ENABLED:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": VERSION,
        "environment": settings.ENVIRONMENT,
    }


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stockroom.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
