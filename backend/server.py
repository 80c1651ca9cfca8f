"""
TastyBite API Server - FastAPI application with PostgreSQL and image uploads
"""
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, HTMLResponse
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import httpx
from config import settings
from database.connection import init_db, close_db
from services.media import create_media_store, LocalMediaStore
from utils.debug import Loggers, setup_debug_logging
from utils.errors import (
    APIError,
    NotFoundError,
    api_error_handler,
    request_validation_handler,
    make_unhandled_error_handler,
)
from utils.security import is_safe_upload_name

# Initialize logging early so startup messages are visible
setup_debug_logging(settings.log_level)

from middleware import (
    SecurityHeadersMiddleware,
    RequestSizeMiddleware,
    AuditLoggingMiddleware
)
from routers import auth, recipes, favorites

logger = logging.getLogger(__name__)


class StartupState:
    """Track server startup state for health check responses"""
    def __init__(self):
        self.is_ready = False
        self.database_ready = False
        self.database_error: str | None = None

    def mark_ready(self):
        self.is_ready = True

    def mark_database_ready(self):
        self.database_ready = True
        self.database_error = None

    def mark_database_failed(self, error: str):
        self.database_error = error

startup_state = StartupState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("=" * 60)
    logger.info("TASTYBITE API SERVER STARTING")
    logger.info("=" * 60)
    logger.info(f"Version: {settings.version}")
    logger.info(f"Debug Mode: {settings.debug_mode}")
    logger.info(f"Frontend URL: {settings.frontend_url}")

    app.state.http_client = httpx.AsyncClient()
    app.state.media_store = create_media_store(settings, app.state.http_client)
    Loggers.media.info("Media store ready", backend=type(app.state.media_store).__name__)

    if isinstance(app.state.media_store, LocalMediaStore):
        try:
            upload_dir = app.state.media_store.ensure_upload_dir()
            logger.info(f"Upload directory ready: {upload_dir.resolve()}")
        except OSError as e:
            logger.warning(f"Could not create upload directory: {e}")

    # Database failures are reported by /health instead of stopping startup
    try:
        await init_db()
        startup_state.mark_database_ready()
    except Exception as e:
        Loggers.db.error(f"Failed to initialize database: {e}", exc_info=True)
        startup_state.mark_database_failed(str(e))

    logger.info("TASTYBITE API SERVER READY")
    startup_state.mark_ready()

    yield

    # Shutdown
    logger.info("TASTYBITE API SERVER SHUTTING DOWN")

    await app.state.http_client.aclose()
    await close_db()

    logger.info("Shutdown complete")


app = FastAPI(lifespan=lifespan, title="TastyBite API", version=settings.version)

# CORS - must be added before routes
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=[o.strip() for o in settings.cors_origins.split(',') if o.strip()],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Security middleware (added in reverse order of execution)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLoggingMiddleware)
app.add_middleware(RequestSizeMiddleware)

app.add_exception_handler(APIError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, make_unhandled_error_handler(settings.debug_mode))

app.include_router(auth.router)
app.include_router(recipes.router)
app.include_router(favorites.router)


@app.get("/", response_class=HTMLResponse)
async def root():
    return "<h1>Recipe Manager API</h1>"


@app.get("/health")
async def health_check():
    """Health check endpoint; reports degraded when the database is unavailable"""
    if not startup_state.is_ready:
        status = "starting"
    elif not startup_state.database_ready:
        status = "degraded"
    else:
        status = "healthy"

    response = {
        "status": status,
        "app": "TastyBite",
        "version": settings.version,
        "database": {
            "type": "postgresql",
            "ready": startup_state.database_ready,
        },
        "debug_mode": settings.debug_mode
    }
    if startup_state.database_error and settings.debug_mode:
        response["database"]["error"] = startup_state.database_error
    return response


@app.get("/uploads/{filename}")
async def get_upload(filename: str):
    """Serve an image written by the local media store"""
    if not is_safe_upload_name(filename):
        raise NotFoundError("File")

    upload_dir = Path(settings.upload_dir)
    file_path = (upload_dir / filename).resolve()
    if not file_path.is_relative_to(upload_dir.resolve()) or not file_path.is_file():
        raise NotFoundError("File")
    return FileResponse(file_path)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=settings.port, reload=settings.debug_mode)
