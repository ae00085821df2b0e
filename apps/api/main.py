"""
FastAPI application entry point.

Wires logging, middleware, the REST routers and the shared reverse
geocoder used by the map activity endpoint.
"""
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from routers import users, activities, milestones, achievements
from core.config import settings
from core.database import check_db_connection, create_tables
from core.exceptions import APIException
from core.logging import log_fields, setup_logging
from services.reverse_geocoding import build_reverse_geocoder
import logging
import time

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

DEV_ORIGINS = ["http://localhost:8080", "http://127.0.0.1:8080"]

app = FastAPI(
    title="Mordor Journey Tracker API",
    description="Companions, journeys, milestones and distance achievements",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# One geocoder (and its cache) per process.
app.state.reverse_geocoder = build_reverse_geocoder()


@app.on_event("startup")
def prepare_storage():
    """Create missing tables and the uploads directory before serving requests."""
    create_tables()
    Path(settings.UPLOADS_DIR).mkdir(parents=True, exist_ok=True)
    logger.info(f"Serving uploads from {settings.UPLOADS_DIR}")


def _allowed_origins():
    # DEBUG allows everything; otherwise CORS_ORIGINS (comma-separated) or local dev hosts.
    if settings.DEBUG:
        return ["*"]
    if settings.CORS_ORIGINS:
        return [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    return DEV_ORIGINS


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its caller role, status and timing."""
    started = time.perf_counter()
    fields = {
        "method": request.method,
        "path": request.url.path,
        "role": request.headers.get("X-User-Role"),
    }

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"{request.method} {request.url.path} failed",
            exc_info=True,
            extra=log_fields(**fields),
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms} ms)",
        extra=log_fields(status_code=response.status_code, duration_ms=elapsed_ms, **fields),
    )
    response.headers["X-Process-Time"] = str(elapsed_ms)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.error_code},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything not raised as an HTTPException becomes a 500 without internals."""
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra=log_fields(method=request.method, path=request.url.path),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health():
    """
    Health check for load balancers and uptime monitors.

    Returns:
        - 200: Database reachable
        - 503: Database unavailable
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok", "timestamp": time.time()}


@app.get("/ping")
async def ping():
    """Minimal ping endpoint. No dependencies checked."""
    return {"pong": True}


app.include_router(users.router)
app.include_router(activities.router)
app.include_router(milestones.router)
app.include_router(achievements.router)

# Uploaded badge icons, addressed by Achievement.badge_path.
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR, check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
