"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely.core.config import settings
from tubely.core.database import close_db, init_db
from tubely.core.errors import InvalidInputError, TubelyError
from tubely.core.logging import log_error, setup_logging
from tubely.core.metrics import get_metrics, get_metrics_content_type, set_app_info
from tubely.core.middleware import (
    CorrelationIdMiddleware,
    MetricsMiddleware,
    RequestLoggingMiddleware,
)
from tubely.modules.video.router import router as video_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Video upload and fast-start ingestion API.",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Health check endpoints"},
        {"name": "videos", "description": "Video lookup, upload, and thumbnails"},
    ],
)

setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

set_app_info(
    version=settings.VERSION,
    environment="development" if settings.DEBUG else "production",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware)


def _error(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error_code": code, "message": message})


@app.exception_handler(TubelyError)
async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    if exc.status_code >= 500:
        log_error(logger, f"{exc.kind}: {exc}", exc, path=request.url.path)
    return _error(exc.status_code, exc.kind, exc.client_message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    return _error(400, InvalidInputError.kind, f"Invalid request parameters: {fields}")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(logger, "Unhandled error", exc, path=request.url.path)
    return _error(500, TubelyError.kind, TubelyError.public_message)


app.include_router(video_router, prefix=settings.API_V1_PREFIX)

app.mount(
    "/assets",
    StaticFiles(directory=settings.ASSETS_ROOT, check_dir=False),
    name="assets",
)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
