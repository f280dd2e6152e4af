# qbank/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import os
import time
import uuid

from qbank.api.routes import router
from qbank.config import LOG_DIR, LOG_LEVEL
from qbank.observability.logger import setup_logging, get_logger
from qbank.observability.metrics import metrics_tracker
from qbank.observability.posthog_client import posthog_client
from qbank.services import build_services

# Initialize logging FIRST
setup_logging(log_level=LOG_LEVEL, log_dir=LOG_DIR)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Tests install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()

    logger.info("application_startup", extra={"version": "1.0.0"})

    if not os.getenv("OPENAI_API_KEY") and not os.getenv("GEMINI_API_KEY"):

        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail":
                "Neither OPENAI_API_KEY nor GEMINI_API_KEY is set. "
                "Extraction and embedding calls will fail."
            }
        )

    yield

    logger.info("application_shutdown")


app = FastAPI(
    title="Question Bank Recurrence API",
    description="Question paper ingestion with semantic recurrence tracking",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every HTTP request with latency and record request metrics.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    posthog_client.identify_user(
        distinct_id=request_id,
        properties={
            "entry_point": request.url.path,
            "method": request.method,
        },
    )

    logger.info(
        "request_started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None
        }
    )

    start_time = time.time()

    try:

        response = await call_next(request)

        latency = time.time() - start_time

        metrics_tracker.record_success(latency)

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(latency, 3)
            }
        )

        return response

    except Exception as e:

        latency = time.time() - start_time

        metrics_tracker.record_failure()

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint=request.url.path,
        )

        logger.error(
            "request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "latency_seconds": round(latency, 3),
                "error": str(e),
                "error_type": type(e).__name__
            },
            exc_info=True
        )

        raise


app.include_router(router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):

    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__
        },
        exc_info=True
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred. Please try again.",
            "request_id": request_id,
            "error_type": type(exc).__name__
        }
    )


@app.get("/")
async def root():

    return {
        "message": "Question Bank Recurrence API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
