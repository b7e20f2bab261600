import time

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from quizquest.config import APP_NAME, APP_VERSION
from quizquest.db import init_db
from quizquest.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from quizquest.routers import budget as budget_router
from quizquest.routers import lessons as lessons_router
from quizquest.routers import quizzes as quizzes_router
from quizquest.routers import sessions as sessions_router
from quizquest.services.logging import bind_request_context, configure_logging, log_api_request
from quizquest.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title=APP_NAME,
    description="Author, generate and play multiple-choice quizzes from lesson PDFs or text",
    version=APP_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    request_id = bind_request_context(request)
    log_api_request(request)

    try:
        response = await call_next(request)
    except Exception as e:
        log_api_request(request, error=e)
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()
    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(process_time)

    response.response_time = process_time
    log_api_request(request, response)
    return response


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


@app.get("/")
def index():
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "ocr": health_checker.check_ocr()["status"] == "healthy",
    }


# ----------------- Startup -----------------
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("app_started", name=APP_NAME, version=APP_VERSION)


# ----------------- Routers -----------------
app.include_router(lessons_router.router)
app.include_router(budget_router.router)
app.include_router(quizzes_router.router)
app.include_router(sessions_router.router)
