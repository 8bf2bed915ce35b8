from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded as GeneralRateLimitExceeded
import time
import structlog

from flashgen import config
from flashgen.db import init_db
from flashgen.errors import FlashcardServiceError
from flashgen.routers import generate as generate_router
from flashgen.routers import sets as sets_router
from flashgen.services.logging import configure_logging, log_api_request
from flashgen.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from flashgen.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="flashgen",
    description="Turn pasted text into AI-generated flashcards and keep named sets per user",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(GeneralRateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(FlashcardServiceError)
async def flashcard_service_error_handler(request: Request, exc: FlashcardServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Request logging and metrics
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    log_api_request(request)

    try:
        response = await call_next(request)
    except Exception as e:
        log_api_request(request, error=e)
        REQUEST_COUNT.labels(method=request.method, endpoint=request.url.path, status=500).inc()
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()
    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(process_time)

    log_api_request(request, status_code=response.status_code, duration=process_time)
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


# ----------------- Startup -----------------
@app.on_event("startup")
def on_startup():
    # Fail fast: generation is useless without the provider key
    config.require_openai_api_key()
    init_db()
    logger.info("startup_complete", model=config.OPENAI_MODEL, database=config.DATABASE_URL.split("://", 1)[0])


# ----------------- Routers -----------------
app.include_router(generate_router.router)
app.include_router(sets_router.router)
