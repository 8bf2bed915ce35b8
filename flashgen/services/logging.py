"""
Structured logging: one-time structlog setup, a timing decorator for slow
collaborators, and per-request access events
"""
import structlog
import logging
import sys
import time
from functools import wraps
from typing import Optional

from flashgen.middleware.rate_limit import get_client_identifier


def configure_logging(level: int = logging.INFO):
    """Configure structured logging"""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # provider and HTTP client chatter stays out of the audit trail
    for noisy in ("httpx", "openai", "sqlalchemy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def log_performance(operation: str):
    """Emit ``operation_completed``/``operation_failed`` with the elapsed time."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = structlog.get_logger("performance")
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "operation_failed",
                    operation=operation,
                    duration_seconds=round(time.perf_counter() - started, 4),
                    error_type=type(e).__name__,
                )
                raise
            logger.info(
                "operation_completed",
                operation=operation,
                duration_seconds=round(time.perf_counter() - started, 4),
            )
            return result
        return wrapper
    return decorator


def log_api_request(request, status_code: Optional[int] = None, duration: Optional[float] = None, error: Optional[BaseException] = None):
    """Access log: ``api_request_started`` before dispatch, then completed or failed."""
    logger = structlog.get_logger("api")
    fields = {
        "method": request.method,
        "path": request.url.path,
        "client_id": get_client_identifier(request),
    }

    if error is not None:
        logger.error("api_request_failed", error_type=type(error).__name__, error=str(error), status_code=500, **fields)
    elif status_code is not None:
        logger.info("api_request_completed", status_code=status_code, duration_seconds=duration, **fields)
    else:
        logger.info("api_request_started", user_agent=request.headers.get("user-agent", "unknown"), **fields)
