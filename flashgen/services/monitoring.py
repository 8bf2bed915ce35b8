"""
Health checks and monitoring with Prometheus metrics
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
import os
import time
import psutil
import structlog
from sqlmodel import Session

from flashgen.db import engine
from flashgen.middleware.dedupe import duplicate_suppressor
from flashgen.middleware.rate_limit import generation_limiter
from flashgen.services.sets_repository import SetRepository

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
AI_GENERATION_REQUESTS = Counter('ai_generation_requests_total', 'Total AI generation requests', ['status'])
REJECTED_REQUESTS = Counter('rejected_requests_total', 'Generation requests rejected before reaching the provider', ['reason'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        """Check database connectivity and health"""
        try:
            with Session(engine) as session:
                saved_sets = SetRepository(session).count_sets()
            return {
                "status": "healthy",
                "message": "Database connection successful",
                "saved_sets": saved_sets
            }
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {str(e)}"
            }

    def check_generation(self) -> dict:
        """Check the provider is configured; never calls it"""
        if os.getenv("OPENAI_API_KEY"):
            return {"status": "healthy", "message": "OpenAI API key configured"}
        return {"status": "unhealthy", "message": "OPENAI_API_KEY not set"}

    def get_system_metrics(self) -> dict:
        """Get system resource metrics"""
        try:
            memory = psutil.virtual_memory()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "uptime_seconds": time.time() - self.start_time
            }
        except Exception as e:
            logger.error("system_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_application_metrics(self) -> dict:
        return {
            "rate_limited_clients": generation_limiter.tracked_clients(),
            "duplicate_keys": duplicate_suppressor.tracked_keys(),
        }

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "database": self.check_database(),
            "generation": self.check_generation(),
        }

        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        overall_status = "healthy" if not unhealthy_checks else "unhealthy"

        return {
            "status": overall_status,
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "application_metrics": self.get_application_metrics(),
            "unhealthy_components": unhealthy_checks
        }


# Global health checker instance
health_checker = HealthChecker()


def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
