"""
Health checks and monitoring with Prometheus metrics
"""
import time

import psutil
import pytesseract
import structlog
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from sqlalchemy import func
from sqlmodel import Session, select

from quizquest.db import engine
from quizquest.models import PlaySession, Quiz
from quizquest.services.storage import kv_store

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
TOTAL_QUIZZES = Gauge('quizzes_total', 'Number of quizzes in the database')
OPEN_PLAY_SESSIONS = Gauge('open_play_sessions_total', 'Play sessions started but not finished')
GENERATION_REQUESTS = Counter('quiz_generation_requests_total', 'Question generation requests', ['strategy', 'status'])
EXTRACTION_RESULTS = Counter('pdf_extraction_stage_total', 'PDF extraction stage outcomes', ['stage', 'status'])


def get_metrics() -> Response:
    """Prometheus exposition"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        try:
            with Session(engine) as session:
                quizzes = session.exec(select(func.count()).select_from(Quiz)).one()
            return {
                "status": "healthy",
                "message": "Database connection successful",
                "quizzes_count": quizzes
            }
        except Exception as e:
            logger.error("health_database_failed", error=str(e))
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {e}"
            }

    def check_cache(self) -> dict:
        test_key = "quizquest:health_check"
        try:
            kv_store.set(test_key, "ok")
            value = kv_store.get(test_key)
            kv_store.delete(test_key)
        except Exception as e:
            logger.error("health_cache_failed", error=str(e))
            return {"status": "unhealthy", "message": f"Key-value store failed: {e}"}
        if value != "ok":
            return {"status": "unhealthy", "message": "Key-value store round trip failed"}
        return {"status": "healthy", "message": "Key-value store operations successful", "backend": kv_store.backend}

    def check_ocr(self) -> dict:
        """OCR is optional; a missing engine only degrades scanned-PDF support"""
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            return {"status": "degraded", "message": f"Tesseract not available: {e}"}
        return {"status": "healthy", "message": "Tesseract available", "version": str(version)}

    def get_system_metrics(self) -> dict:
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
            return {
                "cpu_percent": psutil.cpu_percent(interval=0.1),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "disk_percent": disk.percent,
                "disk_free_gb": round(disk.free / (1024**3), 2),
                "uptime_seconds": time.time() - self.start_time
            }
        except Exception as e:
            logger.error("system_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_application_metrics(self) -> dict:
        try:
            with Session(engine) as session:
                quizzes = session.exec(select(func.count()).select_from(Quiz)).one()
                open_sessions = session.exec(
                    select(func.count()).select_from(PlaySession).where(PlaySession.finished_at.is_(None))
                ).one()
        except Exception as e:
            logger.error("application_metrics_failed", error=str(e))
            return {"error": str(e)}

        TOTAL_QUIZZES.set(quizzes)
        OPEN_PLAY_SESSIONS.set(open_sessions)
        return {
            "total_quizzes": quizzes,
            "open_play_sessions": open_sessions,
            "kv_backend": kv_store.backend
        }

    def get_health_status(self) -> dict:
        checks = {
            "database": self.check_database(),
            "cache": self.check_cache(),
            "ocr": self.check_ocr()
        }

        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        return {
            "status": "healthy" if not unhealthy_checks else "unhealthy",
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "application_metrics": self.get_application_metrics(),
            "unhealthy_components": unhealthy_checks
        }


# Global health checker instance
health_checker = HealthChecker()
