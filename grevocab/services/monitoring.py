"""
Health checks and monitoring with Prometheus metrics
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
import time
import psutil
import structlog
from sqlmodel import Session, select

from grevocab.db import engine
from grevocab.models import User
from grevocab.services.cache import cache
from grevocab.services.vocabulary_store import VocabularyStore

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
TOTAL_USERS = Gauge('total_users', 'Total number of users in database')
TOTAL_ENTRIES = Gauge('vocabulary_entries_total', 'Total number of vocabulary entries in database')
EXTRACTION_REQUESTS = Counter('extraction_requests_total', 'Document extraction requests', ['status'])
WORDS_IMPORTED = Counter('words_imported_total', 'Vocabulary entries created', ['source'])
STUDY_SESSIONS = Counter('study_sessions_total', 'Study sessions started', ['mode'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        """Check database connectivity"""
        try:
            with Session(engine) as session:
                session.exec(select(User.id).limit(1)).all()
            return {
                "status": "healthy",
                "message": "Database connection successful"
            }
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {str(e)}"
            }

    def check_cache(self) -> dict:
        """Check cache connectivity"""
        test_key = "health_check_test"
        cache.set(test_key, "test_value", expire=10)
        value = cache.get(test_key)
        cache.delete(test_key)

        if value == "test_value":
            return {
                "status": "healthy",
                "backend": "redis" if cache.redis_client is not None else "memory",
                "message": "Cache operations successful"
            }
        return {
            "status": "unhealthy",
            "message": "Cache operations failed"
        }

    def get_system_metrics(self) -> dict:
        """Get system resource metrics"""
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')

            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
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
        """Get application-specific metrics"""
        try:
            with Session(engine) as session:
                total_users = len(session.exec(select(User.id)).all())
                total_entries = VocabularyStore(session).count()

            TOTAL_USERS.set(total_users)
            TOTAL_ENTRIES.set(total_entries)

            return {
                "total_users": total_users,
                "total_entries": total_entries,
                "cache_available": cache.redis_client is not None
            }
        except Exception as e:
            logger.error("application_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "database": self.check_database(),
            "cache": self.check_cache(),
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
