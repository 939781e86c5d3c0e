"""
Health check endpoints for operations monitoring.

Checks:
- Database connectivity (all configured databases)
- Redis/Celery broker connectivity
- Projection lag and bookmark errors
- Ledger integrity (trial balance closes, projected balances match replay)

Endpoints:
- /_health/live    - Liveness probe (is the process running?)
- /_health/ready   - Readiness probe (can we serve traffic?)
- /_health/full    - Full health report (for debugging/dashboards)
"""
import logging
import time
from typing import Dict, Any

import redis
from django.conf import settings
from django.db import connections
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


class HealthCheck:
    """Health check implementation."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        """Check database connectivity."""
        start = time.time()
        try:
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return {"status": "healthy", "alias": alias, "duration_ms": _elapsed_ms(start)}
        except Exception as e:
            logger.warning(f"Database {alias} health check failed: {e}")
            return {
                "status": "unhealthy",
                "alias": alias,
                "error": str(e),
                "duration_ms": _elapsed_ms(start),
            }

    @staticmethod
    def check_all_databases() -> Dict[str, Any]:
        results = {alias: HealthCheck.check_database(alias) for alias in settings.DATABASES}
        all_healthy = all(r["status"] == "healthy" for r in results.values())
        return {
            "status": "healthy" if all_healthy else "degraded",
            "databases": results,
        }

    @staticmethod
    def check_redis() -> Dict[str, Any]:
        """Check the Celery broker when projections run asynchronously."""
        if settings.PROJECTIONS_SYNC:
            return {"status": "skipped", "reason": "Projections run synchronously"}

        redis_url = getattr(settings, "CELERY_BROKER_URL", None)
        if not redis_url:
            return {"status": "skipped", "reason": "Redis not configured"}

        start = time.time()
        try:
            redis.from_url(redis_url).ping()
            return {"status": "healthy", "duration_ms": _elapsed_ms(start)}
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return {"status": "unhealthy", "error": str(e), "duration_ms": _elapsed_ms(start)}

    @staticmethod
    def check_projection_lag() -> Dict[str, Any]:
        """Check projection consumer lag."""
        try:
            from projections.base import projection_registry

            total_lag = 0
            consumers = []
            for projection in projection_registry.all():
                lag = projection.get_lag()
                bookmark = projection.get_bookmark()
                total_lag += lag
                errors = bookmark.error_count if bookmark else 0
                if lag > 0 or errors > 0:
                    consumers.append({
                        "consumer": projection.name,
                        "lag": lag,
                        "errors": errors,
                        "last_error": bookmark.last_error if bookmark else "",
                        "paused": bookmark.is_paused if bookmark else False,
                    })

            lag_threshold = getattr(settings, "PROJECTION_LAG_THRESHOLD", 1000)
            return {
                "status": "healthy" if total_lag < lag_threshold else "degraded",
                "total_lag": total_lag,
                "threshold": lag_threshold,
                "consumers_with_lag": consumers,
            }
        except Exception as e:
            return {"status": "error", "error": str(e)}

    @staticmethod
    def check_ledger_integrity() -> Dict[str, Any]:
        """
        The trial balance must close and every projected balance must
        match a replay of the posted events.
        """
        try:
            from projections.account_balance import AccountBalanceProjection
            from projections.trial_balance import generate_trial_balance

            trial_balance = generate_trial_balance()
            verification = AccountBalanceProjection().verify_all_balances()

            healthy = trial_balance["is_balanced"] and not verification["mismatches"]
            return {
                "status": "healthy" if healthy else "unhealthy",
                "trial_balance": {
                    "is_balanced": trial_balance["is_balanced"],
                    "total_debit": str(trial_balance["total_debit"]),
                    "total_credit": str(trial_balance["total_credit"]),
                    "difference": str(trial_balance["difference"]),
                },
                "balances_verified": verification["verified"],
                "balance_mismatches": verification["mismatches"][:10],
            }
        except Exception as e:
            return {"status": "error", "error": str(e)}

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        """Get comprehensive health report."""
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "redis": HealthCheck.check_redis(),
            "projection_lag": HealthCheck.check_projection_lag(),
            "ledger_integrity": HealthCheck.check_ledger_integrity(),
        }

        statuses = [c.get("status", "unknown") for c in checks.values()]
        if all(s in ("healthy", "skipped") for s in statuses):
            overall = "healthy"
        elif any(s == "unhealthy" for s in statuses):
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "development" if settings.DEBUG else "production",
        }


class LivenessView(View):
    """Returns 200 while the process is up. Touches no dependencies."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Returns 200 when the default database answers, 503 otherwise."""

    def get(self, request):
        db_check = HealthCheck.check_database("default")
        if db_check["status"] == "healthy":
            return JsonResponse({"status": "ready", "database": db_check})
        return JsonResponse({"status": "not_ready", "database": db_check}, status=503)


class FullHealthView(View):
    """
    Full health check for debugging and dashboards.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        health = HealthCheck.get_full_health()
        status_code = 200 if health["status"] == "healthy" else 503
        return JsonResponse(health, status=status_code)
