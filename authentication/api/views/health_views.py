"""
Health Check Endpoints

Kubernetes-compatible health checks for liveness and readiness checks.
"""

import logging

from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_live(request):
    """
    Liveness check: Is the process alive?

    **Always returns 200** unless the process is completely dead.

    Returns:
        JsonResponse: {'status': 'ok'}
    """
    return JsonResponse({"status": "ok"}, status=200)


def health_ready(request):
    """
    Readiness check: Can the service handle requests?

    Checks the database connection and the configured cache backend.

    Returns:
        JsonResponse: Status and check details
        Status Code: 200 (ready) or 503 (not ready)
    """
    checks = {"database": check_database(), "cache": check_cache()}

    all_ok = all(checks.values())
    status_code = 200 if all_ok else 503

    return JsonResponse({"status": "ready" if all_ok else "not_ready", "checks": checks}, status=status_code)


def check_database():
    try:
        connection.ensure_connection()
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def check_cache():
    try:
        cache.set("health_check", "ok", timeout=1)
        return cache.get("health_check") == "ok"
    except Exception as e:
        logger.error(f"Cache health check failed: {e}")
        return False
