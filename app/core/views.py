"""
Core views providing infrastructure endpoints.
"""

from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse


def _database_reachable() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception:
        return False
    return True


def _cache_reachable() -> bool:
    try:
        cache.set("health_check", "ok", timeout=1)
        return cache.get("health_check") == "ok"
    except Exception:
        return False


def health_check(request):
    """
    Report whether the hub can accept webhook deliveries.

    The database is always required. The cache only counts when it is the
    configured dedup store; otherwise a cache outage is reported but the
    hub stays healthy, since deliveries can still be deduplicated.

    Returns:
        JsonResponse with status, database, cache and dedup_store keys;
        200 when healthy, 503 otherwise.
    """
    dedup_store = getattr(settings, "WEBHOOK_DEDUP_BACKEND", "database")
    database_ok = _database_reachable()
    cache_ok = _cache_reachable()

    is_healthy = database_ok and (cache_ok or dedup_store != "cache")

    return JsonResponse(
        {
            "status": "healthy" if is_healthy else "unhealthy",
            "database": "connected" if database_ok else "disconnected",
            "cache": "connected" if cache_ok else "disconnected",
            "dedup_store": dedup_store,
        },
        status=200 if is_healthy else 503,
    )
