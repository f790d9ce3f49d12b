import time

from django.conf import settings
from django.db import DatabaseError, connection
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .cache import get_cache_client

STARTED_AT = time.time()


def check_database():
    started = time.monotonic()
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as e:
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "vendor": connection.vendor,
        "response_time_ms": round((time.monotonic() - started) * 1000, 2),
    }


class HealthView(APIView):
    """
    GET /api/health/
    Database and cache status. 503 only when the database is down; a broken
    cache is reported but the service still counts as up.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        database = check_database()
        cache = get_cache_client().health()

        if database["status"] != "healthy":
            overall = "unhealthy"
        elif cache["status"] == "unhealthy":
            overall = "degraded"
        else:
            overall = "healthy"

        return Response(
            {
                "status": overall,
                "version": settings.APP_VERSION,
                "uptime_seconds": int(time.time() - STARTED_AT),
                "database": database,
                "cache": cache,
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE if overall == "unhealthy" else status.HTTP_200_OK,
        )
