"""
FLYCARGO Monitoring & Health Check Endpoints
=============================================

Provides:
1. /health/ - Basic liveness check (for load balancers/Docker)
2. /health/ready/ - Readiness check (DB, cache, Celery status)
"""

import time
import logging
from django.http import JsonResponse
from django.db import connection
from django.core.cache import cache
from django.views.decorators.http import require_GET
from django.views.decorators.csrf import csrf_exempt
from django.utils import timezone

logger = logging.getLogger('flycargo.monitoring')


@csrf_exempt
@require_GET
def health_check(request):
    """
    Basic liveness probe.
    Returns 200 if the Django process is alive.
    """
    return JsonResponse({
        'status': 'ok',
        'service': 'flycargo',
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_GET
def readiness_check(request):
    """
    Readiness probe - checks all critical dependencies.
    Returns 200 only if database and cache are healthy, 503 otherwise.
    Celery being down is reported as degraded.
    """
    checks = {}
    all_healthy = True

    # 1. Database Check
    try:
        start = time.time()
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        checks['database'] = {
            'status': 'healthy',
            'response_time_ms': round((time.time() - start) * 1000, 2),
            'engine': connection.vendor,
        }
    except Exception as e:
        checks['database'] = {'status': 'unhealthy', 'error': str(e)}
        all_healthy = False
        logger.error(f"Health check - Database unhealthy: {e}")

    # 2. Cache Check
    try:
        start = time.time()
        cache_key = '_healthcheck_ping'
        cache.set(cache_key, 'pong', 10)
        if cache.get(cache_key) != 'pong':
            raise RuntimeError("Cache read/write mismatch")
        checks['cache'] = {
            'status': 'healthy',
            'response_time_ms': round((time.time() - start) * 1000, 2),
        }
    except Exception as e:
        checks['cache'] = {'status': 'unhealthy', 'error': str(e)}
        all_healthy = False
        logger.error(f"Health check - Cache unhealthy: {e}")

    # 3. Celery Check (via inspect ping)
    try:
        from flycargo_core.celery import app as celery_app
        start = time.time()
        ping_result = celery_app.control.inspect(timeout=3.0).ping()
        celery_time = round((time.time() - start) * 1000, 2)

        if ping_result:
            checks['celery'] = {
                'status': 'healthy',
                'workers': len(ping_result),
                'response_time_ms': celery_time,
            }
        else:
            checks['celery'] = {
                'status': 'degraded',
                'error': 'No workers responding',
                'response_time_ms': celery_time,
            }
            logger.warning("Health check - No Celery workers responding")
    except Exception as e:
        checks['celery'] = {'status': 'degraded', 'error': str(e)}
        logger.warning(f"Health check - Celery unreachable: {e}")

    status_code = 200 if all_healthy else 503
    return JsonResponse({
        'status': 'healthy' if all_healthy else 'unhealthy',
        'service': 'flycargo',
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=status_code)
