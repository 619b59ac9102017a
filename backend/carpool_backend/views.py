import logging

import redis
from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from channels.layers import get_channel_layer

from events.services import get_active_event
from rides.tasks import refresh_event_etas_task, poll_active_event_weather_task

logger = logging.getLogger(__name__)


def _check_database():
    event = get_active_event()
    return {"active_event": event.id if event else None}


def _check_redis():
    client = redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3)
    client.ping()


def _check_channels():
    if get_channel_layer() is None:
        raise RuntimeError("no channel layer configured")


def _check_celery():
    registered = refresh_event_etas_task.app.tasks
    missing = [
        task.name for task in (refresh_event_etas_task, poll_active_event_weather_task)
        if task.name not in registered
    ]
    if missing:
        raise RuntimeError(f"tasks not registered: {', '.join(missing)}")


CHECKS = (
    ("database", _check_database),
    ("redis", _check_redis),
    ("channels", _check_channels),
    ("celery", _check_celery),
)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Dispatch backend health for monitoring.

    503 when any dependency the dispatch board needs is down. Missing
    maps/weather keys are reported but do not fail the check.
    """
    services = {}
    healthy = True

    for name, check in CHECKS:
        try:
            details = check()
        except Exception as e:
            logger.warning("Health check %s failed: %s", name, e)
            services[name] = f"unhealthy: {e}"
            healthy = False
            continue
        services[name] = "healthy"
        if details:
            services.update(details)

    services["maps_configured"] = bool(settings.GOOGLE_MAPS_API_KEY)
    services["weather_configured"] = bool(settings.OPENWEATHER_API_KEY)

    return Response(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
