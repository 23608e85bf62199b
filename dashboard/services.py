"""Admin dashboard statistics."""

import logging
from datetime import datetime, timedelta
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, connection
from django.db.models import Sum
from django.utils import timezone

from approaches.models import UserApproaches
from questions.models import Category, Question

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_WINDOW_DAYS = 7


def check_system_health() -> dict[str, Any]:
    """Report database reachability and the running app version."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        database_connected = True
        database_status = "Connected - database is operational"
    except DatabaseError as e:
        logger.error(
            f"Database health check failed: {e}",
            extra={"error": str(e)},
            exc_info=True,
        )
        database_connected = False
        database_status = f"Error: {e}"

    return {
        "database_connected": database_connected,
        "database_status": database_status,
        "app_version": settings.APP_VERSION,
    }


def get_admin_overview(start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
    """Site-wide counts plus activity in a window.

    Args:
        start: Window start; defaults to seven days ago
        end: Window end (inclusive); defaults to now

    Returns:
        Dict of totals, windowed counts and system health
    """
    now = timezone.now()
    end = end or now
    start = start or now - timedelta(days=DEFAULT_WINDOW_DAYS)
    today_start = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)

    total_approaches = UserApproaches.objects.aggregate(total=Sum("total_approaches"))["total"]

    return {
        "total_users": User.objects.count(),
        "total_categories": Category.objects.count(),
        "total_questions": Question.objects.count(),
        "total_user_approaches": total_approaches or 0,
        "users_logged_in_today": User.objects.filter(last_login__gte=today_start).count(),
        "questions_in_window": Question.objects.filter(
            created_at__gte=start, created_at__lte=end
        ).count(),
        "new_users_in_window": User.objects.filter(
            date_joined__gte=start, date_joined__lte=end
        ).count(),
        "window_start": start.isoformat(),
        "window_end": end.isoformat(),
        "system_health": check_system_health(),
    }
