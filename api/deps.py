"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from functools import lru_cache
from typing import Optional

from config import settings
from services.reminder_client import HospitalApiClient
from services.reminder_store import SqlReminderSource
from services.schedule_view import ReminderSource, ScheduleViewRegistry


_registry: Optional[ScheduleViewRegistry] = None


@lru_cache()
def get_reminder_source() -> ReminderSource:
    """
    Reminder source selected by REMINDER_SOURCE
    ("remote" = hospital API, anything else = local database)
    """
    if settings.REMINDER_SOURCE == "remote":
        return HospitalApiClient()
    return SqlReminderSource(user_id=settings.HOSPITAL_USER_ID)


def get_view_registry() -> ScheduleViewRegistry:
    """
    Process-wide registry of timeline schedule views

    With POLL_IN_BACKGROUND each view polls its timeline from first use
    until it is dropped or the app shuts down.
    """
    global _registry
    if _registry is None:
        _registry = ScheduleViewRegistry(
            get_reminder_source(),
            max_views=settings.VIEW_REGISTRY_SIZE,
            autostart=settings.POLL_IN_BACKGROUND
        )
    return _registry


async def close_view_registry():
    """Stop all views and release the reminder source"""
    global _registry
    if _registry is not None:
        await _registry.close_all()
        _registry = None
    get_reminder_source.cache_clear()
