"""
Services Module
Reminder sources and schedule orchestration for the DoseRound application
"""

from services.reminder_client import HospitalApiClient, ReminderSourceError
from services.reminder_store import SqlReminderSource
from services.schedule_view import (
    ReminderSource,
    ReminderNotFound,
    ReminderLocation,
    DoseUpdate,
    ScheduleView,
    ScheduleViewRegistry,
)


__all__ = [
    # Reminder sources
    "HospitalApiClient",
    "ReminderSourceError",
    "SqlReminderSource",
    "ReminderSource",
    # Orchestration
    "ReminderNotFound",
    "ReminderLocation",
    "DoseUpdate",
    "ScheduleView",
    "ScheduleViewRegistry",
]
