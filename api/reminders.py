"""
Reminders API Router
Treatment notification endpoints: the daily dose schedule and dose status updates
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from api.deps import get_view_registry
from api.schemas.reminder import (
    DoseStatusUpdate,
    DoseStatusUpdateResponse,
    MedicineCardResponse,
    ScheduleResponse,
    TimeSlotResponse,
)
from config import engine_config
from models import DoseStatus
from services.schedule_view import ScheduleView, ScheduleViewRegistry
from tools.reminder_grouper import ReminderGroup, ReminderRecord


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timelines", tags=["reminders"])


# ==================== HELPERS ====================

def _card(view: ScheduleView, reminder: ReminderRecord) -> MedicineCardResponse:
    return MedicineCardResponse(
        id=reminder.id,
        medicine_id=reminder.medicine_id,
        medicine_name=reminder.display_name,
        medicine_type=reminder.type_label,
        dosage=reminder.dosage_label,
        medication_time=reminder.medication_time,
        windows=reminder.windows,
        dosage_time=reminder.dosage_time or engine_config.UNSCHEDULED_LABEL,
        day=reminder.day,
        dose_status=int(reminder.dose_status),
        status=reminder.status_label,
        given_time=reminder.given_time,
        given_at=reminder.given_at_label,
        can_update=view.can_update(reminder.id),
        updating=view.is_updating(reminder.id),
    )


def _slot(view: ScheduleView, group: ReminderGroup) -> TimeSlotResponse:
    return TimeSlotResponse(
        dosage_time=group.dosage_time,
        percentage=group.percentage,
        completion=round(group.percentage),
        reminders=[_card(view, reminder) for reminder in group.reminders],
    )


# ==================== ENDPOINTS ====================

@router.get("/{timeline_id}/reminders", response_model=ScheduleResponse)
async def get_schedule(
    timeline_id: int,
    date_index: Optional[int] = Query(None, ge=0, description="Date tab to show; 0 is today"),
    registry: ScheduleViewRegistry = Depends(get_view_registry)
):
    """
    Get the grouped dose schedule of a timeline for one date

    The date tab belongs to the request; without date_index today is shown.
    """
    view = registry.get(timeline_id)
    await view.refresh()

    index = date_index or 0
    bucket = None
    if view.buckets:
        try:
            bucket = view.bucket_at(index)
        except IndexError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    slots = [_slot(view, group) for group in bucket.sorted_groups()] if bucket else []

    return ScheduleResponse(
        timeline_id=timeline_id,
        dates=view.dates,
        active_date_index=index if bucket else 0,
        active_date=bucket.date if bucket else None,
        is_today=bucket is not None and view.is_current_day(index),
        slots=slots,
        empty_message=engine_config.EMPTY_DATE_MESSAGE if not slots else None,
        last_refreshed=view.last_refreshed,
    )


@router.patch(
    "/{timeline_id}/reminders/{reminder_id}",
    response_model=DoseStatusUpdateResponse
)
async def update_dose_status(
    timeline_id: int,
    reminder_id: int,
    update: DoseStatusUpdate,
    registry: ScheduleViewRegistry = Depends(get_view_registry)
):
    """
    Mark a pending dose as Completed or Not Required

    The schedule is reloaded first, so the guard sees the latest status.
    Guard failures answer 409; backend failures answer 502.
    """
    view = registry.get(timeline_id)
    await view.refresh()

    result = await view.set_dose_status(reminder_id, DoseStatus(update.dose_status))

    group = result.group
    return DoseStatusUpdateResponse(
        reminder=_card(view, result.outcome.reminder),
        date=result.date,
        dosage_time=group.dosage_time,
        percentage=group.percentage,
        completion=round(group.percentage),
        given_time_echoed=result.outcome.given_time_echoed,
    )
