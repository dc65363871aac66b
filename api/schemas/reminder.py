"""
Reminder Schemas
Pydantic models for the treatment notification API
"""

from typing import Any, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field


# ==================== REQUEST SCHEMAS ====================

class DoseStatusUpdate(BaseModel):
    """Schema for recording a dose status"""
    dose_status: Literal[1, 2] = Field(..., description="1 = Completed, 2 = Not Required")


# ==================== RESPONSE SCHEMAS ====================

class MedicineCardResponse(BaseModel):
    """One reminder as shown on a medicine card"""
    id: int
    medicine_id: Optional[int] = None
    medicine_name: str
    medicine_type: str
    dosage: Optional[str] = None
    medication_time: Optional[str] = None
    windows: List[str] = []
    dosage_time: Optional[str] = None
    day: Optional[str] = None
    dose_status: int
    status: str
    given_time: Optional[str] = None
    given_at: str
    can_update: bool
    updating: bool = False


class TimeSlotResponse(BaseModel):
    """Reminders sharing a dosage time"""
    dosage_time: Optional[str] = None
    percentage: float
    completion: int = Field(..., description="Percentage rounded for display")
    reminders: List[MedicineCardResponse]


class ScheduleResponse(BaseModel):
    """Schedule of the selected date"""
    timeline_id: int
    dates: List[str]
    active_date_index: int
    active_date: Optional[str] = None
    is_today: bool
    slots: List[TimeSlotResponse]
    empty_message: Optional[str] = None
    last_refreshed: Optional[datetime] = None


class DoseStatusUpdateResponse(BaseModel):
    """Result of a recorded dose status"""
    reminder: MedicineCardResponse
    date: str
    dosage_time: Optional[str] = None
    percentage: float
    completion: int
    given_time_echoed: bool
    message: str = "Medicine status updated successfully"


class ErrorResponse(BaseModel):
    """Error payload"""
    error: bool = True
    message: Any
    status_code: int
    timestamp: datetime
