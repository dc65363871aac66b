"""
Database Models
SQLAlchemy ORM models and shared enums for DoseRound
"""

from sqlalchemy import Column, Integer, String, DateTime, Index
from datetime import datetime
from enum import Enum as PyEnum, IntEnum
from typing import Any, Optional

from database import Base


# ==================== ENUMS ====================

class DoseStatus(IntEnum):
    """Administration status of a scheduled dose"""
    PENDING = 0
    COMPLETED = 1
    NOT_REQUIRED = 2

    @property
    def label(self) -> str:
        return _DOSE_STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self is not DoseStatus.PENDING


_DOSE_STATUS_LABELS = {
    DoseStatus.PENDING: "Pending",
    DoseStatus.COMPLETED: "Completed",
    DoseStatus.NOT_REQUIRED: "Not Required",
}


class MedicineCategory(str, PyEnum):
    """Medicine form, as shown on a medicine card"""
    CAPSULES = "Capsules"
    SYRUPS = "Syrups"
    TABLETS = "Tablets"
    INJECTIONS = "Injections"
    IV_LINE = "IV Line"
    TUBING = "Tubing"
    TOPICAL = "Topical"
    DROPS = "Drops"
    SPRAY = "Spray"
    VENTILATOR = "Ventilator"

    @classmethod
    def from_value(cls, value: Any) -> Optional["MedicineCategory"]:
        """Resolve a numeric category code or a free-text label"""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return _CATEGORY_CODES.get(value)
        text = str(value).strip()
        if text.isdigit():
            return _CATEGORY_CODES.get(int(text))
        for category in cls:
            if category.value.lower() == text.lower():
                return category
        return None

    @property
    def dosage_unit(self) -> str:
        if self in (MedicineCategory.CAPSULES, MedicineCategory.TABLETS):
            return "mg"
        if self is MedicineCategory.TUBING:
            return "g"
        return "ml"


# Numeric codes used by the hospital backend
_CATEGORY_CODES = {index: category for index, category in enumerate(MedicineCategory, start=1)}


# ==================== MODELS ====================

class MedicineReminder(Base):
    """One scheduled administration of a medicine on a treatment timeline"""
    __tablename__ = "medicine_reminders"

    id = Column(Integer, primary_key=True, index=True)
    timeline_id = Column(Integer, nullable=False, index=True)
    medicine_id = Column(Integer, index=True)

    # Medicine info
    medicine_name = Column(String(255), nullable=False)
    medicine_type = Column(String(50))
    dosage = Column(String(100))

    # Timing
    medication_time = Column(String(255))  # "08:00 - 09:00, 20:00 - 21:00"
    dosage_time = Column(DateTime, nullable=False)
    day = Column(String(20))  # "3/7"

    # Administration
    dose_status = Column(Integer, default=DoseStatus.PENDING.value, nullable=False)
    given_time = Column(DateTime)
    given_by = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_medicine_reminders_timeline_dosage", "timeline_id", "dosage_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<MedicineReminder id={self.id} medicine={self.medicine_name!r} "
            f"dosage_time={self.dosage_time} status={self.dose_status}>"
        )
