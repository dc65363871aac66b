"""
Reminder Grouper
Groups a day's medicine reminders into dosage-time slots and tracks slot completion
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional
from dataclasses import dataclass, field
from datetime import datetime

from config import engine_config
from models import DoseStatus, MedicineCategory
from tools.time_window import split_windows


logger = logging.getLogger(__name__)


def _as_dose_status(value: Any) -> DoseStatus:
    """
    Only 0 is Pending and 1 is Completed; any other value, missing
    included, reads as Not Required so the dose stays locked.
    """
    try:
        code = int(value)
    except (TypeError, ValueError):
        code = None
    if code == DoseStatus.PENDING:
        return DoseStatus.PENDING
    if code == DoseStatus.COMPLETED:
        return DoseStatus.COMPLETED
    if code != DoseStatus.NOT_REQUIRED:
        logger.warning(f"Unknown dose status {value!r}, treating it as Not Required")
    return DoseStatus.NOT_REQUIRED


def _as_given_time(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text in engine_config.NOT_GIVEN_SENTINELS:
        return None
    return text


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-like dosage timestamp; returns None when unparseable"""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class ReminderRecord:
    """One scheduled medication administration"""
    id: int
    dosage_time: Optional[str]
    dose_status: DoseStatus = DoseStatus.PENDING
    medicine_id: Optional[int] = None
    medicine_name: Optional[str] = None
    medicine_type: Any = None
    dosage: Any = None
    medication_time: Optional[str] = None
    given_time: Optional[str] = None
    day: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ReminderRecord":
        """
        Build a record from a camelCase API payload

        Raises:
            ValueError: the payload has no usable id
        """
        try:
            reminder_id = int(data["id"])
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Reminder payload has no valid id: {data!r}")

        return cls(
            id=reminder_id,
            dosage_time=data.get("dosageTime"),
            dose_status=_as_dose_status(data.get("doseStatus")),
            medicine_id=data.get("medicineID"),
            medicine_name=data.get("medicineName"),
            medicine_type=data.get("medicineType"),
            dosage=data.get("dosage"),
            medication_time=data.get("medicationTime"),
            given_time=_as_given_time(data.get("givenTime")),
            day=data.get("day"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "medicineID": self.medicine_id,
            "medicineName": self.medicine_name,
            "medicineType": self.medicine_type,
            "dosage": self.dosage,
            "medicationTime": self.medication_time,
            "dosageTime": self.dosage_time,
            "doseStatus": int(self.dose_status),
            "givenTime": self.given_time,
            "day": self.day,
        }

    @property
    def is_pending(self) -> bool:
        return self.dose_status is DoseStatus.PENDING

    @property
    def display_name(self) -> str:
        name = (self.medicine_name or "").strip()
        if not name:
            return engine_config.UNKNOWN_MEDICINE_NAME
        return name[:1].upper() + name[1:].lower()

    @property
    def category(self) -> Optional[MedicineCategory]:
        return MedicineCategory.from_value(self.medicine_type)

    @property
    def type_label(self) -> str:
        if self.category:
            return self.category.value
        if self.medicine_type not in (None, ""):
            return str(self.medicine_type)
        return engine_config.DEFAULT_MEDICINE_TYPE

    @property
    def dosage_label(self) -> Optional[str]:
        if self.dosage in (None, ""):
            return None
        amount = self.dosage
        if isinstance(amount, str):
            try:
                amount = float(amount)
            except ValueError:
                return amount
        unit = self.category.dosage_unit if self.category else "mg"
        return f"{amount:g} {unit}"

    @property
    def windows(self) -> List[str]:
        return split_windows(self.medication_time)

    @property
    def status_label(self) -> str:
        return self.dose_status.label

    @property
    def given_at_label(self) -> str:
        return self.given_time or engine_config.NOT_GIVEN_LABEL


def completion_percentage(reminders: List[ReminderRecord]) -> float:
    """
    Percentage of reminders marked Completed.

    Not Required counts toward the total but not toward completion.
    An empty list yields 0.0.
    """
    if not reminders:
        return 0.0
    completed = sum(1 for r in reminders if r.dose_status is DoseStatus.COMPLETED)
    return completed / len(reminders) * 100


@dataclass
class ReminderGroup:
    """Reminders sharing one exact dosage timestamp"""
    dosage_time: Optional[str]
    reminders: List[ReminderRecord] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        return completion_percentage(self.reminders)

    def find(self, reminder_id: int) -> Optional[ReminderRecord]:
        for reminder in self.reminders:
            if reminder.id == reminder_id:
                return reminder
        return None


@dataclass
class DateBucket:
    """All time-slot groups for one date"""
    date: str
    groups: List[ReminderGroup] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.groups

    def sorted_groups(self) -> List[ReminderGroup]:
        return sort_groups(self.groups)


def group_reminders(records: Iterable[ReminderRecord]) -> List[ReminderGroup]:
    """
    Group reminders by exact dosage_time string.

    Groups and their members keep first-seen order.
    """
    groups: List[ReminderGroup] = []
    for record in records:
        existing = next((g for g in groups if g.dosage_time == record.dosage_time), None)
        if existing:
            existing.reminders.append(record)
        else:
            groups.append(ReminderGroup(dosage_time=record.dosage_time, reminders=[record]))
    return groups


def sort_groups(groups: List[ReminderGroup]) -> List[ReminderGroup]:
    """Return groups ordered by dosage time; unparseable times go last"""
    def _key(group: ReminderGroup):
        parsed = parse_timestamp(group.dosage_time)
        if parsed is None:
            return (1, 0.0)
        return (0, parsed.timestamp())

    return sorted(groups, key=_key)


def build_date_buckets(
    reminders_by_date: Mapping[str, Iterable[ReminderRecord]]
) -> List[DateBucket]:
    """Build one DateBucket per date, keeping the source's date order"""
    buckets = []
    for day, records in reminders_by_date.items():
        buckets.append(DateBucket(date=day, groups=group_reminders(records or [])))
    logger.debug(f"Built {len(buckets)} date buckets")
    return buckets
