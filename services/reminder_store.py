"""
Local Reminder Store
Database-backed reminder source used when DoseRound runs without the hospital backend
"""

import logging
from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime, date
from sqlalchemy.orm import Session

from database import get_db_context
import models
from models import DoseStatus
from tools.reminder_grouper import ReminderRecord
from tools.dose_status import GivenTimeEchoed, MutationFailure, MutationResult


logger = logging.getLogger(__name__)


def _to_record(row: models.MedicineReminder) -> ReminderRecord:
    return ReminderRecord(
        id=row.id,
        medicine_id=row.medicine_id,
        medicine_name=row.medicine_name,
        medicine_type=row.medicine_type,
        dosage=row.dosage,
        medication_time=row.medication_time,
        dosage_time=row.dosage_time.isoformat() if row.dosage_time else None,
        dose_status=DoseStatus(row.dose_status),
        given_time=row.given_time.isoformat() if row.given_time else None,
        day=row.day,
    )


class SqlReminderSource:
    """
    Reminder source backed by the medicine_reminders table
    """

    def __init__(
        self,
        db: Optional[Session] = None,
        user_id: Optional[int] = None,
        today: Optional[date] = None
    ):
        self.db = db
        self.user_id = user_id
        self._today = today

    def _run(self, fn):
        if self.db:
            return fn(self.db)

        with get_db_context() as session:
            return fn(session)

    async def read_reminders(self, timeline_id: int) -> Dict[str, List[ReminderRecord]]:
        """
        Get reminders for a timeline keyed by ISO date.

        Today's date comes first, the remaining dates follow in
        ascending order.
        """
        today = (self._today or date.today()).isoformat()

        def _read(session: Session) -> Dict[str, List[ReminderRecord]]:
            rows = session.query(models.MedicineReminder).filter(
                models.MedicineReminder.timeline_id == timeline_id
            ).order_by(
                models.MedicineReminder.dosage_time,
                models.MedicineReminder.id
            ).all()

            by_date: Dict[str, List[ReminderRecord]] = {}
            for row in rows:
                by_date.setdefault(row.dosage_time.date().isoformat(), []).append(_to_record(row))

            ordered: Dict[str, List[ReminderRecord]] = {}
            if today in by_date:
                ordered[today] = by_date.pop(today)
            for day in sorted(by_date):
                ordered[day] = by_date[day]
            return ordered

        return self._run(_read)

    async def mutate_dose_status(
        self,
        reminder_id: int,
        new_status: DoseStatus,
        medication_time: str
    ) -> MutationResult:
        """Record a dose status change and echo the recorded time"""
        def _mutate(session: Session) -> MutationResult:
            row = session.query(models.MedicineReminder).filter(
                models.MedicineReminder.id == reminder_id
            ).first()

            if not row:
                raise MutationFailure(f"Reminder {reminder_id} not found", status_code=404)
            if row.dose_status != DoseStatus.PENDING.value:
                raise MutationFailure(
                    f"Dose status already recorded for reminder {reminder_id}",
                    status_code=409
                )

            given_time = datetime.utcnow().replace(microsecond=0)
            row.dose_status = int(new_status)
            row.given_time = given_time
            row.given_by = self.user_id
            session.commit()

            logger.info(
                f"Recorded {DoseStatus(new_status).label} for reminder {reminder_id} "
                f"({medication_time or 'no window'})"
            )
            return GivenTimeEchoed(given_time=given_time.isoformat())

        return self._run(_mutate)

    async def add_reminders(
        self,
        timeline_id: int,
        reminders: List[Mapping[str, Any]]
    ) -> List[ReminderRecord]:
        """Insert reminders for a timeline"""
        def _add(session: Session) -> List[ReminderRecord]:
            rows = []
            for item in reminders:
                row = models.MedicineReminder(timeline_id=timeline_id, **item)
                session.add(row)
                rows.append(row)
            session.commit()
            for row in rows:
                session.refresh(row)
            logger.info(f"Added {len(rows)} reminders to timeline {timeline_id}")
            return [_to_record(row) for row in rows]

        return self._run(_add)

    async def remove_reminders(self, timeline_id: int) -> int:
        """Delete every reminder of a timeline; returns the number removed"""
        def _remove(session: Session) -> int:
            deleted = session.query(models.MedicineReminder).filter(
                models.MedicineReminder.timeline_id == timeline_id
            ).delete()
            session.commit()
            logger.info(f"Removed {deleted} reminders from timeline {timeline_id}")
            return deleted

        return self._run(_remove)
