#!/usr/bin/env python
"""
Seed Reminders
Script to seed the local reminder store with a sample treatment timeline
"""

import sys
import os
import argparse
import asyncio
import logging
from datetime import datetime, timedelta, date
from typing import Any, Dict, List

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal, init_db
from models import MedicineCategory
from services.reminder_store import SqlReminderSource


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


SAMPLE_PLAN = [
    # (medicine_id, name, category, dosage, slots)
    (101, "paracetamol", MedicineCategory.TABLETS, "500", ["08:00", "14:00", "20:00"]),
    (102, "amoxicillin", MedicineCategory.CAPSULES, "250", ["08:00", "20:00"]),
    (103, "ondansetron", MedicineCategory.INJECTIONS, "4", ["14:00"]),
    (104, "normal saline", MedicineCategory.IV_LINE, "500", ["08:00"]),
]


def build_reminders(start: date, days: int, window_minutes: int) -> List[Dict[str, Any]]:
    """Build reminder rows for every planned dose over the given days"""
    rows = []
    for offset in range(days):
        current = start + timedelta(days=offset)
        for medicine_id, name, category, dosage, slots in SAMPLE_PLAN:
            for slot in slots:
                dosage_time = datetime.combine(current, datetime.strptime(slot, "%H:%M").time())
                window_end = (dosage_time + timedelta(minutes=window_minutes)).strftime("%H:%M")
                rows.append({
                    "medicine_id": medicine_id,
                    "medicine_name": name,
                    "medicine_type": category.value,
                    "dosage": dosage,
                    "medication_time": f"{slot} - {window_end}",
                    "dosage_time": dosage_time,
                    "day": f"{offset + 1}/{days}",
                })
    return rows


def seed_timeline(timeline_id: int, days: int, window_minutes: int, clear: bool):
    init_db()

    db = SessionLocal()
    try:
        source = SqlReminderSource(db=db)
        if clear:
            asyncio.run(source.remove_reminders(timeline_id))

        rows = build_reminders(date.today(), days, window_minutes)
        records = asyncio.run(source.add_reminders(timeline_id, rows))
        logger.info(f"Seeded {len(records)} reminders on timeline {timeline_id}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="Seed the local reminder store with a sample timeline"
    )
    parser.add_argument("--timeline", type=int, default=1, help="Timeline ID to seed")
    parser.add_argument("--days", type=int, default=3, help="Number of days, starting today")
    parser.add_argument(
        "--window",
        type=int,
        default=60,
        help="Administration window length in minutes"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Remove the timeline's existing reminders before seeding"
    )

    args = parser.parse_args()

    seed_timeline(args.timeline, args.days, args.window, args.clear)


if __name__ == "__main__":
    main()
