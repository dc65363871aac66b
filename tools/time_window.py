"""
Medication Time Window Policy
Decides whether a dose may be recorded yet, based on its medicationTime string
"""

import logging
from typing import List, Optional, Tuple
from datetime import datetime

from config import engine_config


logger = logging.getLogger(__name__)


def split_windows(medication_time: Optional[str]) -> List[str]:
    """Split a medicationTime value into its comma-separated windows"""
    if not medication_time:
        return []
    return [
        window.strip()
        for window in medication_time.split(engine_config.WINDOW_SEPARATOR)
        if window.strip()
    ]


def window_start(medication_time: str) -> str:
    """Return the start token of a "<start> - <end>" window, or the whole string"""
    if engine_config.WINDOW_DELIMITER in medication_time:
        return medication_time.split(engine_config.WINDOW_DELIMITER, 1)[0]
    return medication_time


def parse_clock(token: str) -> Tuple[int, int]:
    """
    Parse a clock token such as "14:30", "9", "11:30 PM" or "12:15am"
    into 24-hour (hour, minute).

    Raises:
        ValueError: if the token is not a valid clock time
    """
    upper = token.upper()
    is_pm = "PM" in upper
    is_am = "AM" in upper
    cleaned = "".join(upper.replace("AM", "").replace("PM", "").split())

    parts = cleaned.split(":")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 and parts[1] else 0

    if is_pm and hour < 12:
        hour += 12
    elif is_am and hour == 12:
        hour = 0

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Clock value out of range: {token!r}")

    return hour, minute


def is_window_open(medication_time: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Check whether the administration window has started.

    Only the start of the first window matters; the end of the window
    is not enforced.

    Args:
        medication_time: "14:30", "2:30 PM" or "14:00 - 15:00"; None means no window
        now: Current local time (default: datetime.now())

    Returns:
        True if now is at or after the window start. Unparseable values
        return True so that malformed data never blocks an administration.
    """
    if medication_time is None:
        return False

    now = now or datetime.now()

    try:
        hour, minute = parse_clock(window_start(medication_time))
    except (ValueError, IndexError) as e:
        logger.debug(f"Unparseable medication time {medication_time!r}, allowing: {e}")
        return True

    start_minutes = hour * 60 + minute
    now_minutes = now.hour * 60 + now.minute
    return now_minutes >= start_minutes
