"""
Test Tools Package
Tests for the tools module (time window, reminder grouper, dose status)
"""

__all__ = [
    "test_time_window",
    "test_reminder_grouper",
    "test_dose_status",
]
